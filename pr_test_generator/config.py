"""Configuration for the pull request test generator."""

from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, Field, SecretStr

DEFAULT_PACKAGES = (
    "magnitude-core@latest",
    "dotenv@latest",
    "playwright@latest",
    "zod@3.24",
)


class ExecutionSettings(BaseModel):
    """How generated scripts are provisioned and run."""

    interpreter: str = "node"
    script_suffix: str = ".js"
    script_dir: Path | None = Field(
        default=None, description="Where to write the throwaway script (cwd if None)"
    )
    required_module: str = "magnitude-core"
    packages: Sequence[str] = DEFAULT_PACKAGES
    install_timeout: float = 120
    browser_install_timeout: float = 300
    fallback_browser: str = "chromium"


class ModelSettings(BaseModel):
    """Model identifiers for each LLM tier."""

    fast: str = "claude-3-haiku-20240307"
    standard: str = "claude-3-5-sonnet-20241022"


class ActionConfig(BaseModel):
    """Inputs of a single action run against one pull request."""

    anthropic_api_key: SecretStr
    github_token: SecretStr
    owner: str
    repo: str
    pr_number: int
    test_examples: str | None = None
    output_dir: Path | None = None
    timeout: float = Field(default=120, gt=0, description="Execution timeout (s)")
    comment_on_pr: bool = True
    base_url: str | None = None
    wait_for_preview: float = Field(default=60, ge=0)
    preview_poll_interval: float = 10
    test_user_email: str | None = None
    test_user_password: SecretStr | None = None
    github_api_base_url: str = "https://api.github.com"
    anthropic_api_base_url: str = "https://api.anthropic.com"
    models: ModelSettings = Field(default_factory=ModelSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    workspace: Path = Field(default_factory=Path.cwd)

    @property
    def sensitive_values(self) -> Sequence[str]:
        """Configured credentials that must never appear in a comment."""
        values = [self.test_user_email] if self.test_user_email else []
        if self.test_user_password is not None:
            values.append(self.test_user_password.get_secret_value())
        return [value for value in values if value]
