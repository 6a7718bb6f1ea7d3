"""Abstract collaborator interfaces used by the orchestrator."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Literal, TypeAlias

from pr_test_generator.models.pull_request import ChangedFile, IssueComment, PullRequest

ModelTier: TypeAlias = Literal["fast", "standard"]


class LLMError(RuntimeError):
    """Raised when the language model call fails or returns garbage."""


class SourceControlError(RuntimeError):
    """Raised when the source-control API returns an unexpected response."""


class SourceControlClient(ABC):
    """Access to the pull request under test.

    All methods act on the pull request the client was configured for.
    """

    @abstractmethod
    async def get_pull_request(self) -> PullRequest:
        """Fetch title, body, author and refs."""

    @abstractmethod
    async def list_changed_files(self) -> Sequence[ChangedFile]:
        """Fetch files changed by the pull request, with patches."""

    @abstractmethod
    async def list_comments(self) -> Sequence[IssueComment]:
        """Fetch conversation comments."""

    @abstractmethod
    async def create_comment(self, body: str) -> None:
        """Post a comment on the pull request."""

    @abstractmethod
    async def get_file_content(self, path: str, ref: str | None = None) -> str | None:
        """Fetch a repository file, or None when it does not exist."""


class LLMClient(ABC):
    """A text completion capability.

    Output is free text with no fixed schema; callers must tolerate anything.
    """

    @abstractmethod
    async def complete(self, prompt: str, max_tokens: int, model: ModelTier) -> str:
        """Return the model's reply to ``prompt``.

        Raises:
            LLMError: If the request fails or the response is malformed

        """
