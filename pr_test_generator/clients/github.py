"""GitHub REST API implementation of the source-control client."""

import base64
import logging
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from pydantic import BaseModel, SecretStr, TypeAdapter

from pr_test_generator.clients.base import SourceControlClient, SourceControlError
from pr_test_generator.models.pull_request import ChangedFile, IssueComment, PullRequest

log = logging.getLogger(__name__)

PAGE_SIZE = 100

_files_adapter = TypeAdapter(list[ChangedFile])
_comments_adapter = TypeAdapter(list[IssueComment])


class GitHubConfig(BaseModel):
    """Configuration for the GitHub client."""

    token: SecretStr
    owner: str
    repo: str
    pr_number: int
    api_base_url: str = "https://api.github.com"


class GitHubError(SourceControlError):
    """Raised when the GitHub API returns an unexpected status."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


@dataclass(frozen=True, kw_only=True)
class GitHubClient(SourceControlClient):
    """Source-control client for one pull request on GitHub."""

    config: GitHubConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: GitHubConfig
    ) -> AsyncGenerator["GitHubClient", None]:
        """Create client with managed session lifecycle."""
        headers = {
            "Authorization": f"Bearer {config.token.get_secret_value()}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        async with aiohttp.ClientSession(
            base_url=config.api_base_url,
            headers=headers,
        ) as session:
            yield cls(config=config, session=session)

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.config.owner}/{self.config.repo}"

    async def get_pull_request(self) -> PullRequest:
        """Fetch the pull request."""
        url = f"{self._repo_path}/pulls/{self.config.pr_number}"
        data = await self._get_json(url, action="get pull request")
        return PullRequest.model_validate(data)

    async def list_changed_files(self) -> Sequence[ChangedFile]:
        """List files changed by the pull request."""
        url = f"{self._repo_path}/pulls/{self.config.pr_number}/files"
        items = await self._get_paginated(url, action="list pull request files")
        return _files_adapter.validate_python(items)

    async def list_comments(self) -> Sequence[IssueComment]:
        """List conversation comments on the pull request."""
        url = f"{self._repo_path}/issues/{self.config.pr_number}/comments"
        items = await self._get_paginated(url, action="list comments")
        return _comments_adapter.validate_python(items)

    async def create_comment(self, body: str) -> None:
        """Post a comment on the pull request."""
        url = f"{self._repo_path}/issues/{self.config.pr_number}/comments"
        async with self.session.post(url, json={"body": body}) as response:
            if response.status != 201:
                text = await response.text()
                raise GitHubError(
                    f"Failed to create comment: {response.status} {text}",
                    status=response.status,
                )
        log.info("Posted comment on PR #%d", self.config.pr_number)

    async def get_file_content(self, path: str, ref: str | None = None) -> str | None:
        """Fetch a file's decoded content, or None if it does not exist."""
        url = f"{self._repo_path}/contents/{path}"
        params = {"ref": ref} if ref else {}
        async with self.session.get(url, params=params) as response:
            if response.status == 404:
                return None
            if response.status != 200:
                text = await response.text()
                raise GitHubError(
                    f"Failed to get {path}: {response.status} {text}",
                    status=response.status,
                )
            data = await response.json()

        if not isinstance(data, dict) or data.get("encoding") != "base64":
            # Directories come back as lists, large files without inline content
            return None
        return base64.b64decode(data["content"]).decode("utf-8", errors="replace")

    async def _get_json(self, url: str, *, action: str, params: Any = None) -> Any:
        async with self.session.get(url, params=params) as response:
            if response.status != 200:
                text = await response.text()
                raise GitHubError(
                    f"Failed to {action}: {response.status} {text}",
                    status=response.status,
                )
            return await response.json()

    async def _get_paginated(self, url: str, *, action: str) -> list[Any]:
        """Collect all pages of a list endpoint."""
        items: list[Any] = []
        page = 1

        while True:
            params = {"per_page": str(PAGE_SIZE), "page": str(page)}
            data = await self._get_json(url, action=action, params=params)
            items.extend(data)

            if len(data) < PAGE_SIZE:
                break

            page += 1

        return items
