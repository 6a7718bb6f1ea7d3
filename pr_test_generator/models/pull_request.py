"""Pydantic models for GitHub pull request API responses."""

from collections.abc import Mapping, Sequence
from typing import Literal, TypeAlias

from pydantic import Field

from pr_test_generator.models.base import Model

FileStatus: TypeAlias = Literal[
    "added",
    "removed",
    "modified",
    "renamed",
    "copied",
    "changed",
    "unchanged",
]


class User(Model):
    """A GitHub user or bot account."""

    login: str
    type: str = "User"


class GitRef(Model):
    """Head or base reference of a pull request."""

    sha: str
    ref: str = ""


class PullRequest(Model):
    """A pull request from the GitHub pulls API."""

    number: int
    title: str
    body: str | None = None
    user: User
    head: GitRef
    base: GitRef

    @property
    def author(self) -> str:
        """Login of the pull request author."""
        return self.user.login


class ChangedFile(Model):
    """A file entry from the pull request files API."""

    filename: str
    status: FileStatus
    additions: int = 0
    deletions: int = 0
    patch: str | None = None


class IssueComment(Model):
    """A comment on the pull request conversation."""

    id: int
    body: str | None = None
    user: User

    @property
    def author_type(self) -> str:
        """Account type of the comment author ("User" or "Bot")."""
        return self.user.type


class PRContext(Model):
    """Everything the generator knows about the pull request under test."""

    pull_request: PullRequest
    files: Sequence[ChangedFile] = Field(default_factory=list)
    comments: Sequence[IssueComment] = Field(default_factory=list)
    repo_context: Mapping[str, str] = Field(
        default_factory=dict, description="Repository files keyed by path"
    )
    preview_urls: Sequence[str] = Field(default_factory=list)

    def with_preview_urls(self, urls: Sequence[str]) -> "PRContext":
        """Return a copy targeting the given preview URLs."""
        return self.model_copy(update={"preview_urls": list(urls)})

    @property
    def target_url(self) -> str | None:
        """First preview URL, if any was found or supplied."""
        return self.preview_urls[0] if self.preview_urls else None
