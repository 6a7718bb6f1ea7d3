"""Test factories for generating test data."""

from polyfactory import Use
from polyfactory.factories import DataclassFactory
from polyfactory.factories.pydantic_factory import ModelFactory

from pr_test_generator.models.pull_request import (
    ChangedFile,
    GitRef,
    IssueComment,
    PRContext,
    PullRequest,
    User,
)
from pr_test_generator.models.result import ExecutionOutcome, TestCase


class TestCaseFactory(DataclassFactory[TestCase]):
    """Factory for TestCase."""

    __test__ = False
    __model__ = TestCase

    status = "GENERATED"


class ExecutionOutcomeFactory(DataclassFactory[ExecutionOutcome]):
    """Factory for ExecutionOutcome."""

    __model__ = ExecutionOutcome

    success = True
    stdout = ""
    stderr = ""
    execution_skipped = False
    error = None
    exit_code = 0
    timed_out = False


class UserFactory(ModelFactory[User]):
    """Factory for User."""

    type = "User"


class PullRequestFactory(ModelFactory[PullRequest]):
    """Factory for PullRequest."""


class ChangedFileFactory(ModelFactory[ChangedFile]):
    """Factory for ChangedFile."""

    status = "modified"


class IssueCommentFactory(ModelFactory[IssueComment]):
    """Factory for IssueComment."""


class PRContextFactory(ModelFactory[PRContext]):
    """Factory for PRContext."""

    files = Use(list[ChangedFile])
    comments = Use(list[IssueComment])
    repo_context = Use(dict[str, str])
    preview_urls = Use(list[str])


class GitRefFactory(ModelFactory[GitRef]):
    """Factory for GitRef."""
