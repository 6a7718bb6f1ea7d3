"""Models for test execution results."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Literal, TypeAlias

PassFail: TypeAlias = Literal["PASSED", "FAILED"]

TestCaseStatus: TypeAlias = Literal[
    "GENERATED",
    "READY_TO_RUN",
    "PASSED",
    "FAILED",
    "UNKNOWN",
]


@dataclass(frozen=True, kw_only=True)
class EnvironmentOverlay:
    """Variables layered over the ambient environment for a child process.

    The parent process environment is never modified; the overlay is merged
    into a fresh mapping at spawn time.
    """

    variables: Mapping[str, str] = field(default_factory=dict)

    def merged_with(self, base: Mapping[str, str]) -> dict[str, str]:
        """Return ``base`` with the overlay applied on top."""
        return {**base, **self.variables}


@dataclass(frozen=True, kw_only=True)
class ExecutionRequest:
    """A generated script and the conditions to run it under."""

    script: str
    timeout: float
    env: EnvironmentOverlay = field(default_factory=EnvironmentOverlay)


@dataclass(frozen=True, kw_only=True)
class ExecutionOutcome:
    """Result of running an ExecutionRequest.

    ``success`` reports whether the action handled the run, not whether the
    generated tests passed; see TestReport.verdict for that.
    """

    success: bool
    stdout: str = ""
    stderr: str = ""
    execution_skipped: bool = False
    error: str | None = None
    exit_code: int | None = None
    timed_out: bool = False


@dataclass(frozen=True, kw_only=True)
class TestCase:
    """A best-effort record of one inferred test scenario."""

    __test__ = False

    name: str
    status: TestCaseStatus = "GENERATED"
    line_number: int = 0

    def with_status(self, status: TestCaseStatus) -> "TestCase":
        """Return a copy with a new status."""
        return replace(self, status=status)


@dataclass(frozen=True, kw_only=True)
class OutputAnalysis:
    """Narrative signals recovered from the script's output."""

    actions_started: int = 0
    actions_completed: int = 0
    failure_markers: int = 0


@dataclass(frozen=True, kw_only=True)
class TestReport:
    """Execution outcome with its classification."""

    __test__ = False

    outcome: ExecutionOutcome
    verdict: PassFail | None
    test_cases: Sequence[TestCase]
    analysis: OutputAnalysis = field(default_factory=OutputAnalysis)

    @property
    def success(self) -> bool:
        return self.outcome.success

    @property
    def execution_skipped(self) -> bool:
        return self.outcome.execution_skipped

    @property
    def passed(self) -> bool:
        """True unless the tests ran and were classified as failed."""
        return self.verdict != "FAILED"


@dataclass(frozen=True, kw_only=True)
class SkippedRun:
    """The pull request does not need UI tests."""

    reason: str
    duration: float


@dataclass(frozen=True, kw_only=True)
class ExecutedRun:
    """Tests were generated; the report says whether they also ran."""

    test_code: str
    report: TestReport
    duration: float
    test_file_path: str | None = None


@dataclass(frozen=True, kw_only=True)
class FailedRun:
    """The action's own control plane failed."""

    error: str
    stage: str
    duration: float


RunResult: TypeAlias = SkippedRun | ExecutedRun | FailedRun
