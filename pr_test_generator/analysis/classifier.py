"""Heuristic classification of generated test scripts and their output.

Generated scripts narrate their own progress in free text rather than
emitting a structured report, so everything here works on phrases and
markers. The verdict from ``classify`` is the machine answer; the test
cases and ``OutputAnalysis`` exist to help a reviewer triage a run.
"""

import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from pr_test_generator.models.result import (
    OutputAnalysis,
    PassFail,
    TestCase,
    TestCaseStatus,
)

FAILURE_PHRASES: Sequence[str] = (
    "test suite failed",
    "all tests failed",
    "failed",
    "error: test",
)

SUCCESS_PHRASES: Sequence[str] = (
    "all tests completed successfully",
    "tests passed",
    "success",
    "test completed",
)

FALLBACK_CASE_NAME = "Generated test execution"

NUMBERED_COMMENT = re.compile(
    r"^\s*(?://+|#+)\s*(?:test\s+\d+\s*:|\d+\.)\s*(?P<description>.+?)\s*$",
    re.IGNORECASE | re.MULTILINE,
)
BLOCK_COMMENT = re.compile(r"/\*(?P<body>.*?)\*/", re.DOTALL)
MIN_COMMENT_DESCRIPTION = 5
MIN_BLOCK_COMMENT = 20
MAX_CASE_NAME = 100

# Structural markers of an automation call, in the order scenarios are numbered
STRUCTURAL_MARKERS: Sequence[re.Pattern[str]] = (
    re.compile(r"agent\.nav\(|agent\.act\(\s*['\"`]\s*(?:navigate|go to|open)", re.I),
    re.compile(r"agent\.act\(\s*['\"`]\s*(?:click|press|tap)", re.I),
    re.compile(r"agent\.(?:check|extract)\(|\bverify", re.I),
)

ACTION_MARKER = re.compile(r"◆\s*\[act\]\s*(?P<description>.*)")
DONE_MARKER = re.compile(r"(?:✓|✔)\s*(?:\[\w+\]\s*)?done\b|^\s*done\b", re.I)
FAILURE_MARKERS: Sequence[str] = ("✗", "FAILED", "ERROR")


def classify(stdout: str, stderr: str, exit_code: int | None) -> PassFail:
    """Decide pass/fail from narrated output, falling back to the exit code.

    Failure phrases are checked before success phrases, and both before the
    exit code: a script that logged success and then crashed on teardown
    still passes, and one that exits 0 after logging a failure does not.
    """
    combined = f"{stdout}\n{stderr}".lower()

    if any(phrase in combined for phrase in FAILURE_PHRASES):
        return "FAILED"

    if any(phrase in combined for phrase in SUCCESS_PHRASES):
        return "PASSED"

    return "PASSED" if exit_code == 0 else "FAILED"


class ClassificationStrategy(ABC):
    """Turns a script and its captured output into a verdict and test cases."""

    @abstractmethod
    def classify(self, stdout: str, stderr: str, exit_code: int | None) -> PassFail:
        """Return the verdict for one execution."""

    @abstractmethod
    def extract_cases(self, script: str) -> Sequence[TestCase]:
        """Recover test cases from the generated script."""

    @abstractmethod
    def analyze_output(
        self,
        stdout: str,
        cases: Sequence[TestCase],
        verdict: PassFail | None,
    ) -> tuple[Sequence[TestCase], OutputAnalysis]:
        """Update case statuses from output and summarize narration."""


@dataclass(frozen=True, kw_only=True)
class PhraseClassificationStrategy(ClassificationStrategy):
    """Default strategy built on fixed phrases and narration markers."""

    def classify(self, stdout: str, stderr: str, exit_code: int | None) -> PassFail:
        return classify(stdout, stderr, exit_code)

    def extract_cases(self, script: str) -> Sequence[TestCase]:
        return extract_cases(script)

    def analyze_output(
        self,
        stdout: str,
        cases: Sequence[TestCase],
        verdict: PassFail | None,
    ) -> tuple[Sequence[TestCase], OutputAnalysis]:
        return analyze_output(stdout, cases, verdict)


def extract_cases(script: str) -> Sequence[TestCase]:
    """Recover test cases from the script, stopping at the first rule that works.

    Rules in order: numbered single-line comments, block comments,
    structural automation markers, and finally one synthetic case.
    """
    for rule in (_cases_from_line_comments, _cases_from_block_comments, _cases_from_markers):
        if cases := rule(script):
            return cases

    return [TestCase(name=FALLBACK_CASE_NAME, status="GENERATED", line_number=0)]


def _line_number(script: str, offset: int) -> int:
    return script.count("\n", 0, offset) + 1


def _cases_from_line_comments(script: str) -> list[TestCase]:
    cases: list[TestCase] = []
    for match in NUMBERED_COMMENT.finditer(script):
        description = match.group("description").strip()
        if len(description) > MIN_COMMENT_DESCRIPTION:
            cases.append(
                TestCase(
                    name=description,
                    status="GENERATED",
                    line_number=_line_number(script, match.start("description")),
                )
            )
    return cases


def _cases_from_block_comments(script: str) -> list[TestCase]:
    cases: list[TestCase] = []
    for match in BLOCK_COMMENT.finditer(script):
        lines = (line.strip().lstrip("*").strip() for line in match.group("body").splitlines())
        text = " ".join(line for line in lines if line)
        if len(text) <= MIN_BLOCK_COMMENT or "TODO" in text:
            continue
        if len(text) > MAX_CASE_NAME:
            text = f"{text[:MAX_CASE_NAME]}..."
        cases.append(
            TestCase(
                name=text,
                status="GENERATED",
                line_number=_line_number(script, match.start()),
            )
        )
    return cases


def _cases_from_markers(script: str) -> list[TestCase]:
    cases: list[TestCase] = []
    for pattern in STRUCTURAL_MARKERS:
        if match := pattern.search(script):
            cases.append(
                TestCase(
                    name=f"Test Scenario {len(cases) + 1}",
                    status="GENERATED",
                    line_number=_line_number(script, match.start()),
                )
            )
    return cases


def analyze_output(
    stdout: str,
    cases: Sequence[TestCase],
    verdict: PassFail | None,
) -> tuple[Sequence[TestCase], OutputAnalysis]:
    """Update case statuses from narration and tally failure markers.

    The i-th case is paired with the i-th narrated action. A case whose
    action reached a done marker passed, one whose action started but never
    finished failed. Cases without a narrated action follow the verdict,
    and when there is no verdict (the script never ran) every case is
    ready to run.
    """
    completed: list[bool] = []
    failure_markers = 0

    for line in stdout.splitlines():
        if any(marker in line for marker in FAILURE_MARKERS):
            failure_markers += 1
        if ACTION_MARKER.search(line):
            completed.append(False)
        elif completed and DONE_MARKER.search(line):
            completed[-1] = True

    analysis = OutputAnalysis(
        actions_started=len(completed),
        actions_completed=sum(completed),
        failure_markers=failure_markers,
    )

    if verdict is None:
        return [case.with_status("READY_TO_RUN") for case in cases], analysis

    fallback: TestCaseStatus = "PASSED" if verdict == "PASSED" else "UNKNOWN"
    updated: list[TestCase] = []
    for index, case in enumerate(cases):
        if index < len(completed):
            updated.append(case.with_status("PASSED" if completed[index] else "FAILED"))
        else:
            updated.append(case.with_status(fallback))
    return updated, analysis
