"""Log summaries and pull request comments for a run."""

import logging
from collections.abc import Mapping, Sequence

from pr_test_generator.analysis.sanitizer import SecretSanitizer
from pr_test_generator.clients.base import LLMError, SourceControlError
from pr_test_generator.models.result import TestCase, TestCaseStatus, TestReport

COMMENT_MARKER = "<!-- pr-test-generator -->"
MAX_OUTPUT_CHARS = 3000

STATUS_SYMBOLS: Mapping[TestCaseStatus, str] = {
    "PASSED": "✅",
    "FAILED": "❌",
    "READY_TO_RUN": "🚀",
    "GENERATED": "📝",
    "UNKNOWN": "❔",
}


def overall_status(report: TestReport) -> str:
    """One-line headline for the report."""
    if report.execution_skipped:
        return "TESTS GENERATED"
    if report.outcome.timed_out:
        return "TESTS TIMED OUT"
    if report.verdict == "FAILED":
        return "TESTS FAILED"
    return "TESTS PASSED"


def summarize(report: TestReport) -> dict[str, int | bool | str | None]:
    """Counts per case status plus the verdict."""
    counts = {status: 0 for status in STATUS_SYMBOLS}
    for case in report.test_cases:
        counts[case.status] += 1

    return {
        "total": len(report.test_cases),
        "passed": counts["PASSED"],
        "failed": counts["FAILED"],
        "ready_to_run": counts["READY_TO_RUN"],
        "generated": counts["GENERATED"],
        "unknown": counts["UNKNOWN"],
        "verdict": report.verdict,
        "execution_skipped": report.execution_skipped,
    }


def log_test_report(log: logging.Logger, report: TestReport) -> None:
    """Log a formatted summary of the execution."""
    log.info("=" * 60)
    log.info("Test Execution Report: %s", overall_status(report))
    log.info("=" * 60)

    if report.execution_skipped:
        log.info("Tests generated and ready to run (execution skipped)")

    log.info("Total test cases: %d", len(report.test_cases))
    for index, case in enumerate(report.test_cases, start=1):
        log.info(
            "%s %d. %s [%s]", STATUS_SYMBOLS[case.status], index, case.name, case.status
        )

    analysis = report.analysis
    log.info(
        "Narrated actions: %d started, %d completed; failure markers: %d",
        analysis.actions_started,
        analysis.actions_completed,
        analysis.failure_markers,
    )
    if report.outcome.error:
        log.info("Details: %s", report.outcome.error)


def format_test_cases(test_cases: Sequence[TestCase]) -> str:
    """Markdown list of cases with status icons."""
    return "\n".join(
        f"{STATUS_SYMBOLS[case.status]} **{index}.** {case.name}"
        for index, case in enumerate(test_cases, start=1)
    )


def _truncate_tail(text: str, limit: int = MAX_OUTPUT_CHARS) -> str:
    if len(text) <= limit:
        return text
    return "...(truncated)\n" + text[-limit:]


def _details(summary: str, body: str, language: str = "") -> str:
    return (
        f"<details>\n<summary>{summary}</summary>\n\n"
        f"```{language}\n{body.rstrip()}\n```\n\n</details>"
    )


def format_generated_comment(
    report: TestReport,
    test_code: str,
    sanitizer: SecretSanitizer,
    test_file_path: str | None = None,
) -> str:
    """Comment body for a run that generated (and possibly executed) tests.

    Every piece of captured text goes through ``sanitizer``.
    """
    summary = summarize(report)
    analysis = report.analysis
    lines = [
        COMMENT_MARKER,
        f"## 🤖 Generated UI Tests: {overall_status(report)}",
        "",
        format_test_cases(report.test_cases),
        "",
    ]

    if report.execution_skipped:
        lines.append(
            "> Tests were generated but not executed. "
            "They are ready to run once the browser tooling is available."
        )
    else:
        lines += [
            "### Analysis",
            f"- Verdict: **{report.verdict}**",
            f"- Cases: {summary['passed']} passed, {summary['failed']} failed, "
            f"{summary['unknown']} unknown",
            f"- Narrated actions completed: {analysis.actions_completed}"
            f"/{analysis.actions_started}",
            f"- Failure markers in output: {analysis.failure_markers}",
        ]
        if report.outcome.timed_out:
            lines.append("- ⏱️ Execution hit the timeout and was terminated")

    if report.outcome.error:
        lines += ["", f"**Details:** {sanitizer.sanitize(report.outcome.error)}"]

    if test_file_path:
        lines += ["", f"Test file: `{test_file_path}`"]

    lines += ["", _details("Generated test code", sanitizer.sanitize(test_code), "javascript")]

    if report.outcome.stdout.strip() and not report.execution_skipped:
        output = _truncate_tail(sanitizer.sanitize(report.outcome.stdout))
        lines += ["", _details("Test output", output)]
    if report.outcome.stderr.strip():
        errors = _truncate_tail(sanitizer.sanitize(report.outcome.stderr))
        lines += ["", _details("Errors", errors)]

    return "\n".join(lines) + "\n"


def format_skipped_comment() -> str:
    """Comment body when the change does not need UI tests."""
    return (
        f"{COMMENT_MARKER}\n"
        "## 🤖 Generated UI Tests: SKIPPED\n\n"
        "No user-facing changes were detected in this pull request, "
        "so no UI tests were generated.\n"
    )


def _likely_causes(error: BaseException) -> tuple[str, Sequence[str]]:
    if isinstance(error, LLMError):
        return "LLM request failed", (
            "The Claude API key is missing, invalid or out of credit",
            "The Claude API is unavailable or rate limited",
            "The model returned an unexpected response",
        )
    if isinstance(error, SourceControlError):
        return "GitHub API request failed", (
            "The GitHub token lacks `pull-requests: write` or `contents: read`",
            "The pull request or repository could not be found",
            "The GitHub API is unavailable or rate limited",
        )
    return "Unexpected error", ("An internal error occurred; see the workflow logs",)


def format_error_comment(error: BaseException, sanitizer: SecretSanitizer) -> str:
    """Comment body describing a control-plane failure."""
    failure_class, causes = _likely_causes(error)
    cause_lines = "\n".join(f"- {cause}" for cause in causes)
    return (
        f"{COMMENT_MARKER}\n"
        f"## 🤖 Generated UI Tests: ERROR\n\n"
        f"**{failure_class}:** {sanitizer.sanitize(str(error))}\n\n"
        f"### Likely causes\n{cause_lines}\n"
    )
