"""Decide whether a pull request warrants UI testing."""

import logging
import re
from collections.abc import Sequence

from pr_test_generator.clients.base import LLMClient, LLMError
from pr_test_generator.models.pull_request import ChangedFile, PRContext
from pr_test_generator.prompts import build_ui_analysis_prompt

log = logging.getLogger(__name__)

UI_FILE_PATTERNS: Sequence[re.Pattern[str]] = tuple(
    re.compile(pattern)
    for pattern in (
        r"\.(jsx?|tsx?)$",
        r"\.(vue|svelte)$",
        r"\.(css|scss|sass|less|styl|stylus)$",
        r"\.(html?|ejs|hbs|pug|jade)$",
        r"(^|/)components?/",
        r"(^|/)pages?/",
        r"(^|/)app/",
        r"(^|/)src/",
        r"(^|/)views?/",
        r"(^|/)layouts?/",
        r"(^|/)templates?/",
        r"(^|/)styles?/",
        r"(^|/)(css|sass|scss)/",
        r"(^|/)assets?/",
        r"(^|/)public/",
        r"(^|/)static/",
        r"tailwind\.config\.",
        r"next\.config\.",
        r"nuxt\.config\.",
        r"vite\.config\.",
        r"webpack\.config\.",
        r"(^|/)package\.json$",
    )
)

# Narrower set used to overrule a "NO" from the model
OBVIOUS_UI_PATTERNS: Sequence[re.Pattern[str]] = tuple(
    re.compile(pattern)
    for pattern in (
        r"component",
        r"(^|/)pages/",
        r"(^|/)app/",
        r"(^|/)src/",
        r"\.(jsx|tsx|css|scss)$",
    )
)


def ui_files(
    files: Sequence[ChangedFile], patterns: Sequence[re.Pattern[str]] = UI_FILE_PATTERNS
) -> Sequence[str]:
    """Return the changed paths matching any of ``patterns``."""
    return [
        file.filename
        for file in files
        if any(pattern.search(file.filename) for pattern in patterns)
    ]


def fallback_ui_detection(files: Sequence[ChangedFile]) -> bool:
    """Deterministic allow-list check on changed file paths."""
    log.info("Using fallback UI detection")
    if matching := ui_files(files):
        log.info("UI files detected: %s", ", ".join(matching))
        return True

    log.info("No UI files detected")
    return False


async def requires_ui_testing(llm: LLMClient, context: PRContext) -> bool:
    """Ask the model whether the change affects users, with a path fallback.

    An unreachable model or an answer other than YES/NO never blocks the
    run; the path allow-list decides instead.
    """
    log.info(
        "Analyzing changed files: %s",
        ", ".join(file.filename for file in context.files),
    )

    try:
        reply = await llm.complete(build_ui_analysis_prompt(context), 10, "fast")
    except LLMError as e:
        log.warning("UI analysis request failed: %s", e)
        return fallback_ui_detection(context.files)

    answer = reply.strip().upper().rstrip(".")
    log.info("UI analysis result: %s", answer)

    if answer == "YES":
        return True

    if answer == "NO":
        if obvious := ui_files(context.files, OBVIOUS_UI_PATTERNS):
            log.warning(
                "Model said NO but UI files changed, running UI tests: %s",
                ", ".join(obvious),
            )
            return True
        return False

    log.warning("Unexpected UI analysis answer: %r", reply)
    return fallback_ui_detection(context.files)
