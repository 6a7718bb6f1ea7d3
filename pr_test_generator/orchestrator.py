"""Pipeline that takes a pull request from context to a posted report."""

import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from pr_test_generator.analysis.sanitizer import SecretSanitizer
from pr_test_generator.applicability import requires_ui_testing
from pr_test_generator.clients.base import LLMClient, SourceControlClient
from pr_test_generator.config import ActionConfig
from pr_test_generator.execution.executor import TestExecutor
from pr_test_generator.models.pull_request import PRContext
from pr_test_generator.models.result import (
    EnvironmentOverlay,
    ExecutedRun,
    ExecutionRequest,
    FailedRun,
    RunResult,
    SkippedRun,
)
from pr_test_generator.preview import extract_preview_urls, wait_for_preview_urls
from pr_test_generator.prompts import (
    build_code_prompt,
    build_navigation_prompt,
    build_plan_prompt,
    extract_code,
)
from pr_test_generator.reporting import (
    format_error_comment,
    format_generated_comment,
    format_skipped_comment,
    log_test_report,
)
from pr_test_generator.sitemap import resolve_sitemap

log = logging.getLogger(__name__)

CONTEXT_FILES = ("package.json", "README.md")

PLAN_MAX_TOKENS = 2000
NAVIGATION_MAX_TOKENS = 2000
CODE_MAX_TOKENS = 4000
DEFAULT_PREVIEW_URL = "http://localhost:3000"


class Stage(StrEnum):
    """Pipeline stages that can end a run, in order."""

    FETCH_CONTEXT = "fetch_context"
    CHECK_APPLICABILITY = "check_applicability"
    AWAIT_TARGET = "await_target"
    GENERATE = "generate"
    EXECUTE = "execute"


@dataclass(frozen=True, kw_only=True)
class PRTestOrchestrator:
    """Runs the whole pipeline for one pull request.

    Only failures of the action's own control plane (context fetch,
    generation) end in a FailedRun. Anything that goes wrong with the
    generated script is absorbed by the executor, and a comment that cannot
    be posted is only logged. Without an explicit ``sanitizer``, comments are
    redacted against the configured test credentials.
    """

    config: ActionConfig
    source_control: SourceControlClient
    llm: LLMClient
    executor: TestExecutor
    sanitizer: SecretSanitizer | None = None

    async def run(self) -> RunResult:
        """Run every stage and return the outcome."""
        start = time.monotonic()
        stage = Stage.FETCH_CONTEXT
        sanitizer = self.sanitizer or SecretSanitizer(
            sensitive_values=self.config.sensitive_values
        )

        try:
            log.info("Fetching PR context...")
            context = await self.fetch_context()

            stage = Stage.CHECK_APPLICABILITY
            if not await requires_ui_testing(self.llm, context):
                log.info("No UI changes detected, skipping UI tests")
                await self._post_comment(format_skipped_comment())
                return SkippedRun(
                    reason="No UI changes detected",
                    duration=time.monotonic() - start,
                )

            stage = Stage.AWAIT_TARGET
            context = await self.await_target(context)

            stage = Stage.GENERATE
            log.info("Generating tests with Claude...")
            test_code = await self.generate_tests(context)
            log.info("Generated test code:\n%s", test_code)
            test_file_path = self.persist_test_code(test_code)

            stage = Stage.EXECUTE
            report = await self.executor.execute(
                ExecutionRequest(
                    script=test_code,
                    timeout=self.config.timeout,
                    env=self.environment(context),
                )
            )
        except Exception as e:
            log.error("Run failed during %s: %s", stage, e, exc_info=e)
            await self._post_comment(format_error_comment(e, sanitizer))
            return FailedRun(
                error=sanitizer.sanitize(str(e)),
                stage=str(stage),
                duration=time.monotonic() - start,
            )

        log_test_report(log, report)
        if report.execution_skipped:
            log.info("Test generation complete (execution skipped)")
        else:
            log.info("Test generation and execution complete")

        await self._post_comment(
            format_generated_comment(
                report,
                test_code,
                sanitizer,
                str(test_file_path) if test_file_path else None,
            )
        )

        duration = time.monotonic() - start
        log.info("Completed in %.2fs", duration)
        return ExecutedRun(
            test_code=test_code,
            report=report,
            duration=duration,
            test_file_path=str(test_file_path) if test_file_path else None,
        )

    async def fetch_context(self) -> PRContext:
        """Collect the pull request, its files, comments and repo context."""
        pull_request = await self.source_control.get_pull_request()
        files = await self.source_control.list_changed_files()
        comments = await self.source_control.list_comments()

        repo_context: dict[str, str] = {}
        for path in CONTEXT_FILES:
            content = await self.source_control.get_file_content(
                path, pull_request.head.sha
            )
            if content is not None:
                repo_context[path] = content

        log.info(
            "PR #%d %r: %d changed file(s), %d comment(s)",
            pull_request.number,
            pull_request.title,
            len(files),
            len(comments),
        )
        return PRContext(
            pull_request=pull_request,
            files=files,
            comments=comments,
            repo_context=repo_context,
            preview_urls=extract_preview_urls(comments),
        )

    async def await_target(self, context: PRContext) -> PRContext:
        """Pick the URL to test: explicit override, then discovered previews."""
        if self.config.base_url:
            log.info("Using provided base URL: %s", self.config.base_url)
            return context.with_preview_urls([self.config.base_url])

        if context.preview_urls or self.config.wait_for_preview <= 0:
            return context

        log.info("Waiting up to %.0fs for preview URLs...", self.config.wait_for_preview)
        urls = await wait_for_preview_urls(
            self.source_control,
            self.config.wait_for_preview,
            self.config.preview_poll_interval,
        )
        return context.with_preview_urls(urls) if urls else context

    async def generate_tests(self, context: PRContext) -> str:
        """Plan, work out navigation, then write code. Each step feeds the next."""
        log.info("Step 1: analyzing PR changes and creating test plan...")
        test_plan = await self.llm.complete(
            build_plan_prompt(context), PLAN_MAX_TOKENS, "standard"
        )
        log.info("Generated test plan:\n%s", test_plan)

        log.info("Step 2: resolving sitemap and navigation paths...")
        sitemap = await resolve_sitemap(
            self.config.workspace,
            context.target_url,
            provisioner=self.executor.provisioner,
            runner=self.executor.runner,
            env=self.environment(context),
            timeout=self.config.timeout,
        )
        navigation = await self.llm.complete(
            build_navigation_prompt(test_plan, context, sitemap),
            NAVIGATION_MAX_TOKENS,
            "standard",
        )
        log.info("Generated navigation instructions:\n%s", navigation)

        log.info("Step 3: converting test plan to executable code...")
        reply = await self.llm.complete(
            build_code_prompt(
                test_plan,
                navigation,
                context,
                self.config.test_examples,
                has_credentials=bool(self.config.sensitive_values),
            ),
            CODE_MAX_TOKENS,
            "standard",
        )
        return extract_code(reply)

    def environment(self, context: PRContext) -> EnvironmentOverlay:
        """Variables the generated script needs, without touching os.environ."""
        variables = {
            "ANTHROPIC_API_KEY": self.config.anthropic_api_key.get_secret_value(),
            "PREVIEW_URL": context.target_url or DEFAULT_PREVIEW_URL,
        }
        if self.config.test_user_email:
            variables["TEST_USER_EMAIL"] = self.config.test_user_email
        if self.config.test_user_password is not None:
            variables["TEST_USER_PASSWORD"] = (
                self.config.test_user_password.get_secret_value()
            )
        return EnvironmentOverlay(variables=variables)

    def persist_test_code(self, test_code: str) -> Path | None:
        """Write the script to the output directory, one file per PR.

        Saving is optional: a write failure is logged and yields None.
        """
        if self.config.output_dir is None:
            return None

        output_dir = self.config.workspace / self.config.output_dir
        path = output_dir / (
            f"pr-{self.config.pr_number}-test{self.config.execution.script_suffix}"
        )
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(test_code, encoding="utf-8")
        except OSError as e:
            log.warning("Failed to save generated test to %s: %s", path, e)
            return None

        log.info("Saved generated test to %s", path)
        return path

    async def _post_comment(self, body: str) -> None:
        if not self.config.comment_on_pr:
            return

        log.info("Commenting on PR...")
        try:
            await self.source_control.create_comment(body)
        except Exception as e:
            log.error("Failed to post comment: %s", e, exc_info=e)
