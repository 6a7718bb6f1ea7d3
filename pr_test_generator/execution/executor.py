"""Provision, run and classify a generated test script."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from pr_test_generator.analysis.classifier import (
    ClassificationStrategy,
    PhraseClassificationStrategy,
)
from pr_test_generator.execution.provisioner import DependencyProvisioner, ProvisionError
from pr_test_generator.execution.runner import (
    RunError,
    RunOutput,
    RunTimeoutError,
    SubprocessRunner,
)
from pr_test_generator.models.result import (
    ExecutionOutcome,
    ExecutionRequest,
    TestCase,
    TestReport,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class TestExecutor:
    """Runs a generated script and turns whatever happens into a report.

    Nothing that goes wrong with the generated script or its tooling is
    raised from here: install and spawn failures produce a skipped report,
    timeouts and non-zero exits are classified from the captured output.
    """

    __test__ = False

    provisioner: DependencyProvisioner
    runner: SubprocessRunner
    strategy: ClassificationStrategy = field(default_factory=PhraseClassificationStrategy)

    async def execute(self, request: ExecutionRequest) -> TestReport:
        """Execute ``request`` and return the classified report."""
        cases = self.strategy.extract_cases(request.script)

        try:
            await self.provisioner.ensure()
        except ProvisionError as e:
            log.warning("Failed to install dependencies: %s", e)
            return self._skipped(
                cases,
                output=(
                    "Test code generated successfully but not executed "
                    "(dependency installation failed)"
                ),
                error=f"Failed to install dependencies: {e}",
            )

        log.info("Running generated tests...")
        try:
            result = await self.runner.run(request.script, request.env, request.timeout)
        except RunTimeoutError as e:
            log.warning("Test execution timed out: %s", e)
            outcome = ExecutionOutcome(
                success=True,
                stdout=e.stdout,
                stderr=e.stderr,
                error=str(e),
                exit_code=e.exit_code,
                timed_out=True,
            )
        except RunError as e:
            if e.exit_code is None:
                log.warning("Test execution could not start: %s", e)
                return self._skipped(
                    cases,
                    output="",
                    error=f"Execution failed (dependencies may be missing): {e}",
                )
            log.error(
                "Command failed: exit_code=%s signal=%s", e.exit_code, e.signal
            )
            outcome = ExecutionOutcome(
                success=True,
                stdout=e.stdout,
                stderr=e.stderr,
                error=str(e),
                exit_code=e.exit_code,
            )
        else:
            outcome = self._completed(result)

        # Classify the raw output; sanitizing happens only when publishing
        verdict = self.strategy.classify(outcome.stdout, outcome.stderr, outcome.exit_code)
        cases, analysis = self.strategy.analyze_output(outcome.stdout, cases, verdict)
        log.info("Execution classified as %s", verdict)

        return TestReport(
            outcome=outcome, verdict=verdict, test_cases=cases, analysis=analysis
        )

    def _completed(self, result: RunOutput) -> ExecutionOutcome:
        if result.stderr:
            log.info("Script wrote to stderr:\n%s", result.stderr)
        return ExecutionOutcome(
            success=True,
            stdout=result.stdout,
            stderr=result.stderr,
            exit_code=result.exit_code,
        )

    def _skipped(
        self, cases: Sequence[TestCase], *, output: str, error: str
    ) -> TestReport:
        cases, analysis = self.strategy.analyze_output("", cases, None)
        return TestReport(
            outcome=ExecutionOutcome(
                success=True,
                stdout=output,
                error=error,
                execution_skipped=True,
            ),
            verdict=None,
            test_cases=cases,
            analysis=analysis,
        )
