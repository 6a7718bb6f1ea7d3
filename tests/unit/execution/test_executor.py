"""Tests for the test executor."""

import sys
from pathlib import Path
from unittest.mock import Mock

import pytest

from pr_test_generator.execution.executor import TestExecutor
from pr_test_generator.execution.provisioner import DependencyProvisioner, ProvisionError
from pr_test_generator.execution.runner import SubprocessRunner
from pr_test_generator.models.result import EnvironmentOverlay, ExecutionRequest

SCRIPT_HEADER = "# Test 1: Pricing page shows all plans\n# Test 2: Signup button opens form\n"


@pytest.fixture
def provisioner_mock() -> Mock:
    """Create mock provisioner that succeeds."""
    return Mock(spec=DependencyProvisioner)


@pytest.fixture
def executor(provisioner_mock: Mock, tmp_path: Path) -> TestExecutor:
    """Create executor running Python scripts."""
    return TestExecutor(
        provisioner=provisioner_mock,
        runner=SubprocessRunner(
            interpreter=sys.executable, suffix=".py", script_dir=tmp_path
        ),
    )


async def test_passing_script(executor: TestExecutor) -> None:
    """A script reporting success passes every case."""
    request = ExecutionRequest(
        script=SCRIPT_HEADER + "print('All tests completed successfully')\n",
        timeout=30,
    )

    report = await executor.execute(request)

    assert report.success is True
    assert report.execution_skipped is False
    assert report.verdict == "PASSED"
    assert report.passed is True
    assert report.outcome.exit_code == 0
    assert [case.name for case in report.test_cases] == [
        "Pricing page shows all plans",
        "Signup button opens form",
    ]
    assert all(case.status == "PASSED" for case in report.test_cases)


async def test_failing_script_is_handled(executor: TestExecutor) -> None:
    """A failing script still yields a successful run with a FAILED verdict."""
    request = ExecutionRequest(
        script=(
            SCRIPT_HEADER
            + "import sys\nprint('Test suite failed: no button')\nsys.exit(1)\n"
        ),
        timeout=30,
    )

    report = await executor.execute(request)

    assert report.success is True
    assert report.verdict == "FAILED"
    assert report.passed is False
    assert report.outcome.exit_code == 1
    assert "no button" in report.outcome.stdout
    assert report.outcome.error is not None


async def test_success_phrase_wins_over_exit_code(executor: TestExecutor) -> None:
    """Narrated success passes even when teardown crashes."""
    request = ExecutionRequest(
        script="print('All tests completed successfully')\nraise SystemExit(2)\n",
        timeout=30,
    )

    report = await executor.execute(request)

    assert report.verdict == "PASSED"
    assert report.outcome.exit_code == 2


async def test_skips_execution_when_install_fails(
    executor: TestExecutor, provisioner_mock: Mock, tmp_path: Path
) -> None:
    """Install failure returns generated cases marked ready to run."""
    provisioner_mock.ensure.side_effect = ProvisionError("npm install failed")
    request = ExecutionRequest(script=SCRIPT_HEADER + "print('never')\n", timeout=30)

    report = await executor.execute(request)

    assert report.success is True
    assert report.execution_skipped is True
    assert report.verdict is None
    assert report.passed is True
    assert report.outcome.error == "Failed to install dependencies: npm install failed"
    assert [case.status for case in report.test_cases] == ["READY_TO_RUN", "READY_TO_RUN"]
    assert list(tmp_path.iterdir()) == []


async def test_timeout_is_classified_from_output(executor: TestExecutor) -> None:
    """A timed out script is classified with what it printed."""
    request = ExecutionRequest(
        script="import time\nprint('opened page', flush=True)\ntime.sleep(30)\n",
        timeout=1,
    )

    report = await executor.execute(request)

    assert report.success is True
    assert report.outcome.timed_out is True
    assert report.verdict == "FAILED"
    assert "opened page" in report.outcome.stdout


async def test_spawn_failure_is_skipped(provisioner_mock: Mock, tmp_path: Path) -> None:
    """A missing interpreter degrades to a skipped execution."""
    executor = TestExecutor(
        provisioner=provisioner_mock,
        runner=SubprocessRunner(
            interpreter=str(tmp_path / "missing-node"), script_dir=tmp_path
        ),
    )

    report = await executor.execute(ExecutionRequest(script="x", timeout=5))

    assert report.execution_skipped is True
    assert report.verdict is None
    assert report.outcome.error is not None
    assert report.outcome.error.startswith("Execution failed")


async def test_passes_environment_to_script(executor: TestExecutor) -> None:
    """The request overlay reaches the generated script."""
    request = ExecutionRequest(
        script="import os\nprint('tests passed for', os.environ['PREVIEW_URL'])\n",
        timeout=30,
        env=EnvironmentOverlay(variables={"PREVIEW_URL": "https://pr-1.netlify.app"}),
    )

    report = await executor.execute(request)

    assert "https://pr-1.netlify.app" in report.outcome.stdout
    assert report.verdict == "PASSED"


async def test_long_output_line_is_classified(executor: TestExecutor) -> None:
    """A single line over 64 KiB does not escape as an error."""
    request = ExecutionRequest(
        script="print('x' * 70000)\nprint('All tests completed successfully')\n",
        timeout=30,
    )

    report = await executor.execute(request)

    assert report.success is True
    assert report.verdict == "PASSED"
    assert len(report.outcome.stdout) > 70000
