"""Run a generated script as a child process with live log streaming."""

import asyncio
import logging
import os
import tempfile
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from pr_test_generator.models.result import EnvironmentOverlay

log = logging.getLogger(__name__)

# Per-line buffer for the child's pipes; discovery output arrives as one JSON line
STREAM_LIMIT = 16 * 1024 * 1024


class RunState(StrEnum):
    """Terminal state of a single script run."""

    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass(frozen=True, kw_only=True)
class RunOutput:
    """Captured output of a script that exited with code 0."""

    stdout: str
    stderr: str
    exit_code: int = 0
    state: RunState = RunState.COMPLETED


class RunError(Exception):
    """Raised when the script could not start or exited unsuccessfully."""

    def __init__(
        self,
        message: str,
        *,
        state: RunState = RunState.FAILED,
        stdout: str = "",
        stderr: str = "",
        exit_code: int | None = None,
        signal: int | None = None,
    ) -> None:
        super().__init__(message)
        self.state = state
        self.stdout = stdout
        self.stderr = stderr
        self.exit_code = exit_code
        self.signal = signal


class RunTimeoutError(RunError):
    """Raised when the script outlived its timeout and was terminated."""


@asynccontextmanager
async def script_file(
    script: str, *, suffix: str, directory: Path | None = None
) -> AsyncGenerator[Path, None]:
    """Write ``script`` to a throwaway file, removed when the context exits."""
    fd, name = tempfile.mkstemp(prefix="pr-test-", suffix=suffix, dir=directory)
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(script)
        yield path
    finally:
        path.unlink(missing_ok=True)


async def _forward_lines(
    stream: asyncio.StreamReader, sink: list[str], level: int, prefix: str
) -> None:
    """Accumulate a stream while logging each non-blank line as it arrives.

    A line longer than the stream limit is dropped and reading continues.
    """
    while True:
        try:
            line = await stream.readline()
        except ValueError as e:
            log.warning("%s line exceeded the buffer limit and was dropped: %s", prefix, e)
            sink.append("[line truncated]\n")
            continue
        if not line:
            break
        text = line.decode(errors="replace")
        sink.append(text)
        if stripped := text.rstrip():
            log.log(level, "%s %s", prefix, stripped)


@dataclass(frozen=True, kw_only=True)
class SubprocessRunner:
    """Executes script text with an interpreter under a wall-clock timeout.

    No retries happen here; the caller decides how to degrade.
    """

    interpreter: str = "node"
    suffix: str = ".js"
    script_dir: Path | None = None
    cwd: Path | None = None
    stream_limit: int = STREAM_LIMIT

    async def run(
        self,
        script: str,
        env: EnvironmentOverlay | Mapping[str, str] | None = None,
        timeout: float = 120,
    ) -> RunOutput:
        """Run ``script`` and return its output.

        Args:
            script: Source text of the program to run
            env: Variables merged over the ambient environment
            timeout: Seconds before the child is terminated

        Returns:
            Captured output when the process exits with code 0

        Raises:
            RunTimeoutError: If the process was still running at the timeout
            RunError: If the process could not start or exited non-zero

        """
        if env is None:
            env = EnvironmentOverlay()
        elif not isinstance(env, EnvironmentOverlay):
            env = EnvironmentOverlay(variables=dict(env))

        async with script_file(
            script, suffix=self.suffix, directory=self.script_dir
        ) as path:
            log.info("Executing: %s %s (timeout %.0fs)", self.interpreter, path, timeout)
            try:
                process = await asyncio.create_subprocess_exec(
                    self.interpreter,
                    str(path),
                    cwd=self.cwd,
                    env=env.merged_with(os.environ),
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    limit=self.stream_limit,
                )
            except OSError as e:
                raise RunError(
                    f"Failed to start {self.interpreter}: {e}", state=RunState.FAILED
                ) from e

            return await self._supervise(process, timeout)

    async def _supervise(
        self, process: asyncio.subprocess.Process, timeout: float
    ) -> RunOutput:
        """Drain both streams until exit or timeout."""
        assert process.stdout is not None
        assert process.stderr is not None

        stdout: list[str] = []
        stderr: list[str] = []
        readers = asyncio.gather(
            _forward_lines(process.stdout, stdout, logging.INFO, "[stdout]"),
            _forward_lines(process.stderr, stderr, logging.ERROR, "[stderr]"),
        )

        try:
            await asyncio.wait_for(process.wait(), timeout)
        except TimeoutError:
            log.warning("Timeout reached after %.0fs, terminating process", timeout)
            process.terminate()
            await process.wait()
            await readers
            raise RunTimeoutError(
                f"Command timed out after {timeout:.0f}s",
                state=RunState.TIMED_OUT,
                stdout="".join(stdout),
                stderr="".join(stderr),
                exit_code=process.returncode,
            ) from None

        await readers
        captured_out, captured_err = "".join(stdout), "".join(stderr)

        returncode = process.returncode
        if returncode != 0:
            raise RunError(
                f"Command failed with exit code {returncode}",
                state=RunState.FAILED,
                stdout=captured_out,
                stderr=captured_err,
                exit_code=returncode,
                signal=-returncode if returncode is not None and returncode < 0 else None,
            )

        return RunOutput(stdout=captured_out, stderr=captured_err)
