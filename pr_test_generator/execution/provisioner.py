"""Installation of the packages and browsers generated scripts need."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from pr_test_generator.config import ExecutionSettings

log = logging.getLogger(__name__)


class ProvisionError(Exception):
    """Raised when required tooling could not be installed."""

    def __init__(self, message: str, *, command: Sequence[str] = (), output: str = "") -> None:
        super().__init__(message)
        self.command = tuple(command)
        self.output = output


@dataclass(frozen=True, kw_only=True)
class DependencyProvisioner:
    """Ensures the runtime packages and browser binaries are present.

    Re-running when everything is installed costs one module resolution
    check.
    """

    settings: ExecutionSettings
    cwd: Path | None = None

    async def ensure(self, packages: Sequence[str] | None = None) -> None:
        """Install ``packages`` and browser binaries unless already resolvable.

        Raises:
            ProvisionError: If any install step fails or times out

        """
        if await self.is_resolvable(self.settings.required_module):
            log.info("Module %s already available", self.settings.required_module)
            return

        packages = list(packages if packages is not None else self.settings.packages)
        log.info("Installing packages: %s", ", ".join(packages))
        await self._run_command(
            ["npm", "install", *packages], timeout=self.settings.install_timeout
        )

        await self.install_browsers()
        log.info("Dependencies installed successfully")

    async def is_resolvable(self, module: str) -> bool:
        """Check whether the interpreter can resolve ``module``."""
        try:
            process = await asyncio.create_subprocess_exec(
                self.settings.interpreter,
                "-e",
                f"require.resolve({module!r})",
                cwd=self.cwd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            log.warning("Cannot run %s: %s", self.settings.interpreter, e)
            return False

        await process.communicate()
        return process.returncode == 0

    async def install_browsers(self) -> None:
        """Install Playwright browsers, retrying once with a single engine."""
        log.info("Downloading Playwright browser binaries...")
        try:
            await self._run_command(
                ["npx", "playwright", "install"],
                timeout=self.settings.browser_install_timeout,
            )
        except ProvisionError as e:
            log.warning(
                "Browser install failed (%s), retrying with %s only",
                e,
                self.settings.fallback_browser,
            )
            await self._run_command(
                ["npx", "playwright", "install", self.settings.fallback_browser],
                timeout=self.settings.browser_install_timeout,
            )

    async def _run_command(self, command: Sequence[str], *, timeout: float) -> str:
        """Run an install command and return its stdout."""
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=self.cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ProvisionError(
                f"Cannot run {command[0]}: {e}", command=command
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
        except TimeoutError as e:
            process.kill()
            await process.wait()
            raise ProvisionError(
                f"{' '.join(command)} timed out after {timeout:.0f}s", command=command
            ) from e

        output = stdout.decode(errors="replace")
        if process.returncode != 0:
            error_output = stderr.decode(errors="replace").strip()
            raise ProvisionError(
                f"{' '.join(command)} failed with exit code {process.returncode}: "
                f"{error_output}",
                command=command,
                output=output,
            )

        tail = " ".join(output.strip().splitlines()[-3:])
        log.info("Completed %s %s", " ".join(command), tail)
        return output
