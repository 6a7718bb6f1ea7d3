"""Tests for sitemap loading and route discovery."""

import json
from pathlib import Path
from unittest.mock import Mock

import pytest

from pr_test_generator.execution.provisioner import DependencyProvisioner, ProvisionError
from pr_test_generator.execution.runner import RunError, RunOutput, SubprocessRunner
from pr_test_generator.models.result import EnvironmentOverlay
from pr_test_generator.sitemap import (
    ROUTE_DISCOVERY_SCRIPT,
    SITEMAP_MARKER,
    Sitemap,
    load_sitemap,
    parse_discovery_output,
    resolve_sitemap,
)

ROUTES = {
    "routeMap": {
        "https://app.vercel.app/pricing": {
            "url": "https://app.vercel.app/pricing",
            "navigationItem": "Pricing",
            "description": "Plans and prices",
            "availableActions": ["Choose plan"],
            "level": "main",
        }
    }
}


@pytest.fixture
def provisioner_mock() -> Mock:
    """Create mock provisioner."""
    return Mock(spec=DependencyProvisioner)


@pytest.fixture
def runner_mock() -> Mock:
    """Create mock runner."""
    return Mock(spec=SubprocessRunner)


def test_load_sitemap_reads_camel_case(tmp_path: Path) -> None:
    """A user sitemap.json is parsed with its camelCase keys."""
    path = tmp_path / "sitemap.json"
    path.write_text(json.dumps(ROUTES))

    sitemap = load_sitemap(path)

    assert sitemap is not None
    entry = sitemap.route_map["https://app.vercel.app/pricing"]
    assert entry.navigation_item == "Pricing"
    assert entry.available_actions == ["Choose plan"]


def test_load_sitemap_missing_file(tmp_path: Path) -> None:
    """A missing file yields None."""
    assert load_sitemap(tmp_path / "sitemap.json") is None


def test_load_sitemap_invalid_file(tmp_path: Path) -> None:
    """An unparseable file yields None."""
    path = tmp_path / "sitemap.json"
    path.write_text("{not json")

    assert load_sitemap(path) is None


def test_prompt_json_uses_aliases() -> None:
    """Prompt serialization keeps the camelCase keys."""
    sitemap = Sitemap.model_validate(ROUTES)

    assert '"navigationItem": "Pricing"' in sitemap.to_prompt_json()


def test_parse_discovery_output_finds_marker_line() -> None:
    """The marker line is parsed even among narration."""
    stdout = f"◆ [act] Start from homepage\n{SITEMAP_MARKER}{json.dumps(ROUTES)}\n"

    sitemap = parse_discovery_output(stdout)

    assert sitemap is not None
    assert list(sitemap.route_map) == ["https://app.vercel.app/pricing"]


def test_parse_discovery_output_without_marker() -> None:
    """Output without the marker yields None."""
    assert parse_discovery_output("Route discovery failed") is None


def test_discovery_script_prints_marker() -> None:
    """The discovery script emits the line the parser looks for."""
    assert SITEMAP_MARKER in ROUTE_DISCOVERY_SCRIPT


class TestResolveSitemap:
    """Tests for resolve_sitemap."""

    async def test_prefers_workspace_file(
        self, tmp_path: Path, provisioner_mock: Mock, runner_mock: Mock
    ) -> None:
        """sitemap.json in the workspace skips discovery."""
        (tmp_path / "sitemap.json").write_text(json.dumps(ROUTES))

        sitemap = await resolve_sitemap(
            tmp_path,
            "https://app.vercel.app",
            provisioner=provisioner_mock,
            runner=runner_mock,
            env=EnvironmentOverlay(),
            timeout=30,
        )

        assert sitemap is not None
        runner_mock.run.assert_not_called()

    async def test_skips_discovery_without_url(
        self, tmp_path: Path, provisioner_mock: Mock, runner_mock: Mock
    ) -> None:
        """No URL means no discovery."""
        sitemap = await resolve_sitemap(
            tmp_path,
            None,
            provisioner=provisioner_mock,
            runner=runner_mock,
            env=EnvironmentOverlay(),
            timeout=30,
        )

        assert sitemap is None
        runner_mock.run.assert_not_called()

    async def test_discovers_routes_against_url(
        self, tmp_path: Path, provisioner_mock: Mock, runner_mock: Mock
    ) -> None:
        """Discovery runs against the URL with the caller's environment."""
        runner_mock.run.return_value = RunOutput(
            stdout=f"{SITEMAP_MARKER}{json.dumps(ROUTES)}\n", stderr=""
        )

        sitemap = await resolve_sitemap(
            tmp_path,
            "https://app.vercel.app",
            provisioner=provisioner_mock,
            runner=runner_mock,
            env=EnvironmentOverlay(variables={"ANTHROPIC_API_KEY": "k"}),
            timeout=30,
        )

        assert sitemap is not None
        provisioner_mock.ensure.assert_called_once()
        script, overlay, timeout = runner_mock.run.call_args.args
        assert script == ROUTE_DISCOVERY_SCRIPT
        assert overlay.variables == {
            "ANTHROPIC_API_KEY": "k",
            "PREVIEW_URL": "https://app.vercel.app",
        }
        assert timeout == 30

    @pytest.mark.parametrize(
        "error", [ProvisionError("npm missing"), RunError("exit 1", exit_code=1)]
    )
    async def test_discovery_failure_is_not_fatal(
        self,
        tmp_path: Path,
        provisioner_mock: Mock,
        runner_mock: Mock,
        error: Exception,
    ) -> None:
        """Install or run failures yield None instead of raising."""
        if isinstance(error, ProvisionError):
            provisioner_mock.ensure.side_effect = error
        else:
            runner_mock.run.side_effect = error

        sitemap = await resolve_sitemap(
            tmp_path,
            "https://app.vercel.app",
            provisioner=provisioner_mock,
            runner=runner_mock,
            env=EnvironmentOverlay(),
            timeout=30,
        )

        assert sitemap is None
