"""Sitemap loading and browser-driven route discovery.

A sitemap tells the code-generation step which pages exist and how to reach
them. A ``sitemap.json`` in the workspace wins; otherwise a small discovery
script walks the top-level navigation of the preview deployment.
"""

import json
import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pr_test_generator.execution.provisioner import DependencyProvisioner, ProvisionError
from pr_test_generator.execution.runner import RunError, SubprocessRunner
from pr_test_generator.models.result import EnvironmentOverlay

log = logging.getLogger(__name__)

SITEMAP_FILENAME = "sitemap.json"
SITEMAP_MARKER = "SITEMAP_JSON:"


class RouteEntry(BaseModel):
    """One discovered page."""

    url: str
    navigation_item: str = Field(default="", alias="navigationItem")
    parent_navigation: str | None = Field(default=None, alias="parentNavigation")
    description: str = ""
    available_actions: Sequence[str] = Field(
        default_factory=list, alias="availableActions"
    )
    level: Literal["main", "submenu"] = "main"

    model_config = ConfigDict(populate_by_name=True)


class Sitemap(BaseModel):
    """Pages of the application under test keyed by URL."""

    route_map: Mapping[str, RouteEntry] = Field(default_factory=dict, alias="routeMap")

    model_config = ConfigDict(populate_by_name=True)

    def to_prompt_json(self) -> str:
        """Serialize for inclusion in a prompt."""
        return json.dumps(self.model_dump(by_alias=True), indent=2)


ROUTE_DISCOVERY_SCRIPT = r"""
const { startBrowserAgent } = require('magnitude-core');
const { z } = require('zod');

async function discoverRoutes(url) {
  const agent = await startBrowserAgent({
    url,
    narrate: true,
    llm: {
      provider: 'anthropic',
      options: { model: 'claude-sonnet-4-20250514', apiKey: process.env.ANTHROPIC_API_KEY },
    },
    browser: {
      launchOptions: { headless: true },
      contextOptions: { viewport: { width: 1280, height: 720 } },
    },
  });

  const routeMap = {};
  try {
    await agent.act('Start from homepage');
    if (process.env.TEST_USER_EMAIL && process.env.TEST_USER_PASSWORD) {
      await agent.act('Login with credentials', {
        data: { email: process.env.TEST_USER_EMAIL, password: process.env.TEST_USER_PASSWORD },
      });
    }

    const navItems = await agent.extract(
      'List the main top-level navigation menu items that lead to different pages',
      z.array(z.string())
    );

    for (const item of navItems) {
      try {
        await agent.act(`Click on ${item}`);
        const pageUrl = await agent.extract('Get current URL', z.string());
        const description = await agent.extract(
          'Describe what this page contains and its main functionality',
          z.string()
        );
        const availableActions = await agent.extract(
          'List the main actions or features available on this page',
          z.array(z.string())
        );
        routeMap[pageUrl] = {
          navigationItem: item, url: pageUrl, description, availableActions, level: 'main',
        };
        await agent.act('Go back to the main page with navigation');
      } catch (error) {
        console.error(`Error exploring ${item}: ${error.message}`);
      }
    }
  } finally {
    await agent.stop();
  }
  return { routeMap };
}

discoverRoutes(process.env.PREVIEW_URL)
  .then((sitemap) => console.log('SITEMAP_JSON:' + JSON.stringify(sitemap)))
  .catch((error) => {
    console.error('Route discovery failed:', error);
    process.exit(1);
  });
"""


def load_sitemap(path: Path) -> Sitemap | None:
    """Load a user-provided sitemap, or None if missing or unreadable."""
    if not path.is_file():
        return None

    try:
        sitemap = Sitemap.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as e:
        log.warning("Error reading %s: %s", path, e)
        return None

    log.info("Loaded user-provided sitemap with %d page(s)", len(sitemap.route_map))
    return sitemap


def parse_discovery_output(stdout: str) -> Sitemap | None:
    """Find the sitemap line printed by the discovery script."""
    for line in reversed(stdout.splitlines()):
        if line.startswith(SITEMAP_MARKER):
            try:
                return Sitemap.model_validate_json(line[len(SITEMAP_MARKER) :])
            except ValidationError as e:
                log.warning("Discovery printed an invalid sitemap: %s", e)
                return None
    return None


async def discover_routes(
    url: str,
    *,
    provisioner: DependencyProvisioner,
    runner: SubprocessRunner,
    env: EnvironmentOverlay,
    timeout: float,
) -> Sitemap | None:
    """Walk the deployment's navigation with the browser agent.

    Discovery is advisory: any failure is logged and yields None.
    """
    overlay = EnvironmentOverlay(variables={**env.variables, "PREVIEW_URL": url})
    try:
        await provisioner.ensure()
        output = await runner.run(ROUTE_DISCOVERY_SCRIPT, overlay, timeout)
    except (ProvisionError, RunError) as e:
        log.warning("Route discovery failed: %s", e)
        return None

    return parse_discovery_output(output.stdout)


async def resolve_sitemap(
    workspace: Path,
    url: str | None,
    *,
    provisioner: DependencyProvisioner,
    runner: SubprocessRunner,
    env: EnvironmentOverlay,
    timeout: float,
) -> Sitemap | None:
    """Prefer ``sitemap.json`` in the workspace, then discovery against ``url``."""
    if (sitemap := load_sitemap(workspace / SITEMAP_FILENAME)) is not None:
        return sitemap

    if url is None:
        log.info("No preview URL, skipping route discovery")
        return None

    log.info("No %s found, discovering routes on %s", SITEMAP_FILENAME, url)
    return await discover_routes(
        url, provisioner=provisioner, runner=runner, env=env, timeout=timeout
    )
