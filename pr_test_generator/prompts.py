"""Prompt builders for each LLM step."""

import re
from collections.abc import Sequence

from pr_test_generator.models.pull_request import ChangedFile, PRContext
from pr_test_generator.sitemap import Sitemap

UI_ANALYSIS_PATCH_LIMIT = 1000
PLAN_PATCH_LIMIT = 1500
PLAN_MAX_FILES = 10
REPO_CONTEXT_LIMIT = 500

DEFAULT_TEST_EXAMPLE = """\
const { startBrowserAgent } = require('magnitude-core');
const { z } = require('zod');
require('dotenv').config();

async function runTests() {
  const agent = await startBrowserAgent({
    url: process.env.PREVIEW_URL || 'http://localhost:3000',
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

  try {
    // Test 1: Dashboard heading is shown
    await agent.act('Navigate to the dashboard page');
    const heading = await agent.extract('Get the main dashboard heading text', z.string());
    console.log('Dashboard heading:', heading);

    // Test 2: Menu opens from the header
    await agent.act('Click on the menu button');
    await agent.act('Wait for the menu to open');

    console.log('All tests completed successfully');
  } finally {
    await agent.stop();
  }
}

runTests().catch((error) => {
  console.error('Test suite failed:', error);
  process.exit(1);
});
"""

CODE_FENCE = re.compile(r"```[a-zA-Z]*\n(?P<code>.*?)```", re.DOTALL)


def _truncate(text: str, limit: int, marker: str = "\n...(truncated)") -> str:
    return text[:limit] + marker if len(text) > limit else text


def _format_files(files: Sequence[ChangedFile], patch_limit: int) -> str:
    sections = []
    for file in files:
        patch = _truncate(file.patch, patch_limit) if file.patch else "No patch available"
        sections.append(
            f"### {file.filename} ({file.status})\n"
            f"**Changes**: +{file.additions} -{file.deletions}\n"
            f"```diff\n{patch}\n```\n"
        )
    return "\n".join(sections)


def build_ui_analysis_prompt(context: PRContext) -> str:
    """Yes/no question: does this change need UI tests."""
    pr = context.pull_request
    return f"""Analyze the following Pull Request changes and determine if UI testing is necessary.

## PR Details:
- **Title**: {pr.title}
- **Description**: {pr.body or "No description provided"}

## Changed Files:
{_format_files(context.files, UI_ANALYSIS_PATCH_LIMIT)}

## UI Testing is REQUIRED for:
- Components and pages (.jsx, .tsx, .js, .ts, .vue, .svelte)
- Styling changes (.css, .scss, .sass, .less)
- HTML templates, frontend routing, forms, buttons, layouts

## UI Testing is NOT required for:
- Backend-only API, database schema, CI/CD or documentation changes

If ANY file appears to be frontend-related, answer YES. If the UI changes cannot
be exercised from a browser (for example error states that need unreachable
conditions), answer NO.

Respond with ONLY "YES" or "NO". Do not include any explanation."""


def build_plan_prompt(context: PRContext) -> str:
    """Ask for a short numbered list of UI test scenarios."""
    pr = context.pull_request
    repo_context = "\n".join(
        f"### {path}\n```\n{_truncate(content, REPO_CONTEXT_LIMIT, '...')}\n```\n"
        for path, content in context.repo_context.items()
    )
    if context.preview_urls:
        urls = "\n".join(f"- {url}" for url in context.preview_urls)
        preview_section = f"## Available Preview URLs:\n{urls}"
    else:
        preview_section = (
            "## No Preview URLs Found\nTests should target the main application "
            "functionality."
        )
    changed = [file for file in context.files if file.patch][:PLAN_MAX_FILES]

    return f"""You are analyzing a GitHub Pull Request to determine what UI tests should be created.

## Repository Context:
{repo_context or "No repository context available"}

{preview_section}

## Pull Request Details:
- **Title**: {pr.title}
- **Author**: {pr.author}
- **Description**: {pr.body or "No description provided"}
- **Files Changed**: {len(context.files)}

## Key Changes:
{_format_files(changed, PLAN_PATCH_LIMIT)}

## Your Task:
Create a SIMPLE, focused list of UI tests that only cover what changed:
- Copy/text changes: 1-2 tests
- Minor styling changes: 1-3 tests
- Small feature additions: 2-4 tests
- Complex features: at most 5 tests

Provide a numbered list of specific scenarios in plain English, each with its
expected outcome."""


def build_navigation_prompt(
    test_plan: str, context: PRContext, sitemap: Sitemap | None
) -> str:
    """Ask how to reach the pages each planned test needs."""
    sitemap_section = (
        f"## Sitemap:\n```json\n{sitemap.to_prompt_json()}\n```"
        if sitemap is not None and sitemap.route_map
        else "## Sitemap:\nNo sitemap available; infer routes from the changed files."
    )
    return f"""You are a QA engineer preparing to run the test plan below against a web application.

## Base URL:
{context.target_url or "http://localhost:3000"}

{sitemap_section}

## Test Plan:
{test_plan}

## Your Task:
For each test in the plan, give step-by-step navigation instructions: the URL
or menu path to reach the right page, and what to interact with once there.
Use only routes from the sitemap or ones clearly implied by the changed files.
Answer as a numbered list matching the test plan."""


def build_code_prompt(
    test_plan: str,
    navigation: str,
    context: PRContext,
    test_examples: str | None,
    has_credentials: bool,
) -> str:
    """Ask for the executable Magnitude script.

    Credentials are referenced through environment variables only, so they
    never appear in the generated code or in this prompt.
    """
    if has_credentials:
        auth_section = """## Authentication Available:
Read credentials from `process.env.TEST_USER_EMAIL` and `process.env.TEST_USER_PASSWORD`.
```javascript
const isLoggedIn = await agent.extract('Check if user is already logged in', z.boolean());
if (!isLoggedIn) {
  await agent.act('Log in', { data: { email: process.env.TEST_USER_EMAIL, password: process.env.TEST_USER_PASSWORD } });
}
```"""
    else:
        auth_section = "## No Authentication Configured\nTests will run without authentication."

    return f"""Convert this test plan into executable Magnitude test code.

{auth_section}

## Base URL:
Use `process.env.PREVIEW_URL` (currently {context.target_url or "http://localhost:3000"}).

## Test Plan to Implement:
{test_plan}

## Navigation Instructions:
{navigation}

## Test Framework Examples:
{test_examples or DEFAULT_TEST_EXAMPLE}

## Requirements:
1. Implement each test from the plan, preceded by a `// Test N: <description>` comment
2. Use `await agent.act(query)` for interactions and `await agent.extract(query, zodSchema)` to check state
3. Log "All tests completed successfully" at the end, and "Test suite failed" on error with exit code 1

## Output:
Return ONLY the complete, executable test code. No explanations or markdown formatting."""


def extract_code(reply: str) -> str:
    """Strip a markdown code fence if the model added one anyway."""
    if match := CODE_FENCE.search(reply):
        return match.group("code").strip() + "\n"
    return reply.strip() + "\n"
