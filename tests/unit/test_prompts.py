"""Tests for prompt builders."""

from pr_test_generator.prompts import (
    DEFAULT_TEST_EXAMPLE,
    build_code_prompt,
    build_navigation_prompt,
    build_plan_prompt,
    build_ui_analysis_prompt,
    extract_code,
)
from pr_test_generator.sitemap import RouteEntry, Sitemap
from pr_test_generator.testing.factories import (
    ChangedFileFactory,
    PRContextFactory,
    PullRequestFactory,
)


def test_ui_analysis_prompt_lists_files() -> None:
    """Changed files and their patches are included."""
    context = PRContextFactory.build(
        pull_request=PullRequestFactory.build(title="Restyle header"),
        files=[ChangedFileFactory.build(filename="src/Header.tsx", patch="+<h1/>")],
    )

    prompt = build_ui_analysis_prompt(context)

    assert "Restyle header" in prompt
    assert "src/Header.tsx" in prompt
    assert "+<h1/>" in prompt
    assert 'Respond with ONLY "YES" or "NO"' in prompt


def test_plan_prompt_truncates_long_patches() -> None:
    """Patches are cut down before they reach the model."""
    context = PRContextFactory.build(
        files=[ChangedFileFactory.build(filename="a.tsx", patch="x" * 5000)]
    )

    prompt = build_plan_prompt(context)

    assert "x" * 1500 + "\n...(truncated)" in prompt
    assert "x" * 1501 not in prompt


def test_plan_prompt_mentions_preview_urls() -> None:
    """Preview URLs are listed when known."""
    context = PRContextFactory.build(preview_urls=["https://pr-3.vercel.app"])

    assert "- https://pr-3.vercel.app" in build_plan_prompt(context)


def test_plan_prompt_includes_repo_context() -> None:
    """Repository files give the model project context."""
    context = PRContextFactory.build(repo_context={"package.json": '{"name": "shop"}'})

    prompt = build_plan_prompt(context)

    assert "### package.json" in prompt
    assert '"name": "shop"' in prompt


def test_navigation_prompt_embeds_sitemap() -> None:
    """A sitemap is serialized into the navigation prompt."""
    sitemap = Sitemap(
        route_map={"/pricing": RouteEntry(url="/pricing", navigation_item="Pricing")}
    )
    context = PRContextFactory.build(preview_urls=["https://pr-3.vercel.app"])

    prompt = build_navigation_prompt("1. Check pricing", context, sitemap)

    assert '"navigationItem": "Pricing"' in prompt
    assert "1. Check pricing" in prompt
    assert "https://pr-3.vercel.app" in prompt


def test_navigation_prompt_without_sitemap() -> None:
    """Missing sitemap is stated explicitly."""
    prompt = build_navigation_prompt("plan", PRContextFactory.build(), None)

    assert "No sitemap available" in prompt


def test_code_prompt_uses_default_example() -> None:
    """The built-in example is used when none is configured."""
    prompt = build_code_prompt("plan", "nav", PRContextFactory.build(), None, False)

    assert DEFAULT_TEST_EXAMPLE in prompt
    assert "No Authentication Configured" in prompt


def test_code_prompt_references_credentials_by_env_only() -> None:
    """Credentials appear only as environment variable names."""
    prompt = build_code_prompt(
        "plan", "nav", PRContextFactory.build(), "// my example", True
    )

    assert "process.env.TEST_USER_EMAIL" in prompt
    assert "process.env.TEST_USER_PASSWORD" in prompt
    assert "// my example" in prompt
    assert DEFAULT_TEST_EXAMPLE not in prompt


def test_extract_code_strips_fence() -> None:
    """A fenced reply yields only the code."""
    reply = "Here you go:\n```javascript\nconsole.log('hi');\n```\nDone."

    assert extract_code(reply) == "console.log('hi');\n"


def test_extract_code_plain_reply() -> None:
    """An unfenced reply is returned as is."""
    assert extract_code("  console.log('hi');  ") == "console.log('hi');\n"
