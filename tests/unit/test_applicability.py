"""Tests for UI applicability detection."""

from unittest.mock import Mock

import pytest

from pr_test_generator.applicability import (
    fallback_ui_detection,
    requires_ui_testing,
    ui_files,
)
from pr_test_generator.clients.base import LLMClient, LLMError
from pr_test_generator.models.pull_request import PRContext
from pr_test_generator.testing.factories import ChangedFileFactory, PRContextFactory


def context_with(*filenames: str) -> PRContext:
    """Build a context whose PR changes ``filenames``."""
    return PRContextFactory.build(
        files=[ChangedFileFactory.build(filename=name) for name in filenames]
    )


@pytest.fixture
def llm_mock() -> Mock:
    """Create mock LLM client."""
    return Mock(spec=LLMClient)


class TestFallbackDetection:
    """Tests for the path allow-list."""

    @pytest.mark.parametrize(
        "filename",
        [
            "src/components/Button.tsx",
            "styles/main.scss",
            "templates/index.html",
            "tailwind.config.js",
            "package.json",
            "frontend/app/page.vue",
        ],
    )
    def test_detects_ui_files(self, filename: str) -> None:
        """UI-looking paths are detected."""
        assert fallback_ui_detection([ChangedFileFactory.build(filename=filename)]) is True

    @pytest.mark.parametrize(
        "filename",
        ["README.md", "server/db/migrations/001.sql", ".github/workflows/ci.yml", "go.mod"],
    )
    def test_ignores_non_ui_files(self, filename: str) -> None:
        """Backend, docs and CI paths are not UI."""
        assert fallback_ui_detection([ChangedFileFactory.build(filename=filename)]) is False

    def test_ui_files_returns_matching_paths(self) -> None:
        """Only matching paths are returned, in order."""
        files = [
            ChangedFileFactory.build(filename="docs/guide.md"),
            ChangedFileFactory.build(filename="pages/about.jsx"),
        ]

        assert ui_files(files) == ["pages/about.jsx"]


class TestRequiresUiTesting:
    """Tests for requires_ui_testing."""

    async def test_yes_answer(self, llm_mock: Mock) -> None:
        """YES from the model means UI tests run."""
        llm_mock.complete.return_value = "YES"

        assert await requires_ui_testing(llm_mock, context_with("README.md")) is True
        llm_mock.complete.assert_called_once()
        _, max_tokens, tier = llm_mock.complete.call_args.args
        assert max_tokens == 10
        assert tier == "fast"

    async def test_no_answer_without_ui_files(self, llm_mock: Mock) -> None:
        """NO is accepted when nothing obviously UI changed."""
        llm_mock.complete.return_value = "NO"

        assert await requires_ui_testing(llm_mock, context_with("api/handler.go")) is False

    async def test_no_answer_overruled_by_obvious_ui_files(self, llm_mock: Mock) -> None:
        """NO is overruled when a component file changed."""
        llm_mock.complete.return_value = "no."

        context = context_with("web/components/Header.jsx")

        assert await requires_ui_testing(llm_mock, context) is True

    async def test_llm_error_uses_fallback(self, llm_mock: Mock) -> None:
        """An unreachable model falls back to the allow-list."""
        llm_mock.complete.side_effect = LLMError("503")

        assert await requires_ui_testing(llm_mock, context_with("site/index.html")) is True
        assert await requires_ui_testing(llm_mock, context_with("Makefile")) is False

    async def test_unexpected_answer_uses_fallback(self, llm_mock: Mock) -> None:
        """An answer other than YES or NO falls back to the allow-list."""
        llm_mock.complete.return_value = "Maybe, it depends"

        assert await requires_ui_testing(llm_mock, context_with("Makefile")) is False
