"""Clients for the services the generator talks to."""

from pr_test_generator.clients.anthropic import AnthropicClient, AnthropicConfig
from pr_test_generator.clients.base import (
    LLMClient,
    LLMError,
    ModelTier,
    SourceControlClient,
    SourceControlError,
)
from pr_test_generator.clients.github import GitHubClient, GitHubConfig, GitHubError

__all__ = [
    "AnthropicClient",
    "AnthropicConfig",
    "GitHubClient",
    "GitHubConfig",
    "GitHubError",
    "LLMClient",
    "LLMError",
    "ModelTier",
    "SourceControlClient",
    "SourceControlError",
]
