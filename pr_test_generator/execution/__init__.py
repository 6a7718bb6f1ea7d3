"""Provisioning, execution and classification of generated scripts."""

from pr_test_generator.execution.executor import TestExecutor
from pr_test_generator.execution.provisioner import DependencyProvisioner, ProvisionError
from pr_test_generator.execution.runner import (
    RunError,
    RunOutput,
    RunState,
    RunTimeoutError,
    SubprocessRunner,
)

__all__ = [
    "DependencyProvisioner",
    "ProvisionError",
    "RunError",
    "RunOutput",
    "RunState",
    "RunTimeoutError",
    "SubprocessRunner",
    "TestExecutor",
]
