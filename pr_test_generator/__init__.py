"""Generate, run and report browser tests for pull requests."""
