"""Text analysis of generated scripts and their output."""

from pr_test_generator.analysis.classifier import (
    ClassificationStrategy,
    PhraseClassificationStrategy,
    analyze_output,
    classify,
    extract_cases,
)
from pr_test_generator.analysis.sanitizer import SecretSanitizer

__all__ = [
    "ClassificationStrategy",
    "PhraseClassificationStrategy",
    "SecretSanitizer",
    "analyze_output",
    "classify",
    "extract_cases",
]
