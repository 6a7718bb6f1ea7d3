"""Redaction of credentials from captured script output."""

import re
from collections.abc import Sequence
from dataclasses import dataclass

REDACTED = "[REDACTED]"
EMAIL_REDACTED = "[EMAIL_REDACTED]"

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")

URL_CREDENTIALS = re.compile(r"([a-zA-Z][a-zA-Z0-9+.-]*://)[^/\s:@]+:[^/\s@]+@")
ANTHROPIC_KEY_ASSIGNMENT = re.compile(r"(ANTHROPIC_API_KEY\s*[=:]\s*)\S+", re.IGNORECASE)
ANTHROPIC_KEY = re.compile(r"sk-ant-[A-Za-z0-9_-]{20,}")
VENDOR_API_KEY = re.compile(r"sk-[A-Za-z0-9]{48}")
BEARER_TOKEN = re.compile(r"(bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)
SECRET_ASSIGNMENT = re.compile(
    r"\b(password|passwd|pwd|token|secret|key)(\s*[=:]\s*)(?!\[REDACTED\])[^\s,;&]+",
    re.IGNORECASE,
)
EMAIL = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")


def strip_ansi(text: str) -> str:
    """Remove terminal color sequences."""
    return ANSI_ESCAPE.sub("", text)


@dataclass(frozen=True, kw_only=True)
class SecretSanitizer:
    """Scrubs text before it is published anywhere persistent.

    Run it after classification: the classifier matches phrases against the
    raw narration, and redaction would change the text it sees.
    """

    sensitive_values: Sequence[str] = ()

    def _credentials_pattern(self) -> re.Pattern[str] | None:
        """One alternation over the configured values, longest first.

        Existing placeholders match first and are kept as they are.
        """
        values = sorted({value for value in self.sensitive_values if value}, key=len)
        if not values:
            return None
        alternatives = "|".join(re.escape(value) for value in reversed(values))
        placeholders = f"{re.escape(EMAIL_REDACTED)}|{re.escape(REDACTED)}"
        return re.compile(rf"(?P<kept>{placeholders})|{alternatives}", re.IGNORECASE)

    def sanitize(self, text: str) -> str:
        """Return ``text`` without ANSI codes and with secrets redacted."""
        if not text:
            return text

        result = strip_ansi(text)
        # URL credentials first, the password part would otherwise be read as an email
        result = URL_CREDENTIALS.sub(rf"\1{REDACTED}@", result)

        if pattern := self._credentials_pattern():
            result = pattern.sub(lambda m: m.group("kept") or REDACTED, result)

        result = ANTHROPIC_KEY_ASSIGNMENT.sub(rf"\g<1>{REDACTED}", result)
        result = ANTHROPIC_KEY.sub(REDACTED, result)
        result = VENDOR_API_KEY.sub(REDACTED, result)
        result = BEARER_TOKEN.sub(rf"\g<1>{REDACTED}", result)
        result = SECRET_ASSIGNMENT.sub(rf"\1\2{REDACTED}", result)
        return EMAIL.sub(EMAIL_REDACTED, result)
