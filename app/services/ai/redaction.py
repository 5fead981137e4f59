"""
Secret redaction for text leaving the process.

Diff hunks pass through `redact_secrets` before they are placed in a prompt.
Patterns with a capture group replace only the captured value, so the label
(`api_key = `, `postgres://user:` ...) stays readable; patterns without one
replace the whole match. Redacting already-redacted text is a no-op.

`contains_secrets` is the narrower detector run over model output.
"""

import re
from typing import List, Optional, Pattern

REDACTED = "[REDACTED]"

_I = re.IGNORECASE

REDACTION_PATTERNS: List[Pattern[str]] = [
    # API keys
    re.compile(r"(?:api[_-]?key|apikey)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-]{20,})['\"]?", _I),
    re.compile(r"(?:secret[_-]?key|secretkey)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-]{20,})['\"]?", _I),
    re.compile(r"sk_live_[a-zA-Z0-9]{24,}", _I),
    re.compile(r"sk_test_[a-zA-Z0-9]{24,}", _I),
    re.compile(r"pk_live_[a-zA-Z0-9]{24,}", _I),
    re.compile(r"pk_test_[a-zA-Z0-9]{24,}", _I),
    re.compile(r"AIza[0-9A-Za-z\-_]{35}", _I),
    re.compile(r"AKIA[0-9A-Z]{16}", _I),
    # Tokens
    re.compile(
        r"(?:token|access[_-]?token|bearer[_-]?token)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-.]{20,})['\"]?",
        _I,
    ),
    re.compile(r"eyJ[A-Za-z0-9\-_]+\.eyJ[A-Za-z0-9\-_]+\.?[A-Za-z0-9\-_.]*"),
    # Passwords
    re.compile(r"(?:password|passwd|pwd)\s*[:=]\s*['\"]?([^\s'\"]{8,})['\"]?", _I),
    # PEM private keys
    re.compile(
        r"-----BEGIN\s+(?:RSA\s+)?PRIVATE\s+KEY-----[\s\S]*?-----END\s+(?:RSA\s+)?PRIVATE\s+KEY-----",
        _I,
    ),
    re.compile(r"-----BEGIN\s+EC\s+PRIVATE\s+KEY-----[\s\S]*?-----END\s+EC\s+PRIVATE\s+KEY-----", _I),
    re.compile(r"-----BEGIN\s+DSA\s+PRIVATE\s+KEY-----[\s\S]*?-----END\s+DSA\s+PRIVATE\s+KEY-----", _I),
    # OAuth client secrets
    re.compile(
        r"(?:client[_-]?secret|oauth[_-]?secret)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-]{20,})['\"]?", _I
    ),
    # Credentials embedded in connection strings. User and password stay on one line.
    re.compile(r"(?:postgresql|postgres|mysql|mongodb)://[^:/@\s]+:([^@\s]+)@", _I),
    # OpenSSH keys
    re.compile(
        r"-----BEGIN\s+(?:OPENSSH\s+)?PRIVATE\s+KEY-----[\s\S]*?-----END\s+(?:OPENSSH\s+)?PRIVATE\s+KEY-----",
        _I,
    ),
    # Long hex/base64 values assigned to secret-ish names
    re.compile(
        r"(?:secret|key|token|password)\s*[:=]\s*['\"]?([a-fA-F0-9]{32,}|[A-Za-z0-9+/]{40,}={0,2})['\"]?",
        _I,
    ),
]

SECRET_DETECTION_PATTERNS: List[Pattern[str]] = [
    re.compile(
        r"(?:api[_-]?key|apikey|secret[_-]?key|token|password)\s*[:=]\s*['\"]?[a-zA-Z0-9_\-]{20,}['\"]?",
        _I,
    ),
    re.compile(r"sk_(?:live|test)_[a-zA-Z0-9]{24,}", _I),
    re.compile(r"AIza[0-9A-Za-z\-_]{35}", _I),
    re.compile(r"AKIA[0-9A-Z]{16}", _I),
    re.compile(r"eyJ[A-Za-z0-9\-_]+\.eyJ[A-Za-z0-9\-_]+\.?[A-Za-z0-9\-_.]*"),
    re.compile(r"-----BEGIN\s+(?:RSA\s+)?PRIVATE\s+KEY-----", _I),
]


def _mask(match: "re.Match[str]") -> str:
    if match.re.groups and match.group(1):
        start, end = match.span(1)
        offset = match.start()
        text = match.group(0)
        return text[: start - offset] + REDACTED + text[end - offset :]
    return REDACTED


def redact_secrets(text: Optional[str]) -> Optional[str]:
    """
    Replace every secret-shaped substring of `text` with `[REDACTED]`.

    Args:
        text: Arbitrary text, typically a unified diff hunk. None and empty
            values are returned unchanged.

    Returns:
        The redacted text.
    """
    if not text or not isinstance(text, str):
        return text
    redacted = text
    for pattern in REDACTION_PATTERNS:
        redacted = pattern.sub(_mask, redacted)
    return redacted


def contains_secrets(text: str) -> bool:
    return any(pattern.search(text) for pattern in SECRET_DETECTION_PATTERNS)
