"""Error message sanitization for API responses.

Error text that reaches an HTTP client passes through here first so that
connection strings, device secrets and server internals never leave the
process. The original message is still logged server-side.

Example:
    >>> sanitize_error_message("connect to postgresql://u:p@db/fleet failed")
    'connect to [DATABASE_URL] failed'
    >>> sanitize_error_message("bad row: clientSecretKey=abc123", "Import error")
    'Import error: bad row: clientSecretKey=[REDACTED]'
"""

import re
from typing import Optional

MAX_MESSAGE_LENGTH = 500

# Order matters: connection strings before the generic secret patterns
SANITIZE_PATTERNS: list[tuple[str, str]] = [
    (r"postgres(ql)?://[^\s]+", "[DATABASE_URL]"),
    (r"-----BEGIN [A-Z ]*PRIVATE KEY-----[\s\S]*?-----END [A-Z ]*PRIVATE KEY-----", "[PRIVATE_KEY]"),
    (r"-----BEGIN CERTIFICATE-----[\s\S]*?-----END CERTIFICATE-----", "[CERTIFICATE]"),
    (r"\b(client)?secret[-_]?key[\"']?[=:\s]+[^\s,;]+", "clientSecretKey=[REDACTED]"),
    (r"\bpassword[\"']?\s*[=:]\s*[^\s,;]+", "password=[REDACTED]"),
    (r"\bapi[-_]?key\s*[=:]\s*[^\s,;]+", "api_key=[REDACTED]"),
    (r"\baccess[-_]?token\s*[=:]\s*[^\s,;]+", "access_token=[REDACTED]"),
    (r"\bDATABASE_URL[=:\s]", "[ENV_VAR]="),
    (r"Traceback \(most recent call last\):[\s\S]*?(?=\n\n|\n[A-Z]|\Z)", "[STACK_TRACE]"),
    (r'File "([^"]+)", line \d+', 'File "[REDACTED]", line [REDACTED]'),
    (r"/(?:home|root|usr|var|etc|opt|mnt|tmp)/[^\s,;]+", "[FILE_PATH]"),
]

_COMPILED_PATTERNS = [
    (re.compile(pattern, re.IGNORECASE), replacement)
    for pattern, replacement in SANITIZE_PATTERNS
]


def sanitize_error_message(message: str, error_type: Optional[str] = None) -> str:
    """Redact sensitive fragments from an error message.

    Args:
        message: Raw error message
        error_type: Optional category prefixed to the result

    Returns:
        Message safe for client exposure
    """
    sanitized = message or ""
    for pattern, replacement in _COMPILED_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    if len(sanitized) > MAX_MESSAGE_LENGTH:
        sanitized = sanitized[:MAX_MESSAGE_LENGTH] + "... [TRUNCATED]"

    if not sanitized.strip():
        sanitized = "An error occurred"

    if error_type and not sanitized.startswith(error_type):
        sanitized = f"{error_type}: {sanitized}"

    return sanitized
