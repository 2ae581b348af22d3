"""Source line sanitization for exception context.

Source lines attached to exception entries end up in storage and on every
connected dashboard, so anything that looks like a literal value or a secret
is masked before inclusion:

- Quoted string literals (single, double, triple-quoted on one line)
- Values assigned to secret-looking names (password, token, api_key, ...)
- Long hex / base64-ish tokens outside quotes
- Control characters

Structure (names, operators, indentation) is kept so the line stays readable.

Usage:
    from telescope.capture.sanitizer import sanitize_code_snippet

    sanitize_code_snippet('api_key = "sk-live-123"')
    # 'api_key = ***'
"""

from __future__ import annotations

__all__ = [
    "MASK",
    "STRING_MASK",
    "sanitize_code_snippet",
]

import re

MASK = "***"
STRING_MASK = '"***"'

# Pattern to match control characters (except tab)
CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0a-\x1f\x7f-\x9f]")

# Secret-looking assignment: name (=|:) value, up to a delimiter
SECRET_ASSIGNMENT_PATTERN = re.compile(
    r"(?i)(?P<name>\b[\w.\-]*(?:password|passwd|pwd|secret|token|api[_-]?key|apikey|access[_-]?key|private[_-]?key|credential)[\w\-]*['\"]?)"
    r"(?P<sep>\s*(?:=|:)\s*)"
    r"(?P<value>(?:'''.*?'''|\"\"\".*?\"\"\"|'(?:\\.|[^'\\])*'|\"(?:\\.|[^\"\\])*\"|[^\s,;)}\]]+))"
)

# Quoted string literals, optional Python prefix (r, b, f, rb, ...)
STRING_LITERAL_PATTERN = re.compile(
    r"(?i)\b(?:[rbuf]{1,2})?(?:'''.*?'''|\"\"\".*?\"\"\"|'(?:\\.|[^'\\])*'|\"(?:\\.|[^\"\\])*\")"
    r"|(?:'''.*?'''|\"\"\".*?\"\"\"|'(?:\\.|[^'\\])*'|\"(?:\\.|[^\"\\])*\")"
)

# Long opaque tokens (hex digests, base64 blobs, JWT segments)
LONG_TOKEN_PATTERN = re.compile(r"\b[A-Za-z0-9+/_\-]{32,}={0,2}")


def sanitize_code_snippet(line: str | None) -> str:
    """Mask literals and secrets in one source line.

    Args:
        line: Raw source line (trailing newline allowed).

    Returns:
        The sanitized line without trailing newline. Empty string for None.
    """
    if not line:
        return ""

    text = line.rstrip("\r\n")
    text = text.replace("\t", "    ")
    text = CONTROL_CHAR_PATTERN.sub("", text)

    # Secrets first, so unquoted values are masked too
    text = SECRET_ASSIGNMENT_PATTERN.sub(lambda m: f"{m.group('name')}{m.group('sep')}{MASK}", text)
    text = STRING_LITERAL_PATTERN.sub(STRING_MASK, text)
    text = LONG_TOKEN_PATTERN.sub(MASK, text)
    return text
