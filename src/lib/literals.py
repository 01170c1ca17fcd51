"""
Literal parsing helpers shared by the descriptor and config-value parsers

- string_decode: JSON-style double-quoted string literals
- relativePath_parse: relative path literals used by #include / #resource
- glob_validate: syntax check for resource glob patterns

All helpers raise ValueError with a human readable reason; the parser turns
that into a located ParseError.
"""

import json
import posixpath
import re
from pathlib import PurePosixPath

_DRIVE = re.compile(r'^[A-Za-z]:')


def string_decode(raw: str) -> str:
    """
    Decode a double-quoted string literal including its quotes

    Escapes follow JSON rules (\\n, \\t, \\", \\\\, \\uXXXX, ...).

    Raises:
        ValueError: If the literal is malformed or has an invalid escape
    """
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid string literal: {e.msg}") from e
    if not isinstance(value, str):
        raise ValueError("invalid string literal")
    return value


def relativePath_parse(text: str) -> PurePosixPath:
    """
    Parse and normalize a relative path literal

    Backslashes are accepted as separators. Drive letters and leading
    separators are rejected.

    Example:
        >>> relativePath_parse("images/./toolbar")
        PurePosixPath('images/toolbar')
    """
    if not text:
        raise ValueError("path must not be empty")
    path = text.replace('\\', '/')
    if path.startswith('/'):
        raise ValueError(f"path `{text}` must be relative")
    if _DRIVE.match(path):
        raise ValueError(f"path `{text}` must be relative (has a drive letter)")
    return PurePosixPath(posixpath.normpath(path))


def glob_validate(pattern: str) -> str:
    """
    Check that a glob pattern is well formed

    Rules:
    - character classes ([...]) must be closed; a ']' directly after the
      opening bracket is a member, so '[]' never closes
    - '**' is only allowed as a whole path component
    - pattern must not be absolute

    Returns:
        The pattern unchanged
    """
    if not pattern:
        raise ValueError("glob pattern must not be empty")
    normalized = pattern.replace('\\', '/')
    if normalized.startswith('/') or _DRIVE.match(normalized):
        raise ValueError(f"glob pattern `{pattern}` must be relative")

    for component in normalized.split('/'):
        if '**' in component and component != '**':
            raise ValueError(
                f"invalid glob pattern `{pattern}`: recursive wildcards must form a path component by themselves"
            )

    pos = 0
    while pos < len(normalized):
        if normalized[pos] == '[':
            close = pos + 1
            if close < len(normalized) and normalized[close] in '!^':
                close += 1
            # a ']' right after the opening bracket is a literal member
            if close < len(normalized) and normalized[close] == ']':
                close += 1
            close = normalized.find(']', close)
            if close == -1:
                raise ValueError(f"invalid glob pattern `{pattern}`: unclosed character class")
            pos = close + 1
        else:
            pos += 1
    return pattern
