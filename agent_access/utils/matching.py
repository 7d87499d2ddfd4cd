"""Glob matching for file paths.

Patterns follow the usual globstar semantics:

- ``**`` spans path separators (``src/**/*.py`` matches ``src/a/b/c.py``)
- ``*`` matches within a single segment (``*.py`` does not match ``a/b.py``)
- ``?`` matches exactly one non-separator character
- ``[abc]`` / ``[!abc]`` character classes and ``{a,b}`` alternation

Compiled patterns are cached, so matching the same glob repeatedly on the
request path costs one regex lookup.
"""

from __future__ import annotations

import re
from functools import lru_cache


def normalize_path(file_path: str) -> str:
    """Normalize a path for matching: forward slashes, no leading slash."""
    return file_path.replace("\\", "/").lstrip("/")


@lru_cache(maxsize=1024)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a glob pattern into a compiled, fully anchored regex."""
    parts: list[str] = []
    i = 0
    n = len(pattern)
    in_brace = False

    while i < n:
        c = pattern[i]

        if c == "*":
            if pattern.startswith("**", i):
                at_segment_start = i == 0 or pattern[i - 1] == "/"
                if at_segment_start and pattern.startswith("**/", i):
                    # Zero or more whole directories
                    parts.append("(?:[^/]*/)*")
                    i += 3
                    continue
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
        elif c == "?":
            parts.append("[^/]")
        elif c == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                parts.append(re.escape(c))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                body = body.replace("\\", "\\\\")
                parts.append(f"[{body}]")
                i = end + 1
                continue
        elif c == "{" and not in_brace and "}" in pattern[i:]:
            in_brace = True
            parts.append("(?:")
        elif c == "," and in_brace:
            parts.append("|")
        elif c == "}" and in_brace:
            in_brace = False
            parts.append(")")
        else:
            parts.append(re.escape(c))
        i += 1

    return re.compile("^" + "".join(parts) + "$")


def match_path(file_path: str, pattern: str) -> bool:
    """Return True if ``file_path`` matches the glob ``pattern``.

    Both sides are normalized first, so ``/src/a.py`` and ``src\\a.py``
    are treated like ``src/a.py``.
    """
    return compile_glob(normalize_path(pattern)).match(normalize_path(file_path)) is not None


def match_any(file_path: str, patterns: list[str] | tuple[str, ...]) -> bool:
    """Return True if ``file_path`` matches at least one glob in ``patterns``."""
    return any(match_path(file_path, pattern) for pattern in patterns)
