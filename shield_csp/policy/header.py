"""Raw header-string helpers used to seed and merge policies."""

from __future__ import annotations

import structlog

logger = structlog.get_logger()

_NONE_VALUES = frozenset({"'none'", "none"})


def parse_csp(header: str) -> dict[str, list[str]]:
    """Split a header value into ``{directive: [values]}``.

    Directive names are lower-cased. A repeated directive is ignored, as
    browsers ignore it.

    Example:
        >>> parse_csp("default-src 'self'; script-src 'self' https:")
        {"default-src": ["'self'"], "script-src": ["'self'", "https:"]}
    """
    result: dict[str, list[str]] = {}
    if not header or not header.strip():
        return result
    for part in header.split(";"):
        tokens = part.split()
        if not tokens:
            continue
        directive = tokens[0].lower()
        if directive in result:
            logger.warning("csp_duplicate_directive", directive=directive)
            continue
        result[directive] = tokens[1:]
    return result


def merge_csp(base: dict[str, list[str]], override: dict[str, list[str]]) -> dict[str, list[str]]:
    """Merge override directives into base without duplicating values.

    An override of 'none' replaces the base values outright, and values added
    to a base of 'none' replace it, mirroring how a policy treats 'none'.
    """
    merged = {directive: list(values) for directive, values in base.items()}
    for directive, values in override.items():
        current = merged.get(directive)
        if current is None or any(v.lower() in _NONE_VALUES for v in values):
            merged[directive] = list(values)
            continue
        if all(v.lower() in _NONE_VALUES for v in current):
            current = []
        for value in values:
            if value not in current:
                current.append(value)
        merged[directive] = current
    return merged
