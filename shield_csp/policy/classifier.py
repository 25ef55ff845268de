"""Classify raw policy input into typed tokens."""

from __future__ import annotations

import re

from shield_csp.policy.digests import canonicalize_hash, validate_nonce
from shield_csp.policy.directives import ALLOWED_SCHEMES
from shield_csp.policy.errors import InvalidFetchScheme
from shield_csp.policy.hosts import validate_host_source
from shield_csp.policy.tokens import (
    NONE,
    REPORT_SAMPLE,
    SELF,
    STRICT_DYNAMIC,
    UNSAFE_EVAL,
    UNSAFE_INLINE,
    Scheme,
    Token,
)

_KEYWORDS: dict[str, Token] = {
    "none": NONE,
    "self": SELF,
    "unsafe-inline": UNSAFE_INLINE,
    "unsafe-eval": UNSAFE_EVAL,
    "strict-dynamic": STRICT_DYNAMIC,
    "report-sample": REPORT_SAMPLE,
}

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*:$")
_HASH_PREFIX_RE = re.compile(r"^(sha\d+)-")
_NONCE_PREFIX = "nonce-"


def strip_quotes(raw: str) -> str:
    """Trim whitespace and one surrounding pair of single quotes."""
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] == "'":
        value = value[1:-1].strip()
    return value


def classify_token(raw: str, directive: str = "") -> Token:
    """Turn one raw source expression into a Token.

    Priority: keyword, scheme, hash, nonce, then host source. Digests and
    nonces keep their case; everything else compares case-insensitively.
    """
    value = strip_quotes(raw)
    lowered = value.lower()

    keyword = _KEYWORDS.get(lowered)
    if keyword is not None:
        return keyword

    if _SCHEME_RE.match(lowered):
        if lowered not in ALLOWED_SCHEMES:
            raise InvalidFetchScheme(value)
        return Scheme(lowered)

    match = _HASH_PREFIX_RE.match(lowered)
    if match:
        algorithm = match.group(1)
        return canonicalize_hash(algorithm, value[match.end():])

    if lowered.startswith(_NONCE_PREFIX):
        return validate_nonce(value[len(_NONCE_PREFIX):])

    return validate_host_source(value, directive)
