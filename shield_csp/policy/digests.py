"""Hash and nonce canonicalization, plus nonce generation."""

from __future__ import annotations

import base64
import binascii
import re
import secrets
import types

from shield_csp.policy.errors import BadAlgo, BadHash, BadNonce
from shield_csp.policy.tokens import Hash, Nonce

# Digest size in bytes per algorithm; base64 length is 44/64/88
DIGEST_SIZES: types.MappingProxyType = types.MappingProxyType({
    "sha256": 32,
    "sha384": 48,
    "sha512": 64,
})

MIN_NONCE_BYTES = 16

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def _is_hex(value: str) -> bool:
    return bool(_HEX_RE.match(value))


def _strict_b64decode(value: str) -> bytes | None:
    """Decode base64 only if re-encoding reproduces the exact input."""
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return None
    if base64.b64encode(raw).decode("ascii") != value:
        return None
    return raw


def base64_length(algorithm: str) -> int:
    return 4 * ((DIGEST_SIZES[algorithm] + 2) // 3)


def canonicalize_hash(algorithm: str, digest: str) -> Hash:
    """Return the canonical base64 Hash token for a hex or base64 digest.

    Hex and base64 encodings of the same digest bytes produce equal tokens.
    """
    algo = algorithm.strip().lower()
    if algo not in DIGEST_SIZES:
        raise BadAlgo(algorithm)
    digest = digest.strip()
    if len(digest) == 2 * DIGEST_SIZES[algo] and _is_hex(digest):
        digest = base64.b64encode(bytes.fromhex(digest)).decode("ascii")
    if _strict_b64decode(digest) is None or len(digest) != base64_length(algo):
        raise BadHash(digest)
    return Hash(algo, digest)


def validate_nonce(value: str) -> Nonce:
    """Validate a caller-supplied base64 nonce.

    Hex strings are refused so a value can never be read two ways, and short
    nonces are rejected rather than padded.
    """
    value = value.strip()
    if not value or _is_hex(value):
        raise BadNonce(value)
    raw = _strict_b64decode(value)
    if raw is None or len(raw) < MIN_NONCE_BYTES:
        raise BadNonce(value)
    return Nonce(value)


def generate_nonce(num_bytes: int = MIN_NONCE_BYTES) -> str:
    """Return a base64 encoded random nonce of at least 16 bytes.

    A CSP nonce must be unpredictable, not merely unique. The value is also
    suitable as a CSRF token.
    """
    num_bytes = max(num_bytes, MIN_NONCE_BYTES)
    return base64.b64encode(secrets.token_bytes(num_bytes)).decode("ascii")
