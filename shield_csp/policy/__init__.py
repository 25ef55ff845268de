"""Content-Security-Policy model, validation and serialization."""

from shield_csp.policy.classifier import classify_token  # noqa: F401
from shield_csp.policy.digests import canonicalize_hash, generate_nonce, validate_nonce  # noqa: F401
from shield_csp.policy.errors import (  # noqa: F401
    BadAlgo,
    BadHash,
    BadMime,
    BadNonce,
    BadSandboxValue,
    CspError,
    InvalidChildSrc,
    InvalidDefaultSrc,
    InvalidDirective,
    InvalidDocumentDirective,
    InvalidFetchDirective,
    InvalidFetchScheme,
    InvalidHostName,
    InvalidHostScheme,
    InvalidHostSource,
    InvalidReportUri,
    InvalidSandboxPolicy,
)
from shield_csp.policy.header import merge_csp, parse_csp  # noqa: F401
from shield_csp.policy.hosts import validate_host_source  # noqa: F401
from shield_csp.policy.render import render_policy, synthesize_child_src  # noqa: F401
from shield_csp.policy.store import ContentSecurityPolicy  # noqa: F401

__all__ = [
    "ContentSecurityPolicy",
    "classify_token",
    "validate_host_source",
    "canonicalize_hash",
    "validate_nonce",
    "generate_nonce",
    "synthesize_child_src",
    "render_policy",
    "parse_csp",
    "merge_csp",
    "CspError",
    "InvalidDirective",
    "InvalidFetchDirective",
    "InvalidDocumentDirective",
    "InvalidDefaultSrc",
    "InvalidChildSrc",
    "InvalidHostSource",
    "InvalidHostName",
    "InvalidHostScheme",
    "InvalidFetchScheme",
    "InvalidSandboxPolicy",
    "BadSandboxValue",
    "BadMime",
    "BadAlgo",
    "BadHash",
    "BadNonce",
    "InvalidReportUri",
]
