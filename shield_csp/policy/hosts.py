"""Host-source validation.

A host source is ``[scheme://]host[:port]`` where the host may start with a
single ``*.`` label and the port may be ``*``. Anything that looks like a full
URL (userinfo, path, query, fragment) is refused. Insecure but legal forms are
accepted with an advisory log line.
"""

from __future__ import annotations

import ipaddress
import re
import unicodedata
from urllib.parse import urlparse

import structlog

from shield_csp.policy.errors import InvalidHostName, InvalidHostScheme, InvalidHostSource
from shield_csp.policy.tokens import WILDCARD, Host

logger = structlog.get_logger()

_HOST_SCHEMES = frozenset({"http", "https"})

_LABEL_RE = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")

_MAX_HOSTNAME_LENGTH = 253


def _to_ascii(hostname: str, raw: str) -> str:
    """NFKC-normalize and IDNA-encode a hostname, lower-cased."""
    hostname = unicodedata.normalize("NFKC", hostname).lower()
    if hostname.isascii():
        return hostname
    wildcard = hostname.startswith("*.")
    if wildcard:
        hostname = hostname[2:]
    try:
        hostname = hostname.encode("idna").decode("ascii").lower()
    except UnicodeError:
        raise InvalidHostName(raw) from None
    return f"*.{hostname}" if wildcard else hostname


def is_valid_hostname(hostname: str) -> bool:
    """Check a lower-case ASCII hostname, allowing one leading ``*.`` label."""
    if hostname.startswith("*."):
        hostname = hostname[2:]
    if not hostname or len(hostname) > _MAX_HOSTNAME_LENGTH:
        return False
    try:
        ipaddress.IPv4Address(hostname)
        return True
    except ValueError:
        pass
    labels = hostname.split(".")
    # An all-numeric last label is only valid as part of an IPv4 literal
    if labels[-1].isdigit():
        return False
    return all(_LABEL_RE.match(label) for label in labels)


def validate_host_source(raw: str, directive: str = "") -> Host:
    """Validate a host source, returning its canonical token.

    Raises InvalidHostSource, InvalidHostScheme or InvalidHostName.
    """
    source = raw.strip()
    if source == "*":
        logger.warning("csp_wildcard_source", directive=directive)
        return WILDCARD

    wildcard_port = source.endswith(":*")
    if wildcard_port:
        source = source[:-2]

    if not source or "\\" in source or any(c.isspace() for c in source):
        raise InvalidHostSource(raw)
    if any(c in source for c in "@?#;,'\""):
        raise InvalidHostSource(raw)

    if ":" not in source:
        if "/" in source:
            raise InvalidHostSource(raw)
        scheme = ""
        hostname = source
        port = None
    else:
        has_scheme = "://" in source
        try:
            parsed = urlparse(source if has_scheme else f"//{source}")
        except ValueError:
            raise InvalidHostSource(raw) from None
        scheme = parsed.scheme.lower()
        if has_scheme and scheme not in _HOST_SCHEMES:
            raise InvalidHostScheme(raw)
        if parsed.path or parsed.params or parsed.query or parsed.fragment:
            raise InvalidHostSource(raw)
        if parsed.netloc.endswith(":"):
            raise InvalidHostSource(raw)
        try:
            port = parsed.port
        except ValueError:
            raise InvalidHostSource(raw) from None
        if port == 0 or (port is not None and wildcard_port):
            raise InvalidHostSource(raw)
        hostname = parsed.hostname or ""

    hostname = _to_ascii(hostname, raw)
    if hostname == "*":
        if not scheme:
            raise InvalidHostName(raw)
        logger.warning("csp_wildcard_source", directive=directive, source=raw)
    elif not is_valid_hostname(hostname):
        raise InvalidHostName(raw)

    canonical = f"{scheme}://{hostname}" if scheme else hostname
    if port is not None:
        canonical = f"{canonical}:{port}"
    elif wildcard_port:
        canonical = f"{canonical}:*"

    if scheme == "http":
        logger.warning("csp_insecure_host_scheme", directive=directive, source=canonical)
    elif not scheme:
        logger.warning("csp_host_without_scheme", directive=directive, source=canonical)
    return Host(canonical)
