"""The mutable policy: one token set per directive plus the public API."""

from __future__ import annotations

import re
import types
from collections.abc import Iterable, Mapping
from urllib.parse import urlparse

import structlog

from shield_csp.policy.classifier import classify_token, strip_quotes
from shield_csp.policy.digests import canonicalize_hash, validate_nonce
from shield_csp.policy.directives import (
    BASE_URI,
    CHILD_SRC,
    DEFAULT_PLUGIN_TYPES,
    DEFAULT_SRC,
    DOCUMENT_DIRECTIVES,
    EXPERIMENTAL_DIRECTIVES,
    FETCH_DIRECTIVES,
    FORM_ACTION,
    FRAME_ANCESTORS,
    INLINE_DIRECTIVES,
    KNOWN_DIRECTIVES,
    PLUGIN_TYPES,
    REPORT_URI,
    SANDBOX,
    SANDBOX_VALUES,
    SOURCE_LIST_DIRECTIVES,
    STRICT_DYNAMIC_DIRECTIVES,
    UNSAFE_DIRECTIVES,
    DirectiveSet,
    normalize_directive,
)
from shield_csp.policy.errors import (
    BadMime,
    BadSandboxValue,
    CspError,
    InvalidChildSrc,
    InvalidDefaultSrc,
    InvalidDirective,
    InvalidDocumentDirective,
    InvalidFetchDirective,
    InvalidReportUri,
    InvalidSandboxPolicy,
)
from shield_csp.policy.header import parse_csp
from shield_csp.policy.render import render_policy, synthesize_child_src
from shield_csp.policy.tokens import (
    NONE,
    REPORT_SAMPLE,
    SELF,
    STRICT_DYNAMIC,
    UNSAFE_EVAL,
    UNSAFE_INLINE,
    Hash,
    Host,
    Keyword,
    Nonce,
    ReportSample,
    Scheme,
    StrictDynamic,
    Token,
    Unsafe,
)

logger = structlog.get_logger()

_BASELINE_DIRECTIVES = ("script-src", "connect-src", "style-src", "img-src", "media-src")

_MIME_RE = re.compile(r"^[a-z0-9][a-z0-9!#$&^_.+\-]*/[a-z0-9][a-z0-9!#$&^_.+\-]*$")
_SANDBOX_TOKEN_RE = re.compile(r"^[a-z]+(?:-[a-z]+)*$")

REPORT_ONLY_HEADER = "Content-Security-Policy-Report-Only"
ENFORCE_HEADER = "Content-Security-Policy"


def _rejection(name: str, mismatch: type[InvalidDirective]) -> InvalidDirective:
    """Pick the error for a directive that can not be set by the caller."""
    if name == DEFAULT_SRC:
        return InvalidDefaultSrc(name)
    if name == CHILD_SRC:
        return InvalidChildSrc(name)
    if name in EXPERIMENTAL_DIRECTIVES:
        logger.warning("csp_unsupported_directive", directive=name)
        return InvalidDirective(name)
    if name in KNOWN_DIRECTIVES:
        return mismatch(name)
    return InvalidDirective(name)


class ContentSecurityPolicy:
    """Builds a Content-Security-Policy header value.

    - default-src always exists and starts as 'none'
    - fetch directives left empty inherit default-src and are not rendered
    - every call validates its whole input before touching any state

    With no initial expression a baseline is applied: script-src,
    connect-src, style-src, img-src and media-src set to 'self'.
    """

    def __init__(self, initial: str | None = None) -> None:
        self._directives: dict[str, DirectiveSet] = {
            name: DirectiveSet(name)
            for name in (DEFAULT_SRC, *SOURCE_LIST_DIRECTIVES)
        }
        self._directives[DEFAULT_SRC].set_keyword(NONE)
        self._plugin_types: list[str] = list(DEFAULT_PLUGIN_TYPES)
        self._plugin_types_customized = False
        self._sandbox: list[str] = []
        self._report_uri: str | None = None
        self._report_only = False

        if initial is None:
            for name in _BASELINE_DIRECTIVES:
                self._directives[name].set_keyword(SELF)
            return

        tokens = [classify_token(part, DEFAULT_SRC) for part in initial.split()]
        for token in tokens:
            self._apply_token(DEFAULT_SRC, token)

    @classmethod
    def from_directives(
        cls,
        directives: Mapping[str, Iterable[str]],
        *,
        report_only: bool = False,
    ) -> ContentSecurityPolicy:
        """Build a policy from a ``{directive: [values]}`` mapping.

        default-src seeds the constructor; report-uri is applied before the
        other directives so report-sample can take effect.
        """
        remaining = {normalize_directive(name): list(values) for name, values in directives.items()}
        policy = cls(" ".join(remaining.pop(DEFAULT_SRC, [])))
        if remaining.pop(CHILD_SRC, None) is not None:
            logger.info("csp_child_src_ignored", reason="derived from frame-src and worker-src")
        report = remaining.pop(REPORT_URI, [])
        if report:
            policy.set_report_uri(report[0], report_only=report_only)
        for name, values in remaining.items():
            if name not in KNOWN_DIRECTIVES:
                raise _rejection(name, InvalidDirective)
            for value in values:
                policy.add_directive_policy(name, value)
        return policy

    @classmethod
    def from_header(cls, header: str, *, report_only: bool = False) -> ContentSecurityPolicy:
        """Build a policy from an existing header value."""
        return cls.from_directives(parse_csp(header), report_only=report_only)

    # ── Introspection ─────────────────────────────────────────────────

    @property
    def directives(self) -> types.MappingProxyType:
        """Read-only view of the source-list directives, default-src included."""
        return types.MappingProxyType(self._directives)

    @property
    def plugin_types(self) -> tuple[str, ...]:
        return tuple(self._plugin_types)

    @property
    def sandbox(self) -> tuple[str, ...]:
        return tuple(self._sandbox)

    @property
    def report_uri(self) -> str | None:
        return self._report_uri

    @property
    def report_only(self) -> bool:
        return self._report_only

    @property
    def header_name(self) -> str:
        return REPORT_ONLY_HEADER if self._report_only else ENFORCE_HEADER

    def get_directive(self, directive: str) -> tuple[str, ...]:
        """Return the rendered tokens currently stored for a directive."""
        name = normalize_directive(directive)
        if name in self._directives:
            return self._directives[name].values()
        if name == CHILD_SRC:
            child = synthesize_child_src(
                self._directives["frame-src"].tokens,
                self._directives["worker-src"].tokens,
            )
            return tuple(token.render() for token in child)
        if name == PLUGIN_TYPES:
            return self.plugin_types
        if name == SANDBOX:
            return self.sandbox
        if name == REPORT_URI:
            return (self._report_uri,) if self._report_uri else ()
        raise InvalidDirective(name)

    # ── Source-list mutation ──────────────────────────────────────────

    def set_keyword(self, directive: str, keyword: str) -> None:
        """Set a directive to exactly 'self' or 'none'."""
        name = self._resolve(directive, SOURCE_LIST_DIRECTIVES)
        token = classify_token(keyword, name)
        if not isinstance(token, Keyword):
            raise CspError(keyword)
        self._directives[name].set_keyword(token)

    def add_token(self, directive: str, token: Token | str) -> bool:
        """Append a token (or raw expression) to a source-list directive."""
        name = self._resolve(directive, SOURCE_LIST_DIRECTIVES)
        if isinstance(token, str):
            token = classify_token(token, name)
        return self._apply_token(name, token)

    def add_fetch_policy(self, directive: str, policy: str) -> bool:
        """Classify a raw value and apply it to a fetch directive.

        Returns False when a gated keyword (strict-dynamic, report-sample)
        was not applied.
        """
        name = self._resolve(directive, FETCH_DIRECTIVES)
        token = classify_token(policy, name)
        return self._apply_token(name, token)

    def copy_default_policy(self, directive: str) -> None:
        """Materialize default-src into a fetch directive before extending it."""
        name = self._resolve(directive, FETCH_DIRECTIVES)
        self._directives[name].copy_from(self._directives[DEFAULT_SRC])

    def add_hash(self, directive: str, algorithm: str, digest: str) -> bool:
        name = self._resolve(directive, INLINE_DIRECTIVES)
        return self._add_inline_source(name, canonicalize_hash(algorithm, digest))

    def add_script_hash(self, algorithm: str, digest: str) -> bool:
        return self.add_hash("script-src", algorithm, digest)

    def add_style_hash(self, algorithm: str, digest: str) -> bool:
        return self.add_hash("style-src", algorithm, digest)

    def add_nonce(self, directive: str, nonce: str) -> bool:
        name = self._resolve(directive, INLINE_DIRECTIVES)
        return self._add_inline_source(name, validate_nonce(nonce))

    def set_strict_dynamic(self, directive: str = "script-src") -> bool:
        """Add 'strict-dynamic' if the directive already trusts a nonce or hash."""
        name = self._resolve(directive, (DEFAULT_SRC, *FETCH_DIRECTIVES))
        return self._set_gated(name, STRICT_DYNAMIC)

    def set_report_sample(self, directive: str = "script-src") -> bool:
        """Add 'report-sample' once a report-uri is configured."""
        name = self._resolve(directive, FETCH_DIRECTIVES)
        return self._set_gated(name, REPORT_SAMPLE)

    # ── Document, navigation and reporting directives ─────────────────

    def set_base_uri(self, policy: str) -> bool:
        return self._add_source(BASE_URI, policy)

    def set_form_action(self, policy: str) -> bool:
        return self._add_source(FORM_ACTION, policy)

    def set_frame_ancestors(self, policy: str) -> bool:
        return self._add_source(FRAME_ANCESTORS, policy)

    def set_sandbox(self, policy: str) -> bool:
        """Accumulate a sandbox flag such as ``allow-scripts``."""
        value = strip_quotes(policy).lower()
        if not _SANDBOX_TOKEN_RE.match(value):
            raise BadSandboxValue(policy)
        if value not in SANDBOX_VALUES:
            raise InvalidSandboxPolicy(value)
        if value in self._sandbox:
            return False
        self._sandbox.append(value)
        return True

    def set_plugin_types(self, mime: str) -> bool:
        """Allow a plugin MIME type.

        The first call replaces the built-in image/svg+xml and application/pdf
        defaults; later calls accumulate.
        """
        value = mime.strip().lower()
        if not _MIME_RE.match(value):
            raise BadMime(mime)
        if not self._plugin_types_customized:
            self._plugin_types = []
            self._plugin_types_customized = True
        if value in self._plugin_types:
            return False
        self._plugin_types.append(value)
        return True

    def set_report_uri(self, uri: str, report_only: bool = False) -> None:
        value = uri.strip()
        if not value or any(c.isspace() for c in value) or any(c in value for c in ";,'\""):
            raise InvalidReportUri(uri)
        if not (value.startswith("/") and not value.startswith("//")):
            parsed = urlparse(value)
            if parsed.scheme not in ("http", "https") or not parsed.hostname or "@" in parsed.netloc:
                raise InvalidReportUri(uri)
            if parsed.scheme == "http":
                logger.warning("csp_insecure_report_uri", report_uri=value)
        self._report_uri = value
        self._report_only = report_only

    def add_document_policy(self, directive: str, policy: str) -> bool:
        name = self._resolve(directive, DOCUMENT_DIRECTIVES, mismatch=InvalidDocumentDirective)
        if name == BASE_URI:
            return self.set_base_uri(policy)
        if name == PLUGIN_TYPES:
            return self.set_plugin_types(policy)
        return self.set_sandbox(policy)

    def add_directive_policy(self, directive: str, policy: str) -> bool:
        """Apply a raw value to any caller-settable directive."""
        name = normalize_directive(directive)
        if name in FETCH_DIRECTIVES:
            return self.add_fetch_policy(name, policy)
        if name in DOCUMENT_DIRECTIVES:
            return self.add_document_policy(name, policy)
        if name == FORM_ACTION:
            return self.set_form_action(policy)
        if name == FRAME_ANCESTORS:
            return self.set_frame_ancestors(policy)
        if name == REPORT_URI:
            self.set_report_uri(policy, report_only=self._report_only)
            return True
        raise _rejection(name, InvalidDirective)

    # ── Rendering ─────────────────────────────────────────────────────

    def build_header(self) -> str:
        return render_policy(self)

    def __str__(self) -> str:
        return self.build_header()

    def __repr__(self) -> str:
        return f"ContentSecurityPolicy({self.build_header()!r})"

    # ── Internals ─────────────────────────────────────────────────────

    def _resolve(
        self,
        directive: str,
        allowed: Iterable[str],
        mismatch: type[InvalidDirective] = InvalidFetchDirective,
    ) -> str:
        """Normalize a directive name, raising if it can not be set here."""
        name = normalize_directive(directive)
        if name in allowed:
            return name
        raise _rejection(name, mismatch)

    def _apply_token(self, directive: str, token: Token) -> bool:
        target = self._directives[directive]
        if isinstance(token, Keyword):
            target.set_keyword(token)
            return True
        if isinstance(token, Unsafe):
            return self._add_unsafe(directive, token)
        if isinstance(token, (Hash, Nonce)):
            if directive != DEFAULT_SRC and directive not in INLINE_DIRECTIVES:
                raise InvalidFetchDirective(directive)
            return self._add_inline_source(directive, token)
        if isinstance(token, (StrictDynamic, ReportSample)):
            return self._set_gated(directive, token)
        if isinstance(token, (Scheme, Host)):
            target.add(token)
            return True
        raise CspError(token.render())

    def _add_source(self, directive: str, policy: str) -> bool:
        token = classify_token(policy, directive)
        if not isinstance(token, (Keyword, Scheme, Host)):
            raise InvalidDirective(directive)
        return self._apply_token(directive, token)

    def _add_unsafe(self, directive: str, token: Unsafe) -> bool:
        if directive not in UNSAFE_DIRECTIVES[token.name]:
            raise InvalidFetchDirective(directive)
        target = self._directives[directive]
        if token == UNSAFE_EVAL:
            logger.warning("csp_unsafe_eval", directive=directive)
        if token == UNSAFE_INLINE and target.has_nonce_or_hash():
            logger.debug("csp_unsafe_inline_superseded", directive=directive)
            return True
        target.add(token)
        return True

    def _add_inline_source(self, directive: str, token: Hash | Nonce) -> bool:
        """Add a nonce or hash, upgrading a bare 'unsafe-inline' in place.

        Refused when the directive, or default-src it inherits from, is 'none'.
        """
        target = self._directives[directive]
        if directive != DEFAULT_SRC:
            effective = target.tokens or self._directives[DEFAULT_SRC].tokens
            if effective == (NONE,):
                logger.info("csp_inline_source_blocked", directive=directive, source=token.render())
                return False
        index = target.index_of(UNSAFE_INLINE)
        if index is not None:
            target.replace_at(index, token)
            return True
        return target.add(token)

    def _set_gated(self, directive: str, token: StrictDynamic | ReportSample) -> bool:
        target = self._directives[directive]
        if isinstance(token, StrictDynamic):
            applied = directive in STRICT_DYNAMIC_DIRECTIVES and target.has_nonce_or_hash()
        else:
            applied = (
                directive in INLINE_DIRECTIVES
                and self._report_uri is not None
                and len(target) > 0
                and not target.is_none()
            )
        if not applied:
            logger.debug("csp_gated_keyword_skipped", directive=directive, keyword=token.render())
            return False
        target.add(token)
        return True
