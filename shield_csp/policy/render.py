"""Header serialization, including the derived child-src directive."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from shield_csp.policy.directives import (
    BASE_URI,
    CHILD_SRC,
    DEFAULT_SRC,
    FETCH_DIRECTIVES,
    FORM_ACTION,
    FRAME_ANCESTORS,
    PLUGIN_TYPES,
    REPORT_URI,
    SANDBOX,
)
from shield_csp.policy.tokens import NONE, SELF, Host, Scheme, Token

if TYPE_CHECKING:
    from shield_csp.policy.store import ContentSecurityPolicy

# child-src stands in for these on browsers without frame-src/worker-src
_CHILD_SOURCES = ("frame-src", "worker-src")


def synthesize_child_src(frame: Sequence[Token], worker: Sequence[Token]) -> list[Token]:
    """Union frame-src and worker-src into the deprecated child-src value.

    Ordering of a true union: 'self', schemes, other quoted keywords, hosts.
    'none' contributes nothing to a union.
    """
    frame = list(frame)
    worker = list(worker)
    if not frame:
        return worker
    if not worker or frame == worker:
        return frame

    combined = frame + worker
    union: list[Token] = []

    def take(predicate: Callable[[Token], bool]) -> None:
        for token in combined:
            if token != NONE and predicate(token) and token not in union:
                union.append(token)

    take(lambda token: token == SELF)
    take(lambda token: isinstance(token, Scheme))
    take(lambda token: not isinstance(token, (Scheme, Host)))
    take(lambda token: isinstance(token, Host))
    return union or [NONE]


def _format(name: str, values: Sequence[str]) -> str:
    return f"{name} {' '.join(values)};"


def _render_tokens(name: str, tokens: Sequence[Token]) -> str:
    return _format(name, [token.render() for token in tokens])


def _objects_allowed(policy: ContentSecurityPolicy) -> bool:
    """plugin-types is pointless when object-src (or its fallback) is 'none'."""
    effective = policy.directives["object-src"].tokens or policy.directives[DEFAULT_SRC].tokens
    return effective != (NONE,)


def render_policy(policy: ContentSecurityPolicy) -> str:
    """Render the policy as a single header value.

    Fetch directives equal to default-src are omitted. When child-src is
    emitted, an empty or default-equal frame-src/worker-src is written out
    explicitly as default-src's value so newer browsers see the same policy.
    """
    directives = policy.directives
    default = directives[DEFAULT_SRC].tokens

    child = synthesize_child_src(
        directives["frame-src"].tokens,
        directives["worker-src"].tokens,
    )
    emit_child = bool(child) and tuple(child) != default

    parts = [_render_tokens(DEFAULT_SRC, default)]
    if emit_child:
        parts.append(_render_tokens(CHILD_SRC, child))

    for name in FETCH_DIRECTIVES:
        tokens = directives[name].tokens
        if emit_child and name in _CHILD_SOURCES and (not tokens or tokens == default):
            parts.append(_render_tokens(name, default))
        elif tokens and tokens != default:
            parts.append(_render_tokens(name, tokens))

    base_uri = directives[BASE_URI].tokens
    if base_uri:
        parts.append(_render_tokens(BASE_URI, base_uri))
    if policy.plugin_types and _objects_allowed(policy):
        parts.append(_format(PLUGIN_TYPES, policy.plugin_types))
    if policy.sandbox:
        parts.append(_format(SANDBOX, policy.sandbox))
    for name in (FORM_ACTION, FRAME_ANCESTORS):
        tokens = directives[name].tokens
        if tokens:
            parts.append(_render_tokens(name, tokens))
    if policy.report_uri:
        name = f"{REPORT_URI}-Report-Only" if policy.report_only else REPORT_URI
        parts.append(_format(name, [policy.report_uri]))
    return " ".join(parts)
