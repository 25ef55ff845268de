"""Header preset loading and per-response policy construction."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

import structlog
import yaml

from shield_csp.config.loader import get_settings
from shield_csp.policy.classifier import strip_quotes
from shield_csp.policy.directives import normalize_directive
from shield_csp.policy.store import ContentSecurityPolicy

logger = structlog.get_logger()

_FALLBACK_PRESET = "balanced"

_NONCE_DIRECTIVES = ("script-src", "style-src")

# Cache loaded presets
_presets: dict | None = None


def load_presets() -> dict:
    """Load header presets from YAML, caching after first load."""
    global _presets
    if _presets is not None:
        return _presets
    path = Path(get_settings().presets_file)
    if not path.exists():
        logger.error("header_presets_not_found", path=str(path))
        _presets = {}
        return _presets
    with open(path) as f:
        _presets = yaml.safe_load(f) or {}
    return _presets


def reset_presets_cache() -> None:
    """Reset the presets cache (for testing)."""
    global _presets
    _presets = None


def get_preset_directives(name: str | None = None) -> dict[str, list[str]]:
    """Return a copy of a preset's ``{directive: [values]}`` mapping.

    Unknown names fall back to the balanced preset.
    """
    presets = load_presets()
    preset_name = name or get_settings().header_preset
    preset = presets.get(preset_name)
    if preset is None:
        logger.warning("header_preset_unknown", preset=preset_name, fallback=_FALLBACK_PRESET)
        preset = presets.get(_FALLBACK_PRESET) or {}
    return {
        normalize_directive(directive): [str(value) for value in values or []]
        for directive, values in preset.items()
    }


def _requests_strict_dynamic(values: Iterable[str]) -> bool:
    return any(strip_quotes(value).lower() == "strict-dynamic" for value in values)


def build_policy(
    directives: Mapping[str, Iterable[str]],
    *,
    nonce: str | None = None,
    report_uri: str = "",
    report_only: bool = False,
) -> ContentSecurityPolicy:
    """Build a policy, adding the response nonce to script-src and style-src.

    An inherited script-src/style-src is materialized from default-src first
    so the nonce extends it instead of replacing it. A directive that is
    effectively 'none' gets no nonce. strict-dynamic is re-applied once the
    nonce is in place.
    """
    directives = {normalize_directive(name): list(values) for name, values in directives.items()}
    if report_uri:
        directives.setdefault("report-uri", [report_uri])
    policy = ContentSecurityPolicy.from_directives(directives, report_only=report_only)
    if nonce is None:
        return policy

    for name in _NONCE_DIRECTIVES:
        if not policy.get_directive(name):
            policy.copy_default_policy(name)
        policy.add_nonce(name, nonce)
    if _requests_strict_dynamic(directives.get("script-src", [])):
        policy.set_strict_dynamic("script-src")
    return policy


def build_policy_from_preset(name: str | None = None, *, nonce: str | None = None) -> ContentSecurityPolicy:
    """Build a policy from a named preset using the configured reporting."""
    settings = get_settings()
    return build_policy(
        get_preset_directives(name),
        nonce=nonce,
        report_uri=settings.report_uri,
        report_only=settings.report_only,
    )
