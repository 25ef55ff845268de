"""Tests for header presets and per-response policy construction."""

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from shield_csp.config.presets import (
    build_policy,
    build_policy_from_preset,
    get_preset_directives,
    load_presets,
    reset_presets_cache,
)
from shield_csp.policy.errors import InvalidDirective

NONCE = "dGhpcyBpcyBhIG5vbmNlIQ=="


# ── Preset loading ──────────────────────────────────────────────────────


class TestLoadPresets:
    def test_all_presets_present(self):
        presets = load_presets()
        assert {"strict", "balanced", "permissive"} <= set(presets)

    def test_cached(self):
        assert load_presets() is load_presets()

    def test_reset_cache(self):
        first = load_presets()
        reset_presets_cache()
        assert load_presets() is not first

    def test_missing_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CSP_PRESETS_FILE", str(tmp_path / "missing.yaml"))
        with capture_logs() as logs:
            assert load_presets() == {}
        assert any(entry["event"] == "header_presets_not_found" for entry in logs)

    def test_custom_file(self, monkeypatch, tmp_path):
        path = tmp_path / "presets.yaml"
        path.write_text("balanced:\n  default-src: [\"'self'\"]\n  IMG-SRC: [\"https:\"]\n")
        monkeypatch.setenv("CSP_PRESETS_FILE", str(path))
        assert get_preset_directives("balanced") == {
            "default-src": ["'self'"],
            "img-src": ["https:"],
        }


class TestGetPresetDirectives:
    def test_strict(self):
        directives = get_preset_directives("strict")
        assert directives["default-src"] == ["'none'"]
        assert directives["script-src"] == ["'self'", "'strict-dynamic'"]

    def test_configured_default(self, monkeypatch):
        monkeypatch.setenv("CSP_HEADER_PRESET", "permissive")
        assert get_preset_directives()["default-src"] == ["'self'", "https:"]

    def test_unknown_falls_back_to_balanced(self):
        with capture_logs() as logs:
            directives = get_preset_directives("nonexistent")
        assert directives == get_preset_directives("balanced")
        assert any(entry["event"] == "header_preset_unknown" for entry in logs)

    def test_returns_copy(self):
        get_preset_directives("balanced")["img-src"].append("blob:")
        assert "blob:" not in get_preset_directives("balanced")["img-src"]


# ── Policy construction ──────────────────────────────────────────────────


class TestBuildPolicy:
    def test_balanced_without_nonce(self):
        policy = build_policy(get_preset_directives("balanced"))
        assert policy.build_header() == (
            "default-src 'self'; img-src 'self' data: https:; object-src 'none'; "
            "base-uri 'self'; form-action 'self'; frame-ancestors 'self';"
        )

    def test_balanced_with_nonce_extends_inherited_sources(self):
        policy = build_policy(get_preset_directives("balanced"), nonce=NONCE)
        assert policy.get_directive("script-src") == ("'self'", f"'nonce-{NONCE}'")
        assert policy.get_directive("style-src") == ("'self'", f"'nonce-{NONCE}'")

    def test_strict_with_nonce(self):
        policy = build_policy(get_preset_directives("strict"), nonce=NONCE)
        assert policy.build_header() == (
            "default-src 'none'; connect-src 'self'; img-src 'self'; "
            f"script-src 'self' 'nonce-{NONCE}' 'strict-dynamic'; "
            f"style-src 'self' 'nonce-{NONCE}'; "
            "base-uri 'none'; form-action 'self'; frame-ancestors 'none';"
        )

    def test_strict_without_nonce_drops_strict_dynamic(self):
        policy = build_policy(get_preset_directives("strict"))
        assert policy.get_directive("script-src") == ("'self'",)

    def test_permissive_nonce_replaces_unsafe_inline(self):
        policy = build_policy(get_preset_directives("permissive"), nonce=NONCE)
        assert policy.get_directive("script-src") == ("'self'", "https:", f"'nonce-{NONCE}'")
        assert "'unsafe-inline'" not in policy.build_header()

    def test_nonce_skipped_when_scripts_blocked(self):
        policy = build_policy({"default-src": ["'none'"], "img-src": ["'self'"]}, nonce=NONCE)
        assert policy.build_header() == "default-src 'none'; img-src 'self';"
        assert NONCE not in policy.build_header()

    def test_nonce_skipped_for_explicit_none(self):
        policy = build_policy(
            {"default-src": ["'self'"], "script-src": ["'none'"], "object-src": ["'none'"]},
            nonce=NONCE,
        )
        assert policy.get_directive("script-src") == ("'none'",)
        assert policy.get_directive("style-src") == ("'self'", f"'nonce-{NONCE}'")

    def test_report_uri(self):
        policy = build_policy({"default-src": ["'self'"]}, report_uri="/csp-report", report_only=True)
        assert policy.report_uri == "/csp-report"
        assert policy.header_name == "Content-Security-Policy-Report-Only"

    def test_explicit_report_uri_wins(self):
        policy = build_policy(
            {"default-src": ["'self'"], "report-uri": ["/explicit"]},
            report_uri="/configured",
        )
        assert policy.report_uri == "/explicit"

    def test_invalid_directive_raises(self):
        with pytest.raises(InvalidDirective):
            build_policy({"default-src": ["'self'"], "bogus-src": ["'self'"]})


class TestBuildPolicyFromPreset:
    def test_uses_configured_reporting(self, monkeypatch):
        monkeypatch.setenv("CSP_REPORT_URI", "https://report.example.com/csp")
        monkeypatch.setenv("CSP_REPORT_ONLY", "true")
        policy = build_policy_from_preset("balanced")
        assert policy.report_uri == "https://report.example.com/csp"
        assert policy.header_name == "Content-Security-Policy-Report-Only"
        assert policy.build_header().endswith("report-uri-Report-Only https://report.example.com/csp;")

    def test_enforcing_by_default(self):
        policy = build_policy_from_preset("strict", nonce=NONCE)
        assert policy.header_name == "Content-Security-Policy"
        assert "report-uri" not in policy.build_header()
