"""Shared test fixtures."""

from __future__ import annotations

import pytest

from shield_csp.config.presets import reset_presets_cache


@pytest.fixture(autouse=True)
def _mock_settings(monkeypatch):
    """Provide default settings for all tests."""
    monkeypatch.setenv("CSP_LOG_JSON", "false")
    monkeypatch.setenv("CSP_LOG_LEVEL", "debug")
    monkeypatch.delenv("CSP_REPORT_URI", raising=False)
    monkeypatch.delenv("CSP_REPORT_ONLY", raising=False)
    monkeypatch.delenv("CSP_HEADER_PRESET", raising=False)
    monkeypatch.delenv("CSP_PRESETS_FILE", raising=False)

    # Reset cached settings and presets
    import shield_csp.config.loader as loader
    loader._settings = None
    reset_presets_cache()
    yield
    loader._settings = None
    reset_presets_cache()
