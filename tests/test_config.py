"""Unit tests for environment-driven configuration."""

import pytest

from citekit.config import BibliographyConfig, TracingConfig


@pytest.mark.unit
def test_defaults():
    cfg = BibliographyConfig()
    assert cfg.style == "ieee"
    assert cfg.locale == "en-US"
    assert cfg.scope == "cited"
    assert cfg.extra_scopes == ()


@pytest.mark.unit
def test_from_context_non_dict_returns_defaults():
    assert BibliographyConfig.from_context(None) == BibliographyConfig()


@pytest.mark.unit
def test_from_context_clamps_invalid_scope():
    cfg = BibliographyConfig.from_context({"scope": "everywhere", "style": "  "})
    assert cfg.scope == "cited"
    assert cfg.style == "ieee"


@pytest.mark.unit
def test_from_context_splits_and_dedupes_extra_scopes():
    cfg = BibliographyConfig.from_context({"extra_scopes": "shared| other |shared|", "scope": "PAGE"})
    assert cfg.extra_scopes == ("shared", "other")
    assert cfg.scope == "page"


@pytest.mark.unit
def test_from_env(monkeypatch):
    monkeypatch.setenv("CITEKIT_DEFAULT_STYLE", "author-date")
    monkeypatch.setenv("CITEKIT_DEFAULT_LOCALE", "fr-FR")
    monkeypatch.setenv("CITEKIT_DEFAULT_SCOPE", "hidden")
    monkeypatch.setenv("CITEKIT_EXTRA_SCOPES", "a|b")

    cfg = BibliographyConfig.from_env()
    assert cfg == BibliographyConfig(style="author-date", locale="fr-FR", scope="hidden", extra_scopes=("a", "b"))


@pytest.mark.unit
def test_tracing_config_reads_env(monkeypatch):
    monkeypatch.setenv("CITEKIT_TRACING_ENABLED", "yes")
    monkeypatch.setenv("CITEKIT_SERVICE_NAME", "svc")
    cfg = TracingConfig()
    assert cfg.ENABLED is True
    assert cfg.SERVICE_NAME == "svc"


@pytest.mark.unit
def test_tracing_disabled_by_default(monkeypatch):
    monkeypatch.delenv("CITEKIT_TRACING_ENABLED", raising=False)
    assert TracingConfig().ENABLED is False
