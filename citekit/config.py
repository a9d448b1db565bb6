"""
Central Configuration
=====================
Environment-driven settings shared by the tracing layer, the aggregation
index and the citation renderer.

Every value has a default so the package works without any environment
setup. Index-level overrides (style, scope, extra scopes) stored on an
index node take precedence over these defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> Tuple[str, ...]:
    raw = os.getenv(name, "")
    return tuple(part.strip() for part in raw.split("|") if part.strip())


@dataclass(frozen=True)
class TracingConfig:
    """OpenTelemetry export settings."""

    SERVICE_NAME: str = field(default_factory=lambda: os.getenv("CITEKIT_SERVICE_NAME", "citekit"))
    OTLP_ENDPOINT: str = field(
        default_factory=lambda: os.getenv("CITEKIT_OTLP_ENDPOINT", "http://localhost:4318/v1/traces")
    )
    ENABLED: bool = field(default_factory=lambda: _env_bool("CITEKIT_TRACING_ENABLED", False))


_VALID_SCOPES = ("cited", "page", "hidden")


@dataclass(frozen=True)
class BibliographyConfig:
    """Defaults used when an index does not override them."""

    style: str = "ieee"
    locale: str = "en-US"
    scope: str = "cited"
    extra_scopes: Tuple[str, ...] = ()

    @classmethod
    def from_env(cls) -> "BibliographyConfig":
        return cls.from_context(
            {
                "style": os.getenv("CITEKIT_DEFAULT_STYLE"),
                "locale": os.getenv("CITEKIT_DEFAULT_LOCALE"),
                "scope": os.getenv("CITEKIT_DEFAULT_SCOPE"),
                "extra_scopes": list(_env_list("CITEKIT_EXTRA_SCOPES")),
            }
        )

    @classmethod
    def from_context(cls, context: Dict[str, Any]) -> "BibliographyConfig":
        if not isinstance(context, dict):
            return cls()

        def _as_str(val: Any, default: str) -> str:
            if isinstance(val, str) and val.strip():
                return val.strip()
            return default

        style = _as_str(context.get("style"), cls.style)
        locale = _as_str(context.get("locale"), cls.locale)

        scope = _as_str(context.get("scope"), cls.scope).lower()
        if scope not in _VALID_SCOPES:
            scope = cls.scope

        raw_scopes = context.get("extra_scopes")
        extra: List[str] = []
        if isinstance(raw_scopes, str):
            raw_scopes = raw_scopes.split("|")
        if isinstance(raw_scopes, (list, tuple)):
            for item in raw_scopes:
                if isinstance(item, str) and item.strip() and item.strip() not in extra:
                    extra.append(item.strip())

        return cls(style=style, locale=locale, scope=scope, extra_scopes=tuple(extra))


TRACING = TracingConfig()
BIBLIOGRAPHY = BibliographyConfig.from_env()
