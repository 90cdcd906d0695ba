from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import streamlit as st

from .errors import ConfigurationError


DEFAULT_API_URL = "https://api.agro-insight.com/api"
DEFAULT_CSRF_URL = "https://api.agro-insight.com/csrf"


@dataclass(frozen=True)
class AppConfig:
    api_url: str = DEFAULT_API_URL
    csrf_url: str = DEFAULT_CSRF_URL
    auth_token: Optional[str] = None
    request_timeout: float = 30.0
    csrf_ttl_seconds: float = 300.0
    currency: str = "USD"
    page_size: int = 9
    json_logs: bool = True

    @property
    def animals_url(self) -> str:
        """Base URL of the per-animal resources."""
        return f"{self.api_url.rstrip('/')}/animals"


def _read_secrets() -> dict:
    # Accessing st.secrets raises FileNotFoundError if no secrets file exists.
    try:
        raw_secrets = st.secrets  # type: ignore[attr-defined]
    except FileNotFoundError:
        raw_secrets = {}
    except Exception:
        raw_secrets = {}

    try:
        return dict(raw_secrets) if raw_secrets else {}
    except Exception:
        return {}


def _as_float(value, key: str, default: float) -> float:
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be a number, got {value!r}")
    if number < 0:
        raise ConfigurationError(f"{key} must not be negative")
    return number


def load_config(secrets: Optional[dict] = None) -> AppConfig:
    """Load configuration from Streamlit secrets with safe defaults.

    Handles missing `.streamlit/secrets.toml` gracefully, returning defaults.
    An explicit `secrets` mapping skips the Streamlit lookup.
    """
    if secrets is None:
        secrets = _read_secrets()

    api_section = secrets.get("api", {}) if isinstance(secrets, dict) else {}
    app_section = secrets.get("app", {}) if isinstance(secrets, dict) else {}

    page_size = app_section.get("page_size", 9)
    try:
        page_size = int(page_size)
    except (TypeError, ValueError):
        raise ConfigurationError(f"page_size must be an integer, got {page_size!r}")
    if page_size < 1:
        raise ConfigurationError("page_size must be at least 1")

    return AppConfig(
        api_url=api_section.get("api_url", DEFAULT_API_URL),
        csrf_url=api_section.get("csrf_url", DEFAULT_CSRF_URL),
        auth_token=api_section.get("auth_token") or None,
        request_timeout=_as_float(api_section.get("request_timeout"), "request_timeout", 30.0),
        csrf_ttl_seconds=_as_float(api_section.get("csrf_ttl_seconds"), "csrf_ttl_seconds", 300.0),
        currency=app_section.get("currency", "USD"),
        page_size=page_size,
        json_logs=bool(app_section.get("json_logs", True)),
    )
