"""Library configuration accessors.

Centralizes environment variable parsing & defaults. Every accessor reads
the environment on each call so tests and long-running callers can change
settings without reloading the package.
"""
from __future__ import annotations

import os
from functools import lru_cache

APP_NAME = "fbads"
APP_VERSION = "0.1.0"
APP_DESCRIPTION = "Facebook Marketing API custom & lookalike audience client"

DEFAULT_GRAPH_API_BASE = "https://graph.facebook.com"
DEFAULT_GRAPH_API_VERSION = "v19.0"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 2.0
DEFAULT_MIN_REQUEST_INTERVAL = 0.0


def _raw_env(name: str, default: str | None = None) -> str | None:
    val = os.getenv(name)
    return val if val is not None else default


def _stripped_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def env_float(name: str, default: float) -> float:
    raw = _stripped_env(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def env_int(name: str, default: int) -> int:
    raw = _stripped_env(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def log_level_name() -> str:
    return _raw_env("FBADS_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()  # type: ignore[union-attr]


def graph_api_base() -> str:
    """Base URL for the Graph API (override with FBADS_GRAPH_API_BASE).

    Stored without a trailing slash; the version segment is appended by
    the request helper.
    """
    return (_stripped_env("FBADS_GRAPH_API_BASE") or DEFAULT_GRAPH_API_BASE).rstrip("/")


def graph_api_version() -> str:
    """Graph API version path segment, e.g. ``v19.0``.

    Environment Variable: FBADS_GRAPH_API_VERSION
    A bare number such as ``19.0`` is accepted and prefixed with ``v``.
    """
    value = _stripped_env("FBADS_GRAPH_API_VERSION") or DEFAULT_GRAPH_API_VERSION
    value = value.strip("/")
    if not value.startswith("v"):
        value = f"v{value}"
    return value


def access_token() -> str | None:
    """Return FBADS_ACCESS_TOKEN from environment (no default)."""
    return _stripped_env("FBADS_ACCESS_TOKEN")


def account_id() -> str | None:
    """Return FBADS_ACCOUNT_ID from environment (no default)."""
    return _stripped_env("FBADS_ACCOUNT_ID")


def request_timeout() -> float:
    return env_float("FBADS_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)


def max_retries() -> int:
    """How many times a transient Graph API failure is retried.

    Environment Variable: FBADS_MAX_RETRIES
    ``0`` disables retries.
    """
    return env_int("FBADS_MAX_RETRIES", DEFAULT_MAX_RETRIES)


def retry_delay() -> float:
    return env_float("FBADS_RETRY_DELAY", DEFAULT_RETRY_DELAY)


def min_request_interval() -> float:
    """Minimum seconds between any two Graph API calls (FBADS_MIN_REQUEST_INTERVAL)."""
    return env_float("FBADS_MIN_REQUEST_INTERVAL", DEFAULT_MIN_REQUEST_INTERVAL)


@lru_cache(maxsize=1)
def metadata() -> dict:
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "description": APP_DESCRIPTION,
    }


def summarize_runtime_config() -> dict:
    # Token reduced to a presence flag.
    return {
        "graph_api_base": graph_api_base(),
        "graph_api_version": graph_api_version(),
        "account_id": account_id(),
        "access_token_set": access_token() is not None,
        "log_level": log_level_name(),
        "request_timeout": request_timeout(),
        "max_retries": max_retries(),
        "retry_delay": retry_delay(),
        "min_request_interval": min_request_interval(),
    }


__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "APP_DESCRIPTION",
    "env_float",
    "env_int",
    "log_level_name",
    "graph_api_base",
    "graph_api_version",
    "access_token",
    "account_id",
    "request_timeout",
    "max_retries",
    "retry_delay",
    "min_request_interval",
    "metadata",
    "summarize_runtime_config",
]
