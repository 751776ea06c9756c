"""
Service metadata settings for the gateway process.

Kept apart from ``GatewayConfig``: these values only drive logging and the
ops app metadata, never request routing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from gateway.core.config import parse_bool_value
from gateway.core.env import HasEnv, OsEnv


@dataclass(frozen=True)
class ApplicationSettings:
    """Immutable application settings derived from environment variables."""

    environment: str
    version: str
    debug: bool


def get_application_settings(env: Optional[HasEnv] = None) -> ApplicationSettings:
    """Load application settings from environment with defaults.

    Returns
    -------
    ApplicationSettings
        Frozen settings object safe to share across the application.
    """
    env = env if env is not None else OsEnv()
    environment = env.getenv("APP_ENV") or "development"
    version = env.getenv("APP_VERSION") or "0.1.0"
    raw_debug = env.getenv("APP_DEBUG")
    debug = parse_bool_value(raw_debug) if raw_debug else environment != "production"

    return ApplicationSettings(
        environment=environment,
        version=version,
        debug=debug,
    )
