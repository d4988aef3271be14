"""
Settings and configuration for chartview.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables at service construction time.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

__all__ = ["Settings", "create_settings_from_env", "PINNED_MAX_AGE_S", "FLOATING_MAX_AGE_S"]

# Freshness lifetimes for served files
PINNED_MAX_AGE_S = 10 * 365 * 24 * 60 * 60  # 10 years
FLOATING_MAX_AGE_S = 24 * 60 * 60  # 24 hours

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for the chartview service.

    Server Settings:
        listen_host: Interface the HTTP server binds to
        listen_port: Port the HTTP server binds to
        log_level: Root logging level

    Upstream Settings:
        default_timeout_s: Timeout applied to sources that do not set one
        user_agent: User-Agent header sent to chart repositories
        sources_file: Optional YAML file describing chart sources

    Kubernetes Settings:
        kube_enabled: Read secrets and HelmRepository records from Kubernetes
        kube_context: kubeconfig context (None = current / in-cluster)

    Cache Policy:
        pinned_max_age_s: max-age for files requested with a pinned version
        floating_max_age_s: max-age for files requested with a range or latest
    """
    # Server settings
    listen_host: str = "0.0.0.0"
    listen_port: int = 4000
    log_level: str = "INFO"

    # Upstream settings
    default_timeout_s: float = 60.0
    user_agent: str = "chartview/0.1.0"
    sources_file: Optional[str] = None

    # Kubernetes settings
    kube_enabled: bool = False
    kube_context: Optional[str] = None

    # Cache policy
    pinned_max_age_s: int = PINNED_MAX_AGE_S
    floating_max_age_s: int = FLOATING_MAX_AGE_S

    def __post_init__(self):
        """Validate settings on construction."""
        if not self.listen_host:
            raise ValueError("listen_host is required")

        if not 0 < self.listen_port < 65536:
            raise ValueError(f"listen_port must be in 1..65535, got {self.listen_port}")

        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}, got {self.log_level}")

        # Validate timeouts are positive
        if self.default_timeout_s <= 0:
            raise ValueError(f"default_timeout_s must be positive, got {self.default_timeout_s}")

        if self.pinned_max_age_s <= 0 or self.floating_max_age_s <= 0:
            raise ValueError("max-age values must be positive")

        # A pinned version is immutable by convention, so it never gets the shorter lifetime
        if self.pinned_max_age_s < self.floating_max_age_s:
            raise ValueError(
                f"pinned_max_age_s ({self.pinned_max_age_s}) must not be shorter than "
                f"floating_max_age_s ({self.floating_max_age_s})"
            )


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        Server:
        - CHARTVIEW_HOST (default: 0.0.0.0)
        - CHARTVIEW_PORT (default: 4000)
        - CHARTVIEW_LOG_LEVEL (default: INFO)

        Upstream:
        - CHARTVIEW_TIMEOUT (default: 60.0)
        - CHARTVIEW_USER_AGENT (default: chartview/0.1.0)
        - CHARTVIEW_SOURCES_FILE (optional)

        Kubernetes:
        - CHARTVIEW_KUBE_ENABLED (default: false)
        - CHARTVIEW_KUBE_CONTEXT (optional)

        Cache policy:
        - CHARTVIEW_PINNED_MAX_AGE (default: 10 years)
        - CHARTVIEW_FLOATING_MAX_AGE (default: 24 hours)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    return Settings(
        listen_host=os.getenv("CHARTVIEW_HOST", "0.0.0.0"),
        listen_port=get_int("CHARTVIEW_PORT", 4000),
        log_level=os.getenv("CHARTVIEW_LOG_LEVEL", "INFO").upper(),
        default_timeout_s=get_float("CHARTVIEW_TIMEOUT", 60.0),
        user_agent=os.getenv("CHARTVIEW_USER_AGENT", "chartview/0.1.0"),
        sources_file=os.getenv("CHARTVIEW_SOURCES_FILE") or None,
        kube_enabled=str_to_bool(os.getenv("CHARTVIEW_KUBE_ENABLED", "false")),
        kube_context=os.getenv("CHARTVIEW_KUBE_CONTEXT") or None,
        pinned_max_age_s=get_int("CHARTVIEW_PINNED_MAX_AGE", PINNED_MAX_AGE_S),
        floating_max_age_s=get_int("CHARTVIEW_FLOATING_MAX_AGE", FLOATING_MAX_AGE_S),
    )
