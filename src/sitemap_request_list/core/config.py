"""
Sitemap Request List Configuration

Environment-driven settings for fetching sitemaps and persisting list state.
"""

import os
from enum import Enum
from pathlib import Path


class Environment(str, Enum):
    """Application environment"""

    PRODUCTION = "production"
    DEVELOPMENT = "development"
    TEST = "test"


def _get_environment() -> Environment:
    """Get and validate ENVIRONMENT variable."""
    env_value = os.getenv("ENVIRONMENT", Environment.DEVELOPMENT.value)
    try:
        return Environment(env_value.lower())
    except ValueError:
        raise RuntimeError(
            f"Invalid ENVIRONMENT value: '{env_value}'. "
            "Must be 'production', 'development', or 'test'."
        )


def _get_positive_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"Invalid {name} value: '{raw}'. Must be a number.")
    if value <= 0:
        raise RuntimeError(f"Invalid {name} value: '{raw}'. Must be positive.")
    return value


class ListSettings:
    """Sitemap request list configuration"""

    # Environment
    ENVIRONMENT: Environment = _get_environment()

    # Paths
    DATA_DIR: Path = Path(os.getenv("SITEMAP_DATA_DIR", "data"))

    # Fetcher Behavior
    USER_AGENT: str = os.getenv(
        "SITEMAP_USER_AGENT", "SitemapRequestList/0.1 (+https://example.local/)"
    )
    FETCH_TIMEOUT_SEC: float = _get_positive_float("SITEMAP_FETCH_TIMEOUT_SEC", "30")
    FETCH_RETRY_ATTEMPTS: int = int(os.getenv("SITEMAP_FETCH_RETRY_ATTEMPTS", "3"))

    # State persistence
    # memory://, sqlite:///path/to/file.db or redis://host:port/db
    STATE_STORE_URL: str = os.getenv(
        "SITEMAP_STATE_STORE_URL", f"sqlite:///{DATA_DIR / 'request_list_state.db'}"
    )

    # Consumer polling (scripts/drain_sitemaps.py)
    POLL_INTERVAL_SEC: float = _get_positive_float("SITEMAP_POLL_INTERVAL_SEC", "0.05")


settings = ListSettings()
