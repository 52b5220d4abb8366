"""Configuration utilities.

All settings come from environment variables (a local ``.env`` is loaded
by the app entry point). Durations follow the variable names:
``EPREL_TIMEOUT`` is in milliseconds, ``CACHE_TTL`` in seconds.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from eprel_proxy.domain.shared.errors import ConfigurationError

ENVIRONMENTS = ("development", "production", "test")


@dataclass(frozen=True)
class Settings:
    eprel_api_key: str = ""
    eprel_base_url: str = "https://eprel.ec.europa.eu/api/public"
    eprel_product_group: str = "smartphonestablets20231669"
    eprel_timeout_ms: int = 10_000
    cache_ttl_s: int = 300
    port: int = 3002
    environment: str = "development"
    allowed_origins: tuple[str, ...] = ("http://localhost:5173",)
    log_level: str = "INFO"

    @property
    def eprel_timeout_s(self) -> float:
        return self.eprel_timeout_ms / 1000

    @property
    def cache_ttl_ms(self) -> int:
        return self.cache_ttl_s * 1000

    def masked_api_key(self) -> Optional[str]:
        """API key safe for logs: ``abcd...wxyz`` or ``***`` when short."""
        key = self.eprel_api_key
        if not key:
            return None
        if len(key) > 8:
            return key[:4] + "..." + key[-4:]
        return "***"


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        env: Mapping to read from, defaults to ``os.environ``

    Returns:
        Validated settings

    Raises:
        ConfigurationError: On non-numeric or non-positive durations/port,
            or an unknown APP_ENV
    """
    env = os.environ if env is None else env

    environment = env.get("APP_ENV", "development").strip().lower()
    if environment not in ENVIRONMENTS:
        raise ConfigurationError(f"APP_ENV must be one of {', '.join(ENVIRONMENTS)}, got {environment!r}")

    origins = tuple(
        o.strip() for o in env.get("ALLOWED_ORIGINS", "http://localhost:5173").split(",") if o.strip()
    )

    return Settings(
        eprel_api_key=env.get("EPREL_API_KEY", ""),
        eprel_base_url=env.get("EPREL_BASE_URL", Settings.eprel_base_url),
        eprel_product_group=env.get("EPREL_PRODUCT_GROUP", Settings.eprel_product_group),
        eprel_timeout_ms=_positive_int(env, "EPREL_TIMEOUT", 10_000),
        cache_ttl_s=_positive_int(env, "CACHE_TTL", 300),
        port=_positive_int(env, "PORT", 3002),
        environment=environment,
        allowed_origins=origins,
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )
