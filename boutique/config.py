"""
Runtime configuration.

Values come from environment variables (a local .env file is loaded first).
Tests build Settings directly instead of touching the environment.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

STORAGE_BACKENDS = ("memory", "file", "redis")

# 30 days, matches how long a storefront keeps an abandoned cart around
DEFAULT_SNAPSHOT_TTL = 30 * 24 * 3600
DEFAULT_COUPON_TIMEOUT = 5.0


@dataclass
class Settings:
    """Engine settings."""
    storage_backend: str = "file"
    storage_dir: Path = Path.home() / ".boutique"
    storage_namespace: str = ""
    snapshot_ttl: int = DEFAULT_SNAPSHOT_TTL
    language: str = "pt"
    currency: str = "BRL"
    coupon_timeout: float = DEFAULT_COUPON_TIMEOUT
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    upstash_redis_rest_url: str = ""
    upstash_redis_rest_token: str = ""

    def __post_init__(self):
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"storage_backend must be one of {', '.join(STORAGE_BACKENDS)}, "
                f"got {self.storage_backend!r}"
            )
        self.storage_dir = Path(self.storage_dir).expanduser()


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def load_settings() -> Settings:
    """Build Settings from the environment."""
    load_dotenv()

    storage_dir = os.environ.get("BOUTIQUE_STORAGE_DIR")
    return Settings(
        storage_backend=os.environ.get("BOUTIQUE_STORAGE_BACKEND", "file").lower(),
        storage_dir=Path(storage_dir) if storage_dir else Path.home() / ".boutique",
        storage_namespace=os.environ.get("BOUTIQUE_STORAGE_NAMESPACE", ""),
        snapshot_ttl=int(_env_float("BOUTIQUE_SNAPSHOT_TTL", DEFAULT_SNAPSHOT_TTL)),
        language=os.environ.get("BOUTIQUE_LANGUAGE", "pt"),
        currency=os.environ.get("BOUTIQUE_CURRENCY", "BRL").upper(),
        coupon_timeout=_env_float("BOUTIQUE_COUPON_TIMEOUT", DEFAULT_COUPON_TIMEOUT),
        supabase_url=os.environ.get("SUPABASE_URL", ""),
        supabase_service_role_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY", ""),
        upstash_redis_rest_url=os.environ.get("UPSTASH_REDIS_REST_URL", ""),
        upstash_redis_rest_token=os.environ.get("UPSTASH_REDIS_REST_TOKEN", ""),
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get process-wide Settings (singleton)."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached Settings so the next call re-reads the environment."""
    global _settings
    _settings = None
