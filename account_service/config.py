from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Runtime configuration values exposed to FastAPI components."""

    app_name: str = os.getenv("APP_NAME", "account-service")
    version: str = "0.1.0"
    # empty means a fresh random secret per process
    token_secret: str = os.getenv("TOKEN_SECRET", "")
    reset_token_ttl_seconds: int = int(os.getenv("RESET_TOKEN_TTL_SECONDS", "10800"))
    bcrypt_work_factor: int = int(os.getenv("BCRYPT_WORK_FACTOR", "4"))
    seed_demo_accounts: bool = _env_flag("SEED_DEMO_ACCOUNTS", "true")
    public_base_url: str = os.getenv("PUBLIC_BASE_URL", "http://127.0.0.1:3232")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings instance for the running process."""
    return Settings()
