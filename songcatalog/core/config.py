import os
import logging
from dataclasses import dataclass
from functools import lru_cache

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

RELEASE_DATE_POLICIES = ("now", "reject")


def _is_enabled(env_var: str, default: bool = False) -> bool:
    """Check if a flag is enabled via environment variable."""
    value = os.getenv(env_var, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _get_float(env_var: str, default: float) -> float:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid float for {env_var}: {raw!r}, using {default}")
        return default


@dataclass
class Settings:
    database_url: str = "sqlite+aiosqlite:///./songs.db"
    database_echo: bool = False
    external_api_base_url: str = "http://localhost:8081"
    external_api_info_path: str = "/info"
    external_api_timeout: float = 10.0
    enrich_fixture_path: str = "enrichInfoSong.json"
    enrich_fixture_fallback: bool = False
    release_date_policy: str = "now"  # now, reject
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from the process environment.
        A `.env` file in the working directory is loaded first if present.
        """
        if load_dotenv(find_dotenv(usecwd=True)):
            logger.info("Environment variables loaded from .env")

        policy = os.getenv("RELEASE_DATE_POLICY", cls.release_date_policy).lower()
        if policy not in RELEASE_DATE_POLICIES:
            logger.warning(f"Unknown RELEASE_DATE_POLICY {policy!r}, falling back to 'now'")
            policy = "now"

        try:
            port = int(os.getenv("PORT", str(cls.port)))
        except ValueError:
            port = cls.port

        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=_is_enabled("DATABASE_ECHO"),
            external_api_base_url=os.getenv("EXTERNAL_API_BASE_URL", cls.external_api_base_url).rstrip("/"),
            external_api_info_path=os.getenv("EXTERNAL_API_INFO_PATH", cls.external_api_info_path),
            external_api_timeout=_get_float("EXTERNAL_API_TIMEOUT", cls.external_api_timeout),
            enrich_fixture_path=os.getenv("ENRICH_FIXTURE_PATH", cls.enrich_fixture_path),
            enrich_fixture_fallback=_is_enabled("ENRICH_FIXTURE_FALLBACK"),
            release_date_policy=policy,
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            host=os.getenv("HOST", cls.host),
            port=port,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
