"""Runtime configuration for seatorder."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .errors import InvalidSettingError

DEFAULT_ENV = "development"

# Collection name prefix per APP_ENV; unknown environments use the development prefix
COLLECTION_PREFIXES = {
    "production": "",
    "staging": "stg_",
    "test": "test_",
    "development": "dev_",
}

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_default_data_dir = Path.cwd() / "data"

logger = logging.getLogger("seatorder.config")


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidSettingError(name, raw, "an integer") from None


@dataclass(frozen=True)
class Settings:
    """Application settings, built once at startup and passed explicitly."""

    env: str = DEFAULT_ENV
    jwt_secret: str = ""
    data_dir: Path = _default_data_dir
    frontend_url: str = ""
    log_level: str = ""
    session_token_ttl_minutes: int = 60
    manager_token_ttl_hours: int = 24 * 7

    @property
    def collection_prefix(self) -> str:
        return COLLECTION_PREFIXES.get(self.env, COLLECTION_PREFIXES[DEFAULT_ENV])

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def is_test(self) -> bool:
        return self.env == "test"

    def collection_name(self, base_name: str) -> str:
        """Return base_name with the environment prefix applied."""
        return self.collection_prefix + base_name


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Build Settings from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ).

    Raises:
        InvalidSettingError: If a numeric variable isn't an integer.
    """
    env = os.environ if environ is None else environ

    app_env = env.get("APP_ENV", "")
    if not app_env:
        app_env = DEFAULT_ENV
        logger.info("APP_ENV is not set. Defaulting to '%s'", DEFAULT_ENV)

    data_dir = env.get("SEATORDER_DATA_DIR")

    settings = Settings(
        env=app_env,
        jwt_secret=env.get("JWT_SECRET", ""),
        data_dir=Path(data_dir) if data_dir else _default_data_dir,
        frontend_url=env.get("FRONTEND_URL", ""),
        log_level=env.get("LOG_LEVEL", ""),
        session_token_ttl_minutes=_int_setting(env, "SESSION_TOKEN_TTL_MINUTES", 60),
        manager_token_ttl_hours=_int_setting(env, "MANAGER_TOKEN_TTL_HOURS", 24 * 7),
    )
    logger.info(
        "Application running in '%s' environment. Collection prefix: '%s'",
        settings.env,
        settings.collection_prefix,
    )
    return settings


def resolve_log_level(settings: Settings) -> int:
    """Production logs errors only, test logs everything, otherwise LOG_LEVEL decides."""
    if settings.is_production:
        return logging.ERROR
    if settings.is_test:
        return logging.DEBUG
    return LOG_LEVELS.get(settings.log_level.lower(), logging.ERROR)


def configure_logging(settings: Settings) -> None:
    """Configure the `seatorder` logger hierarchy."""
    level = resolve_log_level(settings)
    root = logging.getLogger("seatorder")
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        root.addHandler(handler)
    logger.debug("Log level set to %s", logging.getLevelName(level))
