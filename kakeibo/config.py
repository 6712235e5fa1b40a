"""Runtime settings loaded from YAML with environment overrides.

Lookup order for every field: environment variable, YAML file, default.
The YAML file is taken from ``KAKEIBO_CONFIG`` when no path is given; a
missing file simply yields the defaults.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from kakeibo.engine.utils.io import read_yaml

CONFIG_ENV_FLAG: Final[str] = "KAKEIBO_CONFIG"
DATABASE_ENV_FLAG: Final[str] = "KAKEIBO_DATABASE_URL"
LOG_LEVEL_ENV_FLAG: Final[str] = "KAKEIBO_LOG_LEVEL"
JSON_LOGS_ENV_FLAG: Final[str] = "KAKEIBO_JSON_LOGS"
DEFAULT_DATABASE_URL: Final[str] = "sqlite:///" + str(Path("data") / "kakeibo.db")

__all__ = ["Settings", "load_settings"]


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Service configuration.

    Attributes:
      database_url: SQLAlchemy URL of the ledger database.
      log_level: Level name used by :func:`kakeibo.engine.logging.setup_logger`.
      json_logs: Mirror logs to the JSON audit file.
      cors_origins: Origins allowed by the API's CORS middleware.
    """

    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"
    json_logs: bool = False
    cors_origins: tuple[str, ...] = field(default_factory=lambda: ("*",))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> Settings:
        """Build settings from a parsed YAML mapping, ignoring unknown keys."""

        database = payload.get("database", {})
        database_url = DEFAULT_DATABASE_URL
        if isinstance(database, Mapping) and database.get("url"):
            database_url = str(database["url"])
        logging_section = payload.get("logging", {})
        if not isinstance(logging_section, Mapping):
            logging_section = {}
        origins = payload.get("cors_origins", ["*"])
        if isinstance(origins, str):
            origins = [origins]
        return cls(
            database_url=database_url,
            log_level=str(logging_section.get("level", "INFO")).upper(),
            json_logs=_as_bool(logging_section.get("json", False)),
            cors_origins=tuple(str(origin) for origin in origins or ["*"]),
        )

    def with_env(self, environ: Mapping[str, str] | None = None) -> Settings:
        """Return a copy with environment overrides applied."""

        env = os.environ if environ is None else environ
        return Settings(
            database_url=env.get(DATABASE_ENV_FLAG) or self.database_url,
            log_level=(env.get(LOG_LEVEL_ENV_FLAG) or self.log_level).upper(),
            json_logs=_as_bool(env[JSON_LOGS_ENV_FLAG]) if JSON_LOGS_ENV_FLAG in env else self.json_logs,
            cors_origins=self.cors_origins,
        )


def load_settings(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from ``path`` (or ``KAKEIBO_CONFIG``) and the environment.

    Raises:
      FileNotFoundError: If ``path`` is given explicitly and does not exist.
      ValueError: If the YAML document is not a mapping.
    """

    env = os.environ if environ is None else environ
    explicit = path is not None
    candidate = Path(path) if path is not None else None
    if candidate is None and env.get(CONFIG_ENV_FLAG):
        candidate = Path(env[CONFIG_ENV_FLAG])

    settings = Settings()
    if candidate is not None:
        if candidate.exists():
            data = read_yaml(candidate) or {}
            if not isinstance(data, Mapping):
                raise ValueError(f"{candidate} must contain a YAML mapping")
            settings = Settings.from_mapping(data)
        elif explicit:
            raise FileNotFoundError(candidate)
    return settings.with_env(env)
