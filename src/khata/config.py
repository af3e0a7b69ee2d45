"""Process configuration read from the environment."""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_LOG_LEVEL = "WARNING"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    """Runtime settings.

    Attributes:
        database_url: Full SQLAlchemy URL, if configured
        database_path: SQLite file path, if configured
        business_state: Registered state of the business, for GST rate selection
        log_level: Root log level name
    """

    database_url: Optional[str] = None
    database_path: Optional[str] = None
    business_state: Optional[str] = None
    log_level: str = DEFAULT_LOG_LEVEL


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from environment variables.

    Args:
        environ: Mapping to read from (defaults to ``os.environ``)

    Returns:
        Frozen Settings instance
    """
    if environ is None:
        environ = os.environ
    return Settings(
        database_url=_clean(environ.get("KHATA_DATABASE_URL")),
        database_path=_clean(environ.get("KHATA_DB_PATH")),
        business_state=_clean(environ.get("KHATA_BUSINESS_STATE")),
        log_level=(_clean(environ.get("KHATA_LOG_LEVEL")) or DEFAULT_LOG_LEVEL).upper(),
    )


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Configure root logging once for the process."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level '{level}'")
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
