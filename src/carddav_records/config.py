from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    db_path: str = "var/carddav-records.db"
    abook_id: str = "default"
    log_level: str = "WARNING"


DEFAULT_CONF = """# carddav-records local config (TOML)
db_path = "var/carddav-records.db"
abook_id = "default"
log_level = "WARNING"
"""


def conf_path(base: Path | None = None) -> Path:
    return Path(base or os.getcwd()) / "local" / "carddav.conf"


def load_settings(base: Path | None = None) -> Settings:
    """Read local/carddav.conf, creating it with defaults on first use."""
    conf = conf_path(base)
    if not conf.exists():
        conf.parent.mkdir(parents=True, exist_ok=True)
        conf.write_text(DEFAULT_CONF, encoding="utf-8")

    settings = Settings()
    try:
        data = tomllib.loads(conf.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, OSError) as e:
        # if config is malformed, fall back to defaults
        logger.warning("ignoring unreadable config %s: %s", conf, e)
        return settings

    settings.db_path = str(data.get("db_path", settings.db_path))
    settings.abook_id = str(data.get("abook_id", settings.abook_id))
    settings.log_level = str(data.get("log_level", settings.log_level))
    return settings


def resolve_db_path(settings: Settings, base: Path | None = None) -> Path:
    p = Path(settings.db_path).expanduser()
    return p if p.is_absolute() else Path(base or os.getcwd()) / p
