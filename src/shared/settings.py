"""
Store settings: storage keys, autosave timing and collection caps.
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)

DEFAULT_NON_CRITICAL_KEYS = ("searchHistory", "recentViews", "uiPreferences")


@dataclass
class StoreSettings:
    """Settings shared by the state store and its collaborators."""
    data_root: Path = Path("./data")
    storage_key: str = "appData"
    corrupt_backup_key: str = "appData_corrupt_backup"
    backup_prefix: str = "appData_backup_"
    save_count_key: str = "saveCount"
    save_delay: float = 2.0
    autosave_interval: float = 60.0
    analytics_interval: float = 60.0
    backup_every: int = 10
    backup_retention: int = 5
    max_activities: int = 50
    max_notifications: int = 50
    max_reports: int = 30
    max_search_results: int = 20
    default_stream: str = "bbv"
    non_critical_keys: tuple[str, ...] = field(default=DEFAULT_NON_CRITICAL_KEYS)

    @property
    def db_path(self) -> Path:
        return self.data_root / "app_state.sqlite"

    @classmethod
    def from_env(cls) -> "StoreSettings":
        """Build settings from QORG_* environment variables."""
        settings = cls(data_root=Path(os.environ.get("QORG_DATA_ROOT", "./data")))
        settings.storage_key = os.environ.get("QORG_STORAGE_KEY", settings.storage_key)
        settings.save_delay = _env_float("QORG_SAVE_DELAY", settings.save_delay)
        settings.autosave_interval = _env_float("QORG_AUTOSAVE_INTERVAL", settings.autosave_interval)
        settings.analytics_interval = _env_float("QORG_ANALYTICS_INTERVAL", settings.analytics_interval)
        return settings


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        log.warning("Ignoring %s=%r: not a number", name, raw)
        return default
    if value <= 0:
        log.warning("Ignoring %s=%r: must be positive", name, raw)
        return default
    return value
