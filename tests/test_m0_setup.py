"""
M0 Acceptance Test: Verify basic repo setup and ambient configuration.
"""
import logging
from pathlib import Path

from src.shared.errors import (
    AppErrors,
    DeserializationError,
    InvalidTargetError,
    NotFoundError,
    QuotaExceededError,
    StorageUnavailableError,
    StoreError,
    format_store_error,
)
from src.shared.settings import StoreSettings


def test_repo_structure():
    """Verify basic repository structure exists."""
    repo_root = Path(__file__).parent.parent

    # Check required files
    assert (repo_root / "pyproject.toml").exists()
    assert (repo_root / "run.py").exists()

    # Check source structure
    assert (repo_root / "src").is_dir()
    assert (repo_root / "src" / "shared").is_dir()
    assert (repo_root / "src" / "orgstate").is_dir()
    assert (repo_root / "src" / "orgstate" / "storage").is_dir()

    # Check tests directory
    assert (repo_root / "tests").is_dir()


def test_package_exports():
    import src.orgstate as orgstate

    for name in orgstate.__all__:
        assert hasattr(orgstate, name)


def test_configure_logging_sets_level():
    from src.shared.logging_config import configure_logging

    configure_logging(level=logging.DEBUG)
    assert logging.getLogger().level == logging.DEBUG
    configure_logging()
    assert logging.getLogger().level == logging.INFO


# ───────── Settings ─────────


class TestStoreSettings:
    def test_defaults(self):
        s = StoreSettings()
        assert s.storage_key == "appData"
        assert s.save_delay == 2.0
        assert s.autosave_interval == 60.0
        assert s.max_activities == 50
        assert s.backup_every == 10
        assert "searchHistory" in s.non_critical_keys

    def test_db_path_under_data_root(self, tmp_path):
        s = StoreSettings(data_root=tmp_path)
        assert s.db_path == tmp_path / "app_state.sqlite"

    def test_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("QORG_DATA_ROOT", str(tmp_path))
        monkeypatch.setenv("QORG_STORAGE_KEY", "orgData")
        monkeypatch.setenv("QORG_SAVE_DELAY", "0.5")
        monkeypatch.setenv("QORG_AUTOSAVE_INTERVAL", "30")

        s = StoreSettings.from_env()
        assert s.data_root == tmp_path
        assert s.storage_key == "orgData"
        assert s.save_delay == 0.5
        assert s.autosave_interval == 30.0
        assert s.analytics_interval == 60.0

    def test_from_env_malformed_values_fall_back(self, monkeypatch, caplog):
        caplog.set_level(logging.WARNING)
        monkeypatch.setenv("QORG_SAVE_DELAY", "soon")
        monkeypatch.setenv("QORG_ANALYTICS_INTERVAL", "-5")

        s = StoreSettings.from_env()
        assert s.save_delay == 2.0
        assert s.analytics_interval == 60.0
        assert "QORG_SAVE_DELAY" in caplog.text


# ───────── Errors ─────────


class TestErrors:
    def test_hierarchy(self):
        for cls in (StorageUnavailableError, DeserializationError, QuotaExceededError):
            assert issubclass(cls, StoreError)
        assert issubclass(NotFoundError, StoreError)
        assert issubclass(InvalidTargetError, StoreError)

    def test_not_found_carries_kind_and_id(self):
        e = NotFoundError("team", 42)
        assert e.kind == "team"
        assert e.entity_id == 42
        assert "team 42 not found" in str(e)

    def test_format_store_error(self):
        assert "Team 7 was not found" in format_store_error(NotFoundError("team", 7))
        assert format_store_error(InvalidTargetError("documents")) == AppErrors.INVALID_TARGET
        assert format_store_error(QuotaExceededError("x")) == AppErrors.STORAGE_FULL
        assert format_store_error(StorageUnavailableError("x")) == AppErrors.STORAGE_UNAVAILABLE
        assert format_store_error(DeserializationError("x")) == AppErrors.CORRUPT_DATA
        assert format_store_error(ValueError("bad stream")).startswith(AppErrors.INVALID_INPUT)
        assert format_store_error(RuntimeError("boom")) == "Unexpected error: boom"
