"""
Non-throwing wrapper around a storage backend.

Every failure is logged and reported as a falsy return value. A write that
hits the quota evicts the non-critical keys and is retried exactly once.
"""
import logging
from typing import Iterable, Optional

from src.shared.errors import QuotaExceededError, StoreError
from src.shared.settings import DEFAULT_NON_CRITICAL_KEYS

from .key_value import KeyValueStorage

log = logging.getLogger(__name__)


class SafeStorage:
    """Storage access that never raises."""

    def __init__(self, backend: KeyValueStorage, non_critical_keys: Iterable[str] = DEFAULT_NON_CRITICAL_KEYS):
        self.backend = backend
        self.non_critical_keys = tuple(non_critical_keys)

    def get_item(self, key: str) -> Optional[str]:
        try:
            return self.backend.get(key)
        except StoreError as e:
            log.error("Error getting item %s from storage: %s", key, e)
            return None

    def set_item(self, key: str, value: str) -> bool:
        try:
            self.backend.set(key, value)
            return True
        except QuotaExceededError as e:
            log.warning("Storage quota exceeded writing %s: %s", key, e)
        except StoreError as e:
            log.error("Error setting item %s in storage: %s", key, e)
            return False

        self.evict_non_critical()
        try:
            self.backend.set(key, value)
            return True
        except StoreError as e:
            log.error("Failed to save %s after clearing space: %s", key, e)
            return False

    def remove_item(self, key: str) -> bool:
        try:
            self.backend.remove(key)
            return True
        except StoreError as e:
            log.error("Error removing item %s from storage: %s", key, e)
            return False

    def list_keys(self, prefix: str = "") -> list[str]:
        """List keys with prefix; empty when the backend cannot list."""
        try:
            return self.backend.keys(prefix)
        except NotImplementedError:
            return []
        except StoreError as e:
            log.error("Error listing keys with prefix %s: %s", prefix, e)
            return []

    def evict_non_critical(self) -> None:
        """Remove auxiliary keys that are safe to lose."""
        log.info("Evicting non-critical keys: %s", ", ".join(self.non_critical_keys))
        for key in self.non_critical_keys:
            self.remove_item(key)
