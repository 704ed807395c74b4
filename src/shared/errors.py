"""
Shared errors and user-facing messages.

Persistence errors are recovered inside the store and only logged.
Mutation errors are raised to the caller so the UI can show a message.
User-visible errors must be clear and actionable.
"""


class StoreError(Exception):
    """Base class for all state store errors."""


class StorageUnavailableError(StoreError):
    """Durable storage cannot be accessed at all."""


class DeserializationError(StoreError):
    """Persisted payload is not valid structured data."""


class QuotaExceededError(StoreError):
    """A write did not fit in the storage backend."""


class NotFoundError(StoreError):
    """A mutation referenced an entity id that does not exist."""

    def __init__(self, kind: str, entity_id):
        super().__init__(f"{kind} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class InvalidTargetError(StoreError):
    """A mutation referenced a collection that does not exist."""

    def __init__(self, target: str):
        super().__init__(f"Unknown collection '{target}'")
        self.target = target


class AppErrors:
    """Centralized actionable error messages."""

    STORAGE_UNAVAILABLE = (
        "Browser storage is unavailable. Changes are kept for this session only."
    )

    STORAGE_FULL = (
        "Storage is full. Remove old backups or exported data and try again."
    )

    CORRUPT_DATA = (
        "Saved data could not be read and was backed up. Default data was loaded."
    )

    ENTITY_NOT_FOUND = (
        "The selected item no longer exists. Refresh the view and retry."
    )

    INVALID_TARGET = (
        "This action is not supported for the selected section."
    )

    INVALID_INPUT = (
        "Some fields are invalid. Check the form and try again."
    )


def format_store_error(error: Exception) -> str:
    """Map a store exception to an actionable message."""
    if isinstance(error, NotFoundError):
        return f"{error.kind.capitalize()} {error.entity_id} was not found. {AppErrors.ENTITY_NOT_FOUND}"

    if isinstance(error, InvalidTargetError):
        return AppErrors.INVALID_TARGET

    if isinstance(error, QuotaExceededError):
        return AppErrors.STORAGE_FULL

    if isinstance(error, StorageUnavailableError):
        return AppErrors.STORAGE_UNAVAILABLE

    if isinstance(error, DeserializationError):
        return AppErrors.CORRUPT_DATA

    if isinstance(error, ValueError):
        return f"{AppErrors.INVALID_INPUT} ({error})"

    return f"Unexpected error: {error}"
