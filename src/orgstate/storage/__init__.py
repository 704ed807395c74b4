from .key_value import KeyValueStorage, MemoryStorage, SqliteStorage
from .safe_storage import SafeStorage

__all__ = ["KeyValueStorage", "MemoryStorage", "SqliteStorage", "SafeStorage"]
