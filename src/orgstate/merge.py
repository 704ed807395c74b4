"""
Deep merge of a persisted snapshot onto a fresh copy of the default snapshot.

Dict onto dict recurses; anything else overwrites. Lists are leaves, so a
persisted collection replaces the default one as a whole and deleted records
stay deleted.
"""
import copy


def deep_merge(target: dict, source: dict) -> dict:
    """Merge source into target in place and return target."""
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            deep_merge(target[key], value)
        else:
            target[key] = value
    return target


def merge_onto_clone(default: dict, incoming: dict) -> dict:
    """Deep merge incoming onto a deep copy of default; default is never mutated."""
    return deep_merge(copy.deepcopy(default), copy.deepcopy(incoming))
