"""
Launch script for the Quality Organization state store.

Opens (or creates) the data store, prints an overview and optionally exports
one section as CSV. Settings come from QORG_* environment variables.

Usage:
    python run.py
    python run.py export teams|personnel|tasks|analytics|json
"""
import os
import sys

from src.orgstate.export import EXPORT_KINDS, export_csv, export_json
from src.orgstate.store import ApplicationStateStore, open_store
from src.shared.logging_config import configure_logging
from src.shared.settings import StoreSettings


def _print(msg: str) -> None:
    print(f"[run] {msg}")


def check_data_root(settings: StoreSettings) -> bool:
    """Check that the data directory exists (or can be created) and is writable."""
    try:
        settings.data_root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        _print(f"ERROR: cannot create {settings.data_root}: {e}")
        return False
    if not os.access(settings.data_root, os.W_OK):
        _print(f"ERROR: {settings.data_root} is not writable.")
        return False
    return True


def print_overview(store: ApplicationStateStore) -> None:
    state = store.state
    personnel = sum(len(team.personnel) for team in state.teams)
    _print(f"Teams: {len(state.teams)}  Personnel: {personnel}  Tasks: {len(state.tasks)}")
    _print(f"Unread notifications: {store.unread_notification_count()}")
    for insight in store.compute_analytics()["insights"]:
        _print(f"  [{insight['type']}] {insight['message']}")


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    configure_logging()

    export_kind = None
    if argv:
        if len(argv) != 2 or argv[0] != "export" or argv[1] not in EXPORT_KINDS + ("json",):
            _print(__doc__.strip().splitlines()[-1].strip())
            return 2
        export_kind = argv[1]

    settings = StoreSettings.from_env()
    _print(f"Data root: {settings.data_root}")
    if not check_data_root(settings):
        _print("Continuing in memory only. Changes will not be saved.")

    store = open_store(settings)
    try:
        if export_kind == "json":
            sys.stdout.write(export_json(store.state) + "\n")
        elif export_kind:
            sys.stdout.write(export_csv(store.state, export_kind))
        else:
            print_overview(store)
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
