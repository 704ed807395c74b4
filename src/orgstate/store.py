"""
Application state store: the single source of truth for organizational data.

The store loads and repairs the persisted snapshot at startup, mediates every
read and write, and persists changes through a debounced autosave, a periodic
safety-net save and a final flush on shutdown. Persistence and parse failures
are logged and absorbed; the in-memory state always stays usable.
"""
import atexit
import json
import logging
import threading
from datetime import UTC, datetime
from enum import Enum
from typing import Callable, Iterable, Optional

from src.shared.errors import (
    DeserializationError,
    InvalidTargetError,
    NotFoundError,
    StorageUnavailableError,
    StoreError,
)
from src.shared.settings import StoreSettings

from . import analytics as analytics_mod
from . import search as search_mod
from .defaults import default_snapshot
from .merge import merge_onto_clone
from .models import (
    Activity,
    ActivityType,
    ApplicationState,
    Notification,
    NotificationType,
    Person,
    Stream,
    Task,
    TaskPriority,
    TaskStatus,
    Team,
    next_id,
)
from .scheduler import AutosaveScheduler, Scheduler, ThreadingScheduler, Ticker
from .storage import KeyValueStorage, MemoryStorage, SafeStorage, SqliteStorage

log = logging.getLogger(__name__)

COLLECTIONS = ("teams", "tasks", "activities", "notifications")

TEAM_FIELDS = ("name", "stream", "description", "responsibilities", "performance")
PERSON_FIELDS = ("name", "role", "client")
TASK_FIELDS = ("title", "description", "due_date", "priority", "assigned_to", "progress", "status")


class LoadOutcome(str, Enum):
    """How load() populated the state."""
    DEFAULTS = "defaults"
    LOADED = "loaded"
    CORRUPT = "corrupt"
    UNAVAILABLE = "unavailable"


def _value(choice) -> str:
    return choice.value if isinstance(choice, Enum) else choice


def _require_text(value, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} cannot be empty")
    return value.strip()


def _optional_text(value, label: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{label} must be text")
    return value


def _check_choice(value, choices: type[Enum], label: str) -> str:
    value = _value(value)
    allowed = [c.value for c in choices]
    if value not in allowed:
        raise ValueError(f"Invalid {label} '{value}'. Expected one of: {', '.join(allowed)}")
    return value


def _check_percent(value, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{label} must be a number")
    if not 0 <= value <= 100:
        raise ValueError(f"{label} must be between 0 and 100")
    return value


def _check_timestamp(value, label: str) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, str):
        try:
            datetime.fromisoformat(value)
        except ValueError:
            raise ValueError(f"{label} must be an ISO timestamp")
        return value
    raise ValueError(f"{label} must be an ISO timestamp")


def _check_fields(fields: dict, allowed: Iterable[str], kind: str) -> None:
    unknown = sorted(set(fields) - set(allowed))
    if unknown:
        raise ValueError(f"Unknown {kind} field(s): {', '.join(unknown)}")


class ApplicationStateStore:
    """
    Owns the canonical ApplicationState for one process.

    Pass the instance explicitly to every consumer; there is no module-level
    global. Mutations raise NotFoundError / InvalidTargetError / ValueError
    without changing state; persistence never raises.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        settings: Optional[StoreSettings] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize store with the default snapshot in memory.

        Args:
            storage: Durable key-value backend
            settings: Keys, timings and caps (defaults to StoreSettings())
            scheduler: Timer source (defaults to threading timers)
            clock: Returns the current aware datetime (defaults to UTC now)
        """
        self.settings = settings or StoreSettings()
        self.backend = storage
        self.storage = SafeStorage(storage, self.settings.non_critical_keys)
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.RLock()
        self._saving = False
        self._listeners: list[Callable[[str], None]] = []
        self.save_count = 0

        scheduler = scheduler or ThreadingScheduler()
        self._autosave = AutosaveScheduler(scheduler, self.flush, self.settings.save_delay)
        self._autosave_ticker = Ticker(scheduler, self.settings.autosave_interval, self.save, name="autosave")
        self._analytics_ticker = Ticker(
            scheduler, self.settings.analytics_interval, self.refresh_analytics, name="analytics"
        )

        self.state = self._default_state()

    # ── Lifecycle ──

    def _default_state(self) -> ApplicationState:
        return ApplicationState.from_dict(default_snapshot(self._clock()), self.settings.default_stream)

    def load(self) -> LoadOutcome:
        """
        Populate the state from storage, repairing whatever is unusable.

        Returns:
            LoadOutcome describing which path was taken
        """
        key = self.settings.storage_key
        with self._lock:
            try:
                raw = self.backend.get(key)
            except (StoreError, OSError) as e:
                log.error("Error accessing storage, continuing with default data: %s", e)
                self.state = self._default_state()
                outcome = LoadOutcome.UNAVAILABLE
            else:
                if raw is None:
                    log.info("No saved data found, initializing with default data")
                    self.state = self._default_state()
                    self.flush()
                    outcome = LoadOutcome.DEFAULTS
                else:
                    try:
                        self.state = self._restore(raw)
                        outcome = LoadOutcome.LOADED
                        log.info(
                            "Loaded saved data: %d teams, %d tasks",
                            len(self.state.teams), len(self.state.tasks),
                        )
                    except DeserializationError as e:
                        log.error("Error parsing saved data: %s", e)
                        self._backup_corrupt(raw)
                        self.state = self._default_state()
                        outcome = LoadOutcome.CORRUPT

            # No real authentication behind this flag
            self.state.session.is_logged_in = True
            return outcome

    def _restore(self, raw: str) -> ApplicationState:
        try:
            parsed = json.loads(raw)
        except (ValueError, RecursionError) as e:
            raise DeserializationError(f"Invalid JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise DeserializationError(f"Expected a JSON object, got {type(parsed).__name__}")

        try:
            merged = merge_onto_clone(default_snapshot(self._clock()), parsed)
            return ApplicationState.from_dict(merged, self.settings.default_stream)
        except (TypeError, ValueError, AttributeError, RecursionError) as e:
            raise DeserializationError(f"Unusable snapshot: {e}") from e

    def _backup_corrupt(self, raw: str) -> None:
        if self.storage.set_item(self.settings.corrupt_backup_key, raw):
            log.info("Backed up corrupt data to %s", self.settings.corrupt_backup_key)
        else:
            log.error("Failed to back up corrupt data")

    def start(self) -> None:
        """Start the periodic autosave and analytics timers."""
        self._autosave_ticker.start()
        self._analytics_ticker.start()

    def close(self) -> None:
        """Stop all timers and write the state one last time."""
        self._autosave_ticker.stop()
        self._analytics_ticker.stop()
        self._autosave.cancel()
        self.flush()

    def install_shutdown_hook(self) -> None:
        """Flush on interpreter exit."""
        atexit.register(self.close)

    def reset(self) -> None:
        """Replace all data with the default snapshot and persist it."""
        self._autosave.cancel()
        with self._lock:
            self.state = self._default_state()
            self.flush()
        self._notify("all")

    # ── Persistence ──

    @property
    def save_pending(self) -> bool:
        return self._autosave.pending

    def save(self) -> None:
        """Schedule a debounced write; repeated calls restart the delay."""
        self._autosave.request()

    def flush(self) -> bool:
        """
        Write the state now, bypassing the debounce.

        Returns:
            True if the primary snapshot was written. Never raises.
        """
        with self._lock:
            if self._saving:
                log.debug("Save already in progress, skipping")
                return False
            self._saving = True
            try:
                return self._write_snapshot()
            finally:
                self._saving = False

    def _write_snapshot(self) -> bool:
        try:
            payload = json.dumps(self.state.to_dict())
        except (TypeError, ValueError, RecursionError) as e:
            log.error("Error serializing state: %s", e)
            return False

        if not self.storage.set_item(self.settings.storage_key, payload):
            log.warning("App data save failed")
            return False

        count = self._stored_save_count()
        if count % self.settings.backup_every == 0:
            self._write_backup(payload)
        self.storage.set_item(self.settings.save_count_key, str(count + 1))
        self.save_count += 1
        log.debug("App data saved (save #%d)", count + 1)
        return True

    def _stored_save_count(self) -> int:
        raw = self.storage.get_item(self.settings.save_count_key)
        try:
            return max(int(raw or "0"), 0)
        except ValueError:
            return 0

    def _write_backup(self, payload: str) -> None:
        prefix = self.settings.backup_prefix
        stamp = self._clock().isoformat().replace(":", "-")
        if not self.storage.set_item(f"{prefix}{stamp}", payload):
            return
        backups = self.storage.list_keys(prefix)
        for stale in backups[:-self.settings.backup_retention]:
            self.storage.remove_item(stale)

    def to_dict(self) -> dict:
        with self._lock:
            return self.state.to_dict()

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    # ── Change notification ──

    def add_listener(self, listener: Callable[[str], None]) -> None:
        """Register a callback receiving the name of each changed collection."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[str], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, collection: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(collection)
            except Exception:
                log.exception("State listener failed for %s", collection)

    def _changed(self, collection: str) -> None:
        self.save()
        self._notify(collection)

    # ── Ids ──

    def _now(self) -> str:
        return self._clock().isoformat()

    def _event_id(self, items: list) -> int:
        # Millisecond timestamp, bumped past the newest id on collision
        return max(int(self._clock().timestamp() * 1000), next_id(items))

    def _all_personnel(self) -> list[Person]:
        return [p for team in self.state.teams for p in team.personnel]

    def new_id(self, collection_name: str) -> int:
        """Next free id for a collection ("personnel" spans every team)."""
        with self._lock:
            if collection_name == "personnel":
                return next_id(self._all_personnel())
            if collection_name in ("activities", "notifications"):
                return self._event_id(getattr(self.state, collection_name))
            if collection_name not in COLLECTIONS:
                raise InvalidTargetError(collection_name)
            return next_id(getattr(self.state, collection_name))

    # ── Activities ──

    def record_activity(
        self,
        type,
        description: str,
        details: Optional[dict] = None,
        team: Optional[str] = None,
    ) -> Activity:
        """Prepend an activity and trim the log. Does not schedule a save."""
        with self._lock:
            activities = self.state.activities
            activity = Activity(
                id=self._event_id(activities),
                timestamp=self._now(),
                type=_value(type),
                description=description,
                team=team,
                details=dict(details or {}),
            )
            activities.insert(0, activity)
            del activities[self.settings.max_activities:]
            return activity

    def get_activities(self, limit: int = 0) -> list[Activity]:
        with self._lock:
            if limit > 0:
                return list(self.state.activities[:limit])
            return list(self.state.activities)

    # ── Generic mutation ──

    def mutate(self, collection_name: str, mutator: Callable[[list], object]):
        """
        Apply mutator to a top-level collection and schedule a save.

        Raises:
            InvalidTargetError: If the collection does not exist
        """
        if collection_name not in COLLECTIONS:
            raise InvalidTargetError(collection_name)
        with self._lock:
            result = mutator(getattr(self.state, collection_name))
        self._changed(collection_name)
        return result

    # ── Teams ──

    def get_team(self, team_id: int) -> Optional[Team]:
        with self._lock:
            for team in self.state.teams:
                if team.id == team_id:
                    return team
        return None

    def _require_team(self, team_id: int) -> Team:
        team = self.get_team(team_id)
        if team is None:
            raise NotFoundError("team", team_id)
        return team

    def _validate_team_fields(self, fields: dict) -> dict:
        _check_fields(fields, TEAM_FIELDS, "team")
        clean = {}
        for name, value in fields.items():
            if name == "name":
                clean[name] = _require_text(value, "Team name")
            elif name == "stream":
                clean[name] = _check_choice(value or self.settings.default_stream, Stream, "stream")
            elif name == "performance":
                clean[name] = _check_percent(value, "Performance")
            else:
                clean[name] = _optional_text(value, name.capitalize())
        return clean

    def add_team(
        self,
        name: str,
        stream: Optional[str] = None,
        description: str = "",
        responsibilities: str = "",
        performance: float = 0,
    ) -> Team:
        """Create a team with no personnel."""
        fields = self._validate_team_fields({
            "name": name,
            "stream": stream,
            "description": description,
            "responsibilities": responsibilities,
            "performance": performance,
        })
        now = self._now()
        with self._lock:
            team = Team(id=next_id(self.state.teams), created_at=now, updated_at=now, **fields)
            self.state.teams.append(team)
            self.record_activity(ActivityType.CREATE, f"Created team {team.name}", team=team.name)
        self._changed("teams")
        return team

    def update_team(self, team_id: int, **fields) -> Team:
        """
        Update team fields (name, stream, description, responsibilities, performance).

        Raises:
            NotFoundError: If the team does not exist
            ValueError: If a field is unknown or invalid
        """
        clean = self._validate_team_fields(fields)
        with self._lock:
            team = self._require_team(team_id)
            for name, value in clean.items():
                setattr(team, name, value)
            team.updated_at = self._now()
            self.record_activity(
                ActivityType.UPDATE, f"Updated team {team.name}",
                details={"fields": sorted(clean)}, team=team.name,
            )
        self._changed("teams")
        return team

    def remove_team(self, team_id: int) -> Team:
        """Delete a team and its personnel. Tasks assigned to them are left as is."""
        with self._lock:
            team = self._require_team(team_id)
            self.state.teams.remove(team)
            self.record_activity(
                ActivityType.DELETE, f"Deleted team {team.name}",
                details={"personnel": len(team.personnel)}, team=team.name,
            )
        self._changed("teams")
        return team

    # ── Personnel ──

    def find_person_team(self, person_id: int) -> Optional[tuple[Team, Person]]:
        with self._lock:
            for team in self.state.teams:
                for person in team.personnel:
                    if person.id == person_id:
                        return team, person
        return None

    def get_person(self, person_id: int) -> Optional[Person]:
        found = self.find_person_team(person_id)
        return found[1] if found else None

    def _require_person(self, person_id: int) -> tuple[Team, Person]:
        found = self.find_person_team(person_id)
        if found is None:
            raise NotFoundError("person", person_id)
        return found

    def _validate_person_fields(self, fields: dict) -> dict:
        _check_fields(fields, PERSON_FIELDS, "person")
        clean = {}
        for name, value in fields.items():
            if name == "name":
                clean[name] = _require_text(value, "Person name")
            else:
                clean[name] = _optional_text(value, name.capitalize())
        return clean

    def add_person(self, team_id: int, name: str, role: str = "", client: str = "") -> Person:
        """Add a person to a team; the id is unique across all teams."""
        fields = self._validate_person_fields({"name": name, "role": role, "client": client})
        with self._lock:
            team = self._require_team(team_id)
            person = Person(id=next_id(self._all_personnel()), **fields)
            team.personnel.append(person)
            team.updated_at = self._now()
            self.record_activity(ActivityType.CREATE, f"Added {person.name} to {team.name}", team=team.name)
        self._changed("teams")
        return person

    def update_person(self, person_id: int, **fields) -> Person:
        clean = self._validate_person_fields(fields)
        with self._lock:
            team, person = self._require_person(person_id)
            for name, value in clean.items():
                setattr(person, name, value)
            team.updated_at = self._now()
            self.record_activity(
                ActivityType.UPDATE, f"Updated {person.name}",
                details={"fields": sorted(clean)}, team=team.name,
            )
        self._changed("teams")
        return person

    def remove_person(self, person_id: int) -> Person:
        with self._lock:
            team, person = self._require_person(person_id)
            team.personnel.remove(person)
            team.updated_at = self._now()
            self.record_activity(ActivityType.DELETE, f"Removed {person.name} from {team.name}", team=team.name)
        self._changed("teams")
        return person

    def move_person(self, person_id: int, team_id: int) -> Person:
        """Move a person to another team, keeping their id."""
        with self._lock:
            target = self._require_team(team_id)
            source, person = self._require_person(person_id)
            if source is target:
                return person
            now = self._now()
            source.personnel.remove(person)
            target.personnel.append(person)
            source.updated_at = now
            target.updated_at = now
            self.record_activity(
                ActivityType.MOVE, f"Moved {person.name} from {source.name} to {target.name}",
                details={"from": source.id, "to": target.id}, team=target.name,
            )
        self._changed("teams")
        return person

    def personnel_with_team_info(self) -> list[dict]:
        """Flat personnel list with team id, name and stream."""
        with self._lock:
            rows = []
            for team in self.state.teams:
                for person in team.personnel:
                    row = person.to_dict()
                    row.update({"teamId": team.id, "teamName": team.name, "stream": team.stream})
                    rows.append(row)
            return rows

    # ── Tasks ──

    def get_task(self, task_id: int) -> Optional[Task]:
        with self._lock:
            for task in self.state.tasks:
                if task.id == task_id:
                    return task
        return None

    def _require_task(self, task_id: int) -> Task:
        task = self.get_task(task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        return task

    def _validate_task_fields(self, fields: dict) -> dict:
        _check_fields(fields, TASK_FIELDS, "task")
        clean = {}
        for name, value in fields.items():
            if name == "title":
                clean[name] = _require_text(value, "Task title")
            elif name == "priority":
                clean[name] = _check_choice(value, TaskPriority, "priority")
            elif name == "status":
                clean[name] = _check_choice(value, TaskStatus, "status")
            elif name == "progress":
                clean[name] = _check_percent(value, "Progress")
            elif name == "due_date":
                clean[name] = _check_timestamp(value, "Due date")
            else:
                clean[name] = _optional_text(value, name.replace("_", " ").capitalize())
        return clean

    def add_task(
        self,
        title: str,
        description: str = "",
        due_date=None,
        priority: str = TaskPriority.MEDIUM,
        assigned_to: str = "",
        progress: float = 0,
        status: str = TaskStatus.NOT_STARTED,
    ) -> Task:
        """Create a task. assigned_to is a person name and is not checked."""
        fields = self._validate_task_fields({
            "title": title,
            "description": description,
            "due_date": due_date,
            "priority": priority,
            "assigned_to": assigned_to,
            "progress": progress,
            "status": status,
        })
        with self._lock:
            task = Task(id=next_id(self.state.tasks), **fields)
            self.state.tasks.append(task)
            self.record_activity(ActivityType.CREATE, f"Created task {task.title}")
        self._changed("tasks")
        return task

    def update_task(self, task_id: int, **fields) -> Task:
        clean = self._validate_task_fields(fields)
        with self._lock:
            task = self._require_task(task_id)
            for name, value in clean.items():
                setattr(task, name, value)
            self.record_activity(
                ActivityType.UPDATE, f"Updated task {task.title}",
                details={"fields": sorted(clean)},
            )
        self._changed("tasks")
        return task

    def remove_task(self, task_id: int) -> Task:
        with self._lock:
            task = self._require_task(task_id)
            self.state.tasks.remove(task)
            self.record_activity(ActivityType.DELETE, f"Deleted task {task.title}")
        self._changed("tasks")
        return task

    # ── Notifications ──

    def add_notification(
        self,
        type,
        title: str,
        message: str,
        action_type: Optional[str] = None,
        action_target: Optional[str] = None,
    ) -> Notification:
        """Prepend an unread notification and trim to the cap."""
        kind = _check_choice(type, NotificationType, "notification type")
        title = _require_text(title, "Notification title")
        message = _optional_text(message, "Message")
        with self._lock:
            notifications = self.state.notifications
            notification = Notification(
                id=self._event_id(notifications),
                type=kind,
                title=title,
                message=message,
                timestamp=self._now(),
                action_type=action_type,
                action_target=action_target,
            )
            notifications.insert(0, notification)
            del notifications[self.settings.max_notifications:]
        self._changed("notifications")
        return notification

    def _require_notification(self, notification_id: int) -> Notification:
        for notification in self.state.notifications:
            if notification.id == notification_id:
                return notification
        raise NotFoundError("notification", notification_id)

    def mark_notification_read(self, notification_id: int) -> Notification:
        with self._lock:
            notification = self._require_notification(notification_id)
            notification.read = True
        self._changed("notifications")
        return notification

    def mark_all_notifications_read(self) -> int:
        """Mark every notification read; returns how many changed."""
        with self._lock:
            unread = [n for n in self.state.notifications if not n.read]
            for notification in unread:
                notification.read = True
        if unread:
            self._changed("notifications")
        return len(unread)

    def remove_notification(self, notification_id: int) -> Notification:
        with self._lock:
            notification = self._require_notification(notification_id)
            self.state.notifications.remove(notification)
        self._changed("notifications")
        return notification

    def unread_notification_count(self) -> int:
        with self._lock:
            return sum(1 for n in self.state.notifications if not n.read)

    # ── Session ──

    def set_current_tab(self, tab: str) -> None:
        tab = _require_text(tab, "Tab")
        with self._lock:
            self.state.session.current_tab = tab
        self._changed("session")

    # ── Read-side views ──

    def search(self, query: str, max_results: Optional[int] = None) -> list[search_mod.SearchResult]:
        with self._lock:
            return search_mod.search(self.state, query, max_results or self.settings.max_search_results)

    def search_by_type(self, query: str, types: Optional[Iterable[str]] = None) -> dict:
        with self._lock:
            return search_mod.search_by_type(self.state, query, types)

    def compute_analytics(self) -> dict:
        """Metrics and insights for the current state. Does not modify anything."""
        with self._lock:
            metrics = analytics_mod.compute_metrics(self.state, self._clock())
        return {
            "generatedAt": self._now(),
            "metrics": metrics,
            "insights": analytics_mod.generate_insights(metrics),
        }

    def refresh_analytics(self) -> dict:
        """Store fresh metrics in the analytics section and add today's report if missing."""
        now = self._clock()
        with self._lock:
            metrics = analytics_mod.compute_metrics(self.state, now)
            analytics = self.state.analytics
            analytics.metrics = metrics
            analytics.last_update = now.isoformat()
            report = analytics_mod.add_daily_report(analytics, metrics, now, self.settings.max_reports)
        if report:
            log.info("Generated daily report %s", report["id"])
        return metrics

    def latest_report(self) -> Optional[dict]:
        with self._lock:
            reports = self.state.analytics.reports
            return reports[0] if reports else None

    def team_performance(self) -> list[dict]:
        with self._lock:
            return analytics_mod.team_performance(self.state)

    def performance_benchmark(self) -> dict:
        with self._lock:
            return analytics_mod.performance_benchmark(self.state)


def open_store(
    settings: Optional[StoreSettings] = None,
    scheduler: Optional[Scheduler] = None,
) -> ApplicationStateStore:
    """
    Build a loaded store backed by SQLite under settings.data_root.

    Falls back to in-memory storage when the database cannot be opened.
    """
    settings = settings or StoreSettings.from_env()
    try:
        storage = SqliteStorage(settings.db_path)
    except StorageUnavailableError as e:
        log.warning("Durable storage unavailable, changes will not survive restart: %s", e)
        storage = MemoryStorage()
    store = ApplicationStateStore(storage, settings=settings, scheduler=scheduler)
    store.load()
    return store
