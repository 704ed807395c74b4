"""
Organization entities, enum types and the root application state.

Entities serialize to the dashboard's camelCase snapshot layout. Reading is
tolerant: missing fields get defaults and null collections become empty lists,
so a partially written snapshot still produces a usable state.
"""
import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Stream(str, Enum):
    """Organizational streams a team can belong to."""
    BBV = "bbv"
    ADD = "add"
    ARB = "arb"
    SHARED = "shared"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class ActivityType(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MOVE = "move"
    SAVE = "save"


class NotificationType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


def _as_number(value: Any, default: float = 0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value)


@dataclass
class Person:
    id: int
    name: str
    role: str = ""
    client: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Person":
        return cls(
            id=_as_int(data.get("id")),
            name=_as_str(data.get("name")),
            role=_as_str(data.get("role")),
            client=_as_str(data.get("client")),
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "role": self.role, "client": self.client}


@dataclass
class Team:
    """A quality team and its personnel."""
    id: int
    name: str
    stream: str = Stream.BBV.value
    description: str = ""
    responsibilities: str = ""
    performance: float = 0
    personnel: list[Person] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict, default_stream: str = Stream.BBV.value) -> "Team":
        team_id = _as_int(data.get("id"))
        personnel = data.get("personnel")
        if not isinstance(personnel, list):
            personnel = []
        return cls(
            id=team_id,
            name=_as_str(data.get("name")) or (f"Team {team_id}" if team_id is not None else ""),
            stream=_as_str(data.get("stream")) or default_stream,
            description=_as_str(data.get("description")),
            responsibilities=_as_str(data.get("responsibilities")),
            performance=_as_number(data.get("performance")),
            personnel=[Person.from_dict(p) for p in personnel if isinstance(p, dict)],
            created_at=data.get("createdAt"),
            updated_at=data.get("lastUpdated"),
        )

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "name": self.name,
            "stream": self.stream,
            "description": self.description,
            "responsibilities": self.responsibilities,
            "performance": self.performance,
            "personnel": [p.to_dict() for p in self.personnel],
        }
        if self.created_at is not None:
            d["createdAt"] = self.created_at
        if self.updated_at is not None:
            d["lastUpdated"] = self.updated_at
        return d


@dataclass
class Task:
    """Task; assigned_to is a free-text person name, never validated."""
    id: int
    title: str
    description: str = ""
    due_date: Optional[str] = None
    priority: str = TaskPriority.MEDIUM.value
    assigned_to: str = ""
    progress: float = 0
    status: str = TaskStatus.NOT_STARTED.value

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        return cls(
            id=_as_int(data.get("id")),
            title=_as_str(data.get("title")),
            description=_as_str(data.get("description")),
            due_date=data.get("dueDate"),
            priority=_as_str(data.get("priority")) or TaskPriority.MEDIUM.value,
            assigned_to=_as_str(data.get("assignedTo")),
            progress=_as_number(data.get("progress")),
            status=_as_str(data.get("status")) or TaskStatus.NOT_STARTED.value,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "dueDate": self.due_date,
            "priority": self.priority,
            "assignedTo": self.assigned_to,
            "progress": self.progress,
            "status": self.status,
        }


@dataclass
class Activity:
    """Activity log entry. team is a team name, never validated."""
    id: int
    timestamp: str
    type: str
    description: str
    team: Optional[str] = None
    details: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Activity":
        details = data.get("details")
        return cls(
            id=_as_int(data.get("id")),
            # Seeded entries from older snapshots carry "date"
            timestamp=_as_str(data.get("timestamp") or data.get("date")),
            type=_as_str(data.get("type")),
            description=_as_str(data.get("description")),
            team=data.get("team"),
            details=details if isinstance(details, dict) else {},
        )

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "timestamp": self.timestamp,
            "type": self.type,
            "description": self.description,
            "details": self.details,
        }
        if self.team is not None:
            d["team"] = self.team
        return d


@dataclass
class Notification:
    id: int
    type: str
    title: str
    message: str
    timestamp: str
    read: bool = False
    action_type: Optional[str] = None
    action_target: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Notification":
        return cls(
            id=_as_int(data.get("id")),
            type=_as_str(data.get("type")) or NotificationType.INFO.value,
            title=_as_str(data.get("title")),
            message=_as_str(data.get("message")),
            timestamp=_as_str(data.get("timestamp") or data.get("date")),
            read=bool(data.get("read", False)),
            action_type=data.get("actionType"),
            action_target=data.get("actionTarget"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "timestamp": self.timestamp,
            "read": self.read,
            "actionType": self.action_type,
            "actionTarget": self.action_target,
        }


@dataclass
class Session:
    """Current user and UI position. is_logged_in is forced True on load."""
    is_logged_in: bool = True
    user_name: str = "User"
    user_role: str = "Administrator"
    current_user: int = 1
    current_tab: str = "dashboard"

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        defaults = cls()
        current_user = _as_int(data.get("currentUser"))
        return cls(
            is_logged_in=bool(data.get("isLoggedIn", True)),
            user_name=_as_str(data.get("userName")) or defaults.user_name,
            user_role=_as_str(data.get("userRole")) or defaults.user_role,
            current_user=current_user if current_user is not None else defaults.current_user,
            current_tab=_as_str(data.get("currentTab")) or defaults.current_tab,
        )

    def to_dict(self) -> dict:
        return {
            "isLoggedIn": self.is_logged_in,
            "userName": self.user_name,
            "userRole": self.user_role,
            "currentUser": self.current_user,
            "currentTab": self.current_tab,
        }


@dataclass
class AnalyticsState:
    """Last computed metrics and the daily report history (newest first)."""
    last_update: Optional[str] = None
    metrics: dict = field(default_factory=dict)
    reports: list[dict] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "AnalyticsState":
        metrics = data.get("metrics")
        reports = data.get("reports")
        return cls(
            last_update=data.get("lastUpdate"),
            metrics=metrics if isinstance(metrics, dict) else {},
            reports=[r for r in reports if isinstance(r, dict)] if isinstance(reports, list) else [],
        )

    def to_dict(self) -> dict:
        return {
            "lastUpdate": self.last_update,
            "metrics": self.metrics,
            "reports": self.reports,
        }


# Top-level snapshot keys owned by ApplicationState; anything else is carried in extras
STATE_KEYS = ("state", "teams", "tasks", "activities", "notifications", "analytics")


@dataclass
class ApplicationState:
    """Root aggregate holding all organizational data."""
    teams: list[Team] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    activities: list[Activity] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)
    session: Session = field(default_factory=Session)
    analytics: AnalyticsState = field(default_factory=AnalyticsState)
    extras: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict, default_stream: str = Stream.BBV.value) -> "ApplicationState":
        """Normalize a snapshot dict into typed entities."""
        session = data.get("state")
        analytics = data.get("analytics")
        state = cls(
            teams=[Team.from_dict(t, default_stream) for t in _records(data.get("teams"))],
            tasks=[Task.from_dict(t) for t in _records(data.get("tasks"))],
            activities=[Activity.from_dict(a) for a in _records(data.get("activities"))],
            notifications=[Notification.from_dict(n) for n in _records(data.get("notifications"))],
            session=Session.from_dict(session) if isinstance(session, dict) else Session(),
            analytics=AnalyticsState.from_dict(analytics) if isinstance(analytics, dict) else AnalyticsState(),
            extras={k: copy.deepcopy(v) for k, v in data.items() if k not in STATE_KEYS},
        )
        _repair_ids(state.teams)
        _repair_ids([p for t in state.teams for p in t.personnel])
        _repair_ids(state.tasks)
        _repair_ids(state.activities)
        _repair_ids(state.notifications)
        for team in state.teams:
            if not team.name:
                team.name = f"Team {team.id}"
        return state

    def to_dict(self) -> dict:
        d = copy.deepcopy(self.extras)
        d.update({
            "state": self.session.to_dict(),
            "teams": [t.to_dict() for t in self.teams],
            "tasks": [t.to_dict() for t in self.tasks],
            "activities": [a.to_dict() for a in self.activities],
            "notifications": [n.to_dict() for n in self.notifications],
            "analytics": copy.deepcopy(self.analytics.to_dict()),
        })
        return d


def _records(value: Any) -> list[dict]:
    """Keep only dict entries of a list; anything else yields an empty list."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def next_id(items) -> int:
    """Return max(existing ids) + 1, or 1 for an empty collection."""
    ids = [item.id for item in items if item.id is not None]
    return max(ids) + 1 if ids else 1


def _repair_ids(items: list) -> None:
    """Assign fresh ids to records whose id is missing or already taken."""
    seen = set()
    for item in items:
        if item.id is None or item.id in seen:
            item.id = None
            item.id = next_id(items)
        seen.add(item.id)
