from .models import (
    Activity,
    ActivityType,
    AnalyticsState,
    ApplicationState,
    Notification,
    NotificationType,
    Person,
    Session,
    Stream,
    Task,
    TaskPriority,
    TaskStatus,
    Team,
)
from .store import ApplicationStateStore, LoadOutcome, open_store

__all__ = [
    "Activity",
    "ActivityType",
    "AnalyticsState",
    "ApplicationState",
    "ApplicationStateStore",
    "LoadOutcome",
    "Notification",
    "NotificationType",
    "Person",
    "Session",
    "Stream",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "Team",
    "open_store",
]
