"""
Built-in default snapshot used on first run and whenever persisted data is unusable.

The snapshot is produced as a plain dict in the serialized layout so it can be
deep-merged with a persisted payload before normalization.
"""
import copy
from datetime import UTC, datetime, timedelta
from typing import Optional


DEFAULT_TEAMS = [
    {
        "id": 1,
        "name": "BBV Quality Team",
        "stream": "bbv",
        "description": "Quality team supporting BBV product line",
        "responsibilities": "Manage quality assurance processes, perform audits, handle documentation",
        "performance": 75,
        "personnel": [
            {"id": 1, "name": "John Smith", "role": "Quality Account Manager", "client": "Client 1"},
            {"id": 2, "name": "Jane Doe", "role": "Quality Engineer", "client": "Client 1"},
            {"id": 3, "name": "Michael Brown", "role": "Quality Coordinator", "client": "Client 2"},
        ],
    },
    {
        "id": 2,
        "name": "ADD Quality Team",
        "stream": "add",
        "description": "Quality team supporting ADD product line",
        "responsibilities": "Handle documentation, support audits, manage CAPAs",
        "performance": 82,
        "personnel": [
            {"id": 4, "name": "Sarah Johnson", "role": "Quality Account Manager", "client": "Client 3"},
            {"id": 5, "name": "Robert Williams", "role": "Document Control Specialist", "client": "Client 3"},
        ],
    },
    {
        "id": 3,
        "name": "ARB Quality Team",
        "stream": "arb",
        "description": "Quality team supporting ARB product line",
        "responsibilities": "Quality oversight, compliance management, audit support",
        "performance": 90,
        "personnel": [
            {"id": 6, "name": "Emily Davis", "role": "Quality Lead", "client": "Client 4"},
            {"id": 7, "name": "James Wilson", "role": "Quality Specialist", "client": "Client 5"},
        ],
    },
]


def default_snapshot(now: Optional[datetime] = None) -> dict:
    """
    Build a fresh default snapshot.

    Args:
        now: Reference time for relative dates (defaults to current UTC time)

    Returns:
        New dict in the serialized layout; callers may mutate it freely
    """
    now = now or datetime.now(UTC)
    return {
        "state": {
            "isLoggedIn": True,
            "userName": "User",
            "userRole": "Administrator",
            "currentUser": 1,
            "currentTab": "dashboard",
        },
        "teams": copy.deepcopy(DEFAULT_TEAMS),
        "activities": [
            {
                "id": 1,
                "timestamp": now.isoformat(),
                "type": "update",
                "team": "BBV Quality Team",
                "description": "Updated team structure",
                "details": {"changes": ["Added new team member"], "impact": "Improved capacity"},
            },
            {
                "id": 2,
                "timestamp": (now - timedelta(days=2)).isoformat(),
                "type": "create",
                "team": "ADD Quality Team",
                "description": "Created new SOP",
                "details": {"changes": ["Document created and approved"], "impact": "Enhanced compliance"},
            },
        ],
        "tasks": [
            {
                "id": 1,
                "title": "Complete quarterly audit",
                "description": "Perform quarterly audit of quality systems",
                "dueDate": (now + timedelta(days=10)).isoformat(),
                "priority": "high",
                "assignedTo": "John Smith",
                "progress": 25,
                "status": "in-progress",
            },
            {
                "id": 2,
                "title": "Update SOP documentation",
                "description": "Review and update standard operating procedures",
                "dueDate": (now + timedelta(days=5)).isoformat(),
                "priority": "medium",
                "assignedTo": "Sarah Johnson",
                "progress": 60,
                "status": "in-progress",
            },
        ],
        "notifications": [],
        "analytics": {
            "lastUpdate": now.isoformat(),
            "metrics": {},
            "reports": [],
        },
    }
