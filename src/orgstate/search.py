"""
Case-insensitive search across teams, personnel and tasks.

Read-only; callers debounce keystrokes themselves.
"""
from dataclasses import dataclass
from typing import Iterable, Optional

from .models import ApplicationState

MIN_QUERY_LENGTH = 2
MAX_RESULTS = 20
SEARCH_TYPES = ("teams", "personnel", "tasks")


@dataclass
class SearchResult:
    """One match from the global search box."""
    type: str  # team | personnel | task
    id: int
    title: str
    description: str
    match: str  # first field that matched
    team_id: Optional[int] = None

    def to_dict(self) -> dict:
        d = {
            "type": self.type,
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "match": self.match,
        }
        if self.team_id is not None:
            d["teamId"] = self.team_id
        return d


def normalize_query(query) -> Optional[str]:
    """Lowercased, stripped query, or None if it is too short to search."""
    if not isinstance(query, str):
        return None
    query = query.strip().lower()
    if len(query) < MIN_QUERY_LENGTH:
        return None
    return query


def _first_match(query: str, fields: Iterable[tuple[str, str]]) -> Optional[str]:
    for name, value in fields:
        if value and query in value.lower():
            return name
    return None


def search(state: ApplicationState, query: str, max_results: int = MAX_RESULTS) -> list[SearchResult]:
    """
    Search every entity type and return at most max_results tagged matches.

    Order is teams (each followed by its matching personnel), then tasks.
    """
    q = normalize_query(query)
    if q is None:
        return []

    results = []
    for team in state.teams:
        match = _first_match(q, [
            ("name", team.name),
            ("description", team.description),
            ("responsibilities", team.responsibilities),
        ])
        if match:
            results.append(SearchResult(
                type="team",
                id=team.id,
                title=team.name or "Unnamed Team",
                description=team.description,
                match=match,
            ))

        for person in team.personnel:
            match = _first_match(q, [
                ("name", person.name),
                ("role", person.role),
                ("client", person.client),
            ])
            if match:
                results.append(SearchResult(
                    type="personnel",
                    id=person.id,
                    title=person.name or "Unnamed Person",
                    description=f"{person.role or 'No role'} - {team.name or 'Unnamed Team'}",
                    match=match,
                    team_id=team.id,
                ))

    for task in state.tasks:
        match = _first_match(q, [
            ("title", task.title),
            ("description", task.description),
            ("assignee", task.assigned_to),
        ])
        if match:
            results.append(SearchResult(
                type="task",
                id=task.id,
                title=task.title or "Unnamed Task",
                description=task.description,
                match=match,
            ))

    return results[:max_results]


def search_by_type(state: ApplicationState, query: str, types: Optional[Iterable[str]] = None) -> dict:
    """
    Uncapped per-category search.

    Args:
        state: State to scan
        query: Search text (at least two characters)
        types: Subset of "teams", "personnel", "tasks" (default all)

    Returns:
        Dict with a list per category; personnel entries carry team info

    Raises:
        ValueError: If types names an unknown category
    """
    selected = tuple(types) if types is not None else SEARCH_TYPES
    unknown = [t for t in selected if t not in SEARCH_TYPES]
    if unknown:
        raise ValueError(f"Unknown search type(s): {', '.join(unknown)}")

    results = {"teams": [], "personnel": [], "tasks": []}
    q = normalize_query(query)
    if q is None:
        return results

    if "teams" in selected:
        results["teams"] = [
            team for team in state.teams
            if _first_match(q, [("name", team.name), ("description", team.description),
                                ("responsibilities", team.responsibilities)])
        ]

    if "personnel" in selected:
        for team in state.teams:
            for person in team.personnel:
                if _first_match(q, [("name", person.name), ("role", person.role), ("client", person.client)]):
                    entry = person.to_dict()
                    entry.update({"teamId": team.id, "teamName": team.name, "stream": team.stream})
                    results["personnel"].append(entry)

    if "tasks" in selected:
        results["tasks"] = [
            task for task in state.tasks
            if _first_match(q, [("title", task.title), ("description", task.description),
                                ("assignee", task.assigned_to)])
        ]

    return results
