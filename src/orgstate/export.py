"""CSV and JSON export of the organization state."""
import csv
import io
import json

from .analytics import compute_metrics
from .models import ApplicationState, _as_number

EXPORT_KINDS = ("teams", "personnel", "tasks", "analytics")


def _distribution(metrics: dict, key: str) -> list:
    # Stored metrics come from disk unvalidated
    value = metrics.get(key)
    return list(value.items()) if isinstance(value, dict) else []


def export_csv(state: ApplicationState, kind: str) -> str:
    """
    Render one section of the state as CSV text.

    Raises:
        ValueError: If kind is not one of EXPORT_KINDS
    """
    if kind not in EXPORT_KINDS:
        raise ValueError(f"Invalid export type: {kind}")

    output = io.StringIO()
    writer = csv.writer(output)

    if kind == "teams":
        writer.writerow(["Team ID", "Team Name", "Stream", "Personnel Count", "Performance"])
        for team in state.teams:
            writer.writerow([team.id, team.name, team.stream, len(team.personnel), team.performance])

    elif kind == "personnel":
        writer.writerow(["Name", "Role", "Team", "Stream", "Client"])
        for team in state.teams:
            for person in team.personnel:
                writer.writerow([person.name, person.role, team.name, team.stream, person.client])

    elif kind == "tasks":
        writer.writerow(["Task ID", "Title", "Assigned To", "Priority", "Status", "Progress", "Due Date"])
        for task in state.tasks:
            writer.writerow([
                task.id, task.title, task.assigned_to, task.priority,
                task.status, task.progress, task.due_date or "",
            ])

    else:
        metrics = state.analytics.metrics or compute_metrics(state)
        writer.writerow(["Metric", "Value"])
        writer.writerow(["Total Teams", metrics.get("totalTeams", 0)])
        writer.writerow(["Total Personnel", metrics.get("totalPersonnel", 0)])
        writer.writerow(["Average Team Size", f"{_as_number(metrics.get('averageTeamSize')):.2f}"])
        writer.writerow(["Active Teams", metrics.get("activeTeams", 0)])
        writer.writerow(["Teams Created This Month", metrics.get("teamsCreatedThisMonth", 0)])
        writer.writerow([])
        writer.writerow(["Stream", "Count"])
        for stream, count in _distribution(metrics, "streamDistribution"):
            writer.writerow([stream, count])
        writer.writerow([])
        writer.writerow(["Client", "Count"])
        for client, count in _distribution(metrics, "clientDistribution"):
            writer.writerow([client, count])

    return output.getvalue()


def export_json(state: ApplicationState) -> str:
    """Full snapshot as indented JSON."""
    return json.dumps(state.to_dict(), indent=2)
