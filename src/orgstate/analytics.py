"""
Derived organization metrics, rule-based insights and daily reports.

Everything here reads the state; only add_daily_report touches the
analytics history, never the canonical collections.
"""
import statistics
from datetime import UTC, datetime, timedelta
from typing import Optional

from .models import AnalyticsState, ApplicationState, TaskStatus

REPORT_TITLE = "Organization Status Report"
ACTIVE_WINDOW_DAYS = 30


def _parse_ts(value) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _percent(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole else 0


def compute_metrics(state: ApplicationState, now: Optional[datetime] = None) -> dict:
    """Compute the metrics snapshot for the current teams and tasks."""
    now = now or datetime.now(UTC)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    active_since = now - timedelta(days=ACTIVE_WINDOW_DAYS)

    stream_counts: dict[str, int] = {}
    client_counts: dict[str, int] = {}
    role_counts: dict[str, int] = {}
    personnel_count = 0
    teams_this_month = 0
    active_teams = 0

    for team in state.teams:
        stream = team.stream or "unknown"
        stream_counts[stream] = stream_counts.get(stream, 0) + 1

        personnel_count += len(team.personnel)
        for person in team.personnel:
            if person.client:
                client_counts[person.client] = client_counts.get(person.client, 0) + 1
            role = person.role or "Unknown"
            role_counts[role] = role_counts.get(role, 0) + 1

        created = _parse_ts(team.created_at)
        if created and created >= month_start:
            teams_this_month += 1

        updated = _parse_ts(team.updated_at)
        if updated and updated >= active_since:
            active_teams += 1

    total_teams = len(state.teams)
    total_tasks = len(state.tasks)
    tasks_by_status = {s.value: 0 for s in TaskStatus}
    for task in state.tasks:
        tasks_by_status[task.status] = tasks_by_status.get(task.status, 0) + 1
    completed = tasks_by_status.get(TaskStatus.COMPLETED.value, 0)

    performances = [team.performance for team in state.teams]

    return {
        "totalTeams": total_teams,
        "totalPersonnel": personnel_count,
        "totalTasks": total_tasks,
        "streamDistribution": stream_counts,
        "clientDistribution": client_counts,
        "roleDistribution": role_counts,
        "averageTeamSize": personnel_count / total_teams if total_teams else 0,
        "averagePerformance": sum(performances) / total_teams if total_teams else 0,
        "taskCompletionRate": _percent(completed, total_tasks),
        "tasksByStatus": tasks_by_status,
        "teamsCreatedThisMonth": teams_this_month,
        "activeTeams": active_teams,
    }


def _insight(kind: str, message: str, recommendation: Optional[str]) -> dict:
    return {"type": kind, "message": message, "recommendation": recommendation}


def generate_insights(metrics: dict) -> list[dict]:
    """Apply the organization health rules to a metrics snapshot."""
    insights = []
    total_teams = metrics.get("totalTeams", 0)
    total_personnel = metrics.get("totalPersonnel", 0)

    avg_size = metrics.get("averageTeamSize", 0)
    if avg_size > 0:
        if avg_size < 3:
            insights.append(_insight(
                "warning",
                "Average team size is below optimal levels (< 3 members)",
                "Consider consolidating teams or adding more personnel",
            ))
        elif avg_size > 10:
            insights.append(_insight(
                "warning",
                "Some teams may be too large (avg > 10 members)",
                "Consider splitting larger teams for better management",
            ))
        else:
            insights.append(_insight("success", "Team sizes are within optimal range", None))

    streams = metrics.get("streamDistribution") or {}
    if len(streams) == 1:
        only = next(iter(streams))
        insights.append(_insight(
            "warning",
            f"All teams are in a single stream: {only}",
            "Consider diversifying streams for better coverage",
        ))
    for stream, count in streams.items():
        if total_teams > 5 and _percent(count, total_teams) < 10:
            insights.append(_insight(
                "info",
                f"Stream {stream} has very few teams ({count})",
                "Review resource allocation for this stream",
            ))

    clients = metrics.get("clientDistribution") or {}
    if len(clients) == 1 and total_personnel > 10:
        insights.append(_insight(
            "warning",
            "All personnel are assigned to a single client",
            "Diversify client assignments to reduce dependency risk",
        ))
    if clients and total_personnel:
        top_client, top_count = max(clients.items(), key=lambda item: item[1])
        share = _percent(top_count, total_personnel)
        if share > 70:
            insights.append(_insight(
                "warning",
                f"{top_client} has {share:.0f}% of all personnel",
                "High concentration risk. Consider balancing client assignments.",
            ))

    new_teams = metrics.get("teamsCreatedThisMonth", 0)
    if new_teams > 0:
        growth = _percent(new_teams, total_teams)
        if growth > 20:
            insights.append(_insight(
                "success",
                f"Strong growth: {new_teams} new teams this month ({growth:.0f}%)",
                "Ensure proper onboarding and resource allocation",
            ))
    elif total_teams > 5:
        insights.append(_insight(
            "info",
            "No new teams created this month",
            "Review growth strategy and expansion opportunities",
        ))

    active = metrics.get("activeTeams", 0)
    if active > 0:
        active_share = _percent(active, total_teams)
        if active_share < 50 and total_teams > 5:
            insights.append(_insight(
                "warning",
                f"Only {active_share:.0f}% of teams have recent activity",
                "Check for inactive teams and consider reorganization",
            ))
        elif active_share > 80:
            insights.append(_insight(
                "success",
                f"Strong team activity: {active_share:.0f}% of teams active",
                None,
            ))

    return insights


def add_daily_report(
    analytics: AnalyticsState,
    metrics: dict,
    now: Optional[datetime] = None,
    max_reports: int = 30,
) -> Optional[dict]:
    """
    Prepend a report unless one already exists for today.

    Returns:
        The new report, or None if today's report already exists
    """
    now = now or datetime.now(UTC)
    if analytics.reports:
        last = _parse_ts(analytics.reports[0].get("timestamp"))
        if last and last.astimezone(now.tzinfo or UTC).date() == now.date():
            return None

    report = {
        "id": int(now.timestamp() * 1000),
        "timestamp": now.isoformat(),
        "title": REPORT_TITLE,
        "metrics": dict(metrics),
        "insights": generate_insights(metrics),
    }
    analytics.reports.insert(0, report)
    del analytics.reports[max_reports:]
    return report


def team_performance(state: ApplicationState) -> list[dict]:
    """Per-team performance with task completion of tasks assigned to its members."""
    rows = []
    for team in state.teams:
        names = {p.name for p in team.personnel}
        team_tasks = [t for t in state.tasks if t.assigned_to and t.assigned_to in names]
        done = sum(1 for t in team_tasks if t.status == TaskStatus.COMPLETED.value)
        completion = round(_percent(done, len(team_tasks)), 1)
        staffed = 100 if team.personnel else 0
        rows.append({
            "id": team.id,
            "name": team.name,
            "stream": team.stream,
            "performance": team.performance,
            "personnelCount": len(team.personnel),
            "taskCount": len(team_tasks),
            "taskCompletionRate": completion,
            "overallScore": round(team.performance * 0.6 + staffed * 0.2 + completion * 0.2, 1),
        })
    return rows


def performance_benchmark(state: ApplicationState) -> dict:
    """Average, min, max and median team performance."""
    values = sorted(team.performance for team in state.teams)
    if not values:
        return {"average": 0, "min": 0, "max": 0, "median": 0}
    return {
        "average": sum(values) / len(values),
        "min": values[0],
        "max": values[-1],
        "median": statistics.median(values),
    }
