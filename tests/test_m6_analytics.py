"""
M6 Acceptance Tests: Metrics, insights, daily reports and benchmarks.
"""
from datetime import UTC, datetime

import pytest

from src.orgstate.analytics import (
    add_daily_report,
    compute_metrics,
    generate_insights,
    performance_benchmark,
    team_performance,
)
from src.orgstate.defaults import default_snapshot
from src.orgstate.models import AnalyticsState, ApplicationState

NOW = datetime(2026, 3, 15, 10, 0, tzinfo=UTC)


@pytest.fixture
def state():
    return ApplicationState.from_dict(default_snapshot(NOW))


def _team(team_id, stream="bbv", personnel=0, client="Client 1", **extra):
    team = {
        "id": team_id,
        "name": f"Team {team_id}",
        "stream": stream,
        "personnel": [
            {"id": team_id * 100 + i, "name": f"P{team_id}-{i}", "role": "Engineer", "client": client}
            for i in range(personnel)
        ],
    }
    team.update(extra)
    return team


# ───────── Metrics ─────────


class TestComputeMetrics:
    def test_default_organization(self, state):
        m = compute_metrics(state, NOW)

        assert m["totalTeams"] == 3
        assert m["totalPersonnel"] == 7
        assert m["totalTasks"] == 2
        assert m["streamDistribution"] == {"bbv": 1, "add": 1, "arb": 1}
        assert m["clientDistribution"] == {
            "Client 1": 2, "Client 2": 1, "Client 3": 2, "Client 4": 1, "Client 5": 1,
        }
        assert m["roleDistribution"]["Quality Account Manager"] == 2
        assert m["averageTeamSize"] == pytest.approx(7 / 3)
        assert m["averagePerformance"] == pytest.approx((75 + 82 + 90) / 3)
        assert m["taskCompletionRate"] == 0
        assert m["tasksByStatus"] == {"not-started": 0, "in-progress": 2, "completed": 0}
        assert m["teamsCreatedThisMonth"] == 0
        assert m["activeTeams"] == 0

    def test_empty_organization(self):
        m = compute_metrics(ApplicationState(), NOW)
        assert m["totalTeams"] == 0
        assert m["averageTeamSize"] == 0
        assert m["averagePerformance"] == 0
        assert m["taskCompletionRate"] == 0

    def test_growth_and_activity_windows(self):
        state = ApplicationState.from_dict({"teams": [
            _team(1, createdAt="2026-03-02T08:00:00+00:00", lastUpdated="2026-03-10T08:00:00+00:00"),
            _team(2, createdAt="2026-02-20T08:00:00+00:00", lastUpdated="2026-01-01T08:00:00+00:00"),
            _team(3, createdAt="not a date"),
        ]})
        m = compute_metrics(state, NOW)
        assert m["teamsCreatedThisMonth"] == 1
        assert m["activeTeams"] == 1

    def test_completion_rate(self, state):
        state.tasks[0].status = "completed"
        assert compute_metrics(state, NOW)["taskCompletionRate"] == 50


# ───────── Insights ─────────


def _messages(insights):
    return [i["message"] for i in insights]


class TestInsights:
    def test_default_organization_is_understaffed(self, state):
        insights = generate_insights(compute_metrics(state, NOW))
        assert len(insights) == 1
        assert insights[0]["type"] == "warning"
        assert "below optimal" in insights[0]["message"]

    def test_optimal_team_size(self):
        state = ApplicationState.from_dict({"teams": [
            _team(1, "bbv", 5, "A"), _team(2, "add", 5, "B"),
        ]})
        insights = generate_insights(compute_metrics(state, NOW))
        assert ("success", "Team sizes are within optimal range") in [
            (i["type"], i["message"]) for i in insights
        ]

    def test_oversized_teams(self):
        state = ApplicationState.from_dict({"teams": [_team(1, "bbv", 12, "A"), _team(2, "add", 12, "B")]})
        assert any("too large" in m for m in _messages(generate_insights(compute_metrics(state, NOW))))

    def test_single_stream(self):
        state = ApplicationState.from_dict({"teams": [_team(1, "arb", 4, "A"), _team(2, "arb", 4, "B")]})
        assert "All teams are in a single stream: arb" in _messages(
            generate_insights(compute_metrics(state, NOW))
        )

    def test_client_concentration(self):
        state = ApplicationState.from_dict({"teams": [
            _team(1, "bbv", 6, "Client 1"), _team(2, "add", 6, "Client 1"),
        ]})
        messages = _messages(generate_insights(compute_metrics(state, NOW)))
        assert "All personnel are assigned to a single client" in messages
        assert "Client 1 has 100% of all personnel" in messages

    def test_no_growth_in_large_organization(self):
        state = ApplicationState.from_dict({"teams": [
            _team(i, ["bbv", "add", "arb"][i % 3], 4, f"C{i}") for i in range(1, 7)
        ]})
        assert "No new teams created this month" in _messages(
            generate_insights(compute_metrics(state, NOW))
        )

    def test_strong_activity(self):
        recent = "2026-03-14T08:00:00+00:00"
        state = ApplicationState.from_dict({"teams": [
            _team(1, "bbv", 4, "A", createdAt=recent, lastUpdated=recent),
            _team(2, "add", 4, "B", createdAt=recent, lastUpdated=recent),
        ]})
        messages = _messages(generate_insights(compute_metrics(state, NOW)))
        assert "Strong team activity: 100% of teams active" in messages
        assert "Strong growth: 2 new teams this month (100%)" in messages


# ───────── Reports ─────────


class TestDailyReports:
    def test_one_report_per_day(self, state):
        analytics = AnalyticsState()
        metrics = compute_metrics(state, NOW)

        report = add_daily_report(analytics, metrics, NOW)
        assert report["title"] == "Organization Status Report"
        assert report["insights"]
        assert add_daily_report(analytics, metrics, NOW.replace(hour=23)) is None
        assert len(analytics.reports) == 1

    def test_reports_newest_first_and_capped(self, state, clock, make_store):
        store = make_store()
        for _ in range(35):
            store.refresh_analytics()
            clock.advance(days=1)

        reports = store.state.analytics.reports
        assert len(reports) == 30
        assert reports[0]["timestamp"] > reports[-1]["timestamp"]
        assert store.latest_report() is reports[0]


# ───────── Store integration ─────────


def test_compute_analytics_is_pure(store):
    before = store.to_dict()
    result = store.compute_analytics()
    assert store.to_dict() == before
    assert result["metrics"]["totalTeams"] == 3
    assert result["insights"][0]["type"] == "warning"


def test_refresh_analytics_stores_metrics(store, clock):
    metrics = store.refresh_analytics()
    assert store.state.analytics.metrics == metrics
    assert store.state.analytics.last_update == clock.now.isoformat()
    assert len(store.state.analytics.reports) == 1

    store.refresh_analytics()
    assert len(store.state.analytics.reports) == 1


def test_new_team_counts_as_growth_and_activity(store):
    store.add_team("Fresh Team")
    m = store.compute_analytics()["metrics"]
    assert m["teamsCreatedThisMonth"] == 1
    assert m["activeTeams"] == 1


# ───────── Benchmarks ─────────


def test_team_performance(state):
    rows = {r["id"]: r for r in team_performance(state)}
    assert rows[1]["taskCount"] == 1
    assert rows[1]["taskCompletionRate"] == 0
    assert rows[1]["overallScore"] == pytest.approx(65.0)
    assert rows[2]["overallScore"] == pytest.approx(69.2)
    assert rows[3]["taskCount"] == 0


def test_performance_benchmark(state):
    b = performance_benchmark(state)
    assert b["min"] == 75
    assert b["max"] == 90
    assert b["median"] == 82
    assert b["average"] == pytest.approx(82.333, abs=0.001)
    assert performance_benchmark(ApplicationState())["average"] == 0
