"""
M5 Acceptance Tests: Global and per-category search.
"""
import pytest

from src.orgstate.defaults import default_snapshot
from src.orgstate.models import ApplicationState
from src.orgstate.search import MAX_RESULTS, normalize_query, search, search_by_type


@pytest.fixture
def state():
    return ApplicationState.from_dict(default_snapshot())


class TestQueryThreshold:
    @pytest.mark.parametrize("query", ["", "a", " b ", None, 42])
    def test_short_or_invalid_queries_return_nothing(self, state, query):
        assert normalize_query(query) is None
        assert search(state, query) == []
        assert search_by_type(state, query) == {"teams": [], "personnel": [], "tasks": []}

    def test_two_characters_search(self, state):
        assert search(state, "qu")


class TestGlobalSearch:
    def test_matches_every_entity_type(self, state):
        results = search(state, "quality")
        types = [r.type for r in results]

        assert types.count("team") == 3
        assert types.count("personnel") == 6
        assert types.count("task") == 1

    def test_case_insensitive(self, state):
        results = search(state, "JOHN")
        assert {(r.type, r.title) for r in results} == {
            ("personnel", "John Smith"),
            ("personnel", "Sarah Johnson"),
            ("task", "Complete quarterly audit"),
            ("task", "Update SOP documentation"),
        }
        task = next(r for r in results if r.id == 1 and r.type == "task")
        assert task.match == "assignee"

    def test_personnel_result_describes_team(self, state):
        [result] = search(state, "jane")
        assert result.description == "Quality Engineer - BBV Quality Team"
        assert result.team_id == 1
        assert result.match == "name"
        assert result.to_dict()["teamId"] == 1

    def test_results_capped(self, state):
        extra = ApplicationState.from_dict({
            "teams": [{"id": i, "name": f"Audit Squad {i}"} for i in range(1, 31)],
        })
        assert len(search(extra, "audit")) == MAX_RESULTS
        assert len(search(extra, "audit", max_results=5)) == 5

    def test_search_does_not_modify_state(self, state):
        before = state.to_dict()
        search(state, "client")
        search_by_type(state, "client")
        assert state.to_dict() == before


class TestSearchByType:
    def test_all_categories(self, state):
        results = search_by_type(state, "client 3")
        assert results["teams"] == []
        assert [p["name"] for p in results["personnel"]] == ["Sarah Johnson", "Robert Williams"]
        assert results["personnel"][0]["teamName"] == "ADD Quality Team"
        assert results["personnel"][0]["stream"] == "add"

    def test_selected_categories_only(self, state):
        results = search_by_type(state, "quality", types=["tasks"])
        assert results["teams"] == []
        assert results["personnel"] == []
        assert [t.id for t in results["tasks"]] == [1]

    def test_uncapped(self):
        state = ApplicationState.from_dict({
            "teams": [{"id": i, "name": f"Audit Squad {i}"} for i in range(1, 31)],
        })
        assert len(search_by_type(state, "audit")["teams"]) == 30

    def test_unknown_type(self, state):
        with pytest.raises(ValueError):
            search_by_type(state, "quality", types=["documents"])


def test_store_search_uses_configured_cap(make_store):
    from src.shared.settings import StoreSettings

    store = make_store(settings=StoreSettings(max_search_results=3))
    assert len(store.search("quality")) == 3
    assert len(store.search_by_type("quality")["personnel"]) == 6
