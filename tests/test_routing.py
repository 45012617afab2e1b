"""
Tests for route classification
"""
import pytest

from offline_engine.cache.core import RouteCategory
from offline_engine.routing import RoutePolicy, classify, is_mutating_path


@pytest.fixture
def policy():
    return RoutePolicy(
        network_only=("/api/timer/start", "/api/timer/stop", "/api/scores/submit"),
        cache_first=("/api/competitions", "/api/divisions"),
        network_first=("/api/scores/live", "/api/leaderboard"),
    )


class TestPriorityOrder:
    """Prefix lists are checked network-only, cache-first, network-first."""

    def test_network_only(self, policy):
        assert classify(policy, "POST", "/api/scores/submit") == RouteCategory.NETWORK_ONLY

    def test_cache_first(self, policy):
        assert classify(policy, "GET", "/api/competitions/12") == RouteCategory.CACHE_FIRST

    def test_network_first(self, policy):
        assert classify(policy, "GET", "/api/leaderboard") == RouteCategory.NETWORK_FIRST

    def test_network_only_wins_over_cache_first(self):
        policy = RoutePolicy(network_only=("/api/stages/lock",), cache_first=("/api/stages",))
        assert classify(policy, "GET", "/api/stages/lock") == RouteCategory.NETWORK_ONLY
        assert classify(policy, "GET", "/api/stages/3") == RouteCategory.CACHE_FIRST

    def test_cache_first_wins_over_network_first(self):
        policy = RoutePolicy(cache_first=("/api/scores",), network_first=("/api/scores/live",))
        assert classify(policy, "GET", "/api/scores/live") == RouteCategory.CACHE_FIRST

    def test_unknown_api_route_defaults_to_network_first(self, policy):
        assert classify(policy, "GET", "/api/shooters/7") == RouteCategory.NETWORK_FIRST

    def test_non_get_api_route_is_still_classified(self, policy):
        assert classify(policy, "PUT", "/api/shooters/7") == RouteCategory.NETWORK_FIRST


class TestAssetRoutes:

    @pytest.mark.parametrize("path", [
        "/assets/app.js",
        "/styles/main.css",
        "/favicon-192x192.png",
        "/src/assets/sounds/beep.mp3",
        "/fonts/inter.woff2",
    ])
    def test_static_extensions(self, policy, path):
        assert classify(policy, "GET", path) == RouteCategory.STATIC

    def test_page_by_destination(self, policy):
        assert classify(policy, "GET", "/matches", destination="document") == RouteCategory.PAGE

    def test_page_by_accept_header(self, policy):
        accept = "text/html,application/xhtml+xml;q=0.9"
        assert classify(policy, "GET", "/matches", accept=accept) == RouteCategory.PAGE

    def test_static_checked_before_page(self, policy):
        result = classify(policy, "GET", "/app.js", accept="text/html", destination="document")
        assert result == RouteCategory.STATIC

    def test_everything_else_is_dynamic(self, policy):
        assert classify(policy, "GET", "/manifest.webmanifest") == RouteCategory.DYNAMIC

    def test_api_json_file_is_not_static(self, policy):
        assert classify(policy, "GET", "/api/export.js") == RouteCategory.NETWORK_FIRST

    def test_api_route_never_page(self, policy):
        result = classify(policy, "GET", "/api/report", destination="document")
        assert result == RouteCategory.NETWORK_FIRST


class TestPassthrough:

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE"])
    def test_non_get_outside_api_not_classified(self, policy, method):
        assert classify(policy, method, "/upload") is None

    def test_method_case_insensitive(self, policy):
        assert classify(policy, "get", "/upload") == RouteCategory.DYNAMIC


class TestMutatingPaths:

    @pytest.mark.parametrize("path", ["/api/scores/submit", "/api/timer/start", "/api/timer/stop"])
    def test_mutating(self, path):
        assert is_mutating_path(path)

    def test_not_mutating(self):
        assert not is_mutating_path("/api/penalties/add")
