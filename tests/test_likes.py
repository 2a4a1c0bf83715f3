"""Tests for the like toggle."""

from __future__ import annotations

import pytest
from neo4j.exceptions import SessionExpired

from likes import TOGGLE_LIKE_QUERY, LikeToggle
from schema import LikeStatus, Outcome
from tests.conftest import route_queries


class FakeLikeGraph:
    """Just enough of the graph to play the toggle statement against."""

    def __init__(self, posts=("p1",), subscribers=("sub_1",)):
        self.posts = set(posts)
        self.subscribers = set(subscribers)
        self.liked_by: list[tuple[str, str]] = []
        self.liked: list[tuple[str, str]] = []

    def __call__(self, params):
        post_id, actor_id = params["post_id"], params["actor_id"]
        if post_id not in self.posts or actor_id not in self.subscribers:
            return []
        pair = (post_id, actor_id)
        if pair in self.liked_by:
            self.liked_by = [e for e in self.liked_by if e != pair]
            self.liked = [e for e in self.liked if e != pair]
            return [{"liked": False}]
        self.liked_by.append(pair)
        self.liked.append(pair)
        return [{"liked": True}]


@pytest.fixture
def toggle_and_graph(mock_graph_store):
    store, session = mock_graph_store
    graph = FakeLikeGraph()
    calls = route_queries(session, [("RETURN NOT was_liked AS liked", graph)])
    return LikeToggle(store), graph, calls


class TestLikeToggle:

    @pytest.mark.asyncio
    async def test_first_toggle_likes(self, toggle_and_graph):
        toggle, graph, _ = toggle_and_graph

        result = await toggle.toggle("p1", "sub_1")

        assert result.data == LikeStatus(post_id="p1", actor_id="sub_1", liked=True)
        assert graph.liked_by == [("p1", "sub_1")]
        assert graph.liked == [("p1", "sub_1")]

    @pytest.mark.asyncio
    async def test_second_toggle_restores_unliked_state(self, toggle_and_graph):
        toggle, graph, _ = toggle_and_graph

        await toggle.toggle("p1", "sub_1")
        result = await toggle.toggle("p1", "sub_1")

        assert result.data.liked is False
        assert graph.liked_by == []
        assert graph.liked == []

    @pytest.mark.asyncio
    async def test_unknown_post_or_actor(self, toggle_and_graph):
        toggle, graph, _ = toggle_and_graph

        result = await toggle.toggle("p1", "exp_1")

        assert result.outcome is Outcome.NOT_FOUND
        assert graph.liked_by == []

    @pytest.mark.asyncio
    async def test_expert_cannot_like(self, mock_graph_store):
        store, session = mock_graph_store
        graph = FakeLikeGraph()
        route_queries(session, [
            ("RETURN NOT was_liked AS liked", graph),
            ("AS post_found", [{"post_found": True, "is_subscriber": False, "is_expert": True}]),
        ])

        result = await LikeToggle(store).toggle("p1", "exp_1")

        assert result.outcome is Outcome.FORBIDDEN
        assert result.to_response() == {"data": None}
        assert graph.liked_by == []

    @pytest.mark.asyncio
    async def test_like_on_missing_post(self, mock_graph_store):
        store, session = mock_graph_store
        route_queries(session, [
            ("RETURN NOT was_liked AS liked", FakeLikeGraph()),
            ("AS post_found", [{"post_found": False, "is_subscriber": True, "is_expert": False}]),
        ])

        result = await LikeToggle(store).toggle("gone", "sub_1")

        assert result.outcome is Outcome.NOT_FOUND

    @pytest.mark.asyncio
    async def test_single_statement_per_toggle(self, toggle_and_graph):
        toggle, _, calls = toggle_and_graph

        await toggle.toggle("p1", "sub_1")

        assert len(calls) == 1
        assert calls[0][1] == {"post_id": "p1", "actor_id": "sub_1"}

    @pytest.mark.asyncio
    async def test_store_failure(self, mock_graph_store):
        store, session = mock_graph_store
        route_queries(session, [("was_liked", SessionExpired("gone"))])

        result = await LikeToggle(store).toggle("p1", "sub_1")

        assert result.to_response() == {"error": "The post doesn't exist anymore"}


class TestToggleStatement:

    def test_locks_post_before_reading(self):
        lock = TOGGLE_LIKE_QUERY.index("SET post._like_lock")
        read = TOGGLE_LIKE_QUERY.index("OPTIONAL MATCH (post)-[liked_by:LIKED_BY]")
        assert lock < read
        assert "REMOVE post._like_lock" in TOGGLE_LIKE_QUERY

    def test_creates_and_deletes_the_pair(self):
        assert "MERGE (post)-[:LIKED_BY]->(actor)" in TOGGLE_LIKE_QUERY
        assert "MERGE (actor)-[:LIKED]->(post)" in TOGGLE_LIKE_QUERY
        assert "liked_by_edges + liked_edges" in TOGGLE_LIKE_QUERY
