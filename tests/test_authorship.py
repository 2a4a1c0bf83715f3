"""Tests for authorship resolution and post aggregation."""

from __future__ import annotations

import pytest

from authorship import AggregationAssembler, AuthorResolver, resolve_authorship
from schema import Outcome, Post
from tests.conftest import make_post, route_queries


# ═══════════════════════════════════════════════════════════════════════
# 1. resolve_authorship() rules
# ═══════════════════════════════════════════════════════════════════════


class TestResolveAuthorship:

    def test_published_directly_author_is_publisher(self, expert):
        authorship = resolve_authorship(None, expert, [])

        assert authorship.author.id == "exp_1"
        assert authorship.editors == []

    def test_proposed_author_is_subscriber(self, subscriber):
        authorship = resolve_authorship(subscriber, None, [])

        assert authorship.author.id == "sub_1"
        assert authorship.editors == []

    def test_validator_is_added_after_editors(self, subscriber, expert, second_expert):
        authorship = resolve_authorship(subscriber, expert, [second_expert])

        assert authorship.author.id == "sub_1"
        assert [e.id for e in authorship.editors] == ["exp_2", "exp_1"]

    def test_publisher_not_repeated_as_editor_of_own_post(self, expert, second_expert):
        authorship = resolve_authorship(None, expert, [second_expert])

        assert authorship.author.id == "exp_1"
        assert [e.id for e in authorship.editors] == ["exp_2"]

    def test_validator_who_also_edited_listed_once(self, subscriber, expert):
        authorship = resolve_authorship(subscriber, expert, [expert])

        assert [e.id for e in authorship.editors] == ["exp_1"]

    def test_no_origin_edge_is_tolerated(self):
        authorship = resolve_authorship(None, None, [])

        assert authorship.author is None
        assert authorship.editors == []

    def test_actor_properties_pass_through(self, subscriber):
        authorship = resolve_authorship(subscriber, None, [])

        assert authorship.author.model_dump() == {"id": "sub_1", "name": "Ada"}


# ═══════════════════════════════════════════════════════════════════════
# 2. AuthorResolver.resolve()
# ═══════════════════════════════════════════════════════════════════════


class TestAuthorResolver:

    @pytest.mark.asyncio
    async def test_resolves_from_single_query(self, mock_graph_store, subscriber, expert):
        store, session = mock_graph_store
        calls = route_queries(session, [
            ("RETURN proposer, publisher", [
                {"proposer": subscriber, "publisher": expert, "editors": []},
            ]),
        ])

        result = await AuthorResolver(store).resolve("p1")

        assert result.is_ok
        assert result.data.author.id == "sub_1"
        assert [e.id for e in result.data.editors] == ["exp_1"]
        assert len(calls) == 1
        assert calls[0][1] == {"post_id": "p1"}

    @pytest.mark.asyncio
    async def test_missing_post_is_not_found(self, mock_graph_store):
        store, session = mock_graph_store
        route_queries(session, [])

        result = await AuthorResolver(store).resolve("missing")

        assert result.outcome is Outcome.NOT_FOUND
        assert result.data is None


# ═══════════════════════════════════════════════════════════════════════
# 3. AggregationAssembler.assemble()
# ═══════════════════════════════════════════════════════════════════════


class TestAggregationAssembler:

    @pytest.mark.asyncio
    async def test_keeps_input_order(self, mock_session, subscriber, expert):
        posts = [Post.model_validate(make_post(pid)) for pid in ("p3", "p1", "p2")]
        calls = route_queries(mock_session, [
            ("UNWIND $post_ids", [
                {"post_id": pid, "likes": [], "comments": 0,
                 "proposer": None, "publisher": expert, "editors": []}
                for pid in ("p1", "p2", "p3")
            ]),
        ])

        records = await AggregationAssembler().assemble(mock_session, posts)

        assert [r.id for r in records] == ["p3", "p1", "p2"]
        assert len(calls) == 1
        assert calls[0][1] == {"post_ids": ["p3", "p1", "p2"]}

    @pytest.mark.asyncio
    async def test_fills_aggregates(self, mock_session, subscriber, expert, second_expert):
        posts = [Post.model_validate(make_post("p1"))]
        route_queries(mock_session, [
            ("UNWIND $post_ids", [{
                "post_id": "p1",
                "likes": ["sub_1", "sub_2"],
                "comments": 3,
                "proposer": subscriber,
                "publisher": expert,
                "editors": [second_expert],
            }]),
        ])

        [record] = await AggregationAssembler().assemble(mock_session, posts)

        assert record.likes == ["sub_1", "sub_2"]
        assert record.comments == 3
        assert record.author.id == "sub_1"
        assert [e.id for e in record.sub_authors] == ["exp_2", "exp_1"]

    @pytest.mark.asyncio
    async def test_caller_facing_shape_uses_sub_authors_key(self, mock_session, expert):
        posts = [Post.model_validate(make_post("p1"))]
        route_queries(mock_session, [
            ("UNWIND $post_ids", [{
                "post_id": "p1", "likes": [], "comments": 0,
                "proposer": None, "publisher": expert, "editors": [],
            }]),
        ])

        [record] = await AggregationAssembler().assemble(mock_session, posts)
        dumped = record.model_dump(by_alias=True)

        assert "subAuthors" in dumped
        assert dumped["author"]["id"] == "exp_1"
        assert dumped["title"] == "market day in the tribe"

    @pytest.mark.asyncio
    async def test_empty_batch_skips_the_store(self, mock_session):
        calls = route_queries(mock_session, [])

        records = await AggregationAssembler().assemble(mock_session, [])

        assert records == []
        assert calls == []

    @pytest.mark.asyncio
    async def test_post_vanished_between_reads(self, mock_session):
        posts = [Post.model_validate(make_post("gone"))]
        route_queries(mock_session, [("UNWIND $post_ids", [])])

        [record] = await AggregationAssembler().assemble(mock_session, posts)

        assert record.id == "gone"
        assert record.likes == []
        assert record.author is None
