"""
Authorship resolution and post aggregation.

A post's author is whoever sits at the end of its origin edge: the
Subscriber behind PROPOSED_BY, or failing that the Expert behind
PUBLISHED_BY. Editors are the Experts behind EDITED_BY, followed by the
validating Expert when the post started life as a proposal.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from neo4j import AsyncSession

from graph_store import GraphStore, node_properties, store_operation
from schema import Actor, Authorship, Post, PostRecord, Result

logger = logging.getLogger(__name__)


AUTHORSHIP_QUERY = """
MATCH (post:Post {id: $post_id})
OPTIONAL MATCH (post)-[:PROPOSED_BY]->(proposer:Subscriber)
WITH post, head(collect(proposer)) AS proposer
OPTIONAL MATCH (post)-[:PUBLISHED_BY]->(publisher:Expert)
WITH post, proposer, head(collect(publisher)) AS publisher
OPTIONAL MATCH (post)-[:EDITED_BY]->(editor:Expert)
WITH post, proposer, publisher, editor
ORDER BY editor.id
RETURN proposer, publisher, collect(DISTINCT editor) AS editors
"""

# Every aggregate of every post in the batch comes from this one read.
AGGREGATE_QUERY = """
UNWIND $post_ids AS post_id
MATCH (post:Post {id: post_id})
OPTIONAL MATCH (post)-[:LIKED_BY]->(fan:Subscriber)
WITH post, collect(DISTINCT fan.id) AS likes
OPTIONAL MATCH (post)-[:HAS_COMMENT]->(comment:Comment)
WITH post, likes, count(DISTINCT comment) AS comments
OPTIONAL MATCH (post)-[:PROPOSED_BY]->(proposer:Subscriber)
WITH post, likes, comments, head(collect(proposer)) AS proposer
OPTIONAL MATCH (post)-[:PUBLISHED_BY]->(publisher:Expert)
WITH post, likes, comments, proposer, head(collect(publisher)) AS publisher
OPTIONAL MATCH (post)-[:EDITED_BY]->(editor:Expert)
WITH post, likes, comments, proposer, publisher, editor
ORDER BY editor.id
RETURN post.id AS post_id, likes, comments, proposer, publisher,
       collect(DISTINCT editor) AS editors
"""


def _actor(node: Optional[Mapping[str, Any]]) -> Optional[Actor]:
    props = node_properties(node)
    return Actor.model_validate(props) if props is not None else None


def resolve_authorship(
    proposer: Optional[Mapping[str, Any]],
    publisher: Optional[Mapping[str, Any]],
    editors: Iterable[Mapping[str, Any]],
) -> Authorship:
    """
    Apply the authorship rules to the nodes found behind a post's
    PROPOSED_BY, PUBLISHED_BY and EDITED_BY edges.

    Missing edges are tolerated: with neither origin edge the author is
    None and only the EDITED_BY experts are reported.
    """
    chain = [a for a in (_actor(e) for e in editors) if a is not None]

    if proposer is not None:
        author = _actor(proposer)
        validator = _actor(publisher)
        if validator is not None:
            chain.append(validator)
    else:
        author = _actor(publisher)

    seen = set()
    unique = []
    for editor in chain:
        if editor.id not in seen:
            seen.add(editor.id)
            unique.append(editor)

    return Authorship(author=author, editors=unique)


class AuthorResolver:
    """Resolves the author and editors of a single post."""

    def __init__(self, store: GraphStore):
        self._store = store

    @store_operation("Error while getting the authors of the post")
    async def resolve(self, post_id: str) -> Result:
        async with self._store.session() as session:
            authorship = await self.resolve_in(session, post_id)
        if authorship is None:
            return Result.not_found()
        return Result.ok(authorship)

    async def resolve_in(
        self, session: AsyncSession, post_id: str
    ) -> Optional[Authorship]:
        """Resolve within an already open session; None if the post is missing."""
        result = await session.run(AUTHORSHIP_QUERY, post_id=post_id)
        record = await result.single()
        if not record:
            return None
        return resolve_authorship(
            record["proposer"], record["publisher"], record["editors"]
        )


class AggregationAssembler:
    """
    Turns raw posts into PostRecords: like list, comment count, author
    and editors (exposed as subAuthors).

    The whole batch is aggregated by a single query, so each item's
    counters come from the same snapshot. Output order is input order.
    """

    async def assemble(
        self, session: AsyncSession, posts: list[Post]
    ) -> list[PostRecord]:
        if not posts:
            return []

        result = await session.run(
            AGGREGATE_QUERY, post_ids=[p.id for p in posts]
        )
        rows = {}
        async for record in result:
            rows[record["post_id"]] = record

        records = []
        for post in posts:
            row = rows.get(post.id)
            if row is None:
                # Deleted between the listing and the aggregation
                logger.debug(f"No aggregates for post '{post.id}'")
                records.append(PostRecord(**post.model_dump()))
                continue

            authorship = resolve_authorship(
                row["proposer"], row["publisher"], row["editors"]
            )
            records.append(PostRecord(
                **post.model_dump(),
                likes=list(row["likes"]),
                comments=row["comments"],
                author=authorship.author,
                sub_authors=authorship.editors,
            ))
        return records
