"""
Like/unlike of a post by a Subscriber.

One logical like is the edge pair (Post)-[:LIKED_BY]->(Subscriber) and
(Subscriber)-[:LIKED]->(Post). LIKED_BY decides whether the like exists.
"""

from __future__ import annotations

import logging

from neo4j import AsyncManagedTransaction

from graph_store import GraphStore, explain_miss, store_operation
from schema import ActorKind, LikeStatus, Result

logger = logging.getLogger(__name__)


# The SET/REMOVE pair takes the post's write lock before anything is read,
# so concurrent toggles on the same post run one after the other.
TOGGLE_LIKE_QUERY = """
MATCH (post:Post {id: $post_id})
MATCH (actor:Subscriber {id: $actor_id})
SET post._like_lock = true
REMOVE post._like_lock
WITH post, actor
OPTIONAL MATCH (post)-[liked_by:LIKED_BY]->(actor)
WITH post, actor, collect(liked_by) AS liked_by_edges
OPTIONAL MATCH (actor)-[liked:LIKED]->(post)
WITH post, actor, liked_by_edges, collect(liked) AS liked_edges,
     size(liked_by_edges) > 0 AS was_liked
FOREACH (edge IN CASE WHEN was_liked THEN liked_by_edges + liked_edges ELSE [] END |
    DELETE edge
)
FOREACH (_ IN CASE WHEN was_liked THEN [] ELSE [1] END |
    MERGE (post)-[:LIKED_BY]->(actor)
    MERGE (actor)-[:LIKED]->(post)
)
RETURN NOT was_liked AS liked
"""


async def _toggle(tx: AsyncManagedTransaction, post_id: str, actor_id: str):
    result = await tx.run(TOGGLE_LIKE_QUERY, post_id=post_id, actor_id=actor_id)
    return await result.single()


class LikeToggle:
    """Flips whether a Subscriber likes a post, in a single write."""

    def __init__(self, store: GraphStore):
        self._store = store

    @store_operation("The post doesn't exist anymore")
    async def toggle(self, post_id: str, actor_id: str) -> Result:
        async with self._store.session() as session:
            record = await session.execute_write(_toggle, post_id, actor_id)
            if not record:
                return await explain_miss(
                    session, actor_id, ActorKind.SUBSCRIBER, post_id=post_id
                )

        status = LikeStatus(post_id=post_id, actor_id=actor_id, liked=record["liked"])
        logger.info(
            f"Post '{post_id}' {'liked' if status.liked else 'unliked'} by '{actor_id}'"
        )
        return Result.ok(status)
