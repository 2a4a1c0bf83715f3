"""
Post repository backed by Neo4j.

A post's origin is recorded as an edge pair at creation time:
  (Post)-[:PUBLISHED_BY]->(Expert) + (Expert)-[:PUBLISHED]->(Post)   published
  (Post)-[:PROPOSED_BY]->(Subscriber) + (Subscriber)-[:PROPOSED]->(Post)   proposed

Validation adds the PUBLISHED_BY/PUBLISHED pair to a proposal without
removing the proposal edges. Edits add at most one EDITED_BY/EDITED pair
per Expert.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from authorship import AggregationAssembler
from graph_store import (
    GraphStore,
    explain_miss,
    new_id,
    node_properties,
    now_ms,
    store_operation,
)
from schema import (
    ActorKind,
    PageRequest,
    Post,
    PostDraft,
    PostPage,
    PostSummary,
    Result,
)

logger = logging.getLogger(__name__)


CREATE_POST_QUERY = """
MATCH (actor:{label} {{id: $actor_id}})
CREATE (post:Post {{
    id: $id,
    title: $title,
    content: $content,
    creation_date: $now,
    modification_date: $now,
    files_list: $files_list,
    published: $published,
    region: $region,
    tribe: $tribe
}})-[:{origin}]->(actor)
CREATE (actor)-[:{reverse}]->(post)
RETURN post
"""

GET_POST_QUERY = """
MATCH (post:Post {id: $post_id})
OPTIONAL MATCH (post)-[:LIKED_BY]->(fan:Subscriber)
WITH post, collect(DISTINCT fan.id) AS likes
OPTIONAL MATCH (post)-[:HAS_COMMENT]->(comment:Comment)
RETURN post, likes, count(DISTINCT comment) AS comments
"""

COUNT_POSTS_QUERY = """
MATCH (post:Post {published: $status})
RETURN count(post) AS total
"""

PAGE_POSTS_QUERY = """
MATCH (post:Post {published: $status})
RETURN post
ORDER BY post.creation_date DESC
SKIP $skip
LIMIT $limit
"""

SEARCH_POSTS_QUERY = """
MATCH (post:Post {published: $published})
WHERE toLower(post.title) CONTAINS toLower($value)
RETURN post
ORDER BY post.creation_date DESC
"""

PUBLISHED_BY_ACTOR_QUERY = """
MATCH (post:Post)-[:PUBLISHED_BY]->(:Expert {id: $actor_id})
RETURN post
ORDER BY post.creation_date DESC
"""

PROPOSED_BY_ACTOR_QUERY = """
MATCH (post:Post)-[:PROPOSED_BY]->(:Subscriber {id: $actor_id})
RETURN post
ORDER BY post.creation_date DESC
"""

UPDATE_POST_QUERY = """
MATCH (post:Post {id: $post_id})
MATCH (actor:Expert {id: $actor_id})
SET post.title = $title,
    post.content = $content,
    post.modification_date = $now,
    post.files_list = $files_list,
    post.region = $region,
    post.tribe = $tribe
MERGE (actor)-[:EDITED]->(post)
MERGE (post)-[:EDITED_BY]->(actor)
RETURN post
"""

# published only ever moves false -> true, and the publish pair is only
# written on that transition
UPDATE_VALIDATION_QUERY = """
MATCH (post:Post {id: $post_id})
MATCH (actor:Expert {id: $actor_id})
WITH post, actor, coalesce(post.published, false) AS was_published
SET post.published = was_published OR $published,
    post.modification_date = $now
FOREACH (_ IN CASE WHEN $published AND NOT was_published THEN [1] ELSE [] END |
    MERGE (post)-[:PUBLISHED_BY]->(actor)
    MERGE (actor)-[:PUBLISHED]->(post)
)
RETURN post
"""

DELETE_POST_QUERY = """
OPTIONAL MATCH (post:Post {{id: $post_id}})
WITH post,
     post IS NOT NULL AS found,
     post IS NOT NULL
     AND EXISTS {{ MATCH (post)-[:{origin}]->(:{label} {{id: $actor_id}}) }}
     AND ($role OR post.published = $published) AS allowed
FOREACH (_ IN CASE WHEN allowed THEN [1] ELSE [] END | DETACH DELETE post)
RETURN found, allowed
"""


def _post(record, field: str = "post") -> Post:
    return Post.model_validate(node_properties(record[field]))


class Neo4jPostRepository:
    """PostRepository implementation over a GraphStore."""

    def __init__(
        self,
        store: GraphStore,
        id_factory: Callable[[], str] = new_id,
        clock: Callable[[], int] = now_ms,
        assembler: Optional[AggregationAssembler] = None,
    ):
        self._store = store
        self._new_id = id_factory
        self._now = clock
        self._assembler = assembler or AggregationAssembler()

    # ─── Creation ─────────────────────────────────────────────────

    @store_operation("Error while creating the post")
    async def create_post(
        self,
        title: str,
        content: str,
        files_list: list[str],
        published: bool,
        region: Optional[str],
        tribe: Optional[str],
        actor_id: str,
    ) -> Result:
        """
        Create a post and its origin edge pair.

        An Expert publishes directly, a Subscriber proposes. The actor
        must exist with the kind matching `published`.
        """
        draft = PostDraft(
            title=title,
            content=content,
            files_list=files_list or [],
            region=region,
            tribe=tribe,
        )
        kind = ActorKind.for_role(published)
        origin, reverse = kind.origin_edges
        query = CREATE_POST_QUERY.format(
            label=kind.label.value, origin=origin.value, reverse=reverse.value
        )

        async with self._store.session() as session:
            result = await session.run(
                query,
                actor_id=actor_id,
                id=self._new_id(),
                title=draft.title,
                content=draft.content,
                now=self._now(),
                files_list=draft.files_list,
                published=published,
                region=draft.region,
                tribe=draft.tribe,
            )
            record = await result.single()
            if not record:
                return await explain_miss(session, actor_id, kind)

            post = _post(record)
            logger.info(f"Post '{post.id}' {'published' if published else 'proposed'} by '{actor_id}'")
            records = await self._assembler.assemble(session, [post])
            return Result.ok(records[0])

    async def propose_post(self, draft: PostDraft, actor_id: str) -> Result:
        """A Subscriber submits a post for validation."""
        return await self.create_post(
            draft.title, draft.content, draft.files_list, False,
            draft.region, draft.tribe, actor_id,
        )

    async def publish_post(self, draft: PostDraft, actor_id: str) -> Result:
        """An Expert publishes a post directly."""
        return await self.create_post(
            draft.title, draft.content, draft.files_list, True,
            draft.region, draft.tribe, actor_id,
        )

    # ─── Reads ────────────────────────────────────────────────────

    @store_operation("Error while getting a post")
    async def get_post(self, post_id: str) -> Result:
        """
        A proposal comes back as the bare post. A published post also
        carries its like list and comment count, but not its authors.
        """
        async with self._store.session() as session:
            result = await session.run(GET_POST_QUERY, post_id=post_id)
            record = await result.single()

        if not record:
            return Result.not_found()

        post = _post(record)
        if not post.published:
            return Result.ok(post)
        return Result.ok(PostSummary(
            **post.model_dump(),
            likes=list(record["likes"]),
            comments=record["comments"],
        ))

    @store_operation("Error while getting the posts")
    async def get_all_posts(self, skip: int, limit: int, status: bool) -> Result:
        page = PageRequest(skip=skip, limit=limit)

        async with self._store.session() as session:
            result = await session.run(COUNT_POSTS_QUERY, status=status)
            record = await result.single()
            total = record["total"] if record else 0

            result = await session.run(
                PAGE_POSTS_QUERY, status=status, skip=page.skip, limit=page.limit
            )
            posts = [_post(r) async for r in result]
            items = await self._assembler.assemble(session, posts)

        # An empty page never advances, so it has no next page
        has_next = page.limit > 0 and total > page.skip + page.limit
        return Result.ok(PostPage(
            items=items,
            has_next=has_next,
            skip=page.skip + page.limit if has_next else page.skip,
            total=total,
        ))

    @store_operation("Sorry the post(s) has not been found")
    async def get_searched_posts(self, value: str) -> Result:
        """Published posts whose title contains `value`; "" matches them all."""
        async with self._store.session() as session:
            result = await session.run(
                SEARCH_POSTS_QUERY, value=value or "", published=True
            )
            posts = [_post(r) async for r in result]
            items = await self._assembler.assemble(session, posts)
        return Result.ok(items)

    @store_operation("Error while getting the posts")
    async def get_my_posts(self, actor_id: str) -> Result:
        """Posts the actor published or validated, then posts they proposed."""
        async with self._store.session() as session:
            result = await session.run(PUBLISHED_BY_ACTOR_QUERY, actor_id=actor_id)
            published = [_post(r) async for r in result]

            result = await session.run(PROPOSED_BY_ACTOR_QUERY, actor_id=actor_id)
            proposed = [_post(r) async for r in result]

            items = await self._assembler.assemble(session, published + proposed)
        return Result.ok(items)

    # ─── Mutations ────────────────────────────────────────────────

    @store_operation("The post has not been found")
    async def update_post(
        self,
        post_id: str,
        title: str,
        content: str,
        files_list: list[str],
        region: Optional[str],
        tribe: Optional[str],
        actor_id: str,
    ) -> Result:
        """Overwrite the content fields; the editing Expert is recorded once."""
        draft = PostDraft(
            title=title,
            content=content,
            files_list=files_list or [],
            region=region,
            tribe=tribe,
        )
        async with self._store.session() as session:
            result = await session.run(
                UPDATE_POST_QUERY,
                post_id=post_id,
                actor_id=actor_id,
                title=draft.title,
                content=draft.content,
                now=self._now(),
                files_list=draft.files_list,
                region=draft.region,
                tribe=draft.tribe,
            )
            record = await result.single()
            if not record:
                return await explain_miss(
                    session, actor_id, ActorKind.EXPERT, post_id=post_id
                )

        logger.info(f"Post '{post_id}' edited by '{actor_id}'")
        return Result.ok(_post(record))

    @store_operation("The post doesn't exist anymore")
    async def update_post_validation(
        self, post_id: str, actor_id: str, published: bool
    ) -> Result:
        async with self._store.session() as session:
            result = await session.run(
                UPDATE_VALIDATION_QUERY,
                post_id=post_id,
                actor_id=actor_id,
                published=published,
                now=self._now(),
            )
            record = await result.single()
            if not record:
                return await explain_miss(
                    session, actor_id, ActorKind.EXPERT, post_id=post_id
                )

        logger.info(f"Post '{post_id}' validated by '{actor_id}' (published={published})")
        return Result.ok(_post(record))

    async def validate_post(self, post_id: str, actor_id: str) -> Result:
        """An Expert turns a proposal into a published post."""
        return await self.update_post_validation(post_id, actor_id, True)

    @store_operation("The post has not been found")
    async def delete_post(self, post_id: str, actor_id: str, role: bool) -> Result:
        """
        role=True: the Expert behind PUBLISHED_BY deletes the post.
        role=False: the Subscriber behind PROPOSED_BY deletes it, and only
        while it is still unpublished.
        """
        kind = ActorKind.for_role(role)
        origin, _ = kind.origin_edges
        query = DELETE_POST_QUERY.format(label=kind.label.value, origin=origin.value)

        async with self._store.session() as session:
            result = await session.run(
                query,
                post_id=post_id,
                actor_id=actor_id,
                role=role,
                published=False,
            )
            record = await result.single()

        if not record or not record["found"]:
            return Result.not_found()
        if not record["allowed"]:
            return Result.forbidden()

        logger.info(f"Post '{post_id}' deleted by '{actor_id}'")
        return Result.ok("The post has successfully been deleted")
