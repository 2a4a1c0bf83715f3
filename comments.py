"""
Comment repository backed by Neo4j.

Every comment hangs off exactly one Subscriber and one Post:
  (Comment)-[:COMMENTED_BY]->(Subscriber)
  (Comment)-[:BELONGS_TO]->(Post), (Post)-[:HAS_COMMENT]->(Comment)
Responses are linked from their root comment by HAS_RESPONSE. Threads are
read two levels deep: roots, then their direct responses.
"""

from __future__ import annotations

import logging
from typing import Callable

from graph_store import (
    GraphStore,
    explain_miss,
    new_id,
    node_properties,
    now_ms,
    store_operation,
)
from schema import (
    Actor,
    ActorKind,
    Comment,
    CommentRecord,
    Result,
    ThreadedComment,
)

logger = logging.getLogger(__name__)


CREATE_COMMENT_QUERY = """
MATCH (actor:Subscriber {id: $actor_id})
MATCH (post:Post {id: $post_id})
CREATE (comment:Comment {
    id: $id,
    content: $content,
    creation_date: $now,
    edited: $edited,
    is_response: $is_response
})-[:COMMENTED_BY]->(actor)
CREATE (comment)-[:BELONGS_TO]->(post)
CREATE (post)-[:HAS_COMMENT]->(comment)
RETURN comment, actor AS author
"""

# The parent must be a root comment of the same post.
CREATE_RESPONSE_QUERY = """
MATCH (actor:Subscriber {id: $actor_id})
MATCH (post:Post {id: $post_id})
MATCH (parent:Comment {id: $parent_id, is_response: $parent_is_response})-[:BELONGS_TO]->(post)
CREATE (comment:Comment {
    id: $id,
    content: $content,
    creation_date: $now,
    edited: $edited,
    is_response: $is_response
})-[:COMMENTED_BY]->(actor)
CREATE (comment)-[:BELONGS_TO]->(post)
CREATE (post)-[:HAS_COMMENT]->(comment)
CREATE (parent)-[:HAS_RESPONSE]->(comment)
RETURN comment, actor AS author
"""

GET_COMMENT_QUERY = """
MATCH (comment:Comment {id: $comment_id})
RETURN comment
"""

GET_THREADS_QUERY = """
MATCH (post:Post {id: $post_id})-[:HAS_COMMENT]->(comment:Comment {is_response: $is_response})-[:BELONGS_TO]->(post)
OPTIONAL MATCH (comment)-[:COMMENTED_BY]->(author:Subscriber)
WITH comment, head(collect(author)) AS author
OPTIONAL MATCH (comment)-[:HAS_RESPONSE]->(response:Comment)
OPTIONAL MATCH (response)-[:COMMENTED_BY]->(responder:Subscriber)
WITH comment, author, response, head(collect(responder)) AS responder
ORDER BY response.creation_date
WITH comment, author,
     collect(CASE WHEN response IS NULL THEN NULL
             ELSE {comment: response, author: responder} END) AS responses
RETURN comment, author, responses
ORDER BY comment.creation_date
"""

UPDATE_COMMENT_QUERY = """
MATCH (comment:Comment {id: $comment_id})-[:COMMENTED_BY]->(:Subscriber {id: $actor_id})
MATCH (comment)-[:BELONGS_TO]->(:Post {id: $post_id})
SET comment.content = $content,
    comment.edited = $edited
RETURN comment
"""

DELETE_COMMENT_QUERY = """
OPTIONAL MATCH (comment:Comment {id: $comment_id})-[:BELONGS_TO]->(:Post {id: $post_id})
WITH comment,
     comment IS NOT NULL AS found,
     comment IS NOT NULL
     AND EXISTS { MATCH (comment)-[:COMMENTED_BY]->(:Subscriber {id: $actor_id}) } AS allowed
FOREACH (_ IN CASE WHEN allowed THEN [1] ELSE [] END | DETACH DELETE comment)
RETURN found, allowed
"""


def _comment_record(comment_node, author_node) -> CommentRecord:
    author = node_properties(author_node)
    return CommentRecord(
        **node_properties(comment_node),
        author=Actor.model_validate(author) if author is not None else None,
    )


class Neo4jCommentRepository:
    """CommentRepository implementation over a GraphStore."""

    def __init__(
        self,
        store: GraphStore,
        id_factory: Callable[[], str] = new_id,
        clock: Callable[[], int] = now_ms,
    ):
        self._store = store
        self._new_id = id_factory
        self._now = clock

    @store_operation("Error while creating comment")
    async def create_comment(
        self, content: str, actor_id: str, post_id: str
    ) -> Result:
        """Attach a new root comment by a Subscriber to a post."""
        async with self._store.session() as session:
            result = await session.run(
                CREATE_COMMENT_QUERY,
                actor_id=actor_id,
                post_id=post_id,
                id=self._new_id(),
                content=content,
                now=self._now(),
                edited=False,
                is_response=False,
            )
            record = await result.single()
            if not record:
                return await explain_miss(
                    session, actor_id, ActorKind.SUBSCRIBER, post_id=post_id
                )

        comment = _comment_record(record["comment"], record["author"])
        logger.info(f"Comment '{comment.id}' added to post '{post_id}'")
        return Result.ok(comment)

    @store_operation("Error while answering comment")
    async def respond_to_comment(
        self, content: str, actor_id: str, post_id: str, parent_comment_id: str
    ) -> Result:
        """Answer a root comment; the response joins the same post."""
        async with self._store.session() as session:
            result = await session.run(
                CREATE_RESPONSE_QUERY,
                actor_id=actor_id,
                post_id=post_id,
                parent_id=parent_comment_id,
                parent_is_response=False,
                id=self._new_id(),
                content=content,
                now=self._now(),
                edited=False,
                is_response=True,
            )
            record = await result.single()
            if not record:
                return await explain_miss(
                    session, actor_id, ActorKind.SUBSCRIBER, post_id=post_id
                )

        comment = _comment_record(record["comment"], record["author"])
        logger.info(
            f"Comment '{comment.id}' answers '{parent_comment_id}' on post '{post_id}'"
        )
        return Result.ok(comment)

    @store_operation("Error while getting a comment")
    async def get_comment(self, comment_id: str) -> Result:
        async with self._store.session() as session:
            result = await session.run(GET_COMMENT_QUERY, comment_id=comment_id)
            record = await result.single()

        if not record:
            return Result.not_found()
        return Result.ok(Comment.model_validate(node_properties(record["comment"])))

    @store_operation("Error while getting the comments")
    async def get_all_comments(self, post_id: str) -> Result:
        """
        Root comments of the post, oldest first, each with its direct
        responses. A response's own HAS_RESPONSE targets are not read.
        """
        async with self._store.session() as session:
            result = await session.run(
                GET_THREADS_QUERY, post_id=post_id, is_response=False
            )
            threads = []
            async for record in result:
                root = _comment_record(record["comment"], record["author"])
                responses = [
                    _comment_record(r["comment"], r.get("author"))
                    for r in record["responses"]
                ]
                threads.append(ThreadedComment(
                    **root.model_dump(exclude={"author"}),
                    author=root.author,
                    responses=responses,
                ))
        return Result.ok(threads)

    @store_operation("The comment has not been found")
    async def update_comment(
        self, comment_id: str, content: str, actor_id: str, post_id: str
    ) -> Result:
        """Only the author may edit, and only through the post it belongs to."""
        async with self._store.session() as session:
            result = await session.run(
                UPDATE_COMMENT_QUERY,
                comment_id=comment_id,
                actor_id=actor_id,
                post_id=post_id,
                content=content,
                edited=True,
            )
            record = await result.single()

        if not record:
            return Result.not_found()
        logger.info(f"Comment '{comment_id}' edited by '{actor_id}'")
        return Result.ok(Comment.model_validate(node_properties(record["comment"])))

    @store_operation("The comment has not been found")
    async def delete_comment(
        self, comment_id: str, actor_id: str, post_id: str
    ) -> Result:
        async with self._store.session() as session:
            result = await session.run(
                DELETE_COMMENT_QUERY,
                comment_id=comment_id,
                actor_id=actor_id,
                post_id=post_id,
            )
            record = await result.single()

        if not record or not record["found"]:
            return Result.not_found()
        if not record["allowed"]:
            return Result.forbidden()

        logger.info(f"Comment '{comment_id}' deleted by '{actor_id}'")
        return Result.ok("The comment has successfully been deleted")
