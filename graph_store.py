"""
Graph store: owns the Neo4j driver that every repository shares.

Key design decisions:
  - One driver per process, one session per repository call
  - Labels and relationship types come from the schema enums only; every
    value (ids, text, booleans, paging) is a bound parameter
  - Store faults are caught at the repository boundary and turned into a
    static, non-diagnostic Result.failure
"""

from __future__ import annotations

import functools
import logging
import secrets
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Mapping, Optional

from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncSession
from neo4j.exceptions import DriverError, Neo4jError
from pydantic import ValidationError

from config import ConnectionConfig
from schema import ActorKind, NodeLabel, Result

logger = logging.getLogger(__name__)

ID_LENGTH = 20

MISS_QUERY = """
OPTIONAL MATCH (post:Post {id: $post_id})
WITH head(collect(post)) AS post
OPTIONAL MATCH (subscriber:Subscriber {id: $actor_id})
WITH post, head(collect(subscriber)) AS subscriber
OPTIONAL MATCH (expert:Expert {id: $actor_id})
RETURN post IS NOT NULL AS post_found,
       subscriber IS NOT NULL AS is_subscriber,
       head(collect(expert)) IS NOT NULL AS is_expert
"""


def new_id() -> str:
    """A globally unique, URL-safe identifier of ID_LENGTH characters."""
    return secrets.token_urlsafe(ID_LENGTH)[:ID_LENGTH]


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def node_properties(node: Optional[Mapping[str, Any]]) -> Optional[dict]:
    """Plain dict of a node's properties, or None for a missing node."""
    if node is None:
        return None
    return dict(node)


def store_operation(error_message: str):
    """
    Map store faults and rejected caller input raised by a repository
    coroutine to Result.failure(error_message). Anything else propagates.
    """

    def decorator(func: Callable[..., Awaitable[Result]]):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Result:
            try:
                return await func(*args, **kwargs)
            except (Neo4jError, DriverError):
                logger.exception(f"{func.__qualname__} failed")
                return Result.failure(error_message)
            except ValidationError as e:
                logger.warning(f"{func.__qualname__} rejected its input: {e}")
                return Result.failure(error_message)

        return wrapper

    return decorator


async def explain_miss(
    session: AsyncSession,
    actor_id: str,
    kind: ActorKind,
    post_id: Optional[str] = None,
) -> Result:
    """
    Tell apart why a guarded write matched nothing: a missing post or
    actor is NOT_FOUND, an actor of the other kind is FORBIDDEN.
    """
    result = await session.run(MISS_QUERY, post_id=post_id, actor_id=actor_id)
    record = await result.single()
    if not record:
        return Result.not_found()
    if post_id is not None and not record["post_found"]:
        return Result.not_found()

    if kind is ActorKind.EXPERT:
        has_kind, has_other = record["is_expert"], record["is_subscriber"]
    else:
        has_kind, has_other = record["is_subscriber"], record["is_expert"]

    if not has_kind and has_other:
        return Result.forbidden()
    return Result.not_found()


# ─── Graph Store ──────────────────────────────────────────────────────

class GraphStore:
    """Async Neo4j interface shared by the Tribune repositories."""

    def __init__(self, config: ConnectionConfig):
        self.config = config
        self._driver: AsyncDriver = AsyncGraphDatabase.driver(
            config.uri, auth=(config.user, config.password)
        )

    async def close(self):
        await self._driver.close()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self._driver.session(database=self.config.database) as session:
            yield session

    # ─── Schema Setup ─────────────────────────────────────────────

    async def setup_indexes(self):
        """Create uniqueness constraints and the indexes the listings use."""
        queries = [
            f"CREATE CONSTRAINT {label.value.lower()}_id IF NOT EXISTS "
            f"FOR (n:{label.value}) REQUIRE n.id IS UNIQUE"
            for label in NodeLabel
        ] + [
            "CREATE INDEX post_published IF NOT EXISTS "
            "FOR (n:Post) ON (n.published, n.creation_date)",
            "CREATE INDEX post_title IF NOT EXISTS FOR (n:Post) ON (n.title)",
        ]
        async with self.session() as session:
            for q in queries:
                try:
                    await session.run(q)
                except Neo4jError as e:
                    logger.debug(f"Index creation note: {e}")
