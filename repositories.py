"""
Repository ports.

Uses typing.Protocol for structural subtyping. The Neo4j adapters in
posts.py and comments.py implement these; callers depend on the protocol.
Every method returns a Result (see schema.Result).
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from schema import PostDraft, Result


@runtime_checkable
class PostRepository(Protocol):
    """Posts and their editorial lifecycle."""

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
        """Create a post owned by an Expert (published) or a Subscriber (proposed)."""
        ...

    async def get_post(self, post_id: str) -> Result:
        ...

    async def get_all_posts(self, skip: int, limit: int, status: bool) -> Result:
        """One page of posts with the given published status, newest first."""
        ...

    async def get_searched_posts(self, value: str) -> Result:
        """Published posts whose title contains value, case-insensitively."""
        ...

    async def get_my_posts(self, actor_id: str) -> Result:
        ...

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
        ...

    async def update_post_validation(
        self, post_id: str, actor_id: str, published: bool
    ) -> Result:
        ...

    async def delete_post(self, post_id: str, actor_id: str, role: bool) -> Result:
        ...

    async def propose_post(self, draft: PostDraft, actor_id: str) -> Result:
        ...

    async def publish_post(self, draft: PostDraft, actor_id: str) -> Result:
        ...

    async def validate_post(self, post_id: str, actor_id: str) -> Result:
        ...


@runtime_checkable
class CommentRepository(Protocol):
    """Comments on posts, threaded one level deep."""

    async def create_comment(
        self, content: str, actor_id: str, post_id: str
    ) -> Result:
        ...

    async def respond_to_comment(
        self, content: str, actor_id: str, post_id: str, parent_comment_id: str
    ) -> Result:
        ...

    async def get_comment(self, comment_id: str) -> Result:
        ...

    async def get_all_comments(self, post_id: str) -> Result:
        """Root comments of a post, each with its direct responses."""
        ...

    async def update_comment(
        self, comment_id: str, content: str, actor_id: str, post_id: str
    ) -> Result:
        ...

    async def delete_comment(
        self, comment_id: str, actor_id: str, post_id: str
    ) -> Result:
        ...
