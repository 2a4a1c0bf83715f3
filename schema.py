"""
Schema definitions for Tribune Graph.

These Pydantic models are the typed contract between Neo4j records and the
callers of the repositories. Raw node properties are validated into Post /
Comment / Actor models, then enriched into the caller-facing records.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# ─── Node Labels ──────────────────────────────────────────────────────

class NodeLabel(str, Enum):
    POST = "Post"
    COMMENT = "Comment"
    SUBSCRIBER = "Subscriber"
    EXPERT = "Expert"


# ─── Relationship Types ──────────────────────────────────────────────

class RelationshipType(str, Enum):
    # Post origin
    PROPOSED_BY = "PROPOSED_BY"
    PROPOSED = "PROPOSED"
    PUBLISHED_BY = "PUBLISHED_BY"
    PUBLISHED = "PUBLISHED"

    # Editing
    EDITED_BY = "EDITED_BY"
    EDITED = "EDITED"

    # Comments
    COMMENTED_BY = "COMMENTED_BY"
    BELONGS_TO = "BELONGS_TO"
    HAS_COMMENT = "HAS_COMMENT"
    HAS_RESPONSE = "HAS_RESPONSE"

    # Likes
    LIKED_BY = "LIKED_BY"
    LIKED = "LIKED"


class ActorKind(str, Enum):
    """The two disjoint kinds of actor. Capability follows the kind."""

    SUBSCRIBER = "Subscriber"
    EXPERT = "Expert"

    @classmethod
    def for_role(cls, role: bool) -> "ActorKind":
        """Map the boolean role flag used by callers (True means Expert)."""
        return cls.EXPERT if role else cls.SUBSCRIBER

    @property
    def label(self) -> NodeLabel:
        return NodeLabel(self.value)

    @property
    def origin_edges(self) -> tuple[RelationshipType, RelationshipType]:
        """(post -> actor, actor -> post) edge pair recorded at creation."""
        if self is ActorKind.EXPERT:
            return RelationshipType.PUBLISHED_BY, RelationshipType.PUBLISHED
        return RelationshipType.PROPOSED_BY, RelationshipType.PROPOSED


# ─── Core Models ──────────────────────────────────────────────────────

class Actor(BaseModel):
    """
    A Subscriber or Expert node. Only the id is required; whatever else
    the account layer stored on the node is carried through as-is.
    """

    model_config = ConfigDict(extra="allow")

    id: str


class Post(BaseModel):
    """Properties of a Post node."""

    id: str
    title: str
    content: str
    creation_date: int = Field(description="Epoch milliseconds")
    modification_date: int = Field(description="Epoch milliseconds")
    files_list: list[str] = Field(default_factory=list)
    published: bool = False
    region: Optional[str] = None
    tribe: Optional[str] = None

    @field_validator("files_list", mode="before")
    @classmethod
    def default_files(cls, v: Any) -> Any:
        return [] if v is None else v


class PostDraft(BaseModel):
    """Form data for a new or edited post."""

    title: str
    content: str
    files_list: list[str] = Field(default_factory=list)
    region: Optional[str] = None
    tribe: Optional[str] = None

    @field_validator("title")
    @classmethod
    def normalize_title(cls, v: str) -> str:
        # Titles are stored lower-cased so search is case-insensitive
        return v.strip().lower()


class PostSummary(Post):
    """A published post with its live counters, as returned by get_post."""

    likes: list[str] = Field(default_factory=list)
    comments: int = 0


class PostRecord(PostSummary):
    """Fully aggregated post: counters plus resolved author and editors."""

    model_config = ConfigDict(populate_by_name=True)

    author: Optional[Actor] = None
    sub_authors: list[Actor] = Field(default_factory=list, alias="subAuthors")


class PostPage(BaseModel):
    """One page of get_all_posts."""

    items: list[PostRecord] = Field(default_factory=list)
    has_next: bool = False
    skip: int = Field(
        ge=0,
        description="Offset of the next page when has_next, else the requested offset",
    )
    total: int = Field(ge=0)


class PageRequest(BaseModel):
    skip: int = Field(default=0, ge=0)
    limit: int = Field(ge=0)


class Authorship(BaseModel):
    """Who wrote a post, and which Experts touched it afterwards."""

    author: Optional[Actor] = None
    editors: list[Actor] = Field(default_factory=list)


class Comment(BaseModel):
    """Properties of a Comment node."""

    id: str
    content: str
    creation_date: int
    edited: bool = False
    is_response: bool = False


class CommentRecord(Comment):
    author: Optional[Actor] = None


class ThreadedComment(CommentRecord):
    """A root comment and its direct responses. Responses are not expanded."""

    responses: list[CommentRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_thread(self) -> "ThreadedComment":
        if self.is_response:
            raise ValueError("A response cannot be the root of a thread")
        return self


class LikeStatus(BaseModel):
    post_id: str
    actor_id: str
    liked: bool


# ─── Operation Results ───────────────────────────────────────────────

class Outcome(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    STORE_FAILURE = "store_failure"


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


class Result(BaseModel):
    """
    Outcome of one repository call.

    Exactly one of data / error is meaningful: store failures carry an
    error message and no data; every other outcome carries data, where
    None means the required pattern did not match (not found or not
    allowed, told apart by `outcome`).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    outcome: Outcome = Outcome.OK
    data: Any = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def validate_shape(self) -> "Result":
        if self.outcome is Outcome.STORE_FAILURE:
            if not self.error or self.data is not None:
                raise ValueError("A store failure carries an error and no data")
        elif self.error is not None:
            raise ValueError("Only a store failure may carry an error")
        if self.outcome in (Outcome.NOT_FOUND, Outcome.FORBIDDEN) and self.data is not None:
            raise ValueError(f"{self.outcome.value} carries no data")
        return self

    @classmethod
    def ok(cls, data: Any) -> "Result":
        return cls(outcome=Outcome.OK, data=data)

    @classmethod
    def not_found(cls) -> "Result":
        return cls(outcome=Outcome.NOT_FOUND)

    @classmethod
    def forbidden(cls) -> "Result":
        return cls(outcome=Outcome.FORBIDDEN)

    @classmethod
    def failure(cls, message: str) -> "Result":
        return cls(outcome=Outcome.STORE_FAILURE, error=message)

    @property
    def is_ok(self) -> bool:
        return self.outcome is Outcome.OK

    def to_response(self) -> dict:
        """The transport shape: {"data": ...} or {"error": ...}, never both."""
        if self.error is not None:
            return {"error": self.error}
        return {"data": _jsonable(self.data)}
