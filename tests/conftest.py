"""Shared fixtures for Tribune Graph tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest


# ─── Sample Data ───────────────────────────────────────────────────────

def make_post(
    post_id: str,
    title: str = "market day in the tribe",
    published: bool = True,
    creation_date: int = 1_700_000_000_000,
    **extra,
) -> dict:
    """Properties of a Post node as Neo4j would hand them back."""
    props = {
        "id": post_id,
        "title": title,
        "content": f"content of {post_id}",
        "creation_date": creation_date,
        "modification_date": creation_date,
        "files_list": [],
        "published": published,
        "region": "north",
        "tribe": "river",
    }
    props.update(extra)
    return props


def make_comment(
    comment_id: str,
    content: str = "nice post",
    is_response: bool = False,
    creation_date: int = 1_700_000_100_000,
    edited: bool = False,
) -> dict:
    return {
        "id": comment_id,
        "content": content,
        "creation_date": creation_date,
        "edited": edited,
        "is_response": is_response,
    }


@pytest.fixture
def subscriber():
    return {"id": "sub_1", "name": "Ada"}


@pytest.fixture
def expert():
    return {"id": "exp_1", "name": "Grace"}


@pytest.fixture
def second_expert():
    return {"id": "exp_2", "name": "Edsger"}


# ─── Mock helpers ──────────────────────────────────────────────────────

def make_mock_neo4j_record(data: dict):
    """Create a mock Neo4j record from a dict."""
    record = MagicMock()
    record.__getitem__ = lambda self, key: data[key]
    record.get = lambda key, default=None: data.get(key, default)
    return record


class MockAsyncResult:
    """Mock for async Neo4j result that supports async iteration."""

    def __init__(self, records: list[dict]):
        self._records = [make_mock_neo4j_record(r) for r in records]
        self._index = 0

    async def single(self):
        if self._records:
            return self._records[0]
        return None

    def __aiter__(self):
        self._index = 0
        return self

    async def __anext__(self):
        if self._index >= len(self._records):
            raise StopAsyncIteration
        record = self._records[self._index]
        self._index += 1
        return record


def route_queries(session, routes: list[tuple[str, object]]) -> list[tuple[str, dict]]:
    """
    Point session.run at a list of (marker, records) routes.

    The first route whose marker occurs in the query text answers it;
    records may be a list of dicts, a callable taking the bound
    parameters, or an exception instance to raise. Unmatched queries
    return no records. Returns the list of (query, params) calls made.
    """
    calls = []

    async def mock_run(query, **kwargs):
        calls.append((query, kwargs))
        for marker, records in routes:
            if marker in query:
                if isinstance(records, Exception):
                    raise records
                if callable(records):
                    records = records(kwargs)
                return MockAsyncResult(records)
        return MockAsyncResult([])

    session.run = mock_run
    return calls


@pytest.fixture
def mock_session():
    """Create a mock Neo4j async session."""
    session = AsyncMock()

    # Managed transactions run their work function against the session
    async def execute_write(work, *args, **kwargs):
        return await work(session, *args, **kwargs)

    session.execute_write = execute_write
    return session


@pytest.fixture
def mock_graph_store(mock_session):
    """Create a GraphStore with mocked Neo4j driver."""
    with patch("graph_store.AsyncGraphDatabase") as mock_db:
        mock_driver = MagicMock()
        mock_db.driver.return_value = mock_driver

        # The driver.session() returns an async context manager
        # that yields our mock_session
        session_cm = AsyncMock()
        session_cm.__aenter__ = AsyncMock(return_value=mock_session)
        session_cm.__aexit__ = AsyncMock(return_value=False)
        mock_driver.session.return_value = session_cm
        mock_driver.close = AsyncMock()

        from config import ConnectionConfig
        from graph_store import GraphStore
        store = GraphStore(ConnectionConfig(uri="bolt://test:7687", password="x"))
        yield store, mock_session
