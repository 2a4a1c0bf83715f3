"""
Centralized configuration for Tribune Graph.

Reads settings from a .env file (if present) and falls back to defaults.
Repositories never read the environment themselves: they receive a
ConnectionConfig through the GraphStore they are built on.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

# ─── .env loader (no external dependency) ─────────────────────────────

def _load_dotenv(path: Path | str = ".env") -> None:
    """Load key=value pairs from a .env file into os.environ."""
    env_path = Path(path)
    if not env_path.is_file():
        return
    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()
        # Don't override existing environment variables
        if key not in os.environ:
            os.environ[key] = value


# Load .env from the project root (same directory as this file)
_load_dotenv(Path(__file__).parent / ".env")

# ─── Neo4j ─────────────────────────────────────────────────────────────

NEO4J_URI: str = os.environ.get("NEO4J_URI", "bolt://localhost:7687")
NEO4J_USER: str = os.environ.get("NEO4J_USER", "neo4j")
NEO4J_PASSWORD: str = os.environ.get("NEO4J_PASSWORD", "tribune")
NEO4J_DATABASE: Optional[str] = os.environ.get("NEO4J_DATABASE") or None

# ─── Application ───────────────────────────────────────────────────────

DEFAULT_PAGE_LIMIT: int = int(os.environ.get("DEFAULT_PAGE_LIMIT", "10"))
LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO").upper()


class ConnectionConfig(BaseModel):
    """Everything a GraphStore needs to reach Neo4j."""

    uri: str = Field(default=NEO4J_URI)
    user: str = Field(default=NEO4J_USER)
    password: str = Field(default=NEO4J_PASSWORD, repr=False)
    database: Optional[str] = Field(
        default=NEO4J_DATABASE,
        description="Target database; None means the server default",
    )

    @classmethod
    def from_env(cls) -> "ConnectionConfig":
        return cls(
            uri=NEO4J_URI,
            user=NEO4J_USER,
            password=NEO4J_PASSWORD,
            database=NEO4J_DATABASE,
        )
