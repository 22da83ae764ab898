"""Shared test fixtures for the CIO utilities."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cio.config import Settings
from cio.database import create_tables
from cio.github.base import Blob, DirectoryItem, FileContent

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path


@dataclass
class FakeGateway:
    """In-memory ContentGateway that records every call.

    ``get_result`` is either the FileContent to return or the exception to raise.
    """

    get_result: FileContent | Exception
    directory: list[DirectoryItem] = field(default_factory=list)
    blobs: dict[str, str] = field(default_factory=dict)
    write_error: Exception | None = None
    calls: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)

    async def get_file(self, path: str, branch: str) -> FileContent:
        self.calls.append(("get_file", (path, branch)))
        if isinstance(self.get_result, Exception):
            raise self.get_result
        return self.get_result

    async def update_file(
        self, path: str, content: bytes, message: str, sha: str, branch: str
    ) -> None:
        self.calls.append(("update_file", (path, content, message, sha, branch)))
        if self.write_error is not None:
            raise self.write_error

    async def create_file(self, path: str, content: bytes, message: str, branch: str) -> None:
        self.calls.append(("create_file", (path, content, message, branch)))
        if self.write_error is not None:
            raise self.write_error

    async def list_directory(self, path: str, branch: str) -> list[DirectoryItem]:
        self.calls.append(("list_directory", (path, branch)))
        return self.directory

    async def fetch_blob(self, sha: str) -> Blob:
        self.calls.append(("fetch_blob", (sha,)))
        return Blob(sha=sha, content=self.blobs[sha])

    def writes(self) -> list[tuple[str, tuple[Any, ...]]]:
        return [call for call in self.calls if call[0] in ("update_file", "create_file")]


def wrapped_base64(data: bytes, width: int = 60) -> str:
    """Base64 text wrapped with newlines, the way the git data API returns blobs."""
    encoded = base64.b64encode(data).decode("ascii")
    return "\n".join(encoded[i : i + width] for i in range(0, len(encoded), width)) + "\n"


_CIO_ENV_VARS = (
    "GITHUB_TOKEN",
    "GITHUB_ORG",
    "GH_APP_ID",
    "GH_INSTALLATION_ID",
    "GH_PRIVATE_KEY",
    "GADMIN_CREDENTIAL_FILE",
    "GSUITE_KEY_ENCODED",
    "GADMIN_SUBJECT",
    "DATABASE_URL",
    "DEBUG",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's own credentials out of Settings()."""
    for name in _CIO_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Create test settings with temporary paths."""
    db_path = tmp_path / "test.db"
    return Settings(
        _env_file=None,
        debug=True,
        database_url=f"sqlite+aiosqlite:///{db_path}",
        github_api_url="https://api.github.test",
        github_token="test-token",
        github_org="example-org",
        home=tmp_path / "home",
    )


@pytest.fixture
async def db_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine]:
    """Create a test database engine with all tables."""
    engine = create_async_engine(
        test_settings.database_url,
        echo=False,
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(
    db_engine: AsyncEngine,
) -> AsyncGenerator[AsyncSession]:
    """Create a test database session."""
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session
