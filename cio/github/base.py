"""Base protocols, data classes and error kinds for the GitHub API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


class GitHubError(Exception):
    """Base error for failures reported by the GitHub API."""


class RateLimitError(GitHubError):
    """Raised when the API asks the caller to back off."""

    def __init__(self, reset_seconds: int) -> None:
        self.reset_seconds = reset_seconds
        super().__init__(f"rate limited, reset in {reset_seconds}s")


class FaultError(GitHubError):
    """Raised for any other error response, carrying its status code and message."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


@dataclass(frozen=True)
class FileContent:
    """A file fetched from a repository branch."""

    path: str
    content: bytes
    sha: str


@dataclass(frozen=True)
class DirectoryItem:
    """One entry of a directory listing."""

    path: str
    sha: str


@dataclass(frozen=True)
class Blob:
    """A git blob. ``content`` is base64 text that may be wrapped with newlines."""

    sha: str
    content: str
    encoding: str = "base64"


@dataclass(frozen=True)
class RepoDescriptor:
    """Descriptive fields of an organization repository, keyed by ``name``."""

    name: str
    full_name: str = ""
    description: str = ""
    html_url: str = ""
    default_branch: str = ""
    language: str = ""
    private: bool = False
    fork: bool = False
    archived: bool = False
    created_at: str = ""
    updated_at: str = ""
    pushed_at: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> RepoDescriptor:
        """Build a descriptor from a ``/orgs/{org}/repos`` item. Null fields become ``""``."""
        return cls(
            name=payload["name"],
            full_name=payload.get("full_name") or "",
            description=payload.get("description") or "",
            html_url=payload.get("html_url") or "",
            default_branch=payload.get("default_branch") or "",
            language=payload.get("language") or "",
            private=bool(payload.get("private", False)),
            fork=bool(payload.get("fork", False)),
            archived=bool(payload.get("archived", False)),
            created_at=payload.get("created_at") or "",
            updated_at=payload.get("updated_at") or "",
            pushed_at=payload.get("pushed_at") or "",
        )


@runtime_checkable
class ContentGateway(Protocol):
    """Content operations on a single repository."""

    async def get_file(self, path: str, branch: str) -> FileContent:
        """Fetch a file. Raises GitHubError on failure."""
        ...

    async def update_file(
        self, path: str, content: bytes, message: str, sha: str, branch: str
    ) -> None:
        """Replace a file. Fails when ``sha`` is not the current revision."""
        ...

    async def create_file(self, path: str, content: bytes, message: str, branch: str) -> None:
        """Create a new file."""
        ...

    async def list_directory(self, path: str, branch: str) -> list[DirectoryItem]:
        """List the entries of a directory."""
        ...

    async def fetch_blob(self, sha: str) -> Blob:
        """Fetch a blob by its hash through the git data API."""
        ...


@runtime_checkable
class RepoLister(Protocol):
    """Source of the organization's repository list."""

    async def list_repos(self) -> list[RepoDescriptor]:
        """Return every repository visible to the configured identity."""
        ...
