"""GitHub REST client: repository content gateway and organization repo listing."""

from __future__ import annotations

import base64
import logging
import time
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from cio.github.base import (
    Blob,
    DirectoryItem,
    FaultError,
    FileContent,
    RateLimitError,
    RepoDescriptor,
)

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)

ORG_REPOS_PER_PAGE = 100


def _rate_limit_reset(response: httpx.Response) -> int | None:
    """Return the back-off in seconds when the response is a rate-limit rejection."""
    retry_after = response.headers.get("retry-after")
    if retry_after is not None:
        try:
            return max(int(retry_after), 0)
        except ValueError:
            logger.warning("Ignoring malformed Retry-After header %r", retry_after)
    if response.headers.get("x-ratelimit-remaining") == "0":
        reset_at = response.headers.get("x-ratelimit-reset", "")
        try:
            return max(int(reset_at) - int(time.time()), 0)
        except ValueError:
            return 60
    return None


def _error_message(response: httpx.Response) -> str:
    """Flatten a GitHub error body into one line: message followed by error codes."""
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if not isinstance(data, dict):
        return response.text
    parts = [str(data.get("message", ""))]
    for error in data.get("errors") or []:
        if isinstance(error, dict) and error.get("code"):
            parts.append(str(error["code"]))
    return " ".join(part for part in parts if part)


def raise_for_github_status(response: httpx.Response) -> None:
    """Raise RateLimitError or FaultError for an unsuccessful response."""
    if response.is_success:
        return
    if response.status_code in (403, 429):
        reset = _rate_limit_reset(response)
        if reset is not None:
            raise RateLimitError(reset)
    raise FaultError(response.status_code, _error_message(response))


def _encode(content: bytes) -> str:
    return base64.b64encode(content).decode("ascii")


def decode_base64_content(content: str) -> bytes:
    """Decode base64 text as returned by GitHub, which wraps lines with ``\\n``."""
    return base64.b64decode(content.replace("\n", ""))


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise FaultError(response.status_code, f"response body is not JSON: {exc}") from exc


def _malformed(response: httpx.Response, what: str, exc: Exception) -> FaultError:
    return FaultError(response.status_code, f"malformed {what} response: {exc!r}")


class GitHubRepository:
    """Content gateway for one repository, backed by an ``httpx.AsyncClient``.

    The client is expected to carry the API base URL and authentication
    (see ``cio.github.auth``).
    """

    def __init__(self, client: httpx.AsyncClient, owner: str, name: str) -> None:
        self._client = client
        self.owner = owner
        self.name = name

    def _contents_url(self, path: str) -> str:
        quoted = quote(path.strip("/"), safe="/")
        return f"/repos/{self.owner}/{self.name}/contents/{quoted}".rstrip("/")

    async def get_file(self, path: str, branch: str) -> FileContent:
        resp = await self._client.get(self._contents_url(path), params={"ref": branch})
        raise_for_github_status(resp)
        data = _json_body(resp)
        if isinstance(data, list):
            raise FaultError(resp.status_code, f"{path} is a directory")
        if not isinstance(data, dict):
            raise _malformed(resp, "contents", TypeError(type(data).__name__))
        if data.get("encoding") == "none":
            # Files over 1 MB come back without inline content.
            raise FaultError(403, f"{path} is too_large for the contents API")
        try:
            return FileContent(
                path=data.get("path", path),
                # binascii.Error is a ValueError.
                content=decode_base64_content(data.get("content", "")),
                sha=data["sha"],
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise _malformed(resp, "contents", exc) from exc

    async def update_file(
        self, path: str, content: bytes, message: str, sha: str, branch: str
    ) -> None:
        resp = await self._client.put(
            self._contents_url(path),
            json={
                "message": message,
                "content": _encode(content),
                "sha": sha,
                "branch": branch,
            },
        )
        raise_for_github_status(resp)

    async def create_file(self, path: str, content: bytes, message: str, branch: str) -> None:
        resp = await self._client.put(
            self._contents_url(path),
            json={
                "message": message,
                "content": _encode(content),
                "branch": branch,
            },
        )
        raise_for_github_status(resp)

    async def list_directory(self, path: str, branch: str) -> list[DirectoryItem]:
        resp = await self._client.get(self._contents_url(path), params={"ref": branch})
        raise_for_github_status(resp)
        data = _json_body(resp)
        items: list[dict[str, Any]] = data if isinstance(data, list) else [data]
        try:
            return [DirectoryItem(path=item["path"], sha=item["sha"]) for item in items]
        except (KeyError, TypeError) as exc:
            raise _malformed(resp, "directory listing", exc) from exc

    async def fetch_blob(self, sha: str) -> Blob:
        resp = await self._client.get(f"/repos/{self.owner}/{self.name}/git/blobs/{sha}")
        raise_for_github_status(resp)
        data = _json_body(resp)
        if not isinstance(data, dict):
            raise _malformed(resp, "blob", TypeError(type(data).__name__))
        return Blob(
            sha=data.get("sha", sha),
            content=data.get("content", ""),
            encoding=data.get("encoding", "base64"),
        )


class OrgRepoLister:
    """Lists every repository of an organization, following pagination links."""

    def __init__(self, client: httpx.AsyncClient, org: str) -> None:
        self._client = client
        self.org = org

    async def list_repos(self) -> list[RepoDescriptor]:
        repos: list[RepoDescriptor] = []
        url: str | None = f"/orgs/{self.org}/repos"
        params: dict[str, str | int] | None = {"per_page": ORG_REPOS_PER_PAGE, "type": "all"}
        while url is not None:
            resp = await self._client.get(url, params=params)
            raise_for_github_status(resp)
            repos.extend(RepoDescriptor.from_api(item) for item in resp.json())
            # The next link already carries the query string.
            url = resp.links.get("next", {}).get("url")
            params = None
        logger.debug("Listed %d repositories for %s", len(repos), self.org)
        return repos
