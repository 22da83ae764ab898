"""Idempotent create-or-update of files in a GitHub repository."""

from __future__ import annotations

import asyncio
import difflib
import logging
import posixpath
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

import httpx

from cio.github.base import FaultError, GitHubError, RateLimitError
from cio.github.client import decode_base64_content

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from cio.github.base import ContentGateway

logger = logging.getLogger(__name__)

_WHITESPACE = b"\t "

# Extra wait on top of the reset the API asks for.
RATE_LIMIT_PADDING_SECONDS = 5

COMMIT_MESSAGE_TEMPLATE = (
    "{verb} file content {path} programatically\n\n"
    "This is done from the cio repo utils::create_or_update_file function."
)

_REMOTE_ERRORS = (GitHubError, httpx.HTTPError)


def trim_bytes(data: bytes) -> bytes:
    """Strip leading and trailing tabs and spaces. Newlines are kept."""
    return data.strip(_WHITESPACE)


def unified_diff_bytes(old: bytes, new: bytes) -> bytes:
    """Line-oriented unified diff of two buffers with three lines of context."""
    lines = difflib.diff_bytes(
        difflib.unified_diff,
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile=b"original",
        tofile=b"modified",
    )
    return b"".join(line if line.endswith(b"\n") else line + b"\n" for line in lines)


class SpuriousDiffPolicy(Protocol):
    """Decides whether a difference between two buffers can be ignored."""

    def is_spurious(self, old: bytes, new: bytes) -> bool: ...


class PdfTimestampPolicy:
    """Ignore PDF rebuilds whose only change is the ModDate/CreationDate header block."""

    HUNK_HEADER = "@@ -5,8 +5,8 @@"
    # CreationDate is only checked on the removed side.
    MARKERS = ("-/ModDate", "-/CreationDate", "+/ModDate")

    def is_spurious(self, old: bytes, new: bytes) -> bool:
        try:
            diff = unified_diff_bytes(old, new).decode("utf-8")
        except UnicodeDecodeError:
            return False
        return self.HUNK_HEADER in diff and all(marker in diff for marker in self.MARKERS)


DEFAULT_POLICIES: tuple[SpuriousDiffPolicy, ...] = (PdfTimestampPolicy(),)


def is_spurious_diff(
    old: bytes, new: bytes, policies: Sequence[SpuriousDiffPolicy] = DEFAULT_POLICIES
) -> bool:
    """Return True when any policy considers the difference meaningless."""
    return any(policy.is_spurious(old, new) for policy in policies)


def commit_message(verb: str, path: str) -> str:
    """Commit message for programmatic writes, e.g. ``commit_message("Updating", path)``."""
    return COMMIT_MESSAGE_TEMPLATE.format(verb=verb, path=path)


class ReconcileAction(StrEnum):
    """What a reconciliation did to the remote file."""

    UNCHANGED = "unchanged"
    UPDATED = "updated"
    CREATED = "created"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND_IN_LISTING = "not_found_in_listing"


@dataclass
class ReconcileResult:
    """Outcome of ``reconcile_file``. ``error`` holds a failed write, if any."""

    action: ReconcileAction
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _same(path: str) -> ReconcileResult:
    logger.info("[github content] File contents at %s are the same, no update needed", path)
    return ReconcileResult(ReconcileAction.UNCHANGED)


async def _update(
    repo: ContentGateway, branch: str, path: str, content: bytes, sha: str
) -> ReconcileResult:
    error: Exception | None = None
    try:
        await repo.update_file(path, content, commit_message("Updating", path), sha, branch)
    except _REMOTE_ERRORS as exc:
        logger.debug("Update of %s failed: %s", path, exc)
        error = exc
    logger.info("[github content] Updated file at %s", path)
    return ReconcileResult(ReconcileAction.UPDATED, error)


async def _create(repo: ContentGateway, branch: str, path: str, content: bytes) -> ReconcileResult:
    error: Exception | None = None
    try:
        await repo.create_file(path, content, commit_message("Creating", path), branch)
    except _REMOTE_ERRORS as exc:
        logger.debug("Create of %s failed: %s", path, exc)
        error = exc
    logger.info("[github content] Created file at %s", path)
    return ReconcileResult(ReconcileAction.CREATED, error)


async def _reconcile_via_listing(
    repo: ContentGateway, branch: str, path: str, content: bytes
) -> ReconcileResult:
    """Compare through the git data API for files too large for the contents API.

    The contents endpoint refuses to return them, so the blob hash is taken
    from the parent directory listing instead.
    """
    parent = posixpath.dirname(path)
    wanted = path.removeprefix("/")
    for item in await repo.list_directory(parent, branch):
        if item.path != wanted:
            continue

        blob = await repo.fetch_blob(item.sha)
        current = trim_bytes(decode_base64_content(blob.content))
        if content == current:
            return _same(path)
        return await _update(repo, branch, path, content, item.sha)

    return ReconcileResult(ReconcileAction.NOT_FOUND_IN_LISTING)


async def reconcile_file(
    repo: ContentGateway,
    branch: str,
    path: str,
    new_content: bytes,
    *,
    policies: Sequence[SpuriousDiffPolicy] = DEFAULT_POLICIES,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> ReconcileResult:
    """Make the file at ``path`` on ``branch`` hold ``new_content``.

    Contents are compared after trimming tabs and spaces. An existing file is
    only rewritten when the difference is real; a missing file is created.
    Write failures are returned in the result rather than raised. Errors from
    the directory listing or blob lookup used for oversized files propagate.
    """
    content = trim_bytes(new_content)

    try:
        file = await repo.get_file(path, branch)
    except RateLimitError as exc:
        logger.info("got rate limited, sleeping for %ss", exc.reset_seconds)
        await sleep(exc.reset_seconds + RATE_LIMIT_PADDING_SECONDS)
        return ReconcileResult(ReconcileAction.RATE_LIMITED)
    except FaultError as exc:
        if "too_large" in exc.message:
            return await _reconcile_via_listing(repo, branch, path, content)
        logger.info("[github content] Getting the file at %s failed: %s", path, exc)
    except _REMOTE_ERRORS as exc:
        logger.info("[github content] Getting the file at %s failed: %s", path, exc)
    else:
        current = trim_bytes(file.content)
        if content == current or is_spurious_diff(current, content, policies):
            return _same(path)
        return await _update(repo, branch, path, content, file.sha)

    # TODO: only create on a 404 once callers stop relying on creates after transient errors.
    return await _create(repo, branch, path, content)


async def create_or_update_file_in_github_repo(
    repo: ContentGateway, branch: str, path: str, new_content: bytes
) -> None:
    """Best-effort ``reconcile_file`` for periodic jobs.

    A failed write is dropped; the next run converges the file.
    """
    await reconcile_file(repo, branch, path, new_content)
