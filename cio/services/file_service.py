"""Small helpers shared by the operations jobs."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_DATE = "1970-01-01"
DEFAULT_DATE_FORMAT = "%Y-%m-%d"

GITHUB_WEB_URL = "https://github.com"


def write_file(path: Path, contents: str) -> None:
    """Write ``contents`` to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(contents, encoding="utf-8")
    logger.info("wrote file: %s", path)


def default_date() -> date:
    """Placeholder date for records without one."""
    return datetime.strptime(DEFAULT_DATE, DEFAULT_DATE_FORMAT).date()


def check_if_github_issue_exists(issues: Iterable[dict[str, Any]], search: str) -> bool:
    """Return True if any issue title contains ``search``."""
    return any(search in (issue.get("title") or "") for issue in issues)


async def get_github_user_public_ssh_keys(
    handle: str, client: httpx.AsyncClient | None = None
) -> list[str]:
    """Return a user's public SSH keys as published at ``github.com/<handle>.keys``."""
    url = f"{GITHUB_WEB_URL}/{handle}.keys"
    if client is None:
        async with httpx.AsyncClient() as http_client:
            resp = await http_client.get(url, timeout=15.0)
    else:
        resp = await client.get(url, timeout=15.0)
    resp.raise_for_status()
    return [line.strip() for line in resp.text.splitlines() if line.strip()]
