"""Repository list sync: mirror the organization's GitHub repos into the database."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import delete, select

from cio.models.repo import GithubRepo

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from cio.github.base import RepoDescriptor, RepoLister

logger = logging.getLogger(__name__)


class RepoMirror(Protocol):
    """Local store of repository descriptors, unique by name."""

    async def list_repos(self) -> list[GithubRepo]: ...

    async def upsert_repo(self, repo: RepoDescriptor) -> None: ...

    async def delete_repo_by_name(self, name: str) -> None: ...


class SqlRepoMirror:
    """RepoMirror over the ``github_repos`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_repos(self) -> list[GithubRepo]:
        result = await self.session.execute(select(GithubRepo))
        return list(result.scalars().all())

    async def upsert_repo(self, repo: RepoDescriptor) -> None:
        values = asdict(repo)
        result = await self.session.execute(select(GithubRepo).where(GithubRepo.name == repo.name))
        existing = result.scalar_one_or_none()
        if existing is None:
            self.session.add(GithubRepo(**values))
        else:
            for key, value in values.items():
                setattr(existing, key, value)
        await self.session.flush()

    async def delete_repo_by_name(self, name: str) -> None:
        await self.session.execute(delete(GithubRepo).where(GithubRepo.name == name))


@dataclass
class RepoSyncSummary:
    """Names touched by one refresh."""

    upserted: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)


async def refresh_db_github_repos(lister: RepoLister, mirror: RepoMirror) -> RepoSyncSummary:
    """Upsert every remote repo and delete mirrored repos that no longer exist remotely.

    The remote list is fetched in full before the mirror is touched, so a
    listing failure leaves the mirror unchanged.
    """
    remote_repos = await lister.list_repos()

    repo_map = {repo.name: repo for repo in await mirror.list_repos()}

    summary = RepoSyncSummary()
    for remote in remote_repos:
        await mirror.upsert_repo(remote)
        repo_map.pop(remote.name, None)
        summary.upserted.append(remote.name)

    # Whatever is left was not seen remotely.
    for name in repo_map:
        await mirror.delete_repo_by_name(name)
        summary.deleted.append(name)

    logger.info(
        "Synced %d repositories (%d removed)", len(summary.upserted), len(summary.deleted)
    )
    return summary


async def sync_github_repos(session: AsyncSession, lister: RepoLister) -> RepoSyncSummary:
    """Refresh the ``github_repos`` table and commit."""
    summary = await refresh_db_github_repos(lister, SqlRepoMirror(session))
    await session.commit()
    return summary
