"""SQLAlchemy ORM models for the CIO utilities."""

from cio.models.base import Base
from cio.models.repo import GithubRepo

__all__ = [
    "Base",
    "GithubRepo",
]
