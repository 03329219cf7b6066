"""Domain entities for managed Git repositories."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class PushType(str, Enum):
    """Push strategy chosen for a push. Recorded only, never applied remotely."""

    REGULAR = "regular"
    FORCE = "force"
    FORCE_WITH_LEASE = "force-with-lease"


@dataclass(frozen=True)
class RepositoryRecord:
    """Immutable registry entry for a repository remote."""

    id: str
    url: str
    label: Optional[str] = None
    is_master: bool = False
    last_pushed: Optional[datetime] = None
    last_commit: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.label or self.url


@dataclass(frozen=True)
class RepositoryCoordinates:
    """Owner and name of a GitHub repository."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class StoredRepository:
    """Row of the shared repositories table used by remote git operations."""

    id: str
    url: str
    nickname: Optional[str] = None
    last_commit: Optional[str] = None
    last_commit_date: Optional[datetime] = None
    last_sync: Optional[datetime] = None
    status: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.nickname or self.url
