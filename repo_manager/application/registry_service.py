"""Application service owning the local repository registry."""

import json
import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Protocol, Tuple

from repo_manager.domain.errors import RegistryValidationError
from repo_manager.domain.repository import RepositoryRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KeyValueStorage(Protocol):
    """Persistence port: string values stored under string keys."""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str):
        ...


class MalformedRegistryData(ValueError):
    """Raised internally when persisted registry data has the wrong shape."""
    pass


def _optional_str(entry: Dict[str, Any], key: str) -> Optional[str]:
    value = entry.get(key)
    if value is not None and not isinstance(value, str):
        raise MalformedRegistryData(f"{key} must be a string")
    return value


def _optional_timestamp(entry: Dict[str, Any], key: str) -> Optional[datetime]:
    value = _optional_str(entry, key)
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise MalformedRegistryData(f"{key} is not an ISO timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def record_from_dict(entry: Any) -> RepositoryRecord:
    """Build a record from its persisted form, raising MalformedRegistryData on bad shape."""
    if not isinstance(entry, dict):
        raise MalformedRegistryData("record must be an object")

    record_id = entry.get("id")
    url = entry.get("url")
    is_master = entry.get("isMaster", False)
    if not isinstance(record_id, str) or not record_id:
        raise MalformedRegistryData("id must be a non-empty string")
    if not isinstance(url, str):
        raise MalformedRegistryData("url must be a string")
    if not isinstance(is_master, bool):
        raise MalformedRegistryData("isMaster must be a boolean")

    return RepositoryRecord(
        id=record_id,
        url=url,
        label=_optional_str(entry, "label") or None,
        is_master=is_master,
        last_pushed=_optional_timestamp(entry, "lastPushed"),
        last_commit=_optional_str(entry, "lastCommit"),
    )


def record_to_dict(record: RepositoryRecord) -> Dict[str, Any]:
    """Persisted form of a record, using the camelCase keys of the storage format."""
    return {
        "id": record.id,
        "url": record.url,
        "label": record.label,
        "isMaster": record.is_master,
        "lastPushed": record.last_pushed.isoformat() if record.last_pushed else None,
        "lastCommit": record.last_commit,
    }


def deserialize_records(raw: Optional[str]) -> List[RepositoryRecord]:
    """
    Decode a persisted registry, failing closed to an empty list.

    Args:
        raw: JSON array as stored, or None when nothing was stored yet

    Returns:
        The decoded records, or an empty list if the data is malformed
    """
    if raw is None:
        return []

    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise MalformedRegistryData("registry must be a JSON array")
        records = [record_from_dict(entry) for entry in data]
        ids = [record.id for record in records]
        if len(set(ids)) != len(ids):
            raise MalformedRegistryData("duplicate record ids")
    except (ValueError, TypeError, RecursionError) as e:
        logger.warning(f"Discarding malformed persisted registry: {e}")
        return []

    masters = [record for record in records if record.is_master]
    if len(masters) > 1:
        logger.warning(f"Persisted registry has {len(masters)} master records; keeping {masters[0].id}")
        keep = masters[0].id
        records = [
            record if record.id == keep or not record.is_master
            else replace(record, is_master=False)
            for record in records
        ]
    return records


def serialize_records(records: List[RepositoryRecord]) -> str:
    return json.dumps([record_to_dict(record) for record in records])


class RepositoryRegistry:
    """Ordered collection of repository records with at most one master."""

    STORAGE_KEY = "git-repositories"
    INITIAL_COMMIT_LABEL = "Initial commit"

    def __init__(self, storage: KeyValueStorage, clock: Optional[Clock] = None):
        """
        Initialize the registry from persisted storage.

        Args:
            storage: Key-value store read once here and written after every mutation
            clock: Source of the current time, defaults to UTC now
        """
        self.storage = storage
        self.clock = clock or utcnow
        self._records: List[RepositoryRecord] = deserialize_records(
            storage.get_item(self.STORAGE_KEY)
        )
        logger.info(f"Loaded {len(self._records)} repositories from storage")

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[RepositoryRecord]:
        return iter(self.records)

    @property
    def records(self) -> Tuple[RepositoryRecord, ...]:
        return tuple(self._records)

    @property
    def master(self) -> Optional[RepositoryRecord]:
        return next((record for record in self._records if record.is_master), None)

    def get(self, repo_id: str) -> Optional[RepositoryRecord]:
        return next((record for record in self._records if record.id == repo_id), None)

    def _commit(self, records: List[RepositoryRecord]):
        """Persist ``records`` and adopt them; state is untouched if the write fails."""
        self.storage.set_item(self.STORAGE_KEY, serialize_records(records))
        self._records = records

    def add_repository(self, url: str, label: Optional[str] = None) -> RepositoryRecord:
        """
        Append a new repository record.

        The first record added to an empty registry becomes the master.

        Args:
            url: Remote URL of the repository
            label: Optional human-readable name

        Returns:
            The created record

        Raises:
            RegistryValidationError: If the URL is empty
        """
        if not url or not url.strip():
            logger.error("Repository URL is required")
            raise RegistryValidationError("Please enter a repository URL")

        record = RepositoryRecord(
            id=str(uuid.uuid4()),
            url=url.strip(),
            label=(label or "").strip() or None,
            is_master=not self._records,
            last_pushed=self.clock(),
            last_commit=self.INITIAL_COMMIT_LABEL,
        )
        logger.info(f"Adding new repository: url={record.url} label={record.label}")
        self._commit(self._records + [record])
        return record

    def set_master(self, repo_id: str) -> bool:
        """
        Make ``repo_id`` the only master record.

        Returns:
            False, without touching state, if no record has that id
        """
        if self.get(repo_id) is None:
            logger.warning(f"Cannot set master: unknown repository {repo_id}")
            return False

        logger.info(f"Setting master repository: {repo_id}")
        self._commit([
            replace(record, is_master=record.id == repo_id)
            for record in self._records
        ])
        return True

    def record_push(self, target_id: str) -> Optional[RepositoryRecord]:
        """Stamp ``last_pushed`` on the target record and return the updated record."""
        updated = None
        records = []
        for record in self._records:
            if record.id == target_id:
                record = replace(record, last_pushed=self.clock())
                updated = record
            records.append(record)

        if updated is None:
            logger.warning(f"Cannot record push: unknown repository {target_id}")
            return None

        self._commit(records)
        return updated
