"""Shared fixtures for repository manager tests."""

from datetime import datetime, timedelta, timezone

import pytest

from repo_manager.application.registry_service import RepositoryRegistry
from repo_manager.infrastructure.local_storage import InMemoryStorage


class FakeClock:
    """Clock returning a fixed time that tests advance explicitly."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds=60):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def registry(storage, clock):
    return RepositoryRegistry(storage, clock=clock)


class FailingStorage(InMemoryStorage):
    """In-memory storage whose writes raise OSError while ``failing`` is set."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.failing = False

    def set_item(self, key, value):
        if self.failing:
            raise OSError("disk full")
        super().set_item(key, value)


@pytest.fixture
def failing_storage():
    return FailingStorage()
