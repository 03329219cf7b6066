"""Tests for the registry key-value stores."""

import json

import pytest

from repo_manager.application.registry_service import RepositoryRegistry
from repo_manager.infrastructure import local_storage
from repo_manager.infrastructure.local_storage import InMemoryStorage, JsonFileStorage


def test_in_memory_storage_roundtrip():
    storage = InMemoryStorage()
    assert storage.get_item("k") is None
    storage.set_item("k", "v")
    assert storage.get_item("k") == "v"


def test_file_storage_missing_file(tmp_path):
    storage = JsonFileStorage(str(tmp_path / "missing.json"))
    assert storage.get_item("git-repositories") is None


def test_file_storage_creates_directories_and_keeps_other_keys(tmp_path):
    path = tmp_path / "nested" / "storage.json"
    storage = JsonFileStorage(str(path))

    storage.set_item("theme", "dark")
    storage.set_item("git-repositories", "[]")

    assert json.loads(path.read_text(encoding="utf-8")) == {"theme": "dark", "git-repositories": "[]"}
    assert not (tmp_path / "nested" / "storage.json.tmp").exists()


def test_file_storage_ignores_corrupt_file(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("{broken", encoding="utf-8")
    storage = JsonFileStorage(str(path))

    assert storage.get_item("git-repositories") is None
    storage.set_item("git-repositories", "[]")
    assert storage.get_item("git-repositories") == "[]"


def test_file_storage_uses_environment_path(tmp_path, monkeypatch):
    path = tmp_path / "env.json"
    monkeypatch.setenv("REPO_MANAGER_STORAGE", str(path))

    assert JsonFileStorage().path == str(path)


def test_registry_survives_restart_with_file_storage(tmp_path):
    path = str(tmp_path / "storage.json")
    registry = RepositoryRegistry(JsonFileStorage(path))
    record = registry.add_repository("https://github.com/acme/prod.git", "Prod")

    reloaded = RepositoryRegistry(JsonFileStorage(path))

    assert reloaded.get(record.id) == record


def test_failed_replace_removes_temporary_file(tmp_path, monkeypatch):
    path = tmp_path / "storage.json"
    storage = JsonFileStorage(str(path))
    storage.set_item("git-repositories", "[]")

    def fail_replace(_src, _dst):
        raise OSError("read-only file system")

    monkeypatch.setattr(local_storage.os, "replace", fail_replace)

    with pytest.raises(OSError):
        storage.set_item("git-repositories", "[1]")

    assert not (tmp_path / "storage.json.tmp").exists()
    assert storage.get_item("git-repositories") == "[]"
