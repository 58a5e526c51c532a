import time
from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest
from cachetools import TTLCache

from flashdeck.core.exceptions.domain import StorageError
from flashdeck.domain.flashcard.pool import CardPoolManager
from flashdeck.domain.project.models import Project
from flashdeck.repositories.project_repository import ProjectRepository
from flashdeck.storage.base import StorageBackend
from flashdeck.storage.memory import DictionaryBackend
from flashdeck.storage.redis import RedisBackend


@pytest.fixture
def storage():
    return DictionaryBackend()


@pytest.fixture
def repository(storage):
    return ProjectRepository(storage, cache=TTLCache(maxsize=10, ttl=60))


async def test_dictionary_backend_returns_copies(storage):
    value = {"cards": ["a"]}
    await storage.set("key", value)
    value["cards"].append("b")

    loaded = await storage.get("key")
    loaded["cards"].append("c")

    assert await storage.get("key") == {"cards": ["a"]}


async def test_dictionary_backend_expires_keys(storage):
    await storage.set("key", 1, expiry=60)
    assert await storage.get("key") == 1

    storage.expiry["key"] = time.time() - 1

    assert await storage.get("key") is None


async def test_dictionary_backend_sorted_sets(storage):
    await storage.zadd("index", {"a": 1.0, "b": 3.0, "c": 2.0})

    assert await storage.zrevrange("index", 0, -1) == ["b", "c", "a"]
    assert await storage.zrevrange("index", 0, 1) == ["b", "c"]

    await storage.zrem("index", "c", "missing")
    assert await storage.zrevrange("index", 0, -1) == ["b", "a"]
    assert await storage.zrevrange("unknown", 0, -1) == []


async def test_dictionary_backend_delete(storage):
    await storage.set("key", "value")
    await storage.delete("key")

    assert await storage.get("key") is None
    assert await storage.ping() is True


async def test_redis_backend_serialises_json():
    client = Mock()
    client.set = AsyncMock()
    client.get = AsyncMock(return_value='{"name": "Cells"}')
    backend = RedisBackend(client)

    await backend.set("project:1", {"name": "Cells"})

    client.set.assert_awaited_once_with("project:1", '{"name": "Cells"}')
    assert await backend.get("project:1") == {"name": "Cells"}


async def test_redis_backend_uses_setex_for_expiry():
    client = Mock()
    client.setex = AsyncMock()
    backend = RedisBackend(client)

    await backend.set("key", [1, 2], expiry=30)

    client.setex.assert_awaited_once_with("key", 30, "[1, 2]")


async def test_repository_round_trip(repository, project, clock, make_draft):
    pool = CardPoolManager(project, clock=clock)
    pool.add_cards([make_draft("A?")], source_content="text")
    pool.record_outcome(pool.cards[0].id, False)
    project.cards_seen_this_session.add(pool.cards[0].id)

    await repository.save(project)
    repository.cache.clear()
    loaded = await repository.get(project.id)

    assert loaded is not project
    assert loaded.to_dict() == project.to_dict()


async def test_repository_get_missing_returns_none(repository):
    assert await repository.get("missing") is None


async def test_repository_serves_reads_from_cache(project):
    storage = AsyncMock(spec=StorageBackend)
    repository = ProjectRepository(storage)

    await repository.save(project)
    loaded = await repository.get(project.id)

    assert loaded.id == project.id
    storage.get.assert_not_called()


async def test_repository_lists_most_recent_first(repository, clock):
    first = Project(name="First", updated_at=clock.now)
    second = Project(name="Second", updated_at=clock.now + timedelta(hours=1))
    await repository.save(first)
    await repository.save(second)

    projects = await repository.list_projects()

    assert [p.name for p in projects] == ["Second", "First"]
    assert [p.name for p in await repository.list_projects(limit=1)] == ["Second"]


async def test_repository_delete(repository, project):
    await repository.save(project)

    assert await repository.delete(project.id) is True
    assert await repository.get(project.id) is None
    assert await repository.list_projects() == []
    assert await repository.delete(project.id) is False


async def test_repository_wraps_backend_failures(project):
    storage = AsyncMock(spec=StorageBackend)
    storage.set.side_effect = ConnectionError("connection refused")
    repository = ProjectRepository(storage)

    with pytest.raises(StorageError) as exc_info:
        await repository.save(project)

    assert exc_info.value.error_code == "STORAGE_ERROR"
    assert exc_info.value.details["operation"] == "save"
    assert project.id not in repository.cache
