import asyncio
import logging
from typing import Optional, Union

from cachetools import TTLCache
from redis.asyncio import Redis, RedisCluster
from redis.asyncio.cluster import ClusterNode

from ..domain.project.service import StudyService
from ..repositories.project_repository import ProjectRepository
from ..storage.base import StorageBackend
from ..storage.memory import DictionaryBackend
from ..storage.redis import RedisBackend
from .config import settings
from .error_handling import handle_service_errors
from .exceptions.base import ExternalServiceError

logger = logging.getLogger(__name__)


def _redis_client() -> Union[Redis, RedisCluster]:
    """Cluster client in production, single node everywhere else."""
    if settings.environment == "production":
        return RedisCluster(
            startup_nodes=[ClusterNode(host, port) for host, port in settings.redis_cluster_nodes],
            decode_responses=True,
            max_connections=settings.redis_max_connections,
        )
    return Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        decode_responses=True,
        max_connections=settings.redis_max_connections,
    )


class StorageConnection:
    """Process-wide storage backend selected by ``settings.storage_type``."""

    _backend: Optional[StorageBackend] = None
    _lock: Optional[asyncio.Lock] = None

    @classmethod
    async def connect(cls) -> StorageBackend:
        if cls._lock is None:
            cls._lock = asyncio.Lock()

        async with cls._lock:
            if cls._backend is not None:
                return cls._backend

            if settings.storage_type == "memory":
                cls._backend = DictionaryBackend()
            else:
                backend = RedisBackend(_redis_client())
                try:
                    await backend.ping()
                except Exception as e:
                    logger.error(f"Redis unreachable: {e}")
                    await backend.close()
                    raise ExternalServiceError("redis", str(e)) from e
                cls._backend = backend

            logger.info(f"Using {settings.storage_type} project storage")
            return cls._backend

    @classmethod
    async def disconnect(cls) -> None:
        backend, cls._backend = cls._backend, None
        if backend is not None:
            await backend.close()
            logger.info("Project storage closed")


class ServiceContainer:
    """Lazily built services sharing the storage connection."""

    _study_service: Optional[StudyService] = None

    @classmethod
    async def study_service(cls) -> StudyService:
        if cls._study_service is None:
            repository = ProjectRepository(
                await StorageConnection.connect(),
                cache=TTLCache(maxsize=settings.cache_maxsize, ttl=settings.cache_expiry),
            )
            cls._study_service = StudyService(
                repository, export_dir=settings.export_dir, max_import_bytes=settings.max_import_bytes
            )
        return cls._study_service

    @classmethod
    def reset(cls) -> None:
        cls._study_service = None


async def get_storage() -> StorageBackend:
    """FastAPI dependency returning the storage backend."""
    return await StorageConnection.connect()


async def get_study_service() -> StudyService:
    """FastAPI dependency returning the shared StudyService."""
    return await ServiceContainer.study_service()


@handle_service_errors(default_return_value=False)
async def storage_healthy(storage: StorageBackend) -> bool:
    return await storage.ping()


async def startup() -> None:
    """Open storage and build services before serving requests."""
    await ServiceContainer.study_service()
    logger.info("Application dependencies ready")


async def shutdown() -> None:
    ServiceContainer.reset()
    await StorageConnection.disconnect()
    logger.info("Application dependencies released")
