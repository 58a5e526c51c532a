import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from cachetools import TTLCache

from ..core.exceptions.domain import StorageError
from ..domain.project.models import Project
from ..storage.base import StorageBackend


class ProjectRepositoryInterface(ABC):
    """Abstract base class defining the interface for project repositories."""

    @abstractmethod
    async def get(self, project_id: str) -> Optional[Project]:
        """Load a project snapshot, or None if it does not exist."""
        pass

    @abstractmethod
    async def save(self, project: Project) -> None:
        """
        Persist a whole-project snapshot, replacing any previous one.

        Args:
            project (Project): The project to be saved.
        """
        pass

    @abstractmethod
    async def delete(self, project_id: str) -> bool:
        """Remove a project; returns whether it existed."""
        pass

    @abstractmethod
    async def list_projects(self, limit: int = 50) -> List[Project]:
        """Projects ordered by most recent update."""
        pass


class ProjectRepository(ProjectRepositoryInterface):
    """
    Stores project snapshots in a key-value storage backend.

    Each project is one JSON document; a sorted set indexes project ids by
    last update time. Writes are last-write-wins.
    """

    INDEX_KEY = "projects"

    def __init__(self, storage: StorageBackend, cache: Optional[TTLCache] = None):
        """
        Initialize the project repository.

        Args:
            storage (StorageBackend): Backend holding the snapshots
            cache (Optional[TTLCache], optional): Read cache of snapshots keyed by project id
        """
        self.storage = storage
        self.cache = cache if cache is not None else TTLCache(maxsize=100, ttl=300)
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _key(project_id: str) -> str:
        return f"project:{project_id}"

    async def get(self, project_id: str) -> Optional[Project]:
        snapshot = self.cache.get(project_id)
        if snapshot is None:
            try:
                snapshot = await self.storage.get(self._key(project_id))
            except Exception as e:
                self.logger.error(f"Error loading project {project_id}: {str(e)}")
                raise StorageError("load", str(e), {"project_id": project_id}) from e
            if snapshot is None:
                return None
            self.cache[project_id] = snapshot

        return Project.from_dict(snapshot)

    async def save(self, project: Project) -> None:
        snapshot = project.to_dict()
        try:
            await self.storage.set(self._key(project.id), snapshot)
            await self.storage.zadd(self.INDEX_KEY, {project.id: project.updated_at.timestamp()})
        except Exception as e:
            self.cache.pop(project.id, None)
            self.logger.error(f"Error saving project {project.id}: {str(e)}")
            raise StorageError("save", str(e), {"project_id": project.id}) from e

        self.cache[project.id] = snapshot

    async def delete(self, project_id: str) -> bool:
        self.cache.pop(project_id, None)
        try:
            existing = await self.storage.get(self._key(project_id))
            if existing is None:
                return False
            await self.storage.delete(self._key(project_id))
            await self.storage.zrem(self.INDEX_KEY, project_id)
        except Exception as e:
            self.logger.error(f"Error deleting project {project_id}: {str(e)}")
            raise StorageError("delete", str(e), {"project_id": project_id}) from e

        self.logger.info(f"Deleted project {project_id}")
        return True

    async def list_projects(self, limit: int = 50) -> List[Project]:
        try:
            project_ids = await self.storage.zrevrange(self.INDEX_KEY, 0, limit - 1)
        except Exception as e:
            self.logger.error(f"Error listing projects: {str(e)}")
            raise StorageError("list", str(e)) from e

        projects = []
        for project_id in project_ids:
            project = await self.get(project_id)
            if project is not None:
                projects.append(project)
        return projects
