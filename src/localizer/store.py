"""
Project state persistence and per-project write serialization.

The store is a plain load/save interface over externally persisted state,
so every version-list change is a read-modify-write. ``ProjectLocks`` gives
each project id its own asyncio.Lock; writers hold it only around the
read-modify-write, never across provider or transcoder calls.
"""

import asyncio
import copy
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from .errors import SourceMissing
from .models import MediaAsset, Project, VersionRecord

logger = logging.getLogger("localizer")


class ProjectLocks:
    """One asyncio.Lock per project id, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, project_id: str):
        lock = self._locks.setdefault(project_id, asyncio.Lock())
        self._users[project_id] = self._users.get(project_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[project_id] -= 1
            if not self._users[project_id]:
                del self._users[project_id]
                del self._locks[project_id]


class ProjectStore:
    """Load/save interface the workflows use."""

    async def load(self, project_id: str) -> Project:
        raise NotImplementedError

    async def save(self, project: Project) -> None:
        raise NotImplementedError

    async def create(self, project_id: str, original_video: MediaAsset) -> Project:
        """Create a project whose first (original) version is ``original_video``."""
        project = Project(
            project_id=project_id,
            versions=[VersionRecord(media_asset=original_video, kind="original")],
        )
        await self.save(project)
        return project


class InMemoryProjectStore(ProjectStore):
    """Keeps deep copies so callers never share state with the store."""

    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}

    async def load(self, project_id: str) -> Project:
        await asyncio.sleep(0)
        if project_id not in self._projects:
            raise SourceMissing(f"Project not found: {project_id}")
        return copy.deepcopy(self._projects[project_id])

    async def save(self, project: Project) -> None:
        await asyncio.sleep(0)
        self._projects[project.project_id] = copy.deepcopy(project)


class JsonProjectStore(ProjectStore):
    """One ``<project_id>.json`` file per project."""

    def __init__(self, root: str) -> None:
        self.root = Path(root)

    def _path(self, project_id: str) -> Path:
        return self.root / f"{project_id}.json"

    async def load(self, project_id: str) -> Project:
        path = self._path(project_id)
        if not path.exists():
            raise SourceMissing(f"Project not found: {project_id}")
        raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        return Project.from_dict(json.loads(raw))

    async def save(self, project: Project) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path(project.project_id)
        tmp = path.with_suffix(".json.tmp")
        data = json.dumps(project.to_dict(), ensure_ascii=False, indent=2)
        await asyncio.to_thread(tmp.write_text, data, encoding="utf-8")
        await asyncio.to_thread(tmp.replace, path)
        logger.debug("Saved project %s (%d versions)", project.project_id, len(project.versions))
