from typing import Optional, Set
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker
from repolens.errors import ProjectNotFoundError
from repolens.store.models import Commit, Project, SourceCodeEmbedding
import asyncio
import logging

logger = logging.getLogger(__name__)


class ProjectStore:
    """Read-side queries the pipeline needs before spending AI calls."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _ensure_project(self, project_id: str, github_url: str, name: Optional[str]) -> None:
        with self.session_factory() as session:
            project = session.get(Project, project_id)
            if project is None:
                session.add(Project(id=project_id, github_url=github_url, name=name))
                logger.info(f"Registered project {project_id} for {github_url}")
            elif project.github_url != github_url:
                logger.info(f"Updating repository URL of project {project_id}")
                project.github_url = github_url
            session.commit()

    async def ensure_project(self, project_id: str, github_url: str, name: Optional[str] = None) -> None:
        await asyncio.to_thread(self._ensure_project, project_id, github_url, name)

    def _get_github_url(self, project_id: str) -> str:
        with self.session_factory() as session:
            url = session.scalar(select(Project.github_url).where(Project.id == project_id))
        if not url:
            raise ProjectNotFoundError(f"Project {project_id} has no GitHub URL")
        return url

    async def get_github_url(self, project_id: str) -> str:
        return await asyncio.to_thread(self._get_github_url, project_id)

    def _get_commit_hashes(self, project_id: str) -> Set[str]:
        with self.session_factory() as session:
            return set(session.scalars(
                select(Commit.commit_hash).where(Commit.project_id == project_id)))

    async def get_commit_hashes(self, project_id: str) -> Set[str]:
        return await asyncio.to_thread(self._get_commit_hashes, project_id)

    def _get_indexed_file_names(self, project_id: str) -> Set[str]:
        # rows without a vector were interrupted mid-write and get redone
        with self.session_factory() as session:
            return set(session.scalars(
                select(SourceCodeEmbedding.file_name).where(
                    SourceCodeEmbedding.project_id == project_id,
                    SourceCodeEmbedding.summary_embedding.is_not(None))))

    async def get_indexed_file_names(self, project_id: str) -> Set[str]:
        return await asyncio.to_thread(self._get_indexed_file_names, project_id)
