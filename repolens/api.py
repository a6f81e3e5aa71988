from typing import Dict, Optional
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
from repolens.core import RepolensCore
from repolens.errors import (
    AccessForbiddenError,
    AuthenticationError,
    InvalidRepositoryUrlError,
    ProjectNotFoundError,
    RepoNotFoundError,
    RepolensError,
    RepositoryTooLargeError
)
import logging
import uvicorn

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidRepositoryUrlError: 400,
    AuthenticationError: 401,
    AccessForbiddenError: 403,
    RepoNotFoundError: 404,
    ProjectNotFoundError: 404,
    RepositoryTooLargeError: 413,
}


class IndexRequest(BaseModel):
    repo_url: str
    github_token: Optional[str] = None


class IndexResponse(BaseModel):
    indexed: int
    failed: int


class PollResponse(BaseModel):
    count: int


def error_status(error: Exception) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 500


class RepolensAPI:
    def __init__(self, core: RepolensCore):
        self.app = FastAPI(title="Repolens API", version="0.1.0")
        self.core = core
        self._setup_routes()

    def _setup_routes(self):
        @self.app.get("/")
        async def root():
            """Health check"""
            return {"status": "ok", "service": "repolens"}

        @self.app.post("/projects/{project_id}/index", response_model=IndexResponse)
        async def index(project_id: str, request: IndexRequest) -> Dict[str, int]:
            """Index a repository for a project"""
            try:
                return await self.core.index_repository(
                    project_id=project_id,
                    repo_url=request.repo_url,
                    github_token=request.github_token
                )
            except RepolensError as e:
                raise HTTPException(status_code=error_status(e), detail=str(e))
            except Exception as e:
                logger.exception(f"Indexing failed for project {project_id}")
                raise HTTPException(
                    status_code=500,
                    detail=f"Error indexing repository: {str(e)}"
                )

        @self.app.post("/projects/{project_id}/commits/poll", response_model=PollResponse)
        async def poll(project_id: str) -> Dict[str, int]:
            """Summarize new commits for a project"""
            try:
                return await self.core.poll_commits(project_id)
            except RepolensError as e:
                raise HTTPException(status_code=error_status(e), detail=str(e))
            except Exception as e:
                logger.exception(f"Commit polling failed for project {project_id}")
                raise HTTPException(
                    status_code=500,
                    detail=f"Error polling commits: {str(e)}"
                )

    def run(self, host: str = "0.0.0.0", port: int = 8000):
        """Run the FastAPI server."""
        uvicorn.run(self.app, host=host, port=port)
