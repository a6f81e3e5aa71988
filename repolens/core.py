from typing import Callable, Dict, Optional
from rich.console import Console
from sqlalchemy.orm import sessionmaker
from repolens.config import RepolensConfig
from repolens.content.filters import should_process
from repolens.embeddings.base import EmbeddingProvider
from repolens.embeddings.factory import create_embedding_provider
from repolens.embeddings.generator import EmbeddingGenerator
from repolens.gh import GitHubClient
from repolens.llm.base import GenerationProvider
from repolens.llm.factory import create_generation_provider
from repolens.ratelimit import RateLimiter
from repolens.retry import RetryPolicy
from repolens.store import (
    PersistenceWriter,
    ProjectStore,
    create_db_engine,
    create_session_factory
)
from repolens.summaries.batcher import SummarizationBatcher
from repolens.summaries.commits import CommitSummarizer
import logging

logger = logging.getLogger(__name__)

GitHubClientFactory = Callable[[Optional[str]], GitHubClient]


class RepolensCore:
    """Ingestion pipeline entry points, independent of CLI/API interfaces."""

    def __init__(
        self,
        config: RepolensConfig,
        console: Optional[Console] = None,
        session_factory: Optional[sessionmaker] = None,
        rate_limiter: Optional[RateLimiter] = None,
        retry: Optional[RetryPolicy] = None,
        generation_provider: Optional[GenerationProvider] = None,
        embedding_provider: Optional[EmbeddingProvider] = None,
        github_client_factory: Optional[GitHubClientFactory] = None
    ):
        self.config = config
        self.console = console or Console()

        if session_factory is None:
            session_factory = create_session_factory(create_db_engine(config.database_url))
        self.projects = ProjectStore(session_factory)
        self.writer = PersistenceWriter(session_factory)

        # one limiter shared by every stage of this process
        self.rate_limiter = rate_limiter or RateLimiter.from_config(config.rate_limits)
        self.retry = retry or RetryPolicy.from_config(config.retry)
        self.generation_provider = generation_provider or create_generation_provider(config)
        self.embedding_provider = embedding_provider or create_embedding_provider(config)
        self.github_client_factory = github_client_factory or (
            lambda token: GitHubClient(token))

        self.batcher = SummarizationBatcher(
            provider=self.generation_provider,
            rate_limiter=self.rate_limiter,
            retry=self.retry,
            batch_size=config.indexing.batch_size,
            max_files=config.indexing.max_files,
            max_chars_per_file=config.indexing.max_chars_per_file
        )
        self.embedder = EmbeddingGenerator(
            provider=self.embedding_provider,
            rate_limiter=self.rate_limiter,
            retry=self.retry
        )

    def _github(self, token: Optional[str] = None) -> GitHubClient:
        return self.github_client_factory(token or self.config.github_token)

    async def index_repository(
        self,
        project_id: str,
        repo_url: str,
        github_token: Optional[str] = None
    ) -> Dict[str, int]:
        """Summarize, embed and store the repository's source files.

        Files already stored for the project are skipped. Returns the number
        of files stored with a vector and the number that dropped out along
        the way.
        """
        logger.info(f"Starting indexing for project {project_id}: {repo_url}")
        github = self._github(github_token)
        documents = await github.load_repository(repo_url)
        await self.projects.ensure_project(project_id, repo_url)
        self.console.print(f"[blue]→[/blue] Found {len(documents)} documents")

        indexing = self.config.indexing
        candidates = [
            d for d in documents
            if should_process(d, min_chars=indexing.min_file_chars, max_chars=indexing.max_file_chars)
        ]
        logger.info(f"Filtered: {len(candidates)}/{len(documents)} files will be processed")

        already_indexed = await self.projects.get_indexed_file_names(project_id)
        pending = [d for d in candidates if d.source_path not in already_indexed]
        if len(pending) < len(candidates):
            logger.info(f"Skipping {len(candidates) - len(pending)} files indexed previously")

        if not pending:
            self.console.print("[yellow]Nothing to index[/yellow]")
            return {"indexed": 0, "failed": 0}

        # raises RepositoryTooLargeError before any AI spend
        self.batcher.check_size(pending)

        summaries = await self.batcher.summarize_documents(pending)
        self.console.print(f"[blue]→[/blue] Summarized {len(summaries)}/{len(pending)} files")

        embeddings = await self.embedder.embed_summaries(summaries)
        self.console.print(f"[blue]→[/blue] Embedded {len(embeddings)}/{len(summaries)} summaries")

        result = await self.writer.write_embeddings(project_id, embeddings)
        failed = len(pending) - result.indexed
        logger.info(f"Indexing complete: {result.indexed} succeeded, {failed} failed")
        return {"indexed": result.indexed, "failed": failed}

    async def poll_commits(self, project_id: str) -> Dict[str, int]:
        """Summarize and store commits not yet recorded for the project."""
        repo_url = await self.projects.get_github_url(project_id)
        known = await self.projects.get_commit_hashes(project_id)

        summarizer = CommitSummarizer(
            github=self._github(),
            provider=self.generation_provider,
            rate_limiter=self.rate_limiter,
            retry=self.retry,
            max_commits=self.config.commits.max_commits,
            parallelism=self.config.commits.parallelism,
            max_diff_chars=self.config.commits.max_diff_chars
        )
        records = await summarizer.summarize_new_commits(repo_url, known)
        if not records:
            logger.info("No commits to process")
            return {"count": 0}

        count = await self.writer.write_commits(project_id, records)
        self.console.print(f"[blue]→[/blue] Saved {count} commit summaries")
        return {"count": count}
