"""
Shared fixtures for the repolens test suite.

Provides:
- a simulated clock whose sleep advances time instantly
- fake GitHub, generation and embedding clients
- a temporary SQLite database per test
"""
import asyncio
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import numpy as np
import pytest

from repolens.config import RepolensConfig
from repolens.content import CommitInfo, RepositoryDocument
from repolens.embeddings.base import EmbeddingProvider
from repolens.llm.base import GenerationProvider
from repolens.ratelimit import RateLimiter
from repolens.retry import RetryPolicy
from repolens.store import create_db_engine, create_session_factory, init_db

# Python-looking filler long enough to pass the minimum size check
CODE = "def handler(event):\n    return {'status': 'ok', 'event': event}\n" * 3


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeGenerationProvider(GenerationProvider):
    """Answers batch prompts with one [FILE i] section per file."""

    def __init__(self, respond: Optional[Callable[[str], str]] = None):
        self.prompts: List[str] = []
        self.respond = respond or self.answer_all

    @staticmethod
    def answer_all(prompt: str) -> str:
        count = prompt.count("--- END FILE ")
        if count == 0:
            return "* Changed things"
        return "\n\n".join(f"[FILE {i}]\nSummary of file {i}." for i in range(1, count + 1))

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.respond(prompt)

    @property
    def calls(self) -> int:
        return len(self.prompts)


class FakeEmbeddingProvider(EmbeddingProvider):

    def __init__(self, dimension: int = 4, fail_on: Optional[Callable[[str], Optional[Exception]]] = None):
        self._dimension = dimension
        self.fail_on = fail_on
        self.texts: List[str] = []

    async def embed(self, text: str) -> np.ndarray:
        self.texts.append(text)
        if self.fail_on is not None:
            error = self.fail_on(text)
            if error is not None:
                raise error
        digest = hashlib.sha256(text.encode()).digest()
        return np.array([b / 255 for b in digest[:self._dimension]])

    @property
    def dimension(self) -> int:
        return self._dimension


class FakeGitHubClient:

    def __init__(
        self,
        documents: Optional[List[RepositoryDocument]] = None,
        commits: Optional[List[CommitInfo]] = None,
        diffs: Optional[Dict[str, str]] = None
    ):
        self.documents = documents or []
        self.commits = commits or []
        self.diffs = diffs or {}
        self.diff_requests: List[str] = []

    async def load_repository(self, url: str, branch: Optional[str] = None) -> List[RepositoryDocument]:
        return list(self.documents)

    async def list_commits(self, url: str, limit: int = 10) -> List[CommitInfo]:
        ordered = sorted(self.commits, key=lambda c: c.commit_date, reverse=True)
        return ordered[:limit]

    async def get_commit_diff(self, url: str, commit_hash: str) -> str:
        self.diff_requests.append(commit_hash)
        return self.diffs.get(commit_hash, f"diff --git a/app.py b/app.py\n+print('{commit_hash}')")


def make_commits(count: int) -> List[CommitInfo]:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        CommitInfo(
            commit_hash=f"{i:040x}",
            message=f"Commit number {i}",
            author_name="Dev",
            author_avatar_url="https://avatars.example/dev.png",
            commit_date=base + timedelta(hours=i)
        )
        for i in range(count)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return RateLimiter(
        {"generation": 15, "embedding": 1500},
        clock=clock,
        sleep=clock.sleep
    )


@pytest.fixture
def retry(clock):
    return RetryPolicy(max_attempts=3, fallback_delay=60.0, sleep=clock.sleep)


@pytest.fixture
def session_factory(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'repolens.db'}")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def config():
    return RepolensConfig(openai_api_key="test-key")
