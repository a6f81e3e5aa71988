from typing import Iterable, List, Optional
from repolens.content.models import CommitInfo, CommitRecord
from repolens.gh import GitHubClient
from repolens.llm.base import GenerationProvider
from repolens.ratelimit import CallClass, RateLimiter
from repolens.retry import RetryPolicy
import asyncio
import logging

logger = logging.getLogger(__name__)

FAILED_COMMIT_SUMMARY = "Failed to generate summary after retries"
EMPTY_DIFF_SUMMARY = "No changes detected in diff"
EMPTY_RESPONSE_SUMMARY = "Summary generation returned empty result"

COMMIT_PROMPT = """You are an expert programmer, and you are trying to summarize a git diff.
Reminders about the git diff format:
For every file, there are a few metadata lines, like (for example):
```
diff --git a/lib/index.js b/lib/index.js
--- a/lib/index.js
+++ b/lib/index.js
```
This means that `lib/index.js` was modified in this commit. Note that this is only an example.
Then there is a specifier of the lines that were modified.
A line starting with `+` means it was added.
A line that starting with `-` means that line was deleted.
A line that starts with neither `+` nor `-` is code given for context and better understanding.
It is not part of the diff.

EXAMPLE SUMMARY COMMENTS:
```
* Raised the amount of returned recordings from `10` to `100` [packages/server/recordings_api.ts], [packages/server/constants.ts]
* Fixed a typo in the github action name [.github/workflows/gpt-commit-summarizer.yml]
* Moved the `octokit` initialization to a separate file [src/octokit.ts], [src/index.ts]
* Lowered numeric tolerance for test files
```
Most commits will have less comments than this examples list.
The last comment does not include the file names,
because there were more than two relevant files in the hypothetical commit.
Do not include parts of the example in your summary.
It is given only as an example of appropriate comments.

Please summarise the following diff file:

{diff}"""


class CommitSummarizer:
    """Summarizes commits that have not been stored for a project yet."""

    def __init__(
        self,
        github: GitHubClient,
        provider: GenerationProvider,
        rate_limiter: RateLimiter,
        retry: Optional[RetryPolicy] = None,
        max_commits: int = 10,
        parallelism: int = 2,
        max_diff_chars: int = 40_000
    ):
        self.github = github
        self.provider = provider
        self.rate_limiter = rate_limiter
        self.retry = retry or RetryPolicy()
        self.max_commits = max_commits
        self.parallelism = parallelism
        self.max_diff_chars = max_diff_chars

    async def fetch_new_commits(self, repo_url: str, known_hashes: Iterable[str]) -> List[CommitInfo]:
        commits = await self.github.list_commits(repo_url, limit=self.max_commits)
        known = set(known_hashes)
        return [c for c in commits if c.commit_hash not in known]

    async def _summarize_diff(self, repo_url: str, commit_hash: str) -> str:
        diff = await self.github.get_commit_diff(repo_url, commit_hash)
        if not diff or not diff.strip():
            logger.warning(f"No diff data for commit {commit_hash}")
            return EMPTY_DIFF_SUMMARY

        if len(diff) > self.max_diff_chars:
            logger.debug(f"Truncating diff of {commit_hash} from {len(diff)} chars")
            diff = diff[:self.max_diff_chars]

        await self.rate_limiter.acquire(CallClass.GENERATION)
        summary = await self.provider.generate(COMMIT_PROMPT.format(diff=diff))
        if not summary or not summary.strip():
            logger.warning(f"Empty summary returned for commit {commit_hash}")
            return EMPTY_RESPONSE_SUMMARY
        return summary.strip()

    async def summarize_commit(self, repo_url: str, commit: CommitInfo) -> CommitRecord:
        """Always returns a record; failures get a sentinel summary."""
        context = f"Commit {commit.commit_hash[:7]}"
        try:
            summary = await self.retry.run(
                lambda: self._summarize_diff(repo_url, commit.commit_hash), context=context)
        except Exception as e:
            logger.error(f"{context}: {str(e)}")
            summary = None

        if summary is None:
            logger.warning(f"Failed to generate summary for {commit.commit_hash}")
            summary = FAILED_COMMIT_SUMMARY
        return CommitRecord.from_info(commit, summary)

    async def summarize_new_commits(self, repo_url: str, known_hashes: Iterable[str]) -> List[CommitRecord]:
        new_commits = await self.fetch_new_commits(repo_url, known_hashes)
        logger.info(f"Found {len(new_commits)} unprocessed commits")

        records: List[CommitRecord] = []
        for i in range(0, len(new_commits), self.parallelism):
            group = new_commits[i:i + self.parallelism]
            records.extend(await asyncio.gather(
                *(self.summarize_commit(repo_url, c) for c in group)))
            if i + self.parallelism < len(new_commits):
                await self.rate_limiter.wait_between_batches(CallClass.GENERATION)
        return records
