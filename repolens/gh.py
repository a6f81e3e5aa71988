from github import Auth, Github, GithubException
from github.Repository import Repository
from itertools import islice
from typing import Callable, Dict, List, Optional, TypeVar
from urllib.parse import urlparse
from dataclasses import dataclass
from fnmatch import fnmatch
from repolens.content import CommitInfo, RepositoryDocument
from repolens.errors import (
    AccessForbiddenError,
    AuthenticationError,
    InvalidRepositoryUrlError,
    RepoNotFoundError
)
import asyncio
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")

# paths never worth downloading, matched with fnmatch
DEFAULT_IGNORE_PATTERNS = [
    # lock files
    "package-lock.json", "yarn.lock", "pnpm-lock.yaml", "bun.lockb",
    # images
    "*.svg", "*.png", "*.jpg", "*.jpeg", "*.gif", "*.ico", "*.webp", "*.avif",
    # fonts
    "*.woff", "*.woff2", "*.ttf", "*.eot", "*.otf",
    # documents
    "*.pdf",
    # build outputs and dependencies
    "**/node_modules/**", "**/dist/**", "**/build/**", "**/.next/**",
    "**/.turbo/**", "**/out/**", "**/.output/**", "**/coverage/**", "**/.nuxt/**",
    # git and ide
    ".git/**", ".gitignore", ".vscode/**", ".idea/**",
    # media and archives
    "*.mp4", "*.mp3", "*.mov", "*.avi", "*.zip", "*.tar", "*.gz", "*.rar",
    # minified
    "*.min.js", "*.min.css", "*.bundle.js",
]

# the contents API refuses blobs above 1MB
MAX_BLOB_BYTES = 1_000_000
MAX_CONCURRENT_FETCHES = 5
COMMIT_PAGE_SIZE = 30


@dataclass
class RepositoryInfo:
    owner: str
    name: str
    private: bool
    default_branch: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


def parse_github_url(url: str) -> tuple[str, str]:
    """Parse a GitHub URL into owner and repository name."""
    cleaned = url.strip().rstrip("/")
    if cleaned.endswith(".git"):
        cleaned = cleaned[:-4]

    # drop /tree/<branch>/... and /blob/... suffixes
    for marker in ("/tree/", "/blob/"):
        if marker in cleaned:
            cleaned = cleaned.split(marker)[0]

    parsed = urlparse(cleaned if "://" in cleaned else f"https://{cleaned}")
    parts = [p for p in parsed.path.split("/") if p]
    host = parsed.netloc.lower()
    if host not in ("github.com", "www.github.com") or len(parts) < 2:
        raise InvalidRepositoryUrlError(f"Invalid GitHub URL format: {url}")

    owner, repo = parts[0], parts[1]
    return owner, repo


def is_ignored(path: str, patterns: Optional[List[str]] = None) -> bool:
    patterns = DEFAULT_IGNORE_PATTERNS if patterns is None else patterns
    # "**/dir/**" needs a leading slash to also match top-level dirs
    candidates = (path, "/" + path)
    return any(fnmatch(c, p) for p in patterns for c in candidates)


def translate_github_error(error: GithubException, context: str) -> Exception:
    status = error.status
    if status == 404:
        return RepoNotFoundError(
            f"{context}: repository or branch not found. "
            f"Check the URL and ensure the repository is accessible.")
    if status == 401:
        return AuthenticationError(
            f"{context}: authentication failed. "
            f"Provide a valid GitHub token with repo access.")
    if status in (403, 429):
        return AccessForbiddenError(
            f"{context}: access forbidden. This could be due to rate limiting "
            f"or insufficient permissions; ensure the token has the repo scope.")
    return error


class GitHubClient:

    def __init__(self, github_token: Optional[str] = None, ignore_patterns: Optional[List[str]] = None):
        self.github_token = github_token
        self.github = Github(auth=Auth.Token(github_token)) if github_token else Github()
        self.ignore_patterns = ignore_patterns if ignore_patterns is not None else DEFAULT_IGNORE_PATTERNS
        self._repos: Dict[str, Repository] = {}

    async def _call(self, func: Callable[[], T], context: str) -> T:
        """Run a blocking PyGithub call in a worker thread, mapping HTTP errors."""
        try:
            return await asyncio.to_thread(func)
        except GithubException as e:
            translated = translate_github_error(e, context)
            if translated is e:
                raise
            raise translated from e

    async def _get_repo(self, owner: str, name: str) -> Repository:
        full_name = f"{owner}/{name}"
        if full_name not in self._repos:
            self._repos[full_name] = await self._call(
                lambda: self.github.get_repo(full_name), full_name)
        return self._repos[full_name]

    async def get_repository_info(self, url: str) -> RepositoryInfo:
        owner, name = parse_github_url(url)
        repo = await self._get_repo(owner, name)
        return RepositoryInfo(
            owner=owner,
            name=name,
            private=bool(repo.private),
            default_branch=repo.default_branch or "main"
        )

    async def load_repository(self, url: str, branch: Optional[str] = None) -> List[RepositoryDocument]:
        """Fetch every non-ignored text file of the repository."""
        info = await self.get_repository_info(url)
        logger.info(
            f"Repository verified: {info.full_name} "
            f"(private={info.private}, default branch={info.default_branch})")

        if info.private and not self.github_token:
            raise AuthenticationError(
                "This is a private repository but no GitHub token was provided. "
                "Please provide a valid GitHub token with repo access.")
        if not self.github_token:
            logger.warning("No GitHub token provided; API rate limits will be low")

        ref = branch or info.default_branch
        repo = await self._get_repo(info.owner, info.name)
        tree = await self._call(
            lambda: repo.get_git_tree(ref, recursive=True), f"{info.full_name}@{ref}")

        paths = []
        for element in tree.tree:
            if element.type != "blob":
                continue
            if is_ignored(element.path, self.ignore_patterns):
                logger.debug(f"Ignoring {element.path}")
                continue
            if element.size is not None and element.size > MAX_BLOB_BYTES:
                logger.debug(f"Ignoring {element.path}: {element.size} bytes")
                continue
            paths.append(element.path)

        logger.info(f"Fetching {len(paths)} files from {info.full_name}@{ref}")
        semaphore = asyncio.Semaphore(MAX_CONCURRENT_FETCHES)
        fetched = await asyncio.gather(
            *(self._fetch_file(repo, path, ref, semaphore) for path in paths))

        docs = sorted((d for d in fetched if d is not None), key=lambda d: d.source_path)
        if not docs:
            logger.warning(
                "No documents loaded. Repository might be empty or all files are ignored.")
        else:
            logger.info(f"Loaded {len(docs)} documents")
        return docs

    async def _fetch_file(
        self,
        repo: Repository,
        path: str,
        ref: str,
        semaphore: asyncio.Semaphore
    ) -> Optional[RepositoryDocument]:
        async with semaphore:
            contents = await self._call(
                lambda: repo.get_contents(path, ref=ref), f"{repo.full_name}/{path}")

        if isinstance(contents, list):
            return None
        try:
            text = contents.decoded_content.decode("utf-8")
        except (UnicodeDecodeError, AssertionError):
            logger.warning(f"Skipping {path}: not a UTF-8 text file")
            return None
        return RepositoryDocument(source_path=path, content=text)

    async def list_commits(self, url: str, limit: int = 10) -> List[CommitInfo]:
        """Most recent commits, newest author date first."""
        owner, name = parse_github_url(url)
        repo = await self._get_repo(owner, name)
        page_size = max(limit, COMMIT_PAGE_SIZE)
        commits = await self._call(
            lambda: list(islice(repo.get_commits(), page_size)), f"{owner}/{name} commits")

        infos = []
        for commit in commits:
            git_author = commit.commit.author
            infos.append(CommitInfo(
                commit_hash=commit.sha,
                message=commit.commit.message or "",
                author_name=(git_author.name if git_author else "") or "",
                author_avatar_url=(commit.author.avatar_url if commit.author else "") or "",
                commit_date=git_author.date if git_author else None
            ))

        infos.sort(
            key=lambda c: c.commit_date.timestamp() if c.commit_date else float("-inf"),
            reverse=True)
        return infos[:limit]

    async def get_commit_diff(self, url: str, commit_hash: str) -> str:
        """Unified diff of a commit, assembled from its per-file patches."""
        owner, name = parse_github_url(url)
        repo = await self._get_repo(owner, name)

        def build_diff() -> str:
            commit = repo.get_commit(commit_hash)
            parts = []
            for f in commit.files:
                old_path = f.previous_filename or f.filename
                header = (
                    f"diff --git a/{old_path} b/{f.filename}\n"
                    f"--- a/{old_path}\n"
                    f"+++ b/{f.filename}"
                )
                parts.append(f"{header}\n{f.patch}" if f.patch else f"{header}\n(binary or empty change: {f.status})")
            return "\n".join(parts)

        return await self._call(build_diff, f"{owner}/{name}@{commit_hash[:7]}")
