from typing import Optional, Sequence, Tuple
from repolens.content.models import RepositoryDocument
import re
import logging

logger = logging.getLogger(__name__)

DEFAULT_MIN_CHARS = 50
DEFAULT_MAX_CHARS = 50_000

_BINARY_EXTENSIONS = (
    "png", "jpe?g", "gif", "bmp", "ico", "svg", "webp", "avif", "tiff?", "psd",
    "woff2?", "ttf", "eot", "otf",
    "mp3", "mp4", "mov", "avi", "mkv", "webm", "wav", "flac", "ogg",
    "zip", "tar", "gz", "tgz", "bz2", "xz", "7z", "rar", "jar", "war",
    "wasm", "dll", "node", "dylib", "so", "exe", "bin", "o", "a", "class",
    "pyc", "pyo", "db", "sqlite3?", "pkl", "parquet",
    "pdf", "docx?", "xlsx?", "pptx?", "odt",
)

# (reason, pattern) pairs, matched against the lowercased path
SKIP_PATTERNS: Sequence[Tuple[str, "re.Pattern[str]"]] = [
    # secrets
    ("env file", re.compile(r"(^|/)\.env($|\.)")),
    ("secret", re.compile(r"\.(pem|key|p12|pfx|crt)$")),

    # lock files
    ("lock file", re.compile(
        r"(^|/)(package-lock\.json|yarn\.lock|pnpm-lock\.ya?ml|bun\.lockb?|"
        r"poetry\.lock|pipfile\.lock|cargo\.lock|gemfile\.lock|"
        r"composer\.lock|go\.sum|uv\.lock)$")),
    ("lock file", re.compile(r"\.lock$")),

    # build output and dependencies
    ("build directory", re.compile(
        r"(^|/)(node_modules|bower_components|vendor|dist|build|out|\.next|"
        r"\.nuxt|\.output|\.turbo|\.vercel|\.cache|coverage|target|"
        r"__pycache__|\.venv|venv|site-packages|\.tox|\.mypy_cache|"
        r"\.pytest_cache|\.git|\.idea|\.vscode)/")),

    # minified and generated code
    ("minified", re.compile(r"\.(min|bundle)\.[a-z0-9]+$")),
    ("generated", re.compile(r"\.generated\.|(^|/)generated/|_pb2(_grpc)?\.py$|\.pb\.go$")),
    ("generated", re.compile(r"(^|/)@?prisma/client")),

    # binaries, media, archives and documents
    ("binary", re.compile(r"\.(" + "|".join(_BINARY_EXTENSIONS) + r")$")),

    # stylesheets
    ("stylesheet", re.compile(r"\.(css|scss|sass|less|styl)$")),

    # documentation
    ("documentation", re.compile(
        r"(^|/)(readme|license|licence|changelog|contributing|"
        r"code_of_conduct|security|authors|notice)(\.(md|mdx|txt|rst|adoc))?$")),
    ("documentation", re.compile(r"(^|/)docs?/")),
    ("documentation", re.compile(r"\.(md|mdx|rst|txt|adoc)$")),

    # ci and tooling configuration
    ("ci config", re.compile(r"(^|/)(\.github|\.gitlab|\.circleci|\.husky|\.devcontainer)/")),
    ("ci config", re.compile(r"(^|/)(\.gitlab-ci\.yml|\.travis\.yml|azure-pipelines\.yml|jenkinsfile)$")),
    ("tooling config", re.compile(
        r"(^|/)(\.gitignore|\.gitattributes|\.dockerignore|\.npmrc|\.nvmrc|"
        r"\.editorconfig|\.prettierignore|\.eslintignore|renovate\.json|"
        r"\.pre-commit-config\.yaml|\.flake8|\.pylintrc)$")),
    ("tooling config", re.compile(
        r"(^|/)\.?(eslint|prettier|babel|stylelint|commitlint|lint-staged)"
        r"(rc(\.[a-z]+)?|\.config\.[a-z]+)$")),
    ("tooling config", re.compile(
        r"(^|/)(jest|vitest|karma|cypress|playwright|postcss|tailwind)"
        r"\.config\.[a-z]+$")),
    ("tooling config", re.compile(r"(^|/)tsconfig(\.[a-z0-9-]+)?\.json$")),

    # tests, specs and stories
    ("test", re.compile(
        r"(^|/)(tests?|__tests__|__mocks__|specs?|e2e|cypress|stories|"
        r"\.storybook|fixtures)/")),
    ("test", re.compile(r"\.(test|spec|stories|story|e2e)\.[a-z0-9]+$")),
    ("test", re.compile(r"(^|/)(test_[^/]+|[^/]+_test|conftest)\.py$")),
    ("test", re.compile(r"_test\.go$")),

    # type declarations, source maps and snapshots
    ("type declaration", re.compile(r"\.d\.[cm]?ts$")),
    ("source map", re.compile(r"\.map$")),
    ("snapshot", re.compile(r"\.snap$|(^|/)__snapshots__/")),
]


def skip_reason(
    doc: RepositoryDocument,
    min_chars: int = DEFAULT_MIN_CHARS,
    max_chars: int = DEFAULT_MAX_CHARS
) -> Optional[str]:
    """Return why ``doc`` is not worth summarizing, or None to keep it."""
    path = doc.source_path.lower()
    for reason, pattern in SKIP_PATTERNS:
        if pattern.search(path):
            return reason

    length = len(doc.content)
    if length > max_chars:
        return f"too large ({length} chars)"
    if length < min_chars:
        return f"too small ({length} chars)"
    return None


def should_process(
    doc: RepositoryDocument,
    min_chars: int = DEFAULT_MIN_CHARS,
    max_chars: int = DEFAULT_MAX_CHARS
) -> bool:
    reason = skip_reason(doc, min_chars=min_chars, max_chars=max_chars)
    if reason:
        logger.debug(f"Skipping {doc.source_path}: {reason}")
        return False
    return True
