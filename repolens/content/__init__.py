from repolens.content.models import (
    RepositoryDocument,
    SummaryRecord,
    EmbeddingRecord,
    CommitInfo,
    CommitRecord
)
from repolens.content.filters import should_process, skip_reason

__all__ = [
    "RepositoryDocument",
    "SummaryRecord",
    "EmbeddingRecord",
    "CommitInfo",
    "CommitRecord",
    "should_process",
    "skip_reason"
]
