from datetime import datetime
from typing import Optional
import numpy as np
from pydantic import BaseModel, ConfigDict, Field


class RepositoryDocument(BaseModel):
    """A single file fetched from a repository."""
    model_config = ConfigDict(frozen=True)

    source_path: str
    content: str


class SummaryRecord(BaseModel):
    """AI summary of one repository file.

    ``is_placeholder`` marks summaries substituted when the model's answer did
    not contain a usable section for the file, so they can be told apart from
    genuine summaries downstream.
    """
    source_path: str
    summary: str
    document: RepositoryDocument
    is_placeholder: bool = False


class EmbeddingRecord(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    source_path: str
    summary: str
    embedding: np.ndarray
    source_code: str
    is_placeholder: bool = False

    @classmethod
    def from_summary(cls, record: SummaryRecord, embedding: np.ndarray) -> "EmbeddingRecord":
        return cls(
            source_path=record.source_path,
            summary=record.summary,
            embedding=embedding,
            source_code=record.document.content,
            is_placeholder=record.is_placeholder
        )

    def vector_literal(self) -> str:
        """Render the embedding in pgvector's text input format."""
        return "[" + ",".join(repr(float(v)) for v in self.embedding) + "]"


class CommitInfo(BaseModel):
    """Commit metadata as listed by the repository host."""
    commit_hash: str
    message: str = ""
    author_name: str = ""
    author_avatar_url: str = ""
    commit_date: Optional[datetime] = None


class CommitRecord(CommitInfo):
    summary: str = Field(default="")

    @classmethod
    def from_info(cls, info: CommitInfo, summary: str) -> "CommitRecord":
        return cls(**info.model_dump(), summary=summary)
