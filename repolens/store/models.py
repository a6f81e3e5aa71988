"""Relational schema for indexed files and commit summaries.

On PostgreSQL ``summary_embedding`` is converted to a pgvector column by
``init_db``; it is declared as text here so the same models also work on
SQLite.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=True)
    github_url = Column(String(512), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    embeddings = relationship("SourceCodeEmbedding", back_populates="project")
    commits = relationship("Commit", back_populates="project")


class SourceCodeEmbedding(Base):
    __tablename__ = "source_code_embeddings"
    __table_args__ = (
        UniqueConstraint("project_id", "file_name", name="uq_embedding_project_file"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(String(64), ForeignKey("projects.id"), nullable=False, index=True)
    file_name = Column(String(1024), nullable=False)
    source_code = Column(Text, nullable=False)
    summary = Column(Text, nullable=False)
    is_placeholder = Column(Boolean, default=False, nullable=False)
    summary_embedding = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    project = relationship("Project", back_populates="embeddings")


class Commit(Base):
    __tablename__ = "commits"
    __table_args__ = (
        UniqueConstraint("project_id", "commit_hash", name="uq_commit_project_hash"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(String(64), ForeignKey("projects.id"), nullable=False, index=True)
    commit_hash = Column(String(64), nullable=False)
    commit_message = Column(Text, nullable=False, default="")
    commit_author_name = Column(String(255), nullable=False, default="")
    commit_author_avatar = Column(String(1024), nullable=False, default="")
    commit_date = Column(DateTime(timezone=True), nullable=True)
    summary = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    project = relationship("Project", back_populates="commits")
