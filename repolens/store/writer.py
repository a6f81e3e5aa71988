"""Durable writes for embeddings and commit summaries.

Rows go in with one bulk ``INSERT .. ON CONFLICT DO NOTHING``. If that
statement fails, rows are retried one at a time and individual failures are
skipped; only a fallback in which every row fails is fatal. Embedding vectors
are written in a second pass with raw SQL because the vector column type is
not mapped by the ORM; that pass also rewrites the row content, so a row
kept by the conflict clause ends up matching its new vector.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence
from sqlalchemy import Table, insert, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from repolens.content.models import CommitRecord, EmbeddingRecord
from repolens.errors import PersistenceError
from repolens.store.models import Commit, SourceCodeEmbedding
import asyncio
import logging
import re

logger = logging.getLogger(__name__)

# NUL and control characters other than \t, \n and \r
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_text(value: str) -> str:
    return _CONTROL_CHARS.sub("", value or "")


@dataclass
class WriteResult:
    indexed: int = 0
    failed: int = 0


class PersistenceWriter:

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _insert_statement(self, session: Session, table: Table):
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(table).on_conflict_do_nothing()
        if dialect == "sqlite":
            return sqlite.insert(table).on_conflict_do_nothing()
        # the unique constraints still reject duplicates, via the row fallback
        return insert(table)

    def _bulk_insert(self, table: Table, rows: List[Dict[str, Any]]) -> int:
        with self.session_factory() as session:
            result = session.execute(self._insert_statement(session, table).values(rows))
            session.commit()
            return max(result.rowcount or 0, 0)

    def _insert_row(self, table: Table, row: Dict[str, Any]) -> int:
        with self.session_factory() as session:
            result = session.execute(self._insert_statement(session, table).values(**row))
            session.commit()
            return max(result.rowcount or 0, 0)

    def _insert_rows(self, table: Table, rows: List[Dict[str, Any]]) -> int:
        """Insert rows, returning how many were newly created."""
        if not rows:
            return 0
        try:
            return self._bulk_insert(table, rows)
        except SQLAlchemyError as e:
            logger.warning(
                f"Bulk insert into {table.name} failed, falling back to row-by-row: {e}")

        inserted = 0
        failures = 0
        for row in rows:
            try:
                inserted += self._insert_row(table, row)
            except SQLAlchemyError as e:
                failures += 1
                logger.error(f"Failed to insert row into {table.name}: {e}")

        if failures == len(rows):
            raise PersistenceError(
                f"Could not write any of {len(rows)} rows to {table.name}")
        logger.info(f"Row-by-row insert into {table.name}: {len(rows) - failures} ok, {failures} failed")
        return inserted

    def _update_row(self, row_id: int, row: Dict[str, Any], vector: str) -> None:
        # a conflicting insert keeps the old row, so its content is rewritten
        # together with the vector
        with self.session_factory() as session:
            if session.get_bind().dialect.name == "postgresql":
                embedding = "CAST(:embedding AS vector)"
            else:
                embedding = ":embedding"
            sql = (
                "UPDATE source_code_embeddings "
                "SET source_code = :source_code, summary = :summary, "
                f"is_placeholder = :is_placeholder, summary_embedding = {embedding} "
                "WHERE id = :id"
            )
            session.execute(text(sql), {
                "source_code": row["source_code"],
                "summary": row["summary"],
                "is_placeholder": row["is_placeholder"],
                "embedding": vector,
                "id": row_id,
            })
            session.commit()

    def _write_embeddings(self, project_id: str, records: Sequence[EmbeddingRecord]) -> WriteResult:
        rows = [
            {
                "project_id": project_id,
                "file_name": sanitize_text(r.source_path),
                "source_code": sanitize_text(r.source_code),
                "summary": sanitize_text(r.summary),
                "is_placeholder": r.is_placeholder,
            }
            for r in records
        ]
        self._insert_rows(SourceCodeEmbedding.__table__, rows)

        by_name = {row["file_name"]: (row, record) for row, record in zip(rows, records)}
        with self.session_factory() as session:
            stored = session.execute(
                select(SourceCodeEmbedding.id, SourceCodeEmbedding.file_name).where(
                    SourceCodeEmbedding.project_id == project_id,
                    SourceCodeEmbedding.file_name.in_(list(by_name)))
            ).all()

        result = WriteResult()
        stored_names = set()
        for row_id, file_name in stored:
            stored_names.add(file_name)
            try:
                row, record = by_name[file_name]
                self._update_row(row_id, row, record.vector_literal())
                result.indexed += 1
            except SQLAlchemyError as e:
                result.failed += 1
                logger.error(f"Failed to update embedding for {file_name}: {e}")

        missing = set(by_name) - stored_names
        if missing:
            logger.warning(f"{len(missing)} files have no stored row: {', '.join(sorted(missing))}")
            result.failed += len(missing)
        return result

    async def write_embeddings(self, project_id: str, records: Sequence[EmbeddingRecord]) -> WriteResult:
        if not records:
            return WriteResult()
        logger.info(f"Saving {len(records)} embeddings for project {project_id}")
        result = await asyncio.to_thread(self._write_embeddings, project_id, records)
        logger.info(f"Stored embeddings: {result.indexed} succeeded, {result.failed} failed")
        return result

    def _write_commits(self, project_id: str, records: Sequence[CommitRecord]) -> int:
        rows = [
            {
                "project_id": project_id,
                "commit_hash": sanitize_text(r.commit_hash),
                "commit_message": sanitize_text(r.message),
                "commit_author_name": sanitize_text(r.author_name),
                "commit_author_avatar": sanitize_text(r.author_avatar_url),
                "commit_date": r.commit_date,
                "summary": sanitize_text(r.summary),
            }
            for r in records
        ]
        return self._insert_rows(Commit.__table__, rows)

    async def write_commits(self, project_id: str, records: Sequence[CommitRecord]) -> int:
        if not records:
            return 0
        count = await asyncio.to_thread(self._write_commits, project_id, records)
        logger.info(f"Created {count} commit records for project {project_id}")
        return count
