from repolens.store.db import create_db_engine, create_session_factory, init_db
from repolens.store.projects import ProjectStore
from repolens.store.writer import PersistenceWriter, WriteResult, sanitize_text

__all__ = [
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "ProjectStore",
    "PersistenceWriter",
    "WriteResult",
    "sanitize_text"
]
