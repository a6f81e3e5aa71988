from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from repolens.store.models import Base
import logging

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # sessions are used from worker threads
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, echo=echo)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine, vector_dimension: int = 768) -> None:
    """Create all tables; on PostgreSQL also set up the pgvector column."""
    if engine.dialect.name == "postgresql":
        with engine.begin() as conn:
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))

    Base.metadata.create_all(bind=engine)

    if engine.dialect.name == "postgresql":
        with engine.begin() as conn:
            column_type = conn.execute(text(
                "SELECT udt_name FROM information_schema.columns "
                "WHERE table_name = 'source_code_embeddings' "
                "AND column_name = 'summary_embedding'"
            )).scalar()
            if column_type != "vector":
                logger.info(f"Converting summary_embedding to vector({vector_dimension})")
                conn.execute(text(
                    f"ALTER TABLE source_code_embeddings "
                    f"ALTER COLUMN summary_embedding TYPE vector({int(vector_dimension)}) "
                    f"USING summary_embedding::vector"
                ))
