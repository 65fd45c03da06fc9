"""
Relational store connection utility.

PostgreSQL in production; any SQLAlchemy URL works through DATABASE_URL
(the test-suite points it at a temporary SQLite file).

Tables:
- quizzes         - one row per domain (domain is UNIQUE)
- quiz_questions  - exactly 10 rows per generated quiz
- quiz_attempts   - scored student attempts
"""
import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Global engine (created lazily so importing this module never connects)
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def build_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.
    pool_size=5: maintain 5 connections ready
    max_overflow=10: allow 10 extra connections under load
    """
    if url.startswith("sqlite"):
        return create_engine(url, echo=echo)
    return create_engine(
        url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=echo
    )


def get_engine() -> Engine:
    """Get or create the store engine (singleton pattern)"""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(settings.sqlalchemy_url, echo=settings.sql_echo)
    return _engine


def get_session_factory() -> sessionmaker:
    """Session factory bound to the default engine"""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autoflush=False, bind=get_engine())
    return _session_factory


@contextmanager
def get_db_session(engine: Optional[Engine] = None):
    """
    Context manager for database sessions.
    Commits on success, rolls back on any exception.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM quizzes"))
    """
    if engine is None:
        session: Session = get_session_factory()()
    else:
        session = Session(bind=engine, autoflush=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_postgres_connection(engine: Optional[Engine] = None) -> bool:
    """
    Test if the store is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session(engine) as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception as e:
        logger.warning("Store connection failed: %s", e)
        return False


def _options_column_type(engine: Engine) -> str:
    return "JSONB" if engine.dialect.name == "postgresql" else "TEXT"


def init_quiz_tables(engine: Optional[Engine] = None) -> None:
    """
    Create quiz tables if they do not exist.
    Call this once during app startup.
    """
    engine = engine or get_engine()
    options_type = _options_column_type(engine)

    statements = [
        """
        CREATE TABLE IF NOT EXISTS quizzes (
            id VARCHAR(36) PRIMARY KEY,
            domain VARCHAR(255) NOT NULL UNIQUE,
            title VARCHAR(255) NOT NULL,
            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS quiz_questions (
            id VARCHAR(36) PRIMARY KEY,
            quiz_id VARCHAR(36) NOT NULL REFERENCES quizzes(id),
            question TEXT NOT NULL,
            options {options_type} NOT NULL,
            correct_answer VARCHAR(1) NOT NULL,
            question_order INTEGER NOT NULL,
            UNIQUE (quiz_id, question_order)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS quiz_attempts (
            id VARCHAR(36) PRIMARY KEY,
            quiz_id VARCHAR(36) NOT NULL REFERENCES quizzes(id),
            student_id VARCHAR(255) NOT NULL,
            score INTEGER NOT NULL,
            max_score INTEGER NOT NULL,
            attempted_at TIMESTAMP NOT NULL
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_quiz_attempts_student ON quiz_attempts (student_id)",
    ]

    with get_db_session(engine) as db:
        for statement in statements:
            db.execute(text(statement))

    logger.info("Quiz tables ready (%s)", engine.dialect.name)
