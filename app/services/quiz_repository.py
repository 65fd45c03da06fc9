"""
Quiz Repository - row-level access to the quiz tables.

Every method opens its own session, so each call is one transaction.
"No row" comes back as None / []; every other store failure is raised
as StoreUnavailable.

The methods are blocking (SQLAlchemy + psycopg2). Async callers run them
in the threadpool.
"""

import json
import logging
import uuid
from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.core.exceptions import StoreUnavailable
from app.db.postgres import get_db_session

logger = logging.getLogger(__name__)

QUESTION_COLUMNS = "id, question, options, correct_answer, question_order"


def new_id() -> str:
    return str(uuid.uuid4())


def _load_options(value: Any) -> Dict[str, str]:
    # JSONB comes back decoded, TEXT columns (SQLite) as a string
    if isinstance(value, str):
        return json.loads(value)
    return dict(value)


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


def _question_row(row) -> dict:
    return {
        "id": str(row["id"]),
        "question": row["question"],
        "options": _load_options(row["options"]),
        "correct_answer": row["correct_answer"],
        "question_order": int(row["question_order"]),
    }


def _attempt_row(row) -> dict:
    return {
        "id": str(row["id"]),
        "quiz_id": str(row["quiz_id"]),
        "domain": row["domain"],
        "title": row["title"],
        "student_id": row["student_id"],
        "score": int(row["score"]),
        "max_score": int(row["max_score"]),
        "attempted_at": _to_datetime(row["attempted_at"]),
    }


class SqlQuizRepository:
    """
    Quiz, question and attempt storage on top of SQLAlchemy.

    Args:
        engine: Engine to use; defaults to the application engine.
    """

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine

    # --------------------------------------------------------
    # QUIZZES
    # --------------------------------------------------------

    def find_quiz_by_domain(self, domain: str) -> Optional[dict]:
        """Single quiz row for the domain, or None when there is none."""
        try:
            with get_db_session(self.engine) as db:
                row = db.execute(
                    text("SELECT id, domain, title FROM quizzes WHERE domain = :domain"),
                    {"domain": domain}
                ).mappings().first()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Error checking quiz: {e}") from e
        return dict(row) if row else None

    def create_quiz(self, domain: str, title: str) -> dict:
        """
        Insert a quiz for the domain unless one exists, then return the row.

        Concurrent creators all get the same row back: the loser's insert
        is a no-op on the unique domain.
        """
        try:
            with get_db_session(self.engine) as db:
                db.execute(
                    text("""
                        INSERT INTO quizzes (id, domain, title)
                        VALUES (:id, :domain, :title)
                        ON CONFLICT (domain) DO NOTHING
                    """),
                    {"id": new_id(), "domain": domain, "title": title}
                )
                row = db.execute(
                    text("SELECT id, domain, title FROM quizzes WHERE domain = :domain"),
                    {"domain": domain}
                ).mappings().first()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Error creating quiz: {e}") from e

        if row is None:
            raise StoreUnavailable(f"Quiz for '{domain}' missing right after insert")
        return dict(row)

    # --------------------------------------------------------
    # QUESTIONS
    # --------------------------------------------------------

    def find_questions_ordered(self, quiz_id: str) -> List[dict]:
        """All questions of a quiz ordered by question_order."""
        try:
            with get_db_session(self.engine) as db:
                rows = db.execute(
                    text(f"""
                        SELECT {QUESTION_COLUMNS} FROM quiz_questions
                        WHERE quiz_id = :quiz_id
                        ORDER BY question_order ASC
                    """),
                    {"quiz_id": quiz_id}
                ).mappings().all()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Error fetching questions: {e}") from e
        return [_question_row(row) for row in rows]

    def insert_questions_batch(self, quiz_id: str, questions: List[dict]) -> bool:
        """
        Insert a full question set in one transaction.

        Each item needs question, options, correct_answer and
        question_order. Returns False without writing anything when the
        quiz already has questions (another writer won), True otherwise.
        """
        params = [
            {
                "id": new_id(),
                "quiz_id": quiz_id,
                "question": q["question"],
                "options": json.dumps(q["options"]),
                "correct_answer": q["correct_answer"],
                "question_order": q["question_order"],
            }
            for q in questions
        ]

        try:
            with get_db_session(self.engine) as db:
                existing = db.execute(
                    text("SELECT COUNT(*) FROM quiz_questions WHERE quiz_id = :quiz_id"),
                    {"quiz_id": quiz_id}
                ).scalar()
                if existing:
                    return False

                db.execute(
                    text("""
                        INSERT INTO quiz_questions
                            (id, quiz_id, question, options, correct_answer, question_order)
                        VALUES
                            (:id, :quiz_id, :question, :options, :correct_answer, :question_order)
                    """),
                    params
                )
        except IntegrityError as e:
            # (quiz_id, question_order) is unique: a concurrent batch got there first
            logger.info("Question insert for quiz %s lost to a concurrent writer: %s", quiz_id, e.orig)
            return False
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Error inserting questions: {e}") from e
        return True

    # --------------------------------------------------------
    # ATTEMPTS
    # --------------------------------------------------------

    def insert_attempt(self, quiz_id: str, student_id: str, score: int, max_score: int) -> str:
        """Store a scored attempt. Returns the attempt id."""
        attempt_id = new_id()
        statement = text("""
            INSERT INTO quiz_attempts (id, quiz_id, student_id, score, max_score, attempted_at)
            VALUES (:id, :quiz_id, :student_id, :score, :max_score, :attempted_at)
        """).bindparams(bindparam("attempted_at", type_=DateTime()))

        try:
            with get_db_session(self.engine) as db:
                db.execute(
                    statement,
                    {
                        "id": attempt_id,
                        "quiz_id": quiz_id,
                        "student_id": student_id,
                        "score": score,
                        "max_score": max_score,
                        "attempted_at": datetime.utcnow(),
                    }
                )
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Error saving quiz attempt: {e}") from e
        return attempt_id

    def find_attempts_by_student(self, student_id: str) -> List[dict]:
        """All attempts of a student with quiz domain/title, newest first."""
        try:
            with get_db_session(self.engine) as db:
                rows = db.execute(
                    text("""
                        SELECT a.id, a.quiz_id, q.domain, q.title, a.student_id,
                               a.score, a.max_score, a.attempted_at
                        FROM quiz_attempts a
                        JOIN quizzes q ON a.quiz_id = q.id
                        WHERE a.student_id = :student_id
                        ORDER BY a.attempted_at DESC
                    """),
                    {"student_id": student_id}
                ).mappings().all()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Error fetching quiz attempts: {e}") from e
        return [_attempt_row(row) for row in rows]

    def find_attempt(self, attempt_id: str) -> Optional[dict]:
        try:
            with get_db_session(self.engine) as db:
                row = db.execute(
                    text("""
                        SELECT a.id, a.quiz_id, q.domain, q.title, a.student_id,
                               a.score, a.max_score, a.attempted_at
                        FROM quiz_attempts a
                        JOIN quizzes q ON a.quiz_id = q.id
                        WHERE a.id = :id
                    """),
                    {"id": attempt_id}
                ).mappings().first()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"Error fetching quiz attempt: {e}") from e
        return _attempt_row(row) if row else None
