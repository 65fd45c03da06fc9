"""
Quiz Service - fetch-or-generate-and-cache for domain quizzes.

FLOW for get_or_create_quiz(domain):
1. Resolve the quiz row for the domain (create it on first sight)
2. Persisted questions exist  -> return them, no model call
3. Otherwise, under a per-domain single-flight lock:
   re-check, ask the model, validate, insert all 10 in one transaction
4. Re-read and return what the store holds

A domain moves UNKNOWN -> EXISTS_NO_QUESTIONS -> EXISTS_WITH_QUESTIONS
and never back. Any failure before the insert commits leaves it in
EXISTS_NO_QUESTIONS, so a retry starts clean.

Note: this is a read at the API level but may write one quiz row and
ten question rows on first access.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Optional, List, Dict, Any

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
from pymongo.errors import PyMongoError

from app.core.exceptions import (
    DomainInvalid,
    GenerationFormatInvalid,
    GenerationUnavailable,
    InvalidAttempt,
    QuizNotFound,
    StoreUnavailable,
)
from app.core.config import get_settings
from app.db.mongodb import mongo_enabled
from app.schemas.schemas import GeneratedQuestion
from app.services.llm_client import QUESTIONS_PER_QUIZ, get_generation_client, strip_code_fences
from app.services.mongo_service import STATUS_ACCEPTED, STATUS_REJECTED, GenerationLogService
from app.services.quiz_repository import SqlQuizRepository
from app.utils.domains import get_domain_title

logger = logging.getLogger(__name__)

PASS_PERCENTAGE = 70


# ============================================================
# VALIDATION HELPERS
# ============================================================

def validate_domain(domain: Optional[str]) -> str:
    if not isinstance(domain, str) or not domain.strip():
        raise DomainInvalid()
    return domain


def parse_generated_questions(raw_text: str) -> List[GeneratedQuestion]:
    """
    Parse and validate the model's completion.

    Requires a JSON array of exactly QUESTIONS_PER_QUIZ entries, each a
    well-formed GeneratedQuestion. The first violation rejects the whole
    batch; nothing is padded, truncated or repaired.
    """
    cleaned = strip_code_fences(raw_text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise GenerationFormatInvalid(f"Model output is not valid JSON: {e}") from e

    if not isinstance(parsed, list):
        raise GenerationFormatInvalid(f"Expected a JSON array, got {type(parsed).__name__}")
    if len(parsed) != QUESTIONS_PER_QUIZ:
        raise GenerationFormatInvalid(
            f"Expected exactly {QUESTIONS_PER_QUIZ} questions, got {len(parsed)}"
        )

    questions = []
    for position, item in enumerate(parsed, start=1):
        if not isinstance(item, dict):
            raise GenerationFormatInvalid(f"Question {position} is not an object")
        try:
            questions.append(GeneratedQuestion.model_validate(item))
        except ValidationError as e:
            raise GenerationFormatInvalid(f"Question {position} is malformed: {e}") from e
    return questions


def to_question_rows(questions: List[GeneratedQuestion]) -> List[dict]:
    """question_order is 1-based array position."""
    return [
        {
            "question": q.question,
            "options": q.options,
            "correct_answer": q.correct_answer,
            "question_order": order,
        }
        for order, q in enumerate(questions, start=1)
    ]


def score_answers(questions: List[dict], answers: Dict[int, str]) -> int:
    """Count correct answers. Unanswered questions score zero."""
    return sum(
        1 for q in questions
        if answers.get(q["question_order"]) == q["correct_answer"]
    )


# ============================================================
# SINGLE-FLIGHT LOCKS
# ============================================================

class KeyedLock:
    """
    One asyncio.Lock per key, dropped once nobody holds or awaits it.
    Only safe on a single event loop.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str):
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        lock = self._locks[key]
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


# ============================================================
# QUIZ SERVICE
# ============================================================

class QuizService:
    """
    Args:
        repository: store access (SqlQuizRepository or compatible)
        generator: object with `async generate_quiz_questions(domain) -> str`
        generation_log: optional GenerationLogService for raw model output
        generation_timeout: overall bound on one generation call, seconds
    """

    def __init__(
        self,
        repository,
        generator,
        generation_log=None,
        generation_timeout: Optional[float] = None,
    ):
        self.repository = repository
        self.generator = generator
        self.generation_log = generation_log
        self.generation_timeout = generation_timeout
        self._locks = KeyedLock()

    async def get_or_create_quiz(self, domain: Optional[str]) -> List[dict]:
        """
        Ordered list of the domain's 10 questions, generating them on
        first access. Safe under concurrent calls for the same domain.
        """
        domain = validate_domain(domain)
        quiz = await self._resolve_quiz(domain)

        questions = await run_in_threadpool(self.repository.find_questions_ordered, quiz["id"])
        if questions:
            logger.debug("Cache hit for domain '%s'", domain)
            return questions

        async with self._locks.hold(domain):
            # whoever held the lock before us may have filled it in
            questions = await run_in_threadpool(self.repository.find_questions_ordered, quiz["id"])
            if questions:
                logger.debug("Questions for '%s' generated by a concurrent request", domain)
                return questions

            logger.info("Cache miss for domain '%s', generating questions", domain)
            generated = await self._generate(domain)

            inserted = await run_in_threadpool(
                self.repository.insert_questions_batch, quiz["id"], to_question_rows(generated)
            )
            if not inserted:
                logger.info("Another writer stored questions for '%s' first; using theirs", domain)

            questions = await run_in_threadpool(self.repository.find_questions_ordered, quiz["id"])

        if len(questions) != QUESTIONS_PER_QUIZ:
            raise StoreUnavailable(
                f"Expected {QUESTIONS_PER_QUIZ} stored questions for '{domain}', found {len(questions)}"
            )
        return questions

    async def _resolve_quiz(self, domain: str) -> dict:
        quiz = await run_in_threadpool(self.repository.find_quiz_by_domain, domain)
        if quiz is None:
            title = get_domain_title(domain)
            quiz = await run_in_threadpool(self.repository.create_quiz, domain, title)
            logger.info("Created quiz '%s' for domain '%s'", quiz["title"], domain)
        return quiz

    async def _generate(self, domain: str) -> List[GeneratedQuestion]:
        call = self.generator.generate_quiz_questions(domain)
        if self.generation_timeout is not None:
            try:
                raw = await asyncio.wait_for(call, timeout=self.generation_timeout)
            except asyncio.TimeoutError as e:
                raise GenerationUnavailable(
                    f"Model call timed out after {self.generation_timeout}s"
                ) from e
        else:
            raw = await call

        try:
            questions = parse_generated_questions(raw)
        except GenerationFormatInvalid as e:
            logger.error("Rejected model output for '%s': %s | raw (first 500 chars): %s",
                         domain, e.detail, raw[:500])
            await self._log_generation(domain, raw, STATUS_REJECTED, e.detail)
            raise

        await self._log_generation(domain, raw, STATUS_ACCEPTED)
        return questions

    async def _log_generation(self, domain: str, raw: str, status: str, error: str = None):
        if self.generation_log is None:
            return
        try:
            await run_in_threadpool(self.generation_log.insert, domain, raw, status, error)
        except PyMongoError as e:
            logger.warning("Could not write generation log for '%s': %s", domain, e)

    # --------------------------------------------------------
    # ATTEMPTS
    # --------------------------------------------------------

    async def submit_attempt(self, domain: Optional[str], student_id: str, answers: Dict[int, str]) -> dict:
        """
        Score answers against the stored quiz and record the attempt.

        Returns the stored attempt with percentage and pass flag.
        """
        domain = validate_domain(domain)
        if not student_id or not student_id.strip():
            raise InvalidAttempt("student_id is required")

        quiz = await run_in_threadpool(self.repository.find_quiz_by_domain, domain)
        if quiz is None:
            raise QuizNotFound(f"No quiz for domain '{domain}'")
        questions = await run_in_threadpool(self.repository.find_questions_ordered, quiz["id"])
        if not questions:
            raise QuizNotFound(f"Quiz for '{domain}' has no questions yet")

        unknown = set(answers) - {q["question_order"] for q in questions}
        if unknown:
            raise InvalidAttempt(f"Unknown question numbers: {sorted(unknown)}")

        score = score_answers(questions, answers)
        attempt_id = await run_in_threadpool(
            self.repository.insert_attempt, quiz["id"], student_id.strip(), score, len(questions)
        )
        attempt = await run_in_threadpool(self.repository.find_attempt, attempt_id)
        logger.info("Student %s scored %d/%d on '%s'", student_id, score, len(questions), domain)
        return with_result(attempt)

    async def list_attempts(self, student_id: str) -> List[dict]:
        if not student_id or not student_id.strip():
            raise InvalidAttempt("student_id is required")
        attempts = await run_in_threadpool(self.repository.find_attempts_by_student, student_id.strip())
        return [with_result(a) for a in attempts]


def with_result(attempt: Dict[str, Any]) -> dict:
    """Add percentage and pass/fail to a stored attempt."""
    max_score = attempt["max_score"]
    percentage = round(attempt["score"] * 100 / max_score) if max_score else 0
    return {**attempt, "percentage": percentage, "passed": percentage >= PASS_PERCENTAGE}


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

_quiz_service: Optional[QuizService] = None


def get_quiz_service() -> QuizService:
    """
    Get the shared quiz service.

    One instance per process: the single-flight locks only work if every
    request goes through the same service.
    """
    global _quiz_service
    if _quiz_service is None:
        settings = get_settings()
        _quiz_service = QuizService(
            repository=SqlQuizRepository(),
            generator=get_generation_client(),
            generation_log=GenerationLogService() if mongo_enabled() else None,
            generation_timeout=settings.llm_timeout_seconds,
        )
    return _quiz_service
