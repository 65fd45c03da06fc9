"""
Shared fixtures.

Environment is set before anything under app/ is imported: app.main
refuses to load without a store URL and a model key.
"""
import asyncio
import json
import os
import tempfile
import threading
import uuid
from datetime import datetime, timedelta

import pytest

_TMP_DIR = tempfile.mkdtemp(prefix="quiz-service-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'app.db')}"
os.environ["OPENAI_API_KEY"] = "test-key"
os.environ["MONGODB_URI"] = ""
os.environ["DEBUG"] = "true"

from app.core.exceptions import StoreUnavailable  # noqa: E402
from app.services.quiz_service import QuizService  # noqa: E402

LABELS = ("A", "B", "C", "D")


def make_questions(count=10, topic="algorithms"):
    """Well-formed model entries; correct answers cycle A, B, C, D."""
    return [
        {
            "question": f"{topic} question {i}?",
            "options": {label: f"{topic} option {i}{label}" for label in LABELS},
            "correct_answer": LABELS[(i - 1) % 4],
        }
        for i in range(1, count + 1)
    ]


def model_output(questions=None, fenced=False):
    text = json.dumps(questions if questions is not None else make_questions())
    if fenced:
        text = f"```json\n{text}\n```"
    return text


class InMemoryQuizRepository:
    """
    Same interface as SqlQuizRepository, held in dicts.

    `fail_on` names methods that raise StoreUnavailable; `calls` counts
    every method call by name.
    """

    def __init__(self, fail_on=()):
        self.quizzes = {}
        self.questions = {}
        self.attempts = []
        self.fail_on = set(fail_on)
        self.calls = {}
        self._lock = threading.Lock()
        self._clock = datetime(2026, 1, 1)

    def _record(self, name):
        self.calls[name] = self.calls.get(name, 0) + 1
        if name in self.fail_on:
            raise StoreUnavailable(f"{name} failed")

    def find_quiz_by_domain(self, domain):
        with self._lock:
            self._record("find_quiz_by_domain")
            quiz = self.quizzes.get(domain)
            return dict(quiz) if quiz else None

    def create_quiz(self, domain, title):
        with self._lock:
            self._record("create_quiz")
            quiz = self.quizzes.setdefault(
                domain, {"id": str(uuid.uuid4()), "domain": domain, "title": title}
            )
            return dict(quiz)

    def find_questions_ordered(self, quiz_id):
        with self._lock:
            self._record("find_questions_ordered")
            rows = sorted(self.questions.get(quiz_id, []), key=lambda q: q["question_order"])
            return [dict(q, options=dict(q["options"])) for q in rows]

    def insert_questions_batch(self, quiz_id, questions):
        with self._lock:
            self._record("insert_questions_batch")
            if self.questions.get(quiz_id):
                return False
            self.questions[quiz_id] = [
                {
                    "id": str(uuid.uuid4()),
                    "question": q["question"],
                    "options": dict(q["options"]),
                    "correct_answer": q["correct_answer"],
                    "question_order": q["question_order"],
                }
                for q in questions
            ]
            return True

    def insert_attempt(self, quiz_id, student_id, score, max_score):
        with self._lock:
            self._record("insert_attempt")
            self._clock += timedelta(minutes=1)
            attempt_id = str(uuid.uuid4())
            self.attempts.append({
                "id": attempt_id,
                "quiz_id": quiz_id,
                "student_id": student_id,
                "score": score,
                "max_score": max_score,
                "attempted_at": self._clock,
            })
            return attempt_id

    def _with_quiz(self, attempt):
        quiz = next(q for q in self.quizzes.values() if q["id"] == attempt["quiz_id"])
        return dict(attempt, domain=quiz["domain"], title=quiz["title"])

    def find_attempts_by_student(self, student_id):
        with self._lock:
            self._record("find_attempts_by_student")
            rows = [a for a in self.attempts if a["student_id"] == student_id]
            rows.sort(key=lambda a: a["attempted_at"], reverse=True)
            return [self._with_quiz(a) for a in rows]

    def find_attempt(self, attempt_id):
        with self._lock:
            self._record("find_attempt")
            for attempt in self.attempts:
                if attempt["id"] == attempt_id:
                    return self._with_quiz(attempt)
            return None


class StubGenerator:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses, delay=0.0):
        self.responses = list(responses) or [model_output()]
        self.delay = delay
        self.calls = []

    async def generate_quiz_questions(self, domain):
        self.calls.append(domain)
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class RecordingGenerationLog:
    def __init__(self, error=None):
        self.entries = []
        self.error = error

    def insert(self, domain, raw_response, status, error=None):
        if self.error is not None:
            raise self.error
        self.entries.append({"domain": domain, "raw_response": raw_response,
                             "status": status, "error": error})
        return str(len(self.entries))


@pytest.fixture
def repository():
    return InMemoryQuizRepository()


@pytest.fixture
def generator():
    return StubGenerator()


@pytest.fixture
def service(repository, generator):
    return QuizService(repository=repository, generator=generator, generation_timeout=5)
