"""
Quiz Routes

GET  /quiz/generate-quiz?domain=... - Fetch (or generate once) a domain's 10 questions
GET  /quiz/domains                  - Known quiz domains with titles
POST /quiz/attempts                 - Score and record a student's attempt
GET  /quiz/attempts?student_id=...  - A student's attempts, newest first
"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from app.services.quiz_service import QuizService, get_quiz_service
from app.utils.domains import list_known_domains
from app.schemas.schemas import (
    AttemptCreate, AttemptResponse, DomainResponse, ErrorResponse, QuestionResponse
)

router = APIRouter(
    prefix="/quiz",
    tags=["Quiz"],
    responses={500: {"model": ErrorResponse}}
)


@router.get(
    "/generate-quiz",
    response_model=List[QuestionResponse],
    responses={400: {"model": ErrorResponse}}
)
async def generate_quiz(
    domain: Optional[str] = Query(None, description="Quiz domain, e.g. web-development"),
    service: QuizService = Depends(get_quiz_service)
):
    """
    Return the domain's questions ordered by question_order.

    The first request for a domain generates and stores them; every later
    request is served from the store.
    """
    return await service.get_or_create_quiz(domain)


@router.get("/domains", response_model=List[DomainResponse])
async def get_domains():
    """Known quiz domains. Any other domain still works with a generic title."""
    return list_known_domains()


@router.post(
    "/attempts",
    response_model=AttemptResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def submit_attempt(data: AttemptCreate, service: QuizService = Depends(get_quiz_service)):
    """Score answers (question_order -> letter) against the stored quiz."""
    answers = {order: label.value for order, label in data.answers.items()}
    return await service.submit_attempt(data.domain, data.student_id, answers)


@router.get(
    "/attempts",
    response_model=List[AttemptResponse],
    responses={400: {"model": ErrorResponse}}
)
async def get_attempts(
    student_id: Optional[str] = Query(None),
    service: QuizService = Depends(get_quiz_service)
):
    """All attempts of a student."""
    return await service.list_attempts(student_id)
