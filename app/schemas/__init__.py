"""
Schemas module - Request/Response schemas for API endpoints.

- Response schemas: API contract (what client receives)
- GeneratedQuestion: validation of untrusted model output
"""

from app.schemas.schemas import (
    AttemptCreate,
    AttemptResponse,
    DomainResponse,
    ErrorResponse,
    GeneratedQuestion,
    HealthResponse,
    QuestionResponse,
)

__all__ = [
    "AttemptCreate",
    "AttemptResponse",
    "DomainResponse",
    "ErrorResponse",
    "GeneratedQuestion",
    "HealthResponse",
    "QuestionResponse",
]
