"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
GeneratedQuestion also validates untrusted model output before it is
persisted.
"""

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator
from typing import Optional, Dict, Literal
from datetime import datetime
from enum import Enum


OPTION_LABELS = ("A", "B", "C", "D")


# ============================================================
# ENUMS
# ============================================================

class OptionLabel(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


# ============================================================
# MODEL OUTPUT
# ============================================================

class GeneratedQuestion(BaseModel):
    """One entry of the model's JSON array. Unknown keys are ignored."""
    model_config = ConfigDict(extra="ignore")

    question: StrictStr = Field(..., min_length=1)
    options: Dict[StrictStr, StrictStr]
    correct_answer: Literal["A", "B", "C", "D"]

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("question must not be blank")
        return v

    @field_validator("options")
    @classmethod
    def options_are_a_to_d(cls, v: Dict[str, str]) -> Dict[str, str]:
        if set(v) != set(OPTION_LABELS):
            raise ValueError(f"options must have exactly the keys {list(OPTION_LABELS)}")
        if any(not text.strip() for text in v.values()):
            raise ValueError("option text must not be blank")
        return {label: v[label] for label in OPTION_LABELS}


# ============================================================
# QUIZ SCHEMAS
# ============================================================

class QuestionResponse(BaseModel):
    id: str
    question: str
    options: Dict[StrictStr, StrictStr]
    correct_answer: str
    question_order: int


class DomainResponse(BaseModel):
    domain: str
    title: str


# ============================================================
# ATTEMPT SCHEMAS
# ============================================================

class AttemptCreate(BaseModel):
    domain: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    # question_order -> chosen option letter
    answers: Dict[int, OptionLabel] = Field(default_factory=dict)


class AttemptResponse(BaseModel):
    id: str
    quiz_id: str
    domain: str
    title: str
    student_id: str
    score: int
    max_score: int
    percentage: int
    passed: bool
    attempted_at: datetime


# ============================================================
# GENERIC RESPONSES
# ============================================================

class ErrorResponse(BaseModel):
    message: str
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    store: str
    mongodb: str
