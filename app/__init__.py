"""
Placement Quiz Service
Domain skill quizzes for the placement platform.

Architecture:
- PostgreSQL: quizzes, questions, attempts (source of truth, and the cache)
- OpenAI-compatible model: generates each domain's questions exactly once
- MongoDB: optional audit log of raw model output
"""

__version__ = "1.0.0"
