"""
Error taxonomy for the quiz service.

Every error carries the HTTP status and the public message the API
returns, so handlers in app.main stay a single mapping. `detail` holds
the underlying cause and is only exposed in debug mode.
"""

from typing import Optional


class QuizServiceError(Exception):
    status_code: int = 500
    message: str = "Internal server error."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(detail or self.message)


class DomainInvalid(QuizServiceError):
    """Missing or blank domain - rejected before touching the store."""
    status_code = 400
    message = "Domain is required."


class InvalidAttempt(QuizServiceError):
    status_code = 400
    message = "Invalid quiz attempt."


class QuizNotFound(QuizServiceError):
    status_code = 404
    message = "Quiz not found for this domain."


class StoreUnavailable(QuizServiceError):
    """Any store failure other than a plain 'no row'."""
    status_code = 500
    message = "Quiz store is unavailable."


class GenerationUnavailable(QuizServiceError):
    """Model provider failed, timed out or returned nothing."""
    status_code = 500
    message = "Quiz generation service is unavailable."


class GenerationFormatInvalid(QuizServiceError):
    """Model output was not exactly 10 well-formed questions."""
    status_code = 500
    message = "Invalid quiz format returned by the model."


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are absent."""

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(f"Missing required configuration: {', '.join(self.missing)}")
