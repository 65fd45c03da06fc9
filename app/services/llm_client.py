"""
Quiz Generation Client

Talks to an OpenAI-compatible chat completions API through the openai
library (works for OpenAI itself and for DeepSeek-style providers via
OPENAI_BASE_URL).

The client only returns raw text. Parsing and validation of that text
happen in the quiz service, which treats the model output as untrusted.
"""
import logging
import re
from typing import Optional

from openai import APITimeoutError, AsyncOpenAI, OpenAIError

from app.core.config import get_settings
from app.core.exceptions import GenerationUnavailable

logger = logging.getLogger(__name__)

QUESTIONS_PER_QUIZ = 10

QUIZ_PROMPT_TEMPLATE = """Generate exactly {count} multiple-choice questions about "{domain}".
Each question should have 4 options (A, B, C, D), and the correct answer should be specified by the key "correct_answer" as the option letter.
Format your response as a JSON array of {count} objects like:
[
  {{
    "question": "What is Linux?",
    "options": {{
      "A": "An OS",
      "B": "A programming language",
      "C": "A database",
      "D": "A cloud service"
    }},
    "correct_answer": "A"
  }},
  ...
]
Return ONLY the JSON array."""

_LEADING_FENCE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\s*```$")


def build_quiz_prompt(domain: str) -> str:
    return QUIZ_PROMPT_TEMPLATE.format(count=QUESTIONS_PER_QUIZ, domain=domain)


def strip_code_fences(text: str) -> str:
    """
    Remove markdown code fences the model may wrap JSON in.
    Handles a leading ``` or ```json and a trailing ```.
    """
    text = text.strip()
    text = _LEADING_FENCE.sub("", text)
    text = _TRAILING_FENCE.sub("", text)
    return text.strip()


class QuizGenerationClient:
    """
    Wrapper around the chat completions API for quiz generation.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.timeout = timeout if timeout is not None else settings.llm_timeout_seconds
        self.client = AsyncOpenAI(
            api_key=api_key or settings.openai_api_key,
            base_url=base_url or settings.openai_base_url,
            timeout=self.timeout,
            max_retries=0  # retries are a caller concern
        )
        self.model = model or settings.openai_model

    async def _call_api(self, prompt: str, max_tokens: int = 2000, temperature: float = 0.7) -> str:
        """
        Internal method to call the chat API.
        Returns raw text response.
        """
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def generate_quiz_questions(self, domain: str) -> str:
        """
        Ask the model for a quiz about `domain`.

        Returns the raw completion text. Raises GenerationUnavailable when
        the provider errors, the call outlives the timeout, or the
        completion is empty.
        """
        try:
            raw = await self._call_api(build_quiz_prompt(domain))
        except APITimeoutError as e:
            raise GenerationUnavailable(f"Model call timed out after {self.timeout}s") from e
        except OpenAIError as e:
            raise GenerationUnavailable(f"Model call failed: {e}") from e

        raw = raw.strip()
        if not raw:
            raise GenerationUnavailable("Model returned empty response.")
        return raw

    async def test_connection(self) -> bool:
        """Test if the model API is reachable"""
        try:
            response = await self._call_api("Reply with exactly: OK", max_tokens=10, temperature=0)
            return "OK" in response.upper()
        except OpenAIError as e:
            logger.warning("Model connection failed: %s", e)
            return False


# Singleton instance
_generation_client: Optional[QuizGenerationClient] = None


def get_generation_client() -> QuizGenerationClient:
    """Get or create the generation client (singleton pattern)"""
    global _generation_client
    if _generation_client is None:
        _generation_client = QuizGenerationClient()
    return _generation_client
