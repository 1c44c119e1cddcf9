"""
Gemini text-generation provider

The quiz engine treats the model as an untyped text source: one prompt
in, one text blob out. Quota, rate-limit and timeout failures surface as
``ProviderUnavailable`` so callers can tell users to retry later.
"""
import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from app.config import settings
from app.exceptions import ProviderUnavailable
import logging

logger = logging.getLogger(__name__)

# Configure Gemini API
genai.configure(api_key=settings.GEMINI_API_KEY)

UNAVAILABLE_ERRORS = (
    google_exceptions.ResourceExhausted,
    google_exceptions.TooManyRequests,
    google_exceptions.DeadlineExceeded,
    google_exceptions.ServiceUnavailable,
)
QUOTA_MESSAGES = ("exceeded your current quota", "check your plan and billing details", "rate limit")


class GeminiService:
    """Single-prompt text generation via Gemini"""

    def __init__(self, model_name: str = None):
        self.model_name = model_name or settings.GEMINI_MODEL
        self.model = genai.GenerativeModel(self.model_name)

    def generate_text(self, prompt: str) -> str:
        """
        Send one prompt and return the raw response text

        Args:
            prompt: Full instruction block

        Returns:
            Response text; empty string when the model returned no usable candidate

        Raises:
            ProviderUnavailable: on quota exhaustion, rate limiting or timeouts
        """
        logger.info(f"Calling Gemini model {self.model_name} (prompt: {len(prompt)} chars)")
        try:
            response = self.model.generate_content(
                prompt,
                generation_config=genai.GenerationConfig(
                    temperature=settings.GENERATION_TEMPERATURE,
                    max_output_tokens=settings.GENERATION_MAX_OUTPUT_TOKENS,
                ),
            )
        except UNAVAILABLE_ERRORS as e:
            logger.error(f"Gemini unavailable: {str(e)}")
            raise ProviderUnavailable(
                "The question generator is temporarily unavailable. Please try again later."
            ) from e
        except google_exceptions.GoogleAPIError as e:
            if any(marker in str(e).lower() for marker in QUOTA_MESSAGES):
                logger.error(f"Gemini quota exceeded: {str(e)}")
                raise ProviderUnavailable(
                    "The question generator quota is exhausted. Please try again later."
                ) from e
            logger.error(f"Gemini request failed: {str(e)}")
            raise

        try:
            return response.text or ""
        except ValueError as e:
            # Raised by the SDK when the candidate was blocked or empty
            logger.warning(f"Gemini returned no text: {str(e)}")
            return ""


# Global instance
gemini_service = GeminiService()
