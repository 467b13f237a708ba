"""Gemini text completion for the admin insights digest."""
import asyncio
import logging

from google import genai
from google.genai import errors as genai_errors

from app.metrics import INSIGHTS_LATENCY
from studybuddy.constants import DEFAULT_INSIGHTS_TIMEOUT, DEFAULT_MODEL
from studybuddy.insights import InsightResult

logger = logging.getLogger(__name__)


def _response_text(response) -> str:
    """Pull the first candidate's text out of a generate_content response."""
    try:
        text = response.text
    except (AttributeError, ValueError):
        text = None
    if text:
        return text
    candidates = getattr(response, "candidates", None) or []
    if candidates and candidates[0].content and candidates[0].content.parts:
        return candidates[0].content.parts[0].text or ""
    return ""


class GeminiInsightGenerator:
    """Wraps the Gemini API behind a single generate(prompt) call.

    No retries: a failed call is reported back to the admin straight away.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_INSIGHTS_TIMEOUT,
        client=None,
    ):
        self.model = model
        self._timeout = timeout
        self._client = client or genai.Client(api_key=api_key)

    async def generate(self, prompt: str) -> InsightResult:
        with INSIGHTS_LATENCY.time():
            try:
                response = await asyncio.wait_for(
                    self._client.aio.models.generate_content(
                        model=self.model, contents=prompt
                    ),
                    timeout=self._timeout,
                )
            except asyncio.TimeoutError:
                logger.error(f"Gemini call timed out after {self._timeout}s")
                return InsightResult(
                    ok=False,
                    status_code=504,
                    error_message=f"Timed out after {self._timeout:.0f}s",
                )
            except genai_errors.APIError as e:
                logger.error(f"Gemini error: {e.code} {e.message}")
                return InsightResult(
                    ok=False, status_code=e.code or 500, error_message=e.message
                )

        return InsightResult(ok=True, text=_response_text(response))
