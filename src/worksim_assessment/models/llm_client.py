"""
LLM client abstraction.

Provides a unified interface for the text and video analysis capability.
The production client talks to Gemini through the google-genai SDK; tests
substitute a fake implementing LLMClientBase.
"""

import ast
import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any

from google import genai
from google.genai import types
from pydantic import BaseModel, Field

from worksim_assessment.config import get_settings
from worksim_assessment.errors import AnalysisError

logger = logging.getLogger(__name__)

# Upper bound on a single backoff sleep between attempts
MAX_RETRY_DELAY_SECONDS = 30.0


class MediaPart(BaseModel):
    """A media attachment sent alongside a prompt."""

    uri: str = Field(..., description="Storage URI of the media")
    mime_type: str = Field(default="video/mp4", description="MIME type of the media")


class LLMClientBase(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
    async def generate_content(
        self,
        prompt: str,
        media: list[MediaPart] | None = None,
        model: str | None = None,
    ) -> str:
        """
        Generate text for a prompt, optionally grounded on media.

        Args:
            prompt: Input prompt.
            media: Optional media parts (e.g. a screen recording).
            model: Model override for this call.

        Returns:
            Generated text.

        Raises:
            AnalysisError: If generation fails.
        """
        ...

    async def close(self) -> None:
        """Close the client and release resources."""
        return None


class GeminiClient(LLMClientBase):
    """
    Gemini-based LLM client.

    Wraps the async google-genai client with a per-call timeout and bounded
    retries with exponential backoff.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_retries: int | None = None,
        timeout: int | None = None,
        retry_base_delay: float | None = None,
    ) -> None:
        """
        Initialize the Gemini client.

        Args:
            api_key: Gemini API key (uses config if not provided).
            model: Default model name (defaults to the video evaluation model).
            max_retries: Number of retries on failure.
            timeout: Timeout in seconds for a single request.
            retry_base_delay: Base delay in seconds for exponential backoff.
        """
        settings = get_settings()
        self._api_key = api_key or settings.gemini_api_key
        self._model = model or settings.video_evaluation_model
        self._max_retries = settings.llm_max_retries if max_retries is None else max_retries
        self._timeout = timeout or settings.llm_timeout
        self._retry_base_delay = (
            settings.llm_retry_base_delay if retry_base_delay is None else retry_base_delay
        )
        self._client: genai.Client | None = None

        logger.info(f"Initialized Gemini client with model: {self._model}")

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

    def _get_client(self) -> genai.Client:
        """Get or create the SDK client."""
        if self._client is None:
            if not self._api_key:
                raise AnalysisError("Gemini API key is not configured", retryable=False)
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def _build_contents(self, prompt: str, media: list[MediaPart] | None) -> list[types.Content]:
        parts = [
            types.Part.from_uri(file_uri=item.uri, mime_type=item.mime_type)
            for item in media or []
        ]
        parts.append(types.Part.from_text(text=prompt))
        return [types.Content(role="user", parts=parts)]

    async def generate_content(
        self,
        prompt: str,
        media: list[MediaPart] | None = None,
        model: str | None = None,
    ) -> str:
        """
        Generate text with Gemini, retrying transient failures.

        Args:
            prompt: Input prompt.
            media: Optional media parts.
            model: Model override for this call.

        Returns:
            The response text, stripped of whitespace.

        Raises:
            AnalysisError: If every attempt fails or the response is empty.
        """
        client = self._get_client()
        model_name = model or self._model
        contents = self._build_contents(prompt, media)

        last_error: AnalysisError | None = None
        attempts = 0

        while attempts <= self._max_retries:
            if attempts > 0:
                delay = min(self._retry_base_delay * 2 ** (attempts - 1), MAX_RETRY_DELAY_SECONDS)
                logger.debug(f"Retrying Gemini in {delay:.1f}s")
                await asyncio.sleep(delay)
            attempts += 1

            try:
                logger.debug(f"Calling Gemini {model_name} (attempt {attempts})")
                response = await asyncio.wait_for(
                    client.aio.models.generate_content(model=model_name, contents=contents),
                    timeout=self._timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(f"Gemini timed out after {self._timeout}s (attempt {attempts})")
                last_error = AnalysisError(f"Gemini timed out after {self._timeout} seconds")
                continue
            except Exception as e:
                logger.warning(f"Gemini error (attempt {attempts}): {e}")
                last_error = AnalysisError(str(e))
                continue

            text = (response.text or "").strip()
            if not text:
                logger.warning(f"Gemini returned an empty response (attempt {attempts})")
                last_error = AnalysisError("Empty response from Gemini")
                continue

            logger.debug(f"Gemini response length: {len(text)} chars")
            return text

        raise last_error or AnalysisError("Gemini failed after all retries")

    async def close(self) -> None:
        """Close the SDK client."""
        if self._client is not None:
            await self._client.aio.aclose()
            self._client = None


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json fence from model output."""
    result = text.strip()
    result = re.sub(r"^```(?:json)?\s*", "", result, flags=re.IGNORECASE)
    result = re.sub(r"\s*```$", "", result)
    return result


def fix_json_string(json_str: str) -> str:
    """
    Attempt to fix common JSON issues from LLM output.

    Args:
        json_str: Raw JSON string that may have issues.

    Returns:
        Cleaned JSON string.
    """
    if not json_str:
        return ""

    result = strip_code_fences(json_str)

    # Normalize curly quotes.
    result = (
        result.replace("“", '"')
        .replace("”", '"')
        .replace("‘", "'")
        .replace("’", "'")
    )

    # Remove trailing commas before closing braces/brackets.
    result = re.sub(r",(\s*[}\]])", r"\1", result)

    # Convert Python literals to JSON literals.
    result = re.sub(r"\bNone\b", "null", result)
    result = re.sub(r"\bTrue\b", "true", result)
    result = re.sub(r"\bFalse\b", "false", result)

    # Quote bare keys; only right after { or , so values stay intact.
    result = re.sub(
        r"([\{,]\s*)([A-Za-z_][A-Za-z0-9_\-]*)(\s*:)",
        r'\1"\2"\3',
        result,
    )

    if result.count("'") > 0 and result.count('"') == 0:
        result = result.replace("'", '"')

    return result


def _coerce_to_json_types(obj: Any) -> Any:
    """Coerce a literal_eval result to JSON-safe types."""
    if obj is ...:
        return None
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, dict):
        return {str(k): _coerce_to_json_types(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [_coerce_to_json_types(v) for v in obj]
    return str(obj)


def parse_json_loose(raw: str) -> dict[str, Any] | list[Any] | None:
    """
    Parse JSON with best-effort repair.

    Args:
        raw: Model output expected to contain a JSON object or array.

    Returns:
        A dict or list on success, else None.
    """
    if not raw:
        return None

    # Repairs can alter string contents, so only apply them to invalid JSON.
    for candidate in (strip_code_fences(raw), fix_json_string(raw)):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, (dict, list)):
            return parsed

    cleaned = fix_json_string(raw)

    # Fallback: parse as a Python literal, then round-trip through json.
    try:
        obj = ast.literal_eval(strip_code_fences(raw))
    except (ValueError, SyntaxError, MemoryError, RecursionError):
        try:
            obj = ast.literal_eval(cleaned)
        except (ValueError, SyntaxError, MemoryError, RecursionError):
            return None

    if not isinstance(obj, (dict, list, tuple, set)):
        return None

    return json.loads(json.dumps(_coerce_to_json_types(obj)))
