"""Gemini client wrapper using the google-genai SDK."""
import json
import re
from typing import AsyncIterator, List, Optional, Sequence, Tuple, Type, TypeVar

import httpx
from google import genai
from google.genai import errors, types
from pydantic import BaseModel, ValidationError

from ..config.settings import AppSettings, get_settings
from ..utils.exceptions import ConfigError, LLMError, RetryableLLMError, RetryableNetworkError
from ..utils.logger import get_logger
from ..utils.retry import retry_with_backoff

logger = get_logger()

SchemaT = TypeVar("SchemaT", bound=BaseModel)

# (role, content) pairs, role is "user" or "assistant"
History = Sequence[Tuple[str, str]]


def clean_json_text(response_text: str) -> str:
    """Strip the usual LLM noise around a JSON payload."""
    cleaned = response_text.strip()

    # Remove markdown code blocks
    if cleaned.startswith("```"):
        cleaned = re.sub(r'^(```json|```)', '', cleaned).strip()
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3].strip()

    # Normalize smart quotes to standard double-quote
    cleaned = cleaned.replace('“', '"').replace('”', '"')

    # Remove trailing commas before closing brackets/braces
    cleaned = re.sub(r',\s*([\]}])', r'\1', cleaned)

    # If the model wrapped JSON in text, keep the outermost object/array
    json_match = re.search(r'\{.*\}|\[.*\]', cleaned, re.DOTALL)
    if json_match:
        cleaned = json_match.group(0)

    return cleaned


def parse_json_response(response_text: str, schema: Type[SchemaT]) -> SchemaT:
    """
    Parse and validate an LLM JSON response.

    Args:
        response_text: Raw model output
        schema: Pydantic model the payload must satisfy

    Returns:
        Validated schema instance

    Raises:
        LLMError: If the text is not JSON or does not match the schema
    """
    if not response_text or not response_text.strip():
        raise LLMError("LLM returned empty response")

    try:
        data = json.loads(clean_json_text(response_text), strict=False)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON response: {e}")
        logger.debug(f"Response text: {response_text[:500]}")
        raise LLMError(f"Invalid JSON response from LLM: {e}")

    try:
        return schema.model_validate(data)
    except ValidationError as e:
        logger.error(f"Response validation failed: {e}")
        raise LLMError(f"LLM response does not match expected schema: {e}")


def to_contents(history: History) -> List[types.Content]:
    """Convert chat history to Gemini contents (assistant turns use the 'model' role)."""
    return [
        types.Content(
            role="model" if role == "assistant" else "user",
            parts=[types.Part(text=content)]
        )
        for role, content in history
    ]


class GeminiClient:
    """Async access to Gemini for JSON generation and streamed text."""

    def __init__(self, api_key: Optional[str] = None, settings: Optional[AppSettings] = None):
        """
        Initialize Gemini client.

        Args:
            api_key: Google AI API key, defaults to GEMINI_API_KEY
            settings: Application settings, defaults to the global settings
        """
        self.settings = settings or get_settings()
        api_key = api_key or self.settings.gemini_api_key
        if not api_key:
            raise ConfigError("GEMINI_API_KEY is not set")

        self.client = genai.Client(api_key=api_key)
        self.model_name = self.settings.llm_model_name
        self.temperature = self.settings.llm_temperature

        self._generate = retry_with_backoff(
            max_retries=self.settings.llm_max_retries,
            initial_delay=self.settings.llm_initial_delay_seconds,
            backoff_factor=self.settings.llm_backoff_factor
        )(self._generate_once)

        logger.info(f"Gemini client initialized with {self.model_name}")

    async def generate_json(
        self,
        prompt: str,
        schema: Type[SchemaT],
        system_instruction: Optional[str] = None
    ) -> SchemaT:
        """
        Generate a JSON response and validate it against a schema.

        Raises:
            LLMError: On transport failure after retries or invalid output
        """
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=self.temperature,
            response_mime_type="application/json"
        )
        text = await self._generate(prompt, config)
        return parse_json_response(text, schema)

    async def stream_text(
        self,
        history: History,
        system_instruction: Optional[str] = None
    ) -> AsyncIterator[str]:
        """
        Stream a text reply to a conversation.

        Yields:
            Non-empty text chunks in arrival order
        """
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=self.temperature
        )
        try:
            stream = await self.client.aio.models.generate_content_stream(
                model=self.model_name,
                contents=to_contents(history),
                config=config
            )
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
        except errors.APIError as e:
            logger.error(f"Gemini stream failed: {e}")
            raise LLMError(f"Gemini stream failed: {e}")
        except (httpx.TransportError, ConnectionError, TimeoutError) as e:
            logger.error(f"Network error while streaming from Gemini: {e}")
            raise RetryableNetworkError(f"Network error while streaming from Gemini: {e}")

    async def _generate_once(self, contents, config: types.GenerateContentConfig) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=contents,
                config=config
            )
        except errors.ServerError as e:
            raise RetryableLLMError(f"Gemini server error: {e}")
        except errors.ClientError as e:
            if e.code == 429:
                raise RetryableLLMError(f"Gemini rate limit: {e}")
            raise LLMError(f"Gemini request rejected: {e}")
        except (httpx.TransportError, ConnectionError, TimeoutError) as e:
            raise RetryableNetworkError(f"Network error calling Gemini: {e}")

        if not response.text:
            raise LLMError("Gemini returned empty response")

        logger.debug(json.dumps(response.text[:500], ensure_ascii=False))
        return response.text
