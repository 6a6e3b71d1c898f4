"""Tests for the Gemini client wrapper."""
import os
import unittest
from dataclasses import replace
from typing import List, Optional
from unittest import mock

import httpx
from pydantic import BaseModel

from hormiwita.config.settings import DEFAULT_CONFIG_PATH, AppSettings
from hormiwita.llm.client import GeminiClient, clean_json_text, parse_json_response, to_contents
from hormiwita.utils.exceptions import ConfigError, LLMError, RetryableNetworkError


class ItemSchema(BaseModel):
    name: str
    tags: List[str] = []
    note: Optional[str] = None


class TestJsonParsing(unittest.TestCase):
    """Test LLM JSON cleaning and validation."""

    def test_code_fence_and_trailing_comma(self):
        """Test fenced JSON with a trailing comma."""
        text = '```json\n{"name": "Netflix", "tags": ["ocio",],}\n```'
        result = parse_json_response(text, ItemSchema)

        self.assertEqual(result.name, "Netflix")
        self.assertEqual(result.tags, ["ocio"])

    def test_json_wrapped_in_text(self):
        """Test extracting the JSON object from surrounding prose."""
        self.assertEqual(clean_json_text('Aquí tienes: {"name": "x"} ¡Listo!'), '{"name": "x"}')

    def test_smart_quotes(self):
        """Test smart quotes normalized to plain quotes."""
        self.assertEqual(parse_json_response('{“name”: “Bar”}', ItemSchema).name, "Bar")

    def test_invalid_json(self):
        """Test that non-JSON output is an LLM error."""
        with self.assertRaises(LLMError):
            parse_json_response("no json here", ItemSchema)
        with self.assertRaises(LLMError):
            parse_json_response("   ", ItemSchema)

    def test_schema_mismatch(self):
        """Test that JSON not matching the schema is an LLM error."""
        with self.assertRaises(LLMError):
            parse_json_response('{"tags": []}', ItemSchema)

    def test_to_contents_roles(self):
        """Test that assistant turns map to the model role."""
        contents = to_contents([("user", "Hola"), ("assistant", "¿Qué tal?")])

        self.assertEqual([c.role for c in contents], ["user", "model"])
        self.assertEqual(contents[1].parts[0].text, "¿Qué tal?")


class TestGeminiClient(unittest.IsolatedAsyncioTestCase):
    """Test GeminiClient request handling."""

    def setUp(self):
        """Set up test fixtures."""
        self.settings = replace(AppSettings.load(DEFAULT_CONFIG_PATH), llm_initial_delay_seconds=0)

    def test_missing_api_key(self):
        """Test that a missing key is a configuration error."""
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ConfigError):
                GeminiClient(settings=self.settings)

    async def test_generate_json_retries_network_errors(self):
        """Test that network errors are retried before succeeding."""
        client = GeminiClient(api_key="test_key", settings=self.settings)
        generate = mock.AsyncMock(side_effect=[
            ConnectionError("reset"),
            mock.Mock(text='{"name": "Mercadona"}'),
        ])
        client.client = mock.Mock()
        client.client.aio.models.generate_content = generate

        result = await client.generate_json("prompt", ItemSchema)

        self.assertEqual(result.name, "Mercadona")
        self.assertEqual(generate.await_count, 2)

    async def test_generate_json_gives_up(self):
        """Test that retries stop after the configured attempts."""
        client = GeminiClient(api_key="test_key", settings=self.settings)
        client.client = mock.Mock()
        client.client.aio.models.generate_content = mock.AsyncMock(side_effect=TimeoutError("slow"))

        with self.assertRaises(RetryableNetworkError):
            await client.generate_json("prompt", ItemSchema)
        self.assertEqual(client.client.aio.models.generate_content.await_count, self.settings.llm_max_retries)

    async def test_transport_errors_are_network_errors(self):
        """Test that HTTP transport failures surface as retryable network errors."""
        client = GeminiClient(api_key="test_key", settings=self.settings)
        client.client = mock.Mock()
        client.client.aio.models.generate_content = mock.AsyncMock(side_effect=httpx.ConnectError("down"))

        with self.assertRaises(RetryableNetworkError):
            await client.generate_json("prompt", ItemSchema)
        self.assertEqual(client.client.aio.models.generate_content.await_count, self.settings.llm_max_retries)

    async def test_stream_transport_error(self):
        """Test that a dropped stream connection is a network error."""
        client = GeminiClient(api_key="test_key", settings=self.settings)
        client.client = mock.Mock()
        client.client.aio.models.generate_content_stream = mock.AsyncMock(side_effect=httpx.ReadError("reset"))

        with self.assertRaises(RetryableNetworkError):
            async for _ in client.stream_text([("user", "Hola")]):
                pass

    async def test_empty_response(self):
        """Test that an empty model reply is an LLM error."""
        client = GeminiClient(api_key="test_key", settings=self.settings)
        client.client = mock.Mock()
        client.client.aio.models.generate_content = mock.AsyncMock(return_value=mock.Mock(text=""))

        with self.assertRaises(LLMError):
            await client.generate_json("prompt", ItemSchema)

    async def test_stream_text(self):
        """Test that streamed chunks are yielded in order, skipping empty ones."""
        async def stream():
            for text in ("Hola", None, " Ana"):
                yield mock.Mock(text=text)

        client = GeminiClient(api_key="test_key", settings=self.settings)
        client.client = mock.Mock()
        client.client.aio.models.generate_content_stream = mock.AsyncMock(return_value=stream())

        received = [chunk async for chunk in client.stream_text([("user", "Hola")], system_instruction="Sé breve")]
        self.assertEqual(received, ["Hola", " Ana"])


if __name__ == "__main__":
    unittest.main()
