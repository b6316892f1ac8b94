"""
Unit tests for the local Ollama client.
"""

import pytest
from unittest.mock import AsyncMock, patch

from src.integrations.ollama.client import OllamaClient


@pytest.mark.asyncio
class TestOllamaClient:

    async def test_generate_payload(self):
        client = OllamaClient(api_url="http://ollama:11434/api/", model="llama2")

        with patch.object(client, "_post", AsyncMock(return_value={"response": "Hello"})) as mock_post:
            text = await client.generate("prompt", temperature=0.3, max_tokens=64)

        assert text == "Hello"
        endpoint, payload = mock_post.await_args.args
        assert endpoint == "generate"
        assert payload["stream"] is False
        assert payload["options"] == {"temperature": 0.3, "num_predict": 64}
        assert client.api_url == "http://ollama:11434/api"

    async def test_generate_without_text_raises(self):
        client = OllamaClient()

        with patch.object(client, "_post", AsyncMock(return_value={"response": ""})):
            with pytest.raises(RuntimeError):
                await client.generate("prompt", temperature=0.3, max_tokens=64)

    async def test_embed_returns_floats(self):
        client = OllamaClient()

        with patch.object(client, "_post", AsyncMock(return_value={"embedding": [1, 2]})):
            assert await client.embed("text") == [1.0, 2.0]

    async def test_embed_without_vector_raises(self):
        client = OllamaClient()

        with patch.object(client, "_post", AsyncMock(return_value={})):
            with pytest.raises(RuntimeError):
                await client.embed("text")
