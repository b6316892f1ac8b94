"""
Local Ollama HTTP Client

Thin async client for a self-hosted Ollama server, used as the secondary
tier behind the hosted providers for both text generation and embeddings.
"""

import logging
import os
from typing import List, Optional

import aiohttp
from dotenv import load_dotenv

from src.config.analyzer_config import AUTOMATION_CONFIG

logger = logging.getLogger(__name__)


class OllamaClient:
    """
    Async client for the Ollama `/generate` and `/embeddings` endpoints.

    Attributes:
        api_url: Base URL of the Ollama API (e.g. http://localhost:11434/api)
        model: Model name used for both generation and embeddings
        timeout: Total request timeout in seconds
    """

    def __init__(self,
                 api_url: Optional[str] = None,
                 model: Optional[str] = None,
                 timeout: Optional[float] = None):
        load_dotenv(override=True)
        config = AUTOMATION_CONFIG["ollama"]
        self.api_url = (api_url or os.getenv("OLLAMA_API_URL") or config["api_url"]).rstrip("/")
        self.model = model or os.getenv("DEFAULT_LLM_MODEL") or config["default_model"]
        self.timeout = timeout or config["timeout"]

    async def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        """
        Generate a completion for a prompt.

        Raises:
            RuntimeError: If the server returns a non-200 status or no text
        """
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": temperature,
                "num_predict": max_tokens
            }
        }
        data = await self._post("generate", payload)
        text = data.get("response")
        if not text:
            raise RuntimeError("Ollama returned no response text")
        return text

    async def embed(self, text: str) -> List[float]:
        """Return the embedding vector for a text."""
        data = await self._post("embeddings", {"model": self.model, "prompt": text})
        embedding = data.get("embedding")
        if not embedding:
            raise RuntimeError("Ollama returned no embedding")
        return [float(value) for value in embedding]

    async def _post(self, endpoint: str, payload: dict) -> dict:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(f"{self.api_url}/{endpoint}", json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error(f"Ollama {endpoint} failed with status {response.status}: {error_text}")
                    raise RuntimeError(f"Ollama {endpoint} returned status {response.status}")
                return await response.json()
