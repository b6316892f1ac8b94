"""
Generative and Embedding Provider Tiers

Defines the small provider interface the pipeline depends on and the
concrete backends behind it. Backends are tried in a fixed priority list by
ProviderChain / EmbeddingChain; each call carries its own timeout and a
timed-out or failing tier hands over to the next one.

Default priority:
- Generation: Groq (hosted) -> Ollama (local)
- Embeddings: OpenAI (hosted) -> Ollama (local)
"""

import asyncio
import logging
import os
from typing import Awaitable, Callable, List, Optional, Sequence

from dotenv import load_dotenv
from openai import OpenAI

from src.config.analyzer_config import AUTOMATION_CONFIG
from src.integrations.errors import ProviderError, ProviderUnavailableError
from src.integrations.groq.client import EnhancedGroqClient
from src.integrations.groq.model_manager import ModelManager
from src.integrations.ollama.client import OllamaClient

logger = logging.getLogger(__name__)


class GenerativeProvider:
    """Contract for text-in/text-out backends."""

    name = "generative"

    async def complete(self, prompt: str, temperature: float = 0.2, max_tokens: int = 1024) -> str:
        raise NotImplementedError("Must implement complete")


class EmbeddingProvider:
    """Contract for text-in/vector-out backends."""

    name = "embedding"

    async def embed(self, text: str) -> List[float]:
        raise NotImplementedError("Must implement embed")


class GroqGenerativeProvider(GenerativeProvider):
    """
    Hosted Groq backend.

    The model is resolved per call through ModelManager for the configured
    task type, unless an explicit model name is supplied (used for the
    fine-tuned tier).
    """

    name = "groq"

    def __init__(self,
                 task_type: str,
                 model: Optional[str] = None,
                 client: Optional[EnhancedGroqClient] = None,
                 model_manager: Optional[ModelManager] = None):
        self.task_type = task_type
        self.model = model
        self._client = client
        self.model_manager = model_manager or ModelManager()

    @property
    def client(self) -> EnhancedGroqClient:
        # Created lazily so a missing API key surfaces as a provider failure
        if self._client is None:
            self._client = EnhancedGroqClient()
        return self._client

    async def complete(self, prompt: str, temperature: float = 0.2, max_tokens: int = 1024) -> str:
        model_name = self.model or self.model_manager.get_model_config(self.task_type)['name']
        try:
            text = await self.client.complete(
                prompt,
                model=model_name,
                temperature=temperature,
                max_tokens=max_tokens
            )
        except Exception:
            self.model_manager.record_performance(model_name, self.task_type, {'success': False})
            raise
        self.model_manager.record_performance(model_name, self.task_type, {'success': True})
        return text


class OllamaGenerativeProvider(GenerativeProvider):
    """Local Ollama backend for generation."""

    name = "ollama"

    def __init__(self, client: Optional[OllamaClient] = None):
        self.client = client or OllamaClient()

    async def complete(self, prompt: str, temperature: float = 0.2, max_tokens: int = 1024) -> str:
        return await self.client.generate(prompt, temperature=temperature, max_tokens=max_tokens)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Hosted OpenAI embeddings backend."""

    name = "openai"

    def __init__(self, model: Optional[str] = None, client: Optional[OpenAI] = None):
        load_dotenv(override=True)
        self.model = model or AUTOMATION_CONFIG["embeddings"]["primary_model"]
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            api_key = os.getenv('OPENAI_API_KEY')
            if not api_key:
                raise ValueError("OPENAI_API_KEY must be set to use OpenAI embeddings")
            self._client = OpenAI(api_key=api_key)
        return self._client

    async def embed(self, text: str) -> List[float]:
        response = await asyncio.to_thread(
            self.client.embeddings.create, model=self.model, input=[text]
        )
        return list(response.data[0].embedding)


class OllamaEmbeddingProvider(EmbeddingProvider):
    """Local Ollama backend for embeddings."""

    name = "ollama"

    def __init__(self, client: Optional[OllamaClient] = None):
        self.client = client or OllamaClient()

    async def embed(self, text: str) -> List[float]:
        return await self.client.embed(text)


async def _run_tiers(providers: Sequence,
                     call: Callable[[object], Awaitable],
                     timeout: Optional[float],
                     operation: str):
    errors = []
    for provider in providers:
        try:
            if timeout:
                result = await asyncio.wait_for(call(provider), timeout=timeout)
            else:
                result = await call(provider)
            if not result:
                raise ValueError(f"empty {operation} result")
            return result
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            error = ProviderError(provider.name, f"{operation} timed out after {timeout}s")
        except Exception as e:
            error = ProviderError(provider.name, str(e))
        logger.warning(f"{operation} via {provider.name} failed, trying next tier: {error}")
        errors.append(error)
    raise ProviderUnavailableError(errors)


class ProviderChain(GenerativeProvider):
    """
    Tries generative providers in priority order.

    Raises:
        ProviderUnavailableError: when every tier failed or timed out
    """

    name = "chain"

    def __init__(self, providers: Sequence[GenerativeProvider], timeout: Optional[float] = None):
        self.providers = list(providers)
        self.timeout = timeout

    async def complete(self, prompt: str, temperature: float = 0.2, max_tokens: int = 1024) -> str:
        return await _run_tiers(
            self.providers,
            lambda provider: provider.complete(prompt, temperature=temperature, max_tokens=max_tokens),
            self.timeout,
            "completion"
        )


class EmbeddingChain(EmbeddingProvider):
    """Tries embedding providers in priority order."""

    name = "chain"

    def __init__(self, providers: Sequence[EmbeddingProvider], timeout: Optional[float] = None):
        self.providers = list(providers)
        self.timeout = timeout

    async def embed(self, text: str) -> List[float]:
        return await _run_tiers(
            self.providers,
            lambda provider: provider.embed(text),
            self.timeout,
            "embedding"
        )


def default_generative_chain(task_type: str, timeout: Optional[float] = None) -> ProviderChain:
    """Groq first, local Ollama second."""
    return ProviderChain(
        [GroqGenerativeProvider(task_type), OllamaGenerativeProvider()],
        timeout=timeout
    )


def default_embedding_chain(timeout: Optional[float] = None) -> EmbeddingChain:
    """OpenAI first, local Ollama second."""
    return EmbeddingChain(
        [OpenAIEmbeddingProvider(), OllamaEmbeddingProvider()],
        timeout=timeout or AUTOMATION_CONFIG["embeddings"]["timeout"]
    )
