"""
Knowledge Store

Owner-scoped writes to the knowledge base. Embeddings are computed on a
best-effort basis: a failed embedding call stores the chunk without a vector
and retrieval falls back to keyword search for it. Every write invalidates
the owner's cache entry.
"""

import logging
from typing import Any, Dict, List, Optional

from src.errors import InvalidRequestError, NotFoundError
from src.integrations.providers import EmbeddingProvider, default_embedding_chain
from src.email_processing.knowledge.cache import KnowledgeBaseCache
from src.storage.automation_repository import KnowledgeRepository

logger = logging.getLogger(__name__)


class KnowledgeStore:
    def __init__(self, cache: KnowledgeBaseCache, embedder: Optional[EmbeddingProvider] = None):
        self.cache = cache
        self.embedder = embedder or default_embedding_chain()

    async def _embed(self, content: str) -> Optional[List[float]]:
        try:
            return await self.embedder.embed(content)
        except Exception as e:
            logger.warning(f"Embedding failed, storing chunk without vector: {e}")
            return None

    async def add(self,
                  owner: str,
                  content: str,
                  category: str = "General",
                  tags: Optional[List[str]] = None,
                  metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Add a chunk.

        Raises:
            InvalidRequestError: If content is empty
        """
        if not content or not content.strip():
            raise InvalidRequestError("Knowledge content must not be empty")

        embedding = await self._embed(content)
        chunk = await KnowledgeRepository.create(
            owner, content, embedding=embedding, category=category, tags=tags, metadata=metadata
        )
        self.cache.invalidate(owner)
        logger.info(f"Added knowledge entry {chunk['id']} for user {owner}")
        return chunk

    async def bulk_add(self, owner: str, entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Add several `{content, category?, tags?, metadata?}` entries; empty ones are skipped."""
        created = []
        for entry in entries:
            content = (entry.get("content") or "").strip()
            if not content:
                continue
            created.append(await self.add(
                owner,
                content,
                category=entry.get("category") or "General",
                tags=entry.get("tags"),
                metadata=entry.get("metadata"),
            ))
        return created

    async def update(self, owner: str, chunk_id: str, **fields) -> Dict[str, Any]:
        """
        Update a chunk; a content change triggers re-embedding.

        Raises:
            NotFoundError: If the chunk does not exist for this owner
        """
        existing = await KnowledgeRepository.get(owner, chunk_id)
        if not existing:
            raise NotFoundError(f"Knowledge entry {chunk_id} not found")

        content = fields.get("content")
        if content is not None and content != existing["content"]:
            if not content.strip():
                raise InvalidRequestError("Knowledge content must not be empty")
            fields["embedding"] = await self._embed(content)

        updated = await KnowledgeRepository.update(owner, chunk_id, **fields)
        self.cache.invalidate(owner)
        return updated

    async def delete(self, owner: str, chunk_id: str) -> None:
        """
        Raises:
            NotFoundError: If the chunk does not exist for this owner
        """
        if not await KnowledgeRepository.delete(owner, chunk_id):
            raise NotFoundError(f"Knowledge entry {chunk_id} not found")
        self.cache.invalidate(owner)
        logger.info(f"Deleted knowledge entry {chunk_id} for user {owner}")

    async def list(self, owner: str) -> List[Dict[str, Any]]:
        return await KnowledgeRepository.list_for_owner(owner)

    async def count(self, owner: str) -> int:
        return await KnowledgeRepository.count_for_owner(owner)
