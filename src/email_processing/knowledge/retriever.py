"""
Knowledge Retrieval

Finds the knowledge-base chunks relevant to a set of queries for one owner.

For each query (at most two are used):
1. Embed the query and rank chunks that carry an embedding by cosine
   similarity, keeping the top K above the similarity threshold.
2. If embedding fails or nothing clears the threshold, rank chunks by the
   number of query keywords (longer than three characters) they contain,
   keeping the top K with a nonzero score.

Every query contributes a block to the returned context, including queries
with no match, which get an explicit "no information found" line so the
response generator can tell the customer it does not know.
"""

import logging
import string
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from src.config.analyzer_config import AUTOMATION_CONFIG
from src.integrations.providers import EmbeddingProvider, default_embedding_chain
from src.email_processing.knowledge.cache import KnowledgeBaseCache
from src.storage.automation_repository import KnowledgeRepository

logger = logging.getLogger(__name__)

_PUNCTUATION = str.maketrans(string.punctuation, " " * len(string.punctuation))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two vectors; 0.0 for empty, mismatched or zero vectors."""
    if a is None or b is None:
        return 0.0
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if a.size == 0 or a.shape != b.shape:
        return 0.0
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


def extract_keywords(query: str, min_length: Optional[int] = None) -> List[str]:
    min_length = min_length or AUTOMATION_CONFIG["retrieval"]["min_keyword_length"]
    words = query.lower().translate(_PUNCTUATION).split()
    return [word for word in words if len(word) >= min_length]


def keyword_score(keywords: Sequence[str], content: str) -> int:
    """Number of keywords found as substrings of the content (case-insensitive)."""
    text = (content or "").lower()
    return sum(1 for keyword in keywords if keyword in text)


class KnowledgeRetriever:
    """
    Retrieves context for response generation.

    Attributes:
        cache: Per-owner chunk cache shared with KnowledgeStore
        embedder: Embedding provider chain
    """

    def __init__(self,
                 cache: KnowledgeBaseCache,
                 embedder: Optional[EmbeddingProvider] = None,
                 config: Optional[Dict[str, Any]] = None):
        self.cache = cache
        self.embedder = embedder or default_embedding_chain()
        self.config = config or AUTOMATION_CONFIG["retrieval"]

    async def load(self, owner: str) -> List[Dict[str, Any]]:
        return await self.cache.get_or_load(owner, KnowledgeRepository.list_for_owner)

    async def retrieve(self, queries: Sequence[str], owner: str) -> str:
        """
        Build the context block for up to `max_queries` queries.

        Returns:
            Blocks joined by blank lines; empty string when no queries are given
        """
        chunks = await self.load(owner)
        blocks = []
        for query in list(queries)[:self.config["max_queries"]]:
            matches = await self.search(query, chunks)
            if matches:
                body = "\n\n".join(chunk["content"] for chunk in matches)
                blocks.append(f"Information about: {query}\n{body}")
            else:
                blocks.append(f"No specific information found for: {query}")
        return "\n\n".join(blocks)

    async def search(self, query: str, chunks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Top-K chunks for one query, by embedding similarity then keyword overlap."""
        top_k = self.config["top_k"]

        embedded = [chunk for chunk in chunks if chunk.get("embedding")]
        if embedded:
            try:
                vector = await self.embedder.embed(query)
            except Exception as e:
                logger.warning(f"Query embedding failed, using keyword search: {e}")
                vector = None

            if vector:
                threshold = self.config["similarity_threshold"]
                scored = [(cosine_similarity(vector, chunk["embedding"]), chunk) for chunk in embedded]
                scored = [item for item in scored if item[0] > threshold]
                # sorted() is stable, so equal scores keep cache order
                scored.sort(key=lambda item: item[0], reverse=True)
                if scored:
                    return [chunk for _, chunk in scored[:top_k]]

        keywords = extract_keywords(query, self.config["min_keyword_length"])
        if not keywords:
            return []
        scored = [(keyword_score(keywords, chunk["content"]), chunk) for chunk in chunks]
        scored = [item for item in scored if item[0] > 0]
        scored.sort(key=lambda item: item[0], reverse=True)
        return [chunk for _, chunk in scored[:top_k]]
