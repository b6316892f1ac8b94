"""
Per-owner knowledge-base cache.

Holds each owner's chunk list in memory between poll ticks. The cache is
bounded (least recently used owners are evicted) and is invalidated
explicitly by KnowledgeStore on every write to that owner's knowledge base.
"""

import logging
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, List, Optional

from src.config.analyzer_config import AUTOMATION_CONFIG

logger = logging.getLogger(__name__)

Chunk = Dict[str, Any]


class KnowledgeBaseCache:
    """Bounded LRU mapping owner -> list of chunk dicts (newest first)."""

    def __init__(self, max_owners: Optional[int] = None):
        self.max_owners = max_owners or AUTOMATION_CONFIG["retrieval"]["cache_max_owners"]
        self._entries: "OrderedDict[str, List[Chunk]]" = OrderedDict()

    def __contains__(self, owner: str) -> bool:
        return owner in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, owner: str) -> Optional[List[Chunk]]:
        chunks = self._entries.get(owner)
        if chunks is not None:
            self._entries.move_to_end(owner)
        return chunks

    def put(self, owner: str, chunks: List[Chunk]) -> None:
        self._entries[owner] = list(chunks)
        self._entries.move_to_end(owner)
        while len(self._entries) > self.max_owners:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted knowledge cache for user {evicted}")

    async def get_or_load(self, owner: str, loader: Callable[[str], Awaitable[List[Chunk]]]) -> List[Chunk]:
        """Return cached chunks, loading them through `loader` on a miss."""
        chunks = self.get(owner)
        if chunks is None:
            chunks = await loader(owner)
            self.put(owner, chunks)
            logger.info(f"Loaded {len(chunks)} knowledge entries for user {owner}")
        return chunks

    def invalidate(self, owner: str) -> None:
        if self._entries.pop(owner, None) is not None:
            logger.debug(f"Invalidated knowledge cache for user {owner}")

    def clear(self) -> None:
        self._entries.clear()
