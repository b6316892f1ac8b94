"""
Unit tests for the per-owner knowledge cache.
"""

import pytest
from unittest.mock import AsyncMock

from src.email_processing.knowledge.cache import KnowledgeBaseCache


class TestKnowledgeBaseCache:

    def test_put_and_get(self):
        cache = KnowledgeBaseCache(max_owners=2)
        cache.put("a", [{"id": "1"}])

        assert cache.get("a") == [{"id": "1"}]
        assert cache.get("b") is None
        assert "a" in cache and len(cache) == 1

    def test_least_recently_used_owner_evicted(self):
        cache = KnowledgeBaseCache(max_owners=2)
        cache.put("a", [])
        cache.put("b", [])
        cache.get("a")
        cache.put("c", [])

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache

    def test_invalidate_and_clear(self):
        cache = KnowledgeBaseCache()
        cache.put("a", [])
        cache.put("b", [])

        cache.invalidate("a")
        cache.invalidate("missing")
        assert "a" not in cache and "b" in cache

        cache.clear()
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_get_or_load_loads_once(self):
        cache = KnowledgeBaseCache()
        loader = AsyncMock(return_value=[{"id": "1", "content": "x"}])

        first = await cache.get_or_load("a", loader)
        second = await cache.get_or_load("a", loader)

        assert first == second == [{"id": "1", "content": "x"}]
        loader.assert_awaited_once_with("a")
