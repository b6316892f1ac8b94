from .cache import KnowledgeBaseCache
from .retriever import KnowledgeRetriever, cosine_similarity, keyword_score, extract_keywords
from .store import KnowledgeStore

__all__ = [
    'KnowledgeBaseCache',
    'KnowledgeRetriever',
    'KnowledgeStore',
    'cosine_similarity',
    'keyword_score',
    'extract_keywords',
]
