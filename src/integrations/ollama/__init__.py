from .client import OllamaClient

__all__ = ['OllamaClient']
