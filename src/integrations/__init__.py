from .groq.client import EnhancedGroqClient
from .groq.model_manager import ModelManager
from .ollama.client import OllamaClient
from .errors import ProviderError, ProviderUnavailableError, TransportError, MailboxConfigError

__all__ = [
    'EnhancedGroqClient',
    'ModelManager',
    'OllamaClient',
    'ProviderError',
    'ProviderUnavailableError',
    'TransportError',
    'MailboxConfigError',
]
