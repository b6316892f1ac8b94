import logging
from typing import Any, Dict, Optional

from src.integrations.providers import GenerativeProvider, default_generative_chain

logger = logging.getLogger(__name__)


def mask_email(address: Optional[str]) -> Optional[str]:
    """
    Mask an email address for logging.

    Keeps the first and last character of the local part and the first
    character of the domain, e.g. ``j******e@e******.com``.
    """
    if not address or '@' not in address:
        return address

    try:
        username, domain = address.rsplit('@', 1)
        if len(username) <= 2:
            masked_username = '*' * len(username)
        else:
            masked_username = username[0] + '*' * (len(username) - 2) + username[-1]

        domain_parts = domain.split('.')
        masked_domain = domain_parts[0][:1] + '*' * max(len(domain_parts[0]) - 1, 0)
        suffix = '.'.join(domain_parts[1:])
        return f"{masked_username}@{masked_domain}.{suffix}" if suffix else f"{masked_username}@{masked_domain}"
    except Exception:
        return "***@***.***"


class BaseAnalyzer:
    """
    Base class for model-backed pipeline steps.

    Holds the step's config section and its generative provider chain. A
    chain is built from the config's task type and timeout unless one is
    injected.

    Attributes:
        config: Section of AUTOMATION_CONFIG for this step
        provider: Generative provider (normally a ProviderChain)
    """

    def __init__(self, config: Dict[str, Any], provider: Optional[GenerativeProvider] = None):
        self.config = config
        self.model_config = config["model"]
        self.provider = provider or default_generative_chain(
            self.model_config["task"], timeout=config.get("timeout")
        )

    async def _complete(self, prompt: str) -> str:
        """Run the prompt with this step's temperature and token limit."""
        return await self.provider.complete(
            prompt,
            temperature=self.model_config["temperature"],
            max_tokens=self.model_config["max_tokens"]
        )

    @staticmethod
    def _validate_email_content(content: Optional[str]) -> bool:
        if not content:
            return False
        return bool(content.strip())
