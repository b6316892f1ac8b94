"""
Error types raised by external collaborators.

Provider errors are always absorbed by a fallback tier or a static default
before reaching the pipeline caller. Transport errors are surfaced to the
poller, which logs them and waits for the next scheduled tick.
"""


class IntegrationError(Exception):
    """Base class for failures in an external collaborator."""


class ProviderError(IntegrationError):
    """A single generative or embedding backend failed or timed out."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class ProviderUnavailableError(IntegrationError):
    """Every backend in a provider chain failed."""

    def __init__(self, errors):
        self.errors = list(errors)
        summary = "; ".join(str(e) for e in self.errors) or "no providers configured"
        super().__init__(f"All providers failed: {summary}")


class TransportError(IntegrationError):
    """IMAP or SMTP connection, authentication or protocol failure."""


class MailboxConfigError(IntegrationError):
    """Mailbox settings are missing or name an unsupported provider."""
