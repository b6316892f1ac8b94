"""
ResponseGenerator: reply drafting.

Builds a role-conditioned prompt from the message, its category and any
retrieved knowledge, and drafts a reply through three tiers:

1. The fine-tuned model, when one is configured (CUSTOM_MODEL_NAME or the
   model produced by the last retraining cycle)
2. The default generative chain (Groq, then local Ollama)
3. A static per-category template

The last tier cannot fail, so `generate` always returns a reply.
"""

import asyncio
import logging
import os
from typing import Callable, Optional

from dotenv import load_dotenv

from src.config.analyzer_config import AUTOMATION_CONFIG
from src.email_processing.base import BaseAnalyzer
from src.email_processing.models import EmailCategory, InboundMessage
from src.integrations.providers import GenerativeProvider, GroqGenerativeProvider

logger = logging.getLogger(__name__)

ROLE_INSTRUCTIONS = {
    EmailCategory.PRODUCT_INQUIRY: (
        "You are a knowledgeable product specialist answering a customer's question."
    ),
    EmailCategory.CUSTOMER_COMPLAINT: (
        "You are an empathetic customer support agent. Acknowledge the customer's "
        "frustration, apologise where appropriate and explain the next steps."
    ),
    EmailCategory.CUSTOMER_FEEDBACK: (
        "You are a customer success manager thanking a customer for their feedback."
    ),
}

TEMPLATES = {
    EmailCategory.PRODUCT_INQUIRY: (
        "Dear {name},\n\n"
        "Thank you for your interest in our products. We have received your inquiry "
        "and a member of our team will follow up with the details you asked about shortly.\n\n"
        "Best regards,\nCustomer Support Team"
    ),
    EmailCategory.CUSTOMER_COMPLAINT: (
        "Dear {name},\n\n"
        "We are sorry to hear about the trouble you have experienced. Your message has "
        "been passed to our support team, who will look into it and get back to you as "
        "soon as possible.\n\n"
        "Best regards,\nCustomer Support Team"
    ),
    EmailCategory.CUSTOMER_FEEDBACK: (
        "Dear {name},\n\n"
        "Thank you for taking the time to share your feedback with us. We read every "
        "message and use it to improve our service.\n\n"
        "Best regards,\nCustomer Support Team"
    ),
}
DEFAULT_TEMPLATE = (
    "Dear {name},\n\n"
    "Thank you for your email. We have received your message and will respond as soon as possible.\n\n"
    "Best regards,\nCustomer Support Team"
)


def fallback_response(message: InboundMessage, category: EmailCategory) -> str:
    """Static reply addressed to the sender's display name, or "Customer"."""
    template = TEMPLATES.get(category, DEFAULT_TEMPLATE)
    return template.format(name=message.sender_name or "Customer")


class ResponseGenerator(BaseAnalyzer):
    """
    Drafts replies with a fine-tuned tier, the default chain, and a template fallback.

    Attributes:
        fine_tuned_model: Callable returning the current fine-tuned model name, or None
    """

    def __init__(self,
                 provider: Optional[GenerativeProvider] = None,
                 fine_tuned_model: Optional[Callable[[], Optional[str]]] = None,
                 fine_tuned_provider_factory: Optional[Callable[[str], GenerativeProvider]] = None):
        super().__init__(AUTOMATION_CONFIG["response_generator"], provider)
        load_dotenv(override=True)
        self.fine_tuned_model = fine_tuned_model or (lambda: os.getenv("CUSTOM_MODEL_NAME"))
        self.fine_tuned_provider_factory = fine_tuned_provider_factory or (
            lambda model: GroqGenerativeProvider(self.model_config["task"], model=model)
        )

    async def generate(self,
                       message: InboundMessage,
                       category: EmailCategory,
                       context: Optional[str] = None) -> str:
        """Draft a reply. Never raises."""
        prompt = self._construct_prompt(message, category, context)

        model_name = self.fine_tuned_model()
        if model_name:
            settings = self.config["fine_tuned"]
            try:
                provider = self.fine_tuned_provider_factory(model_name)
                text = await asyncio.wait_for(
                    provider.complete(
                        prompt,
                        temperature=settings["temperature"],
                        max_tokens=settings["max_tokens"]
                    ),
                    timeout=self.config["timeout"]
                )
                if text and text.strip():
                    logger.info(f"Reply drafted with fine-tuned model {model_name}")
                    return text.strip()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Fine-tuned model {model_name} failed, using default chain: {e}")

        try:
            text = await self._complete(prompt)
            if text and text.strip():
                return text.strip()
        except Exception as e:
            logger.error(f"All generation tiers failed for {message.message_id}, using template: {e}")

        return fallback_response(message, category)

    def _construct_prompt(self,
                          message: InboundMessage,
                          category: EmailCategory,
                          context: Optional[str]) -> str:
        role = ROLE_INSTRUCTIONS.get(category, "You are a helpful customer support agent.")
        body = (message.body or "")[:self.config["max_body_chars"]]
        name = message.sender_name or "Customer"

        sections = [
            role,
            f"Customer name: {name}\nSubject: {message.subject}\n\nCustomer email:\n{body}",
        ]
        if context:
            sections.append(f"Knowledge base information:\n{context}")
        sections.append(
            "Guidelines:\n"
            "- Use only the knowledge base information above for facts; never invent "
            "prices, features or policies.\n"
            "- If the information says nothing was found for a question, say you will "
            "follow up rather than guessing.\n"
            "- Keep a professional, friendly tone.\n"
            "- End with a clear call to action where relevant.\n\n"
            "Write only the body of the reply email."
        )
        return "\n\n".join(sections)
