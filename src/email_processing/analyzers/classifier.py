"""
EmailClassifier: Category Classification

Sorts an inbound message into one of four intents. The model's reply is
lowercased and searched for category keywords in priority order
(product_inquiry, customer_complaint, customer_feedback); anything else,
including a failure of every provider tier, yields unrelated so that no
automatic reply is sent for mail we could not understand.
"""

import logging
import time
from typing import Optional

from src.config.analyzer_config import AUTOMATION_CONFIG
from src.email_processing.base import BaseAnalyzer, mask_email
from src.email_processing.models import EmailCategory, CATEGORY_PRIORITY, InboundMessage
from src.integrations.providers import GenerativeProvider

logger = logging.getLogger(__name__)


def category_from_response(response: Optional[str]) -> EmailCategory:
    """Map raw model output to a category by keyword priority."""
    text = (response or "").lower()
    for category in CATEGORY_PRIORITY:
        if category.value in text:
            return category
    return EmailCategory.UNRELATED


class EmailClassifier(BaseAnalyzer):
    """Four-way intent classifier over subject and body."""

    def __init__(self, provider: Optional[GenerativeProvider] = None):
        super().__init__(AUTOMATION_CONFIG["classifier"], provider)

    async def classify(self, message: InboundMessage) -> EmailCategory:
        """
        Classify a message.

        Never raises for provider failures; returns UNRELATED instead.
        """
        prompt = self._construct_classification_prompt(message.subject, message.body)
        start_time = time.time()
        try:
            response = await self._complete(prompt)
        except Exception as e:
            logger.error(
                f"Classification failed for {message.message_id} from {mask_email(message.sender_address)}, "
                f"defaulting to unrelated: {e}"
            )
            return EmailCategory.UNRELATED

        category = category_from_response(response)
        logger.info(
            f"Classified {message.message_id} as {category.value} "
            f"in {time.time() - start_time:.2f}s"
        )
        logger.debug(f"Raw classification response: {response!r}")
        return category

    def _construct_classification_prompt(self, subject: str, body: str) -> str:
        return f"""
        Classify the following customer email into exactly one category.

        Subject: {subject}

        Body:
        {body}

        Categories:
        product_inquiry - questions about products, features, plans or pricing
        customer_complaint - problems, dissatisfaction or requests to fix something
        customer_feedback - opinions, praise or suggestions
        unrelated - spam, newsletters, personal mail or anything else

        Respond with ONLY the category name.
        """
