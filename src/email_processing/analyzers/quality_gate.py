"""
QualityGate: self-assessment of drafted replies.

The model reviews the customer's message and the draft for professionalism,
relevance and completeness, answering with a ``SENDABLE: true|false`` line
and an optional ``FEEDBACK:`` block.

When the check itself cannot be run, the configured `fail_open` policy
decides: True lets the draft through with a warning annotation, False holds
it for human review.
"""

import logging
import re
from typing import Optional

from src.config.analyzer_config import AUTOMATION_CONFIG
from src.email_processing.base import BaseAnalyzer
from src.email_processing.models import QualityCheckResult
from src.integrations.providers import GenerativeProvider

logger = logging.getLogger(__name__)

UNAVAILABLE_FEEDBACK = "Quality check unavailable; sent without review"
UNAVAILABLE_HELD_FEEDBACK = "Quality check unavailable; held for review"

_SENDABLE = re.compile(r"SENDABLE:\s*(true|false)", re.IGNORECASE)
_FEEDBACK = re.compile(r"FEEDBACK:\s*(.*)", re.IGNORECASE | re.DOTALL)


def parse_quality_response(response: str) -> QualityCheckResult:
    """
    Parse the gate's reply.

    A missing SENDABLE token counts as not sendable.
    """
    sendable_match = _SENDABLE.search(response or "")
    feedback_match = _FEEDBACK.search(response or "")
    sendable = bool(sendable_match) and sendable_match.group(1).lower() == "true"
    feedback = feedback_match.group(1).strip() if feedback_match else ""
    return QualityCheckResult(sendable=sendable, feedback=feedback)


class QualityGate(BaseAnalyzer):
    def __init__(self, provider: Optional[GenerativeProvider] = None, fail_open: Optional[bool] = None):
        super().__init__(AUTOMATION_CONFIG["quality_gate"], provider)
        self.fail_open = self.config["fail_open"] if fail_open is None else fail_open

    async def check(self, original_body: str, draft: str) -> QualityCheckResult:
        prompt = self._construct_prompt(original_body, draft)
        try:
            response = await self._complete(prompt)
        except Exception as e:
            if self.fail_open:
                logger.warning(f"Quality check failed, letting draft through: {e}")
                return QualityCheckResult(sendable=True, feedback=UNAVAILABLE_FEEDBACK, failed_open=True)
            logger.warning(f"Quality check failed, holding draft for review: {e}")
            return QualityCheckResult(sendable=False, feedback=UNAVAILABLE_HELD_FEEDBACK)

        result = parse_quality_response(response)
        logger.info(f"Quality check result: sendable={result.sendable}")
        return result

    def _construct_prompt(self, original_body: str, draft: str) -> str:
        excerpt = (original_body or "")[:self.config["max_original_chars"]]
        return f"""
        You are reviewing an automated reply before it is sent to a customer.

        Customer email:
        {excerpt}

        Drafted reply:
        {draft}

        Check that the reply is professional, relevant to the customer's email and
        complete. Answer in exactly this format:
        SENDABLE: true or false
        FEEDBACK: a short note on any problems (omit if there are none)
        """
