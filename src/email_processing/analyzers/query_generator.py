"""
QueryGenerator: retrieval queries for product inquiries.

Asks the model for the questions a customer is asking, one per line, and
keeps lines that look like questions or numbered items.
"""

import logging
import re
from typing import List, Optional

from src.config.analyzer_config import AUTOMATION_CONFIG
from src.email_processing.base import BaseAnalyzer
from src.integrations.providers import GenerativeProvider

logger = logging.getLogger(__name__)

_NUMBERED = re.compile(r"^\s*\d+\.\s*")


def parse_queries(response: str, limit: int) -> List[str]:
    queries = []
    for line in (response or "").splitlines():
        line = line.strip()
        if not line:
            continue
        if "?" in line or _NUMBERED.match(line):
            query = _NUMBERED.sub("", line).strip()
            if query:
                queries.append(query)
        if len(queries) >= limit:
            break
    return queries


class QueryGenerator(BaseAnalyzer):
    def __init__(self, provider: Optional[GenerativeProvider] = None):
        super().__init__(AUTOMATION_CONFIG["query_generator"], provider)

    async def generate(self, body: str) -> List[str]:
        """
        Derive up to `max_queries` retrieval queries from the body.

        Falls back to the first `fallback_length` characters of the body when
        the model fails or returns nothing usable.
        """
        fallback = [(body or "")[:self.config["fallback_length"]]]
        if not self._validate_email_content(body):
            return fallback

        prompt = (
            "Read this customer email and list the specific questions the customer "
            f"is asking, at most {self.config['max_queries']}, one per line, numbered.\n\n"
            f"Email:\n{body}\n\nQuestions:"
        )
        try:
            response = await self._complete(prompt)
        except Exception as e:
            logger.warning(f"Query generation failed, using body excerpt: {e}")
            return fallback

        queries = parse_queries(response, self.config["max_queries"])
        if not queries:
            logger.info("No queries parsed from model output, using body excerpt")
            return fallback
        return queries
