"""
Unit tests for category classification.
"""

import pytest

from src.email_processing.analyzers.classifier import EmailClassifier, category_from_response
from src.email_processing.models import EmailCategory
from src.integrations.errors import ProviderUnavailableError
from tests.helpers import make_provider


@pytest.mark.parametrize("response, expected", [
    ("product_inquiry", EmailCategory.PRODUCT_INQUIRY),
    ("  Customer_Complaint\n", EmailCategory.CUSTOMER_COMPLAINT),
    ("Category: customer_feedback.", EmailCategory.CUSTOMER_FEEDBACK),
    ("customer_feedback or product_inquiry", EmailCategory.PRODUCT_INQUIRY),
    ("spam", EmailCategory.UNRELATED),
    ("", EmailCategory.UNRELATED),
    (None, EmailCategory.UNRELATED),
])
def test_category_from_response(response, expected):
    assert category_from_response(response) == expected


@pytest.mark.asyncio
class TestEmailClassifier:

    async def test_classify_uses_subject_and_body(self, inquiry):
        provider = make_provider("product_inquiry")

        assert await EmailClassifier(provider).classify(inquiry) == EmailCategory.PRODUCT_INQUIRY

        prompt = provider.complete.await_args.args[0]
        assert "SSO on Pro?" in prompt
        assert "does the Pro plan include SSO" in prompt
        assert provider.complete.await_args.kwargs == {"temperature": 0.1, "max_tokens": 50}

    async def test_provider_failure_yields_unrelated(self, inquiry):
        provider = make_provider(error=ProviderUnavailableError([]))

        assert await EmailClassifier(provider).classify(inquiry) == EmailCategory.UNRELATED
