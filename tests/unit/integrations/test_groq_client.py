"""
Unit tests for the retrying Groq client.
"""

import pytest
from unittest.mock import MagicMock, patch

from src.integrations.groq.client import EnhancedGroqClient


def _completion(text):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = text
    return response


@pytest.fixture
def groq_client():
    with patch('src.integrations.groq.client.Groq') as mock_groq:
        client = EnhancedGroqClient(api_key="test-key")
        client.client = mock_groq.return_value
        yield client


def test_missing_api_key():
    with patch('src.integrations.groq.client.load_dotenv'), \
            patch.dict('os.environ', {}, clear=True):
        with pytest.raises(ValueError):
            EnhancedGroqClient()


@pytest.mark.asyncio
class TestEnhancedGroqClient:

    async def test_complete_returns_message_text(self, groq_client):
        groq_client.client.chat.completions.create.return_value = _completion("Hi there")

        text = await groq_client.complete("prompt", model="m", temperature=0.1, max_tokens=10)

        assert text == "Hi there"
        kwargs = groq_client.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "m"
        assert kwargs["max_completion_tokens"] == 10
        assert groq_client.metrics["performance"]["total_requests"] == 1

    @patch('src.integrations.groq.client.asyncio.sleep')
    async def test_retry_keeps_request_parameters(self, mock_sleep, groq_client):
        groq_client.client.chat.completions.create.side_effect = [
            RuntimeError("503"), _completion("ok")
        ]

        await groq_client.complete("prompt", model="ft:tuned", temperature=0.2, max_tokens=50)

        calls = groq_client.client.chat.completions.create.call_args_list
        assert [call.kwargs["model"] for call in calls] == ["ft:tuned", "ft:tuned"]
        mock_sleep.assert_awaited_once_with(2)

    @patch('src.integrations.groq.client.asyncio.sleep')
    async def test_gives_up_after_max_retries(self, mock_sleep, groq_client):
        groq_client.client.chat.completions.create.side_effect = RuntimeError("down")

        with pytest.raises(RuntimeError, match="Failed after 2 attempts"):
            await groq_client.complete("prompt", model="m", temperature=0.1, max_tokens=10)

        assert len(groq_client.metrics["errors"]) == 2

    async def test_empty_completion_rejected(self, groq_client):
        groq_client.client.chat.completions.create.return_value = _completion("")

        with pytest.raises(ValueError):
            await groq_client.complete("prompt", model="m", temperature=0.1, max_tokens=10)
