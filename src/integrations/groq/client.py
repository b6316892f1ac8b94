from groq import Groq
from typing import Dict, List, Optional
from datetime import datetime
import asyncio
import os
from dotenv import load_dotenv
import logging

logger = logging.getLogger(__name__)


class EnhancedGroqClient:
    """Enhanced Groq client with retry logic and error handling."""

    def __init__(self, api_key: Optional[str] = None, max_retries: int = 2):
        """Initialize the enhanced Groq client with API key from environment or parameter."""
        load_dotenv(override=True)
        self.api_key = api_key or os.getenv('GROQ_API_KEY')
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided either through initialization or environment")

        self.client = Groq(api_key=self.api_key)
        self.max_retries = max_retries
        self.metrics = {
            'requests': 0,
            'errors': [],
            'performance': {
                'avg_response_time': 0,
                'total_requests': 0,
                'success_rate': 100
            }
        }

    async def process_with_retry(self,
                                 messages: List[Dict],
                                 max_retries: Optional[int] = None,
                                 **kwargs):
        """Process a request with retry logic and error handling.

        Args:
            messages: List of message dictionaries for the conversation
            max_retries: Maximum number of attempts, defaults to the client setting
            **kwargs: Additional parameters for the API call

        Returns:
            Chat completion response object
        """
        attempts = max_retries or self.max_retries
        start_time = datetime.now()
        retries = 0
        last_error = None

        params = {
            'model': kwargs.pop('model', 'llama-3.3-70b-versatile'),
            'messages': messages,
            'temperature': kwargs.pop('temperature', 0.7),
            'max_completion_tokens': kwargs.pop('max_completion_tokens', 1024),
            **kwargs
        }

        while retries < attempts:
            try:
                response = await asyncio.to_thread(self.client.chat.completions.create, **params)

                self.record_success(start_time)
                return response

            except Exception as e:
                retries += 1
                last_error = str(e)
                self.record_error(last_error)

                if retries >= attempts:
                    logger.error(f"Failed after {attempts} attempts: {last_error}")
                    raise RuntimeError(f"Failed after {attempts} attempts: {last_error}") from e

                # Exponential backoff
                wait_time = 2 ** retries
                logger.warning(f"Attempt {retries} failed. Waiting {wait_time} seconds before retry...")
                await asyncio.sleep(wait_time)

    async def complete(self, prompt: str, model: str, temperature: float, max_tokens: int) -> str:
        """Single-turn completion returning the message text."""
        response = await self.process_with_retry(
            messages=[{"role": "user", "content": prompt}],
            model=model,
            temperature=temperature,
            max_completion_tokens=max_tokens
        )
        content = response.choices[0].message.content
        if not content:
            raise ValueError("Empty completion returned by Groq")
        return content

    def record_success(self, start_time: datetime):
        """Record successful request metrics."""
        duration = (datetime.now() - start_time).total_seconds()
        self.metrics['requests'] += 1

        total_reqs = self.metrics['requests']
        self.metrics['performance'].update({
            'avg_response_time': (
                    (self.metrics['performance']['avg_response_time'] * (total_reqs - 1) + duration)
                    / total_reqs
            ),
            'total_requests': total_reqs,
            'success_rate': (
                    max(total_reqs - len(self.metrics['errors']), 0) / total_reqs * 100
            )
        })

    def record_error(self, error_message: str):
        """Record error metrics."""
        self.metrics['errors'].append({
            'timestamp': datetime.now().isoformat(),
            'error': error_message
        })
        # Keep the error log bounded
        del self.metrics['errors'][:-100]
