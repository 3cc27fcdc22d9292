import logging
import time
from typing import Optional, Dict, Any, List, Sequence

import httpx

from book import Book
from config import settings


logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an assistant for a library management system. "
    "Help users find and understand information about the available books."
)
FALLBACK_RESPONSE = "Sorry, I couldn't process your question at this time."


class AIServiceError(Exception):
    """Raised when the hosted model cannot answer."""
    pass


class MissingCredentialsError(AIServiceError):
    """Account id or API token is not configured"""
    pass


def build_books_context(books: Sequence[Book]) -> str:
    """Numbered list of every book with its availability, one per line."""
    return "\n".join(book.context_line(index) for index, book in enumerate(books, 1))


def build_messages(books_context: str, prompt: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f"Here is the list of books in our library:\n\n{books_context}\n\nUser question: {prompt}",
        },
    ]


class BookAssistant:
    """Answers questions about the catalog through Cloudflare Workers AI"""

    def __init__(self, account_id: Optional[str] = None, api_token: Optional[str] = None,
                 model: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.account_id = account_id if account_id is not None else settings.cloudflare_account_id
        self.api_token = api_token if api_token is not None else settings.cloudflare_ai_token
        self.model = model or settings.cloudflare_ai_model
        self.base_url = (base_url or settings.cloudflare_ai_base_url).rstrip("/")
        self.timeout = timeout or settings.ai_timeout
        # Injected by tests; None means the default network transport.
        self._transport = transport

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/accounts/{self.account_id}/ai/run/{self.model}"

    def is_available(self) -> bool:
        """Check if credentials are configured and AI features are switched on"""
        return bool(self.account_id and self.api_token and settings.enable_ai_features)

    async def _run_model(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        if not self.account_id or not self.api_token:
            raise MissingCredentialsError("Missing required Cloudflare credentials")

        headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }

        start_time = time.time()
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.endpoint, json={"messages": messages}, headers=headers)

        response_time_ms = int((time.time() - start_time) * 1000)
        logger.info(f"Workers AI call: model={self.model}, status={response.status_code}, time={response_time_ms}ms")

        if not response.is_success:
            raise AIServiceError(f"AI API returned {response.status_code}")
        return response.json()

    async def ask(self, prompt: str, books: Sequence[Book]) -> str:
        """
        Ask the model a question about the given books.

        Args:
            prompt: The user's question
            books: Every book in the catalog, used as context

        Returns:
            The model's answer, or FALLBACK_RESPONSE on any failure
        """
        if not settings.enable_ai_features:
            logger.info("AI features are disabled; skipping Workers AI call")
            return FALLBACK_RESPONSE

        messages = build_messages(build_books_context(books), prompt)
        try:
            result = await self._run_model(messages)
            answer = (result.get("result") or {}).get("response") or FALLBACK_RESPONSE
            logger.info(f"AI response: {answer}")
            return answer
        except Exception as e:
            logger.error(f"AI error: {e}")
            return FALLBACK_RESPONSE
