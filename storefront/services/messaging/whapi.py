"""
WhatsApp Gateway Messaging Service

Production implementation that posts order messages to a Whapi-style
WhatsApp HTTP gateway:

    POST {base_url}/messages/text
    Authorization: Bearer <token>
    {"to": "<digits>@c.us", "body": "<text>"}
"""

import logging
from typing import Any, Optional

import httpx

from storefront.core.config import get_settings
from storefront.services.messaging.base import BaseMessagingService, MessageResult

logger = logging.getLogger(__name__)


class WhapiMessagingService(BaseMessagingService):
    """Production messaging channel using the WhatsApp gateway."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.whapi_base_url).rstrip("/")
        self.token = token if token is not None else settings.whapi_token
        self.timeout = timeout if timeout is not None else settings.messaging_timeout_seconds
        self._transport = transport

        if not self.token:
            logger.warning("WhatsApp gateway token not configured")

        logger.info(f"WhapiMessagingService initialized ({self.base_url})")

    @property
    def provider_name(self) -> str:
        return "whapi"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.token}"},
            timeout=self.timeout,
            transport=self._transport,
        )

    @staticmethod
    def _json_or_empty(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return {}

    async def send_text(self, to: str, body: str) -> MessageResult:
        """Send a text message through the gateway."""
        if not self.token:
            return MessageResult(
                success=False,
                error_message="WhatsApp gateway not configured",
                provider="whapi",
            )

        try:
            async with self._client() as client:
                response = await client.post("/messages/text", json={"to": to, "body": body})
        except httpx.HTTPError as e:
            logger.error(f"WhatsApp gateway request failed: {e}")
            return MessageResult(
                success=False,
                error_message=str(e) or e.__class__.__name__,
                provider="whapi",
            )

        data = self._json_or_empty(response)

        if not response.is_success:
            logger.error(f"WhatsApp gateway rejected message ({response.status_code}): {data}")
            return MessageResult(
                success=False,
                error_message=f"Gateway returned HTTP {response.status_code}",
                provider="whapi",
                detail=data,
            )

        message = data.get("message") if isinstance(data, dict) else None
        message_id = message.get("id") if isinstance(message, dict) else None
        logger.info(f"WhatsApp message sent to {to} (ID: {message_id})")

        return MessageResult(
            success=True,
            message_id=message_id,
            provider="whapi",
        )

    async def health_check(self) -> bool:
        """Check gateway reachability and token validity."""
        if not self.token:
            return False
        try:
            async with self._client() as client:
                response = await client.get("/health")
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning(f"WhatsApp gateway health check failed: {e}")
            return False
