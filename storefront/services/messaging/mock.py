"""
Mock Messaging Service

Simulates the WhatsApp gateway for development.
Nothing leaves the machine; messages are logged and kept in ``sent``.
"""

import asyncio
import logging
import random
import uuid
from typing import List, Tuple

from storefront.services.messaging.base import BaseMessagingService, MessageResult

logger = logging.getLogger(__name__)


class MockMessagingService(BaseMessagingService):
    """Mock messaging channel for development and tests."""

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.sent: List[Tuple[str, str]] = []
        logger.info(f"MockMessagingService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> None:
        """Simulate network latency."""
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def send_text(self, to: str, body: str) -> MessageResult:
        """Simulate sending a WhatsApp text."""
        await self._simulate_latency()

        if self._should_fail():
            logger.warning(f"Mock message failed (simulated) to {to}")
            return MessageResult(
                success=False,
                error_message="Simulated delivery failure",
                provider="mock",
            )

        message_id = f"msg_mock_{uuid.uuid4().hex[:12]}"
        self.sent.append((to, body))
        logger.info(f"Mock message sent to {to}: {body[:50]!r}... (ID: {message_id})")

        return MessageResult(
            success=True,
            message_id=message_id,
            provider="mock",
        )

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
