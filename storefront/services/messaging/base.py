"""
Messaging Service Abstract Base Class

Defines the interface for delivering a finished order message to the
restaurant owner. Implementations only move text; they know nothing about
carts or prices.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class MessageResult:
    """Result from sending a message."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"
    detail: Optional[Any] = None


def to_whatsapp_chat_id(phone: str) -> str:
    """
    Normalize a phone number in any format into a WhatsApp chat id.

    Example:
        >>> to_whatsapp_chat_id("+92 315-296-7579")
        '923152967579@c.us'

    Raises:
        ValueError: If ``phone`` contains no digits
    """
    digits = re.sub(r"[^\d]", "", phone or "")
    if not digits:
        raise ValueError("Destination phone number has no digits")
    return f"{digits}@c.us"


class BaseMessagingService(ABC):
    """Abstract base class for outbound messaging channels."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_text(self, to: str, body: str) -> MessageResult:
        """
        Send a plain-text message.

        Args:
            to: Channel-specific destination address
            body: Message text

        Returns:
            MessageResult: Outcome; failures are reported, not raised
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass
