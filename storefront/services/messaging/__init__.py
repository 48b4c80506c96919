"""
Messaging Service Factory

Returns the Mock or WhatsApp gateway messaging service based on ENV_MODE.

Usage:
    from storefront.services.messaging import get_messaging_service

    service = get_messaging_service()
    result = await service.send_text(to_whatsapp_chat_id(number), text)
"""

import logging
from functools import lru_cache

from storefront.core.config import get_settings
from storefront.services.messaging.base import (
    BaseMessagingService,
    MessageResult,
    to_whatsapp_chat_id,
)
from storefront.services.messaging.mock import MockMessagingService
from storefront.services.messaging.whapi import WhapiMessagingService

logger = logging.getLogger(__name__)


@lru_cache()
def get_messaging_service() -> BaseMessagingService:
    """Get the configured messaging service."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Messaging Service: Using MockMessagingService (development mode)")
        return MockMessagingService(min_latency=0.1, max_latency=0.3)
    else:
        logger.info(f"Messaging Service: Using WhapiMessagingService ({settings.env_mode.value} mode)")
        return WhapiMessagingService()


def reset_messaging_service() -> None:
    """Clear the cached service instance."""
    get_messaging_service.cache_clear()


__all__ = [
    "get_messaging_service",
    "reset_messaging_service",
    "BaseMessagingService",
    "MessageResult",
    "MockMessagingService",
    "WhapiMessagingService",
    "to_whatsapp_chat_id",
]
