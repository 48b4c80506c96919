"""
                        Services Module

Business logic services behind the API routes. External channels follow
the hybrid pattern: a Mock implementation for development and a Real one
for staging/production, selected by ENV_MODE.

Services:
    - catalog: Storefront reads and admin catalog mutations
    - auth: Admin password check and signed session cookies
    - messaging: WhatsApp delivery of order messages (mock / gateway)
"""

from storefront.services.catalog import CatalogError, CatalogNotFoundError, CatalogService

__all__ = ["CatalogService", "CatalogError", "CatalogNotFoundError"]
