"""
Catalog Service Factory

Provides a single entry point for the read-only menu lookup used by
order decomposition.

Usage:
    from kitchenflow.services.catalog import get_catalog_service

    catalog = get_catalog_service()
    entry = catalog.get_entry("D-00001")

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from kitchenflow.core.config import get_settings
from kitchenflow.services.catalog.base import (
    BaseCatalogService,
    CatalogEntry,
    DealComponent,
    Variant,
)
from kitchenflow.services.catalog.static import StaticCatalogService, DEFAULT_MENU

logger = logging.getLogger(__name__)


@lru_cache()
def get_catalog_service() -> BaseCatalogService:
    """
    Get the configured catalog instance.

    Uses CATALOG_FILE when set, the built-in menu otherwise.
    """
    settings = get_settings()

    if settings.catalog_file:
        logger.info(f"Catalog Service: loading menu from {settings.catalog_file}")
        return StaticCatalogService.from_file(settings.catalog_file)

    logger.info("Catalog Service: Using built-in menu")
    return StaticCatalogService()


def reset_catalog_service() -> None:
    """Clear the cached catalog instance."""
    get_catalog_service.cache_clear()
    logger.debug("Catalog service cache cleared")


__all__ = [
    "get_catalog_service",
    "reset_catalog_service",
    "BaseCatalogService",
    "CatalogEntry",
    "DealComponent",
    "Variant",
    "StaticCatalogService",
    "DEFAULT_MENU",
]
