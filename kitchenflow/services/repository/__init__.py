"""
Order Repository Factory

Provides a single entry point for order storage that automatically
selects the backend based on REPOSITORY_BACKEND / ENV_MODE.

Usage:
    from kitchenflow.services.repository import get_order_repository

    repository = get_order_repository()
    order = await repository.get(order_id)

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from kitchenflow.core.config import RepositoryBackend, get_settings
from kitchenflow.services.repository.base import BaseOrderRepository
from kitchenflow.services.repository.memory import InMemoryOrderRepository
from kitchenflow.services.repository.sql import SqlOrderRepository

logger = logging.getLogger(__name__)


@lru_cache()
def get_order_repository() -> BaseOrderRepository:
    """
    Get the configured order repository instance.

    Returns:
        SqlOrderRepository for the sql backend, InMemoryOrderRepository otherwise
    """
    settings = get_settings()

    if settings.effective_repository_backend == RepositoryBackend.SQL:
        from kitchenflow.database import get_session_maker

        logger.info("Order Repository: Using SQL database")
        return SqlOrderRepository(get_session_maker())

    logger.info("Order Repository: Using in-memory store")
    return InMemoryOrderRepository()


def reset_order_repository() -> None:
    """Clear the cached repository instance."""
    get_order_repository.cache_clear()
    logger.debug("Order repository cache cleared")


__all__ = [
    "get_order_repository",
    "reset_order_repository",
    "BaseOrderRepository",
    "InMemoryOrderRepository",
    "SqlOrderRepository",
]
