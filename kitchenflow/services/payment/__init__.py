"""
Payment Method Service Factory

Provides a single entry point for the payment method tax-rate lookup.

Usage:
    from kitchenflow.services.payment import get_payment_method_service

    rate = get_payment_method_service().get_tax_rate("Card")

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from kitchenflow.core.config import get_settings
from kitchenflow.services.payment.base import BasePaymentMethodService, PaymentMethod
from kitchenflow.services.payment.configured import ConfiguredPaymentMethodService

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_method_service() -> BasePaymentMethodService:
    """Get the configured payment method service instance."""
    settings = get_settings()
    return ConfiguredPaymentMethodService(settings.payment_methods_map)


def reset_payment_method_service() -> None:
    """Clear the cached payment method service instance."""
    get_payment_method_service.cache_clear()
    logger.debug("Payment method service cache cleared")


__all__ = [
    "get_payment_method_service",
    "reset_payment_method_service",
    "BasePaymentMethodService",
    "PaymentMethod",
    "ConfiguredPaymentMethodService",
]
