"""
Configured Payment Method Service

Reads the accepted payment methods and their tax rates from the
PAYMENT_METHODS setting ("Cash:0.16,Card:0.05").

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from decimal import Decimal
from typing import Mapping

from kitchenflow.services.payment.base import BasePaymentMethodService, PaymentMethod

logger = logging.getLogger(__name__)


class ConfiguredPaymentMethodService(BasePaymentMethodService):
    """
    Payment methods from a static name -> rate mapping.

    Example:
        >>> service = ConfiguredPaymentMethodService({"Cash": Decimal("0.16")})
        >>> service.get_tax_rate("cash")
        Decimal('0.16')
    """

    def __init__(self, rates: Mapping[str, Decimal]):
        self._methods = [PaymentMethod(name, Decimal(rate)) for name, rate in rates.items()]
        logger.info(
            "ConfiguredPaymentMethodService initialized "
            f"({', '.join(f'{m.name}={m.tax_rate}' for m in self._methods)})"
        )

    @property
    def provider_name(self) -> str:
        return "configured"

    def list_methods(self) -> list[PaymentMethod]:
        return list(self._methods)
