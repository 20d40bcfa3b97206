"""
Payment Method Service Abstract Base Class

Every payment method accepted at the counter carries its own tax rate
(cash and card are taxed differently). The financial adjustment engine
only needs one question answered: what rate applies to this method?

Design Pattern: Strategy Pattern
    - Rates can come from settings today and from the settings service later
    - Tests plug in a fixed table

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from kitchenflow.core.exceptions import NotFound


@dataclass(frozen=True)
class PaymentMethod:
    """
    A payment method offered at checkout.

    Attributes:
        name: Display name, also the lookup key (e.g. "Cash")
        tax_rate: Tax rate as decimal (0.16 = 16%)
    """
    name: str
    tax_rate: Decimal


class BasePaymentMethodService(ABC):
    """Abstract base class for payment method / tax rate lookups."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    def list_methods(self) -> list[PaymentMethod]:
        """Return every accepted payment method."""
        pass

    def resolve(self, payment_method: str) -> PaymentMethod:
        """
        Look up a payment method by name (case-insensitive).

        Raises:
            NotFound: If the payment method is not accepted
        """
        wanted = payment_method.strip().lower()
        for method in self.list_methods():
            if method.name.lower() == wanted:
                return method
        raise NotFound(
            f"Payment method {payment_method!r} is not accepted",
            code="payment_method_not_found",
        )

    def get_tax_rate(self, payment_method: str) -> Decimal:
        """Tax rate of a payment method as a decimal fraction."""
        return self.resolve(payment_method).tax_rate
