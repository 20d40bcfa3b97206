"""
Financial Adjustment Engine

Keeps subtotal, tax, discount and total consistent after an order is
placed. Every operation computes the complete set of new figures first
and assigns them together, so a total is never derived from a half
updated subtotal/tax pair.

Money is kept as Decimal rounded half-up to cents.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from kitchenflow.core.exceptions import InvalidAdjustment
from kitchenflow.models import DiscountType
from kitchenflow.services.fulfillment.aggregate import FulfillmentUnit, Order

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def money(value) -> Decimal:
    """Round to cents, half-up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def billable_subtotal(units: Iterable[FulfillmentUnit]) -> Decimal:
    """Sum of price x quantity; deal components are paid through their parent."""
    return money(sum((u.line_total for u in units if not u.is_component), ZERO))


# =============================================================================
# PLACEMENT
# =============================================================================

def open_order_totals(order: Order) -> None:
    """Initial figures of a freshly decomposed order (no adjustment yet)."""
    subtotal = billable_subtotal(order.units)
    tax_amount = money(subtotal * order.tax_rate)

    order.subtotal = subtotal
    order.tax_amount = tax_amount
    order.total_amount = subtotal + tax_amount
    order.original_total_amount = None


# =============================================================================
# ADD UNITS
# =============================================================================

def add_units_totals(order: Order, new_units: Iterable[FulfillmentUnit]) -> Decimal:
    """
    Recompute after units were appended to a placed order.

    The pre-discount baseline moves by the same amount as the gross
    (subtotal + tax); when no baseline exists yet it becomes the new total.

    Returns:
        The subtotal increase
    """
    increase = billable_subtotal(new_units)

    subtotal = order.subtotal + increase
    tax_amount = money(subtotal * order.tax_rate)
    _retotal(order, subtotal, order.tax_rate, tax_amount, keep_empty_baseline=False)
    return increase


def _retotal(
    order: Order,
    subtotal: Decimal,
    tax_rate: Decimal,
    tax_amount: Decimal,
    keep_empty_baseline: bool,
) -> None:
    """
    Assign new subtotal/tax figures and re-derive the active adjustment.

    The baseline moves by the gross delta. Complementary stays at zero,
    a percentage discount follows the new baseline and a fixed discount
    keeps its amount.
    """
    gross = subtotal + tax_amount
    gross_delta = gross - (order.subtotal + order.tax_amount)

    if order.original_total_amount is not None:
        original_total = order.original_total_amount + gross_delta
    elif keep_empty_baseline:
        original_total = None
    else:
        original_total = gross

    discount_amount = order.discount_amount
    if order.is_complementary:
        discount_amount = original_total
        total_amount = ZERO
    elif order.discount_type == DiscountType.PERCENTAGE:
        discount_amount = money(original_total * order.discount_value / HUNDRED)
        total_amount = max(ZERO, original_total - discount_amount)
    else:
        total_amount = max(ZERO, gross - (discount_amount or ZERO))

    order.subtotal = subtotal
    order.tax_rate = tax_rate
    order.tax_amount = tax_amount
    order.discount_amount = discount_amount
    order.total_amount = total_amount
    order.original_total_amount = original_total


# =============================================================================
# DISCOUNT / COMPLEMENTARY
# =============================================================================

def validate_adjustment(
    discount_type: Optional[DiscountType],
    discount_value: Optional[Decimal],
    is_complementary: bool,
) -> None:
    """
    Raises:
        InvalidAdjustment: Both kinds requested, nothing requested, or value <= 0
    """
    has_discount = discount_type is not None or discount_value is not None
    if is_complementary and has_discount:
        raise InvalidAdjustment(
            "An order is either complementary or discounted, not both",
            code="conflicting_adjustment",
        )
    if is_complementary:
        return
    if discount_type is None or discount_value is None:
        raise InvalidAdjustment(
            "A discount needs both a type and a value",
            code="incomplete_discount",
        )
    if discount_value <= 0:
        raise InvalidAdjustment(
            "Discount value must be greater than 0",
            code="non_positive_discount",
        )


def apply_adjustment(
    order: Order,
    discount_type: Optional[DiscountType] = None,
    discount_value: Optional[Decimal] = None,
    is_complementary: bool = False,
    reason: Optional[str] = None,
) -> None:
    """
    Apply a discount or mark the order complementary (last write wins).

    The total is always recomputed from the frozen baseline, so repeated
    adjustments replace each other instead of compounding.
    """
    validate_adjustment(discount_type, discount_value, is_complementary)

    if order.original_total_amount is not None:
        original_total = order.original_total_amount
    else:
        original_total = order.total_amount

    if is_complementary:
        order.is_complementary = True
        order.complementary_reason = reason
        order.discount_type = None
        order.discount_value = None
        order.discount_amount = original_total
        order.total_amount = ZERO
        order.original_total_amount = original_total
        return

    value = Decimal(discount_value)
    if discount_type == DiscountType.PERCENTAGE:
        discount_amount = money(original_total * value / HUNDRED)
    else:
        discount_amount = money(value)

    order.is_complementary = False
    order.complementary_reason = None
    order.discount_type = discount_type
    order.discount_value = value
    order.discount_amount = discount_amount
    order.total_amount = max(ZERO, original_total - discount_amount)
    order.original_total_amount = original_total


# =============================================================================
# PAYMENT METHOD
# =============================================================================

def change_payment_totals(order: Order, payment_method: str, tax_rate: Decimal) -> None:
    """Re-tax the subtotal at the new method's rate and re-derive any adjustment."""
    tax_amount = money(order.subtotal * tax_rate)
    _retotal(order, order.subtotal, tax_rate, tax_amount, keep_empty_baseline=True)
    order.payment_method = payment_method
