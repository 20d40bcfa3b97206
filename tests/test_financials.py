from datetime import datetime, timezone
from decimal import Decimal

import pytest

from kitchenflow.core.exceptions import InvalidAdjustment
from kitchenflow.models import DiscountType
from kitchenflow.services.fulfillment import financials
from kitchenflow.services.fulfillment.aggregate import FulfillmentUnit, Order


def priced_unit(unit_id, price, quantity=1, parent=None):
    return FulfillmentUnit(
        unit_id=unit_id,
        catalog_id="I-1",
        name=unit_id,
        quantity=quantity,
        price=Decimal(price),
        base_price=Decimal(price),
        station_id="pizza",
        is_component=parent is not None,
        parent_unit_id=parent,
    )


@pytest.fixture
def order():
    order = Order(
        id="o-1",
        order_number="CHZ-000001",
        payment_method="Cash",
        tax_rate=Decimal("0.16"),
        order_date=datetime(2026, 1, 1, tzinfo=timezone.utc),
        units=[priced_unit("u1", "1000")],
    )
    financials.open_order_totals(order)
    return order


def test_open_order_totals(order):
    assert order.subtotal == Decimal("1000.00")
    assert order.tax_amount == Decimal("160.00")
    assert order.total_amount == Decimal("1160.00")
    assert order.original_total_amount is None


def test_components_are_not_billed():
    units = [priced_unit("deal", "2599", quantity=2), priced_unit("c1", "0", parent="deal")]
    assert financials.billable_subtotal(units) == Decimal("5198.00")


def test_percentage_discount_from_baseline(order):
    financials.apply_adjustment(order, DiscountType.PERCENTAGE, Decimal("10"))

    assert order.discount_amount == Decimal("116.00")
    assert order.total_amount == Decimal("1044.00")
    assert order.original_total_amount == Decimal("1160.00")


def test_adjustments_replace_each_other_instead_of_compounding(order):
    financials.apply_adjustment(order, DiscountType.PERCENTAGE, Decimal("10"))
    financials.apply_adjustment(order, is_complementary=True, reason="birthday")

    assert order.is_complementary
    assert order.complementary_reason == "birthday"
    assert order.total_amount == Decimal("0.00")
    assert order.discount_amount == Decimal("1160.00")
    assert order.discount_type is None

    financials.apply_adjustment(order, DiscountType.PERCENTAGE, Decimal("10"))

    assert not order.is_complementary
    assert order.complementary_reason is None
    assert order.total_amount == Decimal("1044.00")
    assert order.original_total_amount == Decimal("1160.00")


def test_fixed_discount_never_goes_negative(order):
    financials.apply_adjustment(order, DiscountType.AMOUNT, Decimal("5000"))

    assert order.discount_amount == Decimal("5000.00")
    assert order.total_amount == Decimal("0.00")


@pytest.mark.parametrize(
    "discount_type, discount_value, is_complementary, code",
    [
        (DiscountType.PERCENTAGE, Decimal("10"), True, "conflicting_adjustment"),
        (DiscountType.AMOUNT, Decimal("0"), False, "non_positive_discount"),
        (DiscountType.AMOUNT, Decimal("-5"), False, "non_positive_discount"),
        (None, Decimal("10"), False, "incomplete_discount"),
        (None, None, False, "incomplete_discount"),
    ],
)
def test_invalid_adjustments(order, discount_type, discount_value, is_complementary, code):
    with pytest.raises(InvalidAdjustment) as exc:
        financials.apply_adjustment(order, discount_type, discount_value, is_complementary)

    assert exc.value.code == code
    assert order.total_amount == Decimal("1160.00")


def test_add_units_without_adjustment_sets_baseline_to_new_total(order):
    increase = financials.add_units_totals(order, [priced_unit("u2", "500")])

    assert increase == Decimal("500.00")
    assert order.subtotal == Decimal("1500.00")
    assert order.tax_amount == Decimal("240.00")
    assert order.total_amount == Decimal("1740.00")
    assert order.original_total_amount == Decimal("1740.00")


def test_add_units_after_discount_moves_baseline_by_gross_delta(order):
    financials.apply_adjustment(order, DiscountType.AMOUNT, Decimal("100"))

    financials.add_units_totals(order, [priced_unit("u2", "500")])

    assert order.subtotal == Decimal("1500.00")
    assert order.tax_amount == Decimal("240.00")
    assert order.total_amount == Decimal("1640.00")
    assert order.original_total_amount == Decimal("1740.00")


def test_change_payment_method_moves_baseline_and_percentage_discount(order):
    financials.apply_adjustment(order, DiscountType.PERCENTAGE, Decimal("10"))

    financials.change_payment_totals(order, "Card", Decimal("0.05"))

    assert order.payment_method == "Card"
    assert order.tax_rate == Decimal("0.05")
    assert order.tax_amount == Decimal("50.00")
    assert order.original_total_amount == Decimal("1050.00")
    assert order.discount_amount == Decimal("105.00")
    assert order.total_amount == Decimal("945.00")


def test_discount_reapplied_after_payment_change_uses_new_tax(order):
    financials.apply_adjustment(order, DiscountType.PERCENTAGE, Decimal("10"))
    financials.change_payment_totals(order, "Card", Decimal("0.05"))

    financials.apply_adjustment(order, DiscountType.PERCENTAGE, Decimal("10"))

    assert order.total_amount == Decimal("945.00")


def test_change_payment_method_keeps_fixed_discount(order):
    financials.apply_adjustment(order, DiscountType.AMOUNT, Decimal("100"))

    financials.change_payment_totals(order, "Card", Decimal("0.05"))

    assert order.discount_amount == Decimal("100.00")
    assert order.original_total_amount == Decimal("1050.00")
    assert order.total_amount == Decimal("950.00")


def test_complementary_order_stays_free_after_payment_change(order):
    financials.change_payment_totals(order, "Card", Decimal("0.05"))
    financials.apply_adjustment(order, is_complementary=True, reason="staff meal")

    financials.change_payment_totals(order, "Cash", Decimal("0.16"))

    assert order.is_complementary
    assert order.total_amount == Decimal("0.00")
    assert order.discount_amount == Decimal("1160.00")
    assert order.original_total_amount == Decimal("1160.00")


def test_change_payment_method_without_adjustment_sets_no_baseline(order):
    financials.change_payment_totals(order, "Card", Decimal("0.05"))

    assert order.total_amount == Decimal("1050.00")
    assert order.original_total_amount is None


def test_complementary_order_stays_free_after_adding_units(order):
    financials.apply_adjustment(order, is_complementary=True)

    financials.add_units_totals(order, [priced_unit("u2", "500")])

    assert order.total_amount == Decimal("0.00")
    assert order.discount_amount == Decimal("1740.00")


def test_percentage_discount_follows_added_units(order):
    financials.apply_adjustment(order, DiscountType.PERCENTAGE, Decimal("10"))

    financials.add_units_totals(order, [priced_unit("u2", "500")])

    assert order.original_total_amount == Decimal("1740.00")
    assert order.discount_amount == Decimal("174.00")
    assert order.total_amount == Decimal("1566.00")


def test_money_rounds_half_up():
    assert financials.money(Decimal("0.005")) == Decimal("0.01")
    assert financials.money(Decimal("2.675")) == Decimal("2.68")
