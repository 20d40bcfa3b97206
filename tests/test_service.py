from decimal import Decimal

import pytest

from conftest import cart, line
from kitchenflow.core.exceptions import (
    CatalogInconsistency,
    InvalidAdjustment,
    NotFound,
    PreconditionFailed,
)
from kitchenflow.models import DiscountType, OrderStatus, OrderType
from kitchenflow.services.catalog import DEFAULT_MENU, CatalogEntry, DealComponent, StaticCatalogService
from kitchenflow.services.events import ORDER_COMPLETED, ORDER_PLACED, ORDER_STATUS_CHANGED
from kitchenflow.services.fulfillment.service import OrderFulfillmentService


async def ready_order(service, *lines):
    """Place an order and push every unit through the kitchen."""
    order = await service.create_order(cart(*lines))
    order = await service.set_status(order.id, OrderStatus.PREPARING)
    station_units = [u.unit_id for u in order.physical_units() if u.station_id]
    if station_units:
        order = await service.toggle_items_prepared(order.id, station_units)
    for unit in order.physical_units():
        order = await service.dispatch_unit(order.id, unit.unit_id)
    return order


# =============================================================================
# PLACEMENT
# =============================================================================

async def test_create_order_decomposes_and_totals(service, repository, clock):
    order = await service.create_order(cart(
        line("D-00001", quantity=2),
        order_type=OrderType.DINE_IN,
        table_id="T-4",
    ))

    assert order.status == OrderStatus.PENDING
    assert len(order) == 7
    assert order.order_type == OrderType.DINE_IN
    assert order.payment_method == "Cash"
    assert order.subtotal == Decimal("5198.00")
    assert order.tax_amount == Decimal("831.68")
    assert order.total_amount == Decimal("6029.68")
    assert order.order_date == clock.now
    assert order.order_number.startswith("CHZ-")
    assert len(order.order_number) == len("CHZ-") + 6

    stored = await repository.get(order.id)
    assert stored.version == 1
    assert [u.unit_id for u in stored] == [u.unit_id for u in order]


async def test_create_order_uses_payment_method_tax_rate(service):
    order = await service.create_order(cart(line("I-PA-001"), payment_method="card"))

    assert order.payment_method == "Card"
    assert order.tax_rate == Decimal("0.05")
    assert order.total_amount == Decimal("934.50")


async def test_create_order_rejects_unknown_payment_method(service, repository):
    with pytest.raises(NotFound):
        await service.create_order(cart(line("I-PA-001"), payment_method="Crypto"))
    assert await repository.list() == []


async def test_create_order_with_only_unknown_items_fails(service, repository):
    with pytest.raises(CatalogInconsistency):
        await service.create_order(cart(line("I-NOPE")))
    assert await repository.list() == []


async def test_create_order_publishes_placed_event(service, publisher):
    order = await service.create_order(cart(line("I-PA-001")))

    assert publisher.names() == [ORDER_PLACED]
    assert publisher.events[0].order_id == order.id


# =============================================================================
# KITCHEN FLOW
# =============================================================================

async def test_dispatching_everything_makes_order_ready(service, publisher, clock):
    order = await ready_order(service, line("I-PA-001"), line("I-C-001"), line("I-X-001"))

    assert order.status == OrderStatus.READY
    assert order.completion_date == clock.now
    changes = [e.payload for e in publisher.events if e.name == ORDER_STATUS_CHANGED]
    assert changes == [
        {"from": "Pending", "to": "Preparing"},
        {"from": "Preparing", "to": "Partial Ready"},
        {"from": "Partial Ready", "to": "Ready"},
    ]


async def test_add_units_to_ready_order_regresses_to_partial_ready(service, clock):
    order = await ready_order(service, line("I-PA-001"))
    assert order.status == OrderStatus.READY
    clock.advance()

    order = await service.add_units(order.id, [line("I-DS-001")])

    assert order.status == OrderStatus.PARTIAL_READY
    assert order.completion_date is None
    assert len(order) == 2
    assert order.subtotal == Decimal("1240.00")
    assert order.total_amount == Decimal("1438.40")
    assert order.original_total_amount == Decimal("1438.40")


async def test_add_units_keeps_pending_order_pending(service):
    order = await service.create_order(cart(line("I-PA-001")))

    order = await service.add_units(order.id, [line("D-00002")])

    assert order.status == OrderStatus.PENDING
    assert len(order) == 5


async def test_failed_operation_leaves_stored_order_untouched(service, repository):
    order = await service.create_order(cart(line("I-PA-001"), line("I-X-001")))
    pasta, water = order.units

    with pytest.raises(PreconditionFailed):
        await service.toggle_items_prepared(order.id, [pasta.unit_id, water.unit_id])

    stored = await repository.get(order.id)
    assert stored.version == 1
    assert not stored.get_unit(pasta.unit_id).is_prepared


@pytest.fixture
def ghost_deal_service(repository, payment_methods, publisher, clock, settings):
    catalog = StaticCatalogService([
        *DEFAULT_MENU,
        CatalogEntry(
            id="D-X", name="Ghost Combo", price=Decimal("800"),
            deal_components=(DealComponent("I-GONE", 1),),
        ),
    ])
    return OrderFulfillmentService(
        repository=repository,
        catalog=catalog,
        payment_methods=payment_methods,
        publisher=publisher,
        clock=clock,
        settings=settings,
    )


async def test_deal_with_no_known_dish_is_not_billed(ghost_deal_service, repository):
    with pytest.raises(CatalogInconsistency):
        await ghost_deal_service.create_order(cart(line("D-X")))
    assert await repository.list() == []

    order = await ghost_deal_service.create_order(cart(line("D-X"), line("I-PA-001")))
    assert [u.catalog_id for u in order] == ["I-PA-001"]
    assert order.subtotal == Decimal("890.00")


async def test_ready_order_rejects_lines_with_nothing_to_serve(ghost_deal_service, repository):
    order = await ready_order(ghost_deal_service, line("I-X-001"))

    with pytest.raises(CatalogInconsistency):
        await ghost_deal_service.add_units(order.id, [line("D-X")])

    stored = await repository.get(order.id)
    assert stored.status == OrderStatus.READY
    assert len(stored) == 1


async def test_order_without_physical_units_can_still_be_completed(service, repository):
    order = await service.create_order(cart(line("D-00002")))
    stored = await repository.get(order.id)
    stored.remove_unit(stored.units[0].unit_id)
    await repository.save(stored)

    order = await service.set_status(order.id, OrderStatus.PREPARING)
    assert order.status == OrderStatus.READY

    order = await service.set_status(order.id, OrderStatus.COMPLETED, actor="cashier-3")
    assert order.status == OrderStatus.COMPLETED


async def test_unknown_order_is_not_found(service):
    with pytest.raises(NotFound):
        await service.dispatch_unit("missing", "u1")


# =============================================================================
# CASHIER
# =============================================================================

async def test_completion_publishes_settlement_event(service, publisher):
    order = await ready_order(service, line("I-X-001"))

    order = await service.set_status(order.id, OrderStatus.COMPLETED, actor="cashier-7")

    assert order.status == OrderStatus.COMPLETED
    assert order.completed_by == "cashier-7"
    completed = [e for e in publisher.events if e.name == ORDER_COMPLETED]
    assert len(completed) == 1
    assert completed[0].payload == {
        "cashier_id": "cashier-7",
        "payment_method": "Cash",
        "total_amount": "116.00",
    }


@pytest.mark.parametrize("status", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
async def test_terminal_order_rejects_every_mutation(service, status):
    order = await ready_order(service, line("I-X-001"))
    order = await service.set_status(order.id, status)

    with pytest.raises(PreconditionFailed):
        await service.add_units(order.id, [line("I-PA-001")])
    with pytest.raises(PreconditionFailed):
        await service.apply_adjustment(order.id, DiscountType.AMOUNT, Decimal("10"))
    with pytest.raises(PreconditionFailed):
        await service.change_payment_method(order.id, "Card")
    with pytest.raises(PreconditionFailed):
        await service.set_status(order.id, OrderStatus.PREPARING)


async def test_discount_then_payment_change(service):
    order = await service.create_order(cart(line("I-PA-001")))

    order = await service.apply_adjustment(order.id, DiscountType.PERCENTAGE, Decimal("10"))
    assert order.total_amount == Decimal("929.16")
    assert order.original_total_amount == Decimal("1032.40")

    order = await service.change_payment_method(order.id, "Card")
    assert order.tax_amount == Decimal("44.50")
    assert order.original_total_amount == Decimal("934.50")
    assert order.discount_amount == Decimal("93.45")
    assert order.total_amount == Decimal("841.05")


async def test_conflicting_adjustment_is_rejected_before_loading(service):
    with pytest.raises(InvalidAdjustment):
        await service.apply_adjustment(
            "missing", DiscountType.AMOUNT, Decimal("10"), is_complementary=True
        )


async def test_status_events_only_when_status_changes(service, publisher):
    order = await service.create_order(cart(line("I-PA-001")))
    await service.set_status(order.id, OrderStatus.PREPARING)
    await service.set_status(order.id, OrderStatus.PREPARING)

    assert publisher.names() == [ORDER_PLACED, ORDER_STATUS_CHANGED]


# =============================================================================
# KDS VIEWS
# =============================================================================

async def test_station_queue_lists_undispatched_station_units(service):
    first = await service.create_order(cart(line("D-00001")))
    second = await service.create_order(cart(line("I-DS-001"), line("I-PA-001")))

    pizza = await service.station_queue("pizza")
    bar = await service.station_queue("bar")

    assert [e.order.id for e in pizza] == [first.id]
    assert len(pizza[0].units) == 2
    assert [e.order.id for e in bar] == [first.id, second.id]


async def test_dispatch_queue_lists_orders_in_progress(service):
    waiting = await service.create_order(cart(line("I-PA-001")))
    started = await service.create_order(cart(line("I-PA-001"), line("I-X-001")))
    await service.set_status(started.id, OrderStatus.PREPARING)

    entries = await service.dispatch_queue()

    assert [e.order.id for e in entries] == [started.id]
    assert waiting.id not in {e.order.id for e in entries}
    assert len(entries[0].units) == 2
