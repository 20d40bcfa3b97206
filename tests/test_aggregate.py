from datetime import datetime, timezone
from decimal import Decimal

import pytest

from kitchenflow.core.exceptions import NotFound, PreconditionFailed
from kitchenflow.services.fulfillment.aggregate import FulfillmentUnit, Order


def unit(unit_id, parent=None, station="pizza", container=False):
    return FulfillmentUnit(
        unit_id=unit_id,
        catalog_id=f"C-{unit_id}",
        name=unit_id,
        quantity=1,
        price=Decimal("0") if parent else Decimal("100"),
        base_price=Decimal("0") if parent else Decimal("100"),
        station_id=None if container else station,
        is_component=parent is not None,
        parent_unit_id=parent,
        is_deal_container=container,
    )


def make_order(units=()):
    return Order(
        id="o-1",
        order_number="CHZ-000001",
        payment_method="Cash",
        tax_rate=Decimal("0.16"),
        order_date=datetime(2026, 1, 1, tzinfo=timezone.utc),
        units=units,
    )


def test_remove_parent_cascades_to_its_components_only():
    order = make_order([
        unit("deal-a", container=True),
        unit("a1", parent="deal-a"),
        unit("a2", parent="deal-a"),
        unit("deal-b", container=True),
        unit("b1", parent="deal-b"),
        unit("solo"),
    ])

    removed = order.remove_unit("deal-a")

    assert [u.unit_id for u in removed] == ["deal-a", "a1", "a2"]
    assert [u.unit_id for u in order] == ["deal-b", "b1", "solo"]
    assert order.children_of("deal-b")[0].unit_id == "b1"


def test_remove_component_detaches_it_from_parent():
    order = make_order([unit("deal", container=True), unit("c1", parent="deal"), unit("c2", parent="deal")])

    order.remove_unit("c1")

    assert [u.unit_id for u in order.children_of("deal")] == ["c2"]


def test_component_must_reference_parent_in_order():
    order = make_order([unit("solo")])

    with pytest.raises(PreconditionFailed) as exc:
        order.append_units([unit("x1"), unit("c1", parent="missing")])

    assert exc.value.code == "orphan_component"
    # batch rejected as a whole
    assert not order.has_unit("x1")


def test_duplicate_unit_id_is_rejected():
    order = make_order([unit("solo")])
    with pytest.raises(PreconditionFailed):
        order.append_units([unit("solo")])


def test_physical_units_and_station_views():
    order = make_order([
        unit("deal", container=True),
        unit("p1", parent="deal", station="pizza"),
        unit("d1", parent="deal", station="bar"),
        unit("p2", station="pizza"),
    ])

    assert [u.unit_id for u in order.physical_units()] == ["p1", "d1", "p2"]
    assert [u.unit_id for u in order.units_for_station("pizza")] == ["p1", "p2"]
    assert order.dispatched_count == 0


def test_unknown_unit_is_not_found():
    with pytest.raises(NotFound):
        make_order().get_unit("nope")
