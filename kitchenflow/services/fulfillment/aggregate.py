"""
Order Aggregate

The in-memory shape of an order as the fulfillment engine sees it.
Units live in an arena keyed by unit id (insertion ordered) with a
secondary index from a deal's parent unit to its component units, so any
station can address any unit directly without walking a tree.

Author: Khalil Bannouri
Version: 1.0.0
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Iterator, Optional

from kitchenflow.core.exceptions import NotFound, PreconditionFailed
from kitchenflow.models import DiscountType, OrderStatus, OrderType


@dataclass
class FulfillmentUnit:
    """
    One independently trackable item of an order.

    Component units are spawned by deal expansion; they carry no price
    of their own and point back at the deal's parent unit.
    """
    unit_id: str
    catalog_id: str
    name: str
    quantity: int
    price: Decimal
    base_price: Decimal
    station_id: Optional[str] = None
    is_component: bool = False
    parent_unit_id: Optional[str] = None
    is_deal_container: bool = False
    deal_name: Optional[str] = None
    is_prepared: bool = False
    is_dispatched: bool = False
    prepared_at: Optional[datetime] = None
    dispatched_at: Optional[datetime] = None
    selected_addons: list[dict[str, Any]] = field(default_factory=list)
    selected_variant: Optional[dict[str, Any]] = None
    instructions: Optional[str] = None

    @property
    def is_physical(self) -> bool:
        """Deal containers are never prepared or dispatched themselves."""
        return not self.is_deal_container

    @property
    def is_dispatch_only(self) -> bool:
        return self.is_physical and self.station_id is None

    @property
    def can_dispatch(self) -> bool:
        return self.is_physical and (self.station_id is None or self.is_prepared)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class Order:
    """
    Order aggregate: header fields plus the unit arena.

    Persistence reads and writes it whole; the engine mutates a private
    copy and the repository stores it only once the operation succeeded.
    """

    def __init__(
        self,
        id: str,
        order_number: str,
        payment_method: str,
        tax_rate: Decimal,
        order_date: datetime,
        status: OrderStatus = OrderStatus.PENDING,
        order_type: OrderType = OrderType.TAKE_AWAY,
        branch_id: Optional[str] = None,
        table_id: Optional[str] = None,
        placed_by: Optional[str] = None,
        instructions: Optional[str] = None,
        subtotal: Decimal = Decimal("0.00"),
        tax_amount: Decimal = Decimal("0.00"),
        total_amount: Decimal = Decimal("0.00"),
        original_total_amount: Optional[Decimal] = None,
        discount_type: Optional[DiscountType] = None,
        discount_value: Optional[Decimal] = None,
        discount_amount: Optional[Decimal] = None,
        is_complementary: bool = False,
        complementary_reason: Optional[str] = None,
        cancellation_reason: Optional[str] = None,
        completed_by: Optional[str] = None,
        completion_date: Optional[datetime] = None,
        version: int = 0,
        units: Iterable[FulfillmentUnit] = (),
    ):
        self.id = id
        self.order_number = order_number
        self.payment_method = payment_method
        self.tax_rate = tax_rate
        self.order_date = order_date
        self.status = status
        self.order_type = order_type
        self.branch_id = branch_id
        self.table_id = table_id
        self.placed_by = placed_by
        self.instructions = instructions
        self.subtotal = subtotal
        self.tax_amount = tax_amount
        self.total_amount = total_amount
        self.original_total_amount = original_total_amount
        self.discount_type = discount_type
        self.discount_value = discount_value
        self.discount_amount = discount_amount
        self.is_complementary = is_complementary
        self.complementary_reason = complementary_reason
        self.cancellation_reason = cancellation_reason
        self.completed_by = completed_by
        self.completion_date = completion_date
        self.version = version

        self._units: dict[str, FulfillmentUnit] = {}
        self._children: dict[str, list[str]] = {}
        self.append_units(units)

    def __repr__(self):
        return f"<Order #{self.order_number} - {self.status.value} - {len(self._units)} units>"

    # =========================================================================
    # UNIT ARENA
    # =========================================================================

    @property
    def units(self) -> list[FulfillmentUnit]:
        return list(self._units.values())

    def __iter__(self) -> Iterator[FulfillmentUnit]:
        return iter(self._units.values())

    def __len__(self) -> int:
        return len(self._units)

    def has_unit(self, unit_id: str) -> bool:
        return unit_id in self._units

    def get_unit(self, unit_id: str) -> FulfillmentUnit:
        try:
            return self._units[unit_id]
        except KeyError:
            raise NotFound(
                f"Unit {unit_id!r} is not part of order #{self.order_number}",
                code="unit_not_found",
            )

    def children_of(self, unit_id: str) -> list[FulfillmentUnit]:
        return [self._units[child] for child in self._children.get(unit_id, [])]

    def append_units(self, units: Iterable[FulfillmentUnit]) -> None:
        """
        Append units in order.

        A component must reference a unit already in the order or earlier
        in the same batch; the whole batch is validated before any unit
        is added.
        """
        batch = list(units)
        seen = set(self._units)
        for unit in batch:
            if unit.unit_id in seen:
                raise PreconditionFailed(
                    f"Duplicate unit id {unit.unit_id!r}", code="duplicate_unit"
                )
            if unit.is_component and unit.parent_unit_id not in seen:
                raise PreconditionFailed(
                    f"Component {unit.unit_id!r} references unknown parent "
                    f"{unit.parent_unit_id!r}",
                    code="orphan_component",
                )
            seen.add(unit.unit_id)

        for unit in batch:
            self._units[unit.unit_id] = unit
            if unit.is_component:
                self._children.setdefault(unit.parent_unit_id, []).append(unit.unit_id)

    def remove_unit(self, unit_id: str) -> list[FulfillmentUnit]:
        """
        Remove a unit and, transitively, every unit owned by it.

        Returns:
            The removed units, the requested one first
        """
        self.get_unit(unit_id)
        removed = []
        pending = [unit_id]
        while pending:
            current = pending.pop(0)
            unit = self._units.pop(current)
            removed.append(unit)
            pending.extend(self._children.pop(current, []))
            if unit.parent_unit_id in self._children:
                siblings = self._children[unit.parent_unit_id]
                if current in siblings:
                    siblings.remove(current)
        return removed

    # =========================================================================
    # VIEWS
    # =========================================================================

    def physical_units(self) -> list[FulfillmentUnit]:
        return [unit for unit in self._units.values() if unit.is_physical]

    def units_for_station(self, station_id: str) -> list[FulfillmentUnit]:
        return [
            unit for unit in self._units.values()
            if unit.station_id == station_id and unit.is_physical
        ]

    @property
    def dispatched_count(self) -> int:
        return sum(1 for unit in self.physical_units() if unit.is_dispatched)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
