"""
SQL Order Repository

Persists the order aggregate in the ``orders`` / ``order_units`` tables
through async SQLAlchemy. A save runs in one transaction:
    1. Lock the order row (SELECT ... FOR UPDATE where supported)
    2. Compare the stored version with the one the aggregate was loaded at
    3. Rewrite header and units, bump the version, commit

The version column is also the mapper's version_id_col, so a racing
writer that slips past the row lock is still caught by the guarded UPDATE.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from kitchenflow.core.exceptions import ConcurrentModification, NotFound, PreconditionFailed
from kitchenflow.models import OrderRecord, OrderStatus, OrderUnitRecord
from kitchenflow.services.fulfillment.aggregate import FulfillmentUnit, Order
from kitchenflow.services.repository.base import BaseOrderRepository

logger = logging.getLogger(__name__)

# Header columns copied 1:1 between OrderRecord and Order
HEADER_FIELDS = (
    "order_number",
    "branch_id",
    "order_type",
    "table_id",
    "placed_by",
    "instructions",
    "status",
    "cancellation_reason",
    "completed_by",
    "payment_method",
    "subtotal",
    "tax_rate",
    "tax_amount",
    "total_amount",
    "original_total_amount",
    "discount_type",
    "discount_value",
    "discount_amount",
    "is_complementary",
    "complementary_reason",
    "order_date",
    "completion_date",
)

# Unit columns copied 1:1 (the unit id is ``id`` on the row)
UNIT_FIELDS = (
    "catalog_id",
    "name",
    "quantity",
    "price",
    "base_price",
    "station_id",
    "is_component",
    "parent_unit_id",
    "is_deal_container",
    "deal_name",
    "is_prepared",
    "is_dispatched",
    "prepared_at",
    "dispatched_at",
    "selected_addons",
    "selected_variant",
    "instructions",
)


# =============================================================================
# ROW <-> AGGREGATE MAPPING
# =============================================================================

def _to_aggregate(record: OrderRecord) -> Order:
    units = [
        FulfillmentUnit(
            unit_id=row.id,
            **{name: getattr(row, name) for name in UNIT_FIELDS},
        )
        for row in record.units
    ]
    for unit in units:
        unit.selected_addons = list(unit.selected_addons or [])
    return Order(
        id=record.id,
        version=record.version,
        units=units,
        **{name: getattr(record, name) for name in HEADER_FIELDS},
    )


def _copy_header(record: OrderRecord, order: Order) -> None:
    for name in HEADER_FIELDS:
        setattr(record, name, getattr(order, name))


def _copy_unit(row: OrderUnitRecord, unit: FulfillmentUnit, position: int) -> None:
    row.position = position
    for name in UNIT_FIELDS:
        setattr(row, name, getattr(unit, name))


class SqlOrderRepository(BaseOrderRepository):
    """
    Order storage on any async SQLAlchemy database.

    Attributes:
        session_maker: Factory for the sessions each call runs in
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker
        logger.info("SqlOrderRepository initialized")

    @property
    def provider_name(self) -> str:
        return "sql"

    async def add(self, order: Order) -> Order:
        record = OrderRecord(id=order.id, version=1)
        _copy_header(record, order)
        for position, unit in enumerate(order.units):
            row = OrderUnitRecord(id=unit.unit_id)
            _copy_unit(row, unit, position)
            record.units.append(row)

        async with self.session_maker() as session:
            session.add(record)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise PreconditionFailed(f"Order {order.id!r} already exists", code="duplicate_order")

        order.version = 1
        return order

    async def get(self, order_id: str) -> Order:
        async with self.session_maker() as session:
            record = await session.get(OrderRecord, order_id)
            if record is None:
                raise NotFound(f"Order {order_id!r} not found", code="order_not_found")
            return _to_aggregate(record)

    async def save(self, order: Order) -> Order:
        async with self.session_maker() as session:
            result = await session.execute(
                select(OrderRecord).where(OrderRecord.id == order.id).with_for_update()
            )
            record = result.scalar_one_or_none()
            if record is None:
                raise NotFound(f"Order {order.id!r} not found", code="order_not_found")
            if record.version != order.version:
                raise ConcurrentModification(
                    f"Order #{order.order_number} was modified concurrently "
                    f"(expected version {order.version}, found {record.version})"
                )

            _copy_header(record, order)
            record.version = order.version + 1

            existing = {row.id: row for row in record.units}
            for position, unit in enumerate(order.units):
                row = existing.pop(unit.unit_id, None)
                if row is None:
                    row = OrderUnitRecord(id=unit.unit_id)
                    record.units.append(row)
                _copy_unit(row, unit, position)
            for row in existing.values():
                record.units.remove(row)

            try:
                await session.commit()
            except StaleDataError:
                await session.rollback()
                raise ConcurrentModification(
                    f"Order #{order.order_number} was modified concurrently"
                )

        order.version += 1
        return order

    async def list(self, statuses: Optional[Iterable[OrderStatus]] = None) -> list[Order]:
        query = select(OrderRecord).order_by(OrderRecord.order_date)
        if statuses is not None:
            query = query.where(OrderRecord.status.in_(list(statuses)))

        async with self.session_maker() as session:
            result = await session.execute(query)
            return [_to_aggregate(record) for record in result.scalars().all()]

    async def health_check(self) -> bool:
        try:
            async with self.session_maker() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False
