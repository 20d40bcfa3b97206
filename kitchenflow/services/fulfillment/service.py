"""
Order Fulfillment Service

Entry point for every order operation used by kiosks, cashiers and the
kitchen display terminals. Each mutation runs the same cycle:

    1. Acquire the order's lock
    2. Load a private copy of the aggregate
    3. Apply the operation and re-derive the status
    4. Save (version checked), release the lock
    5. Publish the resulting events

Anything raised before step 4 completes leaves the stored order untouched.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from functools import lru_cache
from typing import Callable, Iterable, Optional, Sequence

from kitchenflow.core.config import Settings, get_settings
from kitchenflow.models import DiscountType, OrderStatus
from kitchenflow.schemas import LineItemCreate, OrderCreate
from kitchenflow.services.catalog import BaseCatalogService, get_catalog_service
from kitchenflow.services.events import (
    ORDER_COMPLETED,
    ORDER_PLACED,
    ORDER_STATUS_CHANGED,
    BaseEventPublisher,
    OrderEvent,
    get_event_publisher,
)
from kitchenflow.services.fulfillment import financials, tracker
from kitchenflow.services.fulfillment.aggregate import FulfillmentUnit, Order
from kitchenflow.services.fulfillment.decomposition import DecompositionEngine
from kitchenflow.services.fulfillment.locks import OrderLockRegistry
from kitchenflow.services.fulfillment.status import (
    DISPATCH_STATUSES,
    KDS_STATUSES,
    ensure_mutable,
    refresh_status,
    transition,
)
from kitchenflow.services.payment import BasePaymentMethodService, get_payment_method_service
from kitchenflow.services.repository import BaseOrderRepository, get_order_repository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class QueueEntry:
    """An order together with the units one screen still has to act on."""
    order: Order
    units: list[FulfillmentUnit]


class OrderFulfillmentService:
    """
    Order operations with per-order serialization.

    Attributes:
        repository: Whole-aggregate order storage
        catalog: Menu lookup used for decomposition
        payment_methods: Payment method -> tax rate lookup
        publisher: Receives events after each committed operation
        locks: Per-order lock registry
        clock: Returns the current time (UTC)
    """

    def __init__(
        self,
        repository: BaseOrderRepository,
        catalog: BaseCatalogService,
        payment_methods: BasePaymentMethodService,
        publisher: BaseEventPublisher,
        locks: Optional[OrderLockRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[Settings] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.repository = repository
        self.catalog = catalog
        self.payment_methods = payment_methods
        self.publisher = publisher
        self.locks = locks or OrderLockRegistry()
        self.clock = clock or _utcnow
        self.settings = settings or get_settings()
        self.id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self.decomposer = DecompositionEngine(catalog, id_factory=self.id_factory)

    # =========================================================================
    # PLACEMENT
    # =========================================================================

    async def create_order(self, request: OrderCreate) -> Order:
        """
        Decompose the cart and store a new Pending order.

        Raises:
            NotFound: Unknown payment method
            CatalogInconsistency: None of the lines could be resolved
            PreconditionFailed: Unknown variant or ineligible addon
        """
        method = self.payment_methods.resolve(
            request.payment_method or self.settings.default_payment_method
        )
        units = self.decomposer.decompose_all(request.lines)
        now = self.clock()

        order = Order(
            id=self.id_factory(),
            order_number=self._order_number(now),
            payment_method=method.name,
            tax_rate=method.tax_rate,
            order_date=now,
            order_type=request.order_type,
            branch_id=request.branch_id,
            table_id=request.table_id,
            placed_by=request.placed_by,
            instructions=request.instructions,
            units=units,
        )
        financials.open_order_totals(order)
        await self.repository.add(order)

        logger.info(
            f"Placed order #{order.order_number}: {len(order)} units, "
            f"total {order.total_amount} ({order.payment_method})"
        )
        await self._publish([
            OrderEvent(
                name=ORDER_PLACED,
                order_id=order.id,
                order_number=order.order_number,
                payload={
                    "order_type": order.order_type.value,
                    "branch_id": order.branch_id,
                    "total_amount": str(order.total_amount),
                },
                occurred_at=now,
            )
        ])
        return order

    def _order_number(self, now: datetime) -> str:
        millis = str(int(now.timestamp() * 1000))
        return f"{self.settings.order_prefix}-{millis[-6:]}"

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def add_units(self, order_id: str, lines: Sequence[LineItemCreate]) -> Order:
        """Append newly purchased lines; a Ready order drops back to Partial Ready."""

        def operation(order: Order, now: datetime) -> None:
            ensure_mutable(order)
            units = self.decomposer.decompose_all(lines)
            order.append_units(units)
            increase = financials.add_units_totals(order, units)
            logger.info(
                f"Added {len(units)} units to order #{order.order_number} "
                f"(subtotal +{increase}, total {order.total_amount})"
            )

        return await self._mutate(order_id, operation)

    async def toggle_items_prepared(self, order_id: str, unit_ids: Sequence[str]) -> Order:
        """Flip the prepared flag of the given units (station terminal)."""

        def operation(order: Order, now: datetime) -> None:
            tracker.toggle_items_prepared(order, unit_ids, now)

        return await self._mutate(order_id, operation)

    async def dispatch_unit(self, order_id: str, unit_id: str) -> Order:
        """Hand one unit to assembly; safe to retry."""

        def operation(order: Order, now: datetime) -> None:
            tracker.dispatch_unit(order, unit_id, now)

        return await self._mutate(order_id, operation)

    async def set_status(
        self,
        order_id: str,
        status: OrderStatus,
        reason: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Order:
        """Explicit cashier transition to Preparing, Completed or Cancelled."""

        def operation(order: Order, now: datetime) -> None:
            if transition(order, status, now, reason=reason, actor=actor):
                extra = f" ({reason})" if reason else ""
                logger.info(f"Order #{order.order_number} set to {status.value}{extra}")

        return await self._mutate(order_id, operation)

    async def apply_adjustment(
        self,
        order_id: str,
        discount_type: Optional[DiscountType] = None,
        discount_value: Optional[Decimal] = None,
        is_complementary: bool = False,
        reason: Optional[str] = None,
    ) -> Order:
        """Discount or complementary, recomputed from the frozen baseline."""
        financials.validate_adjustment(discount_type, discount_value, is_complementary)

        def operation(order: Order, now: datetime) -> None:
            ensure_mutable(order)
            financials.apply_adjustment(
                order,
                discount_type=discount_type,
                discount_value=discount_value,
                is_complementary=is_complementary,
                reason=reason,
            )
            if is_complementary:
                logger.info(f"Order #{order.order_number} marked complementary")
            else:
                logger.info(
                    f"Applied {discount_type.value} discount {discount_value} to "
                    f"order #{order.order_number} (-{order.discount_amount}, "
                    f"total {order.total_amount})"
                )

        return await self._mutate(order_id, operation)

    async def change_payment_method(self, order_id: str, payment_method: str) -> Order:
        """Re-tax an open order at the new method's rate."""
        method = self.payment_methods.resolve(payment_method)

        def operation(order: Order, now: datetime) -> None:
            ensure_mutable(order)
            previous = order.payment_method
            financials.change_payment_totals(order, method.name, method.tax_rate)
            logger.info(
                f"Order #{order.order_number} payment changed {previous} -> {method.name} "
                f"(tax {order.tax_amount}, total {order.total_amount})"
            )

        return await self._mutate(order_id, operation)

    async def _mutate(self, order_id: str, operation: Callable[[Order, datetime], None]) -> Order:
        async with self.locks.hold(order_id):
            order = await self.repository.get(order_id)
            now = self.clock()
            previous_status = order.status

            operation(order, now)
            derived_from = refresh_status(order, now)
            if derived_from is not None:
                logger.info(
                    f"Order #{order.order_number} status "
                    f"{derived_from.value} -> {order.status.value}"
                )

            await self.repository.save(order)

        await self._publish(self._status_events(order, previous_status, now))
        return order

    # =========================================================================
    # EVENTS
    # =========================================================================

    def _status_events(
        self,
        order: Order,
        previous_status: OrderStatus,
        now: datetime,
    ) -> list[OrderEvent]:
        if order.status == previous_status:
            return []

        events = [
            OrderEvent(
                name=ORDER_STATUS_CHANGED,
                order_id=order.id,
                order_number=order.order_number,
                payload={"from": previous_status.value, "to": order.status.value},
                occurred_at=now,
            )
        ]
        if order.status == OrderStatus.COMPLETED:
            events.append(
                OrderEvent(
                    name=ORDER_COMPLETED,
                    order_id=order.id,
                    order_number=order.order_number,
                    payload={
                        "cashier_id": order.completed_by,
                        "payment_method": order.payment_method,
                        "total_amount": str(order.total_amount),
                    },
                    occurred_at=now,
                )
            )
        return events

    async def _publish(self, events: Iterable[OrderEvent]) -> None:
        # The operation is already committed; delivery problems must not undo it
        for event in events:
            try:
                await self.publisher.publish(event)
            except Exception:
                logger.exception(f"Failed to publish {event.name} for order #{event.order_number}")

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_order(self, order_id: str) -> Order:
        return await self.repository.get(order_id)

    async def list_orders(self, status: Optional[OrderStatus] = None) -> list[Order]:
        return await self.repository.list([status] if status is not None else None)

    async def station_queue(self, station_id: str) -> list[QueueEntry]:
        """Active orders with undispatched units for one station, oldest first."""
        entries = []
        for order in await self.repository.list(KDS_STATUSES):
            units = [u for u in order.units_for_station(station_id) if not u.is_dispatched]
            if units:
                entries.append(QueueEntry(order, units))
        return entries

    async def dispatch_queue(self) -> list[QueueEntry]:
        """Orders in progress with physical units still to dispatch, oldest first."""
        entries = []
        for order in await self.repository.list(DISPATCH_STATUSES):
            units = [u for u in order.physical_units() if not u.is_dispatched]
            if units:
                entries.append(QueueEntry(order, units))
        return entries


# =============================================================================
# FACTORY
# =============================================================================

@lru_cache()
def get_fulfillment_service() -> OrderFulfillmentService:
    """Service wired to the configured repository, catalog and publisher."""
    service = OrderFulfillmentService(
        repository=get_order_repository(),
        catalog=get_catalog_service(),
        payment_methods=get_payment_method_service(),
        publisher=get_event_publisher(),
    )
    logger.info(
        f"Fulfillment Service: repository={service.repository.provider_name}, "
        f"events={service.publisher.provider_name}"
    )
    return service


def reset_fulfillment_service() -> None:
    """Clear the cached service instance."""
    get_fulfillment_service.cache_clear()
    logger.debug("Fulfillment service cache cleared")
