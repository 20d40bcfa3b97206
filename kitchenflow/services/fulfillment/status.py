"""
Order Status Aggregator

Order status workflow:
    Pending -> Preparing -> {Partial Ready <-> Ready} -> Completed
    Cancelled from any non-terminal status

Ready / Partial Ready are derived from unit dispatch state, which has
many concurrent writers (the stations). Preparing, Completed and
Cancelled have exactly one authoritative actor (the cashier) and are
explicit transitions.

Author: Khalil Bannouri
Version: 1.0.0
"""

from datetime import datetime
from typing import Optional

from kitchenflow.core.exceptions import PreconditionFailed
from kitchenflow.models import OrderStatus
from kitchenflow.services.fulfillment.aggregate import Order

# Statuses a kitchen station still works on
KDS_STATUSES = (OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.PARTIAL_READY)

# Statuses shown on the dispatch (assembly) screen
DISPATCH_STATUSES = (OrderStatus.PREPARING, OrderStatus.PARTIAL_READY)

# Explicit transition -> statuses it may start from
EXPLICIT_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.PREPARING: (OrderStatus.PENDING,),
    OrderStatus.COMPLETED: (OrderStatus.READY,),
    OrderStatus.CANCELLED: (
        OrderStatus.PENDING,
        OrderStatus.PREPARING,
        OrderStatus.PARTIAL_READY,
        OrderStatus.READY,
    ),
}


def ensure_mutable(order: Order) -> None:
    """
    Raises:
        PreconditionFailed: The order is Completed or Cancelled
    """
    if order.is_terminal:
        raise PreconditionFailed(
            f"Order #{order.order_number} is {order.status.value} and can no longer change",
            code="order_closed",
        )


def derive_status(order: Order) -> OrderStatus:
    """
    Status implied by the dispatch state of the physical units.

    All physical units dispatched -> Ready; some -> Partial Ready.
    With nothing dispatched the current explicit status stands. An order
    left without physical units has nothing to wait for once the kitchen
    has started it, so it is Ready from Preparing on.
    """
    if order.is_terminal:
        return order.status

    physical = order.physical_units()
    if not physical:
        if order.status == OrderStatus.PENDING:
            return order.status
        return OrderStatus.READY

    dispatched = sum(1 for unit in physical if unit.is_dispatched)
    if dispatched == 0:
        return order.status
    if dispatched == len(physical):
        return OrderStatus.READY
    return OrderStatus.PARTIAL_READY


def refresh_status(order: Order, now: datetime) -> Optional[OrderStatus]:
    """
    Store the derived status on the order.

    Reaching Ready stamps completion_date; leaving Ready clears it.

    Returns:
        The previous status when it changed, None otherwise
    """
    derived = derive_status(order)
    if derived == order.status:
        return None

    previous = order.status
    order.status = derived
    if derived == OrderStatus.READY:
        order.completion_date = now
    elif previous == OrderStatus.READY:
        order.completion_date = None
    return previous


def transition(
    order: Order,
    target: OrderStatus,
    now: datetime,
    reason: Optional[str] = None,
    actor: Optional[str] = None,
) -> bool:
    """
    Apply an explicit cashier transition.

    Returns:
        False when the order already has the target status

    Raises:
        PreconditionFailed: Terminal order, derived target, or a start
            status the transition does not allow
    """
    ensure_mutable(order)

    if target in (OrderStatus.READY, OrderStatus.PARTIAL_READY):
        raise PreconditionFailed(
            f"{target.value} is derived from the kitchen and cannot be set directly",
            code="derived_status",
        )
    if target not in EXPLICIT_TRANSITIONS:
        raise PreconditionFailed(
            f"Order #{order.order_number} cannot move back to {target.value}",
            code="invalid_transition",
        )
    if order.status == target:
        return False
    if order.status not in EXPLICIT_TRANSITIONS[target]:
        raise PreconditionFailed(
            f"Order #{order.order_number} cannot move from "
            f"{order.status.value} to {target.value}",
            code="invalid_transition",
        )

    order.status = target
    if target == OrderStatus.CANCELLED:
        order.cancellation_reason = reason
        order.completion_date = order.completion_date or now
    elif target == OrderStatus.COMPLETED:
        order.completed_by = actor
        order.completion_date = order.completion_date or now
    return True
