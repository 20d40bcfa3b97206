"""
SQLAlchemy Database Models

Order aggregates are persisted as one ``orders`` row plus its
``order_units`` rows, always read and written together:
- Flat unit list with a parent link for deal components
- Per-unit preparation and dispatch flags for the kitchen stations
- Financial fields including the frozen pre-discount baseline
- Version column used as the optimistic concurrency token

Author: Khalil Bannouri
Version: 1.0.0
"""

import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from kitchenflow.database import Base


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "Pending"
    PREPARING = "Preparing"
    PARTIAL_READY = "Partial Ready"
    READY = "Ready"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


class OrderType(str, enum.Enum):
    """Order type - Dine-In or Take-Away."""
    DINE_IN = "Dine-In"
    TAKE_AWAY = "Take-Away"


class DiscountType(str, enum.Enum):
    """How discount_value is interpreted."""
    PERCENTAGE = "percentage"
    AMOUNT = "amount"


class OrderRecord(Base):
    """
    Main Order table - one row per placed order.

    Tracks the order from kiosk placement to completion or cancellation.
    """
    __tablename__ = "orders"

    # Primary Key
    id = Column(String(64), primary_key=True)
    order_number = Column(String(32), nullable=False, index=True)

    # =========================================================================
    # PLACEMENT
    # =========================================================================
    branch_id = Column(String(64), nullable=True, index=True)
    order_type = Column(Enum(OrderType), default=OrderType.TAKE_AWAY, nullable=False)
    table_id = Column(String(64), nullable=True)
    placed_by = Column(String(100), nullable=True)
    instructions = Column(Text, nullable=True)

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )
    cancellation_reason = Column(Text, nullable=True)
    completed_by = Column(String(100), nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    payment_method = Column(String(50), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
    tax_rate = Column(Numeric(6, 4), nullable=False)
    tax_amount = Column(Numeric(12, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    original_total_amount = Column(Numeric(12, 2), nullable=True)

    # =========================================================================
    # ADJUSTMENTS
    # =========================================================================
    discount_type = Column(Enum(DiscountType), nullable=True)
    discount_value = Column(Numeric(12, 2), nullable=True)
    discount_amount = Column(Numeric(12, 2), nullable=True)
    is_complementary = Column(Boolean, default=False, nullable=False)
    complementary_reason = Column(Text, nullable=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    order_date = Column(DateTime(timezone=True), nullable=False)
    completion_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Optimistic concurrency token, set by the repository on every save
    version = Column(Integer, nullable=False)

    units = relationship(
        "OrderUnitRecord",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderUnitRecord.position",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version, "version_id_generator": False}

    def __repr__(self):
        return f"<Order #{self.order_number} - {self.status.value} - {self.total_amount}>"


class OrderUnitRecord(Base):
    """
    One independently trackable unit of an order.

    Deal components point at their deal's parent unit through
    parent_unit_id; the link is resolved by lookup inside the order.
    """
    __tablename__ = "order_units"

    order_id = Column(
        String(64),
        ForeignKey("orders.id", ondelete="CASCADE"),
        primary_key=True,
    )
    id = Column(String(64), primary_key=True)
    position = Column(Integer, nullable=False)

    catalog_id = Column(String(64), nullable=False)
    name = Column(String(100), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    base_price = Column(Numeric(12, 2), nullable=False)
    station_id = Column(String(32), nullable=True, index=True)

    is_component = Column(Boolean, default=False, nullable=False)
    parent_unit_id = Column(String(64), nullable=True)
    is_deal_container = Column(Boolean, default=False, nullable=False)
    deal_name = Column(String(100), nullable=True)

    # Kitchen tracking
    is_prepared = Column(Boolean, default=False, nullable=False)
    is_dispatched = Column(Boolean, default=False, nullable=False)
    prepared_at = Column(DateTime(timezone=True), nullable=True)
    dispatched_at = Column(DateTime(timezone=True), nullable=True)

    # Opaque to fulfillment
    selected_addons = Column(JSON, nullable=False, default=list)
    selected_variant = Column(JSON, nullable=True)
    instructions = Column(Text, nullable=True)

    order = relationship("OrderRecord", back_populates="units")

    def __repr__(self):
        return f"<OrderUnit {self.id} - {self.name} x{self.quantity} - {self.station_id}>"
