"""
Pydantic Schemas for Request/Response Validation

Covers the kiosk, cashier and kitchen display surfaces:
- Cart lines with variants and addons
- Station toggles and dispatch
- Status, discount and payment method changes
- Station and dispatch queues for the KDS screens

Author: Khalil Bannouri
Version: 1.0.0
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from kitchenflow.models import DiscountType, OrderStatus, OrderType


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class AddonSelection(BaseModel):
    """Addon chosen for a line, priced at selection time."""
    id: str = Field(..., min_length=1, examples=["A-00001"])
    name: str = Field(default="", max_length=100, examples=["Extra Cheese"])
    price: Decimal = Field(..., ge=0, examples=["120.00"])
    quantity: int = Field(default=1, ge=1, le=20)


class VariantSelection(BaseModel):
    """Variant chosen for a line; the price comes from the catalog."""
    id: str = Field(..., min_length=1, examples=["V-LARGE"])
    name: Optional[str] = Field(None, max_length=100)


class LineItemCreate(BaseModel):
    """Single purchased line of a cart."""
    catalog_id: str = Field(..., min_length=1, max_length=64, examples=["D-00001"])
    quantity: int = Field(..., ge=1, le=99, examples=[2])
    selected_addons: List[AddonSelection] = Field(default_factory=list)
    selected_variant: Optional[VariantSelection] = None
    instructions: Optional[str] = Field(None, max_length=500)


class OrderCreate(BaseModel):
    """Request schema for placing a new order."""

    # Order Items
    lines: List[LineItemCreate] = Field(..., min_length=1)

    # Placement
    order_type: OrderType = Field(default=OrderType.TAKE_AWAY, examples=["Take-Away"])
    branch_id: Optional[str] = Field(None, max_length=64)
    table_id: Optional[str] = Field(None, max_length=64)
    placed_by: Optional[str] = Field(None, max_length=100, examples=["kiosk-1"])
    instructions: Optional[str] = Field(None, max_length=500)

    # Payment (defaults to DEFAULT_PAYMENT_METHOD)
    payment_method: Optional[str] = Field(None, examples=["Cash", "Card"])


class AddUnitsRequest(BaseModel):
    """Lines appended to an order that was already placed."""
    lines: List[LineItemCreate] = Field(..., min_length=1)


class TogglePreparedRequest(BaseModel):
    """Units a station flips between prepared and not prepared."""
    unit_ids: List[str] = Field(..., min_length=1)


class StatusUpdateRequest(BaseModel):
    """Explicit cashier transition (Preparing, Completed or Cancelled)."""
    status: OrderStatus = Field(..., examples=["Preparing"])
    reason: Optional[str] = Field(None, max_length=500)
    actor: Optional[str] = Field(None, max_length=100, examples=["cashier-7"])


class AdjustmentRequest(BaseModel):
    """Discount or complementary request; exclusivity is checked by the engine."""
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = None
    is_complementary: bool = False
    reason: Optional[str] = Field(None, max_length=500)


class PaymentMethodChange(BaseModel):
    """New payment method for an open order."""
    payment_method: str = Field(..., min_length=1, examples=["Card"])


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class UnitResponse(BaseModel):
    """One fulfillment unit as shown to cashiers and stations."""
    unit_id: str
    catalog_id: str
    name: str
    quantity: int
    price: float
    base_price: float
    station_id: Optional[str]
    is_component: bool
    parent_unit_id: Optional[str]
    is_deal_container: bool
    deal_name: Optional[str]
    is_prepared: bool
    is_dispatched: bool
    prepared_at: Optional[datetime]
    dispatched_at: Optional[datetime]
    selected_addons: List[dict]
    selected_variant: Optional[dict]
    instructions: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    id: str
    order_number: str
    status: OrderStatus
    order_type: OrderType
    branch_id: Optional[str]
    table_id: Optional[str]
    placed_by: Optional[str]
    instructions: Optional[str]
    payment_method: str
    subtotal: float
    tax_rate: float
    tax_amount: float
    total_amount: float
    original_total_amount: Optional[float]
    discount_type: Optional[DiscountType]
    discount_value: Optional[float]
    discount_amount: Optional[float]
    is_complementary: bool
    complementary_reason: Optional[str]
    cancellation_reason: Optional[str]
    completed_by: Optional[str]
    order_date: datetime
    completion_date: Optional[datetime]
    version: int
    units: List[UnitResponse]

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    total: int
    orders: List[OrderResponse]


class StationQueueEntry(BaseModel):
    """One order as seen by a single kitchen station."""
    order_id: str
    order_number: str
    status: OrderStatus
    order_type: OrderType
    table_id: Optional[str]
    order_date: datetime
    instructions: Optional[str]
    units: List[UnitResponse]


class StationQueueResponse(BaseModel):
    """Orders a station still has work on, oldest first."""
    station_id: str
    total: int
    orders: List[StationQueueEntry]


class DispatchQueueResponse(BaseModel):
    """Orders waiting for assembly, oldest first."""
    total: int
    orders: List[StationQueueEntry]


class CashierBalanceResponse(BaseModel):
    """Running settlement balance of a cashier."""
    cashier_id: str
    balance: float
    settled_orders: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    code: Optional[str] = None
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    repository: str
    redis: str
    event_publisher: str
    timestamp: datetime
