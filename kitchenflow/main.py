"""
FastAPI Application Entry Point

Kitchen Fulfillment Engine - kiosk, cashier and KDS API.
Runs on in-memory backends in development and on PostgreSQL + Celery
in staging/production.

Endpoints:
    - POST /api/orders: Place an order
    - GET /api/orders: List orders
    - POST /api/orders/{id}/items: Add items to a placed order
    - POST /api/orders/{id}/prepared: Station toggles prepared units
    - POST /api/orders/{id}/units/{unit_id}/dispatch: Dispatch one unit
    - PUT /api/orders/{id}/status: Cashier status change
    - POST /api/orders/{id}/adjustment: Discount / complementary
    - PUT /api/orders/{id}/payment-method: Change payment method
    - GET /api/kds/stations/{station_id}: Station queue
    - GET /api/kds/dispatch: Dispatch queue
    - GET /api/cashiers/{cashier_id}/balance: Settled cashier balance
    - GET /health: System health check

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import redis
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kitchenflow.core.config import RepositoryBackend, get_settings, setup_logging
from kitchenflow.core.exceptions import FulfillmentError
from kitchenflow.database import dispose_engine, init_db
from kitchenflow.models import OrderStatus
from kitchenflow.schemas import (
    AddUnitsRequest,
    AdjustmentRequest,
    CashierBalanceResponse,
    DispatchQueueResponse,
    ErrorResponse,
    HealthResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    PaymentMethodChange,
    StationQueueEntry,
    StationQueueResponse,
    StatusUpdateRequest,
    TogglePreparedRequest,
    UnitResponse,
)
from kitchenflow.services.fulfillment.service import (
    OrderFulfillmentService,
    QueueEntry,
    get_fulfillment_service,
)
from kitchenflow.services.settlement_ledger import SettlementLedger, get_settlement_ledger

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    if settings.effective_repository_backend == RepositoryBackend.SQL:
        await init_db()
        logger.info("✅ Database initialized")

    service = get_fulfillment_service()
    logger.info(f"✅ Order Repository: {service.repository.provider_name}")
    logger.info(f"✅ Event Publisher: {service.publisher.provider_name}")
    logger.info(f"✅ Catalog: {service.catalog.provider_name}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await dispose_engine()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Order decomposition and multi-station kitchen fulfillment engine. "
        "Deals are expanded into station units that kitchen terminals "
        "prepare and dispatch concurrently."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Kiosks and KDS screens run on other origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def queue_entry_response(entry: QueueEntry) -> StationQueueEntry:
    """Flatten a service queue entry for the KDS screens."""
    order = entry.order
    return StationQueueEntry(
        order_id=order.id,
        order_number=order.order_number,
        status=order.status,
        order_type=order.order_type,
        table_id=order.table_id,
        order_date=order.order_date,
        instructions=order.instructions,
        units=[UnitResponse.model_validate(unit) for unit in entry.units],
    )


def ping_redis() -> str:
    r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
    try:
        r.ping()
    finally:
        r.close()
    return "healthy"


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍕 Welcome to {settings.app_name} for {settings.restaurant_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    service: OrderFulfillmentService = Depends(get_fulfillment_service),
) -> HealthResponse:
    """Verify all system components are operational."""

    # Check order storage
    repository_status = "healthy" if await service.repository.health_check() else "unhealthy"

    # Check Redis (only used with Celery delivery)
    redis_status = "not used"
    if settings.use_real_services:
        try:
            redis_status = await asyncio.to_thread(ping_redis)
        except Exception as e:
            redis_status = f"unhealthy: {str(e)}"
            logger.error(f"Redis health check failed: {e}")

    overall = "operational" if all(
        s in ("healthy", "not used") for s in [repository_status, redis_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        repository=repository_status,
        redis=redis_status,
        event_publisher=service.publisher.provider_name,
        timestamp=datetime.now(),
    )


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Place Order",
)
async def create_order(
    order_data: OrderCreate,
    service: OrderFulfillmentService = Depends(get_fulfillment_service),
) -> OrderResponse:
    """
    Place a new order from kiosk cart lines.

    Deals are expanded into one unit per dish, each routed to the
    station that prepares it.
    """
    order = await service.create_order(order_data)
    return OrderResponse.model_validate(order)


@app.get(
    "/api/orders",
    response_model=OrderListResponse,
    tags=["Orders"],
    summary="List Orders",
)
async def list_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    status: Optional[OrderStatus] = Query(None),
    service: OrderFulfillmentService = Depends(get_fulfillment_service),
) -> OrderListResponse:
    """Retrieve paginated list of orders, newest first."""
    orders = await service.list_orders(status)
    orders.reverse()

    return OrderListResponse(
        total=len(orders),
        orders=[OrderResponse.model_validate(order) for order in orders[skip:skip + limit]],
    )


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
)
async def get_order(
    order_id: str,
    service: OrderFulfillmentService = Depends(get_fulfillment_service),
) -> OrderResponse:
    """Get a specific order by ID."""
    order = await service.get_order(order_id)
    return OrderResponse.model_validate(order)


@app.post(
    "/api/orders/{order_id}/items",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Orders"],
    summary="Add Items",
)
async def add_items(
    order_id: str,
    request: AddUnitsRequest,
    service: OrderFulfillmentService = Depends(get_fulfillment_service),
) -> OrderResponse:
    """Append lines to a placed order and re-total it."""
    order = await service.add_units(order_id, request.lines)
    return OrderResponse.model_validate(order)


@app.put(
    "/api/orders/{order_id}/status",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Cashier"],
    summary="Change Order Status",
)
async def update_status(
    order_id: str,
    request: StatusUpdateRequest,
    service: OrderFulfillmentService = Depends(get_fulfillment_service),
) -> OrderResponse:
    """Preparing, Completed or Cancelled; Ready states follow the kitchen."""
    order = await service.set_status(
        order_id,
        request.status,
        reason=request.reason,
        actor=request.actor,
    )
    return OrderResponse.model_validate(order)


@app.post(
    "/api/orders/{order_id}/adjustment",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Cashier"],
    summary="Apply Discount or Complementary",
)
async def apply_adjustment(
    order_id: str,
    request: AdjustmentRequest,
    service: OrderFulfillmentService = Depends(get_fulfillment_service),
) -> OrderResponse:
    """Replace any previous adjustment; computed from the pre-discount total."""
    order = await service.apply_adjustment(
        order_id,
        discount_type=request.discount_type,
        discount_value=request.discount_value,
        is_complementary=request.is_complementary,
        reason=request.reason,
    )
    return OrderResponse.model_validate(order)


@app.put(
    "/api/orders/{order_id}/payment-method",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Cashier"],
    summary="Change Payment Method",
)
async def change_payment_method(
    order_id: str,
    request: PaymentMethodChange,
    service: OrderFulfillmentService = Depends(get_fulfillment_service),
) -> OrderResponse:
    """Re-tax the order at the new payment method's rate."""
    order = await service.change_payment_method(order_id, request.payment_method)
    return OrderResponse.model_validate(order)


@app.get(
    "/api/cashiers/{cashier_id}/balance",
    response_model=CashierBalanceResponse,
    tags=["Cashier"],
    summary="Cashier Settlement Balance",
)
async def cashier_balance(
    cashier_id: str,
    ledger: SettlementLedger = Depends(get_settlement_ledger),
) -> CashierBalanceResponse:
    """Sum of the orders a cashier completed, read from the settlement ledger."""
    entries = await asyncio.to_thread(ledger.get_entries, cashier_id)
    balance = await asyncio.to_thread(ledger.get_cashier_balance, cashier_id)
    return CashierBalanceResponse(
        cashier_id=cashier_id,
        balance=balance,
        settled_orders=len(entries),
    )


# =============================================================================
# KITCHEN DISPLAY ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders/{order_id}/prepared",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Kitchen"],
    summary="Toggle Prepared Units",
)
async def toggle_prepared(
    order_id: str,
    request: TogglePreparedRequest,
    service: OrderFulfillmentService = Depends(get_fulfillment_service),
) -> OrderResponse:
    """Flip the prepared flag of the given units. Not idempotent."""
    order = await service.toggle_items_prepared(order_id, request.unit_ids)
    return OrderResponse.model_validate(order)


@app.post(
    "/api/orders/{order_id}/units/{unit_id}/dispatch",
    response_model=OrderResponse,
    responses=ERROR_RESPONSES,
    tags=["Kitchen"],
    summary="Dispatch Unit",
)
async def dispatch_unit(
    order_id: str,
    unit_id: str,
    service: OrderFulfillmentService = Depends(get_fulfillment_service),
) -> OrderResponse:
    """Hand a prepared unit to assembly. Safe to retry."""
    order = await service.dispatch_unit(order_id, unit_id)
    return OrderResponse.model_validate(order)


@app.get(
    "/api/kds/stations/{station_id}",
    response_model=StationQueueResponse,
    tags=["Kitchen"],
    summary="Station Queue",
)
async def station_queue(
    station_id: str,
    service: OrderFulfillmentService = Depends(get_fulfillment_service),
) -> StationQueueResponse:
    """Active orders with units still to be handled by one station."""
    entries = await service.station_queue(station_id)
    return StationQueueResponse(
        station_id=station_id,
        total=len(entries),
        orders=[queue_entry_response(entry) for entry in entries],
    )


@app.get(
    "/api/kds/dispatch",
    response_model=DispatchQueueResponse,
    tags=["Kitchen"],
    summary="Dispatch Queue",
)
async def dispatch_queue(
    service: OrderFulfillmentService = Depends(get_fulfillment_service),
) -> DispatchQueueResponse:
    """Orders in progress with units still to be dispatched."""
    entries = await service.dispatch_queue()
    return DispatchQueueResponse(
        total=len(entries),
        orders=[queue_entry_response(entry) for entry in entries],
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(FulfillmentError)
async def fulfillment_exception_handler(request: Request, exc: FulfillmentError) -> JSONResponse:
    """Domain errors carry their own status code."""
    logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            code=exc.code,
            detail=exc.message,
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


# =============================================================================
# DEVELOPMENT SERVER
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "kitchenflow.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
