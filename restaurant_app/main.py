"""
FastAPI Application Entry Point

RestaurantApp - menu and table reservation API.

Endpoints:
    - GET  /api/v1/reservations: List reservations (filters + pagination)
    - POST /api/v1/reservations: Book a table
    - GET/PUT/PATCH/DELETE /api/v1/reservations/{id}
    - PATCH /api/v1/reservations/{id}/confirm: Confirm a reservation
    - PATCH /api/v1/reservations/{id}/cancel: Cancel a reservation
    - GET/POST /api/v1/menu_items, GET/PUT/PATCH/DELETE /api/v1/menu_items/{id}
    - GET /api/v1/docs: Endpoint overview
    - GET /health: System health check

Request bodies may be sent bare or wrapped in {"reservation": {...}} /
{"menu_item": {...}}.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

import redis
from fastapi import Body, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_app.core.config import get_settings, setup_logging
from restaurant_app.core.context import RequestContext
from restaurant_app.core.exceptions import RestaurantAppError
from restaurant_app.database import dispose_engine, get_db, init_db
from restaurant_app.models import MENU_CATEGORIES, ReservationStatus
from restaurant_app.schemas import (
    ErrorResponse,
    HealthResponse,
    MenuItemCreate,
    MenuItemEnvelope,
    MenuItemListMeta,
    MenuItemListResponse,
    MenuItemResponse,
    MenuItemUpdate,
    MessageResponse,
    ReservationCreate,
    ReservationEnvelope,
    ReservationListMeta,
    ReservationListResponse,
    ReservationResponse,
    ReservationUpdate,
)
from restaurant_app.services.menu import MenuItemFilter, MenuItemStore
from restaurant_app.services.notifications import (
    BaseNotificationService,
    get_notification_service,
)
from restaurant_app.services.reservations import ReservationFilter, ReservationStore

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


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
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Time zone: {settings.restaurant_timezone}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    notification_service = get_notification_service()
    logger.info(f"Notification Service: {notification_service.provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    logger.info("Application ready")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await dispose_engine()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Menu management and table reservations for a single restaurant.",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_api_requests(request: Request, call_next):
    """Log method, path, status and duration of API calls."""
    accepts_json = "application/json" in request.headers.get("accept", "")
    if not (request.url.path.startswith("/api/") or accepts_json):
        return await call_next(request)

    started = time.perf_counter()
    response = await call_next(request)
    duration = (time.perf_counter() - started) * 1000
    logger.info(
        f"API Request: {request.method} {request.url.path} - "
        f"{response.status_code} ({duration:.2f}ms)"
    )
    return response


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_request_context(
    x_actor: Optional[str] = Header(None, alias="X-Actor"),
) -> RequestContext:
    """Per-request principal and clock."""
    return RequestContext(actor=x_actor)


def get_reservation_store(
    db: AsyncSession = Depends(get_db),
    notifications: BaseNotificationService = Depends(get_notification_service),
) -> ReservationStore:
    return ReservationStore(db, notifications)


def get_menu_store(db: AsyncSession = Depends(get_db)) -> MenuItemStore:
    return MenuItemStore(db)


def unwrap_body(payload: dict[str, Any], key: str, schema: type[BaseModel]) -> dict[str, Any]:
    """
    Accept both {"reservation": {...}} and a bare object, then parse it.

    Only the keys the client actually sent are returned.
    """
    if isinstance(payload.get(key), dict):
        payload = payload[key]
    try:
        return schema.model_validate(payload).model_dump(exclude_unset=True)
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors())


def reservation_response(reservation, store: ReservationStore, ctx: RequestContext) -> ReservationResponse:
    return ReservationResponse.from_reservation(reservation, ctx.now, store.rules)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": f"{API_PREFIX}/docs",
        "health": "/health",
    }


def _ping_redis() -> None:
    client = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
    try:
        client.ping()
    finally:
        client.close()


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    notifications: BaseNotificationService = Depends(get_notification_service),
) -> HealthResponse:
    """Verify all system components are operational."""

    # Check database
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    # Check Redis
    redis_status = "healthy"
    try:
        await asyncio.to_thread(_ping_redis)
    except redis.RedisError as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    notification_status = "healthy" if await notifications.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, redis_status, notification_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        notification_service=notification_status,
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# API DOCS
# =============================================================================

@app.get(f"{API_PREFIX}/docs", tags=["Docs"])
async def api_docs() -> dict[str, Any]:
    """Endpoint and query parameter overview."""
    return {
        "api_version": "v1",
        "description": f"{settings.app_name}",
        "endpoints": {
            "menu_items": {
                "index": f"GET    {API_PREFIX}/menu_items",
                "show": f"GET    {API_PREFIX}/menu_items/:id",
                "create": f"POST   {API_PREFIX}/menu_items",
                "update": f"PUT/PATCH {API_PREFIX}/menu_items/:id",
                "destroy": f"DELETE {API_PREFIX}/menu_items/:id",
            },
            "reservations": {
                "index": f"GET    {API_PREFIX}/reservations",
                "show": f"GET    {API_PREFIX}/reservations/:id",
                "create": f"POST   {API_PREFIX}/reservations",
                "update": f"PUT/PATCH {API_PREFIX}/reservations/:id",
                "destroy": f"DELETE {API_PREFIX}/reservations/:id",
                "confirm": f"PATCH  {API_PREFIX}/reservations/:id/confirm",
                "cancel": f"PATCH  {API_PREFIX}/reservations/:id/cancel",
            },
        },
        "parameters": {
            "menu_items": {
                "index": {
                    "category": f"Filter by category ({', '.join(MENU_CATEGORIES)})",
                    "available": "Filter by availability (true or false)",
                    "sort": "Sort by name, price, or category",
                    "page": "Page number for pagination (default: 1)",
                    "per_page": (
                        f"Items per page (max: {settings.max_per_page}, "
                        f"default: {settings.default_per_page})"
                    ),
                },
            },
            "reservations": {
                "index": {
                    "status": f"Filter by status ({', '.join(ReservationStatus.values())})",
                    "date": "Filter by specific date (YYYY-MM-DD)",
                    "start_date": "Filter from this date (YYYY-MM-DD)",
                    "end_date": "Filter up to this date (YYYY-MM-DD)",
                    "customer_email": "Filter by customer email address",
                    "page": "Page number for pagination (default: 1)",
                    "per_page": (
                        f"Items per page (max: {settings.max_per_page}, "
                        f"default: {settings.default_per_page})"
                    ),
                },
            },
        },
    }


@app.get(f"{API_PREFIX}/docs/reservations", tags=["Docs"])
async def reservations_schema() -> dict[str, Any]:
    return {
        "reservation": {
            "type": "object",
            "properties": {
                "customer_name": {"type": "string", "required": True},
                "customer_email": {"type": "string", "required": True, "format": "email"},
                "customer_phone": {"type": "string", "required": True},
                "party_size": {
                    "type": "integer",
                    "required": True,
                    "minimum": 1,
                    "maximum": settings.max_party_size,
                },
                "reservation_date": {"type": "string", "required": True, "format": "date-time"},
                "special_requests": {"type": "string"},
            },
        }
    }


@app.get(f"{API_PREFIX}/docs/menu_items", tags=["Docs"])
async def menu_items_schema() -> dict[str, Any]:
    return {
        "menu_item": {
            "type": "object",
            "properties": {
                "name": {"type": "string", "required": True},
                "description": {"type": "string", "required": True},
                "price": {"type": "number", "required": True, "minimum": 0},
                "category": {"type": "string", "required": True, "enum": MENU_CATEGORIES},
                "available": {"type": "boolean", "default": True},
            },
        }
    }


# =============================================================================
# RESERVATION ENDPOINTS
# =============================================================================

@app.get(
    f"{API_PREFIX}/reservations",
    response_model=ReservationListResponse,
    responses={400: {"model": ErrorResponse}},
    tags=["Reservations"],
    summary="List Reservations",
)
async def list_reservations(
    status: Optional[str] = Query(None),
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    customer_email: Optional[str] = Query(None),
    page: Optional[int] = Query(None),
    per_page: Optional[int] = Query(None),
    store: ReservationStore = Depends(get_reservation_store),
    ctx: RequestContext = Depends(get_request_context),
) -> ReservationListResponse:
    """Reservations sorted by date, filtered and paginated."""
    result = await store.list(
        ReservationFilter(
            status=status,
            date=date,
            start_date=start_date,
            end_date=end_date,
            customer_email=customer_email,
            page=page,
            per_page=per_page,
        ),
        ctx,
    )
    return ReservationListResponse(
        data=[reservation_response(r, store, ctx) for r in result.items],
        meta=ReservationListMeta(
            total_count=result.total_count,
            page=result.page,
            per_page=result.per_page,
        ),
    )


@app.post(
    f"{API_PREFIX}/reservations",
    response_model=ReservationEnvelope,
    status_code=201,
    responses={422: {"model": ErrorResponse}},
    tags=["Reservations"],
    summary="Book a Table",
)
async def create_reservation(
    payload: dict[str, Any] = Body(...),
    store: ReservationStore = Depends(get_reservation_store),
    ctx: RequestContext = Depends(get_request_context),
) -> ReservationEnvelope:
    values = unwrap_body(payload, "reservation", ReservationCreate)
    reservation, confirmation_sent = await store.book(values, ctx)
    if confirmation_sent:
        message = "Reservation created successfully. Confirmation email sent."
    else:
        message = "Reservation created successfully. Confirmation email could not be sent."
    return ReservationEnvelope(
        data=reservation_response(reservation, store, ctx),
        message=message,
    )


@app.get(
    f"{API_PREFIX}/reservations/{{reservation_id}}",
    response_model=ReservationEnvelope,
    responses={404: {"model": ErrorResponse}},
    tags=["Reservations"],
)
async def get_reservation(
    reservation_id: int,
    store: ReservationStore = Depends(get_reservation_store),
    ctx: RequestContext = Depends(get_request_context),
) -> ReservationEnvelope:
    reservation = await store.get(reservation_id)
    return ReservationEnvelope(data=reservation_response(reservation, store, ctx))


@app.api_route(
    f"{API_PREFIX}/reservations/{{reservation_id}}",
    methods=["PUT", "PATCH"],
    response_model=ReservationEnvelope,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    tags=["Reservations"],
)
async def update_reservation(
    reservation_id: int,
    payload: dict[str, Any] = Body(...),
    store: ReservationStore = Depends(get_reservation_store),
    ctx: RequestContext = Depends(get_request_context),
) -> ReservationEnvelope:
    patch = unwrap_body(payload, "reservation", ReservationUpdate)
    reservation = await store.update(reservation_id, patch, ctx)
    return ReservationEnvelope(
        data=reservation_response(reservation, store, ctx),
        message="Reservation updated successfully",
    )


@app.delete(
    f"{API_PREFIX}/reservations/{{reservation_id}}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Reservations"],
)
async def delete_reservation(
    reservation_id: int,
    store: ReservationStore = Depends(get_reservation_store),
    ctx: RequestContext = Depends(get_request_context),
) -> MessageResponse:
    await store.delete(reservation_id, ctx)
    return MessageResponse(message="Reservation deleted successfully")


@app.patch(
    f"{API_PREFIX}/reservations/{{reservation_id}}/confirm",
    response_model=ReservationEnvelope,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    tags=["Reservations"],
    summary="Confirm Reservation",
)
async def confirm_reservation(
    reservation_id: int,
    store: ReservationStore = Depends(get_reservation_store),
    ctx: RequestContext = Depends(get_request_context),
) -> ReservationEnvelope:
    reservation = await store.confirm_action(reservation_id, ctx)
    return ReservationEnvelope(
        data=reservation_response(reservation, store, ctx),
        message="Reservation confirmed successfully",
    )


@app.patch(
    f"{API_PREFIX}/reservations/{{reservation_id}}/cancel",
    response_model=ReservationEnvelope,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    tags=["Reservations"],
    summary="Cancel Reservation",
)
async def cancel_reservation(
    reservation_id: int,
    store: ReservationStore = Depends(get_reservation_store),
    ctx: RequestContext = Depends(get_request_context),
) -> ReservationEnvelope:
    reservation = await store.cancel_action(reservation_id, ctx)
    return ReservationEnvelope(
        data=reservation_response(reservation, store, ctx),
        message="Reservation cancelled successfully",
    )


# =============================================================================
# MENU ITEM ENDPOINTS
# =============================================================================

@app.get(
    f"{API_PREFIX}/menu_items",
    response_model=MenuItemListResponse,
    tags=["Menu"],
    summary="List Menu Items",
)
async def list_menu_items(
    category: Optional[str] = Query(None),
    available: Optional[bool] = Query(None),
    sort: Optional[str] = Query(None, description="name, price or category"),
    page: Optional[int] = Query(None),
    per_page: Optional[int] = Query(None),
    store: MenuItemStore = Depends(get_menu_store),
) -> MenuItemListResponse:
    result = await store.list(
        MenuItemFilter(
            category=category,
            available=available,
            sort=sort,
            page=page,
            per_page=per_page,
        )
    )
    return MenuItemListResponse(
        data=[MenuItemResponse.from_menu_item(item) for item in result.items],
        meta=MenuItemListMeta(
            total_count=result.total_count,
            page=result.page,
            per_page=result.per_page,
        ),
    )


@app.post(
    f"{API_PREFIX}/menu_items",
    response_model=MenuItemEnvelope,
    status_code=201,
    responses={422: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def create_menu_item(
    payload: dict[str, Any] = Body(...),
    store: MenuItemStore = Depends(get_menu_store),
    ctx: RequestContext = Depends(get_request_context),
) -> MenuItemEnvelope:
    values = unwrap_body(payload, "menu_item", MenuItemCreate)
    item = await store.create(values, ctx)
    return MenuItemEnvelope(
        data=MenuItemResponse.from_menu_item(item),
        message="Menu item created successfully",
    )


@app.get(
    f"{API_PREFIX}/menu_items/{{item_id}}",
    response_model=MenuItemEnvelope,
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def get_menu_item(
    item_id: int,
    store: MenuItemStore = Depends(get_menu_store),
) -> MenuItemEnvelope:
    item = await store.get(item_id)
    return MenuItemEnvelope(data=MenuItemResponse.from_menu_item(item))


@app.api_route(
    f"{API_PREFIX}/menu_items/{{item_id}}",
    methods=["PUT", "PATCH"],
    response_model=MenuItemEnvelope,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def update_menu_item(
    item_id: int,
    payload: dict[str, Any] = Body(...),
    store: MenuItemStore = Depends(get_menu_store),
    ctx: RequestContext = Depends(get_request_context),
) -> MenuItemEnvelope:
    patch = unwrap_body(payload, "menu_item", MenuItemUpdate)
    item = await store.update(item_id, patch, ctx)
    return MenuItemEnvelope(
        data=MenuItemResponse.from_menu_item(item),
        message="Menu item updated successfully",
    )


@app.delete(
    f"{API_PREFIX}/menu_items/{{item_id}}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Menu"],
)
async def delete_menu_item(
    item_id: int,
    store: MenuItemStore = Depends(get_menu_store),
    ctx: RequestContext = Depends(get_request_context),
) -> MessageResponse:
    await store.delete(item_id, ctx)
    return MessageResponse(message="Menu item deleted successfully")


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def error_response(
    status_code: int,
    error: str,
    message: Optional[str] = None,
    errors: Optional[list[str]] = None,
    details: Optional[dict[str, Any]] = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        message=message,
        errors=errors or [],
        details=details or {},
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(RestaurantAppError)
async def restaurant_error_handler(request: Request, exc: RestaurantAppError) -> JSONResponse:
    """Render domain errors as the standard error envelope."""
    return error_response(
        exc.status_code,
        exc.error,
        message=exc.message,
        errors=exc.errors,
        details=exc.details,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query parameters."""
    details: dict[str, list[str]] = {}
    errors: list[str] = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        field_name = ".".join(loc) or "request"
        details.setdefault(field_name, []).append(err.get("msg", "is invalid"))
        errors.append(f"{field_name}: {err.get('msg', 'is invalid')}")
    return error_response(422, "Validation failed", message="; ".join(errors), errors=errors, details=details)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return error_response(
        500,
        "Internal Server Error",
        message=str(exc) if settings.debug else "An unexpected error occurred",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "restaurant_app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
