"""
Menu Item Store

Validation, CRUD and listing for the restaurant menu. Listing supports a
category filter, an availability filter, sorting by name, price or
category, and pagination.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_app.core.config import Settings, get_settings
from restaurant_app.core.context import RequestContext
from restaurant_app.core.exceptions import NotFound, ValidationError
from restaurant_app.core.validation import ValidationResult
from restaurant_app.models import MenuItem
from restaurant_app.services.pagination import page_request

logger = logging.getLogger(__name__)


MENU_FIELDS = ("name", "description", "price", "category", "available")

SORT_ORDERS = {
    "name": (MenuItem.name, MenuItem.id),
    "price": (MenuItem.price, MenuItem.id),
    "category": (MenuItem.category, MenuItem.name, MenuItem.id),
}
DEFAULT_SORT = "category"

BLANK = "can't be blank"

# Numeric(10, 2) holds at most eight integer digits
MAX_PRICE = Decimal("100000000")
CATEGORY_MAX_LENGTH = 50


# =============================================================================
# VALIDATION
# =============================================================================

def _length_rule(field_name: str, value: Any, minimum: int, maximum: int) -> ValidationResult:
    if value is None or (isinstance(value, str) and not value.strip()):
        return ValidationResult.failure(field_name, BLANK)
    length = len(str(value))
    if length < minimum:
        return ValidationResult.failure(
            field_name, f"is too short (minimum is {minimum} characters)"
        )
    if length > maximum:
        return ValidationResult.failure(
            field_name, f"is too long (maximum is {maximum} characters)"
        )
    return ValidationResult.success()


def validate_price(value: Any) -> ValidationResult:
    if value is None or (isinstance(value, str) and not value.strip()):
        return ValidationResult.failure("price", BLANK)
    if isinstance(value, bool):
        return ValidationResult.failure("price", "is not a number")
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        return ValidationResult.failure("price", "is not a number")
    if not price.is_finite():
        return ValidationResult.failure("price", "is not a number")
    if price < 0:
        return ValidationResult.failure("price", "must be greater than or equal to 0")
    if price >= MAX_PRICE or price.quantize(Decimal("0.01")) >= MAX_PRICE:
        return ValidationResult.failure("price", f"must be less than {MAX_PRICE}")
    return ValidationResult.success()


def validate_category(value: Any) -> ValidationResult:
    if value is None or not str(value).strip():
        return ValidationResult.failure("category", BLANK)
    if len(str(value)) > CATEGORY_MAX_LENGTH:
        return ValidationResult.failure(
            "category", f"is too long (maximum is {CATEGORY_MAX_LENGTH} characters)"
        )
    return ValidationResult.success()


def validate_menu_item(values: Mapping[str, Any], partial: bool = False) -> ValidationResult:
    checks = {
        "name": lambda v: _length_rule("name", v, 2, 100),
        "description": lambda v: _length_rule("description", v, 10, 500),
        "price": validate_price,
        "category": validate_category,
    }
    return ValidationResult.combine(
        check(values.get(name))
        for name, check in checks.items()
        if not partial or name in values
    )


def _clean_input(values: Mapping[str, Any]) -> dict[str, Any]:
    data = {key: values[key] for key in MENU_FIELDS if key in values}
    for key in ("name", "description", "category"):
        if isinstance(data.get(key), str):
            data[key] = data[key].strip()
    if "available" in data and data["available"] is None:
        data["available"] = True
    return data


def _coerce_price(data: dict[str, Any]) -> dict[str, Any]:
    if "price" in data:
        data["price"] = Decimal(str(data["price"])).quantize(Decimal("0.01"))
    return data


# =============================================================================
# STORE
# =============================================================================

@dataclass
class MenuItemFilter:
    category: Optional[str] = None
    available: Optional[bool] = None
    sort: Optional[str] = None
    page: Optional[int] = None
    per_page: Optional[int] = None


@dataclass
class MenuItemPage:
    items: list[MenuItem] = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    per_page: int = 20


class MenuItemStore:
    """Persistence operations for menu items."""

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()

    async def get(self, item_id: int) -> MenuItem:
        item = await self.session.get(MenuItem, item_id)
        if item is None:
            raise NotFound("MenuItem", item_id)
        return item

    async def create(self, values: Mapping[str, Any], ctx: RequestContext) -> MenuItem:
        data = _clean_input(values)
        result = validate_menu_item(data)
        if not result.ok:
            raise ValidationError(result)

        data.setdefault("available", True)
        item = MenuItem(**_coerce_price(data), created_at=ctx.now, updated_at=ctx.now)
        self.session.add(item)
        await self.session.commit()

        logger.info(f"Menu item #{item.id} '{item.name}' created by {ctx.actor_label}")
        return item

    async def update(self, item_id: int, patch: Mapping[str, Any], ctx: RequestContext) -> MenuItem:
        existing = await self.get(item_id)

        changes = _clean_input(patch)
        result = validate_menu_item(changes, partial=True)
        if not result.ok:
            raise ValidationError(result)
        if not changes:
            return existing

        stmt = (
            update(MenuItem)
            .where(MenuItem.id == item_id)
            .values(**_coerce_price(changes), updated_at=ctx.now)
            .returning(MenuItem)
            .execution_options(populate_existing=True, synchronize_session=False)
        )
        item = (await self.session.execute(stmt)).scalar_one_or_none()
        await self.session.commit()
        if item is None:
            raise NotFound("MenuItem", item_id)

        logger.info(f"Menu item #{item_id} updated by {ctx.actor_label}: {sorted(changes)}")
        return item

    async def delete(self, item_id: int, ctx: RequestContext) -> None:
        stmt = (
            delete(MenuItem)
            .where(MenuItem.id == item_id)
            .returning(MenuItem.id)
            .execution_options(synchronize_session="fetch")
        )
        deleted = (await self.session.execute(stmt)).scalar_one_or_none()
        await self.session.commit()
        if deleted is None:
            raise NotFound("MenuItem", item_id)
        logger.info(f"Menu item #{item_id} deleted by {ctx.actor_label}")

    async def list(self, filters: MenuItemFilter) -> MenuItemPage:
        conditions = []
        if filters.category:
            conditions.append(MenuItem.category == filters.category)
        if filters.available is not None:
            conditions.append(MenuItem.available == filters.available)

        order_by = SORT_ORDERS.get(filters.sort or DEFAULT_SORT, SORT_ORDERS[DEFAULT_SORT])
        paging = page_request(
            filters.page,
            filters.per_page,
            self.settings.default_per_page,
            self.settings.max_per_page,
        )

        total_count = await self.session.scalar(
            select(func.count()).select_from(MenuItem).where(*conditions)
        )
        rows = await self.session.scalars(
            select(MenuItem)
            .where(*conditions)
            .order_by(*order_by)
            .offset(paging.offset)
            .limit(paging.per_page)
        )
        return MenuItemPage(
            items=list(rows.all()),
            total_count=total_count or 0,
            page=paging.page,
            per_page=paging.per_page,
        )
