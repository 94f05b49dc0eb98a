"""
Client-side validation run before any request is sent.

Each ``validate_*`` returns the cleaned values or raises ``ValidationError``
with a message fit for the user.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from api.models import NewProduct, OrderLineRequest, SpecValue

MIN_PASSWORD_LENGTH = 8
MAX_ORDER_ITEMS = 5


class ValidationError(ValueError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field


@dataclass(frozen=True)
class Registration:
    username: str
    email: str
    password: str
    full_name: Optional[str]


def validate_login(username: str, password: str) -> Tuple[str, str]:
    username = (username or "").strip()
    if not username or not password:
        raise ValidationError("Username and password are required.", "username")
    return username, password


def validate_registration(
    username: str,
    email: str,
    password: str,
    confirm_password: str,
    full_name: str = "",
) -> Registration:
    username = (username or "").strip()
    email = (email or "").strip()
    if not username:
        raise ValidationError("Username is required", "username")
    if not email:
        raise ValidationError("Email is required", "email")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            "password",
        )
    if password != confirm_password:
        raise ValidationError("Passwords do not match", "confirm_password")
    full_name = (full_name or "").strip()
    return Registration(username, email, password, full_name or None)


def validate_google_credential(credential: str) -> str:
    credential = (credential or "").strip()
    if not credential:
        raise ValidationError(
            "Google sign-in did not provide a credential", "credential"
        )
    return credential


def validate_comments(comments: str) -> str:
    comments = (comments or "").strip()
    if not comments:
        raise ValidationError("Comments are required", "comments")
    return comments


def validate_delivery_address(address: str) -> str:
    address = (address or "").strip()
    if not address:
        raise ValidationError("Delivery address is required", "delivery_address")
    return address


def validate_courier(
    courier_name: str, tracking_number: str, dispatch_date: str
) -> Tuple[str, str, datetime]:
    """``dispatch_date`` is ``YYYY-MM-DD HH:MM`` (or any ISO-8601), local time."""
    courier_name = (courier_name or "").strip()
    tracking_number = (tracking_number or "").strip()
    dispatch_date = (dispatch_date or "").strip()
    if not courier_name or not tracking_number or not dispatch_date:
        raise ValidationError("All courier fields are required")
    try:
        when = datetime.fromisoformat(dispatch_date)
    except ValueError:
        raise ValidationError(
            "Dispatch date must look like 2025-01-31 14:30", "dispatch_date"
        ) from None
    if when.tzinfo is None:
        when = when.astimezone()
    return courier_name, tracking_number, when


def validate_order_form(
    shipping_address: str, lines: Sequence[Tuple[Optional[str], int]]
) -> Tuple[str, List[OrderLineRequest]]:
    """
    ``lines`` are (product_id or None, quantity) rows of the new-order form.
    Blank rows are skipped; quantities below 1 become 1.
    """
    shipping_address = (shipping_address or "").strip()
    if not shipping_address:
        raise ValidationError("Shipping address is required", "shipping_address")
    if len(lines) > MAX_ORDER_ITEMS:
        raise ValidationError(f"An order can hold at most {MAX_ORDER_ITEMS} lines")
    prepared = [
        OrderLineRequest(product_id, max(1, int(quantity)))
        for product_id, quantity in lines
        if product_id
    ]
    if not prepared:
        raise ValidationError("Choose at least one product", "items")
    return shipping_address, prepared


def parse_quantity(raw: str, maximum: Optional[int] = None) -> int:
    try:
        quantity = int((raw or "").strip())
    except ValueError:
        raise ValidationError("Quantity must be a whole number", "quantity") from None
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1", "quantity")
    if maximum is not None and quantity > maximum:
        raise ValidationError(f"Only {maximum} in stock", "quantity")
    return quantity


def _spec_value(raw: str) -> SpecValue:
    lowered = raw.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        number = float(raw)
    except ValueError:
        return raw
    # nan and inf have no JSON form
    if not math.isfinite(number):
        raise ValueError(f"{raw!r} is not a finite number")
    return number


def parse_specifications(lines: Iterable[str]) -> Dict[str, SpecValue]:
    """``key=value`` per line; blank lines ignored."""
    specs: Dict[str, SpecValue] = {}
    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        key, sep, value = line.partition("=")
        if not sep or not key.strip():
            raise ValidationError(
                f"Specification line {lineno} must look like key=value",
                "specifications",
            )
        try:
            specs[key.strip()] = _spec_value(value.strip())
        except ValueError:
            raise ValidationError(
                f"Specification line {lineno} must hold a finite number",
                "specifications",
            ) from None
    return specs


def validate_new_product(
    sku: str,
    name: str,
    description: str,
    price: str,
    stock_quantity: str,
    specifications: str = "",
    active: bool = True,
) -> NewProduct:
    sku, name, description = (
        (sku or "").strip(),
        (name or "").strip(),
        (description or "").strip(),
    )
    if not sku:
        raise ValidationError("SKU is required", "sku")
    if not name:
        raise ValidationError("Name is required", "name")
    if not description:
        raise ValidationError("Description is required", "description")
    try:
        price_val = float(price)
    except (TypeError, ValueError):
        raise ValidationError("Price must be a number", "price") from None
    if not math.isfinite(price_val) or price_val <= 0:
        raise ValidationError("Price must be positive", "price")
    try:
        stock_val = int(stock_quantity)
    except (TypeError, ValueError):
        raise ValidationError("Stock must be a whole number", "stock") from None
    if stock_val < 0:
        raise ValidationError("Stock cannot be negative", "stock")
    return NewProduct(
        sku=sku,
        name=name,
        description=description,
        price=price_val,
        stock_quantity=stock_val,
        specifications=parse_specifications((specifications or "").splitlines()),
        active=active,
    )
