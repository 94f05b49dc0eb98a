# src/api/endpoints.py
from __future__ import annotations

from datetime import datetime
from functools import partial
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from api import models
from api.client import PortalClient
from api.errors import ApiError
from utils.logger import get_logger

_logger = get_logger(__name__)

API_PREFIX = "/api/v1"
SPREADSHEET_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

T = TypeVar("T")


def _parse(parse: Callable[[Any], T], data: Any) -> T:
    """Run a response parser; a body that does not fit the schema is an ApiError."""
    try:
        return parse(data)
    except (KeyError, ValueError, TypeError, AttributeError) as e:
        _logger.warning(f"Malformed portal response: {e!r}")
        raise ApiError("Unexpected response from the portal") from e


def _token(data: Any) -> str:
    token = data["token"]
    if not isinstance(token, str) or not token:
        raise ValueError("token is not a non-empty string")
    return token


# ---------------------------
# Auth & Registration
# ---------------------------


async def login(client: PortalClient, username: str, password: str) -> str:
    """Exchange username/password for a bearer token."""
    data = await client.request(
        "POST",
        f"{API_PREFIX}/auth/login",
        json={"username": username, "password": password},
    )
    return _parse(_token, data)


async def login_with_google(client: PortalClient, credential: str) -> str:
    """Exchange a Google ID-token credential for a portal bearer token."""
    data = await client.request(
        "POST", f"{API_PREFIX}/auth/login/google", json={"credential": credential}
    )
    return _parse(_token, data)


async def register(
    client: PortalClient,
    username: str,
    password: str,
    email: str,
    full_name: Optional[str] = None,
) -> models.UserAccount:
    """Self-register a store user. The server assigns STORE_USER."""
    data = await client.request(
        "POST",
        f"{API_PREFIX}/auth/register",
        json={
            "username": username,
            "password": password,
            "email": email,
            "fullName": full_name,
        },
    )
    return _parse(models.UserAccount.from_json, data)


async def get_session(client: PortalClient, token: str) -> models.CurrentUser:
    """Authoritative profile of the token's owner."""
    data = await client.request("GET", f"{API_PREFIX}/auth/session", token=token)
    return _parse(models.CurrentUser.from_json, data)


# ---------------------------
# Orders
# ---------------------------


async def list_orders(
    client: PortalClient, token: str, status: Optional[models.OrderStatus] = None
) -> List[models.Order]:
    params = {"status": status.value} if status else None
    data = await client.request(
        "GET", f"{API_PREFIX}/orders", token=token, params=params
    )
    return _parse(partial(models.parse_list, models.Order), data)


async def create_order(
    client: PortalClient,
    token: str,
    shipping_address: str,
    items: Iterable[models.OrderLineRequest],
    customer_gst: Optional[str] = None,
) -> models.Order:
    data = await client.request(
        "POST",
        f"{API_PREFIX}/orders",
        token=token,
        json={
            "shippingAddress": shipping_address,
            "customerGst": customer_gst or None,
            "items": [item.to_json() for item in items],
        },
    )
    return _parse(models.Order.from_json, data)


async def approve_order(
    client: PortalClient, token: str, order_id: str, comments: str
) -> models.Order:
    data = await client.request(
        "POST",
        f"{API_PREFIX}/orders/{order_id}/approve",
        token=token,
        json={"comments": comments},
    )
    return _parse(models.Order.from_json, data)


async def reject_order(
    client: PortalClient, token: str, order_id: str, comments: str
) -> models.Order:
    data = await client.request(
        "POST",
        f"{API_PREFIX}/orders/{order_id}/reject",
        token=token,
        json={"comments": comments},
    )
    return _parse(models.Order.from_json, data)


async def accept_order(
    client: PortalClient, token: str, order_id: str, delivery_address: str
) -> models.Order:
    """Fulfilment accepts an approved order and records where it goes."""
    data = await client.request(
        "POST",
        f"{API_PREFIX}/orders/{order_id}/accept",
        token=token,
        json={"deliveryAddress": delivery_address},
    )
    return _parse(models.Order.from_json, data)


async def add_courier_info(
    client: PortalClient,
    token: str,
    order_id: str,
    courier_name: str,
    tracking_number: str,
    dispatch_date: datetime,
) -> models.Order:
    data = await client.request(
        "POST",
        f"{API_PREFIX}/orders/{order_id}/courier",
        token=token,
        json={
            "courierName": courier_name,
            "trackingNumber": tracking_number,
            "dispatchDate": dispatch_date.isoformat(),
        },
    )
    return _parse(models.Order.from_json, data)


# ---------------------------
# Products
# ---------------------------


async def list_products(client: PortalClient, token: str) -> List[models.Product]:
    data = await client.request("GET", f"{API_PREFIX}/products", token=token)
    return _parse(partial(models.parse_list, models.Product), data)


async def create_product(
    client: PortalClient, token: str, product: models.NewProduct
) -> models.Product:
    data = await client.request(
        "POST", f"{API_PREFIX}/products", token=token, json=product.to_json()
    )
    return _parse(models.Product.from_json, data)


# ---------------------------
# Notifications
# ---------------------------


async def list_notifications(
    client: PortalClient, token: str, limit: int = 30
) -> List[models.NotificationEntry]:
    data = await client.request(
        "GET", f"{API_PREFIX}/notifications", token=token, params={"limit": limit}
    )
    return _parse(partial(models.parse_list, models.NotificationEntry), data)


# ---------------------------
# Admin: users
# ---------------------------


async def list_managed_users(
    client: PortalClient, token: str
) -> List[models.ManagedUser]:
    data = await client.request("GET", f"{API_PREFIX}/admin/users", token=token)
    return _parse(partial(models.parse_list, models.ManagedUser), data)


async def update_user_role(
    client: PortalClient, token: str, user_id: str, role: models.UserRole
) -> models.ManagedUser:
    data = await client.request(
        "PATCH",
        f"{API_PREFIX}/admin/users/{user_id}/role",
        token=token,
        json={"role": role.value},
    )
    return _parse(models.ManagedUser.from_json, data)


async def get_user_metrics(
    client: PortalClient, token: str, days: int = 30
) -> models.UserMetrics:
    data = await client.request(
        "GET",
        f"{API_PREFIX}/admin/users/metrics",
        token=token,
        params={"days": days},
    )
    return _parse(models.UserMetrics.from_json, data)


async def download_onboarding_report(
    client: PortalClient, token: str, days: Optional[int] = None
) -> bytes:
    """Spreadsheet of recent signups; ``days=None`` lets the server pick the window."""
    params: Dict[str, int] = {"days": days} if days is not None else {}
    return await client.request_bytes(
        "GET",
        f"{API_PREFIX}/admin/users/onboarding/export",
        token=token,
        params=params,
        accept=SPREADSHEET_MIME,
    )
