"""Shared fixtures for the portal tests: tokens, products and fake HTTP backends."""

import json
import os
import sys
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import jwt

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from api.client import PortalClient  # noqa: E402
from api.models import Product  # noqa: E402

BASE_URL = "http://portal.test"
SECRET = "portal-test-secret-with-more-than-32-bytes"


def mint_token(
    sub: str = "alice",
    role: str = "STORE_USER",
    expires_in: Optional[float] = 3600,
    **claims: Any,
) -> str:
    """HS256 token; ``expires_in`` seconds from now (negative = already expired)."""
    payload: Dict[str, Any] = {"sub": sub, "role": role, **claims}
    if expires_in is not None:
        payload["exp"] = time.time() + expires_in
    return jwt.encode(payload, SECRET, algorithm="HS256")


def make_product(
    pid: str = "p1",
    stock: int = 5,
    active: bool = True,
    price: Optional[float] = 100.0,
    name: Optional[str] = None,
) -> Product:
    return Product(
        id=pid,
        sku=f"SKU-{pid}",
        name=name or f"Product {pid}",
        description="",
        stock_quantity=stock,
        active=active,
        price=price,
    )


def order_json(
    oid: str = "o1",
    status: str = "PENDING_APPROVAL",
    items: Optional[List[Tuple[str, str, int, float]]] = None,
    courier: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """``items`` are (product_id, name, quantity, unit_price)."""
    items = items or [("p1", "Banner", 2, 50.0)]
    lines = [
        {
            "productId": pid,
            "productName": name,
            "quantity": qty,
            "unitPrice": price,
            "lineTotal": qty * price,
        }
        for pid, name, qty, price in items
    ]
    return {
        "id": oid,
        "status": status,
        "shippingAddress": "Store 12, MG Road",
        "items": lines,
        "totalAmount": sum(line["lineTotal"] for line in lines),
        "createdAt": "2025-01-10T09:30:00+05:30",
        "courierInfo": courier,
    }


Handler = Callable[[httpx.Request], httpx.Response]


class FakeBackend:
    """
    Routes ``(METHOD, path)`` to canned handlers and records every request.
    Unrouted requests answer 404.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method, path)] = handler

    def json(self, method: str, path: str, body: Any, status: int = 200) -> None:
        self.on(method, path, lambda _req: httpx.Response(status, json=body))

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "Not found"})
        return handler(request)

    def client(self) -> PortalClient:
        return PortalClient(BASE_URL, transport=httpx.MockTransport(self.handle))

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)
