# dataclass models for the payloads exchanged with the portal API

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

SpecValue = Union[str, int, float, bool, None]


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    APPROVER = "APPROVER"
    STORE_USER = "STORE_USER"
    FULFILLMENT_AGENT = "FULFILLMENT_AGENT"

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]


ROLE_LABELS = {
    UserRole.STORE_USER: "Store",
    UserRole.APPROVER: "Approver",
    UserRole.FULFILLMENT_AGENT: "Fulfillment",
    UserRole.ADMIN: "Admin",
}


class AuthProvider(str, Enum):
    LOCAL = "LOCAL"
    GOOGLE = "GOOGLE"


class OrderStatus(str, Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    IN_TRANSIT = "IN_TRANSIT"
    FULFILLED = "FULFILLED"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


def parse_datetime(val: Optional[str]) -> Optional[datetime]:
    if not val:
        return None
    return datetime.fromisoformat(val)


def _opt_float(val) -> Optional[float]:
    return None if val is None else float(val)


@dataclass(frozen=True)
class Product:
    id: str
    sku: str
    name: str
    description: str
    stock_quantity: int
    active: bool
    price: Optional[float] = None
    image_url: Optional[str] = None
    specifications: Dict[str, SpecValue] = field(default_factory=dict, hash=False)
    created_at: Optional[datetime] = None

    @property
    def available(self) -> bool:
        return self.active and self.stock_quantity > 0

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "Product":
        return cls(
            id=str(data["id"]),
            sku=data.get("sku") or "",
            name=data.get("name") or "",
            description=data.get("description") or "",
            stock_quantity=int(data.get("stockQuantity") or 0),
            active=bool(data.get("active")),
            price=_opt_float(data.get("price")),
            image_url=data.get("imageUrl"),
            specifications=dict(data.get("specifications") or {}),
            created_at=parse_datetime(data.get("createdAt")),
        )


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    line_total: float
    image_url: Optional[str] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "OrderItem":
        return cls(
            product_id=str(data["productId"]),
            product_name=data.get("productName") or "",
            quantity=int(data["quantity"]),
            unit_price=float(data.get("unitPrice") or 0),
            line_total=float(data.get("lineTotal") or 0),
            image_url=data.get("imageUrl"),
        )


@dataclass(frozen=True)
class CourierInfo:
    courier_name: str
    tracking_number: str
    dispatch_date: Optional[datetime] = None

    @classmethod
    def from_json(cls, data: Optional[Mapping[str, Any]]) -> Optional["CourierInfo"]:
        if not data:
            return None
        return cls(
            courier_name=data["courierName"],
            tracking_number=data["trackingNumber"],
            dispatch_date=parse_datetime(data.get("dispatchDate")),
        )


@dataclass(frozen=True)
class Order:
    id: str
    status: OrderStatus
    shipping_address: str
    items: Tuple[OrderItem, ...]
    total_amount: float
    created_at: Optional[datetime]
    delivery_address: Optional[str] = None
    customer_gst: Optional[str] = None
    courier_info: Optional[CourierInfo] = None

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "Order":
        return cls(
            id=str(data["id"]),
            status=OrderStatus(data["status"]),
            shipping_address=data.get("shippingAddress") or "",
            items=tuple(OrderItem.from_json(i) for i in data.get("items") or []),
            total_amount=float(data.get("totalAmount") or 0),
            created_at=parse_datetime(data.get("createdAt")),
            delivery_address=data.get("deliveryAddress"),
            customer_gst=data.get("customerGst"),
            courier_info=CourierInfo.from_json(data.get("courierInfo")),
        )


@dataclass(frozen=True)
class NotificationEntry:
    id: str
    subject: str
    recipients: str
    body: str
    created_at: Optional[datetime]

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "NotificationEntry":
        return cls(
            id=str(data["id"]),
            subject=data.get("subject") or "",
            recipients=data.get("recipients") or "",
            body=data.get("body") or "",
            created_at=parse_datetime(data.get("createdAt")),
        )


@dataclass(frozen=True)
class ManagedUser:
    id: str
    username: str
    email: Optional[str]
    role: UserRole
    auth_provider: AuthProvider
    full_name: Optional[str] = None
    first_login_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    login_count: Optional[int] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ManagedUser":
        return cls(
            id=str(data["id"]),
            username=data["username"],
            email=data.get("email"),
            role=UserRole(data["role"]),
            auth_provider=AuthProvider(data.get("authProvider") or "LOCAL"),
            full_name=data.get("fullName"),
            first_login_at=parse_datetime(data.get("firstLoginAt")),
            last_login_at=parse_datetime(data.get("lastLoginAt")),
            login_count=data.get("loginCount"),
        )


@dataclass(frozen=True)
class UserAccount:
    id: str
    username: str
    email: Optional[str]
    role: UserRole

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "UserAccount":
        return cls(
            id=str(data["id"]),
            username=data["username"],
            email=data.get("email"),
            role=UserRole(data["role"]),
        )


@dataclass(frozen=True)
class CurrentUser:
    id: str
    username: str
    email: Optional[str]
    role: UserRole
    auth_provider: Optional[AuthProvider]
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "CurrentUser":
        provider = data.get("authProvider")
        return cls(
            id=str(data["id"]),
            username=data["username"],
            email=data.get("email"),
            role=UserRole(data["role"]),
            auth_provider=AuthProvider(provider) if provider else None,
            full_name=data.get("fullName"),
            avatar_url=data.get("avatarUrl"),
        )


@dataclass(frozen=True)
class UserMetrics:
    total_users: int
    active_users: int
    store_users: int
    approvers: int
    fulfillment_agents: int
    admins: int
    lookback_days: int

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "UserMetrics":
        return cls(
            total_users=int(data.get("totalUsers") or 0),
            active_users=int(data.get("activeUsers") or 0),
            store_users=int(data.get("storeUsers") or 0),
            approvers=int(data.get("approvers") or 0),
            fulfillment_agents=int(data.get("fulfillmentAgents") or 0),
            admins=int(data.get("admins") or 0),
            lookback_days=int(data.get("lookbackDays") or 0),
        )


@dataclass(frozen=True)
class OrderLineRequest:
    product_id: str
    quantity: int

    def to_json(self) -> Dict[str, Any]:
        return {"productId": self.product_id, "quantity": self.quantity}


@dataclass(frozen=True)
class NewProduct:
    sku: str
    name: str
    description: str
    price: float
    stock_quantity: int
    specifications: Dict[str, SpecValue] = field(default_factory=dict, hash=False)
    active: bool = True

    def to_json(self) -> Dict[str, Any]:
        return {
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "specifications": self.specifications,
            "stockQuantity": self.stock_quantity,
            "active": self.active,
        }


def parse_list(model, payload: Optional[List[Mapping[str, Any]]]) -> List:
    """Parse a JSON array with ``model.from_json``; a missing body yields []."""
    return [model.from_json(entry) for entry in payload or []]
