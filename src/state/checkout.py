from typing import Optional

import api.endpoints as endpoints
from api.client import PortalClient
from api.models import Order, OrderLineRequest
from state.cart import CartStore
from state.session import SessionStore
from utils.forms import ValidationError
from utils.logger import get_logger

_logger = get_logger(__name__)


async def place_order(
    client: PortalClient,
    session: SessionStore,
    cart: CartStore,
    shipping_address: str,
    customer_gst: Optional[str] = None,
) -> Order:
    """
    Submit the whole cart as one order.

    Validation happens before any request. The cart is cleared and closed
    only once the backend confirmed the order; on failure it is untouched.
    """
    token, _ = await session.require_auth()

    if not cart.items:
        raise ValidationError("Add items to your cart before placing an order.")
    address = (shipping_address or "").strip()
    if not address:
        raise ValidationError("Shipping address is required.", "shipping_address")
    if cart.unavailable_items():
        raise ValidationError("Remove unavailable items before placing the order.")

    lines = [OrderLineRequest(item.product.id, item.quantity) for item in cart.items]
    order = await endpoints.create_order(
        client,
        token,
        address,
        lines,
        customer_gst=(customer_gst or "").strip() or None,
    )
    _logger.info(f"Order {order.id} placed with {len(lines)} line(s).")
    cart.clear_cart()
    cart.close()
    return order
