from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from api.models import Product


@dataclass(frozen=True)
class CartItem:
    product: Product
    quantity: int


CartListener = Callable[[], None]


class CartStore:
    """
    In-memory cart of (product, quantity) entries, unique by product id.

    Every mutation keeps ``0 < quantity <= product.stock_quantity`` for the
    entries that remain. The cart belongs to a signed-in session: when the
    token it is bound to becomes ``None`` it is cleared and closed.
    All operations are synchronous.
    """

    def __init__(self) -> None:
        self._items: List[CartItem] = []
        self._total_quantity = 0
        self._is_open = False
        self._listeners: List[CartListener] = []

    # ---------------------------
    # Read-only view
    # ---------------------------

    @property
    def items(self) -> Tuple[CartItem, ...]:
        return tuple(self._items)

    @property
    def total_quantity(self) -> int:
        return self._total_quantity

    @property
    def is_open(self) -> bool:
        return self._is_open

    def __len__(self) -> int:
        return len(self._items)

    def quantity_of(self, product_id: str) -> int:
        for item in self._items:
            if item.product.id == product_id:
                return item.quantity
        return 0

    def unavailable_items(self) -> List[CartItem]:
        return [item for item in self._items if not item.product.available]

    def availability_messages(self) -> List[str]:
        messages = []
        for item in self.unavailable_items():
            if not item.product.active:
                messages.append(f"{item.product.name} is currently inactive.")
            else:
                messages.append(f"{item.product.name} is out of stock.")
        return messages

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------------------------
    # Mutations
    # ---------------------------

    def add_item(self, product: Product, quantity: int = 1) -> None:
        """Add ``quantity`` units, capped at stock. Unavailable products are ignored."""
        if not product.available:
            return
        quantity = max(1, int(quantity))

        items = list(self._items)
        for idx, item in enumerate(items):
            if item.product.id == product.id:
                items[idx] = CartItem(
                    product, min(item.quantity + quantity, product.stock_quantity)
                )
                break
        else:
            items.append(CartItem(product, min(quantity, product.stock_quantity)))
        self._commit(items)

    def set_item_quantity(self, product_id: str, quantity: int) -> None:
        """Clamp to ``[0, stock]``; zero removes the entry."""
        quantity = max(0, int(quantity))
        if quantity == 0:
            self.remove_item(product_id)
            return
        self._commit(
            [
                (
                    CartItem(item.product, min(quantity, item.product.stock_quantity))
                    if item.product.id == product_id
                    else item
                )
                for item in self._items
            ]
        )

    def increment_item(self, product_id: str) -> None:
        self._step(product_id, 1)

    def decrement_item(self, product_id: str) -> None:
        self._step(product_id, -1)

    def remove_item(self, product_id: str) -> None:
        self._commit([item for item in self._items if item.product.id != product_id])

    def clear_cart(self) -> None:
        self._commit([])

    def sync_product_details(self, products: Iterable[Product]) -> None:
        """
        Refresh cached product snapshots from a catalog fetch.

        Entries whose product is in ``products`` take the new snapshot with the
        quantity re-clamped to the new stock; they are dropped when the product
        is inactive, out of stock, or the clamp reaches zero. Entries missing
        from ``products`` are left alone (partial fetch, not deletion).
        """
        fresh: Dict[str, Product] = {p.id: p for p in products}
        if not fresh:
            return

        items: List[CartItem] = []
        for item in self._items:
            updated = fresh.get(item.product.id)
            if updated is None:
                items.append(item)
                continue
            capped = min(item.quantity, updated.stock_quantity)
            if not updated.active or updated.stock_quantity <= 0 or capped <= 0:
                continue
            items.append(CartItem(updated, capped))
        self._commit(items)

    # ---------------------------
    # Visibility (UI state only)
    # ---------------------------

    def open(self) -> None:
        self._set_open(True)

    def close(self) -> None:
        self._set_open(False)

    def toggle(self) -> None:
        self._set_open(not self._is_open)

    # ---------------------------
    # Session coupling
    # ---------------------------

    def handle_token_change(self, token: Optional[str]) -> None:
        """Session listener: the cart never outlives its owning session."""
        if token is None:
            self.clear_cart()
            self.close()

    # ---------------------------
    # Internals
    # ---------------------------

    def _step(self, product_id: str, delta: int) -> None:
        items: List[CartItem] = []
        for item in self._items:
            if item.product.id != product_id:
                items.append(item)
                continue
            quantity = min(item.quantity + delta, item.product.stock_quantity)
            if quantity > 0:
                items.append(CartItem(item.product, quantity))
        self._commit(items)

    def _set_open(self, is_open: bool) -> None:
        if self._is_open != is_open:
            self._is_open = is_open
            self._notify()

    def _commit(self, items: List[CartItem]) -> None:
        if items == self._items:
            return
        self._items = items
        self._total_quantity = sum(item.quantity for item in items)
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()
