import asyncio
import os
import tempfile
import unittest

from support import FakeBackend, make_product, mint_token, order_json

from api.errors import ApiError, NetworkError, UnauthorizedError
from api.models import Order, UserMetrics
from state.cart import CartItem
from state.errors import SessionExpiredError
from state.session import SessionStore
from state.storage import LocalStorage
from utils.forms import ValidationError
from views.base_screen import gather_or_cancel, menu_for, report_failure
from views.modal_product import product_markdown
from views.scr_admin_users import metrics_markdown
from views.scr_cart import stock_hint
from views.scr_reports import report_markdown


class RecordingNode:
    """Stands in for the App/Widget a failure is reported on."""

    def __init__(self):
        self.notes = []

    def notify(self, message, severity="information"):
        self.notes.append((message, severity))


class SessionViewsTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.client = FakeBackend().client()
        self.session = SessionStore(
            LocalStorage(os.path.join(self.tmpdir.name, "auth.db")), self.client
        )
        self.node = RecordingNode()

    async def asyncTearDown(self):
        self.session.close()
        await self.client.aclose()
        self.tmpdir.cleanup()

    # ---------- menu ----------

    async def test_menu_per_role(self):
        self.assertEqual(menu_for(self.session), [])
        expected = {
            "STORE_USER": ["orders", "products", "cart", "reports", "notifications"],
            "APPROVER": ["orders", "products", "reports", "notifications"],
            "FULFILLMENT_AGENT": ["orders", "products", "reports"],
            "ADMIN": [
                "orders",
                "products",
                "cart",
                "reports",
                "notifications",
                "admin_users",
            ],
        }
        for role, modes in expected.items():
            await self.session.login(mint_token("u", role))
            self.assertEqual([m for m, _ in menu_for(self.session)], modes)

    # ---------- failure reporting ----------

    async def test_unauthorized_signs_out(self):
        await self.session.login(mint_token())
        await report_failure(
            self.node, self.session, UnauthorizedError("expired", 401), "fallback"
        )
        self.assertFalse(self.session.is_authenticated)
        self.assertEqual(
            self.node.notes,
            [("Your session has expired. Please sign in again.", "error")],
        )

    async def test_session_error_when_already_signed_out(self):
        await report_failure(self.node, self.session, SessionExpiredError(), "fallback")
        self.assertEqual(len(self.node.notes), 1)

    async def test_messages_by_error_kind(self):
        await report_failure(
            self.node, self.session, NetworkError("dns"), "Unable to load orders"
        )
        await report_failure(
            self.node, self.session, ApiError("Insufficient stock", 409), "x"
        )
        await report_failure(
            self.node, self.session, ValidationError("Comments are required"), "x"
        )
        self.assertEqual(
            [m for m, _ in self.node.notes],
            ["Unable to load orders", "Insufficient stock", "Comments are required"],
        )

    async def test_unexpected_errors_propagate(self):
        with self.assertRaises(KeyError):
            await report_failure(self.node, self.session, KeyError("x"), "fallback")

    # ---------- gather ----------

    async def test_gather_or_cancel(self):
        self.assertEqual(
            await gather_or_cancel(asyncio.sleep(0, "a"), asyncio.sleep(0, "b")),
            ["a", "b"],
        )

        slow_cancelled = asyncio.Event()

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                slow_cancelled.set()
                raise

        async def boom():
            await asyncio.sleep(0)
            raise ApiError("down", 503)

        with self.assertRaises(ApiError):
            await gather_or_cancel(slow(), boom())
        await asyncio.wait_for(slow_cancelled.wait(), timeout=1)


class MarkdownViewsTestCase(unittest.TestCase):
    def test_stock_hint(self):
        self.assertEqual(stock_hint(CartItem(make_product(stock=10), 1)), "")
        self.assertEqual(stock_hint(CartItem(make_product(stock=3), 1)), "Only 3 left")
        self.assertEqual(stock_hint(CartItem(make_product(stock=0), 1)), "Out of stock")
        self.assertEqual(
            stock_hint(CartItem(make_product(active=False), 1)), "No longer available"
        )

    def test_product_markdown(self):
        prod = make_product("p1", name="Banner", price=1500.0)
        md = product_markdown(prod)
        self.assertTrue(md.startswith("### Banner"))
        self.assertIn("| Price | ₹1,500.00 |", md)
        self.assertNotIn("Specifications", md)

    def test_report_markdown(self):
        orders = [
            Order.from_json(order_json("o1", "APPROVED", [("p1", "Banner", 2, 50.0)]))
        ]
        md = report_markdown(orders, [make_product(stock=2, price=10.0)])
        self.assertIn("- Orders: 1", md)
        self.assertIn("₹100.00", md)
        self.assertIn("| Pending approval | 0 |", md)
        self.assertIn("| Banner | 2 | ₹100.00 |", md)
        self.assertIn("No orders yet.", report_markdown([], []))

    def test_metrics_markdown(self):
        metrics = UserMetrics(10, 4, 6, 2, 1, 1, 7)
        md = metrics_markdown(metrics)
        self.assertIn("| Active in last 7 days | 4 |", md)
        self.assertIn("| Approver | 2 |", md)


if __name__ == "__main__":
    unittest.main()
