import re
import tempfile
import unittest
from datetime import date, datetime, timezone

from support import make_product, order_json

from api.models import Order, OrderStatus
from utils.downloads import new_users_filename, onboarding_filename, save_download
from utils.pure import (
    escape_cell,
    format_currency,
    format_datetime,
    generate_markdown_table,
    generate_tracking_number,
)
from utils.reports import (
    average_items_per_order,
    inventory_value,
    revenue,
    status_counts,
    top_items,
)


def order(oid, status, items):
    return Order.from_json(order_json(oid, status.value, items))


class ReportsTestCase(unittest.TestCase):
    def setUp(self):
        self.orders = [
            order("o1", OrderStatus.APPROVED, [("p1", "Banner", 2, 100.0)]),
            order(
                "o2",
                OrderStatus.FULFILLED,
                [("p2", "Poster", 5, 10.0), ("p1", "Banner", 1, 100.0)],
            ),
            order("o3", OrderStatus.REJECTED, [("p3", "Flyer", 50, 1.0)]),
            order("o4", OrderStatus.PENDING_APPROVAL, [("p2", "Poster", 1, 10.0)]),
        ]

    def test_status_counts_cover_every_status(self):
        counts = status_counts(self.orders)
        self.assertEqual(set(counts), set(OrderStatus))
        self.assertEqual(counts[OrderStatus.APPROVED], 1)
        self.assertEqual(counts[OrderStatus.IN_TRANSIT], 0)

    def test_revenue_counts_committed_orders_only(self):
        self.assertEqual(revenue(self.orders), 200.0 + 150.0)
        self.assertEqual(revenue([]), 0)

    def test_average_items(self):
        self.assertEqual(average_items_per_order(self.orders), (2 + 6 + 50 + 1) / 4)
        self.assertEqual(average_items_per_order([]), 0.0)

    def test_inventory_value_ignores_missing_price(self):
        products = [
            make_product("a", stock=3, price=10.0),
            make_product("b", price=None),
        ]
        self.assertEqual(inventory_value(products), 30.0)

    def test_top_items(self):
        top = top_items(self.orders)
        self.assertEqual([t.product_id for t in top], ["p3", "p2", "p1"])
        self.assertEqual(top[1].quantity, 6)
        self.assertEqual(top[2].revenue, 300.0)
        self.assertEqual(len(top_items(self.orders, k=1)), 1)


class PureHelpersTestCase(unittest.TestCase):
    def test_markdown_table(self):
        table = generate_markdown_table(
            ["Name", "Qty"], [["Banner | large", "2"], [None, "1"]], ["l", "r"]
        )
        self.assertEqual(
            table.splitlines(),
            [
                "| Name | Qty |",
                "| :--- | ---: |",
                "| Banner \\| large | 2 |",
                "| - | 1 |",
            ],
        )
        self.assertEqual(generate_markdown_table(["A"], []), "")
        with self.assertRaises(ValueError):
            generate_markdown_table(["A", "B"], [["1", "2"]], ["l"])

    def test_escape_cell_flattens_newlines(self):
        self.assertEqual(escape_cell("a\nb"), "a b")
        self.assertEqual(escape_cell(3), "3")

    def test_currency_grouping(self):
        self.assertEqual(format_currency(0), "₹0.00")
        self.assertEqual(format_currency(999.5), "₹999.50")
        self.assertEqual(format_currency(123456.5), "₹1,23,456.50")
        self.assertEqual(format_currency(12345678), "₹1,23,45,678.00")
        self.assertEqual(format_currency(-1500), "-₹1,500.00")
        self.assertEqual(format_currency(None), "-")

    def test_format_datetime(self):
        self.assertEqual(format_datetime(None), "-")
        naive = datetime(2025, 1, 31, 14, 5)
        self.assertEqual(format_datetime(naive), "31 Jan 2025, 14:05")
        self.assertEqual(format_datetime(naive, with_time=False), "31 Jan 2025")
        aware = datetime(2025, 1, 31, 14, 5, tzinfo=timezone.utc)
        self.assertEqual(format_datetime(aware), format_datetime(aware.astimezone()))

    def test_tracking_number_shape(self):
        self.assertRegex(generate_tracking_number(), re.compile(r"^[A-Z0-9]{8}\d{4}$"))


class DownloadsTestCase(unittest.IsolatedAsyncioTestCase):
    def test_filenames(self):
        self.assertEqual(
            new_users_filename(date(2025, 3, 9)), "new-users-2025-03-09.xlsx"
        )
        self.assertEqual(onboarding_filename(30), "onboarding-last-30-days.xlsx")

    async def test_save_download_creates_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = await save_download(f"{tmp}/exports", "report.xlsx", b"data")
            self.assertTrue(path.is_file())
            self.assertEqual(path.read_bytes(), b"data")


if __name__ == "__main__":
    unittest.main()
