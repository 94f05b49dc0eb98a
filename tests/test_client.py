import json
import unittest
from datetime import datetime, timezone

import httpx
from support import FakeBackend, order_json

from api import endpoints
from api.errors import ApiError, NetworkError, UnauthorizedError
from api.models import NewProduct, OrderLineRequest, OrderStatus, UserRole


class PortalClientTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.backend = FakeBackend()
        self.client = self.backend.client()

    async def asyncTearDown(self):
        await self.client.aclose()

    # ---------- transport & errors ----------

    async def test_bearer_token_attached_only_when_given(self):
        self.backend.json("GET", "/ping", {"ok": True})
        body = await self.client.request("GET", "/ping", token="tkn")
        self.assertEqual(body, {"ok": True})
        await self.client.request("GET", "/ping")

        first, second = self.backend.requests
        self.assertEqual(first.headers["Authorization"], "Bearer tkn")
        self.assertNotIn("Authorization", second.headers)

    async def test_empty_and_no_content_bodies(self):
        self.backend.on("DELETE", "/thing", lambda _r: httpx.Response(204))
        self.backend.on("POST", "/thing", lambda _r: httpx.Response(200))
        self.assertIsNone(await self.client.request("DELETE", "/thing"))
        self.assertIsNone(await self.client.request("POST", "/thing"))

    async def test_none_params_are_dropped(self):
        self.backend.json("GET", "/search", [])
        await self.client.request("GET", "/search", params={"a": 1, "b": None})
        self.assertEqual(dict(self.backend.requests[-1].url.params), {"a": "1"})

    async def test_error_message_from_body(self):
        cases = [
            ({"message": "Stock exhausted"}, 409, "Stock exhausted"),
            ({"detail": "Bad GST number"}, 400, "Bad GST number"),
            ({"error": "nope"}, 500, "Request failed with status 500"),
        ]
        for body, status, expected in cases:
            self.backend.json("GET", "/fail", body, status=status)
            with self.assertRaises(ApiError) as ctx:
                await self.client.request("GET", "/fail")
            self.assertEqual(ctx.exception.message, expected)
            self.assertEqual(ctx.exception.status, status)

    async def test_non_json_error_body(self):
        self.backend.on("GET", "/fail", lambda _r: httpx.Response(502, text="<html>"))
        with self.assertRaises(ApiError) as ctx:
            await self.client.request("GET", "/fail")
        self.assertEqual(ctx.exception.message, "Request failed with status 502")

    async def test_non_json_success_body(self):
        self.backend.on("GET", "/page", lambda _r: httpx.Response(200, text="<html>"))
        with self.assertRaises(ApiError) as ctx:
            await self.client.request("GET", "/page")
        self.assertEqual(ctx.exception.message, "Unexpected response from the portal")
        self.assertEqual(ctx.exception.status, 200)

    async def test_unauthorized(self):
        self.backend.json("GET", "/me", {"message": "Token expired"}, status=401)
        with self.assertRaises(UnauthorizedError) as ctx:
            await self.client.request("GET", "/me", token="old")
        self.assertEqual(ctx.exception.message, "Token expired")

    async def test_transport_failure_becomes_network_error(self):
        def unreachable(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        self.backend.on("GET", "/slow", unreachable)
        with self.assertRaises(NetworkError) as ctx:
            await self.client.request("GET", "/slow")
        self.assertTrue(ctx.exception.message.startswith("Unable to reach the portal"))
        self.assertIsNone(ctx.exception.status)

    async def test_request_bytes(self):
        self.backend.on(
            "GET", "/file", lambda _r: httpx.Response(200, content=b"PK\x03")
        )
        data = await self.client.request_bytes("GET", "/file", accept="application/zip")
        self.assertEqual(data, b"PK\x03")
        self.assertEqual(self.backend.requests[-1].headers["Accept"], "application/zip")


class EndpointsTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.backend = FakeBackend()
        self.client = self.backend.client()

    async def asyncTearDown(self):
        await self.client.aclose()

    # ---------- auth ----------

    async def test_login_returns_token(self):
        self.backend.json("POST", "/api/v1/auth/login", {"token": "abc"})
        token = await endpoints.login(self.client, "alice", "secret123")
        self.assertEqual(token, "abc")
        self.assertEqual(
            self.backend.last_json(), {"username": "alice", "password": "secret123"}
        )

    async def test_google_login(self):
        self.backend.json("POST", "/api/v1/auth/login/google", {"token": "g"})
        self.assertEqual(await endpoints.login_with_google(self.client, "cred"), "g")
        self.assertEqual(self.backend.last_json(), {"credential": "cred"})

    async def test_register(self):
        self.backend.json(
            "POST",
            "/api/v1/auth/register",
            {"id": 7, "username": "bob", "email": "b@x.io", "role": "STORE_USER"},
        )
        account = await endpoints.register(
            self.client, "bob", "pw123456", "b@x.io", "Bob"
        )
        self.assertEqual(account.id, "7")
        self.assertEqual(account.role, UserRole.STORE_USER)
        self.assertEqual(self.backend.last_json()["fullName"], "Bob")

    # ---------- orders ----------

    async def test_list_orders_with_status_filter(self):
        self.backend.json("GET", "/api/v1/orders", [order_json(status="APPROVED")])
        orders = await endpoints.list_orders(self.client, "t", OrderStatus.APPROVED)
        self.assertEqual(orders[0].status, OrderStatus.APPROVED)
        self.assertEqual(orders[0].item_count, 2)
        self.assertEqual(self.backend.requests[-1].url.params["status"], "APPROVED")

        await endpoints.list_orders(self.client, "t")
        self.assertNotIn("status", self.backend.requests[-1].url.params)

    async def test_create_order_payload(self):
        self.backend.json("POST", "/api/v1/orders", order_json())
        await endpoints.create_order(
            self.client,
            "t",
            "Store 12",
            [OrderLineRequest("p1", 2), OrderLineRequest("p2", 1)],
            customer_gst="",
        )
        self.assertEqual(
            self.backend.last_json(),
            {
                "shippingAddress": "Store 12",
                "customerGst": None,
                "items": [
                    {"productId": "p1", "quantity": 2},
                    {"productId": "p2", "quantity": 1},
                ],
            },
        )

    async def test_order_transitions(self):
        for action in ("approve", "reject"):
            self.backend.json("POST", f"/api/v1/orders/o1/{action}", order_json())
        self.backend.json("POST", "/api/v1/orders/o1/accept", order_json())
        self.backend.json(
            "POST",
            "/api/v1/orders/o1/courier",
            order_json(
                status="IN_TRANSIT",
                courier={
                    "courierName": "DTDC",
                    "trackingNumber": "DT123",
                    "dispatchDate": "2025-02-01T10:00:00+00:00",
                },
            ),
        )

        await endpoints.approve_order(self.client, "t", "o1", "looks good")
        self.assertEqual(self.backend.last_json(), {"comments": "looks good"})
        await endpoints.reject_order(self.client, "t", "o1", "duplicate")
        self.assertEqual(self.backend.last_json(), {"comments": "duplicate"})
        await endpoints.accept_order(self.client, "t", "o1", "Dock 4")
        self.assertEqual(self.backend.last_json(), {"deliveryAddress": "Dock 4"})

        when = datetime(2025, 2, 1, 10, 0, tzinfo=timezone.utc)
        order = await endpoints.add_courier_info(
            self.client, "t", "o1", "DTDC", "DT123", when
        )
        self.assertEqual(
            self.backend.last_json(),
            {
                "courierName": "DTDC",
                "trackingNumber": "DT123",
                "dispatchDate": "2025-02-01T10:00:00+00:00",
            },
        )
        self.assertEqual(order.status, OrderStatus.IN_TRANSIT)
        self.assertEqual(order.courier_info.tracking_number, "DT123")
        self.assertEqual(order.courier_info.dispatch_date, when)

    # ---------- products & notifications ----------

    async def test_products(self):
        self.backend.json(
            "GET",
            "/api/v1/products",
            [
                {
                    "id": 1,
                    "sku": "BN-1",
                    "name": "Banner",
                    "stockQuantity": 3,
                    "active": True,
                    "price": "499.5",
                    "specifications": {"size": "6x3 ft"},
                }
            ],
        )
        (product,) = await endpoints.list_products(self.client, "t")
        self.assertEqual(product.id, "1")
        self.assertEqual(product.price, 499.5)
        self.assertTrue(product.available)
        self.assertEqual(product.specifications, {"size": "6x3 ft"})

        self.backend.json("POST", "/api/v1/products", {"id": 2, "name": "Poster"})
        await endpoints.create_product(
            self.client, "t", NewProduct("PO-1", "Poster", "", 99.0, 10, {"gsm": 170})
        )
        body = self.backend.last_json()
        self.assertEqual(body["stockQuantity"], 10)
        self.assertEqual(body["specifications"], {"gsm": 170})
        self.assertTrue(body["active"])

    async def test_notifications_limit(self):
        self.backend.json("GET", "/api/v1/notifications", None)
        self.assertEqual(await endpoints.list_notifications(self.client, "t", 50), [])
        self.assertEqual(self.backend.requests[-1].url.params["limit"], "50")

    # ---------- malformed bodies ----------

    async def test_unknown_order_status_is_api_error(self):
        self.backend.json("GET", "/api/v1/orders", [order_json(status="CANCELLED")])
        with self.assertRaises(ApiError) as ctx:
            await endpoints.list_orders(self.client, "t")
        self.assertEqual(ctx.exception.message, "Unexpected response from the portal")

    async def test_login_without_token_is_api_error(self):
        for body in ({}, {"token": None}, ["abc"]):
            self.backend.json("POST", "/api/v1/auth/login", body)
            with self.assertRaises(ApiError):
                await endpoints.login(self.client, "alice", "secret123")

    async def test_missing_id_is_api_error(self):
        self.backend.json("GET", "/api/v1/products", [{"name": "Banner"}])
        with self.assertRaises(ApiError):
            await endpoints.list_products(self.client, "t")

    # ---------- admin ----------

    async def test_update_user_role(self):
        self.backend.json(
            "PATCH",
            "/api/v1/admin/users/u2/role",
            {
                "id": "u2",
                "username": "carol",
                "role": "APPROVER",
                "authProvider": "GOOGLE",
            },
        )
        user = await endpoints.update_user_role(
            self.client, "t", "u2", UserRole.APPROVER
        )
        self.assertEqual(user.role, UserRole.APPROVER)
        self.assertEqual(
            json.loads(self.backend.requests[-1].content), {"role": "APPROVER"}
        )

    async def test_metrics_and_export(self):
        self.backend.json(
            "GET",
            "/api/v1/admin/users/metrics",
            {"totalUsers": 9, "activeUsers": 4, "admins": 1, "lookbackDays": 7},
        )
        metrics = await endpoints.get_user_metrics(self.client, "t", days=7)
        self.assertEqual((metrics.total_users, metrics.lookback_days), (9, 7))
        self.assertEqual(metrics.approvers, 0)

        self.backend.on(
            "GET",
            "/api/v1/admin/users/onboarding/export",
            lambda _r: httpx.Response(200, content=b"xlsx-bytes"),
        )
        data = await endpoints.download_onboarding_report(self.client, "t")
        self.assertEqual(data, b"xlsx-bytes")
        request = self.backend.requests[-1]
        self.assertNotIn("days", request.url.params)
        self.assertEqual(request.headers["Accept"], endpoints.SPREADSHEET_MIME)

        await endpoints.download_onboarding_report(self.client, "t", days=30)
        self.assertEqual(self.backend.requests[-1].url.params["days"], "30")


if __name__ == "__main__":
    unittest.main()
