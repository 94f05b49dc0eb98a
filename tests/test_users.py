import asyncio
import unittest

import httpx
from support import FakeBackend

from api.errors import ApiError
from api.models import AuthProvider, ManagedUser, UserRole
from state.optimistic import apply_optimistic
from state.users import UserDirectory

ROLE_PATH = "/api/v1/admin/users/u1/role"


def managed(uid="u1", username="carol", role=UserRole.STORE_USER):
    return ManagedUser(
        id=uid,
        username=username,
        email=f"{username}@example.com",
        role=role,
        auth_provider=AuthProvider.LOCAL,
    )


class UserDirectoryTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.backend = FakeBackend()
        self.client = self.backend.client()
        self.roles_seen = []
        self.directory = UserDirectory(
            [managed(), managed("u2", "dave", UserRole.ADMIN)],
            on_change=lambda: self.roles_seen.append(self.directory.get("u1").role),
        )

    async def asyncTearDown(self):
        await self.client.aclose()

    async def test_rejected_change_is_rolled_back(self):
        self.backend.json("PATCH", ROLE_PATH, {"message": "Forbidden"}, status=403)

        with self.assertRaises(ApiError) as ctx:
            await self.directory.change_role(self.client, "t", "u1", UserRole.APPROVER)

        self.assertEqual(ctx.exception.status, 403)
        self.assertEqual(self.roles_seen, [UserRole.APPROVER, UserRole.STORE_USER])
        self.assertEqual(self.directory.get("u1").role, UserRole.STORE_USER)

    async def test_confirmed_change_takes_server_record(self):
        self.backend.json(
            "PATCH",
            ROLE_PATH,
            {
                "id": "u1",
                "username": "carol",
                "email": "carol@new.example.com",
                "role": "APPROVER",
                "authProvider": "LOCAL",
            },
        )
        updated = await self.directory.change_role(
            self.client, "t", "u1", UserRole.APPROVER
        )

        self.assertEqual(updated.email, "carol@new.example.com")
        self.assertEqual(self.directory.get("u1"), updated)
        self.assertEqual(self.roles_seen, [UserRole.APPROVER, UserRole.APPROVER])
        self.assertEqual(self.backend.last_json(), {"role": "APPROVER"})

    async def test_same_role_or_unknown_user_is_noop(self):
        self.assertIsNone(
            await self.directory.change_role(
                self.client, "t", "u1", UserRole.STORE_USER
            )
        )
        self.assertIsNone(
            await self.directory.change_role(self.client, "t", "nobody", UserRole.ADMIN)
        )
        self.assertEqual(self.backend.requests, [])
        self.assertEqual(self.roles_seen, [])

    async def test_replace_all_notifies(self):
        self.directory.replace_all([managed(role=UserRole.ADMIN)])
        self.assertEqual(self.roles_seen, [UserRole.ADMIN])
        self.assertIsNone(self.directory.get("u2"))

    async def test_cancelled_change_is_rolled_back(self):
        started = asyncio.Event()

        async def hang(request):
            started.set()
            await asyncio.sleep(10)
            return httpx.Response(200, json={})

        self.backend.on("PATCH", ROLE_PATH, hang)
        task = asyncio.create_task(
            self.directory.change_role(self.client, "t", "u1", UserRole.ADMIN)
        )
        await started.wait()
        self.assertEqual(self.directory.get("u1").role, UserRole.ADMIN)

        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task
        self.assertEqual(self.directory.get("u1").role, UserRole.STORE_USER)


class ApplyOptimisticTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_restore_receives_snapshot_taken_before_apply(self):
        state = {"value": 1}
        restored = []

        async def fail():
            raise ValueError("nope")

        def apply():
            state["value"] = 2

        def restore(previous):
            restored.append(previous)
            state["value"] = previous

        with self.assertRaises(ValueError):
            await apply_optimistic(lambda: state["value"], apply, restore, fail)
        self.assertEqual(restored, [1])
        self.assertEqual(state["value"], 1)

    async def test_success_returns_confirmation_and_skips_restore(self):
        async def ok():
            return "done"

        result = await apply_optimistic(
            lambda: None, lambda: None, lambda _s: self.fail("restored"), ok
        )
        self.assertEqual(result, "done")


if __name__ == "__main__":
    unittest.main()
