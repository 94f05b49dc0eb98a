from __future__ import annotations

import asyncio
import json
from typing import Callable, List, Optional, Tuple

import aiosqlite

import api.endpoints as endpoints
from api.client import PortalClient
from api.errors import PortalError, UnauthorizedError
from state.errors import InvalidTokenError, NotAuthenticatedError, SessionExpiredError
from state.storage import LocalStorage
from state.token import AuthUser, InvalidToken, decode_token, now_ms
from utils.logger import get_logger

_logger = get_logger(__name__)

STORAGE_KEY = "puma.printables.auth"

SessionListener = Callable[[Optional[str]], None]


class SessionStore:
    """
    The signed-in session: bearer token, the user it identifies and its expiry.

    Invariant: ``user`` is set iff ``token`` is set. Every change is persisted
    to ``LocalStorage`` under ``STORAGE_KEY`` and broadcast to listeners with
    the (possibly ``None``) token. A single expiry task logs the session out
    when the token's ``exp`` is reached.
    """

    def __init__(
        self,
        storage: LocalStorage,
        client: PortalClient,
        clock: Callable[[], int] = now_ms,
    ):
        self._storage = storage
        self._client = client
        self._clock = clock

        self._token: Optional[str] = None
        self._user: Optional[AuthUser] = None
        self._expires_at: Optional[int] = None
        self._ended_by_expiry = False

        self._expiry_task: Optional[asyncio.Task] = None
        self._listeners: List[SessionListener] = []

    # ---------------------------
    # Read-only view
    # ---------------------------

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def user(self) -> Optional[AuthUser]:
        return self._user

    @property
    def expires_at(self) -> Optional[int]:
        return self._expires_at

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None and self._user is not None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------------------------
    # Lifecycle
    # ---------------------------

    async def restore(self) -> bool:
        """
        Rehydrate the persisted session at startup.
        Never raises: anything unusable is wiped and the store stays signed out.
        """
        try:
            raw = await self._storage.get_item(STORAGE_KEY)
        except aiosqlite.Error as e:
            _logger.warning(f"Unable to read stored session: {e}")
            return False
        if raw is None:
            return False

        try:
            stored = json.loads(raw)
            token = stored["token"]
            if not isinstance(token, str):
                raise TypeError("stored token is not a string")
        except (ValueError, KeyError, TypeError) as e:
            _logger.warning(f"Discarding corrupt stored session: {e}")
            await self._wipe_storage()
            return False

        decoded = decode_token(token, self._clock())
        if isinstance(decoded, InvalidToken):
            _logger.info(f"Discarding stored session: {decoded.reason}")
            await self._wipe_storage()
            return False

        user = decoded.user
        cached = stored.get("user")
        if isinstance(cached, dict) and cached.get("username") == user.username:
            try:
                cached_user = AuthUser.from_json(cached)
            except (ValueError, KeyError) as e:
                _logger.debug(f"Ignoring cached profile fields: {e}")
            else:
                user = AuthUser(
                    username=user.username,
                    role=user.role,
                    display_name=user.display_name or cached_user.display_name,
                    avatar_url=user.avatar_url or cached_user.avatar_url,
                    provider=user.provider or cached_user.provider,
                    id=cached_user.id,
                    email=cached_user.email,
                )

        self._apply(token, user, decoded.expires_at)
        _logger.info(f"Restored session for {user.username}.")
        return True

    async def login(self, token: str) -> AuthUser:
        """Start a session from a freshly issued token. Raises InvalidTokenError."""
        decoded = decode_token(token, self._clock())
        if isinstance(decoded, InvalidToken):
            raise InvalidTokenError(f"Invalid authentication token ({decoded.reason})")

        self._ended_by_expiry = False
        self._apply(token, decoded.user, decoded.expires_at)
        await self._persist()
        user = decoded.user
        _logger.info(f"Signed in as {user.username} ({user.role.value}).")
        return decoded.user

    async def logout(self) -> None:
        self._ended_by_expiry = False
        await self._end()

    async def require_auth(self) -> Tuple[str, AuthUser]:
        """
        Return ``(token, user)`` of a live session.
        Raises NotAuthenticatedError or SessionExpiredError otherwise.
        """
        if self._token is None or self._user is None:
            if self._ended_by_expiry:
                raise SessionExpiredError()
            raise NotAuthenticatedError()
        if self._expires_at is not None and self._expires_at <= self._clock():
            await self._expire()
            raise SessionExpiredError()
        return self._token, self._user

    async def refresh_session(self) -> Optional[AuthUser]:
        """
        Re-fetch the authoritative profile and merge it into the session.

        401 logs out; other failures are logged and leave the session as is.
        A response for a token that has since been replaced is discarded.
        """
        token = self._token
        if token is None or self._user is None:
            return None

        try:
            profile = await endpoints.get_session(self._client, token)
        except UnauthorizedError:
            if self._token == token:
                _logger.info("Session rejected by the server, signing out.")
                await self.logout()
            return None
        except PortalError as e:
            _logger.warning(f"Session refresh failed: {e.message}")
            return None

        if self._token != token or self._user is None:
            _logger.debug("Discarding session refresh for a replaced token.")
            return None

        self._user = self._user.merged_with(profile)
        await self._persist()
        self._notify()
        return self._user

    def close(self) -> None:
        """Cancel the expiry timer; used on application shutdown."""
        if self._expiry_task is not None:
            self._expiry_task.cancel()
            self._expiry_task = None

    # ---------------------------
    # Internals
    # ---------------------------

    def _apply(
        self, token: Optional[str], user: Optional[AuthUser], expires_at: Optional[int]
    ) -> None:
        self._token = token
        self._user = user if token is not None else None
        self._expires_at = expires_at if token is not None else None
        self._schedule_expiry()
        self._notify()

    async def _end(self) -> None:
        was_signed_in = self._token is not None
        self._apply(None, None, None)
        await self._wipe_storage()
        if was_signed_in:
            _logger.info("Signed out.")

    async def _expire(self) -> None:
        self._ended_by_expiry = True
        _logger.info("Session expired.")
        await self._end()

    def _schedule_expiry(self) -> None:
        task = self._expiry_task
        self._expiry_task = None
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        if self._token is None or self._expires_at is None:
            return
        delay = max(self._expires_at - self._clock(), 0) / 1000
        self._expiry_task = asyncio.get_running_loop().create_task(
            self._expire_after(delay)
        )

    async def _expire_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._expire()

    async def _persist(self) -> None:
        if self._token is None or self._user is None:
            await self._wipe_storage()
            return
        await self._storage.set_item(
            STORAGE_KEY,
            json.dumps(
                {
                    "token": self._token,
                    "user": self._user.to_json(),
                    "expiresAt": self._expires_at,
                }
            ),
        )

    async def _wipe_storage(self) -> None:
        await self._storage.remove_item(STORAGE_KEY)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._token)
