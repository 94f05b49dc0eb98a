"""
Client-side bearer token decoding.

The signature is NOT verified here: the server stays the authority for
authorization, the client only needs the identity and expiry to drive the UI.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Union

import jwt

from api.models import AuthProvider, CurrentUser, UserRole
from utils.logger import get_logger

_logger = get_logger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class AuthUser:
    username: str
    role: UserRole
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    provider: Optional[AuthProvider] = None
    id: Optional[str] = None
    email: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_name or self.username

    def merged_with(self, server: CurrentUser) -> "AuthUser":
        """
        Overlay the authoritative profile; fields the server leaves
        null keep their locally cached value.
        """
        return replace(
            self,
            role=server.role,
            display_name=server.full_name or self.display_name,
            email=server.email or self.email,
            avatar_url=server.avatar_url or self.avatar_url,
            provider=server.auth_provider or self.provider,
            id=server.id or self.id,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "role": self.role.value,
            "displayName": self.display_name,
            "avatarUrl": self.avatar_url,
            "provider": self.provider.value if self.provider else None,
            "id": self.id,
            "email": self.email,
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "AuthUser":
        provider = data.get("provider")
        return cls(
            username=data["username"],
            role=UserRole(data["role"]),
            display_name=data.get("displayName"),
            avatar_url=data.get("avatarUrl"),
            provider=AuthProvider(provider) if provider else None,
            id=data.get("id"),
            email=data.get("email"),
        )


@dataclass(frozen=True)
class ValidToken:
    user: AuthUser
    expires_at: Optional[int]  # epoch ms, None = never expires


@dataclass(frozen=True)
class InvalidToken:
    reason: str


DecodedToken = Union[ValidToken, InvalidToken]


def decode_token(token: str, now: Optional[int] = None) -> DecodedToken:
    """
    Decode a bearer token into the identity it carries.

    Returns ``InvalidToken`` when the token is malformed, lacks a subject or
    role, names an unknown role, or has already expired at ``now`` (epoch ms).
    """
    try:
        payload = jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
            algorithms=None,
        )
    except jwt.PyJWTError as e:
        _logger.debug(f"Unable to decode token payload: {e}")
        return InvalidToken(f"malformed token: {e}")

    sub = payload.get("sub")
    role = payload.get("role")
    if not sub or not role:
        return InvalidToken("token has no subject or role")
    try:
        role = UserRole(role)
    except ValueError:
        return InvalidToken(f"unknown role {role!r}")

    exp = payload.get("exp")
    expires_at = int(exp * 1000) if isinstance(exp, (int, float)) else None
    now = now_ms() if now is None else now
    if expires_at is not None and expires_at <= now:
        return InvalidToken("token expired")

    provider = payload.get("provider")
    user = AuthUser(
        username=str(sub),
        role=role,
        display_name=payload.get("name") or None,
        avatar_url=payload.get("avatar") or None,
        provider=AuthProvider(provider) if provider in ("LOCAL", "GOOGLE") else None,
    )
    return ValidToken(user=user, expires_at=expires_at)
