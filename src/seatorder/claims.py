"""Signed bearer tokens for managers and ordering sessions."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from .config import Settings
from .errors import InvalidTokenError, SigningSecretMissingError
from .models import Manager, Seat, _utc_now

ALGORITHM = "HS256"


def _require_secret(settings: Settings) -> str:
    if not settings.jwt_secret:
        raise SigningSecretMissingError()
    return settings.jwt_secret


def _timestamp(value: datetime) -> int:
    return int(value.timestamp())


def _from_timestamp(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _decode(token: str, settings: Settings, required: list[str]) -> dict[str, Any]:
    secret = _require_secret(settings)
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"require": required},
        )
    except jwt.ExpiredSignatureError:
        raise InvalidTokenError("token has expired") from None
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError(str(e)) from None


@dataclass(frozen=True)
class ManagerClaims:
    """Identity of a signed-in manager."""

    email: str
    admin: bool
    expires_at: datetime

    @classmethod
    def for_manager(
        cls, manager: Manager, expires_at: datetime | None = None, ttl: timedelta | None = None
    ) -> "ManagerClaims":
        if expires_at is None:
            expires_at = _utc_now() + (ttl or timedelta(days=7))
        return cls(email=manager.email, admin=manager.is_admin, expires_at=expires_at)

    def to_payload(self) -> dict[str, Any]:
        return {
            "email": self.email,
            "admin": self.admin,
            "exp": _timestamp(self.expires_at),
        }

    def to_token(self, settings: Settings) -> str:
        """
        Sign the claims.

        Raises:
            SigningSecretMissingError: If settings carry no secret.
        """
        return jwt.encode(self.to_payload(), _require_secret(settings), algorithm=ALGORITHM)


@dataclass(frozen=True)
class SessionClaims:
    """Scope of an active ordering session at one seat."""

    store_id: str
    seat_id: str
    seat_name: str
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def for_seat(
        cls,
        store_id: str,
        seat: Seat,
        expires_at: datetime | None = None,
        ttl: timedelta | None = None,
    ) -> "SessionClaims":
        now = _utc_now()
        if expires_at is None:
            expires_at = now + (ttl or timedelta(hours=1))
        return cls(
            store_id=store_id,
            seat_id=seat.id,
            seat_name=seat.name,
            issued_at=now,
            expires_at=expires_at,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "store_id": self.store_id,
            "seat_id": self.seat_id,
            "name": self.seat_name,
            "iat": _timestamp(self.issued_at),
            "exp": _timestamp(self.expires_at),
        }

    def to_token(self, settings: Settings) -> str:
        """
        Sign the claims.

        Raises:
            SigningSecretMissingError: If settings carry no secret.
        """
        return jwt.encode(self.to_payload(), _require_secret(settings), algorithm=ALGORITHM)


def decode_manager_token(token: str, settings: Settings) -> ManagerClaims:
    """
    Verify a manager token.

    Raises:
        InvalidTokenError: On bad signature, expiry or missing claims.
    """
    payload = _decode(token, settings, ["exp", "email"])
    return ManagerClaims(
        email=payload["email"],
        admin=bool(payload.get("admin", False)),
        expires_at=_from_timestamp(payload["exp"]),
    )


def decode_session_token(token: str, settings: Settings) -> SessionClaims:
    """
    Verify a session token.

    Raises:
        InvalidTokenError: On bad signature, expiry or missing claims.
    """
    payload = _decode(token, settings, ["exp", "iat", "store_id", "seat_id"])
    return SessionClaims(
        store_id=payload["store_id"],
        seat_id=payload["seat_id"],
        seat_name=payload.get("name", ""),
        issued_at=_from_timestamp(payload["iat"]),
        expires_at=_from_timestamp(payload["exp"]),
    )
