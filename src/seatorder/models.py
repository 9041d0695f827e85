"""Data models for seatorder."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any
import time
import uuid

from .errors import (
    CannotAddItemError,
    InvalidArgumentError,
    InvalidStatusTransitionError,
    NoItemsError,
    OrderAlreadyFinalError,
    OrderExpiredError,
    RefundAmountExceedsTotalError,
    ValidationError,
)
from .passwords import check_password, hash_password
from .status import Status

ORDER_PREFIX = "order_"
ITEM_PREFIX = "item_"
SEAT_PREFIX = "seat_"
STORE_PREFIX = "store_"
MANAGER_PREFIX = "manager_"

ORDER_TTL = timedelta(minutes=15)


def _utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(timezone.utc)


def format_ts(value: datetime) -> str:
    """Render a UTC datetime as ISO 8601 with a Z suffix."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_ts(value: str | None) -> datetime:
    """Parse an ISO 8601 timestamp written by format_ts."""
    if not value:
        return _utc_now()
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_required_ts(data: dict[str, Any], key: str) -> datetime:
    """
    Parse a timestamp that must be present in a stored document.

    Raises:
        ValueError: If the key is missing or empty.
    """
    value = data.get(key)
    if not value:
        raise ValueError(f"stored document {data.get('id')!r} has no {key!r} timestamp")
    return parse_ts(value)


def generate_unique_id(prefix: str) -> str:
    """
    Generate a prefixed id that sorts by creation time.

    Format: <prefix><12 hex digits of epoch millis><16 random hex digits>
    """
    millis = int(time.time() * 1000)
    return f"{prefix}{millis:012x}{uuid.uuid4().hex[:16]}"


@dataclass
class LineItem:
    """One product line within an order session."""

    id: str
    product_id: str
    quantity: int
    price: float
    order_id: str = ""  # back-reference to the owning OrderSession
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @classmethod
    def create(cls, product_id: str, quantity: int, price: float) -> "LineItem":
        """Create a new line item with generated ID and timestamps."""
        now = _utc_now()
        return cls(
            id=generate_unique_id(ITEM_PREFIX),
            product_id=product_id,
            quantity=quantity,
            price=price,
            created_at=now,
            updated_at=now,
        )

    def subtotal(self) -> float:
        return self.price * self.quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price": self.price,
            "subtotal": self.subtotal(),
            "created_at": format_ts(self.created_at),
            "updated_at": format_ts(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LineItem":
        # "subtotal" is output only; it is always recomputed.
        return cls(
            id=data["id"],
            order_id=data.get("order_id", ""),
            product_id=data["product_id"],
            quantity=data["quantity"],
            price=data["price"],
            created_at=parse_ts(data.get("created_at")),
            updated_at=parse_ts(data.get("updated_at")),
        )


@dataclass
class OrderSession:
    """
    A customer's order at one store seat.

    total_amount is a cache of the item subtotals and is refreshed by every
    mutating method before it returns. status only changes through
    update_status() or, for refunds, exception_update_status().
    """

    id: str
    store_id: str
    seat_id: str
    items: list[LineItem]
    total_amount: float
    status: Status
    issued_at: datetime
    expires_at: datetime
    created_at: datetime
    updated_at: datetime

    @classmethod
    def create(
        cls,
        store_id: str,
        seat_id: str,
        items: list[LineItem],
        now: datetime | None = None,
    ) -> "OrderSession":
        """
        Open a new order session in the `created` state.

        Raises:
            InvalidArgumentError: If store_id or seat_id is empty.
            NoItemsError: If items is empty.
        """
        if not store_id or not seat_id:
            raise InvalidArgumentError(
                f"store_id and seat_id are required, got store_id={store_id!r}, seat_id={seat_id!r}"
            )
        if not items:
            raise NoItemsError()

        order_id = generate_unique_id(ORDER_PREFIX)
        now = now or _utc_now()
        items = list(items)
        for item in items:
            item.order_id = order_id

        return cls(
            id=order_id,
            store_id=store_id,
            seat_id=seat_id,
            items=items,
            total_amount=sum(item.subtotal() for item in items),
            status=Status.CREATED,
            issued_at=now,
            expires_at=now + ORDER_TTL,
            created_at=now,
            updated_at=now,
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at < (now or _utc_now())

    def add_item(self, item: LineItem, now: datetime | None = None) -> None:
        """
        Append an item and refresh the total.

        Raises:
            CannotAddItemError: If the current status forbids additions.
            OrderExpiredError: If expires_at has passed.
        """
        if not self.status.can_add_item():
            raise CannotAddItemError(self.status)
        if self.is_expired(now):
            raise OrderExpiredError(self.expires_at)

        item.order_id = self.id
        self.items.append(item)
        self.recalculate_total_amount()

    def update_status(self, new_status: Status) -> None:
        """
        Move to new_status along an edge of the transition table.

        Raises:
            OrderAlreadyFinalError: If the current status is final.
            InvalidStatusTransitionError: If the edge doesn't exist.
        """
        if self.status.is_final():
            raise OrderAlreadyFinalError(self.status)
        if not self.status.can_transition_to(new_status):
            raise InvalidStatusTransitionError(self.status, new_status)

        self.status = new_status
        self._touch()

    def exception_update_status(self, new_status: Status) -> None:
        """Set the status without the final-state guard or the transition table."""
        self.status = new_status
        self._touch()

    def recalculate_total_amount(self) -> None:
        self.total_amount = sum(item.subtotal() for item in self.items)
        self._touch()

    def _touch(self) -> None:
        self.updated_at = _utc_now()

    # --- Named transitions ---

    def mark_confirmed(self) -> None:
        self.update_status(Status.CONFIRMED)

    def mark_preparing(self) -> None:
        self.update_status(Status.PREPARING)

    def mark_ready_for_pickup(self) -> None:
        self.update_status(Status.READY_FOR_PICKUP)

    def mark_ready_for_delivery(self) -> None:
        self.update_status(Status.READY_FOR_DELIVERY)

    def mark_out_for_delivery(self) -> None:
        self.update_status(Status.OUT_FOR_DELIVERY)

    def mark_delivered(self) -> None:
        self.update_status(Status.DELIVERED)

    def mark_picked_up(self) -> None:
        self.update_status(Status.PICKED_UP)

    def mark_served(self) -> None:
        self.update_status(Status.SERVED)

    def mark_completed(self) -> None:
        self.update_status(Status.COMPLETED)

    def mark_cancelled(self) -> None:
        self.update_status(Status.CANCELLED)

    def mark_payment_failed(self) -> None:
        self.update_status(Status.PAYMENT_FAILED)

    def mark_on_hold(self) -> None:
        self.update_status(Status.ON_HOLD)

    def mark_refunded(self) -> None:
        self.update_status(Status.REFUNDED)

    def mark_partially_refunded(self, amount: float) -> None:
        """
        Record a partial refund. Allowed even when the order is final.

        Raises:
            RefundAmountExceedsTotalError: If amount > total_amount.
        """
        if amount > self.total_amount:
            raise RefundAmountExceedsTotalError(amount, self.total_amount)
        self.exception_update_status(Status.PARTIALLY_REFUNDED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "seat_id": self.seat_id,
            "items": [item.to_dict() for item in self.items],
            "total_amount": self.total_amount,
            "status": self.status.value,
            "issued_at": format_ts(self.issued_at),
            "expires_at": format_ts(self.expires_at),
            "created_at": format_ts(self.created_at),
            "updated_at": format_ts(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderSession":
        items = [LineItem.from_dict(i) for i in data.get("items", [])]
        return cls(
            id=data["id"],
            store_id=data["store_id"],
            seat_id=data["seat_id"],
            items=items,
            total_amount=sum(item.subtotal() for item in items),
            status=Status.parse(data["status"]),
            issued_at=parse_required_ts(data, "issued_at"),
            expires_at=parse_required_ts(data, "expires_at"),
            created_at=parse_ts(data.get("created_at")),
            updated_at=parse_ts(data.get("updated_at")),
        )


@dataclass
class Store:
    """A restaurant registered by a manager."""

    id: str
    name: str
    email: str
    password: str
    address: str
    phone: str
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @classmethod
    def create(
        cls, name: str, email: str, password: str, address: str, phone: str
    ) -> "Store":
        """Create a new store from submitted values with generated ID and timestamps."""
        store = cls(
            id="",
            name=name,
            email=email,
            password=password,
            address=address,
            phone=phone,
        )
        store.reset_meta_fields()
        return store

    def validate_required_fields(self) -> None:
        """
        Raises:
            ValidationError: Listing every blank field.
        """
        values = {
            "name": self.name,
            "email": self.email,
            "password": self.password,
            "address": self.address,
            "phone": self.phone,
        }
        empty = [name for name, value in values.items() if not (value or "").strip()]
        if empty:
            raise ValidationError(empty)

    def reset_meta_fields(self) -> None:
        self.id = generate_unique_id(STORE_PREFIX)
        now = _utc_now()
        self.created_at = now
        self.updated_at = now

    def password_to_hash(self) -> None:
        self.password = hash_password(self.password, min_length=8)

    def to_dict(self, include_password: bool = True) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "address": self.address,
            "phone": self.phone,
            "created_at": format_ts(self.created_at),
            "updated_at": format_ts(self.updated_at),
        }
        if include_password:
            result["password"] = self.password
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Store":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
            address=data.get("address", ""),
            phone=data.get("phone", ""),
            created_at=parse_ts(data.get("created_at")),
            updated_at=parse_ts(data.get("updated_at")),
        )


@dataclass
class Seat:
    """A table/seat within a store; its QR code opens an ordering session."""

    id: str
    store_id: str
    name: str
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @classmethod
    def create(cls, store_id: str, name: str) -> "Seat":
        now = _utc_now()
        return cls(
            id=generate_unique_id(SEAT_PREFIX),
            store_id=store_id,
            name=name,
            created_at=now,
            updated_at=now,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "created_at": format_ts(self.created_at),
            "updated_at": format_ts(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Seat":
        return cls(
            id=data["id"],
            store_id=data.get("store_id", ""),
            name=data.get("name", ""),
            created_at=parse_ts(data.get("created_at")),
            updated_at=parse_ts(data.get("updated_at")),
        )


@dataclass
class Manager:
    """A back-office user. Stored under its email address."""

    id: str
    email: str
    password: str
    is_admin: bool = False
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @classmethod
    def create(cls, email: str, password: str, is_admin: bool = False) -> "Manager":
        now = _utc_now()
        return cls(
            id=generate_unique_id(MANAGER_PREFIX),
            email=email,
            password=password,
            is_admin=is_admin,
            created_at=now,
            updated_at=now,
        )

    def encrypt_password(self) -> None:
        """Replace the raw password with its bcrypt hash."""
        self.password = hash_password(self.password)

    def verify_password(self, raw_password: str) -> None:
        """
        Raises:
            InvalidCredentialsError: If raw_password doesn't match.
        """
        check_password(raw_password, self.password)

    def to_dict(self, include_password: bool = True) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "email": self.email,
            "is_admin": self.is_admin,
            "created_at": format_ts(self.created_at),
            "updated_at": format_ts(self.updated_at),
        }
        if include_password:
            result["password"] = self.password
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Manager":
        return cls(
            id=data["id"],
            email=data["email"],
            password=data.get("password", ""),
            is_admin=data.get("is_admin", False),
            created_at=parse_ts(data.get("created_at")),
            updated_at=parse_ts(data.get("updated_at")),
        )
