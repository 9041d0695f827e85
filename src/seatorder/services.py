"""Use cases that combine the domain models with storage and credentials."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

from .claims import ManagerClaims, SessionClaims
from .config import Settings
from .errors import (
    EntityNotFoundError,
    InvalidArgumentError,
    InvalidCredentialsError,
    ValidationError,
)
from .models import LineItem, Manager, OrderSession, Seat, Store, _utc_now
from .repository import JsonRepository
from .status import Status

MANAGERS = "managers"
STORES = "stores"
SEATS = "seats"
SESSIONS = "sessions"

logger = logging.getLogger("seatorder.services")


@dataclass(frozen=True)
class ItemInput:
    """A product line as supplied by a caller, before it becomes a LineItem."""

    product_id: str
    quantity: int
    price: float

    def to_line_item(self) -> LineItem:
        return LineItem.create(self.product_id, self.quantity, self.price)


def expiry_from_timestamp(exp: int) -> datetime:
    """
    Convert a unix timestamp supplied by a caller to a UTC datetime.

    Raises:
        InvalidArgumentError: If exp is not positive or out of range.
    """
    if exp <= 0:
        raise InvalidArgumentError(f"exp must be a positive unix timestamp, got {exp}")
    try:
        return datetime.fromtimestamp(exp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        raise InvalidArgumentError(f"exp is out of range: {exp}") from None


def _require_id(name: str, value: str) -> None:
    if not value:
        raise InvalidArgumentError(f"{name} is required")


class SeatOrderService:
    """Entry point for every operation the HTTP layer and CLI expose."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.managers: JsonRepository[Manager] = JsonRepository(
            MANAGERS, Manager.from_dict, settings, key=lambda m: m.email
        )
        self.stores: JsonRepository[Store] = JsonRepository(STORES, Store.from_dict, settings)
        self.seats: JsonRepository[Seat] = JsonRepository(SEATS, Seat.from_dict, settings)
        self.orders: JsonRepository[OrderSession] = JsonRepository(
            SESSIONS, OrderSession.from_dict, settings
        )

    # --- Managers ---

    def sign_up_manager(self, email: str, password: str, is_admin: bool = False) -> Manager:
        """
        Register a manager with a hashed password.

        Raises:
            ValidationError: If email or password is blank.
            PasswordPolicyError: If the password is over 72 bytes.
            EntityExistsError: If the email is already registered.
        """
        missing = [name for name, value in (("email", email), ("password", password)) if not value]
        if missing:
            raise ValidationError(missing)

        manager = Manager.create(email=email, password=password, is_admin=is_admin)
        manager.encrypt_password()
        self.managers.create(manager)
        logger.info("Registered manager %s", manager.id)
        return manager

    def sign_in_manager(self, email: str, password: str) -> tuple[str, Manager]:
        """
        Verify credentials and issue a manager token.

        Unknown emails fail the same way as wrong passwords.

        Raises:
            ValidationError: If email or password is blank.
            InvalidCredentialsError: If the credentials don't match.
            SigningSecretMissingError: If no signing secret is configured.
        """
        missing = [name for name, value in (("email", email), ("password", password)) if not value]
        if missing:
            raise ValidationError(missing)

        try:
            manager = self.managers.find_by_id(email)
        except EntityNotFoundError:
            raise InvalidCredentialsError() from None
        manager.verify_password(password)

        claims = ManagerClaims.for_manager(
            manager, ttl=timedelta(hours=self.settings.manager_token_ttl_hours)
        )
        return claims.to_token(self.settings), manager

    # --- Stores ---

    def register_store(
        self, name: str, email: str, password: str, address: str, phone: str
    ) -> Store:
        """
        Raises:
            ValidationError: If any field is blank.
            PasswordPolicyError: If the password is not 8..72 bytes.
        """
        store = Store.create(name, email, password, address, phone)
        store.validate_required_fields()
        store.password_to_hash()
        self.stores.create(store)
        logger.info("Registered store %s (%s)", store.id, store.name)
        return store

    def list_stores(self) -> list[Store]:
        return self.stores.read()

    def get_store(self, store_id: str) -> Store:
        _require_id("store_id", store_id)
        return self.stores.find_by_id(store_id)

    def update_store(
        self, store_id: str, name: str, email: str, password: str, address: str, phone: str
    ) -> Store:
        """Replace a store's fields, keeping its id and creation time."""
        _require_id("store_id", store_id)
        current = self.stores.find_by_id(store_id)
        store = Store(
            id=store_id,
            name=name,
            email=email,
            password=password,
            address=address,
            phone=phone,
            created_at=current.created_at,
            updated_at=_utc_now(),
        )
        store.validate_required_fields()
        store.password_to_hash()
        return self.stores.update_by_id(store_id, store)

    def delete_store(self, store_id: str) -> Store:
        _require_id("store_id", store_id)
        removed = self.stores.delete_by_id(store_id)
        logger.info("Deleted store %s", store_id)
        return removed

    # --- Seats ---

    def create_seat(self, store_id: str, name: str) -> Seat:
        _require_id("store_id", store_id)
        if not name.strip():
            raise ValidationError(["name"])
        self.stores.find_by_id(store_id)
        seat = Seat.create(store_id=store_id, name=name)
        self.seats.create(seat)
        logger.info("Created seat %s for store %s", seat.id, store_id)
        return seat

    def list_seats(self, store_id: str) -> list[Seat]:
        _require_id("store_id", store_id)
        return self.seats.find_by_field("store_id", store_id)

    def get_seat(self, store_id: str, seat_id: str) -> Seat:
        """
        Raises:
            EntityNotFoundError: If the seat doesn't exist or belongs to another store.
        """
        _require_id("store_id", store_id)
        _require_id("seat_id", seat_id)
        seat = self.seats.find_by_id(seat_id)
        if seat.store_id != store_id:
            raise EntityNotFoundError(SEATS, seat_id)
        return seat

    # --- Ordering sessions ---

    def start_session(
        self, store_id: str, seat_id: str, expires_at: datetime | None = None
    ) -> tuple[str, SessionClaims]:
        """
        Issue a session token for a seat, as done when its QR code is scanned.

        Args:
            expires_at: Explicit expiry; defaults to now + session_token_ttl_minutes.

        Raises:
            InvalidArgumentError: If an id is empty or expires_at is not within
                the next session_token_ttl_minutes.
        """
        if not store_id or not seat_id:
            raise InvalidArgumentError(
                f"store_id and seat_id are required parameters, "
                f"but got store_id={store_id!r}, seat_id={seat_id!r}"
            )
        ttl = timedelta(minutes=self.settings.session_token_ttl_minutes)
        if expires_at is not None:
            now = _utc_now()
            if not now < expires_at <= now + ttl:
                raise InvalidArgumentError(
                    f"session expiry must fall within the next {ttl}, "
                    f"got {expires_at.isoformat()}"
                )
        self.stores.find_by_id(store_id)
        seat = self.get_seat(store_id, seat_id)
        claims = SessionClaims.for_seat(store_id, seat, expires_at=expires_at, ttl=ttl)
        token = claims.to_token(self.settings)
        logger.info("Session started for store_id=%s, seat_id=%s", store_id, seat_id)
        return token, claims

    def seat_order_url(self, store_id: str, seat_id: str) -> str:
        """URL a seat's QR code points at."""
        base = self.settings.frontend_url.rstrip("/")
        return f"{base}/order?{urlencode({'store_id': store_id, 'seat_id': seat_id})}"

    def open_order(self, store_id: str, seat_id: str, items: list[ItemInput]) -> OrderSession:
        """
        Raises:
            InvalidArgumentError: If store_id or seat_id is empty.
            NoItemsError: If items is empty.
        """
        order = OrderSession.create(store_id, seat_id, [i.to_line_item() for i in items])
        self.orders.create(order)
        logger.info(
            "Opened order %s at store_id=%s, seat_id=%s (total %s)",
            order.id, store_id, seat_id, order.total_amount,
        )
        return order

    def get_order(
        self, order_id: str, store_id: str | None = None, seat_id: str | None = None
    ) -> OrderSession:
        """
        Load an order, optionally requiring it to belong to a store/seat.

        Raises:
            EntityNotFoundError: If missing or outside the given scope.
        """
        _require_id("order_id", order_id)
        order = self.orders.find_by_id(order_id)
        self._check_scope(order, store_id, seat_id)
        return order

    def list_orders(self, store_id: str | None = None) -> list[OrderSession]:
        if store_id:
            return self.orders.find_by_field("store_id", store_id)
        return self.orders.read()

    def add_item(
        self,
        order_id: str,
        item: ItemInput,
        store_id: str | None = None,
        seat_id: str | None = None,
    ) -> OrderSession:
        """
        Raises:
            CannotAddItemError: If the order's status forbids additions.
            OrderExpiredError: If the order's window has passed.
        """
        _require_id("order_id", order_id)

        def mutate(order: OrderSession) -> None:
            self._check_scope(order, store_id, seat_id)
            order.add_item(item.to_line_item())

        return self.orders.modify_by_id(order_id, mutate)

    def change_status(self, order_id: str, status: Status | str) -> OrderSession:
        """
        Raises:
            UnknownStatusError: If status names no known value.
            OrderAlreadyFinalError: If the order is final.
            InvalidStatusTransitionError: If the transition isn't allowed.
        """
        _require_id("order_id", order_id)
        target = Status.parse(status)
        order = self.orders.modify_by_id(order_id, lambda o: o.update_status(target))
        logger.info("Order %s moved to %s", order_id, target)
        return order

    def refund_partially(self, order_id: str, amount: float) -> OrderSession:
        """
        Raises:
            RefundAmountExceedsTotalError: If amount exceeds the order total.
        """
        _require_id("order_id", order_id)
        order = self.orders.modify_by_id(
            order_id, lambda o: o.mark_partially_refunded(amount)
        )
        logger.info("Order %s partially refunded by %s", order_id, amount)
        return order

    @staticmethod
    def _check_scope(order: OrderSession, store_id: str | None, seat_id: str | None) -> None:
        if store_id is not None and order.store_id != store_id:
            raise EntityNotFoundError(SESSIONS, order.id)
        if seat_id is not None and order.seat_id != seat_id:
            raise EntityNotFoundError(SESSIONS, order.id)
