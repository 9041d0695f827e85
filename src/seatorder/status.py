"""Order status values and the lifecycle transition table."""

from enum import Enum

from .errors import UnknownStatusError


class Status(str, Enum):
    """Lifecycle state of an order session."""

    # Initial / payment
    CREATED = "created"
    PENDING_PAYMENT = "pending_payment"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_FAILED = "payment_failed"

    # Processing inside the restaurant
    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    ON_HOLD = "on_hold"

    # Fulfillment
    READY_FOR_PICKUP = "ready_for_pickup"
    READY_FOR_DELIVERY = "ready_for_delivery"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERY_ATTEMPT_FAILED = "delivery_attempt_failed"
    DELIVERED = "delivered"
    PICKED_UP = "picked_up"
    SERVED = "served"

    # Completion / exceptions
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DECLINED = "declined"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | Status") -> "Status":
        """Return the Status named by value, raising UnknownStatusError otherwise."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownStatusError(str(value)) from None

    def is_final(self) -> bool:
        # partially_refunded is not final; later settlement is still allowed
        return self in FINAL_STATUSES

    def can_add_item(self) -> bool:
        return self in _ADDABLE

    def can_cancel(self) -> bool:
        return self in _CANCELLABLE

    def is_fulfilled(self) -> bool:
        return self in _FULFILLED

    def is_in_preparation(self) -> bool:
        return self in _IN_PREPARATION

    def is_ready_for_service(self) -> bool:
        return self in _READY_FOR_SERVICE

    def can_transition_to(self, target: "Status") -> bool:
        return target in TRANSITIONS.get(self, frozenset())

    def allowed_targets(self) -> frozenset["Status"]:
        return TRANSITIONS.get(self, frozenset())


FINAL_STATUSES = frozenset({
    Status.COMPLETED,
    Status.CANCELLED,
    Status.DECLINED,
    Status.REFUNDED,
    Status.FAILED,
    Status.PAYMENT_FAILED,
})

_ADDABLE = frozenset({
    Status.CREATED,
    Status.PENDING_PAYMENT,
    Status.PENDING_CONFIRMATION,
    Status.CONFIRMED,
    Status.ON_HOLD,
})

_CANCELLABLE = frozenset({
    Status.CREATED,
    Status.PENDING_PAYMENT,
    Status.PENDING_CONFIRMATION,
    Status.PREPARING,
    Status.CONFIRMED,
    Status.ON_HOLD,
    Status.READY_FOR_PICKUP,
    Status.READY_FOR_DELIVERY,
})

_FULFILLED = frozenset({Status.DELIVERED, Status.PICKED_UP, Status.SERVED})

_IN_PREPARATION = frozenset({Status.CONFIRMED, Status.PREPARING, Status.ON_HOLD})

_READY_FOR_SERVICE = frozenset({
    Status.READY_FOR_PICKUP,
    Status.READY_FOR_DELIVERY,
    Status.OUT_FOR_DELIVERY,
})

_AFTER_FULFILLMENT = frozenset({Status.COMPLETED, Status.REFUNDED, Status.PARTIALLY_REFUNDED})

# Source -> allowed targets. Sources missing here (completed, cancelled,
# declined, refunded) have no outgoing edges.
TRANSITIONS: dict[Status, frozenset[Status]] = {
    Status.CREATED: frozenset({
        Status.PENDING_PAYMENT, Status.CONFIRMED, Status.CANCELLED, Status.DECLINED,
    }),
    Status.PENDING_PAYMENT: frozenset({
        Status.PAYMENT_RECEIVED, Status.PAYMENT_FAILED, Status.CANCELLED, Status.DECLINED,
    }),
    Status.PAYMENT_RECEIVED: frozenset({
        Status.PENDING_CONFIRMATION, Status.CANCELLED, Status.DECLINED,
    }),
    Status.PENDING_CONFIRMATION: frozenset({
        Status.CONFIRMED, Status.CANCELLED, Status.DECLINED,
    }),
    Status.CONFIRMED: frozenset({
        Status.PREPARING, Status.ON_HOLD, Status.CANCELLED,
    }),
    Status.PREPARING: frozenset({
        Status.READY_FOR_PICKUP, Status.READY_FOR_DELIVERY, Status.ON_HOLD, Status.CANCELLED,
    }),
    Status.ON_HOLD: frozenset({
        Status.CONFIRMED,
        Status.PREPARING,
        Status.READY_FOR_PICKUP,
        Status.READY_FOR_DELIVERY,
        Status.CANCELLED,
    }),
    Status.READY_FOR_PICKUP: frozenset({
        Status.PICKED_UP, Status.SERVED, Status.CANCELLED,
    }),
    Status.READY_FOR_DELIVERY: frozenset({
        Status.OUT_FOR_DELIVERY, Status.SERVED, Status.CANCELLED,
    }),
    Status.OUT_FOR_DELIVERY: frozenset({
        Status.DELIVERED, Status.DELIVERY_ATTEMPT_FAILED, Status.CANCELLED,
    }),
    Status.DELIVERY_ATTEMPT_FAILED: frozenset({
        Status.OUT_FOR_DELIVERY, Status.DELIVERED, Status.CANCELLED,
    }),
    Status.DELIVERED: _AFTER_FULFILLMENT,
    Status.PICKED_UP: _AFTER_FULFILLMENT,
    Status.SERVED: _AFTER_FULFILLMENT,
    Status.PAYMENT_FAILED: frozenset({Status.CANCELLED}),
    Status.FAILED: frozenset({Status.CANCELLED}),
    Status.PARTIALLY_REFUNDED: frozenset({
        Status.REFUNDED, Status.COMPLETED, Status.CANCELLED,
    }),
}
