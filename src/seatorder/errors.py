"""Custom exceptions for seatorder."""


class SeatOrderError(Exception):
    """Base exception for all seatorder errors."""

    pass


class InvalidArgumentError(SeatOrderError):
    """Raised when a required identifier is empty."""

    def __init__(self, reason: str = "store_id and seat_id are required"):
        self.reason = reason
        super().__init__(f"Invalid argument: {reason}")


class NoItemsError(SeatOrderError):
    """Raised when an order session is opened without line items."""

    def __init__(self):
        super().__init__("Order contains no items")


class CannotAddItemError(SeatOrderError):
    """Raised when the current status forbids adding items."""

    def __init__(self, status):
        self.status = status
        super().__init__(f"Cannot add items while order is '{status}'")


class OrderExpiredError(SeatOrderError):
    """Raised when an item is added after the session expired."""

    def __init__(self, expires_at=None):
        self.expires_at = expires_at
        msg = "Order session has expired"
        if expires_at is not None:
            msg = f"{msg} (expired at {expires_at.isoformat()})"
        super().__init__(msg)


class OrderAlreadyFinalError(SeatOrderError):
    """Raised when a status change is attempted on a final order."""

    def __init__(self, status):
        self.status = status
        super().__init__(f"Order is already final: current status is '{status}'")


class InvalidStatusTransitionError(SeatOrderError):
    """Raised when the transition table has no edge for the change."""

    def __init__(self, from_status, to_status):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot transition status from '{from_status}' to '{to_status}'")


class RefundAmountExceedsTotalError(SeatOrderError):
    """Raised when a partial refund is larger than the order total."""

    def __init__(self, amount: float, total: float):
        self.amount = amount
        self.total = total
        super().__init__(f"Refund amount {amount} exceeds order total {total}")


class UnknownStatusError(SeatOrderError):
    """Raised when a string does not name a known status."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Unknown status: {value}")


class ValidationError(SeatOrderError):
    """Raised when required fields are blank."""

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(f"Required fields are empty: {', '.join(fields)}")


class PasswordPolicyError(SeatOrderError):
    """Raised when a password cannot be hashed under the length rules."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid password: {reason}")


class InvalidCredentialsError(SeatOrderError):
    """Raised when sign-in fails."""

    def __init__(self):
        super().__init__("Invalid email or password")


class SigningSecretMissingError(SeatOrderError):
    """Raised when JWT_SECRET is absent or empty at signing time."""

    def __init__(self):
        super().__init__("JWT_SECRET is not set")


class InvalidTokenError(SeatOrderError):
    """Raised when a bearer token fails verification."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid token: {reason}")


class EntityNotFoundError(SeatOrderError):
    """Raised when a document id doesn't exist in a collection."""

    def __init__(self, collection: str, entity_id: str):
        self.collection = collection
        self.entity_id = entity_id
        super().__init__(f"{collection} not found: {entity_id}")


class EntityExistsError(SeatOrderError):
    """Raised when creating a document whose id is already taken."""

    def __init__(self, collection: str, entity_id: str):
        self.collection = collection
        self.entity_id = entity_id
        super().__init__(f"{collection} already exists: {entity_id}")


class InvalidSettingError(SeatOrderError):
    """Raised when an environment variable can't be parsed."""

    def __init__(self, name: str, value: str, expected: str):
        self.name = name
        self.value = value
        super().__init__(f"{name} must be {expected}, got {value!r}")
