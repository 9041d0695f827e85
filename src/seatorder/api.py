"""FastAPI REST API for seatorder."""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from . import __version__
from .claims import ManagerClaims, SessionClaims, decode_manager_token, decode_session_token
from .config import Settings, configure_logging, load_settings
from .errors import (
    CannotAddItemError,
    EntityExistsError,
    EntityNotFoundError,
    InvalidArgumentError,
    InvalidCredentialsError,
    InvalidSettingError,
    InvalidStatusTransitionError,
    InvalidTokenError,
    NoItemsError,
    OrderAlreadyFinalError,
    OrderExpiredError,
    PasswordPolicyError,
    RefundAmountExceedsTotalError,
    SeatOrderError,
    SigningSecretMissingError,
    UnknownStatusError,
    ValidationError,
)
from .models import Manager, OrderSession, Seat, Store
from .services import ItemInput, SeatOrderService, expiry_from_timestamp

logger = logging.getLogger("seatorder.api")

SESSION_COOKIE = "session_jwt"
MANAGER_COOKIE = "jwt_token"


# --- Pydantic Schemas ---


class SignUpRequest(BaseModel):
    email: str = ""
    password: str = ""


class SignInRequest(BaseModel):
    email: str = ""
    password: str = ""


class ManagerSchema(BaseModel):
    id: str
    email: str
    is_admin: bool
    created_at: str
    updated_at: str


class StoreRequest(BaseModel):
    """Request body for registering or replacing a store."""

    name: str = ""
    email: str = ""
    password: str = ""
    address: str = ""
    phone: str = ""


class StoreSchema(BaseModel):
    """Store as returned to clients; never carries the password hash."""

    id: str
    name: str
    email: str
    address: str
    phone: str
    created_at: str
    updated_at: str


class SeatCreateRequest(BaseModel):
    name: str = Field(..., description="Display name of the seat, e.g. 'Table 4'")


class SeatSchema(BaseModel):
    id: str
    store_id: str
    name: str
    created_at: str
    updated_at: str


class ItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=0)
    price: float = Field(..., ge=0)

    def to_input(self) -> ItemInput:
        return ItemInput(product_id=self.product_id, quantity=self.quantity, price=self.price)


class OpenOrderRequest(BaseModel):
    items: list[ItemRequest] = Field(default_factory=list)


class LineItemSchema(BaseModel):
    id: str
    order_id: str
    product_id: str
    quantity: int
    price: float
    subtotal: float
    created_at: str
    updated_at: str


class OrderSessionSchema(BaseModel):
    id: str
    store_id: str
    seat_id: str
    items: list[LineItemSchema]
    total_amount: float
    status: str
    issued_at: str
    expires_at: str
    created_at: str
    updated_at: str


class StatusChangeRequest(BaseModel):
    status: str = Field(..., description="Target status, e.g. 'confirmed'")


class RefundRequest(BaseModel):
    amount: float = Field(..., ge=0)


# --- Envelope helpers ---


def respond(message: str, data: Any = None, status_code: int = 200) -> JSONResponse:
    logger.info(message)
    return JSONResponse(status_code=status_code, content={"message": message, "data": data})


def manager_to_data(manager: Manager) -> dict[str, Any]:
    return ManagerSchema(**manager.to_dict(include_password=False)).model_dump()


def store_to_data(store: Store) -> dict[str, Any]:
    return StoreSchema(**store.to_dict(include_password=False)).model_dump()


def seat_to_data(seat: Seat) -> dict[str, Any]:
    return SeatSchema(**seat.to_dict()).model_dump()


def order_to_data(order: OrderSession) -> dict[str, Any]:
    return OrderSessionSchema(**order.to_dict()).model_dump()


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    InvalidArgumentError: 400,
    NoItemsError: 400,
    ValidationError: 400,
    PasswordPolicyError: 400,
    UnknownStatusError: 400,
    InvalidCredentialsError: 401,
    InvalidTokenError: 401,
    EntityNotFoundError: 404,
    EntityExistsError: 409,
    CannotAddItemError: 409,
    OrderAlreadyFinalError: 409,
    InvalidStatusTransitionError: 409,
    OrderExpiredError: 410,
    RefundAmountExceedsTotalError: 422,
    SigningSecretMissingError: 500,
    InvalidSettingError: 500,
}


# --- Dependencies ---


_bearer = HTTPBearer(auto_error=False)


def get_service(request: Request) -> SeatOrderService:
    return request.app.state.service


def _token_from(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials], cookie: str
) -> str:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    token = request.cookies.get(cookie)
    if not token:
        raise InvalidTokenError("missing bearer token")
    return token


def require_manager(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> ManagerClaims:
    token = _token_from(request, credentials, MANAGER_COOKIE)
    return decode_manager_token(token, request.app.state.settings)


def require_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> SessionClaims:
    token = _token_from(request, credentials, SESSION_COOKIE)
    return decode_session_token(token, request.app.state.settings)


# --- Public routes ---


public = APIRouter(prefix="/public")


@public.get("/health")
def public_health():
    return respond("success, public health", {"message": "OK"})


@public.post("/signup")
def signup(body: SignUpRequest, service: SeatOrderService = Depends(get_service)):
    """Create a manager account. The password is stored as a bcrypt hash."""
    manager = service.sign_up_manager(body.email, body.password)
    return respond("success, create manager", manager_to_data(manager))


@public.post("/signin")
def signin(
    body: SignInRequest,
    service: SeatOrderService = Depends(get_service),
):
    """
    Verify manager credentials and issue a bearer token.

    The token is returned in the body and also set as the `jwt_token` cookie.
    The password hash is never returned.
    """
    token, manager = service.sign_in_manager(body.email, body.password)
    result = respond(
        "success, create jwt token",
        {"token": token, "token_type": "bearer", "manager": manager_to_data(manager)},
    )
    result.set_cookie(
        MANAGER_COOKIE,
        token,
        max_age=service.settings.manager_token_ttl_hours * 3600,
        httponly=True,
        samesite="lax",
    )
    return result


@public.get("/session")
def start_session(
    store_id: str = Query(default=""),
    seat_id: str = Query(default=""),
    exp: int = Query(
        default=0, description="Optional expiry as a unix timestamp, at most the session lifetime ahead"
    ),
    service: SeatOrderService = Depends(get_service),
):
    """
    Start an ordering session for a seat (the QR code landing call).

    Sets the `session_jwt` cookie; later session requests may send either
    the cookie or an Authorization header.
    """
    expires_at = expiry_from_timestamp(exp) if exp else None
    token, claims = service.start_session(store_id, seat_id, expires_at=expires_at)
    message = f"Session started for store_id={store_id}, seat_id={seat_id}"
    result = respond(message, {"message": message, "token": token})
    result.set_cookie(
        SESSION_COOKIE,
        token,
        expires=claims.expires_at,
        httponly=True,
        secure=True,
    )
    return result


# --- Manager routes ---


manager_router = APIRouter(prefix="/private/manager")


@manager_router.get("/health")
def manager_health(claims: ManagerClaims = Depends(require_manager)):
    return respond("success, private health", {"message": "OK", "email": claims.email})


@manager_router.get("/store")
def list_stores(
    claims: ManagerClaims = Depends(require_manager),
    service: SeatOrderService = Depends(get_service),
):
    stores = service.list_stores()
    return respond(f"found {len(stores)} store(s)", [store_to_data(s) for s in stores])


@manager_router.post("/store")
def register_store(
    body: StoreRequest,
    claims: ManagerClaims = Depends(require_manager),
    service: SeatOrderService = Depends(get_service),
):
    store = service.register_store(body.name, body.email, body.password, body.address, body.phone)
    return respond("Store added successfully", store_to_data(store))


@manager_router.get("/store/{store_id}")
def get_store(
    store_id: str,
    claims: ManagerClaims = Depends(require_manager),
    service: SeatOrderService = Depends(get_service),
):
    return respond(f"found store {store_id}", store_to_data(service.get_store(store_id)))


@manager_router.put("/store/{store_id}")
def update_store(
    store_id: str,
    body: StoreRequest,
    claims: ManagerClaims = Depends(require_manager),
    service: SeatOrderService = Depends(get_service),
):
    store = service.update_store(
        store_id, body.name, body.email, body.password, body.address, body.phone
    )
    return respond("Store updated successfully", store_to_data(store))


@manager_router.delete("/store/{store_id}")
def delete_store(
    store_id: str,
    claims: ManagerClaims = Depends(require_manager),
    service: SeatOrderService = Depends(get_service),
):
    store = service.delete_store(store_id)
    return respond("Store deleted successfully", store_to_data(store))


@manager_router.post("/store/{store_id}/seat")
def create_seat(
    store_id: str,
    body: SeatCreateRequest,
    claims: ManagerClaims = Depends(require_manager),
    service: SeatOrderService = Depends(get_service),
):
    seat = service.create_seat(store_id, body.name)
    return respond("Seat added successfully", seat_to_data(seat))


@manager_router.get("/store/{store_id}/seat")
def list_seats(
    store_id: str,
    claims: ManagerClaims = Depends(require_manager),
    service: SeatOrderService = Depends(get_service),
):
    seats = service.list_seats(store_id)
    return respond(f"found {len(seats)} seat(s)", [seat_to_data(s) for s in seats])


@manager_router.get("/store/{store_id}/seat/{seat_id}/qr")
def issue_seat_qr(
    store_id: str,
    seat_id: str,
    claims: ManagerClaims = Depends(require_manager),
    service: SeatOrderService = Depends(get_service),
):
    """Issue a session token for a seat together with the URL its QR code encodes."""
    token, _ = service.start_session(store_id, seat_id)
    return respond(
        f"Session started for store_id={store_id}, seat_id={seat_id}",
        {"token": token, "url": service.seat_order_url(store_id, seat_id)},
    )


@manager_router.get("/orders")
def list_orders(
    store_id: Optional[str] = Query(default=None),
    claims: ManagerClaims = Depends(require_manager),
    service: SeatOrderService = Depends(get_service),
):
    orders = service.list_orders(store_id)
    return respond(f"found {len(orders)} order(s)", [order_to_data(o) for o in orders])


@manager_router.get("/orders/{order_id}")
def get_order_for_manager(
    order_id: str,
    claims: ManagerClaims = Depends(require_manager),
    service: SeatOrderService = Depends(get_service),
):
    return respond(f"found order {order_id}", order_to_data(service.get_order(order_id)))


@manager_router.post("/orders/{order_id}/status")
def change_order_status(
    order_id: str,
    body: StatusChangeRequest,
    claims: ManagerClaims = Depends(require_manager),
    service: SeatOrderService = Depends(get_service),
):
    order = service.change_status(order_id, body.status)
    return respond(f"Order {order_id} is now {order.status}", order_to_data(order))


@manager_router.post("/orders/{order_id}/refund")
def refund_order(
    order_id: str,
    body: RefundRequest,
    claims: ManagerClaims = Depends(require_manager),
    service: SeatOrderService = Depends(get_service),
):
    order = service.refund_partially(order_id, body.amount)
    return respond(f"Order {order_id} partially refunded", order_to_data(order))


# --- Session routes ---


session_router = APIRouter(prefix="/private/session")


@session_router.get("/health")
def session_health(claims: SessionClaims = Depends(require_session)):
    return respond(
        "success, private health",
        {"message": "OK", "store_id": claims.store_id, "seat_id": claims.seat_id},
    )


@session_router.post("/orders", status_code=201)
def open_order(
    body: OpenOrderRequest,
    claims: SessionClaims = Depends(require_session),
    service: SeatOrderService = Depends(get_service),
):
    order = service.open_order(
        claims.store_id, claims.seat_id, [item.to_input() for item in body.items]
    )
    return respond("Order created", order_to_data(order), status_code=201)


@session_router.get("/orders/{order_id}")
def get_session_order(
    order_id: str,
    claims: SessionClaims = Depends(require_session),
    service: SeatOrderService = Depends(get_service),
):
    order = service.get_order(order_id, store_id=claims.store_id, seat_id=claims.seat_id)
    return respond(f"found order {order_id}", order_to_data(order))


@session_router.post("/orders/{order_id}/items")
def add_order_item(
    order_id: str,
    body: ItemRequest,
    claims: SessionClaims = Depends(require_session),
    service: SeatOrderService = Depends(get_service),
):
    order = service.add_item(
        order_id, body.to_input(), store_id=claims.store_id, seat_id=claims.seat_id
    )
    return respond("Item added", order_to_data(order))


# --- FastAPI App ---


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application around explicitly supplied settings."""
    settings = settings or load_settings()
    configure_logging(settings)

    app = FastAPI(
        title="seatorder API",
        description="REST API for QR table ordering",
        version=__version__,
    )
    app.state.settings = settings
    app.state.service = SeatOrderService(settings)

    # Production only accepts the deployed frontend; other environments allow any origin
    origins = [settings.frontend_url] if settings.is_production and settings.frontend_url else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Accept", "Authorization", "X-Requested-With"],
        max_age=86400,
    )

    @app.exception_handler(SeatOrderError)
    async def seatorder_error_handler(request: Request, exc: SeatOrderError) -> JSONResponse:
        """Map SeatOrderError subclasses to the error envelope."""
        status_code = ERROR_STATUS_CODES.get(type(exc), 500)
        logger.error("msg: %s %s failed, error: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={
                "message": f"{request.method} {request.url.path} failed",
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.error("msg: Failed to bind request, error: %s", exc.errors())
        return JSONResponse(
            status_code=400,
            content={
                "message": "Failed to bind request",
                "error": str(exc.errors()),
                "error_type": "RequestValidationError",
            },
        )

    v1 = APIRouter(prefix="/api/v1")
    v1.include_router(public)
    v1.include_router(manager_router)
    v1.include_router(session_router)
    app.include_router(v1)
    return app


app = create_app()
