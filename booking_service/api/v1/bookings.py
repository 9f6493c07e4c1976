from fastapi import APIRouter, Depends, Header, HTTPException, Query

from booking_service.api.v1.schemas import (
    BookingSchema,
    CreateBookingRequestSchema,
    DeleteBookingResponseSchema,
)
from booking_service.application.exceptions import (
    BookingServiceError,
    InvalidInputError,
    NotFoundUpstreamError,
    TransactionFailedError,
    UnauthorizedError,
    UpstreamUnavailableError,
)
from booking_service.application.use_cases.booking_orchestrator import (
    DEFAULT_UPCOMING_LIMIT,
    NOT_OWNED_MESSAGE,
    BookingOrchestrator,
)
from booking_service.wiring.dependencies import get_booking_orchestrator

router = APIRouter()

_STATUS_BY_ERROR: list[tuple[type[BookingServiceError], int]] = [
    (InvalidInputError, 400),
    (UnauthorizedError, 403),
    (NotFoundUpstreamError, 404),
    (TransactionFailedError, 409),
    (UpstreamUnavailableError, 503),
]


def get_caller_external_id(x_user_id: str | None = Header(None)) -> str:
    # the gateway verifies the token and forwards the subject in X-User-Id
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id.strip()


def _http_error(e: BookingServiceError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(e, error_type):
            return HTTPException(status_code=status_code, detail=str(e))
    return HTTPException(status_code=500, detail="Internal error")


def _local_user_id(uc: BookingOrchestrator, external_id: str) -> str | None:
    local_user = uc.find_local_user(external_id)
    return local_user.id if local_user else None


@router.post("/bookings", response_model=BookingSchema, status_code=201)
def create_booking(
    req: CreateBookingRequestSchema,
    caller: str = Depends(get_caller_external_id),
    uc: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    try:
        view = uc.create_booking(caller, req.date, req.service_name)
    except BookingServiceError as e:
        raise _http_error(e)
    return BookingSchema.from_view(view)


@router.get("/bookings", response_model=list[BookingSchema])
def list_bookings(
    caller: str = Depends(get_caller_external_id),
    uc: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    user_id = _local_user_id(uc, caller)
    if user_id is None:
        return []
    return [BookingSchema.from_view(v) for v in uc.get_bookings(user_id)]


@router.get("/bookings/upcoming", response_model=list[BookingSchema])
def upcoming_bookings(
    limit: int = Query(DEFAULT_UPCOMING_LIMIT, ge=1, le=50),
    caller: str = Depends(get_caller_external_id),
    uc: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    user_id = _local_user_id(uc, caller)
    if user_id is None:
        return []
    return [BookingSchema.from_view(v) for v in uc.get_next_bookings(user_id, limit=limit)]


@router.get("/bookings/{booking_id}", response_model=BookingSchema)
def get_booking(
    booking_id: str,
    caller: str = Depends(get_caller_external_id),
    uc: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    try:
        view = uc.get_booking(booking_id, _owner_id(uc, caller))
    except BookingServiceError as e:
        raise _http_error(e)
    return BookingSchema.from_view(view)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingSchema)
def cancel_booking(
    booking_id: str,
    caller: str = Depends(get_caller_external_id),
    uc: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    try:
        view = uc.cancel_booking(booking_id, _owner_id(uc, caller))
    except BookingServiceError as e:
        raise _http_error(e)
    return BookingSchema.from_view(view)


@router.delete("/bookings/{booking_id}", response_model=DeleteBookingResponseSchema)
def delete_booking(
    booking_id: str,
    caller: str = Depends(get_caller_external_id),
    uc: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    try:
        deleted = uc.delete_booking(booking_id, _owner_id(uc, caller))
    except BookingServiceError as e:
        raise _http_error(e)
    return DeleteBookingResponseSchema(deleted=deleted)


def _owner_id(uc: BookingOrchestrator, external_id: str) -> str:
    user_id = _local_user_id(uc, external_id)
    if user_id is None:
        # a caller without a local record owns nothing
        raise UnauthorizedError(NOT_OWNED_MESSAGE)
    return user_id
