from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from booking_service.application.ports.booking_store import BookingStorePort
from booking_service.wiring.dependencies import get_booking_store

router = APIRouter(prefix="/health")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
def health(store: BookingStorePort = Depends(get_booking_store)) -> JSONResponse:
    if store.ping():
        return JSONResponse({"status": "healthy", "database": "connected", "timestamp": _now_iso()})
    return JSONResponse(
        {"status": "unhealthy", "database": "disconnected", "timestamp": _now_iso()},
        status_code=503,
    )


@router.get("/ready")
def ready(store: BookingStorePort = Depends(get_booking_store)) -> JSONResponse:
    if store.ping():
        return JSONResponse({"status": "ready", "timestamp": _now_iso()})
    return JSONResponse({"status": "not ready", "timestamp": _now_iso()}, status_code=503)


@router.get("/alive")
def alive() -> dict[str, str]:
    return {"status": "alive", "timestamp": _now_iso()}
