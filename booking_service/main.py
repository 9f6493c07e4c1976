import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from booking_service.api.health import router as health_router
from booking_service.api.v1.bookings import router as bookings_router
from booking_service.core.config import settings
from booking_service.infrastructure.notifications.dispatcher import BackgroundNotificationDispatcher
from booking_service.wiring.dependencies import get_notification_dispatcher

class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("booking_id", "user_id", "external_id", "status", "evicted", "error", "reason"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if not get_notification_dispatcher.cache_info().currsize:
        return
    dispatcher = get_notification_dispatcher()
    if isinstance(dispatcher, BackgroundNotificationDispatcher):
        dispatcher.shutdown()


app = FastAPI(title="Booking Service", version="1.0.0", lifespan=lifespan)

app.include_router(health_router, tags=["health"])
app.include_router(bookings_router, prefix="/api/v1", tags=["bookings"])
