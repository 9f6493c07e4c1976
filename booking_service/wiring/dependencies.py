from functools import lru_cache
import logging
from zoneinfo import ZoneInfo

from booking_service.core.config import settings
from booking_service.application.ports.booking_store import BookingStorePort
from booking_service.application.ports.local_user_directory import LocalUserDirectoryPort
from booking_service.application.ports.notifications import NotificationDispatcherPort, NotificationSenderPort
from booking_service.application.ports.user_directory import UserDirectoryPort
from booking_service.application.use_cases.booking_orchestrator import BookingOrchestrator
from booking_service.infrastructure.directory.mock_directory import MockUserDirectory
from booking_service.infrastructure.directory.user_service_client import UserServiceDirectory
from booking_service.infrastructure.notifications.dispatcher import BackgroundNotificationDispatcher
from booking_service.infrastructure.notifications.mock_sender import MockNotificationSender
from booking_service.infrastructure.notifications.notification_client import NotificationServiceClient
from booking_service.infrastructure.store.memory_store import MemoryBookingStore, MemoryLocalUserDirectory
from booking_service.infrastructure.store.sql_store import (
    SqlBookingStore,
    SqlLocalUserDirectory,
    build_session_factory,
)


logger = logging.getLogger(__name__)


def _is_dev() -> bool:
    return settings.ENV.lower() in {"dev", "local"}


@lru_cache
def _session_factory():
    return build_session_factory(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)


@lru_cache
def get_booking_store() -> BookingStorePort:
    if settings.DATABASE_URL:
        logger.info("Using SQL booking store")
        return SqlBookingStore(_session_factory())
    logger.info("Using in-memory booking store (DATABASE_URL not set)")
    return MemoryBookingStore()


@lru_cache
def get_local_user_directory() -> LocalUserDirectoryPort:
    if settings.DATABASE_URL:
        return SqlLocalUserDirectory(_session_factory())
    return MemoryLocalUserDirectory()


@lru_cache
def get_user_directory() -> UserDirectoryPort:
    if not settings.USER_SERVICE_URL:
        if _is_dev():
            logger.info("Using MockUserDirectory (USER_SERVICE_URL missing, ENV=dev/local)")
            return MockUserDirectory(auto_register=True)
        raise ValueError("USER_SERVICE_URL is required outside dev/local.")
    return UserServiceDirectory()


def get_notification_sender() -> NotificationSenderPort:
    if not settings.NOTIFICATION_SERVICE_URL:
        if _is_dev():
            logger.info("Using MockNotificationSender (NOTIFICATION_SERVICE_URL missing, ENV=dev/local)")
            return MockNotificationSender()
        raise ValueError("NOTIFICATION_SERVICE_URL is required outside dev/local.")
    return NotificationServiceClient()


@lru_cache
def get_notification_dispatcher() -> NotificationDispatcherPort:
    return BackgroundNotificationDispatcher(
        sender=get_notification_sender(),
        max_workers=settings.NOTIFICATION_MAX_WORKERS,
        max_pending=settings.NOTIFICATION_MAX_PENDING,
    )


def get_booking_orchestrator() -> BookingOrchestrator:
    return BookingOrchestrator(
        store=get_booking_store(),
        local_users=get_local_user_directory(),
        user_directory=get_user_directory(),
        notifications=get_notification_dispatcher(),
        timezone=ZoneInfo(settings.BOOKING_TIMEZONE),
    )
