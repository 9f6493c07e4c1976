from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from booking_service.application.ports.notifications import NoticeBuilder, NotificationDispatcherPort
from booking_service.application.use_cases.booking_orchestrator import BookingOrchestrator
from booking_service.domain.entities.booking_notice import BookingNotice
from booking_service.domain.entities.user_profile import UserProfile
from booking_service.infrastructure.directory.mock_directory import MockUserDirectory
from booking_service.infrastructure.store.memory_store import MemoryBookingStore, MemoryLocalUserDirectory

CLOCK_START = datetime(2026, 2, 1, 12, 0, tzinfo=timezone.utc)


class TickingClock:
    """Returns a strictly increasing UTC time on every call."""

    def __init__(self, start: datetime = CLOCK_START, step: timedelta = timedelta(minutes=1)) -> None:
        self._now = start
        self._step = step
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            current = self._now
            self._now = current + self._step
            return current


class RecordingDispatcher(NotificationDispatcherPort):
    def __init__(self) -> None:
        self.created: list[BookingNotice] = []
        self.cancelled: list[BookingNotice] = []

    def notify_created(self, notice: BookingNotice) -> None:
        self.created.append(notice)

    def notify_cancelled(self, build_notice: NoticeBuilder) -> None:
        # runs the builder inline
        notice = build_notice()
        if notice is not None:
            self.cancelled.append(notice)


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def directory() -> MockUserDirectory:
    return MockUserDirectory(
        profiles=[
            UserProfile(external_id="U1", email="ana@example.com", display_name="Ana Torres"),
            UserProfile(external_id="U2", email="luis@example.com", display_name="Luis Vera"),
        ]
    )


@pytest.fixture
def store() -> MemoryBookingStore:
    return MemoryBookingStore()


@pytest.fixture
def local_users() -> MemoryLocalUserDirectory:
    return MemoryLocalUserDirectory()


@pytest.fixture
def notifications() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def orchestrator(store, local_users, directory, notifications, clock) -> BookingOrchestrator:
    return BookingOrchestrator(
        store=store,
        local_users=local_users,
        user_directory=directory,
        notifications=notifications,
        clock=clock,
    )
