from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, TypeVar

from sqlalchemy import create_engine, delete, select, text
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from booking_service.application.exceptions import BookingServiceError, TransactionFailedError
from booking_service.application.ports.booking_store import BookingStorePort
from booking_service.application.ports.local_user_directory import LocalUserDirectoryPort
from booking_service.application.utils.civil_time import as_utc, utc_now
from booking_service.domain.entities.booking import Booking, BookingStatus
from booking_service.domain.entities.local_user import LocalUser
from booking_service.domain.entities.user_profile import UserProfile
from booking_service.infrastructure.store.sql_models import (
    Base,
    BookingRecord,
    LocalUserRecord,
    new_record_id,
)

T = TypeVar("T")


def build_session_factory(database_url: str, echo: bool = False) -> sessionmaker[Session]:
    """Create the engine, make sure the tables exist and return a session factory."""
    kwargs: dict = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in {"sqlite://", "sqlite:///:memory:"}:
            # one shared connection, otherwise every session gets an empty database
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(database_url, **kwargs)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def _to_booking(record: BookingRecord) -> Booking:
    return Booking(
        id=record.id,
        user_id=record.user_id,
        date=as_utc(record.date),
        service_name=record.service_name,
        status=BookingStatus(record.status),
        cancelled_at=as_utc(record.cancelled_at) if record.cancelled_at else None,
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
    )


def _to_local_user(record: LocalUserRecord) -> LocalUser:
    return LocalUser(
        id=record.id,
        external_id=record.external_id,
        email=record.email,
        display_name=record.display_name,
    )


class SqlBookingStore(BookingStorePort):
    """
    Booking store over SQLAlchemy.

    Without a bound session every call runs in its own short transaction.
    run_transaction binds a handle to one session so all of `fn`'s calls commit or roll back together.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Callable[[], datetime] = utc_now,
        session: Session | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._bound = session
        self._logger = logging.getLogger(__name__)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        if self._bound is not None:
            yield self._bound
            return
        try:
            with self._session_factory.begin() as session:
                yield session
        except SQLAlchemyError as e:
            self._logger.error("Booking store call failed", extra={"error": str(e)})
            raise TransactionFailedError(f"store call failed: {e}") from e

    def create(self, user_id: str, date: datetime, service_name: str) -> Booking:
        now = as_utc(self._clock())
        with self._session() as session:
            record = BookingRecord(
                user_id=user_id,
                date=as_utc(date),
                service_name=service_name,
                status=BookingStatus.ACTIVE.value,
                cancelled_at=None,
                created_at=now,
                updated_at=now,
            )
            session.add(record)
            session.flush()
            return _to_booking(record)

    def find_by_id(self, booking_id: str) -> Booking | None:
        with self._session() as session:
            record = session.get(BookingRecord, booking_id, populate_existing=True)
            return _to_booking(record) if record else None

    def find_by_user(self, user_id: str) -> list[Booking]:
        stmt = (
            select(BookingRecord)
            .where(BookingRecord.user_id == user_id)
            .order_by(BookingRecord.date.desc(), BookingRecord.id.asc())
        )
        with self._session() as session:
            return [_to_booking(r) for r in session.execute(stmt).scalars().all()]

    def find_active_upcoming(self, user_id: str, since: datetime, limit: int) -> list[Booking]:
        if limit <= 0:
            return []
        stmt = (
            select(BookingRecord)
            .where(
                BookingRecord.user_id == user_id,
                BookingRecord.status == BookingStatus.ACTIVE.value,
                BookingRecord.date >= as_utc(since),
            )
            .order_by(BookingRecord.date.asc(), BookingRecord.id.asc())
            .limit(limit)
        )
        with self._session() as session:
            return [_to_booking(r) for r in session.execute(stmt).scalars().all()]

    def find_cancelled(self, user_id: str) -> list[Booking]:
        stmt = (
            select(BookingRecord)
            .where(
                BookingRecord.user_id == user_id,
                BookingRecord.status == BookingStatus.CANCELLED.value,
            )
            .order_by(
                BookingRecord.cancelled_at.asc(),
                BookingRecord.created_at.asc(),
                BookingRecord.id.asc(),
            )
        )
        with self._session() as session:
            return [_to_booking(r) for r in session.execute(stmt).scalars().all()]

    def update_status(
        self,
        booking_id: str,
        status: BookingStatus,
        cancelled_at: datetime | None = None,
    ) -> Booking | None:
        now = as_utc(self._clock())
        with self._session() as session:
            record = session.get(BookingRecord, booking_id, populate_existing=True)
            if record is None:
                return None
            updated = _to_booking(record).with_status(
                status,
                as_utc(cancelled_at) if cancelled_at else None,
                now,
            )
            record.status = updated.status.value
            record.cancelled_at = updated.cancelled_at
            record.updated_at = updated.updated_at or now
            session.flush()
            return updated

    def delete(self, booking_id: str) -> bool:
        with self._session() as session:
            result = session.execute(delete(BookingRecord).where(BookingRecord.id == booking_id))
            return result.rowcount > 0

    def delete_batch(self, booking_ids: list[str]) -> int:
        if not booking_ids:
            return 0
        with self._session() as session:
            result = session.execute(delete(BookingRecord).where(BookingRecord.id.in_(booking_ids)))
            return result.rowcount

    def lock_user(self, user_id: str) -> None:
        if self._bound is None:
            return
        # SELECT ... FOR UPDATE on the owner row; SQLite renders no lock clause and serializes writers itself
        self._bound.execute(
            select(LocalUserRecord.id).where(LocalUserRecord.id == user_id).with_for_update()
        )

    def run_transaction(self, fn: Callable[[BookingStorePort], T]) -> T:
        if self._bound is not None:
            return fn(self)

        try:
            with self._session_factory.begin() as session:
                handle = SqlBookingStore(self._session_factory, clock=self._clock, session=session)
                return fn(handle)
        except BookingServiceError:
            self._logger.info("Transaction rolled back")
            raise
        except Exception as e:
            self._logger.error("Transaction failed", extra={"error": str(e)})
            raise TransactionFailedError(f"transaction failed: {e}") from e

    def ping(self) -> bool:
        try:
            with self._session_factory() as session:
                session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            self._logger.error("Database ping failed", extra={"error": str(e)})
            return False


class SqlLocalUserDirectory(LocalUserDirectoryPort):
    """
    Local user mirror over SQLAlchemy.

    upsert is a single INSERT ... ON CONFLICT (external_id) DO NOTHING followed by a select,
    so concurrent first bookings for one identity converge on one row.
    """

    def __init__(self, session_factory: sessionmaker[Session], clock: Callable[[], datetime] = utc_now) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    @contextmanager
    def _session(self, operation: str, external_id: str | None = None) -> Iterator[Session]:
        try:
            with self._session_factory.begin() as session:
                yield session
        except SQLAlchemyError as e:
            self._logger.error(
                "Local user store call failed",
                extra={"external_id": external_id, "reason": operation, "error": str(e)},
            )
            raise TransactionFailedError(f"local user {operation} failed: {e}") from e

    def upsert(self, external_id: str, profile: UserProfile) -> LocalUser:
        values = {
            "id": new_record_id(),
            "external_id": external_id,
            "email": profile.email,
            "display_name": profile.display_name,
            "created_at": as_utc(self._clock()),
        }
        with self._session("upsert", external_id) as session:
            session.execute(_insert_ignoring_duplicates(session, values))
            record = session.execute(
                select(LocalUserRecord).where(LocalUserRecord.external_id == external_id)
            ).scalar_one()
            return _to_local_user(record)

    def find_by_external_id(self, external_id: str) -> LocalUser | None:
        with self._session("lookup", external_id) as session:
            record = session.execute(
                select(LocalUserRecord).where(LocalUserRecord.external_id == external_id)
            ).scalar_one_or_none()
            return _to_local_user(record) if record else None

    def find_by_id(self, user_id: str) -> LocalUser | None:
        with self._session("lookup") as session:
            record = session.get(LocalUserRecord, user_id)
            return _to_local_user(record) if record else None


def _insert_ignoring_duplicates(session: Session, values: dict):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql_insert(LocalUserRecord).values(**values)
    elif dialect == "sqlite":
        stmt = sqlite_insert(LocalUserRecord).values(**values)
    else:
        raise ValueError(f"unsupported database dialect for local users: {dialect}")
    return stmt.on_conflict_do_nothing(index_elements=[LocalUserRecord.external_id])
