"""
Хранилище на SQLAlchemy.

Таблицы и преобразование строк в доменные модели живут только здесь.
Атомарность «проверка пересечений + вставка» обеспечивается блокировкой
строки номера: транзакция сначала увеличивает rooms.lock_version и лишь
затем перечитывает пересекающиеся бронирования. Единственность
не-FAILED платежа на бронирование гарантирует частичный уникальный индекс.
"""

from decimal import Decimal
from typing import Callable, List, Optional

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    create_engine,
    select,
    text,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..booking import interfaces as ports
from ..booking.domain import Booking, Room
from ..payments import interfaces as payment_ports
from ..payments.domain import Payment
from ..shared_kernel import (
    ACTIVE_BOOKING_STATUSES,
    BookingNotFoundError,
    BookingStatus,
    ConcurrencyException,
    DateRange,
    DuplicatePaymentError,
    EntityId,
    Money,
    PaymentMethod,
    PaymentNotFoundError,
    PaymentStatus,
    RoomNotFoundError,
    RoomStatus,
    RoomType,
    StorageError,
)
from .event_bus import InMemoryEventBus
from .log import StdLogger
from .unit_of_work import AbstractUnitOfWork, TrackingRepository

Base = declarative_base()

_ACTIVE = [status.value for status in ACTIVE_BOOKING_STATUSES]


class RoomRow(Base):
    __tablename__ = "rooms"

    id = Column(Uuid, primary_key=True)
    number = Column(String(20), unique=True, nullable=False)
    type = Column(String(20), nullable=False, default=RoomType.SINGLE.value)
    capacity = Column(Integer, nullable=False)
    price_per_night = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    amenities = Column(Text, nullable=False, default="")
    availability_status = Column(String(20), nullable=False, default=RoomStatus.AVAILABLE.value)
    # Увеличивается каждой транзакцией создания бронирования (блокировка строки)
    lock_version = Column(Integer, nullable=False, default=0)


class BookingRow(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_room_status", "room_id", "status"),
        Index("ix_bookings_dates", "check_in", "check_out"),
    )

    id = Column(Uuid, primary_key=True)
    room_id = Column(Uuid, ForeignKey("rooms.id"), nullable=False)
    guest_id = Column(Uuid, nullable=False, index=True)
    check_in = Column(Date, nullable=False)
    check_out = Column(Date, nullable=False)
    guest_count = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False)
    special_requests = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    version = Column(Integer, nullable=False, default=0)


class PaymentRow(Base):
    __tablename__ = "payments"
    __table_args__ = (
        Index(
            "uq_payments_open_per_booking",
            "booking_id",
            unique=True,
            sqlite_where=text("status != 'failed'"),
            postgresql_where=text("status != 'failed'"),
        ),
    )

    id = Column(Uuid, primary_key=True)
    booking_id = Column(Uuid, ForeignKey("bookings.id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    method = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False)
    refund_reason = Column(Text, nullable=True)
    transaction_id = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    version = Column(Integer, nullable=False, default=0)


def create_schema(engine: Engine) -> None:
    """Создает таблицы хранилища."""
    Base.metadata.create_all(bind=engine)


def make_engine(database_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


# Преобразование строк в доменные модели


def _room_from_row(row: RoomRow) -> Room:
    return Room(
        id=row.id,
        number=row.number,
        type=RoomType(row.type),
        capacity=row.capacity,
        price_per_night=Money(amount=Decimal(row.price_per_night), currency=row.currency),
        amenities=[a for a in (row.amenities or "").split(",") if a],
        availability_status=RoomStatus(row.availability_status),
    )


def _booking_from_row(row: BookingRow) -> Booking:
    return Booking(
        id=row.id,
        room_id=row.room_id,
        guest_id=row.guest_id,
        period=DateRange(check_in=row.check_in, check_out=row.check_out),
        guest_count=row.guest_count,
        status=BookingStatus(row.status),
        special_requests=row.special_requests,
        cancellation_reason=row.cancellation_reason,
        created_at=row.created_at,
        updated_at=row.updated_at,
        version=row.version,
    )


def _payment_from_row(row: PaymentRow) -> Payment:
    return Payment(
        id=row.id,
        booking_id=row.booking_id,
        amount=Money(amount=Decimal(row.amount), currency=row.currency),
        method=PaymentMethod(row.method),
        status=PaymentStatus(row.status),
        refund_reason=row.refund_reason,
        transaction_id=row.transaction_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        version=row.version,
    )


class SqlAlchemyRoomRepository(TrackingRepository, ports.IRoomRepository):
    def __init__(self, session: Session):
        super().__init__()
        self._session = session

    def get_by_id(self, room_id: EntityId) -> Optional[Room]:
        row = self._session.get(RoomRow, room_id)
        return _room_from_row(row) if row is not None else None

    def list_all(self) -> List[Room]:
        rows = self._session.execute(select(RoomRow).order_by(RoomRow.number)).scalars()
        return [_room_from_row(row) for row in rows]

    def add(self, room: Room) -> None:
        self._session.add(
            RoomRow(
                id=room.id,
                number=room.number,
                type=room.type.value,
                capacity=room.capacity,
                price_per_night=room.price_per_night.amount,
                currency=room.price_per_night.currency,
                amenities=",".join(room.amenities),
                availability_status=room.availability_status.value,
                lock_version=0,
            )
        )
        self._session.flush()


class SqlAlchemyBookingRepository(TrackingRepository, ports.IBookingRepository):
    def __init__(self, session: Session):
        super().__init__()
        self._session = session

    def get_by_id(self, booking_id: EntityId) -> Optional[Booking]:
        row = self._session.get(BookingRow, booking_id)
        return _booking_from_row(row) if row is not None else None

    def find_active_bookings_for_room(self, room_id: EntityId) -> List[Booking]:
        rows = self._session.execute(
            select(BookingRow).where(
                BookingRow.room_id == room_id, BookingRow.status.in_(_ACTIVE)
            )
        ).scalars()
        return [_booking_from_row(row) for row in rows]

    def insert_booking_if_no_conflict(self, booking: Booking) -> bool:
        locked = self._session.execute(
            update(RoomRow)
            .where(RoomRow.id == booking.room_id)
            .values(lock_version=RoomRow.lock_version + 1)
            .execution_options(synchronize_session=False)
        )
        if locked.rowcount == 0:
            raise RoomNotFoundError(booking.room_id)

        conflict = self._session.execute(
            select(BookingRow.id)
            .where(
                BookingRow.room_id == booking.room_id,
                BookingRow.status.in_(_ACTIVE),
                BookingRow.check_in < booking.period.check_out,
                BookingRow.check_out > booking.period.check_in,
            )
            .limit(1)
        ).first()
        if conflict is not None:
            return False

        self._session.add(
            BookingRow(
                id=booking.id,
                room_id=booking.room_id,
                guest_id=booking.guest_id,
                check_in=booking.period.check_in,
                check_out=booking.period.check_out,
                guest_count=booking.guest_count,
                status=booking.status.value,
                special_requests=booking.special_requests,
                cancellation_reason=booking.cancellation_reason,
                created_at=booking.created_at,
                updated_at=booking.updated_at,
                version=booking.version,
            )
        )
        self._session.flush()
        self._track(booking)
        return True

    def update(self, booking: Booking) -> None:
        result = self._session.execute(
            update(BookingRow)
            .where(BookingRow.id == booking.id, BookingRow.version == booking.version)
            .values(
                status=booking.status.value,
                cancellation_reason=booking.cancellation_reason,
                special_requests=booking.special_requests,
                updated_at=booking.updated_at,
                version=booking.version + 1,
            )
        )
        if result.rowcount == 0:
            if self._session.get(BookingRow, booking.id) is None:
                raise BookingNotFoundError(booking.id)
            raise ConcurrencyException(
                f"Бронирование {booking.id} было изменено параллельно",
                booking_id=booking.id,
            )
        booking.version += 1
        self._track(booking)

    def list_all(self) -> List[Booking]:
        rows = self._session.execute(select(BookingRow)).scalars()
        return [_booking_from_row(row) for row in rows]

    def find_by_guest(self, guest_id: EntityId) -> List[Booking]:
        rows = self._session.execute(
            select(BookingRow).where(BookingRow.guest_id == guest_id)
        ).scalars()
        return [_booking_from_row(row) for row in rows]

    def find_by_status(self, status: BookingStatus) -> List[Booking]:
        rows = self._session.execute(
            select(BookingRow).where(BookingRow.status == status.value)
        ).scalars()
        return [_booking_from_row(row) for row in rows]


class SqlAlchemyPaymentRepository(TrackingRepository, payment_ports.IPaymentRepository):
    def __init__(self, session: Session):
        super().__init__()
        self._session = session

    def get_by_id(self, payment_id: EntityId) -> Optional[Payment]:
        row = self._session.get(PaymentRow, payment_id)
        return _payment_from_row(row) if row is not None else None

    def get_for_booking(self, booking_id: EntityId) -> Optional[Payment]:
        row = self._session.execute(
            select(PaymentRow)
            .where(PaymentRow.booking_id == booking_id)
            .order_by(PaymentRow.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()
        return _payment_from_row(row) if row is not None else None

    def find_for_booking(self, booking_id: EntityId) -> List[Payment]:
        rows = self._session.execute(
            select(PaymentRow)
            .where(PaymentRow.booking_id == booking_id)
            .order_by(PaymentRow.created_at)
        ).scalars()
        return [_payment_from_row(row) for row in rows]

    def add(self, payment: Payment) -> None:
        self._session.add(
            PaymentRow(
                id=payment.id,
                booking_id=payment.booking_id,
                amount=payment.amount.amount,
                currency=payment.amount.currency,
                method=payment.method.value,
                status=payment.status.value,
                refund_reason=payment.refund_reason,
                transaction_id=payment.transaction_id,
                created_at=payment.created_at,
                updated_at=payment.updated_at,
                version=payment.version,
            )
        )
        try:
            self._session.flush()
        except IntegrityError as exc:
            raise DuplicatePaymentError(
                f"Для бронирования {payment.booking_id} уже существует платеж",
                booking_id=payment.booking_id,
            ) from exc
        self._track(payment)

    def update(self, payment: Payment) -> None:
        result = self._session.execute(
            update(PaymentRow)
            .where(PaymentRow.id == payment.id, PaymentRow.version == payment.version)
            .values(
                status=payment.status.value,
                refund_reason=payment.refund_reason,
                transaction_id=payment.transaction_id,
                updated_at=payment.updated_at,
                version=payment.version + 1,
            )
        )
        if result.rowcount == 0:
            if self._session.get(PaymentRow, payment.id) is None:
                raise PaymentNotFoundError(payment.id)
            raise ConcurrencyException(
                f"Платеж {payment.id} был изменен параллельно", payment_id=payment.id
            )
        payment.version += 1
        self._track(payment)


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """Единица работы над сессией SQLAlchemy (одна транзакция на блок with)."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        event_bus: Optional[ports.IEventBus] = None,
        logger: Optional[ports.ILogger] = None,
    ):
        logger = logger or StdLogger("hotel_booking.uow")
        super().__init__(event_bus or InMemoryEventBus(logger), logger)
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str, **kwargs) -> "SqlAlchemyUnitOfWork":
        engine = make_engine(database_url)
        create_schema(engine)
        return cls(sessionmaker(bind=engine, autoflush=False, expire_on_commit=False), **kwargs)

    @property
    def rooms(self) -> SqlAlchemyRoomRepository:
        return self._state("rooms")

    @property
    def bookings(self) -> SqlAlchemyBookingRepository:
        return self._state("bookings")

    @property
    def payments(self) -> SqlAlchemyPaymentRepository:
        return self._state("payments")

    def _begin(self) -> None:
        session = self._session_factory()
        self._local.session = session
        self._local.rooms = SqlAlchemyRoomRepository(session)
        self._local.bookings = SqlAlchemyBookingRepository(session)
        self._local.payments = SqlAlchemyPaymentRepository(session)

    def _commit(self) -> None:
        try:
            self._local.session.commit()
        except SQLAlchemyError as exc:
            raise StorageError("Не удалось зафиксировать транзакцию") from exc

    def _rollback(self) -> None:
        self._local.session.rollback()

    def _end(self) -> None:
        self._local.session.close()
        self._local.session = None
        self._local.rooms = None
        self._local.bookings = None
        self._local.payments = None

    def _repositories(self) -> List[TrackingRepository]:
        return [self._local.rooms, self._local.bookings, self._local.payments]

    def __exit__(self, exc_type, exc_val, exc_tb):
        if isinstance(exc_val, SQLAlchemyError):
            super().__exit__(exc_type, exc_val, exc_tb)
            raise StorageError("Ошибка хранилища") from exc_val
        return super().__exit__(exc_type, exc_val, exc_tb)
