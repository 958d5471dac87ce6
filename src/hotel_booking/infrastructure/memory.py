"""
Хранилище в памяти.

Репозитории хранят копии агрегатов, поэтому изменения попадают в
хранилище только через add/update. Единицы работы над одним хранилищем
выполняются последовательно под общей блокировкой: проверка пересечений
и вставка бронирования атомарны, как и переходы статусов.
"""

import threading
from typing import Dict, List, Optional, Tuple

from ..booking import interfaces as ports
from ..booking.domain import Booking, Room, find_conflicts
from ..payments import interfaces as payment_ports
from ..payments.domain import Payment
from ..shared_kernel import (
    ACTIVE_BOOKING_STATUSES,
    BookingNotFoundError,
    BookingStatus,
    ConcurrencyException,
    DuplicatePaymentError,
    EntityId,
    PaymentNotFoundError,
    PaymentStatus,
)
from .event_bus import InMemoryEventBus
from .log import StdLogger
from .unit_of_work import AbstractUnitOfWork, TrackingRepository


def _detached(aggregate):
    copy = aggregate.model_copy(deep=True)
    copy.clear_events()
    return copy


class InMemoryStore:
    """Общие данные и блокировка для всех единиц работы в памяти."""

    def __init__(self) -> None:
        self.rooms: Dict[EntityId, Room] = {}
        self.bookings: Dict[EntityId, Booking] = {}
        self.payments: Dict[EntityId, Payment] = {}
        self.lock = threading.RLock()

    def snapshot(self) -> Tuple[dict, dict, dict]:
        # Агрегаты в хранилище только заменяются, поэтому поверхностной копии достаточно
        return dict(self.rooms), dict(self.bookings), dict(self.payments)

    def restore(self, snapshot: Tuple[dict, dict, dict]) -> None:
        rooms, bookings, payments = snapshot
        self.rooms.clear()
        self.rooms.update(rooms)
        self.bookings.clear()
        self.bookings.update(bookings)
        self.payments.clear()
        self.payments.update(payments)


class InMemoryRoomRepository(TrackingRepository, ports.IRoomRepository):
    """Реализация репозитория номеров в памяти."""

    def __init__(self, store: InMemoryStore):
        super().__init__()
        self._store = store

    def get_by_id(self, room_id: EntityId) -> Optional[Room]:
        room = self._store.rooms.get(room_id)
        return room.model_copy(deep=True) if room is not None else None

    def list_all(self) -> List[Room]:
        return [room.model_copy(deep=True) for room in self._store.rooms.values()]

    def add(self, room: Room) -> None:
        if room.id in self._store.rooms:
            raise ValueError(f"Room with id {room.id} already exists")
        if any(existing.number == room.number for existing in self._store.rooms.values()):
            raise ValueError(f"Room with number {room.number} already exists")
        self._store.rooms[room.id] = room.model_copy(deep=True)


class InMemoryBookingRepository(TrackingRepository, ports.IBookingRepository):
    """Реализация репозитория бронирований в памяти."""

    def __init__(self, store: InMemoryStore):
        super().__init__()
        self._store = store

    def get_by_id(self, booking_id: EntityId) -> Optional[Booking]:
        booking = self._store.bookings.get(booking_id)
        return _detached(booking) if booking is not None else None

    def find_active_bookings_for_room(self, room_id: EntityId) -> List[Booking]:
        return [
            _detached(booking)
            for booking in self._store.bookings.values()
            if booking.room_id == room_id and booking.status in ACTIVE_BOOKING_STATUSES
        ]

    def insert_booking_if_no_conflict(self, booking: Booking) -> bool:
        with self._store.lock:
            if booking.id in self._store.bookings:
                raise ValueError(f"Booking with id {booking.id} already exists")
            candidates = [
                existing
                for existing in self._store.bookings.values()
                if existing.room_id == booking.room_id
            ]
            if find_conflicts(booking.period, candidates):
                return False
            self._store.bookings[booking.id] = _detached(booking)
        self._track(booking)
        return True

    def update(self, booking: Booking) -> None:
        with self._store.lock:
            stored = self._store.bookings.get(booking.id)
            if stored is None:
                raise BookingNotFoundError(booking.id)
            if stored.version != booking.version:
                raise ConcurrencyException(
                    f"Бронирование {booking.id} было изменено параллельно",
                    booking_id=booking.id,
                )
            booking.version += 1
            self._store.bookings[booking.id] = _detached(booking)
        self._track(booking)

    def list_all(self) -> List[Booking]:
        return [_detached(booking) for booking in self._store.bookings.values()]

    def find_by_guest(self, guest_id: EntityId) -> List[Booking]:
        return [
            _detached(booking)
            for booking in self._store.bookings.values()
            if booking.guest_id == guest_id
        ]

    def find_by_status(self, status: BookingStatus) -> List[Booking]:
        return [
            _detached(booking)
            for booking in self._store.bookings.values()
            if booking.status == status
        ]


class InMemoryPaymentRepository(TrackingRepository, payment_ports.IPaymentRepository):
    """Реализация репозитория платежей в памяти."""

    def __init__(self, store: InMemoryStore):
        super().__init__()
        self._store = store

    def get_by_id(self, payment_id: EntityId) -> Optional[Payment]:
        payment = self._store.payments.get(payment_id)
        return _detached(payment) if payment is not None else None

    def get_for_booking(self, booking_id: EntityId) -> Optional[Payment]:
        payments = [
            payment
            for payment in self._store.payments.values()
            if payment.booking_id == booking_id
        ]
        if not payments:
            return None
        return _detached(max(payments, key=lambda p: p.created_at))

    def find_for_booking(self, booking_id: EntityId) -> List[Payment]:
        payments = [
            payment
            for payment in self._store.payments.values()
            if payment.booking_id == booking_id
        ]
        return [_detached(payment) for payment in sorted(payments, key=lambda p: p.created_at)]

    def add(self, payment: Payment) -> None:
        with self._store.lock:
            if payment.id in self._store.payments:
                raise ValueError(f"Payment with id {payment.id} already exists")
            for existing in self._store.payments.values():
                if (
                    existing.booking_id == payment.booking_id
                    and existing.status != PaymentStatus.FAILED
                ):
                    raise DuplicatePaymentError(
                        f"Для бронирования {payment.booking_id} уже существует платеж",
                        booking_id=payment.booking_id,
                        payment_id=existing.id,
                    )
            self._store.payments[payment.id] = _detached(payment)
        self._track(payment)

    def update(self, payment: Payment) -> None:
        with self._store.lock:
            stored = self._store.payments.get(payment.id)
            if stored is None:
                raise PaymentNotFoundError(payment.id)
            if stored.version != payment.version:
                raise ConcurrencyException(
                    f"Платеж {payment.id} был изменен параллельно", payment_id=payment.id
                )
            payment.version += 1
            self._store.payments[payment.id] = _detached(payment)
        self._track(payment)


class InMemoryUnitOfWork(AbstractUnitOfWork):
    """Единица работы над хранилищем в памяти."""

    def __init__(
        self,
        store: Optional[InMemoryStore] = None,
        event_bus: Optional[ports.IEventBus] = None,
        logger: Optional[ports.ILogger] = None,
    ):
        logger = logger or StdLogger("hotel_booking.uow")
        super().__init__(event_bus or InMemoryEventBus(logger), logger)
        self.store = store or InMemoryStore()

    @property
    def rooms(self) -> InMemoryRoomRepository:
        return self._state("rooms")

    @property
    def bookings(self) -> InMemoryBookingRepository:
        return self._state("bookings")

    @property
    def payments(self) -> InMemoryPaymentRepository:
        return self._state("payments")

    def _begin(self) -> None:
        self.store.lock.acquire()
        self._local.snapshot = self.store.snapshot()
        self._local.rooms = InMemoryRoomRepository(self.store)
        self._local.bookings = InMemoryBookingRepository(self.store)
        self._local.payments = InMemoryPaymentRepository(self.store)

    def _commit(self) -> None:
        self._local.snapshot = self.store.snapshot()

    def _rollback(self) -> None:
        self.store.restore(self._local.snapshot)

    def _end(self) -> None:
        self._local.snapshot = None
        self._local.rooms = None
        self._local.bookings = None
        self._local.payments = None
        self.store.lock.release()

    def _repositories(self) -> List[TrackingRepository]:
        return [self._local.rooms, self._local.bookings, self._local.payments]
