"""
Доменная модель контекста бронирования.

Содержит номер, агрегат бронирования с его машиной состояний
и доменный сервис проверки доступности номера.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Iterable, List, Optional

from pydantic import BaseModel, Field, PrivateAttr

from ..shared_kernel import (
    ACTIVE_BOOKING_STATUSES,
    BOOKING_TRANSITIONS,
    BookingStatus,
    DateRange,
    DomainEvent,
    EntityId,
    GuestCountExceededError,
    Money,
    RoomNotFoundError,
    RoomStatus,
    RoomType,
    StayNotFinishedError,
    ensure_transition,
    generate_id,
    now,
)

if TYPE_CHECKING:
    from .interfaces import IBookingRepository, IRoomRepository


class Room(BaseModel):
    """Номер в отеле. Для этого ядра только читается."""

    id: EntityId = Field(default_factory=generate_id)
    number: str  # Номер комнаты (например, "101", "202A")
    type: RoomType = RoomType.SINGLE
    capacity: int = Field(..., gt=0)
    price_per_night: Money
    amenities: List[str] = Field(default_factory=list)
    availability_status: RoomStatus = RoomStatus.AVAILABLE


class BookingCreated(DomainEvent):
    """Событие создания бронирования."""

    booking_id: EntityId
    room_id: EntityId
    guest_id: EntityId
    period: DateRange


class BookingConfirmed(DomainEvent):
    """Событие подтверждения бронирования."""

    booking_id: EntityId


class BookingCancelled(DomainEvent):
    """Событие отмены бронирования."""

    booking_id: EntityId
    reason: Optional[str] = None


class BookingCompleted(DomainEvent):
    """Событие завершения проживания."""

    booking_id: EntityId


class Booking(BaseModel):
    """Бронирование номера в отеле."""

    id: EntityId = Field(default_factory=generate_id)
    room_id: EntityId
    guest_id: EntityId
    period: DateRange
    guest_count: int = Field(..., gt=0)
    status: BookingStatus = BookingStatus.PENDING
    special_requests: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)
    version: int = 0

    _domain_events: List[DomainEvent] = PrivateAttr(default_factory=list)

    @property
    def domain_events(self) -> List[DomainEvent]:
        """Возвращает список доменных событий."""
        return self._domain_events

    def clear_events(self) -> None:
        """Очищает список доменных событий."""
        self._domain_events = []

    def is_active(self) -> bool:
        """Блокирует ли бронирование номер (PENDING или CONFIRMED)."""
        return self.status in ACTIVE_BOOKING_STATUSES

    def _transition_to(self, target: BookingStatus) -> None:
        ensure_transition("Booking", BOOKING_TRANSITIONS, self.status, target)
        self.status = target
        self.updated_at = now()

    def confirm(self) -> None:
        """Подтверждает бронирование после успешной оплаты."""
        self._transition_to(BookingStatus.CONFIRMED)
        self._domain_events.append(BookingConfirmed(booking_id=self.id))

    def cancel(self, reason: Optional[str] = None) -> None:
        """Отменяет бронирование. Возврат платежа выполняется отдельно."""
        self._transition_to(BookingStatus.CANCELLED)
        self.cancellation_reason = reason
        self._domain_events.append(BookingCancelled(booking_id=self.id, reason=reason))

    def complete(self, today: date) -> None:
        """Завершает проживание, если дата выезда уже наступила."""
        ensure_transition("Booking", BOOKING_TRANSITIONS, self.status, BookingStatus.COMPLETED)
        if today < self.period.check_out:
            raise StayNotFinishedError(
                f"Проживание завершается {self.period.check_out.isoformat()}",
                booking_id=self.id,
                check_out=self.period.check_out,
            )
        self._transition_to(BookingStatus.COMPLETED)
        self._domain_events.append(BookingCompleted(booking_id=self.id))

    @classmethod
    def create(
        cls,
        room: Room,
        guest_id: EntityId,
        period: DateRange,
        guest_count: int,
        special_requests: Optional[str] = None,
    ) -> Booking:
        """Создает новое бронирование в статусе PENDING."""
        BookingPolicy.validate_guest_count(room, guest_count)

        booking = cls(
            room_id=room.id,
            guest_id=guest_id,
            period=period,
            guest_count=guest_count,
            special_requests=special_requests,
        )
        booking._domain_events.append(
            BookingCreated(
                booking_id=booking.id, room_id=room.id, guest_id=guest_id, period=period
            )
        )
        return booking


class BookingPolicy:
    """Политики и бизнес-правила для бронирований."""

    @staticmethod
    def validate_guest_count(room: Room, guest_count: int) -> None:
        if guest_count > room.capacity:
            raise GuestCountExceededError(guest_count=guest_count, capacity=room.capacity)

    @staticmethod
    def quote(room: Room, period: DateRange) -> Money:
        """Стоимость проживания: количество ночей × цена за ночь."""
        return room.price_per_night * period.nights


def find_conflicts(
    period: DateRange,
    bookings: Iterable[Booking],
    exclude_booking_id: Optional[EntityId] = None,
) -> List[Booking]:
    """Возвращает активные бронирования, пересекающиеся с периодом."""
    return [
        booking
        for booking in bookings
        if booking.id != exclude_booking_id
        and booking.is_active()
        and period.overlaps(booking.period)
    ]


class AvailabilityChecker:
    """Доменный сервис проверки доступности номера на период."""

    def __init__(self, rooms: IRoomRepository, bookings: IBookingRepository):
        self._rooms = rooms
        self._bookings = bookings

    def is_available(
        self,
        room_id: EntityId,
        period: DateRange,
        exclude_booking_id: Optional[EntityId] = None,
    ) -> bool:
        """Проверяет, свободен ли номер на указанные даты.

        Raises:
            RoomNotFoundError: номер не существует.
        """
        if self._rooms.get_by_id(room_id) is None:
            raise RoomNotFoundError(room_id)

        candidates = self._bookings.find_active_bookings_for_room(room_id)
        return not find_conflicts(period, candidates, exclude_booking_id)

    def find_available_rooms(
        self,
        period: DateRange,
        min_capacity: Optional[int] = None,
        max_price: Optional[Money] = None,
        room_type: Optional[RoomType] = None,
    ) -> List[Room]:
        """Возвращает номера, подходящие под фильтры и свободные на период.

        Цена сравнивается только в валюте max_price: номера в другой валюте
        не попадают в выборку, конвертации нет.
        """
        result = []
        for room in self._rooms.list_all():
            if min_capacity is not None and room.capacity < min_capacity:
                continue
            if max_price is not None and (
                room.price_per_night.currency != max_price.currency
                or room.price_per_night.amount > max_price.amount
            ):
                continue
            if room_type is not None and room.type != room_type:
                continue
            if self.is_available(room.id, period):
                result.append(room)
        return sorted(result, key=lambda r: r.number)
