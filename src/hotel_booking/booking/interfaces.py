"""
Интерфейсы (порты) для контекста бронирования.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, List, Optional, Protocol, Type, TypeVar

from ..shared_kernel import BookingStatus, DomainEvent, EntityId
from .domain import Booking, Room

T_Event = TypeVar("T_Event", bound=DomainEvent)


class ILogger(Protocol):
    """Интерфейс для логгера."""

    def info(self, message: str, **kwargs: Any) -> None: ...
    def error(self, message: str, **kwargs: Any) -> None: ...
    def warning(self, message: str, **kwargs: Any) -> None: ...
    def debug(self, message: str, **kwargs: Any) -> None: ...


class IEventBus(Protocol):
    """Интерфейс для шины событий."""

    def publish(self, event: DomainEvent) -> None: ...
    def subscribe(
        self, event_type: Type[T_Event], handler: Callable[[T_Event], None]
    ) -> None: ...


class IClock(Protocol):
    """Источник текущей даты."""

    def today(self) -> date: ...


class IRoomRepository(Protocol):
    """Интерфейс репозитория для номеров."""

    def get_by_id(self, room_id: EntityId) -> Room | None: ...
    def list_all(self) -> List[Room]: ...
    def add(self, room: Room) -> None: ...


class IBookingRepository(Protocol):
    """Интерфейс репозитория для бронирований."""

    def get_by_id(self, booking_id: EntityId) -> Booking | None: ...

    def find_active_bookings_for_room(self, room_id: EntityId) -> List[Booking]:
        """Бронирования номера в статусах PENDING и CONFIRMED."""
        ...

    def insert_booking_if_no_conflict(self, booking: Booking) -> bool:
        """Атомарно проверяет пересечения и сохраняет бронирование.

        Возвращает False, если номер уже занят на эти даты.
        """
        ...

    def update(self, booking: Booking) -> None:
        """Сохраняет изменения; устаревшая версия -> ConcurrencyException."""
        ...

    def list_all(self) -> List[Booking]: ...
    def find_by_guest(self, guest_id: EntityId) -> List[Booking]: ...
    def find_by_status(self, status: BookingStatus) -> List[Booking]: ...


class IBookingUnitOfWork(Protocol):
    """Интерфейс Unit of Work для контекста Booking."""

    @property
    def bookings(self) -> IBookingRepository: ...
    @property
    def rooms(self) -> IRoomRepository: ...
    @property
    def event_bus(self) -> IEventBus: ...

    def __enter__(self) -> IBookingUnitOfWork: ...
    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> Optional[bool]: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
