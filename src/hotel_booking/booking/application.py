"""
Прикладной слой контекста бронирования.

Содержит сервис приложения, который координирует проверку доступности,
создание бронирований и их переходы между статусами.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

from ..shared_kernel import (
    BookingNotFoundError,
    BookingStatus,
    ConcurrencyException,
    DateRange,
    EntityId,
    InvalidInputError,
    InvalidStateTransitionError,
    Money,
    RoomNotFoundError,
    RoomType,
    RoomUnavailableError,
)
from . import interfaces as ports
from .domain import AvailabilityChecker, Booking, BookingPolicy, Room

# Команды (входящие данные)


class CreateBookingCommand(BaseModel):
    """Команда на создание бронирования."""

    room_id: EntityId
    guest_id: EntityId
    check_in: date
    check_out: date
    guest_count: int = Field(..., ge=1)
    special_requests: Optional[str] = None


class RoomSearchCriteria(BaseModel):
    """Фильтры поиска свободных номеров."""

    check_in: date
    check_out: date
    min_capacity: Optional[int] = Field(None, ge=1)
    max_price: Optional[Money] = None
    room_type: Optional[RoomType] = None


def _invalid_input(exc: ValidationError) -> InvalidInputError:
    fields = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
    return InvalidInputError(
        "Некорректные входные данные: " + ", ".join(fields), fields=fields
    )


class BookingApplicationService:
    """Сервис приложения для работы с бронированиями."""

    def __init__(
        self,
        uow: ports.IBookingUnitOfWork,
        clock: ports.IClock,
        logger: ports.ILogger,
    ):
        """Инициализирует сервис."""
        self._uow = uow
        self._clock = clock
        self._logger = logger

    @property
    def uow(self) -> ports.IBookingUnitOfWork:
        return self._uow

    def _checker(self) -> AvailabilityChecker:
        return AvailabilityChecker(self._uow.rooms, self._uow.bookings)

    def is_available(
        self,
        room_id: EntityId,
        check_in: date,
        check_out: date,
        exclude_booking_id: Optional[EntityId] = None,
    ) -> bool:
        """Свободен ли номер на период; RoomNotFoundError для неизвестного номера."""
        period = DateRange.create(check_in, check_out)
        with self._uow:
            return self._checker().is_available(room_id, period, exclude_booking_id)

    def find_available_rooms(self, criteria: RoomSearchCriteria) -> List[Room]:
        period = DateRange.create(criteria.check_in, criteria.check_out)
        with self._uow:
            return self._checker().find_available_rooms(
                period,
                min_capacity=criteria.min_capacity,
                max_price=criteria.max_price,
                room_type=criteria.room_type,
            )

    def quote(self, room_id: EntityId, check_in: date, check_out: date) -> Money:
        """Стоимость проживания в номере за период."""
        period = DateRange.create(check_in, check_out)
        with self._uow:
            room = self._uow.rooms.get_by_id(room_id)
            if room is None:
                raise RoomNotFoundError(room_id)
            return BookingPolicy.quote(room, period)

    def create_booking(
        self,
        room_id: EntityId,
        guest_id: EntityId,
        check_in: date,
        check_out: date,
        guest_count: int,
        special_requests: Optional[str] = None,
    ) -> Booking:
        """Создает бронирование в статусе PENDING.

        Raises:
            InvalidDateRangeError: дата выезда не позже даты заезда.
            InvalidInputError: нераспознанная дата, некорректное количество гостей
                или идентификаторы.
            RoomNotFoundError: номер не существует.
            GuestCountExceededError: гостей больше, чем мест в номере.
            RoomUnavailableError: номер занят на эти даты.
        """
        # Входные данные проверяются до любых обращений к хранилищу
        period = DateRange.create(check_in, check_out)
        try:
            command = CreateBookingCommand(
                room_id=room_id,
                guest_id=guest_id,
                check_in=check_in,
                check_out=check_out,
                guest_count=guest_count,
                special_requests=special_requests,
            )
        except ValidationError as exc:
            raise _invalid_input(exc) from exc

        with self._uow:
            room = self._uow.rooms.get_by_id(command.room_id)
            if room is None:
                raise RoomNotFoundError(command.room_id)

            booking = Booking.create(
                room=room,
                guest_id=command.guest_id,
                period=period,
                guest_count=command.guest_count,
                special_requests=command.special_requests,
            )

            # Ранний отказ; окончательное решение принимает хранилище
            if not self._checker().is_available(room.id, period) or (
                not self._uow.bookings.insert_booking_if_no_conflict(booking)
            ):
                self._logger.warning(
                    "Room is unavailable",
                    room_id=room.id,
                    check_in=period.check_in,
                    check_out=period.check_out,
                )
                raise RoomUnavailableError(
                    f"Номер {room.number} уже забронирован на выбранные даты",
                    room_id=room.id,
                )

        self._logger.info("Booking created", booking_id=booking.id, room_id=room.id)
        return booking

    def get_booking(self, booking_id: EntityId) -> Booking:
        """Возвращает бронирование по идентификатору."""
        with self._uow:
            booking = self._uow.bookings.get_by_id(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    def list_bookings(
        self,
        guest_id: Optional[EntityId] = None,
        status: Optional[BookingStatus] = None,
    ) -> List[Booking]:
        """Бронирования гостя и/или в статусе; без фильтров возвращает все."""
        with self._uow:
            if guest_id is not None:
                bookings = self._uow.bookings.find_by_guest(guest_id)
                if status is not None:
                    bookings = [b for b in bookings if b.status == status]
            elif status is not None:
                bookings = self._uow.bookings.find_by_status(status)
            else:
                bookings = self._uow.bookings.list_all()
        return sorted(bookings, key=lambda b: (b.period.check_in, b.created_at))

    def cancel_booking(self, booking_id: EntityId, reason: Optional[str] = None) -> Booking:
        """Отменяет бронирование. Оплаченный платеж не возвращается автоматически."""
        with self._uow:
            booking = self._uow.bookings.get_by_id(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            booking.cancel(reason)
            self._uow.bookings.update(booking)

        self._logger.info("Booking cancelled", booking_id=booking.id, reason=reason)
        return booking

    def mark_completed(self, booking_id: EntityId) -> Booking:
        """Переводит CONFIRMED -> COMPLETED после даты выезда."""
        with self._uow:
            booking = self._uow.bookings.get_by_id(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)
            booking.complete(self._clock.today())
            self._uow.bookings.update(booking)

        self._logger.info("Booking completed", booking_id=booking.id)
        return booking

    def complete_finished_stays(self) -> List[Booking]:
        """Периодическая задача: завершает все проживания с прошедшей датой выезда."""
        today = self._clock.today()
        with self._uow:
            candidates = self._uow.bookings.find_by_status(BookingStatus.CONFIRMED)

        completed = []
        for candidate in candidates:
            if candidate.period.check_out > today:
                continue
            try:
                completed.append(self.mark_completed(candidate.id))
            except (InvalidStateTransitionError, ConcurrencyException) as exc:
                # Бронирование изменилось между чтением и записью
                self._logger.warning(
                    "Skipping booking in completion sweep",
                    booking_id=candidate.id,
                    error=str(exc),
                )
        return completed
