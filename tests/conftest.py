"""
Общие фикстуры для тестов ядра бронирования.
"""

from datetime import date
from decimal import Decimal

import pytest

from hotel_booking.booking.application import BookingApplicationService
from hotel_booking.booking.domain import Room
from hotel_booking.infrastructure import FixedClock, InMemoryEventBus, InMemoryUnitOfWork
from hotel_booking.payments.application import PaymentApplicationService
from hotel_booking.shared_kernel import Money, RoomType


class RecordingLogger:
    """Логгер, запоминающий сообщения для проверок в тестах."""

    def __init__(self):
        self.records = []

    def _record(self, level, message, **kwargs):
        self.records.append((level, message, kwargs))

    def info(self, message, **kwargs):
        self._record("info", message, **kwargs)

    def error(self, message, **kwargs):
        self._record("error", message, **kwargs)

    def warning(self, message, **kwargs):
        self._record("warning", message, **kwargs)

    def debug(self, message, **kwargs):
        self._record("debug", message, **kwargs)

    def messages(self, level):
        return [message for lvl, message, _ in self.records if lvl == level]


def make_room(
    number="101", capacity=2, price="100.00", room_type=RoomType.DOUBLE, currency="USD"
):
    return Room(
        number=number,
        type=room_type,
        capacity=capacity,
        price_per_night=Money(amount=Decimal(price), currency=currency),
    )


@pytest.fixture
def clock():
    """Часы, остановленные на 1 мая 2024."""
    return FixedClock(date(2024, 5, 1))


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture
def event_bus(logger):
    return InMemoryEventBus(logger)


@pytest.fixture
def uow(event_bus, logger):
    return InMemoryUnitOfWork(event_bus=event_bus, logger=logger)


@pytest.fixture
def room(uow):
    """Номер R: $100 за ночь, до двух гостей."""
    room = make_room()
    with uow:
        uow.rooms.add(room)
    return room


@pytest.fixture
def booking_service(uow, clock, logger):
    return BookingApplicationService(uow=uow, clock=clock, logger=logger)


@pytest.fixture
def payment_service(uow, logger):
    return PaymentApplicationService(uow=uow, logger=logger)


@pytest.fixture
def add_room(uow):
    """Добавляет в хранилище номер с заданными параметрами."""

    def _add(**kwargs):
        room = make_room(**kwargs)
        with uow:
            uow.rooms.add(room)
        return room

    return _add
