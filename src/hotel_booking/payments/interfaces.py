"""
Интерфейсы (порты) для контекста платежей.
"""

from __future__ import annotations

from typing import List, Protocol

from ..booking.interfaces import IBookingUnitOfWork
from ..shared_kernel import EntityId
from .domain import Payment


class IPaymentRepository(Protocol):
    """Интерфейс репозитория для платежей."""

    def get_by_id(self, payment_id: EntityId) -> Payment | None: ...

    def get_for_booking(self, booking_id: EntityId) -> Payment | None:
        """Последний созданный платеж бронирования."""
        ...

    def find_for_booking(self, booking_id: EntityId) -> List[Payment]:
        """Все платежи бронирования в порядке создания, включая неудачные."""
        ...

    def add(self, payment: Payment) -> None:
        """Сохраняет новый платеж.

        Хранилище отклоняет второй не-FAILED платеж того же бронирования
        ошибкой DuplicatePaymentError.
        """
        ...

    def update(self, payment: Payment) -> None: ...


class IHotelUnitOfWork(IBookingUnitOfWork, Protocol):
    """Unit of Work, охватывающий бронирования и платежи."""

    @property
    def payments(self) -> IPaymentRepository: ...
