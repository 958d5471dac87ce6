"""
Прикладной слой контекста платежей.

Создание платежа и переходы его статусов. Переходы платежа каскадно
меняют статус связанного бронирования в той же единице работы:
COMPLETED подтверждает бронирование, REFUNDED отменяет его.
"""

from decimal import Decimal, InvalidOperation
from typing import List, Optional, Union

from ..booking import interfaces as booking_ports
from ..booking.domain import Booking, BookingPolicy
from ..shared_kernel import (
    ACTIVE_BOOKING_STATUSES,
    BookingNotFoundError,
    BookingStatus,
    DuplicatePaymentError,
    EntityId,
    InvalidInputError,
    InvalidStateTransitionError,
    MissingRefundReasonError,
    Money,
    PaymentAmountMismatchError,
    PaymentMethod,
    PaymentNotFoundError,
    PaymentStatus,
    RoomNotFoundError,
    parse_enum,
)
from . import interfaces as ports
from .domain import Payment


def _parse_amount(amount: Union[Decimal, int, str]) -> Decimal:
    if isinstance(amount, float):
        amount = str(amount)
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidInputError(f"Некорректная сумма: {amount!r}", amount=amount) from exc
    if not value.is_finite() or value <= 0:
        raise InvalidInputError("Сумма платежа должна быть положительной", amount=amount)
    return value


def _parse_currency(currency: str) -> str:
    code = (currency or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise InvalidInputError(f"Некорректный код валюты: {currency!r}", currency=currency)
    return code


class PaymentApplicationService:
    """Сервис приложения для работы с платежами."""

    def __init__(
        self,
        uow: ports.IHotelUnitOfWork,
        logger: booking_ports.ILogger,
        cancel_booking_on_payment_failure: bool = False,
        default_currency: str = "USD",
    ):
        self._uow = uow
        self._logger = logger
        self._cancel_on_failure = cancel_booking_on_payment_failure
        self._default_currency = default_currency

    @property
    def uow(self) -> ports.IHotelUnitOfWork:
        return self._uow

    def create_payment(
        self,
        booking_id: EntityId,
        amount: Union[Decimal, int, str],
        currency: Optional[str],
        method: Union[PaymentMethod, str],
        transaction_id: Optional[str] = None,
    ) -> Payment:
        """Создает платеж в статусе PENDING; статус бронирования не меняется.

        Raises:
            InvalidInputError: сумма не положительна, валюта или метод некорректны.
            BookingNotFoundError: бронирование не найдено.
            DuplicatePaymentError: у бронирования уже есть платеж (не FAILED).
            PaymentAmountMismatchError: сумма не равна стоимости проживания.
        """
        money = Money(
            amount=_parse_amount(amount),
            currency=_parse_currency(currency or self._default_currency),
        )
        payment_method = parse_enum(PaymentMethod, method, "method")

        with self._uow:
            booking = self._uow.bookings.get_by_id(booking_id)
            if booking is None:
                raise BookingNotFoundError(booking_id)

            existing = self._uow.payments.get_for_booking(booking.id)
            if existing is not None and existing.status != PaymentStatus.FAILED:
                raise DuplicatePaymentError(
                    f"Для бронирования {booking.id} уже существует платеж {existing.id}",
                    booking_id=booking.id,
                    payment_id=existing.id,
                )

            if booking.status not in ACTIVE_BOOKING_STATUSES:
                raise InvalidStateTransitionError(
                    "Booking",
                    booking.status,
                    PaymentStatus.PENDING,
                    message=f"Нельзя создать платеж для бронирования в статусе {booking.status.value}",
                )

            room = self._uow.rooms.get_by_id(booking.room_id)
            if room is None:
                raise RoomNotFoundError(booking.room_id)
            expected = BookingPolicy.quote(room, booking.period)
            if money.currency != expected.currency or money.amount != expected.amount:
                raise PaymentAmountMismatchError(
                    f"Сумма платежа {money} не равна стоимости проживания {expected}",
                    expected=expected,
                    actual=money,
                )

            payment = Payment.create(
                booking_id=booking.id,
                amount=money,
                method=payment_method,
                transaction_id=transaction_id,
            )
            self._uow.payments.add(payment)

        self._logger.info(
            "Payment created", payment_id=payment.id, booking_id=booking.id, amount=str(money)
        )
        return payment

    def transition_payment_status(
        self,
        payment_id: EntityId,
        new_status: Union[PaymentStatus, str],
        refund_reason: Optional[str] = None,
    ) -> Payment:
        """Переводит платеж в новый статус с каскадом на бронирование.

        Raises:
            MissingRefundReasonError: REFUNDED без причины возврата.
            PaymentNotFoundError: платеж не найден.
            InvalidStateTransitionError: переход платежа или бронирования недопустим.
        """
        target = parse_enum(PaymentStatus, new_status, "status")
        if target == PaymentStatus.REFUNDED and not (refund_reason or "").strip():
            raise MissingRefundReasonError(
                "Для возврата платежа необходимо указать причину", payment_id=payment_id
            )

        with self._uow:
            payment = self._uow.payments.get_by_id(payment_id)
            if payment is None:
                raise PaymentNotFoundError(payment_id)
            booking = self._uow.bookings.get_by_id(payment.booking_id)
            if booking is None:
                raise BookingNotFoundError(payment.booking_id)

            old_status = payment.status
            payment.transition_to(target, refund_reason)
            booking_changed = self._cascade(booking, target)

            self._uow.payments.update(payment)
            if booking_changed:
                self._uow.bookings.update(booking)

        self._logger.info(
            "Payment status changed",
            payment_id=payment.id,
            old_status=old_status.value,
            new_status=payment.status.value,
            booking_status=booking.status.value,
        )
        return payment

    def _cascade(self, booking: Booking, payment_status: PaymentStatus) -> bool:
        """Применяет к бронированию переход, вызванный платежом."""
        if payment_status == PaymentStatus.COMPLETED:
            # Оплата принимается только для ожидающего бронирования
            booking.confirm()
            return True

        if payment_status == PaymentStatus.REFUNDED:
            if booking.status in ACTIVE_BOOKING_STATUSES:
                booking.cancel("payment refunded")
                return True
            return False

        if payment_status == PaymentStatus.FAILED:
            if self._cancel_on_failure and booking.status == BookingStatus.PENDING:
                booking.cancel("payment failed")
                return True
            return False

        return False

    def complete_payment(self, payment_id: EntityId) -> Payment:
        return self.transition_payment_status(payment_id, PaymentStatus.COMPLETED)

    def fail_payment(self, payment_id: EntityId) -> Payment:
        return self.transition_payment_status(payment_id, PaymentStatus.FAILED)

    def refund_payment(self, payment_id: EntityId, reason: str) -> Payment:
        return self.transition_payment_status(payment_id, PaymentStatus.REFUNDED, reason)

    def get_payment(self, payment_id: EntityId) -> Payment:
        with self._uow:
            payment = self._uow.payments.get_by_id(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        return payment

    def get_payment_for_booking(self, booking_id: EntityId) -> Optional[Payment]:
        """Текущий платеж бронирования или None."""
        with self._uow:
            if self._uow.bookings.get_by_id(booking_id) is None:
                raise BookingNotFoundError(booking_id)
            return self._uow.payments.get_for_booking(booking_id)

    def list_payments_for_booking(self, booking_id: EntityId) -> List[Payment]:
        """История платежей бронирования: неудачные попытки и текущий платеж."""
        with self._uow:
            if self._uow.bookings.get_by_id(booking_id) is None:
                raise BookingNotFoundError(booking_id)
            return self._uow.payments.find_for_booking(booking_id)
