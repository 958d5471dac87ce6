"""
Интеграционные тесты прикладного слоя контекста платежей.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from hotel_booking.payments.application import PaymentApplicationService
from hotel_booking.payments.domain import PaymentCreated, PaymentStatusChanged
from hotel_booking.booking.domain import BookingConfirmed
from hotel_booking.shared_kernel import (
    BookingNotFoundError,
    BookingStatus,
    DuplicatePaymentError,
    ErrorCategory,
    InvalidInputError,
    InvalidStateTransitionError,
    MissingRefundReasonError,
    PaymentAmountMismatchError,
    PaymentMethod,
    PaymentNotFoundError,
    PaymentStatus,
)


@pytest.fixture
def booking(booking_service, room):
    """Бронирование на три ночи (1-4 июня) стоимостью 300 USD."""
    return booking_service.create_booking(room.id, uuid4(), date(2024, 6, 1), date(2024, 6, 4), 2)


@pytest.fixture
def payment(payment_service, booking):
    return payment_service.create_payment(booking.id, Decimal("300"), "USD", PaymentMethod.CREDIT_CARD)


class TestPaymentScenario:
    """Сквозной сценарий: бронирование, оплата, подтверждение и возврат."""

    def test_full_lifecycle(self, booking_service, payment_service, room):
        """Номер за $100: бронь, оплата, подтверждение и возврат."""
        # Подготовка
        booking = booking_service.create_booking(
            room.id, uuid4(), date(2024, 6, 1), date(2024, 6, 4), 2
        )
        assert booking.status == BookingStatus.PENDING

        # Действие: создание платежа не меняет бронирование
        payment = payment_service.create_payment(booking.id, 300, "USD", "CREDIT_CARD")
        assert payment.status == PaymentStatus.PENDING
        assert booking_service.get_booking(booking.id).status == BookingStatus.PENDING

        # Действие: оплата подтверждает бронирование
        payment_service.transition_payment_status(payment.id, PaymentStatus.COMPLETED)
        assert booking_service.get_booking(booking.id).status == BookingStatus.CONFIRMED

        # Действие: возврат отменяет бронирование
        refunded = payment_service.transition_payment_status(
            payment.id, PaymentStatus.REFUNDED, "guest request"
        )
        assert refunded.status == PaymentStatus.REFUNDED
        assert refunded.refund_reason == "guest request"

        # Проверка
        stored_booking = booking_service.get_booking(booking.id)
        assert stored_booking.status == BookingStatus.CANCELLED
        assert stored_booking.cancellation_reason == "payment refunded"
        assert payment_service.get_payment(payment.id).refund_reason == "guest request"

    def test_events_published_after_commit(self, payment_service, payment, event_bus):
        payment_service.complete_payment(payment.id)

        types = [type(e) for e in event_bus.published]
        assert PaymentCreated in types
        assert PaymentStatusChanged in types
        assert BookingConfirmed in types


class TestCreatePayment:
    """Тесты создания платежа и проверки суммы, метода и дублей."""

    def test_stores_method_and_transaction(self, payment_service, booking):
        payment = payment_service.create_payment(
            booking.id, "300.00", "usd", "bank transfer", transaction_id="tx-42"
        )
        stored = payment_service.get_payment_for_booking(booking.id)

        assert stored.id == payment.id
        assert stored.method == PaymentMethod.BANK_TRANSFER
        assert stored.currency == "USD"
        assert stored.transaction_id == "tx-42"

    def test_default_currency(self, uow, logger, booking):
        service = PaymentApplicationService(uow=uow, logger=logger, default_currency="USD")
        payment = service.create_payment(booking.id, "300", None, "cash")
        assert payment.currency == "USD"

    @pytest.mark.parametrize("amount", [0, -10, "abc", "NaN"])
    def test_invalid_amount(self, payment_service, amount):
        """Сумма проверяется до поиска бронирования."""
        with pytest.raises(InvalidInputError):
            payment_service.create_payment(uuid4(), amount, "USD", "cash")

    def test_invalid_method(self, payment_service, booking):
        with pytest.raises(InvalidInputError):
            payment_service.create_payment(booking.id, 300, "USD", "bitcoin")

    def test_unknown_booking(self, payment_service):
        with pytest.raises(BookingNotFoundError):
            payment_service.create_payment(uuid4(), 300, "USD", "cash")

    def test_duplicate_payment(self, payment_service, booking, payment):
        with pytest.raises(DuplicatePaymentError) as exc_info:
            payment_service.create_payment(booking.id, 300, "USD", "cash")
        assert exc_info.value.category == ErrorCategory.CONFLICT

    def test_retry_after_failed_payment(self, payment_service, booking, payment):
        """После неудачного платежа можно создать новый; старый остается для аудита."""
        # Подготовка
        payment_service.fail_payment(payment.id)

        # Действие
        retry = payment_service.create_payment(booking.id, 300, "USD", "debit_card")

        # Проверка
        assert retry.id != payment.id
        assert payment_service.get_payment_for_booking(booking.id).id == retry.id
        assert payment_service.get_payment(payment.id).status == PaymentStatus.FAILED

    @pytest.mark.parametrize("amount, currency", [("299.99", "USD"), ("300", "EUR")])
    def test_amount_must_match_quote(self, payment_service, booking, amount, currency):
        with pytest.raises(PaymentAmountMismatchError):
            payment_service.create_payment(booking.id, amount, currency, "cash")

    def test_cancelled_booking_cannot_be_paid(self, booking_service, payment_service, booking):
        booking_service.cancel_booking(booking.id)
        with pytest.raises(InvalidStateTransitionError):
            payment_service.create_payment(booking.id, 300, "USD", "cash")


class TestTransitionPaymentStatus:
    """Тесты переходов статусов платежа и каскада на бронирование."""

    def test_repeated_completion_is_rejected(self, payment_service, payment):
        payment_service.complete_payment(payment.id)
        with pytest.raises(InvalidStateTransitionError):
            payment_service.complete_payment(payment.id)

    @pytest.mark.parametrize("reason", [None, "", "  "])
    def test_refund_without_reason(self, payment_service, booking_service, booking, payment, reason):
        payment_service.complete_payment(payment.id)

        with pytest.raises(MissingRefundReasonError):
            payment_service.transition_payment_status(payment.id, "refunded", reason)

        assert payment_service.get_payment(payment.id).status == PaymentStatus.COMPLETED
        assert booking_service.get_booking(booking.id).status == BookingStatus.CONFIRMED

    def test_refund_without_reason_for_unknown_payment(self, payment_service):
        with pytest.raises(MissingRefundReasonError):
            payment_service.transition_payment_status(uuid4(), PaymentStatus.REFUNDED)

    def test_unknown_payment(self, payment_service):
        with pytest.raises(PaymentNotFoundError):
            payment_service.complete_payment(uuid4())

    def test_refund_pending_payment(self, payment_service, payment):
        with pytest.raises(InvalidStateTransitionError):
            payment_service.refund_payment(payment.id, "guest request")

    def test_completion_requires_pending_booking(
        self, booking_service, payment_service, booking, payment
    ):
        """Оплата отмененного бронирования не проходит и ничего не меняет."""
        booking_service.cancel_booking(booking.id)

        with pytest.raises(InvalidStateTransitionError):
            payment_service.complete_payment(payment.id)

        assert payment_service.get_payment(payment.id).status == PaymentStatus.PENDING
        assert booking_service.get_booking(booking.id).status == BookingStatus.CANCELLED

    def test_refund_after_cancellation_keeps_booking(
        self, booking_service, payment_service, booking, payment
    ):
        """Отмена не возвращает деньги; возврат выполняется отдельным вызовом."""
        # Подготовка
        payment_service.complete_payment(payment.id)
        booking_service.cancel_booking(booking.id, "guest request")
        assert payment_service.get_payment(payment.id).status == PaymentStatus.COMPLETED

        # Действие
        payment_service.refund_payment(payment.id, "cancelled by guest")

        # Проверка
        stored = booking_service.get_booking(booking.id)
        assert stored.status == BookingStatus.CANCELLED
        assert stored.cancellation_reason == "guest request"

    def test_failed_payment_keeps_booking_pending(self, booking_service, payment_service, booking, payment):
        payment_service.fail_payment(payment.id)
        assert booking_service.get_booking(booking.id).status == BookingStatus.PENDING

    def test_failed_payment_cancels_booking_when_enabled(self, uow, logger, booking_service, booking):
        # Подготовка
        service = PaymentApplicationService(
            uow=uow, logger=logger, cancel_booking_on_payment_failure=True
        )
        payment = service.create_payment(booking.id, 300, "USD", "cash")

        # Действие
        service.fail_payment(payment.id)

        # Проверка
        stored = booking_service.get_booking(booking.id)
        assert stored.status == BookingStatus.CANCELLED
        assert stored.cancellation_reason == "payment failed"

    def test_get_payment_for_booking_without_payment(self, payment_service, booking):
        assert payment_service.get_payment_for_booking(booking.id) is None

    def test_get_payment_for_unknown_booking(self, payment_service):
        with pytest.raises(BookingNotFoundError):
            payment_service.get_payment_for_booking(uuid4())


class TestPaymentHistory:
    """Тесты истории платежей бронирования."""

    def test_keeps_failed_attempts(self, payment_service, booking, payment):
        """Неудачный платеж и повторная попытка возвращаются в порядке создания."""
        # Подготовка
        payment_service.fail_payment(payment.id)
        retry = payment_service.create_payment(booking.id, 300, "USD", "debit_card")

        # Действие
        history = payment_service.list_payments_for_booking(booking.id)

        # Проверка
        assert [p.id for p in history] == [payment.id, retry.id]
        assert [p.status for p in history] == [PaymentStatus.FAILED, PaymentStatus.PENDING]

    def test_booking_without_payments(self, payment_service, booking):
        assert payment_service.list_payments_for_booking(booking.id) == []

    def test_unknown_booking(self, payment_service):
        with pytest.raises(BookingNotFoundError):
            payment_service.list_payments_for_booking(uuid4())
