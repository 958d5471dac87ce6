"""
Тесты общего ядра: объекты-значения, таблицы переходов и ошибки.
"""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from hotel_booking.shared_kernel import (
    BOOKING_TRANSITIONS,
    PAYMENT_TRANSITIONS,
    BookingStatus,
    DateRange,
    ErrorCategory,
    ErrorCode,
    InvalidDateRangeError,
    InvalidInputError,
    InvalidStateTransitionError,
    Money,
    PaymentMethod,
    PaymentStatus,
    RoomNotFoundError,
    can_transition,
    ensure_transition,
    parse_enum,
)


class TestDateRange:
    """Тесты периода проживания."""

    def test_nights(self):
        period = DateRange.create(date(2024, 6, 1), date(2024, 6, 4))
        assert period.nights == 3

    @pytest.mark.parametrize(
        "check_in, check_out",
        [
            (date(2024, 6, 4), date(2024, 6, 4)),
            (date(2024, 6, 5), date(2024, 6, 4)),
        ],
    )
    def test_check_out_must_be_after_check_in(self, check_in, check_out):
        """Дата выезда строго позже даты заезда."""
        with pytest.raises(InvalidDateRangeError) as exc_info:
            DateRange.create(check_in, check_out)
        assert exc_info.value.category == ErrorCategory.INVALID_INPUT

    @pytest.mark.parametrize(
        "check_in, check_out, field",
        [
            ("2024-13-01", date(2024, 6, 4), "check_in"),
            (date(2024, 6, 1), "not a date", "check_out"),
        ],
    )
    def test_unparseable_date_is_field_error(self, check_in, check_out, field):
        """Нераспознанная дата сообщает о поле, а не о порядке дат."""
        with pytest.raises(InvalidInputError) as exc_info:
            DateRange.create(check_in, check_out)

        assert not isinstance(exc_info.value, InvalidDateRangeError)
        assert exc_info.value.details["fields"] == [field]

    def test_direct_construction_is_validated(self):
        with pytest.raises(ValidationError):
            DateRange(check_in=date(2024, 6, 4), check_out=date(2024, 6, 1))

    def test_overlap_is_strict(self):
        """Выезд в день чужого заезда не является пересечением."""
        a = DateRange.create(date(2024, 5, 1), date(2024, 5, 5))
        b = DateRange.create(date(2024, 5, 5), date(2024, 5, 10))
        c = DateRange.create(date(2024, 5, 4), date(2024, 5, 6))

        assert not a.overlaps(b)
        assert not b.overlaps(a)
        assert a.overlaps(c)
        assert c.overlaps(b)

    def test_containment_overlaps(self):
        outer = DateRange.create(date(2024, 5, 1), date(2024, 5, 31))
        inner = DateRange.create(date(2024, 5, 10), date(2024, 5, 11))
        assert outer.overlaps(inner)
        assert inner.overlaps(outer)

    def test_is_immutable(self):
        period = DateRange.create(date(2024, 6, 1), date(2024, 6, 4))
        with pytest.raises(ValidationError):
            period.check_out = date(2024, 6, 10)


class TestMoney:
    """Тесты денежных сумм."""

    def test_currency_is_normalized(self):
        assert Money(amount=Decimal("10"), currency="usd").currency == "USD"

    def test_multiplication_by_nights(self):
        price = Money(amount=Decimal("100.00"), currency="USD")
        total = price * 3
        assert total.amount == Decimal("300.00")
        assert total.currency == "USD"

    def test_negative_amount_is_rejected(self):
        with pytest.raises(ValidationError):
            Money(amount=Decimal("-1"))

    def test_str(self):
        assert str(Money(amount=Decimal("300"), currency="USD")) == "300.00 USD"


class TestTransitionTables:
    """Тесты таблиц переходов статусов."""

    @pytest.mark.parametrize(
        "current, target",
        [
            (BookingStatus.PENDING, BookingStatus.CONFIRMED),
            (BookingStatus.PENDING, BookingStatus.CANCELLED),
            (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
            (BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
        ],
    )
    def test_allowed_booking_transitions(self, current, target):
        assert can_transition(BOOKING_TRANSITIONS, current, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (BookingStatus.CANCELLED, BookingStatus.CONFIRMED),
            (BookingStatus.COMPLETED, BookingStatus.CANCELLED),
            (BookingStatus.PENDING, BookingStatus.COMPLETED),
            (BookingStatus.CONFIRMED, BookingStatus.PENDING),
        ],
    )
    def test_forbidden_booking_transitions(self, current, target):
        assert not can_transition(BOOKING_TRANSITIONS, current, target)

    def test_payment_terminal_statuses(self):
        for status in (PaymentStatus.FAILED, PaymentStatus.REFUNDED):
            assert not PAYMENT_TRANSITIONS[status]

    def test_payment_refund_only_after_completion(self):
        assert can_transition(PAYMENT_TRANSITIONS, PaymentStatus.COMPLETED, PaymentStatus.REFUNDED)
        assert not can_transition(PAYMENT_TRANSITIONS, PaymentStatus.PENDING, PaymentStatus.REFUNDED)

    def test_ensure_transition_raises(self):
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            ensure_transition(
                "Booking", BOOKING_TRANSITIONS, BookingStatus.CANCELLED, BookingStatus.CONFIRMED
            )
        error = exc_info.value
        assert error.code == ErrorCode.INVALID_STATE_TRANSITION
        assert error.category == ErrorCategory.CONFLICT
        assert error.details["current"] == "cancelled"
        assert error.details["target"] == "confirmed"


class TestParseEnum:
    """Тесты приведения сырых значений к перечислениям."""

    @pytest.mark.parametrize("raw", ["credit_card", "CREDIT_CARD", " Credit Card "])
    def test_accepts_loose_spelling(self, raw):
        assert parse_enum(PaymentMethod, raw, "method") == PaymentMethod.CREDIT_CARD

    def test_unknown_value(self):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_enum(PaymentMethod, "bitcoin", "method")
        assert exc_info.value.details == {"method": "bitcoin"}


class TestErrors:
    """Тесты иерархии доменных ошибок."""

    def test_not_found_message_and_dict(self):
        error = RoomNotFoundError("r-1")
        assert str(error) == "ROOM_NOT_FOUND: Room with ID r-1 not found"
        assert error.to_dict() == {
            "code": "ROOM_NOT_FOUND",
            "category": "not_found",
            "message": "Room with ID r-1 not found",
            "details": {"id": "r-1"},
        }
