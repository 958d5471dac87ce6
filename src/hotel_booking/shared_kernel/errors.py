"""
Коды и иерархия доменных ошибок.

Каждая ошибка несет код (для сопоставления на внешнем уровне API)
и категорию, по которой вызывающая сторона решает, как ее обработать.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Категории ошибок."""

    INVALID_INPUT = "invalid_input"  # Некорректные входные данные
    NOT_FOUND = "not_found"  # Идентификатор не найден
    CONFLICT = "conflict"  # Нарушение бизнес-правила
    STORAGE_FAILURE = "storage_failure"  # Сбой хранилища


class ErrorCode(str, Enum):
    """Коды доменных ошибок."""

    INVALID_INPUT = "INVALID_INPUT"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    GUEST_COUNT_EXCEEDED = "GUEST_COUNT_EXCEEDED"
    PAYMENT_AMOUNT_MISMATCH = "PAYMENT_AMOUNT_MISMATCH"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    ROOM_UNAVAILABLE = "ROOM_UNAVAILABLE"
    DUPLICATE_PAYMENT = "DUPLICATE_PAYMENT"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    MISSING_REFUND_REASON = "MISSING_REFUND_REASON"
    STAY_NOT_FINISHED = "STAY_NOT_FINISHED"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    STORAGE_FAILURE = "STORAGE_FAILURE"


class DomainException(Exception):
    """Базовое исключение для доменных ошибок."""

    code: ErrorCode = ErrorCode.INVALID_INPUT
    category: ErrorCategory = ErrorCategory.INVALID_INPUT

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict:
        """Представление ошибки для внешнего слоя."""
        return {
            "code": self.code.value,
            "category": self.category.value,
            "message": self.message,
            "details": {key: str(value) for key, value in self.details.items()},
        }


# Некорректные входные данные


class InvalidInputError(DomainException):
    """Некорректные входные данные (отклоняются до любых обращений к хранилищу)."""

    code = ErrorCode.INVALID_INPUT
    category = ErrorCategory.INVALID_INPUT


class InvalidDateRangeError(InvalidInputError):
    """Дата выезда не позже даты заезда."""

    code = ErrorCode.INVALID_DATE_RANGE


class GuestCountExceededError(InvalidInputError):
    """Количество гостей превышает вместимость номера."""

    code = ErrorCode.GUEST_COUNT_EXCEEDED

    def __init__(self, guest_count: int, capacity: int) -> None:
        super().__init__(
            f"Превышена вместимость номера (макс. {capacity} человек)",
            guest_count=guest_count,
            capacity=capacity,
        )
        self.guest_count = guest_count
        self.capacity = capacity


class PaymentAmountMismatchError(InvalidInputError):
    """Сумма платежа не совпадает со стоимостью бронирования."""

    code = ErrorCode.PAYMENT_AMOUNT_MISMATCH


# Не найдено


class NotFoundError(DomainException):
    """Базовый класс для ненайденных сущностей."""

    category = ErrorCategory.NOT_FOUND
    resource = "Resource"

    def __init__(self, entity_id: Any) -> None:
        super().__init__(f"{self.resource} with ID {entity_id} not found", id=entity_id)
        self.entity_id = entity_id


class RoomNotFoundError(NotFoundError):
    code = ErrorCode.ROOM_NOT_FOUND
    resource = "Room"


class BookingNotFoundError(NotFoundError):
    code = ErrorCode.BOOKING_NOT_FOUND
    resource = "Booking"


class PaymentNotFoundError(NotFoundError):
    code = ErrorCode.PAYMENT_NOT_FOUND
    resource = "Payment"


# Конфликты бизнес-правил


class BusinessRuleValidationException(DomainException):
    """Исключение при нарушении бизнес-правил."""

    category = ErrorCategory.CONFLICT


class RoomUnavailableError(BusinessRuleValidationException):
    code = ErrorCode.ROOM_UNAVAILABLE


class DuplicatePaymentError(BusinessRuleValidationException):
    code = ErrorCode.DUPLICATE_PAYMENT


class InvalidStateTransitionError(BusinessRuleValidationException):
    """Недопустимый переход между статусами."""

    code = ErrorCode.INVALID_STATE_TRANSITION

    def __init__(self, entity: str, current: Any, target: Any, message: Optional[str] = None) -> None:
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        super().__init__(
            message or f"{entity}: переход {current_value} -> {target_value} недопустим",
            entity=entity,
            current=current_value,
            target=target_value,
        )
        self.current = current
        self.target = target


class MissingRefundReasonError(BusinessRuleValidationException):
    code = ErrorCode.MISSING_REFUND_REASON


class StayNotFinishedError(BusinessRuleValidationException):
    code = ErrorCode.STAY_NOT_FINISHED


class ConcurrencyException(BusinessRuleValidationException):
    """Исключение при конфликте версий."""

    code = ErrorCode.CONCURRENT_MODIFICATION


# Сбой хранилища


class StorageError(DomainException):
    """Ошибка слоя хранения; исходное исключение доступно через __cause__."""

    code = ErrorCode.STORAGE_FAILURE
    category = ErrorCategory.STORAGE_FAILURE
