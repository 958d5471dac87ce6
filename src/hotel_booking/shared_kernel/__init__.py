"""
Общее ядро (Shared Kernel) для системы бронирования отеля.

Содержит общие типы данных, таблицы переходов статусов и иерархию ошибок,
используемые в контекстах бронирования и платежей.
"""

from .domain import (
    ACTIVE_BOOKING_STATUSES,
    BOOKING_TRANSITIONS,
    PAYMENT_TRANSITIONS,
    BookingStatus,
    DateRange,
    DomainEvent,
    # Базовые типы
    EntityId,
    # Основные классы
    Money,
    PaymentMethod,
    PaymentStatus,
    RoomStatus,
    # Перечисления
    RoomType,
    can_transition,
    ensure_transition,
    generate_id,
    # Утилиты
    now,
    parse_enum,
    today,
)
from .errors import (
    BookingNotFoundError,
    BusinessRuleValidationException,
    ConcurrencyException,
    DomainException,
    DuplicatePaymentError,
    ErrorCategory,
    ErrorCode,
    GuestCountExceededError,
    InvalidDateRangeError,
    InvalidInputError,
    InvalidStateTransitionError,
    MissingRefundReasonError,
    NotFoundError,
    PaymentAmountMismatchError,
    PaymentNotFoundError,
    RoomNotFoundError,
    RoomUnavailableError,
    StayNotFinishedError,
    StorageError,
)

__all__ = [
    # Базовые типы
    "EntityId",
    "generate_id",
    # Основные классы
    "Money",
    "DateRange",
    "DomainEvent",
    # Перечисления
    "RoomType",
    "RoomStatus",
    "BookingStatus",
    "PaymentStatus",
    "PaymentMethod",
    # Таблицы переходов
    "ACTIVE_BOOKING_STATUSES",
    "BOOKING_TRANSITIONS",
    "PAYMENT_TRANSITIONS",
    "can_transition",
    "ensure_transition",
    # Исключения
    "ErrorCode",
    "ErrorCategory",
    "DomainException",
    "InvalidInputError",
    "InvalidDateRangeError",
    "GuestCountExceededError",
    "PaymentAmountMismatchError",
    "NotFoundError",
    "RoomNotFoundError",
    "BookingNotFoundError",
    "PaymentNotFoundError",
    "BusinessRuleValidationException",
    "RoomUnavailableError",
    "DuplicatePaymentError",
    "InvalidStateTransitionError",
    "MissingRefundReasonError",
    "StayNotFinishedError",
    "ConcurrencyException",
    "StorageError",
    # Утилиты
    "now",
    "today",
    "parse_enum",
]
