"""
Основные доменные типы и утилиты общего ядра.

Здесь же находятся таблицы переходов статусов бронирования и платежа:
все проверки переходов выполняются только через них.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, Mapping, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import InvalidDateRangeError, InvalidInputError, InvalidStateTransitionError

# Общие типы идентификаторов
EntityId = UUID


def generate_id() -> UUID:
    """Генерирует новый UUID."""
    return uuid4()


class Money(BaseModel):
    """Денежная сумма с валютой."""

    model_config = ConfigDict(frozen=True)

    amount: Decimal = Field(..., ge=0, description="Сумма денег")
    currency: str = Field(
        default="USD", min_length=3, max_length=3, description="Код валюты (ISO 4217)"
    )

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()

    def __mul__(self, multiplier: int) -> "Money":
        if not isinstance(multiplier, (int, Decimal)):
            raise TypeError("Множитель должен быть целым числом или Decimal")
        if multiplier < 0:
            raise ValueError("Множитель не может быть отрицательным")
        return Money(amount=self.amount * multiplier, currency=self.currency)

    def is_positive(self) -> bool:
        return self.amount > 0

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"


class DateRange(BaseModel):
    """Период проживания: ночи [check_in, check_out)."""

    model_config = ConfigDict(frozen=True)

    check_in: date
    check_out: date

    @model_validator(mode="after")
    def check_out_after_check_in(self) -> "DateRange":
        if self.check_out <= self.check_in:
            raise ValueError("Дата выезда должна быть позже даты заезда")
        return self

    @classmethod
    def create(cls, check_in: date, check_out: date) -> "DateRange":
        """Создает период, переводя ошибки валидации в доменные."""
        try:
            return cls(check_in=check_in, check_out=check_out)
        except ValidationError as exc:
            # Ошибки полей означают, что дата не распознана; порядок дат не проверялся
            fields = [str(error["loc"][0]) for error in exc.errors() if error["loc"]]
            if fields:
                raise InvalidInputError(
                    "Некорректная дата: " + ", ".join(fields),
                    fields=fields,
                    check_in=check_in,
                    check_out=check_out,
                ) from exc
            raise InvalidDateRangeError(
                "Дата выезда должна быть позже даты заезда",
                check_in=check_in,
                check_out=check_out,
            ) from exc

    @property
    def nights(self) -> int:
        """Количество ночей в бронировании."""
        return (self.check_out - self.check_in).days

    def overlaps(self, other: "DateRange") -> bool:
        """Пересекаются ли периоды (выезд в день чужого заезда не конфликт)."""
        return self.check_in < other.check_out and self.check_out > other.check_in


class DomainEvent(BaseModel):
    """Базовый класс для всех доменных событий."""

    model_config = ConfigDict(frozen=True)

    event_id: UUID = Field(default_factory=uuid4)
    occurred_on: datetime = Field(default_factory=lambda: now())

    @property
    def event_type(self) -> str:
        return type(self).__name__


# Общие перечисления
class RoomType(str, Enum):
    """Типы номеров в отеле."""

    SINGLE = "single"
    DOUBLE = "double"
    SUITE = "suite"
    DELUXE = "deluxe"


class RoomStatus(str, Enum):
    """Эксплуатационные статусы номеров."""

    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    CLEANING = "cleaning"


class BookingStatus(str, Enum):
    """Статусы бронирования."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    """Статусы платежей."""

    PENDING = "pending"  # Ожидает обработки
    COMPLETED = "completed"  # Завершен
    FAILED = "failed"  # Неудачный
    REFUNDED = "refunded"  # Возвращен


class PaymentMethod(str, Enum):
    """Методы оплаты."""

    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"


ACTIVE_BOOKING_STATUSES: FrozenSet[BookingStatus] = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED}
)

BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}

S = TypeVar("S", bound=Enum)


def can_transition(table: Mapping[S, FrozenSet[S]], current: S, target: S) -> bool:
    """Разрешен ли переход current -> target по таблице."""
    return target in table.get(current, frozenset())


def ensure_transition(
    entity: str, table: Mapping[S, FrozenSet[S]], current: S, target: S
) -> None:
    """Проверяет переход по таблице, иначе InvalidStateTransitionError."""
    if not can_transition(table, current, target):
        raise InvalidStateTransitionError(entity, current, target)


def parse_enum(enum_cls: type, value: object, field: str):
    """Приводит сырое значение к перечислению или бросает InvalidInputError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower().replace(" ", "_"))
    except ValueError as exc:
        raise InvalidInputError(
            f"Недопустимое значение поля {field}: {value!r}", **{field: value}
        ) from exc


# Общие утилиты
def now() -> datetime:
    """Возвращает текущую дату и время (UTC)."""
    return datetime.now(timezone.utc)


def today() -> date:
    """Возвращает текущую дату."""
    return date.today()
