"""
Closed status vocabularies shared by models, services and schemas.
Stored as plain strings so the DB CHECK constraints stay readable.
"""

import enum

from sqlalchemy import Enum


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class AuditAction(str, enum.Enum):
    INCREMENT = "increment"
    DECREMENT = "decrement"
    SYNC = "sync"
    VALIDATION = "validation"


class OfferingKind(str, enum.Enum):
    CLASS = "class"
    RETREAT = "retreat"


def sql_in(enum_cls) -> str:
    """Render an enum's values as a SQL IN list for CHECK constraints."""
    return ", ".join(f"'{member.value}'" for member in enum_cls)


def enum_column(enum_cls, length: int = 20) -> Enum:
    """Store a str enum by value in a VARCHAR column; CHECKs are declared per table."""
    return Enum(
        enum_cls,
        native_enum=False,
        create_constraint=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
    )
