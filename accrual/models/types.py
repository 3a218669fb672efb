"""
Custom column types.

Token amounts are unsigned 256-bit integers of smallest units, which
overflow BIGINT as soon as the asset uses 18 decimals.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import Numeric, String
from sqlalchemy.engine import Dialect
from sqlalchemy.types import TypeDecorator, TypeEngine

# Digits of 2**256 - 1
AMOUNT_DIGITS = 78
MAX_AMOUNT = 2**256 - 1


class TokenAmount(TypeDecorator):
    """
    Integer amount up to 78 digits.

    Stored as NUMERIC(78, 0) on PostgreSQL. SQLite has no exact integer
    type wider than 64 bits, so there the value is kept as zero-padded
    text: comparisons against bound parameters of this type and the
    ``>= 0`` check constraints stay numeric for non-negative values.
    Aggregates must be computed in Python on SQLite.
    """

    impl = Numeric(AMOUNT_DIGITS, 0)
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> TypeEngine[Any]:
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(AMOUNT_DIGITS + 1))
        return dialect.type_descriptor(Numeric(AMOUNT_DIGITS, 0))

    def process_bind_param(
        self, value: int | None, dialect: Dialect
    ) -> str | Decimal | None:
        if value is None:
            return None
        value = int(value)
        if dialect.name == "sqlite":
            sign = "-" if value < 0 else ""
            return f"{sign}{abs(value):0{AMOUNT_DIGITS}d}"
        return Decimal(value)

    def process_result_value(
        self, value: str | Decimal | None, dialect: Dialect
    ) -> int | None:
        if value is None:
            return None
        return int(value)
