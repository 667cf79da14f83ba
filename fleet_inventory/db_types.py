"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from enum import Enum
from typing import Type

from sqlalchemy import Enum as SAEnum, Numeric, Uuid

# Native UUID on PostgreSQL, CHAR(32) on SQLite
UUIDType = Uuid

# Stock quantities (parts may be counted in fractional units, e.g. litres)
QuantityType = Numeric(12, 2)

# Unit cost keeps extra precision for per-unit pricing
CostType = Numeric(12, 4)


def StrEnumType(enum_cls: Type[Enum], length: int = 20) -> SAEnum:
    """
    VARCHAR-backed enum column storing the member *values*.

    Avoids a PostgreSQL ENUM type so the same schema works on SQLite,
    while still rejecting values outside the enum on the Python side.
    """
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
