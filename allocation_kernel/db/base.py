"""
Module: allocation_kernel.db.base
Responsibility: Declarative base for every ledger table.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel; MUST NOT import from models/, services/, selectors/, domain/ or
    outer layers.

Invariants enforced:
    - Every table has an integer surrogate key ``id``.  Domain identifiers
      (type_id, request_id, actor) are separate unique columns and are the
      only identifiers that leave the kernel.
    - Quantities, prices and heights are BigInteger so values up to the
      global cap never overflow.
    - Index, unique, foreign-key and primary-key constraints get
      deterministic names so migrations can address them.
"""

from typing import ClassVar

from sqlalchemy import BigInteger, Integer, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

NAMING_CONVENTION: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base for all ledger models."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict] = {
        int: BigInteger,
    }

    # SQLite only autoincrements an INTEGER primary key.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
