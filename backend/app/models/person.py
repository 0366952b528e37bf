"""
Person Registry Backend — Person SQLAlchemy Model
===================================================

What:  ORM model representing the `persons` table.
Why:   Maps rows to Python objects for the store adapter and gives Alembic
       the table definition.
Who:   Used by PersonRepository for CRUD and by Alembic for migrations.

Table Design:
    - Integer primary key generated by the store; never reused or changed
    - bank_balance NUMERIC(12, 2) with a CHECK constraint so the store itself
      refuses negative balances even if a caller skips validation
    - resume_path / media_path: "<upload_dir>/<timestamp>-<filename>", NULL
      when no file has ever been uploaded for that slot
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, Date, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Person(Base):
    """
    A single person record.

    Lifecycle:
        1. Created by POST /api/persons (store assigns id)
        2. Updated in place by PUT /api/persons/{id}; file paths change only
           when a new file of that kind arrives with the request
        3. Removed by DELETE /api/persons/{id}; uploaded files stay on disk
    """

    __tablename__ = "persons"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    name: Mapped[str] = mapped_column(String, nullable=False)

    dob: Mapped[date] = mapped_column(Date, nullable=False)

    phone_number: Mapped[str] = mapped_column(String, nullable=False)

    bank_balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    resume_path: Mapped[Optional[str]] = mapped_column(
        String,
        nullable=True,
        default=None,
    )

    media_path: Mapped[Optional[str]] = mapped_column(
        String,
        nullable=True,
        default=None,
    )

    __table_args__ = (
        CheckConstraint("bank_balance >= 0", name="ck_persons_bank_balance_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Person(id={self.id}, name='{self.name}')>"
