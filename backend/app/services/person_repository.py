"""
Person Registry Backend — Person Store Adapter
================================================

What:  Translates CRUD intents into single parameterized statements against
       the `persons` table.
Why:   The endpoint layer never builds SQL; everything that touches the
       table lives here and is bound through SQLAlchemy parameters.
How:   Each method runs one statement on the request's AsyncSession
       (listing also runs a COUNT). INSERT/UPDATE/DELETE use RETURNING so
       the caller gets the row as the store saw it.

Not-found signal:
    get_by_id / update_by_id / delete_by_id return None when no row matches.
    Turning that into a 404 is the service layer's job.

Update statement:
    One fixed UPDATE for every request:
        SET name = :name, dob = :dob, phone_number = :phone_number,
            bank_balance = :bank_balance,
            resume_path = COALESCE(:new_resume_path, resume_path),
            media_path  = COALESCE(:new_media_path, media_path)
    A NULL bind keeps the stored path, so the column list never changes
    with the request.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import String, bindparam, delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError
from app.models.person import Person

logger = logging.getLogger(__name__)

PERSON_COLUMNS = ("name", "dob", "phone_number", "bank_balance")

# Largest LIMIT/OFFSET both drivers can bind (signed 64-bit)
MAX_SQL_INTEGER = 2 ** 63 - 1


def _database_error(operation: str, exc: SQLAlchemyError, **context: Any) -> DatabaseError:
    """Wrap a SQLAlchemy failure, keeping the driver message and SQLSTATE."""
    orig = getattr(exc, "orig", None) or exc
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    logger.error("Database error during %s: %s", operation, str(orig), exc_info=True)
    return DatabaseError(
        context={
            "operation": operation,
            "details": str(orig),
            "code": str(code) if code else None,
            **context,
        },
    )


class PersonRepository:
    """
    Store adapter bound to one AsyncSession.

    Write statements are made durable by commit(), which PersonService
    calls before building the response. get_db_session rolls back anything
    left uncommitted.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list(self, limit: int, offset: int) -> Tuple[List[Person], int]:
        """
        Fetch one page of rows plus the full row count.

        A limit/offset past the end of the table gives an empty list and the
        true total. An offset too large to bind is past the end of any table,
        so no row query runs; a limit too large to bind means "all rows".
        """
        try:
            rows: List[Person] = []
            if offset <= MAX_SQL_INTEGER:
                result = await self.db.execute(
                    select(Person)
                    .order_by(Person.id)
                    .limit(min(limit, MAX_SQL_INTEGER))
                    .offset(offset)
                )
                rows = list(result.scalars().all())

            count_result = await self.db.execute(select(func.count()).select_from(Person))
            total = count_result.scalar() or 0
        except SQLAlchemyError as e:
            raise _database_error("list", e, limit=limit, offset=offset)

        return rows, int(total)

    async def get_by_id(self, person_id: int) -> Optional[Person]:
        try:
            result = await self.db.execute(select(Person).where(Person.id == person_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise _database_error("get", e, person_id=person_id)

    async def insert(self, fields: Dict[str, Any]) -> Person:
        """Insert a row and return it with its generated id."""
        values = {column: fields[column] for column in PERSON_COLUMNS}
        values["resume_path"] = fields.get("resume_path")
        values["media_path"] = fields.get("media_path")

        try:
            result = await self.db.execute(
                insert(Person).values(**values).returning(Person)
            )
            return result.scalar_one()
        except SQLAlchemyError as e:
            raise _database_error("insert", e)

    async def update_by_id(self, person_id: int, fields: Dict[str, Any]) -> Optional[Person]:
        """
        Update a row in place.

        fields must hold name/dob/phone_number/bank_balance; resume_path and
        media_path are optional and, when absent or None, leave the stored
        value untouched.
        """
        stmt = (
            update(Person)
            .where(Person.id == person_id)
            .values(
                name=fields["name"],
                dob=fields["dob"],
                phone_number=fields["phone_number"],
                bank_balance=fields["bank_balance"],
                resume_path=func.coalesce(
                    bindparam("new_resume_path", fields.get("resume_path"), type_=String),
                    Person.resume_path,
                ),
                media_path=func.coalesce(
                    bindparam("new_media_path", fields.get("media_path"), type_=String),
                    Person.media_path,
                ),
            )
            .returning(Person)
            .execution_options(synchronize_session=False)
        )

        try:
            result = await self.db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise _database_error("update", e, person_id=person_id)

    async def delete_by_id(self, person_id: int) -> Optional[Person]:
        """Delete a row and return its values as they were just before deletion."""
        stmt = (
            delete(Person)
            .where(Person.id == person_id)
            .returning(Person)
            .execution_options(synchronize_session=False)
        )

        try:
            result = await self.db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise _database_error("delete", e, person_id=person_id)

    async def commit(self) -> None:
        """
        Commit the session's transaction.

        Writes are committed here, before the response is built, so a failed
        commit still reaches the client as a 500.
        """
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            raise _database_error("commit", e)
