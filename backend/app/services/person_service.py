"""
Person Registry Backend — Person Service (Endpoint Orchestration)
===================================================================

What:  Coordinates upload checks, field validation, file storage and the
       store adapter for the five person endpoints.
Why:   Keeps routes thin (HTTP only) and makes the workflow testable
       without HTTP.
Who:   Called by app/routes/persons.py.

Create / update flow:
    ┌──────────────┐   ┌──────────────┐   ┌────────────┐   ┌───────────┐
    │ Upload check │──▶│ Field checks │──▶│ Write files│──▶│ Statement │
    │ (type, size) │   │ (PersonForm) │   │ (uploads/) │   │ (persons) │
    └──────────────┘   └──────────────┘   └────────────┘   └───────────┘

    - Upload check fails  → UploadError (400), nothing written
    - Field checks fail   → ValidationError (400), nothing written
    - Statement fails     → DatabaseError (500), written files removed
    - Commit fails        → DatabaseError (500), written files removed
    - Update hits no row  → NotFoundError (404), written files removed

Files are written only after the fields validate, so a rejected form never
leaves files behind. Writes are committed here, before the response model
is built, so the client never sees a success status for an uncommitted row.
"""

import logging
from typing import Any, Mapping, Optional

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError
from app.schemas.person import (
    Pagination,
    PersonForm,
    PersonListResponse,
    PersonResponse,
)
from app.services.person_repository import PersonRepository
from app.services.upload_service import UploadService

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def parse_page_param(value: Optional[str], default: int) -> int:
    """
    Parse a pagination query value.

    Anything that is not a positive integer ("abc", "", "0", "-3") falls
    back to the default.
    """
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 1 else default


class PersonService:
    """
    Business logic for person records.

    Stateless: the session and upload service are passed in on every call,
    so each request works against its own transaction.
    """

    async def list_persons(
        self,
        db: AsyncSession,
        page: Optional[str] = None,
        limit: Optional[str] = None,
    ) -> PersonListResponse:
        page_number = parse_page_param(page, DEFAULT_PAGE)
        page_size = parse_page_param(limit, DEFAULT_LIMIT)
        offset = (page_number - 1) * page_size

        rows, total = await PersonRepository(db).list(limit=page_size, offset=offset)

        return PersonListResponse(
            data=[PersonResponse.model_validate(row) for row in rows],
            pagination=Pagination(page=page_number, limit=page_size, total=total),
        )

    async def get_person(self, db: AsyncSession, person_id: int) -> PersonResponse:
        person = await PersonRepository(db).get_by_id(person_id)
        if person is None:
            raise NotFoundError(resource="Person", resource_id=person_id)
        return PersonResponse.model_validate(person)

    async def create_person(
        self,
        db: AsyncSession,
        uploads: UploadService,
        form: Mapping[str, Any],
        files: Mapping[str, Optional[UploadFile]],
    ) -> PersonResponse:
        """
        Create a person from a multipart request.

        Args:
            db:      request session
            uploads: upload directory service
            form:    raw text fields (name, dob, phone_number, bank_balance)
            files:   "resume" / "media" UploadFile objects, or None

        Raises:
            UploadError, ValidationError, DatabaseError, FileStorageError
        """
        pending = await uploads.read_uploads(files)
        person_form = self._validate(form)

        stored = await uploads.store_all(pending)
        fields = {**person_form.to_fields(), "resume_path": None, "media_path": None, **stored}

        repository = PersonRepository(db)
        try:
            person = await repository.insert(fields)
            await repository.commit()
        except Exception:
            await uploads.cleanup(stored.values())
            raise

        logger.info(
            "Person %s created (resume=%s, media=%s)",
            person.id,
            bool(person.resume_path),
            bool(person.media_path),
        )
        return PersonResponse.model_validate(person)

    async def update_person(
        self,
        db: AsyncSession,
        uploads: UploadService,
        person_id: int,
        form: Mapping[str, Any],
        files: Mapping[str, Optional[UploadFile]],
    ) -> PersonResponse:
        """
        Replace a person's fields.

        resume_path / media_path change only when a new file of that kind
        comes with this request; otherwise the stored path is kept.

        Raises:
            UploadError, ValidationError, NotFoundError, DatabaseError,
            FileStorageError
        """
        pending = await uploads.read_uploads(files)
        person_form = self._validate(form)

        stored = await uploads.store_all(pending)
        fields = {**person_form.to_fields(), **stored}

        repository = PersonRepository(db)
        try:
            person = await repository.update_by_id(person_id, fields)
            if person is not None:
                await repository.commit()
        except Exception:
            await uploads.cleanup(stored.values())
            raise

        if person is None:
            await uploads.cleanup(stored.values())
            raise NotFoundError(resource="Person", resource_id=person_id)

        logger.info("Person %s updated (new files: %s)", person_id, sorted(stored) or "none")
        return PersonResponse.model_validate(person)

    async def delete_person(self, db: AsyncSession, person_id: int) -> PersonResponse:
        """
        Delete a person and return the row as it was before deletion.

        Uploaded files referenced by the row are left on disk.
        """
        repository = PersonRepository(db)
        person = await repository.delete_by_id(person_id)
        if person is None:
            raise NotFoundError(resource="Person", resource_id=person_id)
        await repository.commit()

        logger.info("Person %s deleted", person_id)
        return PersonResponse.model_validate(person)

    @staticmethod
    def _validate(form: Mapping[str, Any]) -> PersonForm:
        return PersonForm.from_form(
            name=form.get("name"),
            dob=form.get("dob"),
            phone_number=form.get("phone_number"),
            bank_balance=form.get("bank_balance"),
        )


# Stateless, so one shared instance serves every request
person_service = PersonService()
