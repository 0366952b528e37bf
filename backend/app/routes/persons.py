"""
Person Registry Backend — Person Route Handlers
=================================================

What:  The five REST operations on /api/persons.
Why:   Entry point for the browser UI's list, create, edit and delete screens.
How:   Extracts query/path/form/file data, delegates to PersonService, and
       sets the status code. Errors are raised as exceptions and formatted
       by the global handlers in main.py.

Route Inventory:
    GET    /api/persons            list with page/limit pagination
    GET    /api/persons/{id}       single record
    POST   /api/persons            create (multipart, optional resume/media)
    PUT    /api/persons/{id}       update (multipart, optional resume/media)
    DELETE /api/persons/{id}       delete, 204 on success
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.person import ErrorResponse, PersonListResponse, PersonResponse
from app.services.person_service import person_service
from app.services.upload_service import UploadService, get_upload_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Persons"])

_NOT_FOUND = {"description": "Person not found", "model": ErrorResponse}
_BAD_REQUEST = {"description": "Validation or upload error", "model": ErrorResponse}
_SERVER_ERROR = {"description": "Server error", "model": ErrorResponse}


@router.get(
    "/persons",
    response_model=PersonListResponse,
    responses={500: _SERVER_ERROR},
    summary="List persons with pagination",
)
async def list_persons(
    page: Optional[str] = Query(default=None, description="1-based page number (default 1)"),
    limit: Optional[str] = Query(default=None, description="Rows per page (default 10)"),
    db: AsyncSession = Depends(get_db_session),
) -> PersonListResponse:
    """
    Return one page of persons plus the total row count.

    page and limit are taken as raw strings so that junk values fall back
    to the defaults instead of failing the request.
    """
    return await person_service.list_persons(db=db, page=page, limit=limit)


@router.get(
    "/persons/{person_id}",
    response_model=PersonResponse,
    responses={404: _NOT_FOUND, 500: _SERVER_ERROR},
    summary="Get a single person",
)
async def get_person(
    person_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> PersonResponse:
    return await person_service.get_person(db=db, person_id=person_id)


@router.post(
    "/persons",
    status_code=status.HTTP_201_CREATED,
    response_model=PersonResponse,
    responses={400: _BAD_REQUEST, 500: _SERVER_ERROR},
    summary="Create a person",
    description=(
        "Multipart form with name, dob, phone_number and bank_balance, plus optional "
        "resume and media files (PDF, JPEG or PNG; 5MB combined)."
    ),
)
async def create_person(
    request: Request,
    name: str = Form(default=""),
    dob: str = Form(default=""),
    phone_number: str = Form(default=""),
    bank_balance: str = Form(default=""),
    resume: Optional[UploadFile] = File(default=None, description="Resume (PDF or image)"),
    media: Optional[UploadFile] = File(default=None, description="Photo or other media"),
    db: AsyncSession = Depends(get_db_session),
    uploads: UploadService = Depends(get_upload_service),
) -> PersonResponse:
    """
    Create a person record.

    Error responses (global exception handlers):
        HTTP 400: disallowed file type / size, more than one file per field
                  (UploadError) or field errors (ValidationError)
        HTTP 500: store or file system failure
    """
    logger.debug(
        "Create request: resume=%s media=%s",
        resume.filename if resume else None,
        media.filename if media else None,
    )
    try:
        uploads.check_single_file_per_field(await request.form())
        return await person_service.create_person(
            db=db,
            uploads=uploads,
            form={
                "name": name,
                "dob": dob,
                "phone_number": phone_number,
                "bank_balance": bank_balance,
            },
            files={"resume": resume, "media": media},
        )
    finally:
        for upload in (resume, media):
            if upload is not None:
                await upload.close()


@router.put(
    "/persons/{person_id}",
    response_model=PersonResponse,
    responses={400: _BAD_REQUEST, 404: _NOT_FOUND, 500: _SERVER_ERROR},
    summary="Update a person",
    description=(
        "Same form as create. A file field left out keeps the stored file path; "
        "a new file replaces it."
    ),
)
async def update_person(
    request: Request,
    person_id: int,
    name: str = Form(default=""),
    dob: str = Form(default=""),
    phone_number: str = Form(default=""),
    bank_balance: str = Form(default=""),
    resume: Optional[UploadFile] = File(default=None, description="Replacement resume"),
    media: Optional[UploadFile] = File(default=None, description="Replacement media"),
    db: AsyncSession = Depends(get_db_session),
    uploads: UploadService = Depends(get_upload_service),
) -> PersonResponse:
    try:
        uploads.check_single_file_per_field(await request.form())
        return await person_service.update_person(
            db=db,
            uploads=uploads,
            person_id=person_id,
            form={
                "name": name,
                "dob": dob,
                "phone_number": phone_number,
                "bank_balance": bank_balance,
            },
            files={"resume": resume, "media": media},
        )
    finally:
        for upload in (resume, media):
            if upload is not None:
                await upload.close()


@router.delete(
    "/persons/{person_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={404: _NOT_FOUND, 500: _SERVER_ERROR},
    summary="Delete a person",
)
async def delete_person(
    person_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await person_service.delete_person(db=db, person_id=person_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
