"""
Person Registry Backend — Pydantic Request/Response Schemas
=============================================================

What:  Pydantic models defining the API contract for person records.
Why:   Strict input validation at the boundary, typed responses, and
       OpenAPI docs generated from the same definitions.
How:   PersonForm validates the multipart text fields; the response models
       are built from ORM rows via from_attributes.

Validation rules (PersonForm):
    name          required; surrounding whitespace trimmed; must not be empty
    phone_number  digits, spaces and hyphens, optional leading "+"
    bank_balance  finite number >= 0, stored with two decimal places
    dob           calendar date written YYYY-MM-DD (YYYY/MM/DD also accepted)

Every failing field is reported, not only the first one.
"""

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from app.exceptions import ValidationError

# re.ASCII: \d and \s match only ASCII digits and whitespace
PHONE_PATTERN = re.compile(r"\+?[\d\s-]+", re.ASCII)
DATE_PATTERN = re.compile(r"(\d{4})([-/])(\d{1,2})\2(\d{1,2})", re.ASCII)
NUMBER_PATTERN = re.compile(r"[-+]?\d*\.?\d*(?:[eE][-+]?\d+)?", re.ASCII)

# NUMERIC(12, 2) holds at most ten integer digits
MAX_BANK_BALANCE = Decimal("9999999999.99")
CENTS = Decimal("0.01")

NAME_REQUIRED = "Name is required"
PHONE_INVALID = "Phone number must be a valid format"
BALANCE_INVALID = "Bank balance must be a valid positive number"
DOB_INVALID = "Date of birth must be a valid date (e.g., YYYY-MM-DD)"


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PersonForm(BaseModel):
    """
    What:  Validated text fields of a create/update request.
    Who:   Built by PersonService from the multipart form before any file is
           written or any statement runs.

    Raw form values always arrive as strings; the "before" validators parse
    them so the model ends up holding real date / Decimal values.
    """

    name: str
    dob: date
    phone_number: str
    bank_balance: Decimal

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v: Any) -> str:
        name = str(v or "").strip()
        if not name:
            raise PydanticCustomError("name_required", NAME_REQUIRED)
        return name

    @field_validator("phone_number", mode="before")
    @classmethod
    def validate_phone_number(cls, v: Any) -> str:
        phone = str(v or "")
        if not PHONE_PATTERN.fullmatch(phone):
            raise PydanticCustomError("phone_format", PHONE_INVALID)
        return phone

    @field_validator("bank_balance", mode="before")
    @classmethod
    def validate_bank_balance(cls, v: Any) -> Decimal:
        raw = str(v if v is not None else "").strip()
        # Reject bare signs/dots that the pattern alone would let through
        if not raw or not any(ch.isdigit() for ch in raw) or not NUMBER_PATTERN.fullmatch(raw):
            raise PydanticCustomError("bank_balance_invalid", BALANCE_INVALID)
        try:
            amount = Decimal(raw)
        except InvalidOperation:
            raise PydanticCustomError("bank_balance_invalid", BALANCE_INVALID)
        # Range check before quantize: quantize raises past 28 significant digits
        if not amount.is_finite() or amount < 0 or amount > MAX_BANK_BALANCE + CENTS:
            raise PydanticCustomError("bank_balance_invalid", BALANCE_INVALID)
        amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
        if amount > MAX_BANK_BALANCE:
            raise PydanticCustomError("bank_balance_invalid", BALANCE_INVALID)
        return abs(amount)

    @field_validator("dob", mode="before")
    @classmethod
    def validate_dob(cls, v: Any) -> date:
        if isinstance(v, date):
            return v
        match = DATE_PATTERN.fullmatch(str(v or "").strip())
        if match is None:
            raise PydanticCustomError("dob_invalid", DOB_INVALID)
        year, _, month, day = match.groups()
        try:
            return date(int(year), int(month), int(day))
        except ValueError:
            raise PydanticCustomError("dob_invalid", DOB_INVALID)

    @classmethod
    def from_form(cls, **raw: Any) -> "PersonForm":
        """
        Validate raw form values, converting failures into the API's
        ValidationError with one entry per failing field.
        """
        try:
            return cls.model_validate(raw)
        except PydanticValidationError as exc:
            errors: List[Dict[str, Any]] = []
            for error in exc.errors():
                field = str(error["loc"][0]) if error["loc"] else "body"
                errors.append({
                    "field": field,
                    "message": error["msg"],
                    "value": raw.get(field),
                })
            raise ValidationError(errors=errors)

    def to_fields(self) -> Dict[str, Any]:
        """Column values for the store adapter."""
        return self.model_dump()


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PersonResponse(BaseModel):
    """
    What:  Full representation of a person row.
    Who:   Returned by get-one, create and update; items of the list response.

    bank_balance is a Decimal and serializes as a JSON string ("100.50"),
    the way NUMERIC values reach clients without float rounding.
    """
    id: int = Field(description="Store-generated identifier")
    name: str = Field(description="Full name")
    dob: date = Field(description="Date of birth (YYYY-MM-DD)")
    phone_number: str = Field(description="Phone number")
    bank_balance: Decimal = Field(description="Non-negative balance with two decimal places")
    resume_path: Optional[str] = Field(default=None, description="Stored resume file path")
    media_path: Optional[str] = Field(default=None, description="Stored media file path")

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    page: int = Field(description="1-based page number that was served")
    limit: int = Field(description="Maximum rows per page")
    total: int = Field(description="Total number of rows in the table")


class PersonListResponse(BaseModel):
    """
    What:  Paginated response wrapper for GET /api/persons.

    Pagination strategy:
        Offset-based: offset = (page - 1) * limit. `total` is always the
        full row count, independent of page and limit, so the UI can render
        page controls.
    """
    data: List[PersonResponse] = Field(description="Rows on this page")
    pagination: Pagination


# ══════════════════════════════════════════════════════════════════════════
# Error Response Models
# ══════════════════════════════════════════════════════════════════════════


class FieldError(BaseModel):
    field: str = Field(description="Name of the offending field")
    message: str = Field(description="What is wrong with it")
    value: Optional[Any] = Field(default=None, description="The submitted value")


class ErrorResponse(BaseModel):
    """
    What:  Error body shared by every non-2xx response.

    Fields:
        error:      machine-readable code (validation_error, not_found, ...)
        message:    human-readable description
        errors:     field-level problems (400 validation only)
        details:    extra context (upload rejections, 500 diagnostics)
        code:       SQLSTATE of a failed statement, when known
        request_id: correlation ID for the server logs
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    errors: Optional[List[FieldError]] = Field(default=None)
    details: Optional[Any] = Field(default=None)
    code: Optional[str] = Field(default=None)
    request_id: Optional[str] = Field(default=None)


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
