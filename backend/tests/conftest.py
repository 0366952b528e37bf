"""
Person Registry Backend — Test Configuration (conftest.py)
===========================================================

What:  Shared pytest fixtures for the test suite.
How:   Unit tests use a mocked AsyncSession; API tests run the real app
       against a throwaway SQLite database (aiosqlite) and a temporary
       upload directory, through httpx's ASGITransport.

Fixture Hierarchy:
    Function-scoped (fresh for each test):
    ├── mock_db_session: AsyncMock standing in for AsyncSession
    ├── upload_dir / upload_service: temporary upload directory
    ├── database: SQLite-backed Database with tables created
    ├── test_client: HTTPX AsyncClient bound to a fresh app
    └── sample_* : form values and file bytes
"""

import os
import tempfile
from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Override settings BEFORE any app import reads them
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(
    tempfile.mkdtemp(prefix="person_registry_test_"), "unused.db"
)
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="person_registry_uploads_")
os.environ["LOG_LEVEL"] = "WARNING"


@pytest.fixture
def mock_db_session():
    """
    A mock async database session.

    Usage:
        mock_db_session.execute.return_value.scalar_one_or_none.return_value = row
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def upload_service(upload_dir):
    from app.services.upload_service import UploadService

    return UploadService(upload_dir=str(upload_dir), max_upload_size=5 * 1024 * 1024)


@pytest_asyncio.fixture
async def database(tmp_path):
    """A Database handle on a per-test SQLite file, schema created."""
    from app.database import Database

    db = Database(url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def test_client(database, upload_service):
    """
    HTTPX AsyncClient talking to a fresh app instance.

    The lifespan does not run under ASGITransport; the Database handle is
    already connected by the `database` fixture.
    """
    from app.main import create_app

    app = create_app(database=database, upload_service=upload_service)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sample_person_form():
    return {
        "name": "Alice",
        "dob": "1990-01-01",
        "phone_number": "+1 555-1234",
        "bank_balance": "100.50",
    }


@pytest.fixture
def sample_person_row():
    """Attribute-style row, as PersonRepository would return it."""
    return SimpleNamespace(
        id=1,
        name="Alice",
        dob=date(1990, 1, 1),
        phone_number="+1 555-1234",
        bank_balance=Decimal("100.50"),
        resume_path=None,
        media_path=None,
    )


@pytest.fixture
def sample_pdf_bytes():
    """Smallest useful PDF-looking payload (header + EOF marker)."""
    return b"%PDF-1.4\n1 0 obj<<>>endobj\ntrailer<<>>\n%%EOF\n"


@pytest.fixture
def sample_png_bytes():
    """PNG signature followed by an empty IEND chunk."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\x00IEND\xaeB`\x82"
