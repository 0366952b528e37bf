"""
Person Registry Backend — Application Package
===============================================

REST API over a single `persons` table, with optional resume/media uploads.

Layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Services (orchestration, uploads)  │  ← validation, file storage
    ├─────────────────────────────────────┤
    │   Store adapter (PersonRepository)  │  ← one statement per operation
    ├─────────────────────────────────────┤
    │  Models & Schemas / Database handle │  ← SQLAlchemy ORM + Pydantic
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
