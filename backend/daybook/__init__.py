"""
Daybook Backend — Application Package Initializer
==================================================

What: Marks the `daybook` directory as a Python package.
Why:  Enables module imports like `from daybook.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    This backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Ownership rules, save hooks
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← Document builders + Pydantic
    ├─────────────────────────────────────┤
    │   Storage Availability Manager      │  ← MongoDB or in-memory fallback
    └─────────────────────────────────────┘

    Services never talk to MongoDB directly. Every read and write goes through
    the StorageAvailabilityManager, which decides per call whether the remote
    store or the volatile fallback store is authoritative.
"""

__version__ = "1.0.0"
