"""
Photo Enhancement Backend — Application Package Initializer
============================================================

What: Marks the `app` directory as a Python package.
Who:  Imported by uvicorn (`app.main:app`), Alembic, and pytest.

Architecture Note:
    The backend is layered the same way for every feature:

    ┌─────────────────────────────────────┐
    │        Routes (API Layer)           │  ← cron trigger, stuck report, health
    ├─────────────────────────────────────┤
    │   Services (Business Logic)         │  ← queue poller/dispatcher, enhancement client
    ├─────────────────────────────────────┤
    │   Models & Schemas (Data)           │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database (Persistence)            │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes only translate HTTP to service calls; services never see a Request.
"""

__version__ = "1.0.0"
