"""Database Infrastructure: SQLAlchemy declarative base shared by all ORM models.

Invariants:
    - All sessions are async (AsyncSession)

Design Decisions:
    - asyncpg driver for PostgreSQL (ADR: native async, no thread pool overhead)
"""
