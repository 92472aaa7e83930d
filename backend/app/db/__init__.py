"""Database Infrastructure - SQLAlchemy Base, session factory, demo seed.

Invariants:
    - All sessions are async (AsyncSession)

Design Decisions:
    - asyncpg driver for PostgreSQL, aiosqlite in tests
"""
