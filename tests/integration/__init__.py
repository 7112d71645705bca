"""
Integration tests package for the wiki watchlist service.

These tests wire the watchlist manager to the SQL-backed collaborators and
run whole request flows against a real database. TEST_DATABASE_URL selects
the database; an in-memory SQLite database is used by default.
"""

__version__ = "1.0.0"
