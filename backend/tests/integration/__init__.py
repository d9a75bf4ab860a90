"""
Integration Tests

Integration tests run the services and the HTTP API against a real database:
a fresh SQLite file (aiosqlite) per test, created from the ORM models.

These tests verify that all components work together correctly.
"""
