"""
Unit Tests

Unit tests run in isolation without external dependencies.
The database session is mocked where a service needs one.

These tests are fast and can run without any services running.
"""
