"""
Meditrack Test Suite

Unit and integration tests for the meditation mastery engine.

Test Structure:
    tests/
    ├── conftest.py                 # Shared fixtures and configuration
    ├── unit/                       # Unit tests (isolated, no database)
    │   ├── test_config.py          # Settings and YAML loading
    │   ├── test_formulas.py        # Multipliers and the mastery curve
    │   ├── test_streaks.py         # Streak transitions
    │   ├── test_decay_rules.py     # Pure decay rule
    │   ├── test_mastery_service.py # Service guards (mocked session)
    │   ├── test_scheduler.py       # Decay job configuration
    │   └── test_error_handling.py  # Error taxonomy and responses
    └── integration/                # Integration tests (SQLite per test)
        ├── test_mastery_service.py # Session ingestion, edits, reads
        ├── test_decay_service.py   # Daily decay job
        └── test_api.py             # HTTP API

Running Tests:
    # Run all tests
    pytest -v

    # Run only unit tests
    pytest backend/tests/unit/ -v

    # Run only integration tests
    pytest backend/tests/integration/ -v
"""
