"""SteadyFocus Test Suite

This package contains all tests for the SteadyFocus personalization engine.

Test organization:
- unit/test_logging_config.py: structlog setup and event tagging
- unit/personalization/: Unit tests per engine component
  (baseline, adaptation, decision, attention, habits, engine, store,
  config, invariants)
- integration/: End-to-end flows through the engine, store and CLI

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/personalization/test_adaptation.py

    # Excluding slow tests
    pytest -m "not slow"
"""
