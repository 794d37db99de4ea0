"""
Integration test fixtures for SteadyFocus.

Provides fixtures specific to integration testing:
- Database isolation for the snapshot store
- Onboarding profile files for the CLI
- A runner that invokes the CLI in-process and parses its JSON output
"""

import json
import sys
from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent.parent
TOOLS_DIR = PROJECT_ROOT / "tools"


# ─────────────────────────────────────────────────────────────────────────────
# Store Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def store_db(temp_db) -> Generator[Path, None, None]:
    """Route every store call to a temporary database."""
    with patch("tools.personalization.store.DB_PATH", temp_db):
        yield temp_db


# ─────────────────────────────────────────────────────────────────────────────
# CLI Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def profile_file(tmp_path, achiever_profile) -> Path:
    """Onboarding profile JSON on disk, as the onboarding flow would export it."""
    path = tmp_path / "profile.json"
    path.write_text(json.dumps(achiever_profile.to_dict()))
    return path


@pytest.fixture
def run_cli(store_db, capsys):
    """Run the CLI in-process.

    Returns:
        Function taking argv and returning (exit_code, parsed JSON output)
    """
    from tools.cli import main

    def _quiet_setup_logging(*args, **kwargs):
        # Keep structlog's default printer off stdout, which carries the JSON result
        structlog.configure(logger_factory=structlog.PrintLoggerFactory(sys.stderr))

    def _run(*argv: str):
        # Logging setup would attach a handler to the captured stderr
        with patch("tools.logging_config.setup_logging", _quiet_setup_logging):
            try:
                code = main(list(argv))
            except SystemExit as e:
                code = e.code
        out = capsys.readouterr().out
        return code, json.loads(out)

    yield _run
    structlog.reset_defaults()
