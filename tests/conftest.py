"""Shared test fixtures for SteadyFocus tests.

This module provides common fixtures used across all test modules:
- Database isolation with temporary files
- Onboarding profiles for the two reference archetypes
- Live contexts and a default engine config

Usage:
    def test_something(temp_db):
        # temp_db is automatically cleaned up after the test
        ...
"""

import os
import tempfile
from collections.abc import Generator
from datetime import datetime
from pathlib import Path

import pytest

from tools.personalization.config import PersonalizationConfig
from tools.personalization.decision import build_context
from tools.personalization.models import (
    DistractionCategory,
    GoalCategory,
    MotivationType,
    NudgeTone,
    PersonalityTraits,
    ResponsePrediction,
    StaticProfile,
)


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent
TOOLS_DIR = PROJECT_ROOT / "tools"

# Fixed clock for deterministic state
T0 = datetime(2026, 2, 23, 9, 0, 0)


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_db() -> Generator[Path, None, None]:
    """Create a temporary database file for testing.

    The database file is automatically deleted after the test completes.

    Yields:
        Path to the temporary database file
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup
    if db_path.exists():
        os.unlink(db_path)


# ─────────────────────────────────────────────────────────────────────────────
# User Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_user_id() -> str:
    """Standard test user ID."""
    return "test_user_123"


@pytest.fixture
def now() -> datetime:
    return T0


# ─────────────────────────────────────────────────────────────────────────────
# Config Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def config() -> PersonalizationConfig:
    """Default engine config, independent of args/personalization.yaml."""
    return PersonalizationConfig()


@pytest.fixture
def strict_config() -> PersonalizationConfig:
    cfg = PersonalizationConfig()
    cfg.engine.strict_invariants = True
    return cfg


# ─────────────────────────────────────────────────────────────────────────────
# Profile Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def achiever_profile() -> StaticProfile:
    """Conscientious, compliant, goal-driven user.

    Returns:
        StaticProfile that should start strict with long sessions
    """
    return StaticProfile(
        traits=PersonalityTraits(
            conscientiousness=6.5,
            neuroticism=2.0,
            openness=5.0,
            agreeableness=5.0,
            extraversion=4.0,
        ),
        impulsivity_index=0.1,
        authority_resistance=0.08,
        strictness_compatibility=0.8,
        uninstall_risk=0.2,
        motivation_type=MotivationType.EXTRINSIC,
        goal_category=GoalCategory.CAREER,
        goal_urgency=0.7,
        emotional_reactivity=0.55,
        self_efficacy=0.7,
        distraction_vector={DistractionCategory.SOCIAL_MEDIA: 1.0},
        response_prediction=ResponsePrediction(reflective=0.65, soft_delay=0.55, hard_block=0.45),
        focus_capability=0.8,
        preferred_tone=NudgeTone.SUPPORTIVE,
    )


@pytest.fixture
def rebel_profile() -> StaticProfile:
    """Impulsive, authority-resistant user.

    Returns:
        StaticProfile that should start lenient and never be hard-blocked
    """
    return StaticProfile(
        traits=PersonalityTraits(
            conscientiousness=1.5,
            neuroticism=6.5,
            openness=6.0,
            agreeableness=3.0,
            extraversion=6.0,
        ),
        impulsivity_index=0.85,
        authority_resistance=0.75,
        strictness_compatibility=0.2,
        uninstall_risk=0.7,
        motivation_type=MotivationType.MIXED,
        goal_category=GoalCategory.OTHER,
        goal_urgency=0.2,
        emotional_reactivity=0.15,
        self_efficacy=0.25,
        distraction_vector={
            DistractionCategory.GAMING: 1.0,
            DistractionCategory.SOCIAL_MEDIA: 0.5,
        },
        response_prediction=ResponsePrediction(reflective=0.4, soft_delay=0.3, hard_block=0.2),
        focus_capability=0.25,
        preferred_tone=NudgeTone.SHARP,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Context Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def calm_context():
    """Rested afternoon, nothing pulling at the user."""
    return build_context(hour=14, cognitive_readiness=0.7)


@pytest.fixture
def urgent_context():
    """Evening, in a focus session, strong conflict with the goal."""
    return build_context(
        hour=19,
        cognitive_readiness=0.9,
        fragmentation=0.6,
        goal_conflict=1.0,
        distraction_severity=1.0,
        in_focus_session=True,
    )


@pytest.fixture
def depleted_context():
    """Same pressure as urgent_context, but the user is running on empty."""
    return build_context(
        hour=19,
        cognitive_readiness=0.1,
        fragmentation=0.6,
        goal_conflict=1.0,
        distraction_severity=1.0,
        in_focus_session=True,
    )
