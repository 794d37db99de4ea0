"""
Personalization Tools - Adaptive control of how the app intervenes

Philosophy:
    Start from what onboarding tells us, then let behavior correct it.
    A user who keeps overriding blocks is telling us something.
    Back off before they uninstall - a gentle nudge beats a lost user.

Core Principle:
    Every component is a pure state transition: old state + input -> new
    state. Nothing is mutated in place, so a stored event log can be
    replayed to reproduce (or audit) any past state.

Components:
    baseline.py: Seed the control state from the static onboarding profile
        - Goal drive, authority resistance, emotional sensitivity
        - Baseline strictness level and session length

    adaptation.py: Learn from compliance events
        - Smoothed compliance probability per intervention type
        - Strictness escalation with cooldown and authority ceiling
        - Nudge fatigue, throttling and daily decay
        - Tone effectiveness

    decision.py: Decide what to do right now
        - Intervention suitability score (ISS)
        - Policy and message selection
        - Recovery recommendation and stress proxy

    attention.py: Personalized session length from session history
    habits.py: Streaks, weekly minutes, habit suggestions, recovery protocols
    engine.py: Orchestrator - the only entry point callers need
    store.py: Versioned per-user snapshots in SQLite

Safety Rules:
    1. De-escalation always wins over cooldown
    2. Authority-resistant users never get hard blocks
    3. Depleted users (low cognitive readiness) are never nudged first
    4. Out-of-range numbers are clamped, not rejected

Database: data/personalization.db
    - personalization_snapshots: one JSON snapshot per user

Configuration: args/personalization.yaml
"""

from pathlib import Path

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent.parent
DATA_DIR = PROJECT_ROOT / "data"
DB_PATH = DATA_DIR / "personalization.db"
CONFIG_PATH = PROJECT_ROOT / "args" / "personalization.yaml"

# Bumped whenever the persisted PersonalizationState layout changes
SCHEMA_VERSION = 1

__all__ = [
    "PROJECT_ROOT",
    "DATA_DIR",
    "DB_PATH",
    "CONFIG_PATH",
    "SCHEMA_VERSION",
]
