"""Tests for tools/personalization/baseline.py

The baseline initializer turns the static onboarding profile into the
first PersonalizationState. It has no state of its own, so every test
here is a pure input/output check.

Key behaviors:
- Strictness compatibility maps monotonically onto levels 1-5
- Focus capability maps onto 15 / 25 / 45 minute sessions
- Trackers are seeded from the onboarding response prediction
- Authority resistance caps the starting strictness level
"""

from dataclasses import replace

import pytest

from tools.personalization.baseline import (
    compute_authority_resistance,
    compute_emotional_sensitivity,
    compute_goal_drive,
    compute_intervention_tolerance,
    initialize_baseline,
    map_session_length,
    map_strictness_level,
    reseed_from_profile,
)
from tools.personalization.models import (
    DistractionCategory,
    InterventionType,
    MotivationType,
    NudgeTone,
    PersonalityTraits,
    StaticProfile,
)


MINUTE_MS = 60 * 1000


# ─────────────────────────────────────────────────────────────────────────────
# Derived Index Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestGoalDrive:
    """Tests for the goal drive score."""

    def test_achiever_goal_drive(self, achiever_profile):
        """Should weigh urgency, self-efficacy and focus capability."""
        # 0.4*0.7 + 0.4*0.7 + 0 (extrinsic) + 0.1*0.8
        assert compute_goal_drive(achiever_profile) == pytest.approx(0.64)

    def test_intrinsic_motivation_adds_bonus(self, achiever_profile):
        """Should add more for intrinsic than for extrinsic motivation."""
        intrinsic = replace(achiever_profile, motivation_type=MotivationType.INTRINSIC)
        assert compute_goal_drive(intrinsic) == pytest.approx(0.79)

    def test_clamped_to_one(self):
        """Should never exceed 1 even with every input maxed out."""
        profile = StaticProfile(
            goal_urgency=1.0,
            self_efficacy=1.0,
            focus_capability=1.0,
            motivation_type=MotivationType.INTRINSIC,
        )
        assert compute_goal_drive(profile) == 1.0


class TestAuthorityResistance:
    """Tests for trait-adjusted authority resistance."""

    def test_rebel_resistance_nudged_up(self, rebel_profile):
        """Should rise slightly for open, disagreeable users."""
        assert compute_authority_resistance(rebel_profile) == pytest.approx(0.7833, abs=1e-3)

    def test_achiever_resistance_nudged_down(self, achiever_profile):
        """Should drop slightly for agreeable users."""
        assert compute_authority_resistance(achiever_profile) == pytest.approx(0.0717, abs=1e-3)

    def test_neutral_traits_leave_score_unchanged(self):
        """Should pass the profile value through at midpoint traits."""
        profile = StaticProfile(traits=PersonalityTraits(), authority_resistance=0.4)
        assert compute_authority_resistance(profile) == pytest.approx(0.4)

    def test_out_of_range_input_clamped(self):
        """Should clamp an out-of-range profile value instead of failing."""
        profile = StaticProfile(authority_resistance=3.0)
        assert 0.0 <= compute_authority_resistance(profile) <= 1.0


class TestEmotionalSensitivity:
    """Tests for the emotional sensitivity score."""

    def test_blends_reactivity_and_neuroticism(self, rebel_profile):
        """Should be 0.6 * reactivity + 0.4 * normalized neuroticism."""
        # 0.6*0.15 + 0.4*(5.5/6)
        assert compute_emotional_sensitivity(rebel_profile) == pytest.approx(0.4567, abs=1e-3)


class TestInterventionTolerance:
    def test_compatible_user_tolerates_more(self):
        assert compute_intervention_tolerance(0.1, 0.9, 0.2) > compute_intervention_tolerance(
            0.8, 0.2, 0.2
        )

    def test_bounded(self):
        assert compute_intervention_tolerance(0.0, 1.0, 0.0) <= 1.0
        assert compute_intervention_tolerance(1.0, 0.0, 1.0) >= 0.0


# ─────────────────────────────────────────────────────────────────────────────
# Step Mapping Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestMapStrictnessLevel:
    """Tests for compatibility -> strictness level."""

    @pytest.mark.parametrize(
        "compatibility,expected",
        [(0.0, 1), (0.2, 1), (0.39, 1), (0.4, 2), (0.55, 3), (0.7, 4), (0.8, 4), (0.85, 5), (1.0, 5)],
    )
    def test_threshold_steps(self, compatibility, expected, config):
        """Should step up at each threshold."""
        assert map_strictness_level(compatibility, config.baseline) == expected

    def test_high_compatibility_is_strict(self, config):
        """Should map anything >= 0.8 to level 4 or above."""
        for value in (0.8, 0.85, 0.9, 0.95, 1.0):
            assert map_strictness_level(value, config.baseline) >= 4

    def test_low_compatibility_is_lenient(self, config):
        """Should map anything <= 0.2 to level 2 or below."""
        for value in (0.0, 0.05, 0.1, 0.2):
            assert map_strictness_level(value, config.baseline) <= 2

    def test_monotonic(self, config):
        """Should never map a higher compatibility to a lower level."""
        levels = [map_strictness_level(i / 100, config.baseline) for i in range(101)]
        assert levels == sorted(levels)

    def test_out_of_range_clamped(self, config):
        assert map_strictness_level(-1.0, config.baseline) == 1
        assert map_strictness_level(7.0, config.baseline) == 5


class TestMapSessionLength:
    """Tests for focus capability -> initial session length."""

    def test_high_focus_gets_45_minutes(self, config):
        """Should give 45 minutes at focus capability >= 0.8."""
        assert map_session_length(0.8, config.baseline) == 45 * MINUTE_MS

    def test_low_focus_gets_15_minutes(self, config):
        """Should give 15 minutes at focus capability <= 0.2."""
        assert map_session_length(0.2, config.baseline) == 15 * MINUTE_MS

    def test_moderate_focus_gets_25_minutes(self, config):
        assert map_session_length(0.5, config.baseline) == 25 * MINUTE_MS


# ─────────────────────────────────────────────────────────────────────────────
# Initialization Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestInitializeBaseline:
    """Tests for building the initial state."""

    def test_achiever_starts_strict_with_long_sessions(self, achiever_profile, now, config):
        """Should start a compliant user at level 4 with 45-minute sessions."""
        state = initialize_baseline(achiever_profile, now=now, config=config)

        assert state.strictness.level == 4
        assert state.strictness.baseline_level == 4
        assert state.baseline_session_ms == 45 * MINUTE_MS
        assert state.attention.recommended_ms == 45 * MINUTE_MS

    def test_rebel_starts_lenient(self, rebel_profile, now, config):
        """Should start the resistant archetype at level 2 or below."""
        state = initialize_baseline(rebel_profile, now=now, config=config)

        assert state.strictness.level <= 2
        assert state.baseline_session_ms == 15 * MINUTE_MS
        assert state.primary_distraction == DistractionCategory.GAMING

    def test_trackers_seeded_from_prediction(self, achiever_profile, now, config):
        """Should seed each tracker's probability and prior from onboarding."""
        state = initialize_baseline(achiever_profile, now=now, config=config)

        reflective = state.trackers[InterventionType.REFLECTIVE]
        assert reflective.probability == pytest.approx(0.65)
        assert reflective.prior == pytest.approx(0.65)
        assert reflective.attempts == 0
        assert state.trackers[InterventionType.HARD_BLOCK].probability == pytest.approx(0.45)

    def test_impulsivity_copied_verbatim(self, rebel_profile, now, config):
        state = initialize_baseline(rebel_profile, now=now, config=config)
        assert state.impulsivity_index == 0.85

    def test_preferred_tone_starts_ahead(self, rebel_profile, now, config):
        """Should give the preferred tone a head start over the others."""
        state = initialize_baseline(rebel_profile, now=now, config=config)

        assert state.baseline_tone == NudgeTone.SHARP
        assert state.tone_effectiveness[NudgeTone.SHARP] == pytest.approx(0.7)
        assert state.tone_effectiveness[NudgeTone.SUPPORTIVE] == pytest.approx(0.5)

    def test_level_capped_by_authority_resistance(self, achiever_profile, now, config):
        """Should cap a compatible but resistant user below level 5."""
        profile = replace(achiever_profile, strictness_compatibility=0.95, authority_resistance=0.9)
        state = initialize_baseline(profile, now=now, config=config)

        assert state.strictness.level <= 3

    def test_timestamps_from_now(self, achiever_profile, now, config):
        state = initialize_baseline(achiever_profile, now=now, config=config)

        assert state.created_at == now
        assert state.updated_at == now
        assert state.window_started_at == now
        assert state.last_daily_update is None

    def test_empty_distraction_vector_defaults_to_other(self, now, config):
        """Should fall back to 'other' when onboarding listed no distractions."""
        state = initialize_baseline(StaticProfile(), now=now, config=config)
        assert state.primary_distraction == DistractionCategory.OTHER


class TestReseedFromProfile:
    """Tests for refreshing profile indices on an existing state."""

    def test_keeps_learned_evidence(self, achiever_profile, rebel_profile, now, config):
        """Should replace derived indices but keep trackers and strictness."""
        state = initialize_baseline(achiever_profile, now=now, config=config)
        state = replace(state, interaction_count=12)

        reseeded = reseed_from_profile(state, rebel_profile, config=config)

        assert reseeded.authority_resistance == pytest.approx(0.7833, abs=1e-3)
        assert reseeded.primary_distraction == DistractionCategory.GAMING
        assert reseeded.trackers == state.trackers
        assert reseeded.strictness == state.strictness
        assert reseeded.interaction_count == 12
