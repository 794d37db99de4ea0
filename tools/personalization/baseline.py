"""
Tool: Baseline Initializer
Purpose: Seed the personalization state from the static onboarding profile

Cold start for the engine. Nothing here has state; every function is a
pure mapping of the profile (or of scores derived from it). The adaptive
layers take over from the seeded values as soon as events arrive.

Derived indices:
- Goal drive: how driven the user is (urgency, self-efficacy, motivation)
- Authority resistance: how badly they react to being told what to do
- Emotional sensitivity: how gently failure must be framed
- Intervention tolerance: how much intervention they can absorb
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from tools.logging_config import get_logger
from tools.personalization.adaptation import authority_ceiling
from tools.personalization.config import BaselineConfig, PersonalizationConfig, get_config
from tools.personalization.invariants import MAX_LEVEL, MIN_LEVEL, clamp
from tools.personalization.models import (
    AttentionState,
    ComplianceTracker,
    FatigueState,
    HabitState,
    InterventionType,
    MotivationType,
    NudgeTone,
    PersonalizationState,
    StaticProfile,
    StrictnessState,
    local_naive,
)


logger = get_logger(__name__)

MOTIVATION_BONUS = {
    MotivationType.INTRINSIC: 0.15,
    MotivationType.MIXED: 0.08,
    MotivationType.EXTRINSIC: 0.0,
}


def compute_goal_drive(profile: StaticProfile) -> float:
    """
    Goal drive score (GDS).

    GDS = 0.40 * urgency + 0.40 * self-efficacy + motivation bonus
          + 0.10 * focus capability

    Higher GDS means the user can take stricter interventions.
    """
    gds = (
        clamp(profile.goal_urgency) * 0.40
        + clamp(profile.self_efficacy) * 0.40
        + MOTIVATION_BONUS.get(profile.motivation_type, 0.0)
        + clamp(profile.focus_capability) * 0.10
    )
    return clamp(gds)


def compute_authority_resistance(profile: StaticProfile) -> float:
    """
    Authority resistance score (ARS), nudged by personality.

    Openness adds a little (questions rules), agreeableness takes a
    little away (goes along with them). Both nudges are small so the
    onboarding estimate stays dominant.
    """
    traits = profile.traits
    adjustment = 0.05 * (traits.normalized("openness") - 0.5) - 0.10 * (
        traits.normalized("agreeableness") - 0.5
    )
    return clamp(clamp(profile.authority_resistance) + adjustment)


def compute_emotional_sensitivity(profile: StaticProfile) -> float:
    """Emotional sensitivity score (ESS): reactivity blended with neuroticism."""
    return clamp(
        0.6 * clamp(profile.emotional_reactivity)
        + 0.4 * profile.traits.normalized("neuroticism")
    )


def map_strictness_level(compatibility: float, config: BaselineConfig | None = None) -> int:
    """Map strictness compatibility (0-1) onto a level 1-5 by threshold steps."""
    cfg = config or get_config().baseline
    compatibility = clamp(compatibility)

    level = MIN_LEVEL
    for step, threshold in enumerate(cfg.strictness_thresholds[1:], start=2):
        if compatibility >= threshold:
            level = step
    return min(level, MAX_LEVEL)


def map_session_length(focus_capability: float, config: BaselineConfig | None = None) -> int:
    """Map the baseline focus estimate onto an initial session length in ms."""
    cfg = config or get_config().baseline
    focus_capability = clamp(focus_capability)

    if focus_capability >= cfg.focus_threshold_high:
        return cfg.session_high_ms
    if focus_capability >= cfg.focus_threshold_low:
        return cfg.session_moderate_ms
    return cfg.session_low_ms


def compute_intervention_tolerance(
    authority_resistance: float, compatibility: float, sensitivity: float
) -> float:
    """
    How much intervention the user absorbs before fatigue.

    High compatibility raises it, authority resistance lowers it, and
    emotional sensitivity takes a smaller bite.
    """
    tolerance = (
        0.50
        + clamp(compatibility) * 0.30
        - clamp(authority_resistance) * 0.25
        - clamp(sensitivity) * 0.10
    )
    return clamp(tolerance)


def _seed_tracker(prior: float, now: datetime) -> ComplianceTracker:
    prior = clamp(prior)
    return ComplianceTracker(
        successes=0,
        attempts=0,
        probability=prior,
        prior=prior,
        last_updated=now,
    )


def initialize_baseline(
    profile: StaticProfile,
    now: datetime | None = None,
    config: PersonalizationConfig | None = None,
) -> PersonalizationState:
    """
    Build the initial PersonalizationState for a freshly onboarded user.

    Args:
        profile: Static onboarding profile
        now: Creation time (defaults to now)
        config: Engine config (defaults to args/personalization.yaml)

    Returns:
        Fully populated PersonalizationState
    """
    cfg = config or get_config()
    now = local_naive(now) if now else datetime.now()

    goal_drive = compute_goal_drive(profile)
    resistance = compute_authority_resistance(profile)
    sensitivity = compute_emotional_sensitivity(profile)

    mapped_level = map_strictness_level(profile.strictness_compatibility, cfg.baseline)
    baseline_level = min(mapped_level, authority_ceiling(resistance, cfg.strictness))
    session_ms = map_session_length(profile.focus_capability, cfg.baseline)

    trackers = {
        kind: _seed_tracker(profile.response_prediction.for_type(kind), now)
        for kind in InterventionType
    }

    tones = {tone: 0.5 for tone in NudgeTone}
    tones[profile.preferred_tone] = cfg.baseline.preferred_tone_effectiveness

    state = PersonalizationState(
        impulsivity_index=profile.impulsivity_index,
        goal_drive=goal_drive,
        authority_resistance=resistance,
        emotional_sensitivity=sensitivity,
        intervention_tolerance=compute_intervention_tolerance(
            resistance, profile.strictness_compatibility, sensitivity
        ),
        baseline_uninstall_risk=clamp(profile.uninstall_risk),
        primary_distraction=profile.primary_distraction,
        baseline_tone=profile.preferred_tone,
        baseline_session_ms=session_ms,
        trackers=trackers,
        strictness=StrictnessState(
            level=baseline_level,
            baseline_level=baseline_level,
            last_change_at=now,
        ),
        fatigue=FatigueState(),
        tone_effectiveness=tones,
        attention=AttentionState(expected_focus_ms=session_ms, recommended_ms=session_ms),
        habits=HabitState(),
        created_at=now,
        updated_at=now,
        window_started_at=now,
    )

    if baseline_level < mapped_level:
        logger.info(
            "baseline_strictness_capped",
            mapped_level=mapped_level,
            capped_level=baseline_level,
            authority_resistance=round(resistance, 3),
        )

    logger.debug(
        "baseline_initialized",
        strictness=baseline_level,
        session_ms=session_ms,
        goal_drive=round(goal_drive, 3),
    )
    return state


def reseed_from_profile(
    state: PersonalizationState,
    profile: StaticProfile,
    config: PersonalizationConfig | None = None,
) -> PersonalizationState:
    """
    Refresh the cached profile indices after onboarding answers are edited.

    Learned evidence (trackers, strictness, fatigue, attention, habits) is
    kept; only the values derived from the profile are recomputed.
    """
    fresh = initialize_baseline(profile, now=state.updated_at, config=config)
    return replace(
        state,
        impulsivity_index=fresh.impulsivity_index,
        goal_drive=fresh.goal_drive,
        authority_resistance=fresh.authority_resistance,
        emotional_sensitivity=fresh.emotional_sensitivity,
        intervention_tolerance=fresh.intervention_tolerance,
        baseline_uninstall_risk=fresh.baseline_uninstall_risk,
        primary_distraction=fresh.primary_distraction,
        baseline_tone=fresh.baseline_tone,
        baseline_session_ms=fresh.baseline_session_ms,
    )
