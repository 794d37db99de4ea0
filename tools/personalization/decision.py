"""
Tool: Contextual Decision Engine
Purpose: Decide what kind of intervention fits this moment, and how to say it

Intervention Suitability Score (ISS):
    raw = 0.40 * goal_conflict + 0.35 * distraction_severity
          + 0.25 * cognitive_readiness
    ISS = clamp(raw * time_modifier) (+ 0.15 inside a focus session)

Bands:
    ISS < 0.35  -> reflective
    ISS < 0.65  -> soft_delay
    otherwise   -> hard_block

Safety caps are applied after banding and only ever lower the type:
- Authority-resistant users (AR > 0.65) never get a hard block
- Fatigue >= 0.70 turns a hard block into a soft delay
- Fatigue >= 0.90 drops everything to reflective
- Strictness level 1 allows only reflective, level 2 at most soft_delay

Readiness below 0.25 always sets should_delay, whatever the score says.
"""

from __future__ import annotations

from tools.logging_config import get_logger
from tools.personalization.adaptation import select_best_tone
from tools.personalization.config import (
    FatigueConfig,
    PersonalizationConfig,
    SuitabilityConfig,
    get_config,
)
from tools.personalization.habits import RECOVERY_PROTOCOLS
from tools.personalization.invariants import check_level, clamp
from tools.personalization.models import (
    INTERVENTION_ORDER,
    Context,
    InterventionPolicy,
    InterventionSuitability,
    InterventionType,
    NudgeTone,
    PersonalizationState,
    RecoveryRecommendation,
    RecoveryStyle,
    TimeOfDay,
)


logger = get_logger(__name__)

# Highest intervention each strictness level may deliver
LEVEL_CEILINGS = {
    1: InterventionType.REFLECTIVE,
    2: InterventionType.SOFT_DELAY,
}

MESSAGE_TEMPLATES = {
    (InterventionType.REFLECTIVE, NudgeTone.SUPPORTIVE): "Hey, just checking in. Is this what you want to be doing right now?",
    (InterventionType.REFLECTIVE, NudgeTone.SHARP): "Quick check: is this helping your goal?",
    (InterventionType.REFLECTIVE, NudgeTone.CHALLENGE): "Future you is watching. Is this the move?",
    (InterventionType.REFLECTIVE, NudgeTone.CONFIDENCE_BUILDING): "You noticed the drift, and that counts. Want to steer back?",
    (InterventionType.SOFT_DELAY, NudgeTone.SUPPORTIVE): "Let's pause for a few seconds before opening this. Take a breath.",
    (InterventionType.SOFT_DELAY, NudgeTone.SHARP): "Hold on. Wait a moment and decide on purpose.",
    (InterventionType.SOFT_DELAY, NudgeTone.CHALLENGE): "Can you hold out for the countdown? Most people can't. Prove them wrong.",
    (InterventionType.SOFT_DELAY, NudgeTone.CONFIDENCE_BUILDING): "You've waited out urges before. This pause is yours to win.",
    (InterventionType.HARD_BLOCK, NudgeTone.SUPPORTIVE): "This app is paused for now so you can protect your focus time.",
    (InterventionType.HARD_BLOCK, NudgeTone.SHARP): "Blocked. Back to work.",
    (InterventionType.HARD_BLOCK, NudgeTone.CHALLENGE): "Blocked until the session ends. Finish strong.",
    (InterventionType.HARD_BLOCK, NudgeTone.CONFIDENCE_BUILDING): "This one is off-limits for now. You're doing better than you think.",
}


def _rank(intervention: InterventionType) -> int:
    return INTERVENTION_ORDER.index(intervention)


def _lower(current: InterventionType, ceiling: InterventionType) -> InterventionType:
    return current if _rank(current) <= _rank(ceiling) else ceiling


# ═══════════════════════════════════════════════════════════════════════════════
# Context construction
# ═══════════════════════════════════════════════════════════════════════════════


def time_of_day_for_hour(hour: int) -> TimeOfDay:
    hour = int(hour) % 24
    if 5 <= hour < 12:
        return TimeOfDay.MORNING
    if 12 <= hour < 17:
        return TimeOfDay.AFTERNOON
    if 17 <= hour < 22:
        return TimeOfDay.EVENING
    return TimeOfDay.NIGHT


def compute_stress_proxy(hrv_normalized: float | None, fragmentation: float) -> float:
    """
    Cheap stress estimate from wearable HRV and app-switch fragmentation.

    Low HRV reads as stressed. Without a wearable the HRV term is neutral.
    """
    hrv = 0.5 if hrv_normalized is None else clamp(hrv_normalized)
    return clamp(0.6 * (1.0 - hrv) + 0.4 * clamp(fragmentation))


def build_context(
    hour: int,
    cognitive_readiness: float,
    fragmentation: float = 0.0,
    goal_conflict: float = 0.0,
    distraction_severity: float = 0.0,
    in_focus_session: bool = False,
    hrv_normalized: float | None = None,
    goal_urgency: float = 0.5,
) -> Context:
    """
    Assemble a Context from raw signals.

    Every score is clamped into 0-1; the time bucket comes from the hour
    and stress from compute_stress_proxy().
    """
    return Context(
        time_of_day=time_of_day_for_hour(hour),
        hour=int(hour) % 24,
        cognitive_readiness=clamp(cognitive_readiness),
        fragmentation=clamp(fragmentation),
        goal_conflict=clamp(goal_conflict),
        distraction_severity=clamp(distraction_severity),
        in_focus_session=in_focus_session,
        stress=compute_stress_proxy(hrv_normalized, fragmentation),
        goal_urgency=clamp(goal_urgency),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Suitability
# ═══════════════════════════════════════════════════════════════════════════════


def band_for_score(score: float, config: SuitabilityConfig | None = None) -> InterventionType:
    cfg = config or get_config().suitability
    if score < cfg.reflective_max:
        return InterventionType.REFLECTIVE
    if score < cfg.soft_delay_max:
        return InterventionType.SOFT_DELAY
    return InterventionType.HARD_BLOCK


def _apply_safety_caps(
    intervention: InterventionType,
    authority_resistance: float,
    fatigue_score: float,
    suitability: SuitabilityConfig,
    fatigue: FatigueConfig,
) -> tuple[InterventionType, list[str]]:
    caps = []

    resistant = authority_resistance > suitability.hard_block_resistance
    if intervention == InterventionType.HARD_BLOCK and resistant:
        intervention = InterventionType.SOFT_DELAY
        caps.append("authority_resistance")

    if fatigue_score >= fatigue.severe_score:
        if intervention != InterventionType.REFLECTIVE:
            intervention = InterventionType.REFLECTIVE
            caps.append("fatigue")
    elif fatigue_score >= fatigue.moderate_score and intervention == InterventionType.HARD_BLOCK:
        intervention = InterventionType.SOFT_DELAY
        caps.append("fatigue")

    return intervention, caps


def compute_intervention_suitability(
    context: Context,
    state: PersonalizationState,
    config: PersonalizationConfig | None = None,
) -> InterventionSuitability:
    """
    Score how strong an intervention this moment can take.

    Args:
        context: Live signals (never cached)
        state: Current personalization state
        config: Engine config

    Returns:
        InterventionSuitability with the capped recommendation
    """
    cfg = config or get_config()
    scfg = cfg.suitability

    components = {
        "goal_conflict": clamp(context.goal_conflict),
        "distraction_severity": clamp(context.distraction_severity),
        "cognitive_readiness": clamp(context.cognitive_readiness),
    }
    raw = sum(scfg.weights.get(name, 0.0) * value for name, value in components.items())

    modifier = scfg.time_modifiers.get(context.time_of_day.value, 1.0)
    score = clamp(raw * modifier)
    if context.in_focus_session:
        score = clamp(score + scfg.focus_session_bonus)

    recommended, caps = _apply_safety_caps(
        band_for_score(score, scfg),
        state.authority_resistance,
        state.fatigue.score,
        scfg,
        cfg.fatigue,
    )

    level = check_level(state.strictness.level, cfg.engine.strict_invariants)
    ceiling = LEVEL_CEILINGS.get(level)
    if ceiling is not None:
        recommended = _lower(recommended, ceiling)

    should_delay = components["cognitive_readiness"] < scfg.delay_readiness

    if caps:
        logger.debug("suitability_capped", score=round(score, 3), caps=caps)

    return InterventionSuitability(
        score=score,
        recommended_type=recommended,
        should_delay=should_delay,
        time_modifier=modifier,
        components=components,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Policy
# ═══════════════════════════════════════════════════════════════════════════════


def render_message(intervention: InterventionType, tone: NudgeTone) -> str:
    return MESSAGE_TEMPLATES[(intervention, tone)]


def select_policy(
    suitability: InterventionSuitability,
    state: PersonalizationState,
    tone: NudgeTone | None = None,
    config: PersonalizationConfig | None = None,
) -> InterventionPolicy:
    """
    Turn a suitability score into the intervention actually delivered.

    The strictness level shifts the score by 0.05 per step away from the
    middle level before re-banding. Every cap then only lowers the type.

    Args:
        suitability: Output of compute_intervention_suitability()
        state: Current personalization state
        tone: Tone override (defaults to the best-performing tone)
        config: Engine config

    Returns:
        InterventionPolicy naming the caps that applied
    """
    cfg = config or get_config()
    scfg = cfg.suitability

    level = check_level(state.strictness.level, cfg.engine.strict_invariants)
    shifted = clamp(suitability.score + scfg.strictness_step * (level - 3))
    intervention = band_for_score(shifted, scfg)

    caps = []
    ceiling = LEVEL_CEILINGS.get(level)
    if ceiling is not None and _rank(intervention) > _rank(ceiling):
        intervention = ceiling
        caps.append("strictness")

    intervention, safety_caps = _apply_safety_caps(
        intervention,
        state.authority_resistance,
        state.fatigue.score,
        scfg,
        cfg.fatigue,
    )
    caps.extend(safety_caps)

    tone = tone or select_best_tone(state.tone_effectiveness, state.baseline_tone)

    return InterventionPolicy(
        intervention_type=intervention,
        tone=tone,
        message=render_message(intervention, tone),
        caps=tuple(caps),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Recovery
# ═══════════════════════════════════════════════════════════════════════════════


def select_recovery(
    emotional_sensitivity: float,
    cognitive_readiness: float,
    stress: float,
) -> RecoveryRecommendation:
    """Pick a recovery style for the current moment. First match wins."""
    ess = clamp(emotional_sensitivity)
    readiness = clamp(cognitive_readiness)
    stress = clamp(stress)

    if readiness < 0.2:
        style = RecoveryStyle.MEDITATION
    elif stress > 0.6 and ess > 0.5:
        style = RecoveryStyle.BREATHING
    elif stress > 0.5 and ess < 0.4:
        style = RecoveryStyle.WALK
    elif ess > 0.5:
        style = RecoveryStyle.REFLECTION
    else:
        style = RecoveryStyle.WALK

    return RECOVERY_PROTOCOLS[style]
