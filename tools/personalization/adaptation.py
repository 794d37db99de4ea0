"""
Tool: Behavioral Adaptation
Purpose: Learn from how the user actually responds to interventions

Every compliance event feeds four learners:

1. Compliance probability per intervention type
   P = (successes + 2 * prior) / (attempts + 2)
   With a neutral prior (0.5) this is plain Laplace smoothing. The
   lifetime estimate is blended with the same estimate over a short
   rolling window so recent behavior moves it faster.

2. Strictness level (1-5)
   - Escalate one step on sustained compliance, but only after a cooldown
   - De-escalate one step on low compliance or frequent overrides, no
     cooldown (protecting the user beats avoiding oscillation)
   - Authority resistance puts a hard ceiling on the level

3. Nudge fatigue
   Each nudge adds a little, each dismissal a lot more, compounding over
   consecutive dismissals. Decays once a day.

4. Tone effectiveness
   Exponential moving average per tone toward 1 on success, 0 on failure.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

from tools.logging_config import get_logger
from tools.personalization.config import (
    ComplianceConfig,
    FatigueConfig,
    PersonalizationConfig,
    StrictnessConfig,
    ToneConfig,
    get_config,
)
from tools.personalization.invariants import (
    MAX_LEVEL,
    MIN_LEVEL,
    check_level,
    check_probability,
    clamp,
)
from tools.personalization.models import (
    INTERVENTION_ORDER,
    AdjustmentDirection,
    ComplianceEvent,
    ComplianceTracker,
    FatigueState,
    InterventionType,
    NudgeTone,
    PersonalizationState,
    StrictnessState,
    ThrottleDecision,
    ThrottleSeverity,
    Trend,
    local_naive,
)


logger = get_logger(__name__)

# Compounding beyond this many consecutive dismissals already saturates the score
MAX_COMPOUND_EXPONENT = 20


# ═══════════════════════════════════════════════════════════════════════════════
# Compliance probability
# ═══════════════════════════════════════════════════════════════════════════════


def _smoothed(successes: int, attempts: int, prior: float) -> float:
    """
    Beta-smoothed success rate with the onboarding prediction as the prior.

    Two pseudo-attempts weighted by the prior. This is plain Laplace
    (s+1)/(a+2) only when the prior is 0.5; any other prior keeps the
    onboarding seed as the zero-attempt value.
    """
    return (successes + 2.0 * prior) / (attempts + 2.0)


def update_compliance(
    tracker: ComplianceTracker,
    successful: bool,
    now: datetime | None = None,
    config: PersonalizationConfig | None = None,
) -> ComplianceTracker:
    """
    Record one outcome for an intervention type.

    Args:
        tracker: Current tracker
        successful: Whether the user complied
        now: Event time (defaults to now)
        config: Engine config

    Returns:
        New tracker. A success never lowers the probability, a failure
        never raises it.
    """
    cfg = config or get_config()
    ccfg = cfg.compliance
    strict = cfg.engine.strict_invariants

    previous = check_probability(tracker.probability, strict)
    prior = clamp(tracker.prior)
    hit = 1 if successful else 0

    successes = max(0, tracker.successes) + hit
    attempts = max(tracker.attempts, tracker.successes, 0) + 1
    recent_successes = max(0, tracker.recent_successes) + hit
    recent_attempts = max(tracker.recent_attempts, tracker.recent_successes, 0) + 1

    estimate = _smoothed(successes, attempts, prior)
    if recent_attempts >= ccfg.min_recent_attempts and ccfg.recency_weight > 0:
        recent = _smoothed(recent_successes, recent_attempts, prior)
        estimate = (1.0 - ccfg.recency_weight) * estimate + ccfg.recency_weight * recent

    # An outcome never moves the estimate against itself
    probability = max(previous, estimate) if successful else min(previous, estimate)

    return ComplianceTracker(
        successes=successes,
        attempts=attempts,
        probability=clamp(probability),
        prior=prior,
        last_updated=now or datetime.now(),
        recent_successes=recent_successes,
        recent_attempts=recent_attempts,
    )


def update_trackers(
    trackers: dict[InterventionType, ComplianceTracker],
    event: ComplianceEvent,
    now: datetime | None = None,
    config: PersonalizationConfig | None = None,
) -> dict[InterventionType, ComplianceTracker]:
    """Apply an event to the tracker for its intervention type."""
    current = trackers.get(event.intervention_type, ComplianceTracker())
    if now is None and event.timestamp is not None:
        now = local_naive(event.timestamp)
    updated = dict(trackers)
    updated[event.intervention_type] = update_compliance(
        current, event.successful, now=now, config=config
    )
    return updated


def reset_recent_window(tracker: ComplianceTracker) -> ComplianceTracker:
    return replace(tracker, recent_successes=0, recent_attempts=0)


def compliance_trend(tracker: ComplianceTracker, config: ComplianceConfig | None = None) -> Trend:
    """Compare the rolling window against the lifetime rate."""
    cfg = config or get_config().compliance

    if (
        tracker.attempts < cfg.min_attempts_for_trend
        or tracker.recent_attempts < cfg.min_recent_attempts
    ):
        return Trend.STABLE

    overall = _smoothed(tracker.successes, tracker.attempts, tracker.prior)
    recent = _smoothed(tracker.recent_successes, tracker.recent_attempts, tracker.prior)
    delta = recent - overall

    if delta > cfg.trend_delta:
        return Trend.IMPROVING
    if delta < -cfg.trend_delta:
        return Trend.DECLINING
    return Trend.STABLE


def most_effective_intervention(
    trackers: dict[InterventionType, ComplianceTracker],
) -> InterventionType:
    """Intervention type with the highest compliance probability (mildest wins ties)."""
    best = InterventionType.REFLECTIVE
    best_p = -1.0
    for kind in INTERVENTION_ORDER:
        tracker = trackers.get(kind)
        if tracker is not None and tracker.probability > best_p:
            best, best_p = kind, tracker.probability
    return best


def aggregate_compliance(trackers: dict[InterventionType, ComplianceTracker]) -> float:
    """
    Overall compliance rate across intervention types.

    Attempt-weighted mean of the smoothed probabilities, so one early
    dismissal does not read as 0 % compliance.
    """
    if not trackers:
        return 0.5

    total_attempts = sum(t.attempts for t in trackers.values())
    if total_attempts == 0:
        return sum(t.probability for t in trackers.values()) / len(trackers)

    weighted = sum(t.probability * t.attempts for t in trackers.values())
    return clamp(weighted / total_attempts)


def update_override_frequency(
    previous: float, was_override: bool, config: ComplianceConfig | None = None
) -> float:
    cfg = config or get_config().compliance
    previous = clamp(previous)
    if was_override:
        return clamp(previous * (1.0 - cfg.override_blend) + cfg.override_blend)
    return clamp(previous * cfg.override_decay)


# ═══════════════════════════════════════════════════════════════════════════════
# Strictness evolution
# ═══════════════════════════════════════════════════════════════════════════════


def authority_ceiling(authority_resistance: float, config: StrictnessConfig | None = None) -> int:
    """Highest strictness level a user with this resistance may reach."""
    cfg = config or get_config().strictness
    resistance = clamp(authority_resistance)

    ceiling = MAX_LEVEL
    for band in cfg.authority_ceilings:
        if resistance >= band.min_resistance:
            ceiling = min(ceiling, band.max_level)
    return ceiling


def _cooled_down(last_change_at: datetime | None, now: datetime, cooldown_days: float) -> bool:
    if last_change_at is None:
        return True
    return now - last_change_at >= timedelta(days=cooldown_days)


def evolve_strictness(
    state: StrictnessState,
    compliance_rate: float,
    override_frequency: float,
    session_success_rate: float,
    authority_resistance: float,
    now: datetime | None = None,
    config: PersonalizationConfig | None = None,
) -> StrictnessState:
    """
    Decide escalate / hold / de-escalate, by at most one level.

    Args:
        state: Current strictness state
        compliance_rate: Fresh overall compliance (0-1)
        override_frequency: Fresh override frequency (0-1)
        session_success_rate: Rolling focus-session success (0-1)
        authority_resistance: Cached authority resistance (0-1)
        now: Decision time (defaults to now)
        config: Engine config

    Returns:
        New StrictnessState with the fresh rates recorded
    """
    cfg = config or get_config()
    scfg = cfg.strictness
    now = now or datetime.now()

    level = check_level(state.level, cfg.engine.strict_invariants)
    compliance_rate = clamp(compliance_rate)
    override_frequency = clamp(override_frequency)
    session_success_rate = clamp(session_success_rate)
    ceiling = authority_ceiling(authority_resistance, scfg)

    new_level = level
    direction = AdjustmentDirection.HOLD

    if (
        compliance_rate < scfg.deescalate_compliance
        or override_frequency >= scfg.deescalate_override
    ):
        if level > MIN_LEVEL:
            new_level = level - 1
            direction = AdjustmentDirection.DE_ESCALATE
    elif (
        compliance_rate >= scfg.escalate_compliance
        and override_frequency < scfg.escalate_override_max
        and session_success_rate >= scfg.escalate_session_success
        and _cooled_down(state.last_change_at, now, scfg.cooldown_days)
    ):
        if level < ceiling:
            new_level = level + 1
            direction = AdjustmentDirection.ESCALATE

    # Ceiling is absolute, even for a state that arrived above it
    if new_level > ceiling:
        new_level = ceiling
        direction = AdjustmentDirection.DE_ESCALATE

    if new_level != level:
        logger.info(
            "strictness_changed",
            old_level=level,
            new_level=new_level,
            direction=direction.value,
            compliance_rate=round(compliance_rate, 3),
            override_frequency=round(override_frequency, 3),
        )

    return StrictnessState(
        level=new_level,
        baseline_level=state.baseline_level,
        compliance_rate=compliance_rate,
        override_frequency=override_frequency,
        session_success_rate=session_success_rate,
        last_change_at=now if new_level != level else state.last_change_at,
        direction=direction,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Nudge fatigue
# ═══════════════════════════════════════════════════════════════════════════════


def record_nudge(
    fatigue: FatigueState,
    dismissed: bool,
    now: datetime | None = None,
    config: FatigueConfig | None = None,
) -> FatigueState:
    """Update fatigue after one nudge was delivered (and maybe dismissed)."""
    cfg = config or get_config().fatigue

    consecutive = fatigue.consecutive_dismissals + 1 if dismissed else 0
    delta = cfg.per_nudge

    if dismissed:
        delta += cfg.per_dismissal
        exponent = min(consecutive - 1, MAX_COMPOUND_EXPONENT)
        delta *= cfg.consecutive_multiplier**exponent

    if fatigue.nudges_today >= cfg.max_daily_nudges:
        delta *= cfg.over_limit_multiplier

    return FatigueState(
        score=clamp(clamp(fatigue.score) + delta),
        nudges_today=fatigue.nudges_today + 1,
        dismissals_today=fatigue.dismissals_today + (1 if dismissed else 0),
        last_nudge_at=now or datetime.now(),
        consecutive_dismissals=consecutive,
    )


def should_throttle(fatigue: FatigueState, config: FatigueConfig | None = None) -> ThrottleDecision:
    """
    Map fatigue onto a throttle severity.

    severe -> suppress the next intervention
    moderate / mild -> delay it
    """
    cfg = config or get_config().fatigue
    score = fatigue.score
    streak = fatigue.consecutive_dismissals

    if score >= cfg.severe_score or streak >= cfg.severe_consecutive:
        return ThrottleDecision(ThrottleSeverity.SEVERE, delay_minutes=None)
    if score >= cfg.moderate_score or streak >= cfg.moderate_consecutive:
        return ThrottleDecision(ThrottleSeverity.MODERATE, delay_minutes=cfg.moderate_delay_minutes)
    if score >= cfg.mild_score or streak >= cfg.mild_consecutive:
        return ThrottleDecision(ThrottleSeverity.MILD, delay_minutes=cfg.mild_delay_minutes)
    return ThrottleDecision(ThrottleSeverity.NONE, delay_minutes=0)


def decay_fatigue(fatigue: FatigueState, config: FatigueConfig | None = None) -> FatigueState:
    """Daily rollover: reset the day's counters and decay the score."""
    cfg = config or get_config().fatigue
    return replace(
        fatigue,
        score=clamp(clamp(fatigue.score) * cfg.decay_factor),
        nudges_today=0,
        dismissals_today=0,
        consecutive_dismissals=0,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Tone effectiveness
# ═══════════════════════════════════════════════════════════════════════════════


def update_tone_effectiveness(
    effectiveness: dict[NudgeTone, float],
    tone: NudgeTone,
    successful: bool,
    config: ToneConfig | None = None,
) -> dict[NudgeTone, float]:
    cfg = config or get_config().tone
    current = clamp(effectiveness.get(tone, 0.5))
    target = 1.0 if successful else 0.0

    updated = dict(effectiveness)
    updated[tone] = clamp(current + cfg.learning_rate * (target - current))
    return updated


def select_best_tone(effectiveness: dict[NudgeTone, float], incumbent: NudgeTone) -> NudgeTone:
    """Arg-max tone; the incumbent keeps its place on ties."""
    best = incumbent
    best_score = effectiveness.get(incumbent, -1.0)
    for tone in NudgeTone:
        score = effectiveness.get(tone, -1.0)
        if score > best_score:
            best, best_score = tone, score
    return best


# ═══════════════════════════════════════════════════════════════════════════════
# Full event
# ═══════════════════════════════════════════════════════════════════════════════


def process_compliance_event(
    state: PersonalizationState,
    event: ComplianceEvent,
    config: PersonalizationConfig | None = None,
) -> PersonalizationState:
    """
    Route one compliance event through every adaptive learner.

    Args:
        state: Current state
        event: What the user did with the intervention
        config: Engine config

    Returns:
        New PersonalizationState
    """
    cfg = config or get_config()
    now = local_naive(event.timestamp) if event.timestamp else datetime.now()

    trackers = update_trackers(state.trackers, event, now=now, config=cfg)
    override_frequency = update_override_frequency(
        state.strictness.override_frequency, event.override, cfg.compliance
    )
    strictness = evolve_strictness(
        state.strictness,
        aggregate_compliance(trackers),
        override_frequency,
        state.attention.success_rate,
        state.authority_resistance,
        now=now,
        config=cfg,
    )

    fatigue = record_nudge(state.fatigue, dismissed=not event.successful, now=now, config=cfg.fatigue)
    was_throttled = should_throttle(state.fatigue, cfg.fatigue).throttle
    if should_throttle(fatigue, cfg.fatigue).throttle and not was_throttled:
        logger.info(
            "fatigue_throttled",
            score=round(fatigue.score, 3),
            consecutive_dismissals=fatigue.consecutive_dismissals,
        )

    tone = event.tone or select_best_tone(state.tone_effectiveness, state.baseline_tone)
    tones = update_tone_effectiveness(state.tone_effectiveness, tone, event.successful, cfg.tone)

    return replace(
        state,
        trackers=trackers,
        strictness=strictness,
        fatigue=fatigue,
        tone_effectiveness=tones,
        interaction_count=state.interaction_count + 1,
        updated_at=now,
    )
