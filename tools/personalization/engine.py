"""
Tool: Personalization Engine
Purpose: Single entry point that composes every personalization component

Callers use only this module:

    state = initialize(profile)
    profile = compute_profile(state, context)        # read-only
    state = process_compliance_event(state, event)   # nudge outcome
    state = record_session(state, session)           # finished focus block
    state = perform_daily_update(state, today)       # once per day

Every transition returns a new state and takes its time from the event
or an explicit argument, so replaying an event log reproduces the same
states. transition_events() diffs two states into outbound EngineEvents
for the UI layer.

Usage:
    from tools.personalization import engine

    state = engine.initialize(static_profile)
    state = engine.process_compliance_event(state, event)
    events = engine.transition_events(before, state)
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

from tools.logging_config import get_logger
from tools.personalization import adaptation
from tools.personalization.attention import record_focus_session
from tools.personalization.baseline import initialize_baseline, reseed_from_profile
from tools.personalization.config import PersonalizationConfig, get_config
from tools.personalization.decision import (
    compute_intervention_suitability,
    select_policy,
    select_recovery,
)
from tools.personalization.habits import (
    check_streak_broken,
    get_habit_suggestions,
    record_focus_day,
    streak_message,
)
from tools.personalization.invariants import check_level, check_probability, clamp
from tools.personalization.models import (
    INTERVENTION_ORDER,
    ComplianceEvent,
    Context,
    EngineEvent,
    PersonalizationProfile,
    PersonalizationState,
    SessionRecord,
    StaticProfile,
    ThrottleSeverity,
    Trend,
    local_naive,
)


logger = get_logger(__name__)

# Event kinds returned by transition_events()
STRICTNESS_CHANGED = "strictness_changed"
STREAK_EXTENDED = "streak_extended"
STREAK_BROKEN = "streak_broken"
ATTENTION_TREND_CHANGED = "attention_trend_changed"
FATIGUE_THROTTLED = "fatigue_throttled"
SESSION_RECORDED = "session_recorded"

SEVERITY_ORDER = [
    ThrottleSeverity.NONE,
    ThrottleSeverity.MILD,
    ThrottleSeverity.MODERATE,
    ThrottleSeverity.SEVERE,
]


# ═══════════════════════════════════════════════════════════════════════════════
# Initialization
# ═══════════════════════════════════════════════════════════════════════════════


def initialize(
    profile: StaticProfile,
    now: datetime | None = None,
    config: PersonalizationConfig | None = None,
) -> PersonalizationState:
    """Seed a new user's state from their onboarding profile. Called once."""
    state = initialize_baseline(profile, now=now, config=config)
    logger.info(
        "personalization_initialized",
        strictness=state.strictness.level,
        tone=state.baseline_tone.value,
        primary_distraction=state.primary_distraction.value,
    )
    return state


def update_profile(
    state: PersonalizationState,
    profile: StaticProfile,
    config: PersonalizationConfig | None = None,
) -> PersonalizationState:
    """Apply edited onboarding answers without losing learned behavior."""
    return reseed_from_profile(state, profile, config=config)


# ═══════════════════════════════════════════════════════════════════════════════
# Read path
# ═══════════════════════════════════════════════════════════════════════════════


def compute_uninstall_risk(state: PersonalizationState) -> float:
    """
    Live uninstall risk.

    Behavioral signals (overrides, fatigue, short streak, low compliance,
    authority resistance) weigh 70%; the onboarding estimate keeps 30%.
    """
    probabilities = [t.probability for t in state.trackers.values()]
    mean_compliance = sum(probabilities) / len(probabilities) if probabilities else 0.5

    adaptive = (
        clamp(state.strictness.override_frequency) * 0.30
        + clamp(state.fatigue.score) * 0.25
        + (0.15 if state.habits.current_streak < 3 else 0.0)
        + (0.20 if mean_compliance < 0.3 else 0.0)
        + clamp(state.authority_resistance) * 0.10
    )
    return clamp(0.7 * clamp(adaptive) + 0.3 * clamp(state.baseline_uninstall_risk))


def compute_profile(
    state: PersonalizationState,
    context: Context,
    config: PersonalizationConfig | None = None,
) -> PersonalizationProfile:
    """
    Everything the UI and notification layers need for one decision.

    Does not change state.

    Args:
        state: Current personalization state
        context: Fresh live signals for this decision
        config: Engine config

    Returns:
        PersonalizationProfile
    """
    cfg = config or get_config()
    strict = cfg.engine.strict_invariants

    suitability = compute_intervention_suitability(context, state, cfg)
    tone = adaptation.select_best_tone(state.tone_effectiveness, state.baseline_tone)
    policy = select_policy(suitability, state, tone=tone, config=cfg)

    recovery = select_recovery(
        state.emotional_sensitivity,
        context.cognitive_readiness,
        context.stress,
    )
    suggestions = get_habit_suggestions(
        state.primary_distraction,
        context.cognitive_readiness,
        state.habits.current_streak,
        limit=cfg.engine.max_habit_suggestions,
        config=cfg.habits,
    )

    return PersonalizationProfile(
        strictness_level=check_level(state.strictness.level, strict),
        nudge_tone=tone,
        policy=policy,
        session_length_ms=state.attention.recommended_ms,
        recovery=recovery,
        habit_suggestions=tuple(suggestions),
        compliance_matrix={
            kind: check_probability(state.trackers[kind].probability, strict)
            for kind in INTERVENTION_ORDER
            if kind in state.trackers
        },
        uninstall_risk=compute_uninstall_risk(state),
        attention_trend=state.attention.trend,
        suitability=suitability,
        fatigue_level=state.fatigue.score,
        throttle=adaptation.should_throttle(state.fatigue, cfg.fatigue),
        cognitive_readiness=context.cognitive_readiness,
        current_streak=state.habits.current_streak,
        streak_message=streak_message(state.habits.current_streak),
    )


def personalized_greeting(state: PersonalizationState) -> str:
    """Streak line plus a word on where attention is heading."""
    trend_line = {
        Trend.IMPROVING: "Your focus is getting sharper.",
        Trend.DECLINING: "Let's get back on track today.",
        Trend.STABLE: "Steady progress. Keep going.",
    }[state.attention.trend]
    return f"{streak_message(state.habits.current_streak)} {trend_line}"


# ═══════════════════════════════════════════════════════════════════════════════
# Write path
# ═══════════════════════════════════════════════════════════════════════════════


def process_compliance_event(
    state: PersonalizationState,
    event: ComplianceEvent,
    config: PersonalizationConfig | None = None,
) -> PersonalizationState:
    """Fold one nudge outcome into compliance, strictness, fatigue and tone."""
    return adaptation.process_compliance_event(state, event, config=config)


def record_session(
    state: PersonalizationState,
    session: SessionRecord,
    config: PersonalizationConfig | None = None,
) -> PersonalizationState:
    """
    Record a finished focus session.

    Updates attention evolution and credits the session's calendar day
    (taken from the session timestamp) toward the streak.
    """
    cfg = config or get_config()
    session = replace(session, timestamp=local_naive(session.timestamp))

    attention = record_focus_session(
        state.attention, session, cfg.attention, strict=cfg.engine.strict_invariants
    )
    minutes = max(0, session.duration_ms) / 60000
    habits = record_focus_day(state.habits, session.timestamp.date(), minutes)

    return replace(
        state,
        attention=attention,
        habits=habits,
        updated_at=max(state.updated_at, session.timestamp),
    )


def needs_daily_update(state: PersonalizationState, today: date | None = None) -> bool:
    today = today or date.today()
    return state.last_daily_update is None or state.last_daily_update < today


def perform_daily_update(
    state: PersonalizationState,
    today: date | None = None,
    config: PersonalizationConfig | None = None,
) -> PersonalizationState:
    """
    Day rollover maintenance.

    - Halve fatigue and reset the daily nudge counters
    - Break the streak if a whole day passed without focus
    - Reset the rolling compliance windows once they span a week

    Args:
        state: Current state
        today: Calendar day being rolled into (defaults to today)
        config: Engine config

    Returns:
        New PersonalizationState
    """
    cfg = config or get_config()
    today = today or date.today()
    now = datetime.combine(today, datetime.min.time())

    fatigue = adaptation.decay_fatigue(state.fatigue, cfg.fatigue)
    habits = check_streak_broken(state.habits, today)

    trackers = state.trackers
    window_started_at = state.window_started_at
    if (now - state.window_started_at).days >= cfg.compliance.window_days:
        trackers = {kind: adaptation.reset_recent_window(t) for kind, t in trackers.items()}
        window_started_at = now
        logger.debug("compliance_window_reset", window_started_at=now.isoformat())

    return replace(
        state,
        fatigue=fatigue,
        habits=habits,
        trackers=trackers,
        window_started_at=window_started_at,
        last_daily_update=today,
        updated_at=max(state.updated_at, now),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Outbound events
# ═══════════════════════════════════════════════════════════════════════════════


def transition_events(
    before: PersonalizationState,
    after: PersonalizationState,
    config: PersonalizationConfig | None = None,
) -> list[EngineEvent]:
    """
    Describe what changed between two states, for the caller to forward.

    Args:
        before: State before the transition
        after: State after the transition
        config: Engine config (fatigue thresholds)

    Returns:
        EngineEvents in a fixed order (may be empty)
    """
    cfg = config or get_config()
    events = []

    if after.strictness.level != before.strictness.level:
        events.append(
            EngineEvent(
                STRICTNESS_CHANGED,
                {
                    "from": before.strictness.level,
                    "to": after.strictness.level,
                    "direction": after.strictness.direction.value,
                },
            )
        )

    if after.attention.history != before.attention.history:
        events.append(
            EngineEvent(
                SESSION_RECORDED,
                {"recommended_ms": after.attention.recommended_ms},
            )
        )

    if after.habits.current_streak > before.habits.current_streak:
        events.append(EngineEvent(STREAK_EXTENDED, {"streak": after.habits.current_streak}))
    elif after.habits.current_streak < before.habits.current_streak:
        events.append(
            EngineEvent(
                STREAK_BROKEN,
                {
                    "previous_streak": before.habits.current_streak,
                    "streak": after.habits.current_streak,
                },
            )
        )

    if after.attention.trend != before.attention.trend:
        events.append(
            EngineEvent(
                ATTENTION_TREND_CHANGED,
                {"from": before.attention.trend.value, "to": after.attention.trend.value},
            )
        )

    was = adaptation.should_throttle(before.fatigue, cfg.fatigue)
    throttle = adaptation.should_throttle(after.fatigue, cfg.fatigue)
    if SEVERITY_ORDER.index(throttle.severity) > SEVERITY_ORDER.index(was.severity):
        events.append(EngineEvent(FATIGUE_THROTTLED, throttle.to_dict()))

    return events
