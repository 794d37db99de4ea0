"""
Tool: Habit Engine
Purpose: Focus streaks, weekly minutes, habit suggestions and recovery protocols

Streak rules:
- A qualifying focus day exactly one day after the last one extends the
  streak; any other new day restarts it at 1
- The daily break check zeroes the streak once a full day was missed
- The longest streak is a running maximum and never drops

Weekly minutes live in a 7-slot buffer indexed by weekday (Monday = 0).
Slots for days that passed without focus are cleared, so every slot
holds at most the last 7 days.

Language rule: suggestions and streak messages look forward. A broken
streak is a fresh start, not a failure.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta

from tools.logging_config import get_logger
from tools.personalization.config import HabitConfig, get_config
from tools.personalization.invariants import clamp
from tools.personalization.models import (
    DistractionCategory,
    HabitState,
    HabitSuggestion,
    RecoveryRecommendation,
    RecoveryStyle,
    RecoveryTrigger,
    SuggestionPhase,
)


logger = get_logger(__name__)


RECOVERY_PROTOCOLS = {
    RecoveryStyle.BREATHING: RecoveryRecommendation(
        style=RecoveryStyle.BREATHING,
        message="Slow down for a moment: breathe in for 4, hold for 4, out for 4.",
        duration_minutes=2,
        priority=0.9,
    ),
    RecoveryStyle.REFLECTION: RecoveryRecommendation(
        style=RecoveryStyle.REFLECTION,
        message="What pulled you here? What would you rather be doing an hour from now?",
        duration_minutes=1,
        priority=0.7,
    ),
    RecoveryStyle.WALK: RecoveryRecommendation(
        style=RecoveryStyle.WALK,
        message="Stand up and take a short walk. Movement resets attention fast.",
        duration_minutes=5,
        priority=0.6,
    ),
    RecoveryStyle.MEDITATION: RecoveryRecommendation(
        style=RecoveryStyle.MEDITATION,
        message="Close your eyes and follow your breath for a minute or two.",
        duration_minutes=3,
        priority=0.8,
    ),
    RecoveryStyle.COLD_EXPOSURE: RecoveryRecommendation(
        style=RecoveryStyle.COLD_EXPOSURE,
        message="Splash some cold water on your face for a quick reset.",
        duration_minutes=1,
        priority=0.5,
    ),
}


def _suggestion(id, title, description, phase, priority):
    return HabitSuggestion(id=id, title=title, description=description, phase=phase, priority=priority)


# General suggestions per phase of a focus block
PHASE_SUGGESTIONS = {
    SuggestionPhase.PRE_FOCUS: [
        _suggestion("hb_intent", "One Thing First", "Write down the single task this session is for", SuggestionPhase.PRE_FOCUS, 0.8),
        _suggestion("hb_water", "Water Within Reach", "Fill a glass before you start so you don't get up", SuggestionPhase.PRE_FOCUS, 0.6),
        _suggestion("hb_desk", "Clear the Desk", "Move everything unrelated out of sight", SuggestionPhase.PRE_FOCUS, 0.55),
    ],
    SuggestionPhase.DURING_FOCUS: [
        _suggestion("hb_notepad", "Parking Lot", "Jot urges on paper instead of acting on them", SuggestionPhase.DURING_FOCUS, 0.7),
        _suggestion("hb_box_breath", "Box Breathing", "Four slow box breaths when the urge to switch shows up", SuggestionPhase.DURING_FOCUS, 0.6),
    ],
    SuggestionPhase.POST_FOCUS: [
        _suggestion("hb_review", "Two-Line Review", "Note what went well and what pulled at you", SuggestionPhase.POST_FOCUS, 0.7),
        _suggestion("hb_break", "Real Break", "Step away from screens for the break you earned", SuggestionPhase.POST_FOCUS, 0.6),
    ],
    SuggestionPhase.RECOVERY: [
        _suggestion("hb_walk", "Short Walk", "Five minutes of movement before trying again", SuggestionPhase.RECOVERY, 0.8),
        _suggestion("hb_guided", "Guided Breathing", "Two minutes of guided breathing to recenter", SuggestionPhase.RECOVERY, 0.7),
        _suggestion("hb_stretch", "Desk Stretch", "Loosen shoulders and neck", SuggestionPhase.RECOVERY, 0.5),
    ],
}

# Targeted suggestions for the user's dominant distraction
DISTRACTION_SUGGESTIONS = {
    DistractionCategory.SOCIAL_MEDIA: [
        _suggestion("hb_phone", "Phone in Another Room", "Out of reach beats willpower", SuggestionPhase.PRE_FOCUS, 0.9),
        _suggestion("hb_logout", "Log Out After Use", "An extra login step breaks the reflex", SuggestionPhase.POST_FOCUS, 0.65),
    ],
    DistractionCategory.GAMING: [
        _suggestion("hb_game_after", "Play After, Not During", "Schedule a game as the reward for a finished block", SuggestionPhase.POST_FOCUS, 0.85),
        _suggestion("hb_console_off", "Power Down Fully", "Shut the console or launcher, don't just minimize it", SuggestionPhase.PRE_FOCUS, 0.75),
    ],
    DistractionCategory.MENTAL_RUMINATION: [
        _suggestion("hb_brain_dump", "Brain Dump", "Two minutes writing out whatever is looping", SuggestionPhase.PRE_FOCUS, 0.85),
        _suggestion("hb_box_breath", "Box Breathing", "Four slow box breaths when the urge to switch shows up", SuggestionPhase.DURING_FOCUS, 0.75),
    ],
    DistractionCategory.SOCIAL_INTERACTION: [
        _suggestion("hb_status", "Set a Busy Status", "Let people know when you'll be free again", SuggestionPhase.PRE_FOCUS, 0.85),
        _suggestion("hb_headphones", "Headphones On", "A visible do-not-disturb signal", SuggestionPhase.DURING_FOCUS, 0.7),
    ],
    DistractionCategory.FATIGUE: [
        _suggestion("hb_short_block", "Shorter Blocks", "Try a shorter session when energy is low", SuggestionPhase.PRE_FOCUS, 0.85),
        _suggestion("hb_light", "Daylight Break", "A few minutes of daylight between blocks", SuggestionPhase.RECOVERY, 0.75),
    ],
    DistractionCategory.OTHER: [
        _suggestion("hb_trigger_log", "Notice the Trigger", "Note what happened just before you drifted", SuggestionPhase.POST_FOCUS, 0.7),
    ],
}


# ═══════════════════════════════════════════════════════════════════════════════
# Streaks and weekly minutes
# ═══════════════════════════════════════════════════════════════════════════════


def _clear_stale_slots(
    minutes: tuple[float, ...], last_day: date | None, today: date
) -> tuple[float, ...]:
    """Zero every weekday slot between the last focus day (exclusive) and today (inclusive)."""
    slots = list(minutes) if len(minutes) == 7 else [0.0] * 7
    if last_day is None:
        return tuple(slots)

    gap = (today - last_day).days
    if gap <= 0:
        return tuple(slots)
    if gap >= 7:
        return (0.0,) * 7

    for offset in range(1, gap + 1):
        slots[(last_day + timedelta(days=offset)).weekday()] = 0.0
    return tuple(slots)


def record_focus_day(habits: HabitState, day: date, focus_minutes: float) -> HabitState:
    """
    Record focus minutes for a day and update the streak.

    Args:
        habits: Current habit state
        day: Calendar day the focus happened on
        focus_minutes: Minutes focused (negative values count as 0)

    Returns:
        New HabitState
    """
    focus_minutes = max(0.0, float(focus_minutes))
    last = habits.last_focus_date

    if last is not None and day <= last:
        # Same day, or a late event for an already-counted day. Minutes
        # still land in the weekly slots while the day is inside them.
        if (last - day).days >= 7:
            return habits
        slots = list(habits.weekly_minutes)
        slots[day.weekday()] += focus_minutes
        return replace(habits, weekly_minutes=tuple(slots))

    consecutive = last is not None and (day - last).days == 1
    streak = habits.current_streak + 1 if consecutive else 1

    slots = list(_clear_stale_slots(habits.weekly_minutes, last, day))
    slots[day.weekday()] = focus_minutes

    if streak > 1:
        logger.debug("streak_extended", streak=streak)

    return HabitState(
        current_streak=streak,
        longest_streak=max(habits.longest_streak, streak),
        last_focus_date=day,
        total_focus_days=habits.total_focus_days + 1,
        weekly_minutes=tuple(slots),
    )


def check_streak_broken(habits: HabitState, today: date) -> HabitState:
    """
    Daily break check.

    Focus today or yesterday keeps the streak alive (today may still
    come). Anything older means a whole day was missed.
    """
    last = habits.last_focus_date
    if last is None:
        return habits

    gap = (today - last).days
    if gap <= 1:
        return habits

    if habits.current_streak > 0:
        logger.info("streak_broken", streak=habits.current_streak, days_missed=gap - 1)

    return replace(
        habits,
        current_streak=0,
        weekly_minutes=_clear_stale_slots(habits.weekly_minutes, last, today),
    )


def weekly_focus_minutes(habits: HabitState) -> float:
    return sum(habits.weekly_minutes)


# ═══════════════════════════════════════════════════════════════════════════════
# Suggestions
# ═══════════════════════════════════════════════════════════════════════════════


def current_phase(
    cognitive_readiness: float, current_streak: int, config: HabitConfig | None = None
) -> SuggestionPhase:
    cfg = config or get_config().habits
    if clamp(cognitive_readiness) < cfg.recovery_readiness:
        return SuggestionPhase.RECOVERY
    if current_streak == 0:
        return SuggestionPhase.PRE_FOCUS
    return SuggestionPhase.DURING_FOCUS


def get_habit_suggestions(
    distraction: DistractionCategory,
    cognitive_readiness: float,
    current_streak: int,
    limit: int = 3,
    config: HabitConfig | None = None,
) -> list[HabitSuggestion]:
    """
    Ranked habit suggestions, never more than `limit`.

    Distraction-specific suggestions are always candidates; general
    suggestions for the current phase fill in. Suggestions that match
    the current phase get a small boost. Duplicate ids keep the
    higher-priority entry.
    """
    phase = current_phase(cognitive_readiness, current_streak, config)

    candidates: dict[str, HabitSuggestion] = {}
    pool = DISTRACTION_SUGGESTIONS.get(distraction, []) + PHASE_SUGGESTIONS[phase]
    for suggestion in pool:
        if suggestion.phase == phase:
            suggestion = replace(suggestion, priority=round(clamp(suggestion.priority + 0.1), 3))
        existing = candidates.get(suggestion.id)
        if existing is None or suggestion.priority > existing.priority:
            candidates[suggestion.id] = suggestion

    # Stable order: priority desc, then id
    ranked = sorted(candidates.values(), key=lambda s: (-s.priority, s.id))
    return ranked[: max(0, limit)]


# ═══════════════════════════════════════════════════════════════════════════════
# Recovery protocols
# ═══════════════════════════════════════════════════════════════════════════════


def select_recovery_protocol(
    trigger: RecoveryTrigger,
    emotional_sensitivity: float,
    stress: float,
    cognitive_readiness: float = 0.5,
) -> RecoveryRecommendation:
    """
    Pick a recovery protocol after a distraction binge.

    Args:
        trigger: What preceded it (long session, rapid app switching, none)
        emotional_sensitivity: Cached ESS (0-1)
        stress: Stress proxy (0-1)
        cognitive_readiness: Current readiness (0-1)

    Returns:
        RecoveryRecommendation
    """
    ess = clamp(emotional_sensitivity)
    stress = clamp(stress)
    readiness = clamp(cognitive_readiness)

    if trigger == RecoveryTrigger.NONE:
        if readiness < 0.3:
            return RECOVERY_PROTOCOLS[RecoveryStyle.MEDITATION]
        if stress > 0.6:
            return RECOVERY_PROTOCOLS[RecoveryStyle.BREATHING]
        return RECOVERY_PROTOCOLS[RecoveryStyle.REFLECTION]

    if trigger == RecoveryTrigger.LONG_SESSION:
        if ess > 0.6 or (ess > 0.4 and stress > 0.7):
            return RECOVERY_PROTOCOLS[RecoveryStyle.BREATHING]
        return RECOVERY_PROTOCOLS[RecoveryStyle.WALK]

    # Switch burst: gentle for sensitive users, a jolt for everyone else
    if ess > 0.5:
        return RECOVERY_PROTOCOLS[RecoveryStyle.BREATHING]
    if stress > 0.7:
        return RECOVERY_PROTOCOLS[RecoveryStyle.WALK]
    return RECOVERY_PROTOCOLS[RecoveryStyle.COLD_EXPOSURE]


def streak_message(streak: int) -> str:
    if streak <= 0:
        return "Today is a good day to start a focus streak."
    if streak == 1:
        return "Day one is in the books. Let's see day two."
    if streak < 3:
        return f"{streak}-day streak. Momentum is building."
    if streak < 7:
        return f"{streak} days in a row. This is turning into a habit."
    if streak < 14:
        return f"{streak}-day streak. Focus is getting easier to reach."
    if streak < 30:
        return f"{streak} days of focus. It's becoming second nature."
    return f"{streak}-day streak. Remarkable consistency."
