"""Tests for tools/personalization/habits.py

Streaks are the app's main source of motivation, so their arithmetic has
to be exactly right:
- Consecutive days extend the streak, any gap restarts it
- The daily check breaks a streak only after a whole missed day
- The longest streak never goes down
"""

from datetime import date, timedelta

import pytest

from tools.personalization.habits import (
    RECOVERY_PROTOCOLS,
    check_streak_broken,
    current_phase,
    get_habit_suggestions,
    record_focus_day,
    select_recovery_protocol,
    streak_message,
    weekly_focus_minutes,
)
from tools.personalization.models import (
    DistractionCategory,
    HabitState,
    RecoveryStyle,
    RecoveryTrigger,
    SuggestionPhase,
)


FEB_25 = date(2026, 2, 25)
FEB_26 = date(2026, 2, 26)
FEB_27 = date(2026, 2, 27)
MAR_01 = date(2026, 3, 1)


# ─────────────────────────────────────────────────────────────────────────────
# Streak Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestRecordFocusDay:
    """Tests for crediting focus days."""

    def test_first_day_starts_streak(self):
        habits = record_focus_day(HabitState(), FEB_25, 30)

        assert habits.current_streak == 1
        assert habits.longest_streak == 1
        assert habits.last_focus_date == FEB_25
        assert habits.total_focus_days == 1

    def test_three_consecutive_days(self):
        """Should reach a streak of 3 after three consecutive days."""
        habits = HabitState()
        for day in (FEB_25, FEB_26, FEB_27):
            habits = record_focus_day(habits, day, 25)

        assert habits.current_streak == 3
        assert habits.longest_streak == 3

    def test_same_day_adds_minutes_only(self):
        habits = record_focus_day(HabitState(), FEB_25, 25)
        habits = record_focus_day(habits, FEB_25, 20)

        assert habits.current_streak == 1
        assert habits.total_focus_days == 1
        assert habits.weekly_minutes[FEB_25.weekday()] == pytest.approx(45)

    def test_gap_restarts_at_one(self):
        habits = HabitState()
        for day in (FEB_25, FEB_26):
            habits = record_focus_day(habits, day, 25)
        habits = record_focus_day(habits, MAR_01, 25)

        assert habits.current_streak == 1
        assert habits.longest_streak == 2

    def test_late_event_credits_minutes_only(self):
        """Should add a late session's minutes without touching the streak."""
        habits = record_focus_day(HabitState(), FEB_27, 25)
        late = record_focus_day(habits, FEB_25, 40)

        assert late.current_streak == 1
        assert late.total_focus_days == 1
        assert late.last_focus_date == FEB_27
        assert late.weekly_minutes[FEB_25.weekday()] == pytest.approx(40)
        assert late.weekly_minutes[FEB_27.weekday()] == pytest.approx(25)

    def test_late_event_outside_week_ignored(self):
        habits = record_focus_day(HabitState(), MAR_01, 25)
        assert record_focus_day(habits, MAR_01 - timedelta(days=7), 40) == habits

    def test_negative_minutes_count_as_zero(self):
        habits = record_focus_day(HabitState(), FEB_25, -10)
        assert habits.weekly_minutes[FEB_25.weekday()] == 0.0
        assert habits.current_streak == 1


class TestCheckStreakBroken:
    """Tests for the daily break check."""

    def test_gap_resets_streak_keeps_longest(self):
        """Should reset to 0 after a missed day while keeping the longest streak."""
        habits = HabitState()
        for day in (FEB_25, FEB_26, FEB_27):
            habits = record_focus_day(habits, day, 25)

        habits = check_streak_broken(habits, MAR_01)

        assert habits.current_streak == 0
        assert habits.longest_streak == 3

    def test_yesterday_keeps_streak(self):
        habits = record_focus_day(HabitState(), FEB_26, 25)
        assert check_streak_broken(habits, FEB_27).current_streak == 1

    def test_today_keeps_streak(self):
        habits = record_focus_day(HabitState(), FEB_27, 25)
        assert check_streak_broken(habits, FEB_27).current_streak == 1

    def test_never_focused_unchanged(self):
        assert check_streak_broken(HabitState(), MAR_01) == HabitState()


class TestWeeklyMinutes:
    """Tests for the 7-slot weekday buffer."""

    def test_indexed_by_weekday(self):
        monday = date(2026, 2, 23)
        habits = record_focus_day(HabitState(), monday, 40)
        assert habits.weekly_minutes[0] == 40

    def test_stale_slots_cleared(self):
        """Should clear weekdays that passed without focus."""
        monday = date(2026, 2, 23)
        habits = HabitState()
        for offset in range(7):
            habits = record_focus_day(habits, monday + timedelta(days=offset), 10)
        assert weekly_focus_minutes(habits) == 70

        # Skip Monday-Tuesday of the next week, focus on Wednesday
        habits = record_focus_day(habits, monday + timedelta(days=9), 30)

        assert habits.weekly_minutes[0] == 0.0
        assert habits.weekly_minutes[1] == 0.0
        assert habits.weekly_minutes[2] == 30
        assert habits.weekly_minutes[3] == 10

    def test_long_absence_clears_everything(self):
        habits = record_focus_day(HabitState(), FEB_25, 30)
        habits = check_streak_broken(habits, FEB_25 + timedelta(days=20))
        assert weekly_focus_minutes(habits) == 0.0

    def test_never_more_than_seven_days(self):
        habits = HabitState()
        start = date(2026, 1, 5)
        for offset in range(30):
            habits = record_focus_day(habits, start + timedelta(days=offset), 10)
        assert weekly_focus_minutes(habits) == 70


# ─────────────────────────────────────────────────────────────────────────────
# Suggestion Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestGetHabitSuggestions:
    """Tests for ranked habit suggestions."""

    def test_at_most_three(self):
        for distraction in DistractionCategory:
            for readiness in (0.1, 0.5, 0.9):
                for streak in (0, 4):
                    suggestions = get_habit_suggestions(distraction, readiness, streak)
                    assert len(suggestions) <= 3

    def test_unique_ids(self):
        for distraction in DistractionCategory:
            suggestions = get_habit_suggestions(distraction, 0.8, 2)
            ids = [s.id for s in suggestions]
            assert len(ids) == len(set(ids))

    def test_sorted_by_priority(self):
        suggestions = get_habit_suggestions(DistractionCategory.SOCIAL_MEDIA, 0.8, 0)
        priorities = [s.priority for s in suggestions]
        assert priorities == sorted(priorities, reverse=True)

    def test_social_media_leads_with_phone(self):
        suggestions = get_habit_suggestions(DistractionCategory.SOCIAL_MEDIA, 0.8, 0)
        assert suggestions[0].id == "hb_phone"

    def test_low_readiness_suggests_recovery(self):
        suggestions = get_habit_suggestions(DistractionCategory.OTHER, 0.2, 5)
        assert any(s.phase == SuggestionPhase.RECOVERY for s in suggestions)

    def test_limit_respected(self):
        assert get_habit_suggestions(DistractionCategory.GAMING, 0.8, 0, limit=1)[0].id
        assert get_habit_suggestions(DistractionCategory.GAMING, 0.8, 0, limit=0) == []

    def test_phase_selection(self):
        assert current_phase(0.2, 5) == SuggestionPhase.RECOVERY
        assert current_phase(0.8, 0) == SuggestionPhase.PRE_FOCUS
        assert current_phase(0.8, 3) == SuggestionPhase.DURING_FOCUS


# ─────────────────────────────────────────────────────────────────────────────
# Recovery Protocol Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestSelectRecoveryProtocol:
    """Tests for post-binge recovery protocols."""

    def test_no_trigger_low_readiness_meditation(self):
        protocol = select_recovery_protocol(RecoveryTrigger.NONE, 0.5, 0.3, cognitive_readiness=0.2)
        assert protocol.style == RecoveryStyle.MEDITATION

    def test_no_trigger_stressed_breathing(self):
        assert select_recovery_protocol(RecoveryTrigger.NONE, 0.5, 0.8).style == RecoveryStyle.BREATHING

    def test_no_trigger_default_reflection(self):
        assert select_recovery_protocol(RecoveryTrigger.NONE, 0.5, 0.3).style == RecoveryStyle.REFLECTION

    def test_long_session_sensitive_breathing(self):
        protocol = select_recovery_protocol(RecoveryTrigger.LONG_SESSION, 0.7, 0.2)
        assert protocol.style == RecoveryStyle.BREATHING

    def test_long_session_moderate_sensitivity_high_stress(self):
        protocol = select_recovery_protocol(RecoveryTrigger.LONG_SESSION, 0.5, 0.8)
        assert protocol.style == RecoveryStyle.BREATHING

    def test_long_session_default_walk(self):
        assert select_recovery_protocol(RecoveryTrigger.LONG_SESSION, 0.3, 0.8).style == RecoveryStyle.WALK

    def test_switch_burst(self):
        assert select_recovery_protocol(RecoveryTrigger.SWITCH_BURST, 0.6, 0.2).style == RecoveryStyle.BREATHING
        assert select_recovery_protocol(RecoveryTrigger.SWITCH_BURST, 0.3, 0.8).style == RecoveryStyle.WALK
        assert (
            select_recovery_protocol(RecoveryTrigger.SWITCH_BURST, 0.3, 0.2).style
            == RecoveryStyle.COLD_EXPOSURE
        )

    def test_every_style_has_a_protocol(self):
        for style in RecoveryStyle:
            assert RECOVERY_PROTOCOLS[style].duration_minutes > 0


class TestStreakMessage:
    def test_zero_is_a_fresh_start(self):
        """Should frame a zero streak as a start, not a failure."""
        message = streak_message(0).lower()
        assert "start" in message
        assert "fail" not in message

    def test_mentions_streak_length(self):
        assert "12" in streak_message(12)

    def test_every_length_has_a_message(self):
        for streak in range(0, 60):
            assert streak_message(streak)
