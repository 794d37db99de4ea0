"""
Tool: Attention Evolution Tracker
Purpose: Grow (or shrink) recommended session length from real focus sessions

Growth rule over the last 10 sessions:
- Success rate >= 80%  -> recommend 8% longer than the mean session
- Success rate < 50%   -> recommend 10% shorter
- Otherwise            -> hold at the mean

The recommendation never leaves the 10-90 minute band.

Trend compares the mean duration of the last 5 sessions with the 5
before them. Less than 3 sessions on either side reads as stable.
"""

from __future__ import annotations

from dataclasses import replace
from statistics import mean

from tools.logging_config import get_logger
from tools.personalization.config import AttentionConfig, get_config
from tools.personalization.invariants import check_duration
from tools.personalization.models import AttentionState, SessionRecord, Trend


logger = get_logger(__name__)


def compute_attention_trend(
    history: tuple[SessionRecord, ...] | list[SessionRecord],
    config: AttentionConfig | None = None,
) -> Trend:
    """
    Compare recent session durations against the window before them.

    Args:
        history: Sessions, oldest first
        config: Attention config

    Returns:
        Trend.IMPROVING, Trend.DECLINING or Trend.STABLE
    """
    cfg = config or get_config().attention
    recent = list(history[-cfg.trend_window:])
    earlier = list(history[-2 * cfg.trend_window:-cfg.trend_window])

    if len(recent) < cfg.trend_min_sessions or len(earlier) < cfg.trend_min_sessions:
        return Trend.STABLE

    recent_mean = mean(s.duration_ms for s in recent)
    earlier_mean = mean(s.duration_ms for s in earlier)
    if earlier_mean <= 0:
        return Trend.IMPROVING if recent_mean > 0 else Trend.STABLE

    change = (recent_mean - earlier_mean) / earlier_mean
    if change > cfg.trend_delta:
        return Trend.IMPROVING
    if change < -cfg.trend_delta:
        return Trend.DECLINING
    return Trend.STABLE


def _growth_multiplier(success_rate: float, cfg: AttentionConfig) -> float:
    if success_rate >= cfg.success_threshold:
        return cfg.growth_factor
    if success_rate < cfg.failure_threshold:
        return cfg.shrink_factor
    return 1.0


def recommended_session_length(attention: AttentionState, config: AttentionConfig | None = None) -> int:
    """Recommended session length in ms, inside the configured band."""
    cfg = config or get_config().attention
    target = int(round(attention.expected_focus_ms * attention.growth_multiplier))
    return max(cfg.min_session_ms, min(cfg.max_session_ms, target))


def record_focus_session(
    attention: AttentionState,
    session: SessionRecord,
    config: AttentionConfig | None = None,
    strict: bool = False,
) -> AttentionState:
    """
    Fold one completed session into the attention state.

    Args:
        attention: Current attention state
        session: Completed session
        config: Attention config
        strict: Raise on a negative duration instead of clamping it

    Returns:
        New AttentionState
    """
    cfg = config or get_config().attention

    duration = check_duration(session.duration_ms, strict)
    if duration != session.duration_ms:
        session = replace(session, duration_ms=duration)

    history = (attention.history + (session,))[-cfg.max_history:]
    window = history[-cfg.window_size:]

    expected = int(round(mean(s.duration_ms for s in window)))
    success_rate = sum(1 for s in window if s.successful) / len(window)
    growth = _growth_multiplier(success_rate, cfg)

    updated = replace(
        attention,
        expected_focus_ms=expected,
        success_rate=success_rate,
        history=history,
        trend=compute_attention_trend(history, cfg),
        growth_multiplier=growth,
    )
    updated = replace(updated, recommended_ms=recommended_session_length(updated, cfg))

    logger.debug(
        "session_recorded",
        duration_ms=duration,
        success_rate=round(success_rate, 3),
        recommended_ms=updated.recommended_ms,
    )
    return updated


def average_session_minutes(attention: AttentionState) -> float:
    if not attention.history:
        return 0.0
    return mean(s.duration_ms for s in attention.history) / 60000
