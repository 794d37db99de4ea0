"""Pydantic models for args/personalization.yaml.

Every section has full defaults, so an empty or missing YAML file yields a
working engine. Unknown keys are allowed so older config files keep
loading after a key is retired.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

from tools.logging_config import get_logger
from tools.personalization import CONFIG_PATH


logger = get_logger(__name__)

STRICT_INVARIANTS_ENV = "STEADYFOCUS_STRICT_INVARIANTS"


class EngineConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    strict_invariants: bool = Field(default=False)
    max_habit_suggestions: int = Field(default=3, ge=0)


class BaselineConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    strictness_thresholds: list[float] = Field(
        default_factory=lambda: [0.20, 0.40, 0.55, 0.70, 0.85], min_length=5, max_length=5
    )
    session_low_ms: int = Field(default=15 * 60 * 1000, ge=0)
    session_moderate_ms: int = Field(default=25 * 60 * 1000, ge=0)
    session_high_ms: int = Field(default=45 * 60 * 1000, ge=0)
    focus_threshold_low: float = Field(default=0.35, ge=0.0, le=1.0)
    focus_threshold_high: float = Field(default=0.65, ge=0.0, le=1.0)
    preferred_tone_effectiveness: float = Field(default=0.7, ge=0.0, le=1.0)


class ComplianceConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    recency_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    min_recent_attempts: int = Field(default=3, ge=0)
    min_attempts_for_trend: int = Field(default=5, ge=0)
    trend_delta: float = Field(default=0.10, ge=0.0)
    window_days: int = Field(default=7, ge=1)
    override_decay: float = Field(default=0.95, ge=0.0, le=1.0)
    override_blend: float = Field(default=0.10, ge=0.0, le=1.0)


class AuthorityCeiling(BaseModel):
    model_config = ConfigDict(extra="allow")
    min_resistance: float = Field(ge=0.0, le=1.0)
    max_level: int = Field(ge=1, le=5)


class StrictnessConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    escalate_compliance: float = Field(default=0.75, ge=0.0, le=1.0)
    escalate_session_success: float = Field(default=0.80, ge=0.0, le=1.0)
    escalate_override_max: float = Field(default=0.20, ge=0.0, le=1.0)
    deescalate_compliance: float = Field(default=0.40, ge=0.0, le=1.0)
    deescalate_override: float = Field(default=0.40, ge=0.0, le=1.0)
    cooldown_days: float = Field(default=7, ge=0)
    authority_ceilings: list[AuthorityCeiling] = Field(
        default_factory=lambda: [
            AuthorityCeiling(min_resistance=0.80, max_level=3),
            AuthorityCeiling(min_resistance=0.65, max_level=4),
        ]
    )


class FatigueConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    per_nudge: float = Field(default=0.10, ge=0.0)
    per_dismissal: float = Field(default=0.20, ge=0.0)
    consecutive_multiplier: float = Field(default=1.5, ge=1.0)
    max_daily_nudges: int = Field(default=8, ge=1)
    over_limit_multiplier: float = Field(default=2.0, ge=1.0)
    decay_factor: float = Field(default=0.5, ge=0.0, lt=1.0)
    mild_score: float = Field(default=0.50, ge=0.0, le=1.0)
    moderate_score: float = Field(default=0.70, ge=0.0, le=1.0)
    severe_score: float = Field(default=0.90, ge=0.0, le=1.0)
    mild_consecutive: int = Field(default=2, ge=1)
    moderate_consecutive: int = Field(default=3, ge=1)
    severe_consecutive: int = Field(default=5, ge=1)
    mild_delay_minutes: int = Field(default=15, ge=0)
    moderate_delay_minutes: int = Field(default=60, ge=0)


class ToneConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    learning_rate: float = Field(default=0.2, gt=0.0, le=1.0)


class SuitabilityConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    weights: dict[str, float] = Field(
        default_factory=lambda: {
            "goal_conflict": 0.40,
            "distraction_severity": 0.35,
            "cognitive_readiness": 0.25,
        }
    )
    time_modifiers: dict[str, float] = Field(
        default_factory=lambda: {
            "morning": 0.85,
            "afternoon": 1.0,
            "evening": 1.15,
            "night": 0.70,
        }
    )
    focus_session_bonus: float = Field(default=0.15, ge=0.0)
    reflective_max: float = Field(default=0.35, ge=0.0, le=1.0)
    soft_delay_max: float = Field(default=0.65, ge=0.0, le=1.0)
    delay_readiness: float = Field(default=0.25, ge=0.0, le=1.0)
    hard_block_resistance: float = Field(default=0.65, ge=0.0, le=1.0)
    strictness_step: float = Field(default=0.05, ge=0.0)


class AttentionConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    min_session_ms: int = Field(default=10 * 60 * 1000, ge=0)
    max_session_ms: int = Field(default=90 * 60 * 1000, ge=1)
    growth_factor: float = Field(default=1.08, ge=1.0)
    shrink_factor: float = Field(default=0.90, gt=0.0, le=1.0)
    success_threshold: float = Field(default=0.80, ge=0.0, le=1.0)
    failure_threshold: float = Field(default=0.50, ge=0.0, le=1.0)
    window_size: int = Field(default=10, ge=1)
    max_history: int = Field(default=50, ge=1)
    trend_window: int = Field(default=5, ge=1)
    trend_min_sessions: int = Field(default=3, ge=1)
    trend_delta: float = Field(default=0.10, ge=0.0)


class HabitConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    recovery_readiness: float = Field(default=0.4, ge=0.0, le=1.0)


class PersonalizationConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    engine: EngineConfig = Field(default_factory=EngineConfig)
    baseline: BaselineConfig = Field(default_factory=BaselineConfig)
    compliance: ComplianceConfig = Field(default_factory=ComplianceConfig)
    strictness: StrictnessConfig = Field(default_factory=StrictnessConfig)
    fatigue: FatigueConfig = Field(default_factory=FatigueConfig)
    tone: ToneConfig = Field(default_factory=ToneConfig)
    suitability: SuitabilityConfig = Field(default_factory=SuitabilityConfig)
    attention: AttentionConfig = Field(default_factory=AttentionConfig)
    habits: HabitConfig = Field(default_factory=HabitConfig)


def _env_flag(name: str) -> bool | None:
    value = os.environ.get(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(path: Path | None = None) -> PersonalizationConfig:
    """Load and validate the YAML config, falling back to defaults on any error."""
    yaml_path = path or CONFIG_PATH

    try:
        if yaml_path.exists():
            with open(yaml_path) as f:
                raw = yaml.safe_load(f) or {}
        else:
            raw = {}
        config = PersonalizationConfig.model_validate(raw)
    except Exception as e:
        logger.warning("config_invalid", path=str(yaml_path), error=str(e))
        config = PersonalizationConfig()

    strict = _env_flag(STRICT_INVARIANTS_ENV)
    if strict is not None:
        config.engine.strict_invariants = strict

    return config


@lru_cache(maxsize=1)
def get_config() -> PersonalizationConfig:
    """Process-wide config, loaded once from args/personalization.yaml."""
    return load_config()


def reload_config() -> PersonalizationConfig:
    get_config.cache_clear()
    return get_config()


__all__ = [
    "AttentionConfig",
    "AuthorityCeiling",
    "BaselineConfig",
    "ComplianceConfig",
    "EngineConfig",
    "FatigueConfig",
    "HabitConfig",
    "PersonalizationConfig",
    "StrictnessConfig",
    "SuitabilityConfig",
    "ToneConfig",
    "get_config",
    "load_config",
    "reload_config",
]
