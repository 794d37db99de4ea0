"""Personalization engine data models.

Value types flowing through the engine:
    StaticProfile -> PersonalizationState -> (+ Context) -> PersonalizationProfile

All records are frozen; transitions build the next value with
dataclasses.replace(). Persisted types round-trip through to_dict() /
from_dict() using plain JSON types only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from tools.personalization.invariants import clamp


class InterventionType(str, Enum):
    """How hard the app pushes back when the user drifts."""

    REFLECTIVE = "reflective"
    SOFT_DELAY = "soft_delay"
    HARD_BLOCK = "hard_block"


# Ordered mildest to harshest
INTERVENTION_ORDER = [
    InterventionType.REFLECTIVE,
    InterventionType.SOFT_DELAY,
    InterventionType.HARD_BLOCK,
]


class NudgeTone(str, Enum):
    SUPPORTIVE = "supportive"
    SHARP = "sharp"
    CHALLENGE = "challenge"
    CONFIDENCE_BUILDING = "confidence_building"


class MotivationType(str, Enum):
    INTRINSIC = "intrinsic"
    EXTRINSIC = "extrinsic"
    MIXED = "mixed"


class GoalCategory(str, Enum):
    CAREER = "career"
    ACADEMIC = "academic"
    HEALTH = "health"
    CREATIVE = "creative"
    FINANCIAL = "financial"
    PERSONAL = "personal"
    OTHER = "other"


class DistractionCategory(str, Enum):
    SOCIAL_MEDIA = "social_media"
    GAMING = "gaming"
    MENTAL_RUMINATION = "mental_rumination"
    SOCIAL_INTERACTION = "social_interaction"
    FATIGUE = "fatigue"
    OTHER = "other"


class AdjustmentDirection(str, Enum):
    ESCALATE = "escalate"
    DE_ESCALATE = "de_escalate"
    HOLD = "hold"


class Trend(str, Enum):
    """Direction of a rolling metric (attention or compliance)."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class ThrottleSeverity(str, Enum):
    NONE = "none"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class RecoveryStyle(str, Enum):
    BREATHING = "breathing"
    REFLECTION = "reflection"
    WALK = "walk"
    MEDITATION = "meditation"
    COLD_EXPOSURE = "cold_exposure"


class RecoveryTrigger(str, Enum):
    """What the user was doing right before recovery was needed."""

    NONE = "none"
    LONG_SESSION = "long_session"
    SWITCH_BURST = "switch_burst"


class SuggestionPhase(str, Enum):
    PRE_FOCUS = "pre_focus"
    DURING_FOCUS = "during_focus"
    POST_FOCUS = "post_focus"
    RECOVERY = "recovery"


def _iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None


def local_naive(value: datetime) -> datetime:
    """Aware datetimes become naive local time; state datetimes are all naive."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if not isinstance(value, datetime):
        value = datetime.fromisoformat(value)
    return local_naive(value)


def _date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


# ─────────────────────────────────────────────────────────────────────────────
# Static profile (produced once by onboarding)
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PersonalityTraits:
    """Big Five scores on the 1-7 Likert scale."""

    conscientiousness: float = 4.0
    neuroticism: float = 4.0
    openness: float = 4.0
    agreeableness: float = 4.0
    extraversion: float = 4.0

    def normalized(self, trait: str) -> float:
        """Map a 1-7 trait onto 0-1."""
        return clamp((getattr(self, trait) - 1.0) / 6.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "conscientiousness": self.conscientiousness,
            "neuroticism": self.neuroticism,
            "openness": self.openness,
            "agreeableness": self.agreeableness,
            "extraversion": self.extraversion,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PersonalityTraits:
        known = {k: float(v) for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass(frozen=True)
class ResponsePrediction:
    """Onboarding's guess at P(comply) per intervention type."""

    reflective: float = 0.5
    soft_delay: float = 0.5
    hard_block: float = 0.5

    def for_type(self, intervention: InterventionType) -> float:
        return getattr(self, intervention.value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reflective": self.reflective,
            "soft_delay": self.soft_delay,
            "hard_block": self.hard_block,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResponsePrediction:
        return cls(
            reflective=float(data.get("reflective", 0.5)),
            soft_delay=float(data.get("soft_delay", data.get("softDelay", 0.5))),
            hard_block=float(data.get("hard_block", data.get("hardBlock", 0.5))),
        )


@dataclass(frozen=True)
class StaticProfile:
    """Read-only onboarding output. Scores are clamped where they are used."""

    traits: PersonalityTraits = field(default_factory=PersonalityTraits)
    impulsivity_index: float = 0.5
    authority_resistance: float = 0.5
    strictness_compatibility: float = 0.5
    uninstall_risk: float = 0.5
    motivation_type: MotivationType = MotivationType.MIXED
    goal_category: GoalCategory = GoalCategory.OTHER
    goal_urgency: float = 0.5
    emotional_reactivity: float = 0.5
    self_efficacy: float = 0.5
    distraction_vector: dict[DistractionCategory, float] = field(default_factory=dict)
    response_prediction: ResponsePrediction = field(default_factory=ResponsePrediction)
    focus_capability: float = 0.5
    preferred_tone: NudgeTone = NudgeTone.SUPPORTIVE

    @property
    def primary_distraction(self) -> DistractionCategory:
        if not self.distraction_vector:
            return DistractionCategory.OTHER
        # Ties resolve to declaration order of DistractionCategory
        return max(
            DistractionCategory,
            key=lambda c: self.distraction_vector.get(c, 0.0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "traits": self.traits.to_dict(),
            "impulsivity_index": self.impulsivity_index,
            "authority_resistance": self.authority_resistance,
            "strictness_compatibility": self.strictness_compatibility,
            "uninstall_risk": self.uninstall_risk,
            "motivation_type": self.motivation_type.value,
            "goal_category": self.goal_category.value,
            "goal_urgency": self.goal_urgency,
            "emotional_reactivity": self.emotional_reactivity,
            "self_efficacy": self.self_efficacy,
            "distraction_vector": {k.value: v for k, v in self.distraction_vector.items()},
            "response_prediction": self.response_prediction.to_dict(),
            "focus_capability": self.focus_capability,
            "preferred_tone": self.preferred_tone.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StaticProfile:
        """Create from dict. Unknown distraction categories are dropped."""
        vector = {}
        for key, weight in (data.get("distraction_vector") or {}).items():
            try:
                vector[DistractionCategory(key)] = clamp(float(weight))
            except ValueError:
                continue

        return cls(
            traits=PersonalityTraits.from_dict(data.get("traits") or {}),
            impulsivity_index=float(data.get("impulsivity_index", 0.5)),
            authority_resistance=float(data.get("authority_resistance", 0.5)),
            strictness_compatibility=float(data.get("strictness_compatibility", 0.5)),
            uninstall_risk=float(data.get("uninstall_risk", 0.5)),
            motivation_type=MotivationType(data.get("motivation_type", "mixed")),
            goal_category=GoalCategory(data.get("goal_category", "other")),
            goal_urgency=float(data.get("goal_urgency", 0.5)),
            emotional_reactivity=float(data.get("emotional_reactivity", 0.5)),
            self_efficacy=float(data.get("self_efficacy", 0.5)),
            distraction_vector=vector,
            response_prediction=ResponsePrediction.from_dict(
                data.get("response_prediction") or {}
            ),
            focus_capability=float(data.get("focus_capability", 0.5)),
            preferred_tone=NudgeTone(data.get("preferred_tone", "supportive")),
        )


# ─────────────────────────────────────────────────────────────────────────────
# Evolving state
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ComplianceTracker:
    """Compliance evidence for one intervention type."""

    successes: int = 0
    attempts: int = 0
    probability: float = 0.5
    prior: float = 0.5
    last_updated: datetime | None = None
    recent_successes: int = 0
    recent_attempts: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "successes": self.successes,
            "attempts": self.attempts,
            "probability": self.probability,
            "prior": self.prior,
            "last_updated": _iso(self.last_updated),
            "recent_successes": self.recent_successes,
            "recent_attempts": self.recent_attempts,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ComplianceTracker:
        data = data.copy()
        data["last_updated"] = _datetime(data.get("last_updated"))
        return cls(**data)


@dataclass(frozen=True)
class StrictnessState:
    level: int
    baseline_level: int
    compliance_rate: float = 0.5
    override_frequency: float = 0.0
    session_success_rate: float = 0.5
    last_change_at: datetime | None = None
    direction: AdjustmentDirection = AdjustmentDirection.HOLD

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "baseline_level": self.baseline_level,
            "compliance_rate": self.compliance_rate,
            "override_frequency": self.override_frequency,
            "session_success_rate": self.session_success_rate,
            "last_change_at": _iso(self.last_change_at),
            "direction": self.direction.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StrictnessState:
        data = data.copy()
        data["last_change_at"] = _datetime(data.get("last_change_at"))
        data["direction"] = AdjustmentDirection(data.get("direction", "hold"))
        return cls(**data)


@dataclass(frozen=True)
class FatigueState:
    score: float = 0.0
    nudges_today: int = 0
    dismissals_today: int = 0
    last_nudge_at: datetime | None = None
    consecutive_dismissals: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "nudges_today": self.nudges_today,
            "dismissals_today": self.dismissals_today,
            "last_nudge_at": _iso(self.last_nudge_at),
            "consecutive_dismissals": self.consecutive_dismissals,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FatigueState:
        data = data.copy()
        data["last_nudge_at"] = _datetime(data.get("last_nudge_at"))
        return cls(**data)


@dataclass(frozen=True)
class SessionRecord:
    """A completed focus session."""

    duration_ms: int
    planned_ms: int
    successful: bool
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration_ms": self.duration_ms,
            "planned_ms": self.planned_ms,
            "successful": self.successful,
            "timestamp": _iso(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionRecord:
        return cls(
            duration_ms=int(data.get("duration_ms", data.get("duration", 0))),
            planned_ms=int(data.get("planned_ms", data.get("planned", 0))),
            successful=bool(data.get("successful", data.get("was_successful", False))),
            timestamp=_datetime(data.get("timestamp")) or datetime.now(),
        )


@dataclass(frozen=True)
class AttentionState:
    expected_focus_ms: int
    recommended_ms: int
    success_rate: float = 0.5
    history: tuple[SessionRecord, ...] = ()
    trend: Trend = Trend.STABLE
    growth_multiplier: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "expected_focus_ms": self.expected_focus_ms,
            "recommended_ms": self.recommended_ms,
            "success_rate": self.success_rate,
            "history": [s.to_dict() for s in self.history],
            "trend": self.trend.value,
            "growth_multiplier": self.growth_multiplier,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AttentionState:
        data = data.copy()
        data["history"] = tuple(SessionRecord.from_dict(s) for s in data.get("history", []))
        data["trend"] = Trend(data.get("trend", "stable"))
        return cls(**data)


@dataclass(frozen=True)
class HabitState:
    current_streak: int = 0
    longest_streak: int = 0
    last_focus_date: date | None = None
    total_focus_days: int = 0
    # Index is date.weekday(): Monday = 0
    weekly_minutes: tuple[float, ...] = (0.0,) * 7

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_focus_date": _iso(self.last_focus_date),
            "total_focus_days": self.total_focus_days,
            "weekly_minutes": list(self.weekly_minutes),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HabitState:
        data = data.copy()
        data["last_focus_date"] = _date(data.get("last_focus_date"))
        data["weekly_minutes"] = tuple(float(m) for m in data.get("weekly_minutes", [0.0] * 7))
        return cls(**data)


@dataclass(frozen=True)
class PersonalizationState:
    """Everything the engine remembers about one user."""

    # Derived once from the static profile
    impulsivity_index: float
    goal_drive: float
    authority_resistance: float
    emotional_sensitivity: float
    intervention_tolerance: float
    baseline_uninstall_risk: float
    primary_distraction: DistractionCategory
    baseline_tone: NudgeTone
    baseline_session_ms: int

    # Adaptive
    trackers: dict[InterventionType, ComplianceTracker]
    strictness: StrictnessState
    fatigue: FatigueState
    tone_effectiveness: dict[NudgeTone, float]
    attention: AttentionState
    habits: HabitState

    # Meta
    created_at: datetime
    updated_at: datetime
    window_started_at: datetime
    last_daily_update: date | None = None
    interaction_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "impulsivity_index": self.impulsivity_index,
            "goal_drive": self.goal_drive,
            "authority_resistance": self.authority_resistance,
            "emotional_sensitivity": self.emotional_sensitivity,
            "intervention_tolerance": self.intervention_tolerance,
            "baseline_uninstall_risk": self.baseline_uninstall_risk,
            "primary_distraction": self.primary_distraction.value,
            "baseline_tone": self.baseline_tone.value,
            "baseline_session_ms": self.baseline_session_ms,
            "trackers": {k.value: t.to_dict() for k, t in self.trackers.items()},
            "strictness": self.strictness.to_dict(),
            "fatigue": self.fatigue.to_dict(),
            "tone_effectiveness": {k.value: v for k, v in self.tone_effectiveness.items()},
            "attention": self.attention.to_dict(),
            "habits": self.habits.to_dict(),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "window_started_at": _iso(self.window_started_at),
            "last_daily_update": _iso(self.last_daily_update),
            "interaction_count": self.interaction_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PersonalizationState:
        return cls(
            impulsivity_index=data["impulsivity_index"],
            goal_drive=data["goal_drive"],
            authority_resistance=data["authority_resistance"],
            emotional_sensitivity=data["emotional_sensitivity"],
            intervention_tolerance=data["intervention_tolerance"],
            baseline_uninstall_risk=data["baseline_uninstall_risk"],
            primary_distraction=DistractionCategory(data["primary_distraction"]),
            baseline_tone=NudgeTone(data["baseline_tone"]),
            baseline_session_ms=data["baseline_session_ms"],
            trackers={
                kind: ComplianceTracker.from_dict(data["trackers"][kind.value])
                for kind in INTERVENTION_ORDER
                if kind.value in data["trackers"]
            },
            strictness=StrictnessState.from_dict(data["strictness"]),
            fatigue=FatigueState.from_dict(data["fatigue"]),
            tone_effectiveness={
                tone: data["tone_effectiveness"][tone.value]
                for tone in NudgeTone
                if tone.value in data["tone_effectiveness"]
            },
            attention=AttentionState.from_dict(data["attention"]),
            habits=HabitState.from_dict(data["habits"]),
            created_at=_datetime(data["created_at"]),
            updated_at=_datetime(data["updated_at"]),
            window_started_at=_datetime(data["window_started_at"]),
            last_daily_update=_date(data.get("last_daily_update")),
            interaction_count=data.get("interaction_count", 0),
        )


# ─────────────────────────────────────────────────────────────────────────────
# Inputs
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ComplianceEvent:
    """The user's response to one delivered intervention."""

    intervention_type: InterventionType
    successful: bool
    override: bool = False
    timestamp: datetime | None = None
    # Tone the nudge was delivered in; defaults to the engine's current pick
    tone: NudgeTone | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "intervention_type": self.intervention_type.value,
            "successful": self.successful,
            "override": self.override,
            "timestamp": _iso(self.timestamp),
            "tone": self.tone.value if self.tone else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ComplianceEvent:
        tone = data.get("tone")
        return cls(
            intervention_type=InterventionType(data["intervention_type"]),
            successful=bool(data.get("successful", data.get("was_successful", False))),
            override=bool(data.get("override", data.get("was_override", False))),
            timestamp=_datetime(data.get("timestamp")),
            tone=NudgeTone(tone) if tone else None,
        )


@dataclass(frozen=True)
class Context:
    """Live signals for one decision. Never persisted, never cached."""

    time_of_day: TimeOfDay
    hour: int
    cognitive_readiness: float
    fragmentation: float
    goal_conflict: float
    distraction_severity: float
    in_focus_session: bool = False
    stress: float = 0.5
    goal_urgency: float = 0.5

    def to_dict(self) -> dict[str, Any]:
        return {
            "time_of_day": self.time_of_day.value,
            "hour": self.hour,
            "cognitive_readiness": self.cognitive_readiness,
            "fragmentation": self.fragmentation,
            "goal_conflict": self.goal_conflict,
            "distraction_severity": self.distraction_severity,
            "in_focus_session": self.in_focus_session,
            "stress": self.stress,
            "goal_urgency": self.goal_urgency,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Context:
        """Create from dict, clamping every score into 0-1."""
        return cls(
            time_of_day=TimeOfDay(data.get("time_of_day", "afternoon")),
            hour=int(data.get("hour", 12)) % 24,
            cognitive_readiness=clamp(float(data.get("cognitive_readiness", 0.5))),
            fragmentation=clamp(float(data.get("fragmentation", 0.0))),
            goal_conflict=clamp(float(data.get("goal_conflict", 0.0))),
            distraction_severity=clamp(float(data.get("distraction_severity", 0.0))),
            in_focus_session=bool(data.get("in_focus_session", False)),
            stress=clamp(float(data.get("stress", 0.5))),
            goal_urgency=clamp(float(data.get("goal_urgency", 0.5))),
        )


# ─────────────────────────────────────────────────────────────────────────────
# Outputs
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class InterventionSuitability:
    score: float
    recommended_type: InterventionType
    should_delay: bool
    time_modifier: float
    components: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "recommended_type": self.recommended_type.value,
            "should_delay": self.should_delay,
            "time_modifier": self.time_modifier,
            "components": dict(self.components),
        }


@dataclass(frozen=True)
class InterventionPolicy:
    intervention_type: InterventionType
    tone: NudgeTone
    message: str
    # Which caps pulled the policy below what the score asked for
    caps: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "intervention_type": self.intervention_type.value,
            "tone": self.tone.value,
            "message": self.message,
            "caps": list(self.caps),
        }


@dataclass(frozen=True)
class RecoveryRecommendation:
    style: RecoveryStyle
    message: str
    duration_minutes: int
    priority: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "style": self.style.value,
            "message": self.message,
            "duration_minutes": self.duration_minutes,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class HabitSuggestion:
    id: str
    title: str
    description: str
    phase: SuggestionPhase
    priority: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "phase": self.phase.value,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class ThrottleDecision:
    severity: ThrottleSeverity
    # None while throttling means suppress outright
    delay_minutes: int | None = None

    @property
    def throttle(self) -> bool:
        return self.severity != ThrottleSeverity.NONE

    @property
    def suppress(self) -> bool:
        return self.throttle and self.delay_minutes is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "throttle": self.throttle,
            "suppress": self.suppress,
            "delay_minutes": self.delay_minutes,
        }


@dataclass(frozen=True)
class PersonalizationProfile:
    """Read-only snapshot for the UI and notification layers."""

    strictness_level: int
    nudge_tone: NudgeTone
    policy: InterventionPolicy
    session_length_ms: int
    recovery: RecoveryRecommendation
    habit_suggestions: tuple[HabitSuggestion, ...]
    compliance_matrix: dict[InterventionType, float]
    uninstall_risk: float
    attention_trend: Trend
    suitability: InterventionSuitability
    fatigue_level: float
    throttle: ThrottleDecision
    cognitive_readiness: float
    current_streak: int
    streak_message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "strictness_level": self.strictness_level,
            "nudge_tone": self.nudge_tone.value,
            "policy": self.policy.to_dict(),
            "session_length_ms": self.session_length_ms,
            "recovery": self.recovery.to_dict(),
            "habit_suggestions": [s.to_dict() for s in self.habit_suggestions],
            "compliance_matrix": {k.value: v for k, v in self.compliance_matrix.items()},
            "uninstall_risk": self.uninstall_risk,
            "attention_trend": self.attention_trend.value,
            "suitability": self.suitability.to_dict(),
            "fatigue_level": self.fatigue_level,
            "throttle": self.throttle.to_dict(),
            "cognitive_readiness": self.cognitive_readiness,
            "current_streak": self.current_streak,
            "streak_message": self.streak_message,
        }


@dataclass(frozen=True)
class EngineEvent:
    """Outbound notification for the caller to forward (e.g. to the UI)."""

    kind: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "payload": dict(self.payload)}
