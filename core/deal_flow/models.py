"""
Data models for the deal flow pipeline.

Configuration-time types (Stage, Criteria, ActionSpec and the action
variants) are frozen. DealFlow, StageEntry and ActionResult are mutable and
are only ever changed by the pipeline engine while it holds the flow lock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union


# =============================================================================
# Enums
# =============================================================================


class DealQuality(Enum):
    """Analysed deal quality of a property."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class FeatureTag(Enum):
    """Named features a stage can require. Mapped to record flags in criteria.py."""

    CREATIVE_FINANCING = "creative_financing"
    OWNER_FINANCING = "owner_financing"
    LEASE_TO_OWN = "lease_to_own"
    VA_ELIGIBLE = "va_eligible"
    USDA_ELIGIBLE = "usda_eligible"
    NO_CREDIT_CHECK = "no_credit_check"
    CONTRACT_FOR_DEED = "contract_for_deed"


class ActionKind(Enum):
    """The fixed set of actions a stage can run."""

    ANALYZE = "analyze"
    NOTIFY = "notify"
    DRAFT_OUTREACH = "draft_outreach"
    ADD_TO_WATCHLIST = "add_to_watchlist"
    SCHEDULE_ALERT = "schedule_alert"


class Trigger(Enum):
    """When an action runs relative to stage entry."""

    IMMEDIATE = "immediate"
    DELAYED = "delayed"
    SCHEDULED = "scheduled"


class Urgency(Enum):
    """Notification urgency."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ActionStatus(Enum):
    """Outcome state of an executed action."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# Property Record
# =============================================================================


@dataclass(frozen=True)
class PropertyRecord:
    """
    Snapshot of a discovered property.

    The record is owned by the record store, not by the flow. Qualifying
    attributes (score, deal quality, estimated value) may be refreshed by the
    discovery feed between stage transitions.
    """

    id: str
    address: str
    price: Optional[int] = None
    score: Optional[float] = None  # 0-100, opaque upstream match score
    listing_type: str = ""
    source: str = ""
    url: str = ""

    # Financing / eligibility flags
    owner_financing: bool = False
    lease_to_own: bool = False
    va_eligible: bool = False
    usda_eligible: bool = False
    no_credit_check: bool = False
    contract_for_deed: bool = False

    # Valuation attributes, when the feed already supplies them
    estimated_value: Optional[float] = None
    deal_quality: Optional[DealQuality] = None

    def __post_init__(self):
        """Validate record after initialization."""
        if not self.id:
            raise ValueError("id is required")
        if self.score is not None and not 0 <= self.score <= 100:
            raise ValueError("score must be between 0 and 100")
        if self.price is not None and self.price < 0:
            raise ValueError("price must be non-negative")

    @property
    def is_foreclosure(self) -> bool:
        return self.listing_type.strip().lower() == "foreclosure"


# =============================================================================
# Stage Configuration
# =============================================================================


@dataclass(frozen=True)
class Criteria:
    """
    Entry criteria for a stage.

    All predicates are ANDed. A predicate left as None (or an empty set)
    places no constraint, so ``Criteria()`` always passes.
    """

    min_score: Optional[float] = None
    max_price: Optional[int] = None
    required_features: frozenset[FeatureTag] = frozenset()
    deal_quality: frozenset[DealQuality] = frozenset()

    @property
    def is_empty(self) -> bool:
        return (
            self.min_score is None
            and self.max_price is None
            and not self.required_features
            and not self.deal_quality
        )


@dataclass(frozen=True)
class Analyze:
    """Run a valuation / deal-quality analysis on the record."""

    deep: bool = False
    options: dict[str, Any] = field(default_factory=dict)

    kind = ActionKind.ANALYZE


@dataclass(frozen=True)
class Notify:
    """Send a notification about the record."""

    title: str
    urgency: Urgency = Urgency.LOW
    options: dict[str, Any] = field(default_factory=dict)

    kind = ActionKind.NOTIFY


@dataclass(frozen=True)
class DraftOutreach:
    """Draft an outreach message from a template."""

    template: str
    priority: str = "normal"
    options: dict[str, Any] = field(default_factory=dict)

    kind = ActionKind.DRAFT_OUTREACH


@dataclass(frozen=True)
class AddToWatchlist:
    """Add the record to the watchlist."""

    options: dict[str, Any] = field(default_factory=dict)

    kind = ActionKind.ADD_TO_WATCHLIST


@dataclass(frozen=True)
class ScheduleAlert:
    """Register a recurring tracking alert for the record."""

    schedule: str = "daily"
    options: dict[str, Any] = field(default_factory=dict)

    kind = ActionKind.SCHEDULE_ALERT


Action = Union[Analyze, Notify, DraftOutreach, AddToWatchlist, ScheduleAlert]


@dataclass(frozen=True)
class ActionSpec:
    """
    A declared unit of work bound to a stage.

    ``delay_minutes`` is set iff the trigger is DELAYED and
    ``interval_minutes`` is set iff the trigger is SCHEDULED.
    """

    action: Action
    trigger: Trigger = Trigger.IMMEDIATE
    delay_minutes: Optional[float] = None
    interval_minutes: Optional[float] = None

    def __post_init__(self):
        if (self.trigger is Trigger.DELAYED) != (self.delay_minutes is not None):
            raise ValueError("delay_minutes must be set iff trigger is delayed")
        if (self.trigger is Trigger.SCHEDULED) != (self.interval_minutes is not None):
            raise ValueError("interval_minutes must be set iff trigger is scheduled")
        if self.delay_minutes is not None and self.delay_minutes < 0:
            raise ValueError("delay_minutes cannot be negative")
        if self.interval_minutes is not None and self.interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")

    @property
    def kind(self) -> ActionKind:
        return self.action.kind


@dataclass(frozen=True)
class Stage:
    """A named pipeline step with entry criteria and bound actions."""

    id: str
    name: str
    description: str = ""
    criteria: Criteria = field(default_factory=Criteria)
    actions: tuple[ActionSpec, ...] = ()


# =============================================================================
# Flow State
# =============================================================================


@dataclass
class ActionResult:
    """Recorded outcome of running one ActionSpec."""

    action_kind: ActionKind
    status: ActionStatus = ActionStatus.PENDING
    executed_at: Optional[datetime] = None
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "action_kind": self.action_kind.value,
            "status": self.status.value,
            "executed_at": self.executed_at.isoformat() if self.executed_at else None,
            "result": self.result,
            "error": self.error,
        }


@dataclass
class StageEntry:
    """One visit of a flow to a stage."""

    stage: str
    entered_at: datetime
    completed_at: Optional[datetime] = None
    actions: list[ActionResult] = field(default_factory=list)

    @property
    def minutes_in_stage(self) -> Optional[float]:
        """Dwell time in minutes, once the entry is completed."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.entered_at).total_seconds() / 60

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage,
            "entered_at": self.entered_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "actions": [a.to_dict() for a in self.actions],
        }


@dataclass
class DealFlow:
    """Workflow instance tracking one discovered property through the pipeline."""

    id: str
    subject_id: str
    current_stage: str
    stage_history: list[StageEntry]
    priority: float
    created_at: datetime
    updated_at: datetime
    estimated_value: Optional[float] = None
    deal_quality: Optional[DealQuality] = None
    auto_actions_enabled: bool = True

    def __post_init__(self):
        if not self.stage_history:
            raise ValueError("stage_history cannot be empty")
        if self.stage_history[-1].stage != self.current_stage:
            raise ValueError("last stage entry must match current_stage")
        if not 0 <= self.priority <= 100:
            raise ValueError("priority must be between 0 and 100")

    @property
    def current_entry(self) -> StageEntry:
        return self.stage_history[-1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "subject_id": self.subject_id,
            "current_stage": self.current_stage,
            "stage_history": [e.to_dict() for e in self.stage_history],
            "priority": self.priority,
            "estimated_value": self.estimated_value,
            "deal_quality": self.deal_quality.value if self.deal_quality else None,
            "auto_actions_enabled": self.auto_actions_enabled,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
