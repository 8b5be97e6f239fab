"""
Stage catalog: the ordered pipeline stages and their bound actions.

Stages are identified by string ids. Transitions are not declared as edges;
any stage may be entered from any other, either manually or through the
auto-advancement policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from core.deal_flow.errors import UnknownStageError
from core.deal_flow.models import (
    ActionSpec,
    AddToWatchlist,
    Analyze,
    Criteria,
    DealQuality,
    DraftOutreach,
    FeatureTag,
    Notify,
    ScheduleAlert,
    Stage,
    Trigger,
    Urgency,
)

# Canonical stage ids, in pipeline order
DISCOVERY: Final = "discovery"
QUALIFICATION: Final = "qualification"
EVALUATION: Final = "evaluation"
HOT_LEAD: Final = "hot_lead"
UNDER_CONTRACT: Final = "under_contract"
CLOSED: Final = "closed"
ARCHIVED: Final = "archived"

MINUTES_PER_DAY: Final = 24 * 60


DEFAULT_STAGES: Final[tuple[Stage, ...]] = (
    Stage(
        id=DISCOVERY,
        name="Property Discovery",
        description="New property identified by the discovery feed",
        actions=(
            ActionSpec(Analyze(options={"include_valuation": True, "include_comps": True})),
        ),
    ),
    Stage(
        id=QUALIFICATION,
        name="Initial Qualification",
        description="Basic criteria screening",
        criteria=Criteria(min_score=40, max_price=500_000),
        actions=(
            ActionSpec(Notify(title="New Property Qualified", urgency=Urgency.LOW)),
        ),
    ),
    Stage(
        id=EVALUATION,
        name="Deep Evaluation",
        description="Comprehensive analysis and valuation",
        criteria=Criteria(
            min_score=60,
            required_features=frozenset({FeatureTag.CREATIVE_FINANCING}),
            deal_quality=frozenset({DealQuality.GOOD, DealQuality.EXCELLENT}),
        ),
        actions=(
            ActionSpec(
                Analyze(
                    deep=True,
                    options={"market_comparison": True, "investment_projection": True},
                )
            ),
            ActionSpec(
                DraftOutreach(template="property_evaluation", priority="high"),
                trigger=Trigger.DELAYED,
                delay_minutes=15,
            ),
        ),
    ),
    Stage(
        id=HOT_LEAD,
        name="Hot Lead",
        description="High-priority opportunities requiring immediate action",
        criteria=Criteria(
            min_score=80,
            required_features=frozenset({FeatureTag.CREATIVE_FINANCING}),
            deal_quality=frozenset({DealQuality.EXCELLENT}),
        ),
        actions=(
            ActionSpec(
                Notify(
                    title="Hot deal alert",
                    urgency=Urgency.CRITICAL,
                    options={"sound": True, "push": True},
                )
            ),
            ActionSpec(DraftOutreach(template="urgent_opportunity", priority="critical")),
            ActionSpec(
                AddToWatchlist(
                    options={"price_alerts": True, "status_alerts": True},
                )
            ),
        ),
    ),
    Stage(
        id=UNDER_CONTRACT,
        name="Under Contract",
        description="Property is under contract or being pursued",
        actions=(
            ActionSpec(
                ScheduleAlert(schedule="daily", options={"tracking_mode": True}),
                trigger=Trigger.SCHEDULED,
                interval_minutes=MINUTES_PER_DAY,
            ),
        ),
    ),
    Stage(
        id=CLOSED,
        name="Closed",
        description="Deal completed successfully",
    ),
    Stage(
        id=ARCHIVED,
        name="Archived",
        description="Deal did not proceed or property no longer available",
    ),
)


@dataclass(frozen=True)
class StageCatalog:
    """
    Immutable set of stages plus the designated special stages.

    ``archived`` is where flows failing a stage's criteria are redirected,
    so it must have empty criteria. Terminal stages have no actions.
    """

    stages: tuple[Stage, ...]
    initial: str = DISCOVERY
    archived: str = ARCHIVED
    hot: str = HOT_LEAD
    terminal: frozenset[str] = frozenset({CLOSED, ARCHIVED})

    def __post_init__(self) -> None:
        ids = [s.id for s in self.stages]
        if len(ids) != len(set(ids)):
            raise ValueError("stage ids must be unique")
        for special in (self.initial, self.archived, self.hot, *self.terminal):
            if special not in ids:
                raise ValueError(f"designated stage missing from catalog: {special}")
        if self.archived not in self.terminal:
            raise ValueError("archived stage must be terminal")
        if not self.get(self.archived).criteria.is_empty:
            raise ValueError("archived stage must have empty criteria")
        for stage_id in self.terminal:
            if self.get(stage_id).actions:
                raise ValueError(f"terminal stage {stage_id} cannot define actions")

    @property
    def stage_ids(self) -> list[str]:
        return [s.id for s in self.stages]

    def get(self, stage_id: str) -> Stage:
        """Look up a stage, raising UnknownStageError if absent."""
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        raise UnknownStageError(stage_id)

    def __contains__(self, stage_id: object) -> bool:
        return any(s.id == stage_id for s in self.stages)

    def is_terminal(self, stage_id: str) -> bool:
        return stage_id in self.terminal


DEFAULT_CATALOG: Final = StageCatalog(stages=DEFAULT_STAGES)
