"""
Action dispatcher.

Executes one ActionSpec against a property record by calling the matching
collaborator. Collaborator failures are captured into the returned
ActionResult and never raised, so one failing action cannot abort the other
actions of a stage or the stage transition itself.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from core.deal_flow.collaborators import (
    AlertService,
    AnalysisService,
    NotificationService,
    OutreachService,
    WatchlistService,
)
from core.deal_flow.models import (
    Action,
    ActionResult,
    ActionSpec,
    ActionStatus,
    AddToWatchlist,
    Analyze,
    DraftOutreach,
    Notify,
    PropertyRecord,
    ScheduleAlert,
)
from utils.formatting import format_currency

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActionDispatcher:
    """
    Routes each action variant to its collaborator.

    Usage:
        dispatcher = ActionDispatcher(analysis, notifications, outreach, watchlist, alerts)
        result = dispatcher.execute(flow_id, record, spec)

        if result.status is ActionStatus.FAILED:
            # result.error holds the captured failure
    """

    def __init__(
        self,
        analysis: AnalysisService,
        notifications: NotificationService,
        outreach: OutreachService,
        watchlist: WatchlistService,
        alerts: AlertService,
        clock: Optional[Callable[[], datetime]] = None,
        currency: str = "USD",
    ):
        self._analysis = analysis
        self._notifications = notifications
        self._outreach = outreach
        self._watchlist = watchlist
        self._alerts = alerts
        self._clock = clock or _utcnow
        self._currency = currency

    def execute(self, flow_id: str, record: PropertyRecord, spec: ActionSpec) -> ActionResult:
        """
        Run a single action.

        Args:
            flow_id: Owning deal flow, for logging.
            record: Property the action runs against.
            spec: The action to run.

        Returns:
            ActionResult with status COMPLETED and a payload, or FAILED with
            the captured error.
        """
        result = ActionResult(action_kind=spec.kind, executed_at=self._clock())
        try:
            result.result = self._run(record, spec.action)
            result.status = ActionStatus.COMPLETED
        except Exception as e:
            result.status = ActionStatus.FAILED
            result.error = str(e) or type(e).__name__
            logger.warning(
                "Action %s failed for flow %s: %s",
                spec.kind.value,
                flow_id,
                result.error,
            )
        return result

    def _run(self, record: PropertyRecord, action: Action) -> dict[str, Any]:
        if isinstance(action, Analyze):
            outcome = self._analysis.analyze(record, action)
            return {
                **outcome.details,
                "estimated_value": outcome.estimated_value,
                "deal_quality": outcome.deal_quality.value,
            }

        if isinstance(action, Notify):
            self._notifications.notify(
                action.title,
                action.urgency,
                self.summarize(record),
                action.options,
            )
            return {"sent": True}

        if isinstance(action, DraftOutreach):
            options = {"priority": action.priority, **action.options}
            draft_id = self._outreach.draft(action.template, record, options)
            return {"draft_id": draft_id}

        if isinstance(action, AddToWatchlist):
            ack = self._watchlist.add(record, action.options)
            return {"added": True, "ack": ack}

        if isinstance(action, ScheduleAlert):
            ack = self._alerts.schedule(record, action.schedule, action.options)
            return {"alert_set": True, "ack": ack}

        raise TypeError(f"Unsupported action: {action!r}")

    def summarize(self, record: PropertyRecord) -> str:
        """One-line property summary for notifications."""
        parts = [record.address]
        if record.price:
            parts.append(format_currency(record.price, self._currency))
        if record.score is not None:
            parts.append(f"score {record.score:g}")
        return " | ".join(parts)
