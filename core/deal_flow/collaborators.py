"""
External collaborator interfaces used by the action dispatcher.

Each action kind reaches exactly one collaborator. Collaborators return a
payload or raise; the dispatcher turns any raised exception into a failed
ActionResult. Idempotency is the collaborator's responsibility.

The in-process implementations here are what the web app wires by default.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import uuid4

from core.deal_flow.errors import CollaboratorError
from core.deal_flow.models import Analyze, DealQuality, PropertyRecord, Urgency

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisOutcome:
    """Valuation returned by the analysis service."""

    estimated_value: float
    deal_quality: DealQuality
    details: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Interfaces
# =============================================================================


class AnalysisService(ABC):
    """Valuation and deal-quality analysis."""

    @abstractmethod
    def analyze(self, record: PropertyRecord, action: Analyze) -> AnalysisOutcome:
        """
        Analyse a property.

        Args:
            record: The property to analyse.
            action: The analyze action, carrying depth and options.

        Returns:
            AnalysisOutcome with estimated value and deal quality.
        """


class NotificationService(ABC):
    """Push / in-app notifications."""

    @abstractmethod
    def notify(
        self,
        title: str,
        urgency: Urgency,
        summary: str,
        options: dict[str, Any],
    ) -> None:
        """Send a notification. Raise on failure."""


class OutreachService(ABC):
    """Outreach drafting (e.g. seller emails)."""

    @abstractmethod
    def draft(self, template: str, record: PropertyRecord, options: dict[str, Any]) -> str:
        """Draft outreach content and return a handle to the draft."""


class WatchlistService(ABC):
    """Property watchlist."""

    @abstractmethod
    def add(self, record: PropertyRecord, options: dict[str, Any]) -> Any:
        """Add a property to the watchlist and return an acknowledgement."""


class AlertService(ABC):
    """Recurring tracking alerts."""

    @abstractmethod
    def schedule(self, record: PropertyRecord, schedule: str, options: dict[str, Any]) -> Any:
        """Register an alert and return an acknowledgement."""


# =============================================================================
# In-process Implementations
# =============================================================================


class RecordAnalysisService(AnalysisService):
    """
    Reports valuation attributes already supplied by the discovery feed.

    Fails when the record carries no valuation, which leaves the flow's
    analysed attributes unset.
    """

    def analyze(self, record: PropertyRecord, action: Analyze) -> AnalysisOutcome:
        if record.estimated_value is None or record.deal_quality is None:
            raise CollaboratorError(f"No valuation available for {record.id}")
        return AnalysisOutcome(
            estimated_value=record.estimated_value,
            deal_quality=record.deal_quality,
            details={"deep": action.deep},
        )


class LoggingNotificationService(NotificationService):
    """Writes notifications to the log."""

    def notify(
        self,
        title: str,
        urgency: Urgency,
        summary: str,
        options: dict[str, Any],
    ) -> None:
        logger.info("Notification [%s] %s: %s", urgency.value, title, summary)


class InMemoryWatchlistService(WatchlistService):
    """Watchlist held in process memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: dict[str, dict[str, Any]] = {}

    def add(self, record: PropertyRecord, options: dict[str, Any]) -> Any:
        with self._lock:
            self._entries[record.id] = dict(options)
        return {"property_id": record.id}

    def contains(self, property_id: str) -> bool:
        with self._lock:
            return property_id in self._entries


class InMemoryAlertService(AlertService):
    """Alert registrations held in process memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self._alerts: dict[str, dict[str, Any]] = {}

    def schedule(self, record: PropertyRecord, schedule: str, options: dict[str, Any]) -> Any:
        alert_id = f"alert_{uuid4().hex[:12]}"
        with self._lock:
            self._alerts[alert_id] = {
                "property_id": record.id,
                "schedule": schedule,
                "options": dict(options),
            }
        return {"alert_id": alert_id}

    def get_alert(self, alert_id: str) -> Optional[dict[str, Any]]:
        with self._lock:
            return self._alerts.get(alert_id)
