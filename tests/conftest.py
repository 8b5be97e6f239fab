"""
Shared fixtures for deal flow tests.

Engines are built on a ManualScheduler so timing is driven explicitly with
scheduler.advance(seconds).
"""

from __future__ import annotations

import pytest

from core.deal_flow import (
    AnalysisOutcome,
    AnalysisService,
    CollaboratorError,
    DealFlowEngine,
    DealQuality,
    InMemoryAlertService,
    InMemoryRecordStore,
    InMemoryWatchlistService,
    ManualScheduler,
    NotificationService,
    PropertyRecord,
    TemplateOutreachService,
)


# =============================================================================
# Fake Collaborators
# =============================================================================


class FakeAnalysisService(AnalysisService):
    """Returns a fixed valuation and records every call."""

    def __init__(self, deal_quality=DealQuality.EXCELLENT, estimated_value=320000.0):
        self.deal_quality = deal_quality
        self.estimated_value = estimated_value
        self.calls = []

    def analyze(self, record, action):
        self.calls.append((record.id, action.deep))
        return AnalysisOutcome(
            estimated_value=self.estimated_value,
            deal_quality=self.deal_quality,
        )


class RecordingNotificationService(NotificationService):
    """Keeps sent notifications in memory."""

    def __init__(self):
        self.sent = []

    def notify(self, title, urgency, summary, options):
        self.sent.append((title, urgency, summary))


class FailingNotificationService(NotificationService):
    """Every notification fails."""

    def notify(self, title, urgency, summary, options):
        raise CollaboratorError("push gateway unavailable")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def analysis():
    return FakeAnalysisService()


@pytest.fixture
def notifications():
    return RecordingNotificationService()


@pytest.fixture
def failing_notifications():
    """Notification service whose every call fails."""
    return FailingNotificationService()


@pytest.fixture
def outreach():
    return TemplateOutreachService()


@pytest.fixture
def watchlist():
    return InMemoryWatchlistService()


@pytest.fixture
def alerts():
    return InMemoryAlertService()


@pytest.fixture
def records():
    return InMemoryRecordStore()


@pytest.fixture
def engine(scheduler, records, analysis, notifications, outreach, watchlist, alerts):
    """Engine with fake collaborators on a virtual clock."""
    return DealFlowEngine.with_defaults(
        scheduler=scheduler,
        records=records,
        analysis=analysis,
        notifications=notifications,
        outreach=outreach,
        watchlist=watchlist,
        alerts=alerts,
    )


@pytest.fixture
def make_record():
    """Factory fixture for discovered properties."""

    def _create(
        record_id: str = "lst-1001",
        score: float = 45,
        price: int = 250000,
        **kwargs,
    ) -> PropertyRecord:
        return PropertyRecord(
            id=record_id,
            address=kwargs.pop("address", "412 Magnolia Ave, Tulsa, OK"),
            price=price,
            score=score,
            **kwargs,
        )

    return _create
