"""
Tests for the action dispatcher and the default collaborators.

Tests covering:
1. Every action kind reaches its collaborator and returns a payload
2. Collaborator failures become FAILED results, never exceptions
3. executed_at comes from the injected clock
4. Outreach drafting renders Jinja2 templates
"""

from datetime import datetime, timezone

import pytest

from core.deal_flow import (
    ActionDispatcher,
    ActionKind,
    ActionSpec,
    ActionStatus,
    AddToWatchlist,
    Analyze,
    CollaboratorError,
    DealQuality,
    DraftOutreach,
    Notify,
    RecordAnalysisService,
    ScheduleAlert,
    TemplateOutreachService,
    Urgency,
)

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def dispatcher(analysis, notifications, outreach, watchlist, alerts):
    return ActionDispatcher(
        analysis=analysis,
        notifications=notifications,
        outreach=outreach,
        watchlist=watchlist,
        alerts=alerts,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def record(make_record):
    return make_record(record_id="lst-2001", score=82, price=210000, owner_financing=True)


class TestDispatchByKind:
    def test_analyze(self, dispatcher, record, analysis):
        result = dispatcher.execute("deal-1", record, ActionSpec(Analyze(deep=True)))

        assert result.status is ActionStatus.COMPLETED
        assert result.action_kind is ActionKind.ANALYZE
        assert result.result["deal_quality"] == "excellent"
        assert result.result["estimated_value"] == 320000.0
        assert analysis.calls == [("lst-2001", True)]

    def test_notify(self, dispatcher, record, notifications):
        spec = ActionSpec(Notify(title="Hot deal alert", urgency=Urgency.CRITICAL))
        result = dispatcher.execute("deal-1", record, spec)

        assert result.status is ActionStatus.COMPLETED
        assert result.result == {"sent": True}
        title, urgency, summary = notifications.sent[0]
        assert title == "Hot deal alert"
        assert urgency is Urgency.CRITICAL
        assert "$210,000" in summary
        assert "score 82" in summary

    def test_draft_outreach(self, dispatcher, record, outreach):
        spec = ActionSpec(DraftOutreach(template="urgent_opportunity", priority="critical"))
        result = dispatcher.execute("deal-1", record, spec)

        assert result.status is ActionStatus.COMPLETED
        draft = outreach.get_draft(result.result["draft_id"])
        assert draft.property_id == "lst-2001"
        assert draft.priority == "critical"
        assert record.address in draft.body

    def test_add_to_watchlist(self, dispatcher, record, watchlist):
        result = dispatcher.execute("deal-1", record, ActionSpec(AddToWatchlist()))

        assert result.status is ActionStatus.COMPLETED
        assert result.result["added"] is True
        assert watchlist.contains("lst-2001")

    def test_schedule_alert(self, dispatcher, record, alerts):
        result = dispatcher.execute("deal-1", record, ActionSpec(ScheduleAlert(schedule="daily")))

        assert result.status is ActionStatus.COMPLETED
        alert = alerts.get_alert(result.result["ack"]["alert_id"])
        assert alert["schedule"] == "daily"
        assert alert["property_id"] == "lst-2001"

    def test_every_kind_is_dispatchable(self, dispatcher, record):
        specs = [
            ActionSpec(Analyze()),
            ActionSpec(Notify(title="t")),
            ActionSpec(DraftOutreach(template="property_evaluation")),
            ActionSpec(AddToWatchlist()),
            ActionSpec(ScheduleAlert()),
        ]
        results = [dispatcher.execute("deal-1", record, s) for s in specs]

        assert {r.action_kind for r in results} == set(ActionKind)
        assert all(r.status is ActionStatus.COMPLETED for r in results)

    def test_executed_at_from_clock(self, dispatcher, record):
        result = dispatcher.execute("deal-1", record, ActionSpec(AddToWatchlist()))
        assert result.executed_at == FIXED_NOW


class TestFailureCapture:
    def test_collaborator_error_becomes_failed_result(
        self, record, analysis, failing_notifications, outreach, watchlist, alerts
    ):
        dispatcher = ActionDispatcher(
            analysis=analysis,
            notifications=failing_notifications,
            outreach=outreach,
            watchlist=watchlist,
            alerts=alerts,
        )
        result = dispatcher.execute("deal-1", record, ActionSpec(Notify(title="x")))

        assert result.status is ActionStatus.FAILED
        assert result.error == "push gateway unavailable"
        assert result.executed_at is not None
        assert result.result is None

    def test_unexpected_exception_is_captured(
        self, record, analysis, notifications, watchlist, alerts
    ):
        class BrokenOutreach(TemplateOutreachService):
            def draft(self, template, record, options):
                raise KeyError("template_id")

        dispatcher = ActionDispatcher(
            analysis=analysis,
            notifications=notifications,
            outreach=BrokenOutreach(),
            watchlist=watchlist,
            alerts=alerts,
        )
        result = dispatcher.execute(
            "deal-1", record, ActionSpec(DraftOutreach(template="property_evaluation"))
        )

        assert result.status is ActionStatus.FAILED
        assert "template_id" in result.error

    def test_unknown_template_fails(self, dispatcher, record):
        result = dispatcher.execute("deal-1", record, ActionSpec(DraftOutreach(template="nope")))

        assert result.status is ActionStatus.FAILED
        assert "nope" in result.error


class TestDefaultCollaborators:
    def test_record_analysis_uses_feed_valuation(self, make_record):
        record = make_record(estimated_value=275000.0, deal_quality=DealQuality.GOOD)
        outcome = RecordAnalysisService().analyze(record, Analyze())

        assert outcome.estimated_value == 275000.0
        assert outcome.deal_quality is DealQuality.GOOD

    def test_record_analysis_fails_without_valuation(self, make_record):
        with pytest.raises(CollaboratorError):
            RecordAnalysisService().analyze(make_record(), Analyze())

    def test_evaluation_template_mentions_owner_financing(self, make_record):
        service = TemplateOutreachService()
        draft_id = service.draft(
            "property_evaluation", make_record(owner_financing=True), {"priority": "high"}
        )
        body = service.get_draft(draft_id).body

        assert "owner financing" in body
        assert "$250,000" in body

    def test_custom_templates(self, make_record):
        service = TemplateOutreachService(templates={"short": "Re: {{ record.address }}"})
        draft_id = service.draft("short", make_record(address="9 Elm St"), {})

        assert service.get_draft(draft_id).body == "Re: 9 Elm St"
