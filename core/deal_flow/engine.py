"""
Deal Flow Engine - Stage Transitions for Discovered Properties

The engine is the single writer of DealFlow state. Every mutation happens
while holding the flow's lock from the registry, so timers firing close
together for the same flow are serialized while different flows proceed in
parallel on the scheduler's workers.

Transition (advance_to_stage):
1. Close the current stage entry
2. Open an entry for the target stage and make it current
3. Evaluate the target's entry criteria; on failure redirect to archived
   without running the target's actions (archived always passes)
4. Run immediate actions inline, hand delayed / scheduled actions to the
   scheduler
5. Schedule an auto-advancement check

Terminal flows (closed, archived) cannot be advanced, paused or resumed.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from datetime import timedelta
from functools import partial
from typing import Final, Optional
from uuid import uuid4

from core.deal_flow.collaborators import (
    AlertService,
    AnalysisService,
    InMemoryAlertService,
    InMemoryWatchlistService,
    LoggingNotificationService,
    NotificationService,
    OutreachService,
    RecordAnalysisService,
    WatchlistService,
)
from core.deal_flow.criteria import evaluate
from core.deal_flow.dispatcher import ActionDispatcher
from core.deal_flow.errors import TerminalStageError, UnknownFlowError
from core.deal_flow.models import (
    ActionKind,
    ActionResult,
    ActionSpec,
    ActionStatus,
    DealFlow,
    DealQuality,
    PropertyRecord,
    Stage,
    StageEntry,
    Trigger,
)
from core.deal_flow.outreach import TemplateOutreachService
from core.deal_flow.policy import TransitionPolicy, default_transition_policy
from core.deal_flow.records import InMemoryRecordStore, RecordStore
from core.deal_flow.registry import FlowRegistry, PipelineStats
from core.deal_flow.scheduler import Scheduler, ThreadedScheduler
from core.deal_flow.stages import DEFAULT_CATALOG, StageCatalog
from core.scoring import PriorityScorer

logger = logging.getLogger(__name__)

DEFAULT_AUTO_ADVANCE_DELAY_SECONDS: Final = 5.0


class DealFlowEngine:
    """
    Owns deal flows and drives them through the stage catalog.

    Usage:
        engine = DealFlowEngine.with_defaults()
        engine.start()

        flow_id = engine.submit_new_record(record)
        engine.advance_to_stage(flow_id, "under_contract")
        stats = engine.get_pipeline_stats()

        engine.shutdown()
    """

    def __init__(
        self,
        records: RecordStore,
        dispatcher: ActionDispatcher,
        scheduler: Scheduler,
        catalog: StageCatalog = DEFAULT_CATALOG,
        policy: TransitionPolicy = default_transition_policy,
        registry: Optional[FlowRegistry] = None,
        scorer: Optional[PriorityScorer] = None,
        auto_advance_delay_seconds: float = DEFAULT_AUTO_ADVANCE_DELAY_SECONDS,
    ):
        """
        Initialize the engine.

        Args:
            records: Store of property snapshots, read on every transition.
            dispatcher: Executes stage actions.
            scheduler: Timer service; also the engine's clock.
            catalog: Stage definitions.
            policy: Auto-advancement policy.
            registry: Flow registry. Defaults to an in-memory registry.
            scorer: Priority scorer used at flow creation.
            auto_advance_delay_seconds: Delay between a stage settling and
                the auto-advancement check.
        """
        if auto_advance_delay_seconds < 0:
            raise ValueError("auto_advance_delay_seconds cannot be negative")
        self._records = records
        self._dispatcher = dispatcher
        self._scheduler = scheduler
        self._catalog = catalog
        self._policy = policy
        self._registry = registry if registry is not None else FlowRegistry()
        self._scorer = scorer or PriorityScorer()
        self._auto_advance_delay = auto_advance_delay_seconds
        self._submit_lock = threading.Lock()

    @classmethod
    def with_defaults(
        cls,
        scheduler: Optional[Scheduler] = None,
        records: Optional[RecordStore] = None,
        analysis: Optional[AnalysisService] = None,
        notifications: Optional[NotificationService] = None,
        outreach: Optional[OutreachService] = None,
        watchlist: Optional[WatchlistService] = None,
        alerts: Optional[AlertService] = None,
        currency: str = "USD",
        max_workers: int = 4,
        **kwargs,
    ) -> "DealFlowEngine":
        """Build an engine wired to the in-process collaborators."""
        scheduler = scheduler or ThreadedScheduler(max_workers=max_workers)
        dispatcher = ActionDispatcher(
            analysis=analysis or RecordAnalysisService(),
            notifications=notifications or LoggingNotificationService(),
            outreach=outreach or TemplateOutreachService(currency=currency),
            watchlist=watchlist or InMemoryWatchlistService(),
            alerts=alerts or InMemoryAlertService(),
            clock=scheduler.now,
            currency=currency,
        )
        return cls(
            records=records or InMemoryRecordStore(),
            dispatcher=dispatcher,
            scheduler=scheduler,
            **kwargs,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def catalog(self) -> StageCatalog:
        return self._catalog

    @property
    def registry(self) -> FlowRegistry:
        return self._registry

    def start(self) -> None:
        self._scheduler.start()

    def shutdown(self, wait: bool = True) -> None:
        self._scheduler.shutdown(wait=wait)

    # =========================================================================
    # Mutations
    # =========================================================================

    def submit_new_record(self, record: PropertyRecord) -> str:
        """
        Create a deal flow for a newly discovered property.

        The flow enters the initial stage atomically with creation. A property
        that already has a flow gets its stored snapshot refreshed and the
        existing flow id back.

        Returns:
            The flow id
        """
        self._records.put_record(record)

        now = self._scheduler.now()
        initial = self._catalog.get(self._catalog.initial)
        flow = DealFlow(
            id=f"deal_{record.id}_{uuid4().hex[:8]}",
            subject_id=record.id,
            current_stage=initial.id,
            stage_history=[StageEntry(stage=initial.id, entered_at=now)],
            priority=self._scorer.score(record),
            created_at=now,
            updated_at=now,
        )

        with self._submit_lock:
            existing = self._registry.find_by_subject(record.id)
            if existing is not None:
                logger.info("Property %s already has deal flow %s", record.id, existing)
                return existing
            # Held before the flow is visible so no one observes it mid-entry.
            flow_lock = self._registry.lock_for(flow.id)
            flow_lock.acquire()
            self._registry.add(flow)

        try:
            logger.info(
                "Created deal flow %s for property %s (priority %.1f)",
                flow.id,
                record.id,
                flow.priority,
            )
            self._enter_stage(flow, initial)
        finally:
            flow_lock.release()
        return flow.id

    def advance_to_stage(self, flow_id: str, stage_id: str) -> str:
        """
        Move a flow to a stage (manual override).

        Returns:
            The stage the flow ended up in: stage_id, or archived if the
            stage's criteria were not met.

        Raises:
            UnknownFlowError: If the flow does not exist
            UnknownStageError: If the stage is not in the catalog
            TerminalStageError: If the flow is already in a terminal stage
        """
        flow = self._registry.get_live(flow_id)
        stage = self._catalog.get(stage_id)

        with self._registry.lock_for(flow_id):
            self._require_not_terminal(flow)
            self._transition(flow, stage)
            return flow.current_stage

    def pause_auto_actions(self, flow_id: str) -> None:
        """Disable auto-advancement and pending delayed/scheduled actions for a flow."""
        flow = self._registry.get_live(flow_id)
        with self._registry.lock_for(flow_id):
            self._require_not_terminal(flow)
            flow.auto_actions_enabled = False
            flow.updated_at = self._scheduler.now()
        logger.info("Paused auto actions for deal flow %s", flow_id)

    def resume_auto_actions(self, flow_id: str) -> None:
        """Re-enable auto actions and schedule a fresh auto-advancement check."""
        flow = self._registry.get_live(flow_id)
        with self._registry.lock_for(flow_id):
            self._require_not_terminal(flow)
            if flow.auto_actions_enabled:
                return
            flow.auto_actions_enabled = True
            flow.updated_at = self._scheduler.now()
            self._schedule_auto_advance(flow)
        logger.info("Resumed auto actions for deal flow %s", flow_id)

    def check_auto_advancement(self, flow_id: str) -> Optional[str]:
        """
        Apply the transition policy to a flow now.

        Returns:
            The stage the flow moved to, or None if it stayed put.

        Raises:
            UnknownFlowError: If the flow does not exist
        """
        flow = self._registry.get_live(flow_id)
        with self._registry.lock_for(flow_id):
            return self._advance_if_due(flow)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_flow(self, flow_id: str) -> DealFlow:
        return self._registry.get(flow_id)

    def list_flows(self) -> list[DealFlow]:
        return self._registry.snapshot()

    def list_active_flows(self) -> list[DealFlow]:
        """Flows not yet in a terminal stage."""
        return self._registry.snapshot(
            lambda f: not self._catalog.is_terminal(f.current_stage)
        )

    def list_flows_by_stage(self, stage_id: str) -> list[DealFlow]:
        self._catalog.get(stage_id)
        return self._registry.snapshot(lambda f: f.current_stage == stage_id)

    def get_pipeline_stats(self) -> PipelineStats:
        return self._registry.stats(
            stage_ids=self._catalog.stage_ids,
            hot_stage=self._catalog.hot,
            terminal=self._catalog.terminal,
        )

    def get_stages(self) -> tuple[Stage, ...]:
        return self._catalog.stages

    # =========================================================================
    # Transition Internals (flow lock held)
    # =========================================================================

    def _require_not_terminal(self, flow: DealFlow) -> None:
        if self._catalog.is_terminal(flow.current_stage):
            raise TerminalStageError(flow.id, flow.current_stage)

    def _transition(self, flow: DealFlow, stage: Stage) -> None:
        now = self._scheduler.now()

        current = flow.current_entry
        if current.completed_at is None:
            current.completed_at = now

        previous = flow.current_stage
        flow.stage_history.append(StageEntry(stage=stage.id, entered_at=now))
        flow.current_stage = stage.id
        flow.updated_at = now
        logger.info("Deal flow %s: %s -> %s", flow.id, previous, stage.id)

        self._enter_stage(flow, stage)

    def _enter_stage(self, flow: DealFlow, stage: Stage) -> None:
        entry = flow.current_entry
        archived = self._catalog.archived

        snapshot = self._records.get_record(flow.subject_id)
        if snapshot is None:
            logger.warning(
                "Property %s no longer available for deal flow %s",
                flow.subject_id,
                flow.id,
            )
            if stage.id != archived:
                self._transition(flow, self._catalog.get(archived))
            return

        record = self._effective_record(flow, snapshot)
        if not evaluate(record, stage.criteria):
            logger.info(
                "Deal flow %s does not meet %s criteria, archiving",
                flow.id,
                stage.id,
            )
            # Archived has empty criteria, so this redirect is the only extra hop.
            self._transition(flow, self._catalog.get(archived))
            return

        for spec in stage.actions:
            if spec.trigger is Trigger.IMMEDIATE:
                result = self._dispatcher.execute(flow.id, record, spec)
                self._record_result(flow, entry, result)
                if spec.kind is ActionKind.ANALYZE and result.status is ActionStatus.COMPLETED:
                    # Later actions of this entry see the fresh valuation.
                    record = self._effective_record(flow, snapshot)
            elif spec.trigger is Trigger.DELAYED:
                self._schedule_delayed(flow, entry, record, spec)
            else:
                self._schedule_periodic(flow.id, entry, spec)

        if not self._catalog.is_terminal(stage.id):
            self._schedule_auto_advance(flow)

    def _advance_if_due(self, flow: DealFlow) -> Optional[str]:
        if not flow.auto_actions_enabled:
            logger.debug("Auto actions paused for deal flow %s", flow.id)
            return None
        if self._catalog.is_terminal(flow.current_stage):
            return None

        snapshot = self._records.get_record(flow.subject_id)
        if snapshot is None:
            logger.warning("Property %s missing, cannot auto-advance %s", flow.subject_id, flow.id)
            return None

        target = self._policy(flow, self._effective_record(flow, snapshot))
        if target is None:
            return None

        logger.info("Auto-advancing deal flow %s to %s", flow.id, target)
        self._transition(flow, self._catalog.get(target))
        return flow.current_stage

    def _record_result(self, flow: DealFlow, entry: StageEntry, result: ActionResult) -> None:
        entry.actions.append(result)

        if self._catalog.is_terminal(flow.current_stage):
            return
        if result.action_kind is ActionKind.ANALYZE and result.status is ActionStatus.COMPLETED:
            flow.estimated_value = result.result["estimated_value"]
            flow.deal_quality = DealQuality(result.result["deal_quality"])
        flow.updated_at = self._scheduler.now()

    @staticmethod
    def _effective_record(flow: DealFlow, record: PropertyRecord) -> PropertyRecord:
        """The stored snapshot with the flow's analysed attributes overlaid."""
        changes = {}
        if flow.estimated_value is not None:
            changes["estimated_value"] = flow.estimated_value
        if flow.deal_quality is not None:
            changes["deal_quality"] = flow.deal_quality
        return dataclasses.replace(record, **changes) if changes else record

    # =========================================================================
    # Scheduled Work
    # =========================================================================

    def _schedule_auto_advance(self, flow: DealFlow) -> None:
        self._scheduler.call_later(
            self._auto_advance_delay,
            partial(self._on_auto_advance, flow.id, len(flow.stage_history)),
        )

    def _schedule_delayed(
        self,
        flow: DealFlow,
        entry: StageEntry,
        record: PropertyRecord,
        spec: ActionSpec,
    ) -> None:
        due = entry.entered_at + timedelta(minutes=spec.delay_minutes)
        delay = max(0.0, (due - self._scheduler.now()).total_seconds())
        self._scheduler.call_later(
            delay, partial(self._on_delayed_action, flow.id, entry, record, spec)
        )

    def _schedule_periodic(self, flow_id: str, entry: StageEntry, spec: ActionSpec) -> None:
        self._scheduler.call_later(
            spec.interval_minutes * 60,
            partial(self._on_scheduled_action, flow_id, entry, spec),
        )

    def _live(self, flow_id: str) -> Optional[DealFlow]:
        try:
            return self._registry.get_live(flow_id)
        except UnknownFlowError:
            logger.debug("Timer fired for unknown deal flow %s", flow_id)
            return None

    def _on_auto_advance(self, flow_id: str, entry_count: int) -> None:
        flow = self._live(flow_id)
        if flow is None:
            return
        with self._registry.lock_for(flow_id):
            if len(flow.stage_history) != entry_count:
                logger.debug("Skipping stale auto-advance check for %s", flow_id)
                return
            self._advance_if_due(flow)

    def _on_delayed_action(
        self,
        flow_id: str,
        entry: StageEntry,
        record: PropertyRecord,
        spec: ActionSpec,
    ) -> None:
        flow = self._live(flow_id)
        if flow is None:
            return
        lock = self._registry.lock_for(flow_id)
        with lock:
            if not flow.auto_actions_enabled:
                logger.debug(
                    "Skipping delayed %s for paused deal flow %s", spec.kind.value, flow_id
                )
                return

        # Collaborator call runs unlocked; the result lands on the entry
        # that was current when the action was scheduled.
        result = self._dispatcher.execute(flow_id, record, spec)
        with lock:
            self._record_result(flow, entry, result)

    def _on_scheduled_action(self, flow_id: str, entry: StageEntry, spec: ActionSpec) -> None:
        flow = self._live(flow_id)
        if flow is None:
            return
        lock = self._registry.lock_for(flow_id)
        with lock:
            if flow.current_entry is not entry:
                logger.debug(
                    "Deal flow %s left %s, stopping scheduled %s",
                    flow_id,
                    entry.stage,
                    spec.kind.value,
                )
                return
            self._schedule_periodic(flow_id, entry, spec)
            if not flow.auto_actions_enabled:
                logger.debug(
                    "Skipping scheduled %s for paused deal flow %s", spec.kind.value, flow_id
                )
                return
            snapshot = self._records.get_record(flow.subject_id)
            if snapshot is None:
                return
            record = self._effective_record(flow, snapshot)

        result = self._dispatcher.execute(flow_id, record, spec)
        with lock:
            self._record_result(flow, entry, result)
