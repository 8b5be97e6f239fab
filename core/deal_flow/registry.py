"""
Flow Registry - Ownership and Read Access for Deal Flows

The registry owns every DealFlow for the life of the process (terminal flows
stay queryable) along with the per-flow locks that serialize mutation.
Storage is an injected mapping; the default is a plain dict.

Query methods return deep copies taken under the flow lock, so callers never
observe a flow halfway through a transition.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any, Callable, Optional

from core.deal_flow.errors import UnknownFlowError
from core.deal_flow.models import DealFlow


@dataclass(frozen=True)
class PipelineStats:
    """Aggregate dashboard view of the pipeline."""

    total_flows: int
    total_active: int
    by_stage: dict[str, int]
    hot_leads: int
    average_minutes_in_stage: dict[str, float]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_flows": self.total_flows,
            "total_active": self.total_active,
            "by_stage": dict(self.by_stage),
            "hot_leads": self.hot_leads,
            "average_minutes_in_stage": dict(self.average_minutes_in_stage),
        }


class FlowRegistry:
    """
    Registry of deal flows keyed by flow id.

    Usage:
        registry = FlowRegistry()
        registry.add(flow)

        with registry.lock_for(flow.id):
            live = registry.get_live(flow.id)
            # mutate live flow
    """

    def __init__(self, storage: Optional[MutableMapping[str, DealFlow]] = None):
        """
        Initialise registry.

        Args:
            storage: Mapping of flow id -> DealFlow. Defaults to a new dict.
        """
        self._flows: MutableMapping[str, DealFlow] = storage if storage is not None else {}
        self._by_subject: dict[str, str] = {
            flow.subject_id: flow_id for flow_id, flow in self._flows.items()
        }
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    # =========================================================================
    # Writer Access (engine only)
    # =========================================================================

    def lock_for(self, flow_id: str) -> threading.RLock:
        """Return the re-entrant lock serializing mutation of one flow."""
        with self._guard:
            lock = self._locks.get(flow_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[flow_id] = lock
            return lock

    def add(self, flow: DealFlow) -> None:
        """
        Register a new flow.

        Raises:
            ValueError: If the flow id or its subject is already registered
        """
        with self._guard:
            if flow.id in self._flows:
                raise ValueError(f"Deal flow {flow.id} already exists")
            if flow.subject_id in self._by_subject:
                raise ValueError(f"Subject {flow.subject_id} already has a deal flow")
            self._flows[flow.id] = flow
            self._by_subject[flow.subject_id] = flow.id

    def get_live(self, flow_id: str) -> DealFlow:
        """Return the stored flow object itself. Hold lock_for(flow_id) while using it."""
        with self._guard:
            flow = self._flows.get(flow_id)
        if flow is None:
            raise UnknownFlowError(flow_id)
        return flow

    def find_by_subject(self, subject_id: str) -> Optional[str]:
        """Flow id for a property, if one has been created."""
        with self._guard:
            return self._by_subject.get(subject_id)

    def __contains__(self, flow_id: object) -> bool:
        with self._guard:
            return flow_id in self._flows

    def __len__(self) -> int:
        with self._guard:
            return len(self._flows)

    def clear(self) -> None:
        """Drop every flow and lock. Teardown only."""
        with self._guard:
            self._flows.clear()
            self._by_subject.clear()
            self._locks.clear()

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, flow_id: str) -> DealFlow:
        """
        Snapshot of one flow.

        Raises:
            UnknownFlowError: If the flow id is not registered
        """
        flow = self.get_live(flow_id)
        with self.lock_for(flow_id):
            return copy.deepcopy(flow)

    def snapshot(self, predicate: Optional[Callable[[DealFlow], bool]] = None) -> list[DealFlow]:
        """Snapshots of all flows matching predicate, oldest first."""
        with self._guard:
            flow_ids = list(self._flows)

        result = []
        for flow_id in flow_ids:
            flow = self.get(flow_id)
            if predicate is None or predicate(flow):
                result.append(flow)
        return sorted(result, key=lambda f: f.created_at)

    def stats(
        self,
        stage_ids: list[str],
        hot_stage: str,
        terminal: frozenset[str],
    ) -> PipelineStats:
        """
        Aggregate counts and dwell times.

        Args:
            stage_ids: Every catalog stage, so empty stages report 0.
            hot_stage: Stage whose population is reported as hot leads.
            terminal: Stages that do not count as active.

        Returns:
            PipelineStats
        """
        flows = self.snapshot()

        by_stage = {stage_id: 0 for stage_id in stage_ids}
        for flow in flows:
            by_stage[flow.current_stage] = by_stage.get(flow.current_stage, 0) + 1

        dwell: dict[str, list[float]] = {}
        for flow in flows:
            for entry in flow.stage_history:
                minutes = entry.minutes_in_stage
                if minutes is not None:
                    dwell.setdefault(entry.stage, []).append(minutes)

        return PipelineStats(
            total_flows=len(flows),
            total_active=sum(1 for f in flows if f.current_stage not in terminal),
            by_stage=by_stage,
            hot_leads=by_stage.get(hot_stage, 0),
            average_minutes_in_stage={
                stage: sum(times) / len(times) for stage, times in dwell.items()
            },
        )
