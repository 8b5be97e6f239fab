"""
Deal flow pipeline errors.

Structural errors (unknown flow, unknown stage, terminal stage) are raised to
callers at the engine boundary. Action failures never appear here: the
dispatcher records them as failed ActionResults.
"""

from __future__ import annotations


class DealFlowError(Exception):
    """Base class for pipeline errors surfaced to callers."""


class UnknownFlowError(DealFlowError):
    """Raised when a flow id is not in the registry."""

    def __init__(self, flow_id: str):
        self.flow_id = flow_id
        super().__init__(f"Deal flow not found: {flow_id}")


class UnknownStageError(DealFlowError):
    """Raised when a stage id is not in the stage catalog."""

    def __init__(self, stage_id: str):
        self.stage_id = stage_id
        super().__init__(f"Stage not found: {stage_id}")


class TerminalStageError(DealFlowError):
    """Raised when a flow in a terminal stage is asked to change."""

    def __init__(self, flow_id: str, stage_id: str):
        self.flow_id = flow_id
        self.stage_id = stage_id
        super().__init__(f"Deal flow {flow_id} is in terminal stage {stage_id}")


class CollaboratorError(Exception):
    """Raised by external collaborators to signal a failed call."""
