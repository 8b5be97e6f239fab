"""
Deal Flow Pipeline

Stage-based workflow engine that carries each discovered property through
qualification stages, running the actions bound to each stage and
auto-advancing flows according to a swappable policy.
"""

from .errors import (
    CollaboratorError,
    DealFlowError,
    TerminalStageError,
    UnknownFlowError,
    UnknownStageError,
)
from .models import (
    Action,
    ActionKind,
    ActionResult,
    ActionSpec,
    ActionStatus,
    AddToWatchlist,
    Analyze,
    Criteria,
    DealFlow,
    DealQuality,
    DraftOutreach,
    FeatureTag,
    Notify,
    PropertyRecord,
    ScheduleAlert,
    Stage,
    StageEntry,
    Trigger,
    Urgency,
)
from .stages import DEFAULT_CATALOG, DEFAULT_STAGES, StageCatalog
from .criteria import FEATURE_FLAGS, evaluate, has_feature
from .collaborators import (
    AlertService,
    AnalysisOutcome,
    AnalysisService,
    InMemoryAlertService,
    InMemoryWatchlistService,
    LoggingNotificationService,
    NotificationService,
    OutreachService,
    RecordAnalysisService,
    WatchlistService,
)
from .outreach import OutreachDraft, TemplateOutreachService
from .records import InMemoryRecordStore, RecordStore
from .dispatcher import ActionDispatcher
from .scheduler import ManualScheduler, Scheduler, ThreadedScheduler
from .policy import TransitionPolicy, default_transition_policy
from .registry import FlowRegistry, PipelineStats
from .engine import DEFAULT_AUTO_ADVANCE_DELAY_SECONDS, DealFlowEngine

__all__ = [
    # Errors
    "CollaboratorError",
    "DealFlowError",
    "TerminalStageError",
    "UnknownFlowError",
    "UnknownStageError",
    # Models
    "Action",
    "ActionKind",
    "ActionResult",
    "ActionSpec",
    "ActionStatus",
    "AddToWatchlist",
    "Analyze",
    "Criteria",
    "DealFlow",
    "DealQuality",
    "DraftOutreach",
    "FeatureTag",
    "Notify",
    "PropertyRecord",
    "ScheduleAlert",
    "Stage",
    "StageEntry",
    "Trigger",
    "Urgency",
    # Stage catalog and criteria
    "DEFAULT_CATALOG",
    "DEFAULT_STAGES",
    "StageCatalog",
    "FEATURE_FLAGS",
    "evaluate",
    "has_feature",
    # Collaborators
    "AlertService",
    "AnalysisOutcome",
    "AnalysisService",
    "InMemoryAlertService",
    "InMemoryWatchlistService",
    "LoggingNotificationService",
    "NotificationService",
    "OutreachService",
    "RecordAnalysisService",
    "WatchlistService",
    "OutreachDraft",
    "TemplateOutreachService",
    "InMemoryRecordStore",
    "RecordStore",
    # Engine
    "ActionDispatcher",
    "ManualScheduler",
    "Scheduler",
    "ThreadedScheduler",
    "TransitionPolicy",
    "default_transition_policy",
    "FlowRegistry",
    "PipelineStats",
    "DEFAULT_AUTO_ADVANCE_DELAY_SECONDS",
    "DealFlowEngine",
]
