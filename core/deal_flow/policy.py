"""
Auto-advancement policies.

A policy looks at a flow and the effective property record and returns the
stage the flow should move to next, or None to stay put. The engine only
consults it when auto-actions are enabled.
"""

from __future__ import annotations

from typing import Callable, Optional

from core.deal_flow.models import DealFlow, DealQuality, PropertyRecord
from core.deal_flow.stages import DISCOVERY, EVALUATION, HOT_LEAD, QUALIFICATION

TransitionPolicy = Callable[[DealFlow, PropertyRecord], Optional[str]]

EVALUATION_MIN_SCORE = 60
HOT_LEAD_MIN_SCORE = 80


def default_transition_policy(flow: DealFlow, record: PropertyRecord) -> Optional[str]:
    """
    Reference pipeline progression.

    - discovery -> qualification, unconditionally
    - qualification -> evaluation when score >= 60
    - evaluation -> hot_lead when score >= 80 and deal quality is excellent
    - any other stage: manual advancement only
    """
    score = record.score or 0

    if flow.current_stage == DISCOVERY:
        return QUALIFICATION

    if flow.current_stage == QUALIFICATION:
        if score >= EVALUATION_MIN_SCORE:
            return EVALUATION
        return None

    if flow.current_stage == EVALUATION:
        quality = flow.deal_quality or record.deal_quality
        if score >= HOT_LEAD_MIN_SCORE and quality is DealQuality.EXCELLENT:
            return HOT_LEAD
        return None

    return None
