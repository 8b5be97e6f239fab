"""
Deal Flow Engine - Core Business Logic

This module provides the deal flow pipeline for discovered properties:
1. Discovery (flow created, priority scored, initial analysis)
2. Qualification (basic screening)
3. Evaluation (deep analysis, delayed outreach draft)
4. Hot Lead (critical alert, outreach, watchlist)
5. Under Contract (recurring tracking alert)
6. Closed / Archived (terminal)
"""

# Imported before scoring: core.scoring depends on core.deal_flow.models
from .deal_flow import (
    DealFlow,
    DealFlowEngine,
    DealFlowError,
    PropertyRecord,
    StageCatalog,
    DEFAULT_CATALOG,
)
from .scoring import PriorityScorer

__all__ = [
    "DealFlow",
    "DealFlowEngine",
    "DealFlowError",
    "PropertyRecord",
    "StageCatalog",
    "DEFAULT_CATALOG",
    "PriorityScorer",
]
