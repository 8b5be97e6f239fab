"""
Deal Flow Routes - Web API for the Deal Flow Pipeline

Thin wrapper over DealFlowEngine. Handlers are synchronous: FastAPI runs them
in its threadpool, which is where immediate collaborator calls block.

Error mapping:
- UnknownFlowError / UnknownStageError -> 404
- TerminalStageError -> 409
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import BaseModel, Field

from core.deal_flow import (
    DealFlowEngine,
    DealQuality,
    PropertyRecord,
    TerminalStageError,
    UnknownFlowError,
    UnknownStageError,
)


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


def get_engine(request: Request) -> DealFlowEngine:
    """Engine created by the app lifespan."""
    return request.app.state.engine


# =============================================================================
# Request Models
# =============================================================================


class PropertyRecordInput(BaseModel):
    """Discovered property submitted by the discovery feed."""

    id: str = Field(..., min_length=1)
    address: str
    price: Optional[int] = Field(None, ge=0)
    score: Optional[float] = Field(None, ge=0, le=100)
    listing_type: str = ""
    source: str = ""
    url: str = ""
    owner_financing: bool = False
    lease_to_own: bool = False
    va_eligible: bool = False
    usda_eligible: bool = False
    no_credit_check: bool = False
    contract_for_deed: bool = False
    estimated_value: Optional[float] = None
    deal_quality: Optional[DealQuality] = None

    def to_record(self) -> PropertyRecord:
        return PropertyRecord(**self.model_dump())


class AdvanceRequest(BaseModel):
    """Manual stage override."""

    stage: str


# =============================================================================
# Error Translation
# =============================================================================


def _not_found(e: Exception) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


def _conflict(e: Exception) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


# =============================================================================
# Flow Operations
# =============================================================================


@router.post("/flows", status_code=201)
def submit_record(
    payload: PropertyRecordInput,
    response: Response,
    engine: DealFlowEngine = Depends(get_engine),
):
    """
    Create the deal flow for a discovered property.

    A property that already has a flow gets its record refreshed and the
    existing flow back with 200 instead of 201.
    """
    existing = engine.registry.find_by_subject(payload.id)
    flow_id = engine.submit_new_record(payload.to_record())
    created = flow_id != existing
    if not created:
        response.status_code = 200
    return {"flow_id": flow_id, "created": created}


@router.get("/flows")
def list_flows(
    stage: Optional[str] = Query(None, description="Only flows currently in this stage"),
    active: bool = Query(False, description="Only flows not in a terminal stage"),
    engine: DealFlowEngine = Depends(get_engine),
):
    """List flows, optionally filtered by stage or activity."""
    if stage is not None:
        try:
            flows = engine.list_flows_by_stage(stage)
        except UnknownStageError as e:
            raise _not_found(e)
    elif active:
        flows = engine.list_active_flows()
    else:
        flows = engine.list_flows()
    return {"flows": [f.to_dict() for f in flows], "count": len(flows)}


@router.get("/flows/{flow_id}")
def get_flow(flow_id: str, engine: DealFlowEngine = Depends(get_engine)):
    try:
        return engine.get_flow(flow_id).to_dict()
    except UnknownFlowError as e:
        raise _not_found(e)


@router.post("/flows/{flow_id}/advance")
def advance_flow(
    flow_id: str,
    payload: AdvanceRequest,
    engine: DealFlowEngine = Depends(get_engine),
):
    """Manually move a flow to a stage."""
    try:
        current_stage = engine.advance_to_stage(flow_id, payload.stage)
    except (UnknownFlowError, UnknownStageError) as e:
        raise _not_found(e)
    except TerminalStageError as e:
        raise _conflict(e)
    return {"flow_id": flow_id, "current_stage": current_stage}


@router.post("/flows/{flow_id}/pause")
def pause_flow(flow_id: str, engine: DealFlowEngine = Depends(get_engine)):
    try:
        engine.pause_auto_actions(flow_id)
    except UnknownFlowError as e:
        raise _not_found(e)
    except TerminalStageError as e:
        raise _conflict(e)
    return {"flow_id": flow_id, "auto_actions_enabled": False}


@router.post("/flows/{flow_id}/resume")
def resume_flow(flow_id: str, engine: DealFlowEngine = Depends(get_engine)):
    try:
        engine.resume_auto_actions(flow_id)
    except UnknownFlowError as e:
        raise _not_found(e)
    except TerminalStageError as e:
        raise _conflict(e)
    return {"flow_id": flow_id, "auto_actions_enabled": True}


# =============================================================================
# Dashboard
# =============================================================================


@router.get("/stats")
def pipeline_stats(engine: DealFlowEngine = Depends(get_engine)):
    return engine.get_pipeline_stats().to_dict()


@router.get("/stages")
def list_stages(engine: DealFlowEngine = Depends(get_engine)):
    """Stage catalog, in pipeline order."""
    catalog = engine.catalog
    return {
        "stages": [
            {
                "id": stage.id,
                "name": stage.name,
                "description": stage.description,
                "terminal": catalog.is_terminal(stage.id),
                "actions": [
                    {
                        "kind": spec.kind.value,
                        "trigger": spec.trigger.value,
                        "delay_minutes": spec.delay_minutes,
                        "interval_minutes": spec.interval_minutes,
                    }
                    for spec in stage.actions
                ],
            }
            for stage in engine.get_stages()
        ]
    }
