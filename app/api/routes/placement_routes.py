"""
Placement Safety Routes

GET /placements/at-risk - Placements inside their guarantee window, soonest first
POST /placements/{candidate_id}/followup - Log a follow-up call
POST /placements/{candidate_id}/flag-risk - Mark a placement at risk
POST /placements/expire - Run the guarantee expiry sweep now
"""

from fastapi import APIRouter, HTTPException, Depends, Query
from typing import Optional

from app.core.auth import get_current_actor
from app.core.config import get_settings
from app.models.enums import ScopeKind
from app.models.placement import Actor, AtRiskScope, PlacementSafetyRecord
from app.services import placement_safety_service
from app.utils.clock import today
from app.utils.retry import retry_on_conflict
from app.schemas.schemas import (
    AtRiskListResponse, ExpireResponse, FlagRiskRequest, FollowupRequest,
    SafetyRecordResponse,
)

router = APIRouter(prefix="/placements", tags=["Placements"])


def _to_response(record: PlacementSafetyRecord) -> SafetyRecordResponse:
    days = record.days_remaining(today())
    return SafetyRecordResponse(
        candidate_id=record.candidate_id,
        safety_status=record.safety_status,
        joining_date=record.joining_date,
        guarantee_period_ends=record.guarantee_period_ends,
        days_remaining=days,
        risk_band=placement_safety_service.risk_band(days),
        last_followup_date=record.last_followup_date,
        risk_notes=record.risk_notes,
    )


@router.get("/at-risk", response_model=AtRiskListResponse)
def list_at_risk(
    scope: ScopeKind = Query(ScopeKind.individual, description="individual | team | all"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    actor: Actor = Depends(get_current_actor),
):
    """
    At-risk dashboard.

    - individual: placements owned by the caller
    - team: placements owned by anyone on the caller's team
    - all: every active placement
    """
    as_of = today()
    try:
        query_scope = AtRiskScope.for_actor(actor, scope)
        placements = placement_safety_service.list_at_risk(
            query_scope,
            today=as_of,
            limit=limit or get_settings().at_risk_default_limit,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AtRiskListResponse(
        placements=placements,
        summary=placement_safety_service.summarize(placements),
        revenue=placement_safety_service.summarize_revenue(query_scope, today=as_of),
        scope=scope,
        as_of=as_of,
    )


@router.post("/{candidate_id}/followup", response_model=SafetyRecordResponse)
def record_followup(
    candidate_id: int,
    data: FollowupRequest,
    actor: Actor = Depends(get_current_actor),
):
    record = retry_on_conflict(
        lambda: placement_safety_service.record_followup(
            candidate_id, data.notes, actor,
            resolved=data.resolved,
            followup_date=data.followup_date,
        )
    )
    return _to_response(record)


@router.post("/{candidate_id}/flag-risk", response_model=SafetyRecordResponse)
def flag_risk(
    candidate_id: int,
    data: FlagRiskRequest,
    actor: Actor = Depends(get_current_actor),
):
    try:
        record = retry_on_conflict(
            lambda: placement_safety_service.flag_risk(candidate_id, data.risk_notes, actor)
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _to_response(record)


@router.post("/expire", response_model=ExpireResponse)
def expire_guarantees(actor: Actor = Depends(get_current_actor)):
    """Manual trigger for the periodic sweep. Safe to call repeatedly."""
    result = placement_safety_service.expire_guarantees()
    return ExpireResponse(**result.model_dump())
