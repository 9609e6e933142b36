"""
Candidate Routes

POST /candidates - Create candidate (stage sourced)
POST /candidates/from-resume - Parse resume text and create candidate
GET /candidates/{candidate_id} - Get candidate
POST /candidates/{candidate_id}/transition - Move to another stage
POST /candidates/{candidate_id}/renege - Reverse a placement
GET /candidates/{candidate_id}/timeline - Audit log, oldest first

Engine errors are turned into HTTP responses by the handler in app.main.
Mutations retry on version conflicts before giving up with 409.
"""

from fastapi import APIRouter, Depends

from app.core.auth import get_current_actor
from app.models.placement import Actor, Candidate, TransitionContext
from app.services import candidate_service, renege_service, stage_machine, timeline_service
from app.utils.retry import retry_on_conflict
from app.schemas.schemas import (
    CandidateCreate, CandidateResponse, RenegeRequest, ResumeIntakeRequest,
    ResumeIntakeResponse, TimelineResponse, TransitionRequest,
)

router = APIRouter(prefix="/candidates", tags=["Candidates"])


def _to_response(candidate: Candidate) -> CandidateResponse:
    return CandidateResponse.model_validate(candidate.model_dump())


@router.post("", response_model=CandidateResponse, status_code=201)
def create_candidate(data: CandidateCreate, actor: Actor = Depends(get_current_actor)):
    """Create a candidate at the sourced stage."""
    candidate = candidate_service.create_candidate(data.model_dump(), actor)
    return _to_response(candidate)


@router.post("/from-resume", response_model=ResumeIntakeResponse, status_code=201)
def create_from_resume(data: ResumeIntakeRequest, actor: Actor = Depends(get_current_actor)):
    """
    Create a candidate from pasted resume text.

    Process:
    1. AI parses name, contact, CTC, skills
    2. Raw + parsed documents stored in MongoDB
    3. Candidate row + timeline entries written in one transaction
    """
    result = candidate_service.create_from_resume(
        job_id=data.job_id,
        resume_text=data.resume_text,
        actor=actor,
        assigned_to=data.assigned_to,
        filename=data.filename,
    )
    return ResumeIntakeResponse(
        candidate=_to_response(result.candidate),
        parsed_data=result.parsed_data,
        confidence=result.confidence,
        cached=result.cached,
    )


@router.get("/{candidate_id}", response_model=CandidateResponse)
def get_candidate(candidate_id: int, actor: Actor = Depends(get_current_actor)):
    return _to_response(candidate_service.get_candidate(candidate_id))


@router.post("/{candidate_id}/transition", response_model=CandidateResponse)
def transition_candidate(
    candidate_id: int,
    data: TransitionRequest,
    actor: Actor = Depends(get_current_actor),
):
    """
    Move a candidate along the pipeline.

    - offer_made needs `offer.fixed_ctc`
    - joined needs an accepted offer; `joining_date` defaults to today
    """
    context = TransitionContext(offer=data.offer, joining_date=data.joining_date, notes=data.notes)
    candidate = retry_on_conflict(
        lambda: stage_machine.transition(candidate_id, data.target_stage, actor, context)
    )
    return _to_response(candidate)


@router.post("/{candidate_id}/renege", response_model=CandidateResponse)
def renege_candidate(
    candidate_id: int,
    data: RenegeRequest,
    actor: Actor = Depends(get_current_actor),
):
    """Mark an accepted or joined placement as reneged. Revenue is reversed."""
    candidate = retry_on_conflict(
        lambda: renege_service.renege(
            candidate_id, data.renege_type, data.renege_reason, data.renege_date, actor,
        )
    )
    return _to_response(candidate)


@router.get("/{candidate_id}/timeline", response_model=TimelineResponse)
def get_timeline(candidate_id: int, actor: Actor = Depends(get_current_actor)):
    # 404 for unknown candidates rather than an empty list
    candidate_service.get_candidate(candidate_id)
    entries = timeline_service.list_for_candidate(candidate_id)
    return TimelineResponse(candidate_id=candidate_id, entries=entries, total=len(entries))
