"""
Stage Machine - the only writer of Candidate.current_stage.

PIPELINE:
sourced → screening → interview_scheduled → interview_completed
        → offer_made → offer_accepted → joined

- rejected / dropped are reachable from every non-terminal stage
- interview_completed may go back to interview_scheduled (next round)
- joined, rejected, dropped are terminal; renege is the only way out of
  joined and it lives in renege_service

Each transition is one transaction: CAS update of the candidate, the
offer / safety-record side effects, and exactly one timeline entry.
"""

import logging
from datetime import timedelta
from typing import Mapping, Union

from sqlalchemy.orm import Session

from app.core.exceptions import DataIntegrityError, InvalidTransition
from app.db import repository
from app.db.postgres import get_db_session
from app.models.enums import (
    ActivityType, CandidateStage, OfferStatus, PlacementStatus, SafetyStatus,
)
from app.models.placement import Actor, Candidate, TransitionContext
from app.services import timeline_service
from app.services.revenue_calculator import compute_revenue
from app.utils.clock import today, utcnow

logger = logging.getLogger(__name__)

S = CandidateStage

EXIT_STAGES = frozenset({S.rejected, S.dropped})
TERMINAL_STAGES = frozenset({S.joined, S.rejected, S.dropped})

ALLOWED_TRANSITIONS = {
    S.sourced: {S.screening},
    S.screening: {S.interview_scheduled},
    S.interview_scheduled: {S.interview_completed},
    S.interview_completed: {S.interview_scheduled, S.offer_made},
    S.offer_made: {S.offer_accepted},
    S.offer_accepted: {S.joined},
    S.joined: set(),
    S.rejected: set(),
    S.dropped: set(),
}

STAGE_DATE_FIELDS = {
    S.sourced: "date_sourced",
    S.screening: "date_screening_started",
    S.interview_scheduled: "date_interview_scheduled",
    S.interview_completed: "date_interview_completed",
    S.offer_made: "date_offer_made",
    S.offer_accepted: "date_offer_accepted",
    S.joined: "date_joined",
    S.rejected: "date_rejected",
    S.dropped: "date_dropped",
}

LIVE_OFFER_STATUSES = frozenset({OfferStatus.pending, OfferStatus.accepted})


def allowed_targets(stage: CandidateStage) -> set:
    """Stages reachable in one step from `stage`."""
    stage = CandidateStage(stage)
    if stage in TERMINAL_STAGES:
        return set()
    return set(ALLOWED_TRANSITIONS[stage]) | set(EXIT_STAGES)


def can_transition(current: CandidateStage, target: CandidateStage) -> bool:
    return CandidateStage(target) in allowed_targets(current)


def _label(stage: CandidateStage) -> str:
    return stage.value.replace("_", " ")


def transition(
    candidate_id: int,
    target_stage: Union[CandidateStage, str],
    actor: Actor,
    context: Union[TransitionContext, Mapping, None] = None,
) -> Candidate:
    """
    Move a candidate to `target_stage`.

    Raises:
        InvalidTransition: target not reachable from the current stage
        DataIntegrityError: offer terms / accepted offer / client missing
        ConcurrentModification: another mutation on this candidate won
    """
    if not isinstance(context, TransitionContext):
        context = TransitionContext.model_validate(context or {})

    with get_db_session() as db:
        candidate = repository.fetch_candidate(db, candidate_id)
        current = candidate.current_stage
        try:
            target = CandidateStage(target_stage)
        except ValueError:
            raise InvalidTransition(current.value, str(target_stage), candidate_id) from None
        if not can_transition(current, target):
            raise InvalidTransition(current.value, target.value, candidate_id)

        now = utcnow()
        values = {
            "current_stage": target,
            "last_activity_date": now,
            STAGE_DATE_FIELDS[target]: now,
        }
        entry = {
            "activity_type": ActivityType.stage_change,
            "title": "Stage Updated",
            "description": f"Stage changed from {_label(current)} to {_label(target)}",
            "metadata": {"from_stage": current.value, "to_stage": target.value},
        }

        if target == S.offer_made:
            _make_offer(db, candidate, context, entry)
        elif target == S.offer_accepted:
            _accept_offer(db, candidate, entry)
        elif target == S.joined:
            _join(db, candidate, context, values, entry)
        elif target in EXIT_STAGES:
            _close_offer(db, candidate, target, entry)

        if context.notes:
            entry["description"] += f". Notes: {context.notes}"

        repository.update_candidate(db, candidate, **values)
        timeline_service.record(
            db, candidate_id,
            entry["activity_type"], entry["title"], entry["description"],
            actor, entry["metadata"],
        )
        updated = repository.fetch_candidate(db, candidate_id)

    logger.info(
        "Candidate %s moved %s -> %s by %s",
        candidate_id, current.value, target.value, actor.identity,
    )
    return updated


# ============================================================
# PER-STAGE SIDE EFFECTS
# Each helper runs inside the transition's transaction and fills in
# the column values / timeline entry it owns.
# ============================================================

def _make_offer(db: Session, candidate: Candidate, context: TransitionContext, entry: dict) -> None:
    terms = context.offer
    if terms is None:
        raise DataIntegrityError(
            "Offer terms (fixed_ctc) are required to move to offer_made",
            candidate.candidate_id,
        )
    client = repository.fetch_client_terms(db, candidate.job_id)
    offered_ctc = terms.fixed_ctc + terms.variable_ctc
    expected_revenue = compute_revenue(terms.fixed_ctc, client.fee_percentage)
    offer_id = repository.insert_offer(db, {
        "candidate_id": candidate.candidate_id,
        "job_id": candidate.job_id,
        "fixed_ctc": terms.fixed_ctc,
        "variable_ctc": terms.variable_ctc,
        "offered_ctc": offered_ctc,
        "status": OfferStatus.pending,
        "expected_joining_date": terms.expected_joining_date,
        "notes": terms.notes,
    })
    entry.update(
        activity_type=ActivityType.offer_extended,
        title="Offer Extended",
        description=(
            f"Offer of Rs.{offered_ctc}L extended (Fixed: Rs.{terms.fixed_ctc}L, "
            f"Variable: Rs.{terms.variable_ctc}L). Expected revenue: Rs.{expected_revenue}L"
        ),
    )
    entry["metadata"].update(
        offer_id=offer_id,
        fixed_ctc=terms.fixed_ctc,
        offered_ctc=offered_ctc,
        expected_revenue=expected_revenue,
    )


def _accept_offer(db: Session, candidate: Candidate, entry: dict) -> None:
    offer = repository.fetch_latest_offer(db, candidate.candidate_id)
    if offer is None or offer.status != OfferStatus.pending:
        raise DataIntegrityError(
            "No pending offer to accept", candidate.candidate_id,
        )
    repository.update_offer(db, offer.offer_id, status=OfferStatus.accepted)
    entry.update(
        activity_type=ActivityType.offer_accepted,
        title="Offer Accepted",
        description=f"Candidate accepted the offer of Rs.{offer.offered_ctc}L",
    )
    entry["metadata"]["offer_id"] = offer.offer_id


def _join(
    db: Session,
    candidate: Candidate,
    context: TransitionContext,
    values: dict,
    entry: dict,
) -> None:
    offer = repository.fetch_latest_offer(db, candidate.candidate_id)
    if offer is None or offer.status != OfferStatus.accepted:
        raise DataIntegrityError(
            "Cannot mark joined without an accepted offer", candidate.candidate_id,
        )
    if offer.fixed_ctc is None:
        raise DataIntegrityError(
            f"Offer {offer.offer_id} has no fixed CTC", candidate.candidate_id,
        )
    if repository.fetch_safety_record(db, candidate.candidate_id) is not None:
        raise DataIntegrityError(
            "Placement safety record already exists", candidate.candidate_id,
        )

    client = repository.fetch_client_terms(db, candidate.job_id)
    joining_date = context.joining_date or today()
    guarantee_ends = joining_date + timedelta(days=client.guarantee_period_days)
    revenue = compute_revenue(offer.fixed_ctc, client.fee_percentage)

    values.update(
        date_joined=joining_date,
        revenue_earned=revenue,
        revenue_month=joining_date.strftime("%Y-%m"),
        revenue_year=joining_date.year,
        placement_status=PlacementStatus.active,
        is_placement_safe=False,
        guarantee_period_ends=guarantee_ends,
    )
    repository.update_offer(db, offer.offer_id, actual_joining_date=joining_date)
    repository.insert_safety_record(db, {
        "candidate_id": candidate.candidate_id,
        "recruiter_id": candidate.assigned_to,
        "client_id": client.client_id,
        "joining_date": joining_date,
        "guarantee_period_days": client.guarantee_period_days,
        "guarantee_period_ends": guarantee_ends,
        "safety_status": SafetyStatus.monitoring,
    })
    entry.update(
        activity_type=ActivityType.candidate_joined,
        title="Candidate Joined",
        description=(
            f"Joined on {joining_date.isoformat()} with fixed CTC Rs.{offer.fixed_ctc}L. "
            f"Revenue: Rs.{revenue}L. Guarantee period ends {guarantee_ends.isoformat()}"
        ),
    )
    entry["metadata"].update(
        offer_id=offer.offer_id,
        joining_date=joining_date,
        revenue=revenue,
        fee_percentage=client.fee_percentage,
        guarantee_period_days=client.guarantee_period_days,
        guarantee_period_ends=guarantee_ends,
    )


def _close_offer(db: Session, candidate: Candidate, target: CandidateStage, entry: dict) -> None:
    """Rejected / dropped: a pending or accepted offer is no longer live."""
    offer = repository.fetch_latest_offer(db, candidate.candidate_id)
    if offer is None or offer.status not in LIVE_OFFER_STATUSES:
        return
    repository.update_offer(db, offer.offer_id, status=OfferStatus.rejected)
    entry["metadata"].update(offer_id=offer.offer_id, offer_status=OfferStatus.rejected.value)
    if target == S.rejected:
        entry.update(
            activity_type=ActivityType.offer_rejected,
            title="Offer Rejected",
        )
