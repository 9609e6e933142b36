"""
Renege Processor - reverses a placement when the candidate backs out.

Applies to an accepted offer that was never joined (before_joining) or a
joined placement still inside its guarantee window (after_joining).
Everything below is one transaction:

- candidate: dropped, is_renege, revenue_earned = 0, placement_status lost
- offer: status renege, reason appended to notes
- safety record (if joined): lost, risk_notes = reason
- one `renege` timeline entry carrying the reversed amount
"""

import logging
from datetime import date
from typing import Optional, Union

from app.core.exceptions import AlreadyReneged, NoActivePlacement
from app.db import repository
from app.db.postgres import get_db_session
from app.models.enums import (
    ActivityType, CandidateStage, OfferStatus, PlacementStatus, RenegeType, SafetyStatus,
)
from app.models.placement import Actor, Candidate
from app.services import timeline_service
from app.utils.clock import today, utcnow

logger = logging.getLogger(__name__)

RENEGEABLE_STAGES = frozenset({CandidateStage.offer_accepted, CandidateStage.joined})


def renege(
    candidate_id: int,
    renege_type: Union[RenegeType, str, None],
    renege_reason: str,
    renege_date: Optional[date],
    actor: Actor,
) -> Candidate:
    """
    Mark a placement as reneged.

    renege_type defaults from the stage: joined → after_joining,
    offer_accepted → before_joining. renege_date defaults to today.

    Raises:
        ValueError: blank reason
        AlreadyReneged: the candidate was already reneged
        NoActivePlacement: nothing to reverse (wrong stage, no offer,
            guarantee already completed)
        ConcurrentModification: another mutation on this candidate won
    """
    if not renege_reason or not renege_reason.strip():
        raise ValueError("A renege reason is required")
    reason = renege_reason.strip()
    renege_date = renege_date or today()

    with get_db_session() as db:
        candidate = repository.fetch_candidate(db, candidate_id)
        if candidate.is_renege:
            raise AlreadyReneged(f"Candidate {candidate_id} has already reneged", candidate_id)
        if candidate.current_stage not in RENEGEABLE_STAGES:
            raise NoActivePlacement(
                f"Candidate {candidate_id} is in '{candidate.current_stage.value}', "
                f"only accepted or joined placements can renege",
                candidate_id,
            )

        offer = repository.fetch_latest_offer(db, candidate_id)
        if offer is None:
            raise NoActivePlacement(f"Candidate {candidate_id} has no offer", candidate_id)

        record = repository.fetch_safety_record(db, candidate_id)
        if candidate.current_stage == CandidateStage.joined:
            if record is None:
                raise NoActivePlacement(
                    f"Candidate {candidate_id} joined but has no placement record", candidate_id,
                )
            if record.safety_status == SafetyStatus.safe:
                raise NoActivePlacement(
                    f"Guarantee period for candidate {candidate_id} already completed", candidate_id,
                )

        if renege_type is None:
            renege_type = (
                RenegeType.after_joining
                if candidate.current_stage == CandidateStage.joined
                else RenegeType.before_joining
            )
        renege_type = RenegeType(renege_type)
        reversed_amount = candidate.revenue_earned

        repository.update_candidate(
            db, candidate,
            current_stage=CandidateStage.dropped,
            date_dropped=utcnow(),
            last_activity_date=utcnow(),
            is_renege=True,
            renege_date=renege_date,
            renege_reason=reason,
            renege_type=renege_type,
            revenue_earned=0,
            placement_status=PlacementStatus.lost,
            is_placement_safe=False,
        )

        notes = f"{offer.notes}\n\n" if offer.notes else ""
        repository.update_offer(
            db, offer.offer_id,
            status=OfferStatus.renege,
            notes=f"{notes}Renege Reason: {reason}",
        )
        if record is not None and record.safety_status != SafetyStatus.lost:
            repository.update_safety_record(
                db, record.tracker_id,
                safety_status=SafetyStatus.lost,
                risk_notes=reason,
            )

        timeline_service.record(
            db, candidate_id, ActivityType.renege,
            "Offer Renege",
            f"Candidate reneged {renege_type.value.replace('_', ' ')}. Reason: {reason}",
            actor,
            {
                "renege_type": renege_type.value,
                "renege_date": renege_date,
                "offer_id": offer.offer_id,
                "previous_stage": candidate.current_stage.value,
                "revenue_reversed": True,
                "reversed_amount": reversed_amount,
            },
        )
        updated = repository.fetch_candidate(db, candidate_id)

    logger.info(
        "Candidate %s reneged (%s) by %s, Rs.%sL reversed",
        candidate_id, renege_type.value, actor.identity, reversed_amount,
    )
    return updated
