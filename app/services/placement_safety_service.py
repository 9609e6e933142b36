"""
Placement Safety Tracker

Owns PlacementSafetyRecord.safety_status outside of renege:

    monitoring ⇄ at_risk ──(guarantee ends, no renege)──▶ safe
         └────────┴────────(renege_service)────────────▶ lost

READ MODEL:
list_at_risk() ranks every monitoring / at_risk placement by days left in
the guarantee window. days_remaining is computed per query, never stored,
and the risk band thresholds live here only so every dashboard agrees.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Union

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import ConcurrentModification, NoActivePlacement
from app.db import repository
from app.db.postgres import get_db_session
from app.db.schema import (
    candidates, clients, jobs, placement_safety_tracker, users,
)
from app.models.enums import ActivityType, RiskBand, SafetyStatus, ScopeKind
from app.models.placement import (
    SYSTEM_ACTOR, Actor, AtRiskPlacement, AtRiskScope, PlacementSafetyRecord,
)
from app.services import timeline_service
from app.utils.clock import today as utc_today, utcnow

logger = logging.getLogger(__name__)

CRITICAL_DAYS = 7
HIGH_DAYS = 15
ELEVATED_DAYS = 30

ACTIVE_SAFETY_STATUSES = (SafetyStatus.monitoring, SafetyStatus.at_risk)


class SweepResult(BaseModel):
    run_at: datetime
    expired: List[int] = []
    conflicts: List[int] = []


def risk_band(days_remaining: int) -> RiskBand:
    """Inclusive thresholds: ≤7 critical, ≤15 high, ≤30 elevated."""
    if days_remaining <= CRITICAL_DAYS:
        return RiskBand.critical
    if days_remaining <= HIGH_DAYS:
        return RiskBand.high
    if days_remaining <= ELEVATED_DAYS:
        return RiskBand.elevated
    return RiskBand.normal


# ============================================================
# READ MODEL
# ============================================================

def _scope_filter(stmt, scope: AtRiskScope):
    t = placement_safety_tracker
    if scope.kind == ScopeKind.individual:
        if scope.user_id is None:
            raise ValueError("individual scope needs a user_id")
        return stmt.where(t.c.recruiter_id == scope.user_id)
    if scope.kind == ScopeKind.team:
        if scope.team_id is None:
            raise ValueError("team scope needs a team_id")
        team_members = select(users.c.user_id).where(users.c.team_id == scope.team_id)
        return stmt.where(t.c.recruiter_id.in_(team_members))
    return stmt


def list_at_risk(
    scope: AtRiskScope = None,
    today: date = None,
    limit: Optional[int] = None,
) -> List[AtRiskPlacement]:
    """
    Active placements soonest-expiring first (ties by candidate name).
    Records in lost / safe never appear.
    """
    scope = scope or AtRiskScope()
    today = today or utc_today()
    t = placement_safety_tracker

    stmt = (
        select(
            t.c.candidate_id,
            t.c.recruiter_id,
            t.c.joining_date,
            t.c.guarantee_period_ends,
            t.c.safety_status,
            t.c.last_followup_date,
            t.c.risk_notes,
            candidates.c.full_name.label("candidate_name"),
            candidates.c.phone,
            candidates.c.revenue_earned,
            jobs.c.job_title,
            clients.c.company_name.label("client_name"),
        )
        .select_from(
            t.join(candidates, t.c.candidate_id == candidates.c.candidate_id)
            .outerjoin(jobs, candidates.c.job_id == jobs.c.job_id)
            .outerjoin(clients, jobs.c.client_id == clients.c.client_id)
        )
        .where(
            t.c.safety_status.in_([s.value for s in ACTIVE_SAFETY_STATUSES]),
            candidates.c.is_renege.is_(False),
        )
    )
    stmt = _scope_filter(stmt, scope)

    with get_db_session() as db:
        rows = db.execute(stmt).fetchall()

    placements = [_to_placement(row, today) for row in rows]
    placements.sort(key=lambda p: (p.days_remaining, p.candidate_name.lower(), p.candidate_id))
    if limit is not None:
        placements = placements[:limit]
    return placements


def _to_placement(row, today: date) -> AtRiskPlacement:
    data = dict(row._mapping)
    days = max(0, (data["guarantee_period_ends"] - today).days)
    last_followup = data.get("last_followup_date")
    return AtRiskPlacement.model_validate({
        **data,
        "days_remaining": days,
        "risk_band": risk_band(days),
        "days_since_followup": (today - last_followup).days if last_followup else None,
    })


def summarize(placements: List[AtRiskPlacement]) -> Dict[str, int]:
    """Counts per risk band plus total, for dashboard headers."""
    counts = {band.value: 0 for band in RiskBand}
    for placement in placements:
        counts[placement.risk_band.value] += 1
    counts["total"] = len(placements)
    return counts


def summarize_revenue(scope: AtRiskScope = None, today: date = None) -> Dict[str, Decimal]:
    """
    Revenue per risk band for placements still under guarantee.
    `at_stake` sums those bands, `secured` covers safe placements, and
    `total` is both. Reneged placements are left out.
    """
    scope = scope or AtRiskScope()
    today = today or utc_today()
    t = placement_safety_tracker

    revenue = {band.value: Decimal("0") for band in RiskBand}
    for placement in list_at_risk(scope, today=today):
        revenue[placement.risk_band.value] += placement.revenue_earned

    stmt = (
        select(candidates.c.revenue_earned)
        .select_from(t.join(candidates, t.c.candidate_id == candidates.c.candidate_id))
        .where(
            t.c.safety_status == SafetyStatus.safe.value,
            candidates.c.is_renege.is_(False),
        )
    )
    stmt = _scope_filter(stmt, scope)
    with get_db_session() as db:
        secured = db.execute(stmt).scalars().all()

    revenue["at_stake"] = sum((revenue[band.value] for band in RiskBand), Decimal("0"))
    revenue["secured"] = sum((Decimal(str(v)) for v in secured), Decimal("0"))
    revenue["total"] = revenue["at_stake"] + revenue["secured"]
    return revenue


# ============================================================
# MUTATIONS
# ============================================================

def _active_record(db: Session, candidate_id: int) -> PlacementSafetyRecord:
    record = repository.fetch_safety_record(db, candidate_id)
    if record is None or record.safety_status not in ACTIVE_SAFETY_STATUSES:
        raise NoActivePlacement(
            f"Candidate {candidate_id} has no placement under guarantee", candidate_id,
        )
    return record


def flag_risk(candidate_id: int, risk_notes: str, actor: Actor) -> PlacementSafetyRecord:
    """monitoring → at_risk (or refresh the notes of an at_risk record)."""
    if not risk_notes or not risk_notes.strip():
        raise ValueError("risk_notes is required")

    with get_db_session() as db:
        candidate = repository.fetch_candidate(db, candidate_id)
        record = _active_record(db, candidate_id)
        repository.update_candidate(db, candidate, last_activity_date=utcnow())
        repository.update_safety_record(
            db, record.tracker_id,
            safety_status=SafetyStatus.at_risk,
            risk_notes=risk_notes.strip(),
        )
        timeline_service.record(
            db, candidate_id, ActivityType.risk_flagged,
            "Placement At Risk",
            f"Placement flagged at risk: {risk_notes.strip()}",
            actor,
            {
                "previous_status": record.safety_status.value,
                "guarantee_period_ends": record.guarantee_period_ends,
            },
        )
        updated = repository.fetch_safety_record(db, candidate_id)

    logger.info("Placement for candidate %s flagged at risk by %s", candidate_id, actor.identity)
    return updated


def record_followup(
    candidate_id: int,
    notes: str,
    actor: Actor,
    resolved: bool = False,
    followup_date: date = None,
) -> PlacementSafetyRecord:
    """
    Log contact with a placed candidate. `resolved=True` returns an
    at_risk placement to monitoring.
    """
    followup_date = followup_date or utc_today()

    with get_db_session() as db:
        candidate = repository.fetch_candidate(db, candidate_id)
        record = _active_record(db, candidate_id)
        values = {"last_followup_date": followup_date}
        if resolved and record.safety_status == SafetyStatus.at_risk:
            values.update(safety_status=SafetyStatus.monitoring, risk_notes=None)

        repository.update_candidate(db, candidate, last_activity_date=utcnow())
        repository.update_safety_record(db, record.tracker_id, **values)
        description = f"Follow-up on {followup_date.isoformat()}"
        if notes:
            description += f": {notes}"
        timeline_service.record(
            db, candidate_id, ActivityType.followup_logged,
            "Placement Follow-up", description, actor,
            {
                "resolved": bool(resolved),
                "safety_status": (values.get("safety_status") or record.safety_status).value,
            },
        )
        updated = repository.fetch_safety_record(db, candidate_id)

    return updated


def expire_guarantees(now: Union[datetime, date] = None) -> SweepResult:
    """
    Mark every monitoring / at_risk placement whose guarantee ended before
    `now` (and was never reneged) as safe. Run by the periodic sweep.

    Each placement is its own transaction. A placement that loses a race
    with a concurrent mutation is reported in `conflicts` and picked up by
    the next run.
    """
    now = now or utcnow()
    cutoff = now.date() if isinstance(now, datetime) else now
    t = placement_safety_tracker

    with get_db_session() as db:
        due = db.execute(
            select(t.c.candidate_id)
            .where(
                t.c.safety_status.in_([s.value for s in ACTIVE_SAFETY_STATUSES]),
                t.c.guarantee_period_ends < cutoff,
            )
            .order_by(t.c.guarantee_period_ends, t.c.candidate_id)
        ).scalars().all()

    result = SweepResult(run_at=utcnow())
    for candidate_id in due:
        try:
            with get_db_session() as db:
                if _complete_guarantee(db, candidate_id, cutoff):
                    result.expired.append(candidate_id)
        except ConcurrentModification:
            logger.warning("Guarantee expiry for candidate %s lost a race; retrying next sweep", candidate_id)
            result.conflicts.append(candidate_id)

    if result.expired or result.conflicts:
        logger.info(
            "Guarantee sweep: %d placements safe, %d conflicts",
            len(result.expired), len(result.conflicts),
        )
    return result


def _complete_guarantee(db: Session, candidate_id: int, cutoff: date) -> bool:
    candidate = repository.fetch_candidate(db, candidate_id)
    record = repository.fetch_safety_record(db, candidate_id)
    # Re-check inside the transaction; the candidate set was read earlier
    if (
        record is None
        or candidate.is_renege
        or record.safety_status not in ACTIVE_SAFETY_STATUSES
        or record.guarantee_period_ends >= cutoff
    ):
        return False

    repository.update_candidate(db, candidate, is_placement_safe=True)
    repository.update_safety_record(db, record.tracker_id, safety_status=SafetyStatus.safe)
    timeline_service.record(
        db, candidate_id, ActivityType.guarantee_completed,
        "Guarantee Period Completed",
        f"Guarantee period ended {record.guarantee_period_ends.isoformat()} without renege. "
        f"Revenue Rs.{candidate.revenue_earned}L secured",
        SYSTEM_ACTOR,
        {
            "guarantee_period_ends": record.guarantee_period_ends,
            "revenue_secured": candidate.revenue_earned,
            "previous_status": record.safety_status.value,
        },
    )
    return True
