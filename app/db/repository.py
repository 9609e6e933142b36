"""
Row-level reads and writes shared by the placement services.

Every function takes the caller's Session so reads and writes land in the
caller's transaction. Candidate writes are compare-and-set on `version`:
a stale version means another mutation won, and ConcurrentModification
rolls the whole unit back.
"""

from enum import Enum
from typing import Optional

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import (
    CandidateNotFound, ConcurrentModification, DataIntegrityError,
)
from app.db.schema import (
    candidates, clients, jobs, offers, placement_safety_tracker,
)
from app.models.placement import (
    Candidate, ClientTerms, Offer, PlacementSafetyRecord,
)
from app.utils.clock import utcnow


def _db_values(values: dict) -> dict:
    """Unwrap enums so every driver receives plain strings."""
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in values.items()}


# ============================================================
# CANDIDATES
# ============================================================

def row_to_candidate(row) -> Candidate:
    data = dict(row._mapping)
    data["skills"] = data.get("skills") or []
    return Candidate.model_validate(data)


def fetch_candidate(db: Session, candidate_id: int) -> Candidate:
    row = db.execute(
        select(candidates).where(candidates.c.candidate_id == candidate_id)
    ).fetchone()
    if row is None:
        raise CandidateNotFound(candidate_id)
    return row_to_candidate(row)


def insert_candidate(db: Session, values: dict) -> int:
    result = db.execute(insert(candidates).values(**_db_values(values)))
    return result.inserted_primary_key[0]


def update_candidate(db: Session, candidate: Candidate, **values) -> int:
    """
    Write `values` only if the row still has the version we read.
    Returns the new version.
    """
    result = db.execute(
        update(candidates)
        .where(
            candidates.c.candidate_id == candidate.candidate_id,
            candidates.c.version == candidate.version,
        )
        .values(
            version=candidates.c.version + 1,
            updated_at=utcnow(),
            **_db_values(values),
        )
    )
    if result.rowcount != 1:
        raise ConcurrentModification(
            f"Candidate {candidate.candidate_id} was modified concurrently "
            f"(expected version {candidate.version})",
            candidate.candidate_id,
        )
    return candidate.version + 1


# ============================================================
# OFFERS
# ============================================================

def fetch_latest_offer(db: Session, candidate_id: int) -> Optional[Offer]:
    row = db.execute(
        select(offers)
        .where(offers.c.candidate_id == candidate_id)
        .order_by(offers.c.created_at.desc(), offers.c.offer_id.desc())
        .limit(1)
    ).fetchone()
    return Offer.model_validate(dict(row._mapping)) if row else None


def insert_offer(db: Session, values: dict) -> int:
    now = utcnow()
    values.setdefault("created_at", now)
    values.setdefault("updated_at", now)
    result = db.execute(insert(offers).values(**_db_values(values)))
    return result.inserted_primary_key[0]


def update_offer(db: Session, offer_id: int, **values) -> None:
    db.execute(
        update(offers)
        .where(offers.c.offer_id == offer_id)
        .values(updated_at=utcnow(), **_db_values(values))
    )


# ============================================================
# PLACEMENT SAFETY TRACKER
# ============================================================

def fetch_safety_record(db: Session, candidate_id: int) -> Optional[PlacementSafetyRecord]:
    row = db.execute(
        select(placement_safety_tracker)
        .where(placement_safety_tracker.c.candidate_id == candidate_id)
    ).fetchone()
    return PlacementSafetyRecord.model_validate(dict(row._mapping)) if row else None


def insert_safety_record(db: Session, values: dict) -> int:
    now = utcnow()
    values.setdefault("created_at", now)
    values.setdefault("updated_at", now)
    result = db.execute(insert(placement_safety_tracker).values(**_db_values(values)))
    return result.inserted_primary_key[0]


def update_safety_record(db: Session, tracker_id: int, **values) -> None:
    db.execute(
        update(placement_safety_tracker)
        .where(placement_safety_tracker.c.tracker_id == tracker_id)
        .values(updated_at=utcnow(), **_db_values(values))
    )


# ============================================================
# CLIENT TERMS
# ============================================================

def fetch_client_terms(db: Session, job_id: int) -> ClientTerms:
    """Fee % and guarantee window for a job's client, falling back to settings."""
    row = db.execute(
        select(
            clients.c.client_id,
            clients.c.company_name,
            clients.c.fee_percentage,
            clients.c.replacement_guarantee_days,
        )
        .select_from(jobs.join(clients, jobs.c.client_id == clients.c.client_id))
        .where(jobs.c.job_id == job_id)
    ).fetchone()
    if row is None:
        raise DataIntegrityError(f"Job {job_id} has no client on record")

    settings = get_settings()
    fee = row.fee_percentage if row.fee_percentage is not None else settings.default_fee_percentage
    days = (
        row.replacement_guarantee_days
        if row.replacement_guarantee_days is not None
        else settings.guarantee_period_days
    )
    return ClientTerms(
        client_id=row.client_id,
        company_name=row.company_name,
        fee_percentage=fee,
        guarantee_period_days=days,
    )
