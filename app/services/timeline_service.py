"""
Timeline Recorder - append-only audit log per candidate.

Entries are never updated or deleted.
`record` must be called with the same Session as the mutation it
describes, so the pair commits or rolls back together.
"""

from typing import Any, Dict, List, Optional

from pydantic_core import to_jsonable_python
from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from app.db.postgres import get_db_session
from app.db.schema import candidate_timeline
from app.models.enums import ActivityType
from app.models.placement import Actor, TimelineEntry
from app.utils.clock import utcnow


def record(
    db: Session,
    candidate_id: int,
    activity_type: ActivityType,
    title: str,
    description: str,
    actor: Actor,
    metadata: Optional[Dict[str, Any]] = None,
) -> int:
    """Append one timeline entry. Returns its id.

    Metadata is display-only; decimals and dates are stored as strings.
    """
    result = db.execute(
        insert(candidate_timeline).values(
            candidate_id=candidate_id,
            activity_type=ActivityType(activity_type).value,
            activity_title=title,
            activity_description=description,
            metadata=to_jsonable_python(metadata or {}),
            performed_by=actor.identity,
            created_at=utcnow(),
        )
    )
    return result.inserted_primary_key[0]


def list_for_candidate(candidate_id: int, db: Session = None) -> List[TimelineEntry]:
    """Oldest first."""
    stmt = (
        select(candidate_timeline)
        .where(candidate_timeline.c.candidate_id == candidate_id)
        .order_by(candidate_timeline.c.created_at, candidate_timeline.c.timeline_id)
    )
    if db is not None:
        rows = db.execute(stmt).fetchall()
    else:
        with get_db_session() as session:
            rows = session.execute(stmt).fetchall()
    return [_to_entry(row) for row in rows]


def _to_entry(row) -> TimelineEntry:
    data = dict(row._mapping)
    data["metadata"] = data.get("metadata") or {}
    return TimelineEntry.model_validate(data)
