"""
Candidate intake.

Candidates enter the pipeline at `sourced`, either typed in by a recruiter
or parsed from resume text. Stage changes after that belong to
stage_machine.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel
from pymongo.errors import PyMongoError

from app.core.exceptions import InvalidResumeText
from app.db import repository
from app.db.postgres import get_db_session
from app.models.enums import ActivityType, CandidateStage
from app.models.placement import Actor, Candidate
from app.services import timeline_service
from app.services.ai_parsing_service import ResumeParsingService, get_resume_parser
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

CANDIDATE_FIELDS = (
    "full_name", "email", "phone", "current_location", "current_company",
    "current_designation", "skills", "total_experience", "current_ctc",
    "expected_ctc", "notice_period",
)


class ResumeIntakeResult(BaseModel):
    candidate: Candidate
    parsed_data: Dict[str, Any]
    confidence: float
    cached: bool
    raw_mongo_id: Optional[str] = None
    parsed_mongo_id: Optional[str] = None


def get_candidate(candidate_id: int) -> Candidate:
    with get_db_session() as db:
        return repository.fetch_candidate(db, candidate_id)


def _insert_sourced(db, job_id: int, data: Mapping, actor: Actor, assigned_to: Optional[int]) -> int:
    # Raises DataIntegrityError when the job is unknown or has no client
    client = repository.fetch_client_terms(db, job_id)

    if assigned_to is None and isinstance(actor.user_id, int):
        assigned_to = actor.user_id
    now = utcnow()
    values = {field: data.get(field) for field in CANDIDATE_FIELDS}
    values["skills"] = list(values["skills"] or [])
    values.update(
        job_id=job_id,
        assigned_to=assigned_to,
        current_stage=CandidateStage.sourced,
        date_sourced=now,
        last_activity_date=now,
        version=0,
        created_at=now,
        updated_at=now,
    )
    candidate_id = repository.insert_candidate(db, values)
    timeline_service.record(
        db, candidate_id, ActivityType.candidate_created,
        "Candidate Added",
        f"{values['full_name']} added to the pipeline for {client.company_name}",
        actor,
        {"job_id": job_id, "assigned_to": assigned_to, "stage": CandidateStage.sourced.value},
    )
    return candidate_id


def create_candidate(data: Mapping, actor: Actor) -> Candidate:
    """
    Create a candidate at `sourced` with one `candidate_created` entry.

    `data` needs job_id and full_name; assigned_to defaults to the actor.
    """
    if not (data.get("full_name") or "").strip():
        raise ValueError("full_name is required")

    with get_db_session() as db:
        candidate_id = _insert_sourced(db, data["job_id"], data, actor, data.get("assigned_to"))
        candidate = repository.fetch_candidate(db, candidate_id)

    logger.info("Candidate %s created for job %s by %s", candidate_id, data["job_id"], actor.identity)
    return candidate


def create_from_resume(
    job_id: int,
    resume_text: str,
    actor: Actor,
    assigned_to: Optional[int] = None,
    filename: Optional[str] = None,
    parser: ResumeParsingService = None,
) -> ResumeIntakeResult:
    """
    Parse resume text, keep the raw and parsed documents, and create the
    candidate from the parsed fields.

    Records `candidate_created` and `resume_uploaded` in the same
    transaction as the insert.
    """
    parser = parser or get_resume_parser()
    result = parser.parse_and_store(resume_text, filename=filename)
    parsed = result["parsed_data"]
    if not parsed.get("full_name"):
        raise InvalidResumeText("No candidate name could be read from the resume")

    with get_db_session() as db:
        candidate_id = _insert_sourced(db, job_id, parsed, actor, assigned_to)
        timeline_service.record(
            db, candidate_id, ActivityType.resume_uploaded,
            "Resume Parsed",
            f"Resume {filename or 'text'} parsed with {len(parsed.get('skills') or [])} skills "
            f"(confidence {parsed.get('confidence', 0):.2f})",
            actor,
            {
                "raw_mongo_id": result["raw_mongo_id"],
                "parsed_mongo_id": result["parsed_mongo_id"],
                "confidence": parsed.get("confidence"),
                "cached": result["cached"],
                "sector": parsed.get("sector"),
            },
        )
        candidate = repository.fetch_candidate(db, candidate_id)

    try:
        parser.link_candidate(result, candidate_id)
    except PyMongoError as e:
        # Candidate is committed; the resume documents stay unlinked
        logger.warning("Could not link resume %s to candidate %s: %s", result["raw_mongo_id"], candidate_id, e)
    logger.info("Candidate %s created from resume %s", candidate_id, result["raw_mongo_id"])

    return ResumeIntakeResult(
        candidate=candidate,
        parsed_data=parsed,
        confidence=parsed.get("confidence") or 0.0,
        cached=result["cached"],
        raw_mongo_id=result["raw_mongo_id"],
        parsed_mongo_id=result["parsed_mongo_id"],
    )
