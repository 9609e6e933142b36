"""
AI Parsing Service - Resume parsing for candidate intake.

PURPOSE:
The model turns resume text into candidate fields. Nothing more.

AI OUTPUT → SANITIZED → STORED IN MONGODB → CANDIDATE ROW CREATED
Extraction quality is not judged here beyond rejecting text that is
empty or too short, and dropping values that cannot be real.

COST OPTIMIZATION:
- Low temperature (0.1) for consistent results
- Results cached in MongoDB by text hash (never re-parse same document)
"""

import hashlib
import json
import logging
import re
from typing import Any, List, Optional

from openai import OpenAIError

from app.core.exceptions import InvalidResumeText, ResumeParsingFailed
from app.services.llm_client import get_llm_client, LLMClient
from app.services.mongo_service import RawResumeService, ParsedResumeService

logger = logging.getLogger(__name__)

MIN_RESUME_CHARS = 30
MAX_SKILLS = 25
MAX_SKILL_CHARS = 40
MAX_SKILL_WORDS = 4

STOP_WORDS = {"and", "the", "for", "with", "in", "at", "of", "to", "a", "an"}
ENCODING_ARTIFACTS = re.compile(r'[Ã©â€œ™"Â]')
PHONE_SEPARATORS = re.compile(r"[\s\-().+]")
EDUCATION_LEVELS = {"High School", "Diploma", "Bachelor", "Master", "PhD"}


# ============================================================
# JSON VALIDATION HELPERS
# ============================================================

def _clean_str(value: Any, max_len: int = None) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    if max_len and len(value) > max_len:
        return None
    return value


def _non_negative(value: Any, cast=float) -> Optional[float]:
    try:
        number = cast(value)
    except (ValueError, TypeError):
        return None
    return number if number >= 0 else None


def clean_skills(skills: Any) -> List[str]:
    """Keep only short, real-looking skill names. Max 25, order kept."""
    if not isinstance(skills, list):
        return []
    cleaned = []
    seen = set()
    for skill in skills:
        if not isinstance(skill, str):
            continue
        skill = skill.strip()
        if not (1 < len(skill) < MAX_SKILL_CHARS):
            continue
        if len(skill.split(" ")) > MAX_SKILL_WORDS:
            continue
        if skill.isdigit() or skill.lower() in STOP_WORDS:
            continue
        if ENCODING_ARTIFACTS.search(skill):
            continue
        if skill.lower() in seen:
            continue
        seen.add(skill.lower())
        cleaned.append(skill)
    return cleaned[:MAX_SKILLS]


def clean_phone(phone: Any) -> Optional[str]:
    if not phone:
        return None
    digits = PHONE_SEPARATORS.sub("", str(phone))
    if len(digits) < 7 or len(digits) > 15:
        return None
    return digits


def validate_parsed_resume(data: dict) -> dict:
    """
    Validate and sanitize parsed resume data.
    Ensures all fields exist with correct types; bad values become None.
    """
    institution = _clean_str(data.get("education_institution"))
    if institution and (len(institution) > 80 or len(institution.split(" ")) > 10):
        institution = None

    education_level = _clean_str(data.get("education_level"))
    if education_level not in EDUCATION_LEVELS:
        education_level = None

    notice = _non_negative(data.get("notice_period"), cast=int)

    confidence = _non_negative(data.get("confidence")) or 0.0

    return {
        "full_name": _clean_str(data.get("full_name"), max_len=120),
        "email": _clean_str(data.get("email")),
        "phone": clean_phone(data.get("phone")),
        "current_location": _clean_str(data.get("current_location"), max_len=100),
        "current_company": _clean_str(data.get("current_company"), max_len=200),
        "current_designation": _clean_str(data.get("current_designation"), max_len=200),
        "total_experience": _non_negative(data.get("total_experience")),
        "current_ctc": _non_negative(data.get("current_ctc")),
        "expected_ctc": _non_negative(data.get("expected_ctc")),
        "notice_period": notice,
        "education_level": education_level,
        "education_degree": _clean_str(data.get("education_degree")),
        "education_field": _clean_str(data.get("education_field")),
        "education_institution": institution,
        "skills": clean_skills(data.get("skills", [])),
        "sector": _clean_str(data.get("sector")) or "Other",
        "confidence": min(1.0, confidence),
    }


def compute_text_hash(text: str) -> str:
    """Compute MD5 hash of text for change detection."""
    return hashlib.md5(text.encode()).hexdigest()


# ============================================================
# RESUME PARSING SERVICE
# ============================================================

class ResumeParsingService:
    """
    Resume parsing workflow:
    1. Reject empty / too-short text
    2. Reuse an earlier parse of the same text if there is one
    3. Store raw resume in MongoDB
    4. Parse with the LLM and sanitize the JSON
    5. Store parsed data in MongoDB
    """

    def __init__(
        self,
        ai_client: LLMClient = None,
        raw_resume_service: RawResumeService = None,
        parsed_resume_service: ParsedResumeService = None,
    ):
        self.ai_client: LLMClient = ai_client or get_llm_client()
        self.raw_resume_service = raw_resume_service or RawResumeService()
        self.parsed_resume_service = parsed_resume_service or ParsedResumeService()

    def parse(self, resume_text: str) -> dict:
        """Parse text with the LLM and sanitize. No storage."""
        if not resume_text or len(resume_text.strip()) < MIN_RESUME_CHARS:
            raise InvalidResumeText("Resume text too short or empty")
        try:
            parsed = self.ai_client.parse_resume(resume_text.strip())
        except json.JSONDecodeError as e:
            raise ResumeParsingFailed(f"Model returned invalid JSON: {e}") from e
        except OpenAIError as e:
            raise ResumeParsingFailed(f"Parsing model unavailable: {e}") from e
        if not isinstance(parsed, dict):
            raise ResumeParsingFailed("Model returned a non-object JSON value")
        return validate_parsed_resume(parsed)

    def parse_and_store(self, resume_text: str, filename: str = None) -> dict:
        """
        Full parsing pipeline for a resume.

        Returns:
            {
                "raw_mongo_id": "...",
                "parsed_mongo_id": "...",
                "parsed_data": {...},
                "cached": True/False
            }
        """
        if not resume_text or len(resume_text.strip()) < MIN_RESUME_CHARS:
            raise InvalidResumeText("Resume text too short or empty")

        text_hash = compute_text_hash(resume_text.strip())
        previous = self.raw_resume_service.find_parsed_by_hash(text_hash)
        if previous:
            parsed_doc = self.parsed_resume_service.get_by_raw_id(previous["_id"])
            if parsed_doc:
                logger.info("Reusing parsed resume %s (same text hash)", parsed_doc["_id"])
                return {
                    "raw_mongo_id": previous["_id"],
                    "parsed_mongo_id": parsed_doc["_id"],
                    "parsed_data": parsed_doc["parsed_data"],
                    "cached": True,
                }

        raw_mongo_id = self.raw_resume_service.insert(
            resume_text=resume_text,
            text_hash=text_hash,
            filename=filename
        )
        parsed_data = self.parse(resume_text)
        parsed_mongo_id = self.parsed_resume_service.insert(
            raw_resume_id=raw_mongo_id,
            parsed_data=parsed_data
        )
        self.raw_resume_service.mark_as_parsed(raw_mongo_id)

        logger.info(
            "Parsed resume %s: %d skills, confidence %.2f",
            raw_mongo_id, len(parsed_data["skills"]), parsed_data["confidence"]
        )
        return {
            "raw_mongo_id": raw_mongo_id,
            "parsed_mongo_id": parsed_mongo_id,
            "parsed_data": parsed_data,
            "cached": False,
        }

    def link_candidate(self, result: dict, candidate_id: int) -> None:
        """Point the stored documents at the candidate row created from them."""
        self.raw_resume_service.link_candidate(result["raw_mongo_id"], candidate_id)
        self.parsed_resume_service.link_candidate(result["parsed_mongo_id"], candidate_id)


def get_resume_parser() -> ResumeParsingService:
    """Get resume parsing service instance."""
    return ResumeParsingService()
