"""
MongoDB Service - storage for resume documents.

Collections in this database:
1. raw_resumes     - Resume text as handed over by the extraction step
2. parsed_resumes  - AI-extracted structured candidate fields

WHY MongoDB for these?
- AI outputs have nested, flexible schemas
- Documents are self-contained, no joins needed
- The same text is never parsed twice (lookup by text hash)
"""

from typing import Optional

from bson import ObjectId
from pymongo.collection import Collection

from app.db.mongodb import get_collection, COLLECTIONS
from app.utils.clock import utcnow


def serialize_doc(doc: dict) -> dict:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


# ============================================================
# RAW RESUMES COLLECTION
# ============================================================

class RawResumeService:
    """
    Handles raw resume document storage.
    Documents are written before the candidate row exists and linked later.
    """

    def __init__(self, collection: Collection = None):
        self.collection: Collection = collection if collection is not None else get_collection(COLLECTIONS["raw_resumes"])

    def insert(self, resume_text: str, text_hash: str, filename: str = None) -> str:
        """
        Insert a raw resume document.

        Returns:
            MongoDB ObjectId as string
        """
        doc = {
            "candidate_id": None,
            "resume_text": resume_text,
            "text_hash": text_hash,
            "filename": filename,
            "uploaded_at": utcnow(),
            "is_parsed": False,
        }
        result = self.collection.insert_one(doc)
        return str(result.inserted_id)

    def find_parsed_by_hash(self, text_hash: str) -> Optional[dict]:
        """Latest raw document with this text hash that was already parsed."""
        doc = self.collection.find_one(
            {"text_hash": text_hash, "is_parsed": True},
            sort=[("uploaded_at", -1)]
        )
        return serialize_doc(doc)

    def mark_as_parsed(self, mongo_id: str) -> bool:
        result = self.collection.update_one(
            {"_id": ObjectId(mongo_id)},
            {"$set": {"is_parsed": True, "parsed_at": utcnow()}}
        )
        return result.modified_count > 0

    def link_candidate(self, mongo_id: str, candidate_id: int) -> bool:
        result = self.collection.update_one(
            {"_id": ObjectId(mongo_id)},
            {"$set": {"candidate_id": candidate_id}}
        )
        return result.modified_count > 0


# ============================================================
# PARSED RESUMES COLLECTION
# ============================================================

class ParsedResumeService:
    """
    Handles parsed resume storage.
    These contain structured data extracted by AI.
    """

    def __init__(self, collection: Collection = None):
        self.collection: Collection = collection if collection is not None else get_collection(COLLECTIONS["parsed_resumes"])

    def insert(self, raw_resume_id: str, parsed_data: dict) -> str:
        """
        Insert parsed resume data.

        Example parsed_data:
        {
            "full_name": "Asha Rao",
            "email": "asha@example.com",
            "skills": ["Python", "SQL"],
            "total_experience": 4.5,
            "expected_ctc": 14.0,
            "confidence": 0.82
        }
        """
        doc = {
            "candidate_id": None,
            "raw_resume_id": raw_resume_id,
            "parsed_data": parsed_data,
            "parsed_at": utcnow(),
        }
        result = self.collection.insert_one(doc)
        return str(result.inserted_id)

    def get_by_raw_id(self, raw_resume_id: str) -> Optional[dict]:
        doc = self.collection.find_one(
            {"raw_resume_id": raw_resume_id},
            sort=[("parsed_at", -1)]
        )
        return serialize_doc(doc)

    def link_candidate(self, mongo_id: str, candidate_id: int) -> bool:
        result = self.collection.update_one(
            {"_id": ObjectId(mongo_id)},
            {"$set": {"candidate_id": candidate_id}}
        )
        return result.modified_count > 0
