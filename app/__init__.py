"""
Placement Tracker
Candidate lifecycle and placement-safety engine for a recruitment agency.

Architecture:
- PostgreSQL: Structured data (candidates, offers, safety tracker, timeline)
- MongoDB: Unstructured documents (raw and parsed resumes)
- LLM: Resume parsing only (not a database!)
"""

__version__ = "1.0.0"
