"""
Schemas module - Request/Response schemas for API endpoints.

Difference from models:
- Models: Internal data structures
- Schemas: API contract (what client sends/receives)
"""

from app.schemas.schemas import (
    AtRiskListResponse, CandidateCreate, CandidateResponse,
    ErrorResponse, ExpireResponse, FlagRiskRequest, FollowupRequest,
    RenegeRequest, ResumeIntakeRequest, ResumeIntakeResponse,
    SafetyRecordResponse, TimelineResponse, TransitionRequest,
)
