"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from decimal import Decimal

from app.models.enums import (
    CandidateStage, PlacementStatus, RenegeType, RiskBand, SafetyStatus, ScopeKind,
)
from app.models.placement import AtRiskPlacement, OfferTerms, TimelineEntry


# ============================================================
# CANDIDATE SCHEMAS
# ============================================================

class CandidateCreate(BaseModel):
    job_id: int
    full_name: str = Field(..., min_length=2, max_length=120)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    current_location: Optional[str] = None
    current_company: Optional[str] = None
    current_designation: Optional[str] = None
    skills: List[str] = []
    total_experience: Optional[Decimal] = Field(None, ge=0)
    current_ctc: Optional[Decimal] = Field(None, ge=0)
    expected_ctc: Optional[Decimal] = Field(None, ge=0)
    notice_period: Optional[int] = Field(None, ge=0)
    assigned_to: Optional[int] = None

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("full_name cannot be blank")
        return v

class ResumeIntakeRequest(BaseModel):
    job_id: int
    resume_text: str = Field(..., min_length=1)
    filename: Optional[str] = None
    assigned_to: Optional[int] = None

class CandidateResponse(BaseModel):
    candidate_id: int
    job_id: int
    assigned_to: Optional[int] = None
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    current_company: Optional[str] = None
    current_designation: Optional[str] = None
    skills: List[str] = []
    current_stage: CandidateStage
    revenue_earned: Decimal
    revenue_month: Optional[str] = None
    revenue_year: Optional[int] = None
    placement_status: PlacementStatus
    is_placement_safe: bool
    guarantee_period_ends: Optional[date] = None
    is_renege: bool
    renege_date: Optional[date] = None
    renege_reason: Optional[str] = None
    renege_type: Optional[RenegeType] = None
    date_joined: Optional[date] = None
    last_activity_date: Optional[datetime] = None
    version: int

class ResumeIntakeResponse(BaseModel):
    candidate: CandidateResponse
    parsed_data: Dict[str, Any]
    confidence: float
    cached: bool


# ============================================================
# PIPELINE SCHEMAS
# ============================================================

class TransitionRequest(BaseModel):
    target_stage: CandidateStage
    offer: Optional[OfferTerms] = None
    joining_date: Optional[date] = None
    notes: Optional[str] = None

class RenegeRequest(BaseModel):
    renege_reason: str = Field(..., min_length=1)
    renege_type: Optional[RenegeType] = None
    renege_date: Optional[date] = None

    @field_validator("renege_reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("renege_reason cannot be blank")
        return v.strip()

class TimelineResponse(BaseModel):
    candidate_id: int
    entries: List[TimelineEntry]
    total: int


# ============================================================
# PLACEMENT SAFETY SCHEMAS
# ============================================================

class AtRiskListResponse(BaseModel):
    placements: List[AtRiskPlacement]
    summary: Dict[str, int]
    revenue: Dict[str, Decimal]
    scope: ScopeKind
    as_of: date

class FollowupRequest(BaseModel):
    notes: Optional[str] = None
    resolved: bool = False
    followup_date: Optional[date] = None

class FlagRiskRequest(BaseModel):
    risk_notes: str = Field(..., min_length=1)

class SafetyRecordResponse(BaseModel):
    candidate_id: int
    safety_status: SafetyStatus
    joining_date: date
    guarantee_period_ends: date
    days_remaining: int
    risk_band: RiskBand
    last_followup_date: Optional[date] = None
    risk_notes: Optional[str] = None

class ExpireResponse(BaseModel):
    run_at: datetime
    expired: List[int]
    conflicts: List[int]


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class ErrorResponse(BaseModel):
    detail: str
    error: Optional[str] = None
    candidate_id: Optional[int] = None
