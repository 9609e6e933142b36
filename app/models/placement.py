"""
Internal data structures for the placement engine.

Rows come back from the store as mappings; these models coerce them
(dates, decimals, 0/1 booleans) into typed objects the services work with.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import (
    ActivityType, CandidateStage, OfferStatus, PlacementStatus, RenegeType,
    RiskBand, SafetyStatus, ScopeKind, UserRole,
)


class Actor(BaseModel):
    """Who performed a mutation. Used only for audit attribution and scoping."""

    user_id: Union[int, str]
    role: Optional[UserRole] = None
    team_id: Optional[int] = None

    @property
    def identity(self) -> str:
        return str(self.user_id)


SYSTEM_ACTOR = Actor(user_id="system")


class Candidate(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    candidate_id: int
    job_id: int
    assigned_to: Optional[int] = None
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    current_location: Optional[str] = None
    current_company: Optional[str] = None
    current_designation: Optional[str] = None
    skills: List[str] = []
    total_experience: Optional[Decimal] = None
    current_ctc: Optional[Decimal] = None
    expected_ctc: Optional[Decimal] = None
    notice_period: Optional[int] = None

    current_stage: CandidateStage
    date_sourced: Optional[datetime] = None
    date_screening_started: Optional[datetime] = None
    date_interview_scheduled: Optional[datetime] = None
    date_interview_completed: Optional[datetime] = None
    date_offer_made: Optional[datetime] = None
    date_offer_accepted: Optional[datetime] = None
    date_joined: Optional[date] = None
    date_rejected: Optional[datetime] = None
    date_dropped: Optional[datetime] = None
    last_activity_date: Optional[datetime] = None

    revenue_earned: Decimal = Decimal("0")
    revenue_month: Optional[str] = None
    revenue_year: Optional[int] = None
    is_renege: bool = False
    renege_date: Optional[date] = None
    renege_reason: Optional[str] = None
    renege_type: Optional[RenegeType] = None
    is_placement_safe: bool = False
    placement_status: PlacementStatus = PlacementStatus.none
    guarantee_period_ends: Optional[date] = None

    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Offer(BaseModel):
    offer_id: int
    candidate_id: int
    job_id: int
    fixed_ctc: Decimal
    variable_ctc: Decimal = Decimal("0")
    offered_ctc: Decimal
    status: OfferStatus
    expected_joining_date: Optional[date] = None
    actual_joining_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PlacementSafetyRecord(BaseModel):
    tracker_id: int
    candidate_id: int
    recruiter_id: Optional[int] = None
    client_id: Optional[int] = None
    joining_date: date
    guarantee_period_days: int
    guarantee_period_ends: date
    safety_status: SafetyStatus
    last_followup_date: Optional[date] = None
    risk_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def days_remaining(self, today: date) -> int:
        return max(0, (self.guarantee_period_ends - today).days)


class TimelineEntry(BaseModel):
    timeline_id: int
    candidate_id: int
    activity_type: ActivityType
    activity_title: str
    activity_description: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    performed_by: str
    created_at: Optional[datetime] = None


class ClientTerms(BaseModel):
    """Commercial terms resolved for a candidate's job (client value or default)."""

    client_id: int
    company_name: str
    fee_percentage: Decimal
    guarantee_period_days: int


class AtRiskScope(BaseModel):
    kind: ScopeKind = ScopeKind.all
    user_id: Optional[int] = None
    team_id: Optional[int] = None

    @classmethod
    def for_actor(cls, actor: Actor, kind: ScopeKind) -> "AtRiskScope":
        return cls(kind=kind, user_id=actor.user_id if isinstance(actor.user_id, int) else None,
                   team_id=actor.team_id)


class AtRiskPlacement(BaseModel):
    """One row of the at-risk dashboard read model."""

    candidate_id: int
    candidate_name: str
    phone: Optional[str] = None
    job_title: Optional[str] = None
    client_name: Optional[str] = None
    recruiter_id: Optional[int] = None
    revenue_earned: Decimal
    joining_date: date
    guarantee_period_ends: date
    days_remaining: int
    risk_band: RiskBand
    safety_status: SafetyStatus
    last_followup_date: Optional[date] = None
    days_since_followup: Optional[int] = None
    risk_notes: Optional[str] = None


class OfferTerms(BaseModel):
    """Commercial terms captured when a candidate moves to offer_made."""

    fixed_ctc: Decimal = Field(..., ge=0)
    variable_ctc: Decimal = Field(Decimal("0"), ge=0)
    expected_joining_date: Optional[date] = None
    notes: Optional[str] = None


class TransitionContext(BaseModel):
    offer: Optional[OfferTerms] = None
    joining_date: Optional[date] = None
    notes: Optional[str] = None
