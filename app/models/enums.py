"""Closed enumerations for every loosely-typed status column."""

from enum import Enum


class CandidateStage(str, Enum):
    sourced = "sourced"
    screening = "screening"
    interview_scheduled = "interview_scheduled"
    interview_completed = "interview_completed"
    offer_made = "offer_made"
    offer_accepted = "offer_accepted"
    joined = "joined"
    rejected = "rejected"
    dropped = "dropped"


class OfferStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    renege = "renege"


class PlacementStatus(str, Enum):
    none = "none"
    active = "active"
    lost = "lost"


class SafetyStatus(str, Enum):
    monitoring = "monitoring"
    at_risk = "at_risk"
    lost = "lost"
    safe = "safe"


class RiskBand(str, Enum):
    critical = "critical"
    high = "high"
    elevated = "elevated"
    normal = "normal"


class RenegeType(str, Enum):
    before_joining = "before_joining"
    after_joining = "after_joining"


class ActivityType(str, Enum):
    candidate_created = "candidate_created"
    resume_uploaded = "resume_uploaded"
    stage_change = "stage_change"
    offer_extended = "offer_extended"
    offer_accepted = "offer_accepted"
    offer_rejected = "offer_rejected"
    candidate_joined = "candidate_joined"
    renege = "renege"
    risk_flagged = "risk_flagged"
    followup_logged = "followup_logged"
    guarantee_completed = "guarantee_completed"


class ScopeKind(str, Enum):
    individual = "individual"
    team = "team"
    all = "all"


class UserRole(str, Enum):
    recruiter = "recruiter"
    team_leader = "team_leader"
    sr_team_leader = "sr_team_leader"
    admin = "admin"
