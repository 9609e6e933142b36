"""
Models module - internal data structures.

Difference from schemas:
- Models: what the services pass around
- Schemas: API contract (what client sends/receives)
"""

from app.models.enums import (
    ActivityType, CandidateStage, OfferStatus, PlacementStatus, RenegeType,
    RiskBand, SafetyStatus, ScopeKind, UserRole,
)
from app.models.placement import (
    SYSTEM_ACTOR, Actor, AtRiskPlacement, AtRiskScope, Candidate, ClientTerms,
    Offer, OfferTerms, PlacementSafetyRecord, TimelineEntry, TransitionContext,
)

__all__ = [
    "ActivityType", "CandidateStage", "OfferStatus", "PlacementStatus",
    "RenegeType", "RiskBand", "SafetyStatus", "ScopeKind", "UserRole",
    "SYSTEM_ACTOR", "Actor", "AtRiskPlacement", "AtRiskScope", "Candidate",
    "ClientTerms", "Offer", "OfferTerms", "PlacementSafetyRecord",
    "TimelineEntry", "TransitionContext",
]
