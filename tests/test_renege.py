from datetime import date
from decimal import Decimal

import pytest

from app.core.exceptions import AlreadyReneged, NoActivePlacement, StorageUnavailable
from app.db import repository
from app.db.postgres import get_db_session
from app.models.enums import (
    ActivityType, CandidateStage, OfferStatus, PlacementStatus, RenegeType, SafetyStatus,
)
from app.models.placement import AtRiskScope
from app.services import placement_safety_service as safety
from app.services import timeline_service
from app.services.renege_service import renege


def _state(candidate_id):
    with get_db_session() as db:
        return (
            repository.fetch_candidate(db, candidate_id),
            repository.fetch_latest_offer(db, candidate_id),
            repository.fetch_safety_record(db, candidate_id),
        )


class TestRenegeAfterJoining:
    def test_reverses_at_risk_placement(self, place, actor):
        placed = place(fixed_ctc="12", joining_date=date(2026, 1, 1))
        cid = placed.candidate_id
        safety.flag_risk(cid, "Got a counter offer", actor)

        result = renege(cid, None, "Went back to previous employer", date(2026, 2, 10), actor)

        candidate, offer, record = _state(cid)
        assert result.current_stage == CandidateStage.dropped
        assert candidate.is_renege is True
        assert candidate.revenue_earned == Decimal("0")
        assert candidate.placement_status == PlacementStatus.lost
        assert candidate.is_placement_safe is False
        assert candidate.renege_type == RenegeType.after_joining
        assert candidate.renege_date == date(2026, 2, 10)
        assert candidate.renege_reason == "Went back to previous employer"

        assert offer.status == OfferStatus.renege
        assert offer.notes.endswith("Renege Reason: Went back to previous employer")

        assert record.safety_status == SafetyStatus.lost
        assert record.risk_notes == "Went back to previous employer"

        last = timeline_service.list_for_candidate(cid)[-1]
        assert last.activity_type == ActivityType.renege
        assert last.metadata["revenue_reversed"] is True
        assert Decimal(last.metadata["reversed_amount"]) == Decimal("1.00")

    def test_reneged_placement_leaves_dashboard(self, place, actor):
        placed = place()
        renege(placed.candidate_id, RenegeType.after_joining, "Relocated", None, actor)
        assert safety.list_at_risk(AtRiskScope(), today=date(2026, 1, 15)) == []

    def test_second_renege_rejected_without_new_entry(self, place, actor):
        placed = place()
        renege(placed.candidate_id, None, "Relocated", None, actor)
        count = len(timeline_service.list_for_candidate(placed.candidate_id))

        with pytest.raises(AlreadyReneged):
            renege(placed.candidate_id, None, "Relocated again", None, actor)
        assert len(timeline_service.list_for_candidate(placed.candidate_id)) == count

    def test_reneged_placement_never_becomes_safe(self, place, actor):
        placed = place(joining_date=date(2026, 1, 1))
        renege(placed.candidate_id, None, "Relocated", None, actor)
        assert safety.expire_guarantees(date(2026, 6, 1)).expired == []

    def test_completed_guarantee_cannot_renege(self, place, actor):
        placed = place(joining_date=date(2026, 1, 1))
        safety.expire_guarantees(date(2026, 4, 2))
        with pytest.raises(NoActivePlacement):
            renege(placed.candidate_id, None, "Left after six months", None, actor)


class TestRenegeBeforeJoining:
    def test_accepted_offer(self, place, actor):
        accepted = place(stop_at="offer_accepted")
        renege(accepted.candidate_id, None, "Accepted another offer", None, actor)

        candidate, offer, record = _state(accepted.candidate_id)
        assert candidate.current_stage == CandidateStage.dropped
        assert candidate.renege_type == RenegeType.before_joining
        assert candidate.placement_status == PlacementStatus.lost
        assert offer.status == OfferStatus.renege
        assert record is None


class TestRenegeValidation:
    @pytest.mark.parametrize("stop_at", ["screening", "offer_made"])
    def test_no_placement_to_reverse(self, place, actor, stop_at):
        candidate = place(stop_at=stop_at)
        with pytest.raises(NoActivePlacement):
            renege(candidate.candidate_id, None, "Changed mind", None, actor)

    def test_blank_reason(self, place, actor):
        placed = place()
        with pytest.raises(ValueError):
            renege(placed.candidate_id, None, "  ", None, actor)
        candidate, _, _ = _state(placed.candidate_id)
        assert candidate.is_renege is False


class TestRenegeAllOrNothing:
    def test_failed_renege_leaves_placement_intact(self, place, actor, monkeypatch):
        placed = place(fixed_ctc="12", joining_date=date(2026, 1, 1))
        cid = placed.candidate_id
        entries_before = len(timeline_service.list_for_candidate(cid))

        def failing_record(*args, **kwargs):
            raise StorageUnavailable("timeline write failed", cid)

        monkeypatch.setattr(timeline_service, "record", failing_record)
        with pytest.raises(StorageUnavailable):
            renege(cid, None, "Relocated", date(2026, 2, 10), actor)
        monkeypatch.undo()

        candidate, offer, record = _state(cid)
        assert candidate.current_stage == CandidateStage.joined
        assert candidate.version == placed.version
        assert candidate.is_renege is False
        assert candidate.revenue_earned == Decimal("1.00")
        assert candidate.placement_status == placed.placement_status
        assert offer.status == OfferStatus.accepted
        assert record.safety_status == SafetyStatus.monitoring
        assert record.risk_notes is None
        assert len(timeline_service.list_for_candidate(cid)) == entries_before
