from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import insert

from app.core.exceptions import (
    CandidateNotFound, ConcurrentModification, DataIntegrityError, InvalidTransition,
    StorageUnavailable,
)
from app.db import repository
from app.db.postgres import get_db_session
from app.db.schema import clients, jobs
from app.models.enums import (
    ActivityType, CandidateStage, OfferStatus, PlacementStatus, SafetyStatus,
)
from app.services import stage_machine, timeline_service


def _offer(candidate_id):
    with get_db_session() as db:
        return repository.fetch_latest_offer(db, candidate_id)


def _safety_record(candidate_id):
    with get_db_session() as db:
        return repository.fetch_safety_record(db, candidate_id)


class TestAllowedTargets:
    def test_forward_step_and_exits(self):
        assert stage_machine.allowed_targets(CandidateStage.sourced) == {
            CandidateStage.screening, CandidateStage.rejected, CandidateStage.dropped,
        }

    def test_next_interview_round(self):
        assert stage_machine.can_transition("interview_completed", "interview_scheduled")

    @pytest.mark.parametrize("stage", ["joined", "rejected", "dropped"])
    def test_terminal_stages_go_nowhere(self, stage):
        assert stage_machine.allowed_targets(stage) == set()

    def test_no_skipping_stages(self):
        assert not stage_machine.can_transition("sourced", "offer_made")
        assert not stage_machine.can_transition("screening", "joined")


class TestFullPipeline:
    def test_sourced_to_joined(self, place):
        candidate = place(fixed_ctc="12", joining_date=date(2026, 1, 1))

        assert candidate.current_stage == CandidateStage.joined
        assert candidate.revenue_earned == Decimal("1.00")
        assert candidate.revenue_month == "2026-01"
        assert candidate.revenue_year == 2026
        assert candidate.placement_status == PlacementStatus.active
        assert candidate.is_placement_safe is False
        assert candidate.date_joined == date(2026, 1, 1)
        assert candidate.guarantee_period_ends == date(2026, 4, 1)

        record = _safety_record(candidate.candidate_id)
        assert record.safety_status == SafetyStatus.monitoring
        assert record.guarantee_period_ends == date(2026, 4, 1)
        assert record.guarantee_period_days == 90
        assert record.recruiter_id == 1

        offer = _offer(candidate.candidate_id)
        assert offer.status == OfferStatus.accepted
        assert offer.actual_joining_date == date(2026, 1, 1)

    def test_one_timeline_entry_per_step(self, place):
        candidate = place()
        entries = timeline_service.list_for_candidate(candidate.candidate_id)

        assert [e.activity_type for e in entries] == [
            ActivityType.candidate_created,
            ActivityType.stage_change,
            ActivityType.stage_change,
            ActivityType.stage_change,
            ActivityType.offer_extended,
            ActivityType.offer_accepted,
            ActivityType.candidate_joined,
        ]
        assert all(e.performed_by == "1" for e in entries)

    def test_version_bumps_on_every_transition(self, place):
        candidate = place(stop_at="interview_completed")
        # created at 0, three transitions
        assert candidate.version == 3

    def test_stage_dates_stamped(self, place):
        candidate = place(stop_at="offer_made")
        assert candidate.date_screening_started is not None
        assert candidate.date_interview_scheduled is not None
        assert candidate.date_interview_completed is not None
        assert candidate.date_offer_made is not None
        assert candidate.date_offer_accepted is None

    def test_client_terms_override_defaults(self, place):
        candidate = place(job_id=2, fixed_ctc="20", joining_date=date(2026, 3, 1))
        assert candidate.revenue_earned == Decimal("2.00")
        assert candidate.guarantee_period_ends == date(2026, 4, 30)
        assert _safety_record(candidate.candidate_id).guarantee_period_days == 60

    def test_zero_day_guarantee_is_kept(self, engine):
        with engine.begin() as conn:
            conn.execute(insert(clients), {"client_id": 3, "company_name": "Initech",
                                           "fee_percentage": None, "replacement_guarantee_days": 0})
            conn.execute(insert(jobs), {"job_id": 3, "client_id": 3, "job_title": "QA Lead", "job_code": "INI-02"})

        with get_db_session() as db:
            terms = repository.fetch_client_terms(db, 3)
        assert terms.guarantee_period_days == 0
        assert terms.fee_percentage == Decimal("8.33")

    def test_offer_terms_recorded(self, place, actor):
        candidate = place(stop_at="interview_completed")
        stage_machine.transition(
            candidate.candidate_id, "offer_made", actor,
            {"offer": {"fixed_ctc": "15", "variable_ctc": "3", "notes": "Relocation paid"}},
        )
        offer = _offer(candidate.candidate_id)
        assert offer.status == OfferStatus.pending
        assert offer.fixed_ctc == Decimal("15")
        assert offer.offered_ctc == Decimal("18")
        assert offer.notes == "Relocation paid"

    def test_another_interview_round(self, place, actor):
        candidate = place(stop_at="interview_completed")
        candidate = stage_machine.transition(candidate.candidate_id, "interview_scheduled", actor)
        assert candidate.current_stage == CandidateStage.interview_scheduled


class TestRejectedTransitions:
    def test_unreachable_target_leaves_candidate_unchanged(self, make_candidate, actor):
        candidate = make_candidate()
        with pytest.raises(InvalidTransition) as exc:
            stage_machine.transition(candidate.candidate_id, "joined", actor)

        assert exc.value.current_stage == "sourced"
        assert exc.value.target_stage == "joined"
        with get_db_session() as db:
            after = repository.fetch_candidate(db, candidate.candidate_id)
        assert after.current_stage == CandidateStage.sourced
        assert after.version == candidate.version
        assert len(timeline_service.list_for_candidate(candidate.candidate_id)) == 1

    def test_unknown_stage_name(self, make_candidate, actor):
        candidate = make_candidate()
        with pytest.raises(InvalidTransition):
            stage_machine.transition(candidate.candidate_id, "hired", actor)

    def test_terminal_stage_is_final(self, make_candidate, actor):
        candidate = make_candidate()
        stage_machine.transition(candidate.candidate_id, "rejected", actor)
        with pytest.raises(InvalidTransition):
            stage_machine.transition(candidate.candidate_id, "screening", actor)

    def test_offer_made_needs_terms(self, place, actor):
        candidate = place(stop_at="interview_completed")
        with pytest.raises(DataIntegrityError):
            stage_machine.transition(candidate.candidate_id, "offer_made", actor)

        with get_db_session() as db:
            after = repository.fetch_candidate(db, candidate.candidate_id)
        assert after.current_stage == CandidateStage.interview_completed
        assert _offer(candidate.candidate_id) is None

    def test_missing_candidate(self, engine, actor):
        with pytest.raises(CandidateNotFound):
            stage_machine.transition(999, "screening", actor)


class TestExitStages:
    def test_dropping_after_acceptance_rejects_offer(self, place, actor):
        candidate = place(stop_at="offer_accepted")
        candidate = stage_machine.transition(candidate.candidate_id, "dropped", actor)

        assert candidate.current_stage == CandidateStage.dropped
        assert candidate.date_dropped is not None
        assert _offer(candidate.candidate_id).status == OfferStatus.rejected
        assert _safety_record(candidate.candidate_id) is None

    def test_rejecting_pending_offer(self, place, actor):
        candidate = place(stop_at="offer_made")
        stage_machine.transition(candidate.candidate_id, "rejected", actor, {"notes": "Counter-offer"})

        assert _offer(candidate.candidate_id).status == OfferStatus.rejected
        last = timeline_service.list_for_candidate(candidate.candidate_id)[-1]
        assert last.activity_type == ActivityType.offer_rejected
        assert "Counter-offer" in last.activity_description

    def test_rejecting_without_offer_is_plain_stage_change(self, make_candidate, actor):
        candidate = make_candidate()
        stage_machine.transition(candidate.candidate_id, "rejected", actor)
        last = timeline_service.list_for_candidate(candidate.candidate_id)[-1]
        assert last.activity_type == ActivityType.stage_change


class TestCompareAndSet:
    def test_stale_version_rolls_back(self, make_candidate):
        candidate = make_candidate()
        with pytest.raises(ConcurrentModification):
            with get_db_session() as db:
                stale = repository.fetch_candidate(db, candidate.candidate_id)
                repository.update_candidate(db, stale, current_stage=CandidateStage.screening)
                repository.update_candidate(db, stale, current_stage=CandidateStage.dropped)

        with get_db_session() as db:
            after = repository.fetch_candidate(db, candidate.candidate_id)
        assert after.current_stage == CandidateStage.sourced
        assert after.version == 0


class TestAllOrNothing:
    def test_failed_join_leaves_no_trace(self, place, actor, monkeypatch):
        candidate = place(stop_at="offer_accepted")
        cid = candidate.candidate_id
        entries_before = len(timeline_service.list_for_candidate(cid))

        def failing_record(*args, **kwargs):
            raise StorageUnavailable("timeline write failed", cid)

        monkeypatch.setattr(timeline_service, "record", failing_record)
        with pytest.raises(StorageUnavailable):
            stage_machine.transition(cid, "joined", actor, {"joining_date": date(2026, 1, 1)})
        monkeypatch.undo()

        with get_db_session() as db:
            after = repository.fetch_candidate(db, cid)
        assert after.current_stage == CandidateStage.offer_accepted
        assert after.version == candidate.version
        assert after.revenue_earned == Decimal("0")
        assert after.date_joined is None
        assert _offer(cid).status == OfferStatus.accepted
        assert _safety_record(cid) is None
        assert len(timeline_service.list_for_candidate(cid)) == entries_before
