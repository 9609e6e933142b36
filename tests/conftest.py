"""
Shared fixtures: an in-memory SQLite store with the full schema and a
small book of users, clients and jobs.

Seed data
- users 1, 2 (team 10), 3 (team 20)
- client 1 "Acme Corp": fee 8.33%, no guarantee override (90 days)
- client 2 "Globex": fee 10%, 60-day guarantee
- job 1 → Acme, job 2 → Globex
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, insert
from sqlalchemy.pool import StaticPool

from app.db.postgres import set_engine
from app.db.schema import clients, init_schema, jobs, users
from app.models.enums import UserRole
from app.models.placement import Actor
from app.services import candidate_service, stage_machine


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_schema(engine)
    with engine.begin() as conn:
        conn.execute(insert(users), [
            {"user_id": 1, "full_name": "Asha Rao", "email": "asha@agency.test", "role": "recruiter", "team_id": 10},
            {"user_id": 2, "full_name": "Ravi Kumar", "email": "ravi@agency.test", "role": "recruiter", "team_id": 10},
            {"user_id": 3, "full_name": "Meera Iyer", "email": "meera@agency.test", "role": "recruiter", "team_id": 20},
        ])
        conn.execute(insert(clients), [
            {"client_id": 1, "company_name": "Acme Corp", "fee_percentage": Decimal("8.33"),
             "replacement_guarantee_days": None},
            {"client_id": 2, "company_name": "Globex", "fee_percentage": Decimal("10"),
             "replacement_guarantee_days": 60},
        ])
        conn.execute(insert(jobs), [
            {"job_id": 1, "client_id": 1, "job_title": "Backend Engineer", "job_code": "ACM-01"},
            {"job_id": 2, "client_id": 2, "job_title": "Data Analyst", "job_code": "GLX-07"},
        ])
    set_engine(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def actor():
    return Actor(user_id=1, role=UserRole.recruiter, team_id=10)


@pytest.fixture
def make_candidate(engine, actor):
    def _make(full_name="Priya Sharma", job_id=1, assigned_to=None):
        return candidate_service.create_candidate(
            {"job_id": job_id, "full_name": full_name, "assigned_to": assigned_to},
            actor,
        )
    return _make


@pytest.fixture
def place(make_candidate, actor):
    """Walk a new candidate all the way to joined."""
    def _place(full_name="Priya Sharma", job_id=1, fixed_ctc="12",
               joining_date=date(2026, 1, 1), assigned_to=None, stop_at="joined"):
        candidate = make_candidate(full_name, job_id, assigned_to)
        cid = candidate.candidate_id
        steps = [
            ("screening", None),
            ("interview_scheduled", None),
            ("interview_completed", None),
            ("offer_made", {"offer": {"fixed_ctc": fixed_ctc}}),
            ("offer_accepted", None),
            ("joined", {"joining_date": joining_date}),
        ]
        for stage, context in steps:
            candidate = stage_machine.transition(cid, stage, actor, context)
            if stage == stop_at:
                break
        return candidate
    return _place
