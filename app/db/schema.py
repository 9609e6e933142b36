"""
Relational schema.

Tables:
1. users                     - recruiters and team leaders (attribution + scope)
2. clients                   - per-client fee % and guarantee window
3. jobs                      - requisitions, one client each
4. candidates                - aggregate root, one job each
5. offers                    - commercial terms per candidate
6. placement_safety_tracker  - one row per joined candidate
7. candidate_timeline        - append-only audit log

Defined with SQLAlchemy Core so the same DDL runs on PostgreSQL and SQLite.
"""

from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, ForeignKey, Integer, MetaData,
    Numeric, String, Table, Text, func,
)

metadata = MetaData()

users = Table(
    "users", metadata,
    Column("user_id", Integer, primary_key=True),
    Column("full_name", String(120), nullable=False),
    Column("email", String(200), unique=True),
    Column("role", String(30), nullable=False, server_default="recruiter"),
    Column("team_id", Integer, index=True),
)

clients = Table(
    "clients", metadata,
    Column("client_id", Integer, primary_key=True),
    Column("company_name", String(200), nullable=False),
    # NULL means "use the configured default"
    Column("fee_percentage", Numeric(5, 2)),
    Column("replacement_guarantee_days", Integer),
)

jobs = Table(
    "jobs", metadata,
    Column("job_id", Integer, primary_key=True),
    Column("client_id", Integer, ForeignKey("clients.client_id"), nullable=False),
    Column("job_title", String(200), nullable=False),
    Column("job_code", String(50)),
    Column("status", String(20), nullable=False, server_default="open"),
)

candidates = Table(
    "candidates", metadata,
    Column("candidate_id", Integer, primary_key=True),
    Column("job_id", Integer, ForeignKey("jobs.job_id"), nullable=False, index=True),
    Column("assigned_to", Integer, ForeignKey("users.user_id"), index=True),
    Column("full_name", String(120), nullable=False),
    Column("email", String(200)),
    Column("phone", String(20)),
    Column("current_location", String(100)),
    Column("current_company", String(200)),
    Column("current_designation", String(200)),
    Column("skills", JSON),
    Column("total_experience", Numeric(4, 1)),
    Column("current_ctc", Numeric(10, 2)),
    Column("expected_ctc", Numeric(10, 2)),
    Column("notice_period", Integer),
    Column("current_stage", String(30), nullable=False, server_default="sourced"),
    Column("date_sourced", DateTime),
    Column("date_screening_started", DateTime),
    Column("date_interview_scheduled", DateTime),
    Column("date_interview_completed", DateTime),
    Column("date_offer_made", DateTime),
    Column("date_offer_accepted", DateTime),
    Column("date_joined", Date),
    Column("date_rejected", DateTime),
    Column("date_dropped", DateTime),
    Column("last_activity_date", DateTime),
    Column("revenue_earned", Numeric(10, 2), nullable=False, server_default="0"),
    Column("revenue_month", String(7)),
    Column("revenue_year", Integer),
    Column("is_renege", Boolean, nullable=False, server_default="0"),
    Column("renege_date", Date),
    Column("renege_reason", Text),
    Column("renege_type", String(30)),
    Column("is_placement_safe", Boolean, nullable=False, server_default="0"),
    Column("placement_status", String(20), nullable=False, server_default="none"),
    Column("guarantee_period_ends", Date),
    Column("version", Integer, nullable=False, server_default="0"),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
)

offers = Table(
    "offers", metadata,
    Column("offer_id", Integer, primary_key=True),
    Column("candidate_id", Integer, ForeignKey("candidates.candidate_id"), nullable=False, index=True),
    Column("job_id", Integer, ForeignKey("jobs.job_id"), nullable=False),
    Column("fixed_ctc", Numeric(10, 2), nullable=False),
    Column("variable_ctc", Numeric(10, 2), nullable=False, server_default="0"),
    Column("offered_ctc", Numeric(10, 2), nullable=False),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("expected_joining_date", Date),
    Column("actual_joining_date", Date),
    Column("notes", Text),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
)

placement_safety_tracker = Table(
    "placement_safety_tracker", metadata,
    Column("tracker_id", Integer, primary_key=True),
    Column("candidate_id", Integer, ForeignKey("candidates.candidate_id"), nullable=False, unique=True),
    Column("recruiter_id", Integer, ForeignKey("users.user_id"), index=True),
    Column("client_id", Integer, ForeignKey("clients.client_id")),
    Column("joining_date", Date, nullable=False),
    Column("guarantee_period_days", Integer, nullable=False),
    Column("guarantee_period_ends", Date, nullable=False, index=True),
    Column("safety_status", String(20), nullable=False, server_default="monitoring", index=True),
    Column("last_followup_date", Date),
    Column("risk_notes", Text),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
)

candidate_timeline = Table(
    "candidate_timeline", metadata,
    Column("timeline_id", Integer, primary_key=True),
    Column("candidate_id", Integer, ForeignKey("candidates.candidate_id"), nullable=False, index=True),
    Column("activity_type", String(40), nullable=False),
    Column("activity_title", String(200), nullable=False),
    Column("activity_description", Text),
    Column("metadata", JSON),
    Column("performed_by", String(64), nullable=False),
    Column("created_at", DateTime, server_default=func.now()),
)


def init_schema(engine) -> None:
    """Create all tables that do not exist yet."""
    metadata.create_all(engine)
