"""Database table models."""

from datetime import UTC, date, datetime

from sqlalchemy import JSON, Date, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ats.db.base import Base
from ats.keys import generate_key


def utcnow() -> datetime:
    return datetime.now(UTC)


class Company(Base):
    """Company account that owns job postings."""

    __tablename__ = "companies"

    company_key: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_key)
    company_name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), unique=True)


class Candidate(Base):
    """Candidate account."""

    __tablename__ = "candidates"

    candidate_key: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_key)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), unique=True)
    skills: Mapped[list] = mapped_column(JSON, default=list)  # Resume skills, used for scoring


class JobPosting(Base):
    """A company's advertised role."""

    __tablename__ = "job_postings"

    job_posting_key: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_key)
    company_key: Mapped[str] = mapped_column(String(32), index=True)
    title: Mapped[str] = mapped_column(String(255))
    job_category: Mapped[str] = mapped_column(String(100))
    career: Mapped[int | None] = mapped_column(default=None)  # Years of experience required
    work_location: Mapped[str] = mapped_column(String(255), default="")
    education: Mapped[str] = mapped_column(String(100), default="")
    employment_type: Mapped[str] = mapped_column(String(50), default="")
    salary: Mapped[int | None] = mapped_column(default=None)
    work_time: Mapped[str] = mapped_column(String(100), default="")
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    job_posting_content: Mapped[str] = mapped_column(Text, default="")
    passing_number: Mapped[int] = mapped_column(Integer)
    tech_stack: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class JobPostingStep(Base):
    """Ordered hiring stage of a posting. Smallest id is the first step."""

    __tablename__ = "job_posting_steps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_posting_key: Mapped[str] = mapped_column(String(32), index=True)
    step: Mapped[str] = mapped_column(String(100))


class Applicant(Base):
    """A candidate's application to a posting, with its screening score."""

    __tablename__ = "applicants"
    __table_args__ = (UniqueConstraint("candidate_key", "job_posting_key"),)

    applicant_key: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_key)
    candidate_key: Mapped[str] = mapped_column(String(32))
    job_posting_key: Mapped[str] = mapped_column(String(32), index=True)
    score: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class CandidateList(Base):
    """A candidate placed into a step of a posting."""

    __tablename__ = "candidate_lists"

    candidate_list_key: Mapped[str] = mapped_column(String(32), primary_key=True, default=generate_key)
    job_posting_key: Mapped[str] = mapped_column(String(32), index=True)
    job_posting_step_id: Mapped[int] = mapped_column(Integer)
    candidate_key: Mapped[str] = mapped_column(String(32))
    candidate_name: Mapped[str] = mapped_column(String(100))


class AppliedJobPosting(Base):
    """Candidate-side view of an application and its current step."""

    __tablename__ = "applied_job_postings"
    __table_args__ = (UniqueConstraint("candidate_key", "job_posting_key"),)

    applied_job_posting_key: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=generate_key
    )
    candidate_key: Mapped[str] = mapped_column(String(32), index=True)
    job_posting_key: Mapped[str] = mapped_column(String(32))
    title: Mapped[str] = mapped_column(String(255))
    step_name: Mapped[str] = mapped_column(String(100))
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class ScreeningRun(Base):
    """Progress of the scoring -> filtering pipeline for one posting."""

    __tablename__ = "screening_runs"

    job_posting_key: Mapped[str] = mapped_column(String(32), primary_key=True)
    status: Mapped[str] = mapped_column(String(20))  # scoring/scored/filtering/filtered/failed
    filter_deferrals: Mapped[int] = mapped_column(Integer, default=0)
    scored_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)
    filtered_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)
    error: Mapped[str | None] = mapped_column(Text, default=None)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
