"""Database package."""

from ats.db.base import Base, get_db, init_db, session_scope
from ats.db.tables import (
    Applicant,
    AppliedJobPosting,
    Candidate,
    CandidateList,
    Company,
    JobPosting,
    JobPostingStep,
    ScreeningRun,
)

__all__ = [
    "Base",
    "get_db",
    "init_db",
    "session_scope",
    "Company",
    "Candidate",
    "JobPosting",
    "JobPostingStep",
    "Applicant",
    "CandidateList",
    "AppliedJobPosting",
    "ScreeningRun",
]
