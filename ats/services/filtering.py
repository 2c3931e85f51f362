"""
Candidate filtering: pipeline scheduling and the ranking transaction.

The screening pipeline for a posting runs in two stages after its deadline:
resume scoring at midnight of the day after end_date, then filtering one
minute later. Filtering only ranks once scoring has recorded completion
(see ats.scheduling.jobs), so the one-minute slot is a default, not an
ordering guarantee.
"""

import logging
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import delete, text
from sqlalchemy.orm import Session

from ats.config import settings
from ats.db import Applicant, AppliedJobPosting, Candidate, CandidateList, JobPosting, JobPostingStep
from ats.exceptions import ErrorCode, NotFoundError, SchedulingError
from ats.keys import generate_key
from ats.scheduling.scheduler import JobScheduler, MisfirePolicy, SchedulerEngineError, get_scheduler

logger = logging.getLogger(__name__)

SCORING_JOB_REF = "ats.scheduling.jobs:run_scoring_job"
FILTERING_JOB_REF = "ats.scheduling.jobs:run_filtering_job"


def scoring_job_name(job_posting_key: str) -> str:
    return f"resumeScoringJob-{job_posting_key}"


def filtering_job_name(job_posting_key: str) -> str:
    return f"filteringJob-{job_posting_key}"


def first_step(db: Session, job_posting_key: str) -> JobPostingStep | None:
    """First hiring step of a posting (smallest step id)."""
    return (
        db.query(JobPostingStep)
        .filter(JobPostingStep.job_posting_key == job_posting_key)
        .order_by(JobPostingStep.id.asc())
        .first()
    )


def rank_applicants(applicants: list[Applicant], limit: int) -> list[Applicant]:
    """Highest score first; earlier application wins a tie.

    sorted() is stable, so applicants tied on both keys keep input order.
    """
    ranked = sorted(applicants, key=lambda a: (-a.score, a.created_at))
    return ranked[: max(limit, 0)]


class FilteringService:
    """Schedules the screening pipeline and advances top applicants."""

    def __init__(self, scheduler: JobScheduler, group: str | None = None):
        self.scheduler = scheduler
        self.group = group or settings.scheduler_group

    # Scheduling

    def fire_time_for(self, end_date: date) -> datetime:
        """Midnight of the day after the deadline, in the scheduler timezone."""
        tz = ZoneInfo(settings.scheduler_timezone)
        return datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=tz)

    def schedule_resume_scoring_job(self, job_posting_key: str, end_date: date) -> None:
        """Schedule scoring then filtering for a posting, replacing any earlier schedule.

        Raises:
            SchedulingError: SCHEDULE_FAILED when the engine rejects a job.
        """
        scoring_at = self.fire_time_for(end_date)
        filtering_at = scoring_at + timedelta(minutes=settings.filtering_delay_minutes)
        logger.info(
            f"Scheduling screening for {job_posting_key}: scoring at {scoring_at.isoformat()}, "
            f"filtering at {filtering_at.isoformat()}"
        )

        try:
            self._replace(scoring_job_name(job_posting_key), SCORING_JOB_REF, job_posting_key, scoring_at)
            self._replace(filtering_job_name(job_posting_key), FILTERING_JOB_REF, job_posting_key, filtering_at)
        except SchedulerEngineError as e:
            logger.error(f"Scheduling screening for {job_posting_key} failed: {e}")
            raise SchedulingError(ErrorCode.SCHEDULE_FAILED) from e

    def unschedule_resume_scoring_job(self, job_posting_key: str) -> None:
        """Cancel both stages. Missing triggers are not an error.

        Raises:
            SchedulingError: UNSCHEDULE_FAILED when the engine fails.
        """
        logger.info(f"Unscheduling screening for {job_posting_key}")
        try:
            for name in (scoring_job_name(job_posting_key), filtering_job_name(job_posting_key)):
                if not self.scheduler.cancel(name, self.group):
                    logger.debug(f"No trigger {name} to cancel")
        except SchedulerEngineError as e:
            logger.error(f"Unscheduling screening for {job_posting_key} failed: {e}")
            raise SchedulingError(ErrorCode.UNSCHEDULE_FAILED) from e

    def schedule_filtering_at(self, job_posting_key: str, fire_at: datetime) -> None:
        """Move the filtering stage to fire_at (completion signal or deferral)."""
        try:
            self._replace(filtering_job_name(job_posting_key), FILTERING_JOB_REF, job_posting_key, fire_at)
        except SchedulerEngineError as e:
            logger.error(f"Rescheduling filtering for {job_posting_key} failed: {e}")
            raise SchedulingError(ErrorCode.SCHEDULE_FAILED) from e

    def get_schedule(self, job_posting_key: str) -> dict[str, datetime | None]:
        """Next fire times of both stages, None where nothing is scheduled."""
        return {
            "scoring": self.scheduler.next_fire_time(scoring_job_name(job_posting_key), self.group),
            "filtering": self.scheduler.next_fire_time(filtering_job_name(job_posting_key), self.group),
        }

    def _replace(self, job_name: str, func_ref: str, job_posting_key: str, fire_at: datetime) -> None:
        if self.scheduler.exists(job_name, self.group):
            logger.info(f"Replacing existing job {job_name}")
        # Replaced in one step: a job thread may reschedule the same stage concurrently
        self.scheduler.schedule_at(
            job_name,
            self.group,
            func_ref,
            {"job_posting_key": job_posting_key},
            fire_at,
            MisfirePolicy.FIRE_NOW,
            replace=True,
        )

    # Ranking

    def filter_candidates(self, db: Session, job_posting_key: str) -> list[CandidateList]:
        """Advance the top passing_number applicants into the posting's first step.

        Runs as one transaction: the first-step roster is replaced by the
        ranked shortlist and each selected application moves to the first
        step. Any failure rolls everything back.

        Raises:
            NotFoundError: JOB_POSTING_NOT_FOUND, JOB_POSTING_STEP_NOT_FOUND,
                CANDIDATE_NOT_FOUND or APPLY_NOT_FOUND.
        """
        try:
            self._bound_transaction(db)

            posting = db.query(JobPosting).filter(JobPosting.job_posting_key == job_posting_key).first()
            if not posting:
                raise NotFoundError(ErrorCode.JOB_POSTING_NOT_FOUND)
            logger.info(f"Filtering candidates for {job_posting_key}, passing number {posting.passing_number}")

            applicants = db.query(Applicant).filter(Applicant.job_posting_key == job_posting_key).all()
            selected = rank_applicants(applicants, posting.passing_number)

            step = first_step(db, job_posting_key)
            if not step:
                raise NotFoundError(ErrorCode.JOB_POSTING_STEP_NOT_FOUND)

            db.execute(
                delete(CandidateList).where(
                    CandidateList.job_posting_key == job_posting_key,
                    CandidateList.job_posting_step_id == step.id,
                )
            )

            shortlist = []
            for applicant in selected:
                candidate = db.query(Candidate).filter(Candidate.candidate_key == applicant.candidate_key).first()
                if not candidate:
                    raise NotFoundError(ErrorCode.CANDIDATE_NOT_FOUND, f"Candidate {applicant.candidate_key} not found")

                entry = CandidateList(
                    candidate_list_key=generate_key(),
                    job_posting_key=job_posting_key,
                    job_posting_step_id=step.id,
                    candidate_key=candidate.candidate_key,
                    candidate_name=candidate.name,
                )
                db.add(entry)
                shortlist.append(entry)

                applied = (
                    db.query(AppliedJobPosting)
                    .filter(
                        AppliedJobPosting.candidate_key == applicant.candidate_key,
                        AppliedJobPosting.job_posting_key == applicant.job_posting_key,
                    )
                    .first()
                )
                if not applied:
                    raise NotFoundError(
                        ErrorCode.APPLY_NOT_FOUND,
                        f"No application record for candidate {applicant.candidate_key}",
                    )
                applied.step_name = step.step

            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Advanced {len(shortlist)}/{len(applicants)} applicants of {job_posting_key} to '{step.step}'")
        return shortlist

    def _bound_transaction(self, db: Session) -> None:
        """Cap statement time inside the ranking transaction where the backend supports it."""
        if db.get_bind().dialect.name == "postgresql":
            timeout_ms = int(settings.filtering_statement_timeout_ms)
            db.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))


def get_filtering_service() -> FilteringService:
    """FilteringService bound to the process-wide scheduler."""
    return FilteringService(get_scheduler())
