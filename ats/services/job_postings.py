"""
Job posting lifecycle and applications.

Company-owned operations take the caller's company key explicitly and check
it with ensure_company_owner(). Create, edit and delete keep the screening
pipeline schedule in step with the posting's deadline; a scheduling failure
fails the whole operation.
"""

import logging
import math
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from ats.api.schemas import (
    JobPostingDetailResponse,
    JobPostingInfoResponse,
    JobPostingMainInfo,
    JobPostingRequest,
    JobPostingUpdate,
    MainJobPostingsResponse,
)
from ats.db import (
    Applicant,
    AppliedJobPosting,
    Candidate,
    CandidateList,
    Company,
    JobPosting,
    JobPostingStep,
    ScreeningRun,
)
from ats.exceptions import ConflictError, ErrorCode, NotFoundError, SchedulingError
from ats.keys import generate_key
from ats.notifications.mailer import Recipient
from ats.scheduling.jobs import PENDING
from ats.services.filtering import FilteringService, first_step
from ats.services.ownership import ensure_company_owner

logger = logging.getLogger(__name__)


def _get_posting(db: Session, job_posting_key: str) -> JobPosting:
    posting = db.query(JobPosting).filter(JobPosting.job_posting_key == job_posting_key).first()
    if not posting:
        raise NotFoundError(ErrorCode.JOB_POSTING_NOT_FOUND)
    return posting


def _get_first_step(db: Session, job_posting_key: str) -> JobPostingStep:
    step = first_step(db, job_posting_key)
    if not step:
        raise NotFoundError(ErrorCode.JOB_POSTING_STEP_NOT_FOUND)
    return step


def _step_names(db: Session, job_posting_key: str) -> list[str]:
    steps = (
        db.query(JobPostingStep)
        .filter(JobPostingStep.job_posting_key == job_posting_key)
        .order_by(JobPostingStep.id.asc())
        .all()
    )
    return [s.step for s in steps]


def _discard_posting(db: Session, job_posting_key: str) -> None:
    db.query(JobPostingStep).filter(JobPostingStep.job_posting_key == job_posting_key).delete()
    db.query(ScreeningRun).filter(ScreeningRun.job_posting_key == job_posting_key).delete()
    db.query(JobPosting).filter(JobPosting.job_posting_key == job_posting_key).delete()
    db.commit()


def _unschedule_quietly(filtering: FilteringService, job_posting_key: str) -> None:
    """Drop whatever part of a failed schedule made it into the job store."""
    try:
        filtering.unschedule_resume_scoring_job(job_posting_key)
    except SchedulingError as e:
        logger.error(f"Cleanup of triggers for {job_posting_key} failed: {e}")


def create_job_posting(
    db: Session, filtering: FilteringService, company_key: str, data: JobPostingRequest
) -> JobPosting:
    """Create a posting with its steps and schedule its screening pipeline.

    The rows are committed before the job store is written (a SQLite job
    store shares the database file) and removed again if scheduling fails.
    """
    company = db.query(Company).filter(Company.company_key == company_key).first()
    if not company:
        raise NotFoundError(ErrorCode.COMPANY_NOT_FOUND)

    job_posting_key = generate_key()
    posting = JobPosting(
        job_posting_key=job_posting_key,
        company_key=company_key,
        **data.model_dump(exclude={"steps"}),
    )
    db.add(posting)
    # Added one by one so ids ascend in the given order
    for name in data.steps:
        db.add(JobPostingStep(job_posting_key=job_posting_key, step=name))
        db.flush()
    db.add(ScreeningRun(job_posting_key=job_posting_key, status=PENDING, filter_deferrals=0))
    db.commit()

    try:
        filtering.schedule_resume_scoring_job(job_posting_key, data.end_date)
    except SchedulingError:
        logger.error(f"Scheduling failed, discarding job posting {job_posting_key}")
        _unschedule_quietly(filtering, job_posting_key)
        _discard_posting(db, job_posting_key)
        raise

    db.refresh(posting)
    logger.info(f"Job posting created - jobPostingKey: {job_posting_key}, companyKey: {company_key}")
    return posting


def get_job_postings_by_company(
    db: Session, caller_company_key: str | None, company_key: str
) -> list[JobPostingInfoResponse]:
    """Postings registered by a company, visible to that company only."""
    ensure_company_owner(caller_company_key, company_key)

    postings = (
        db.query(JobPosting)
        .filter(JobPosting.company_key == company_key)
        .order_by(JobPosting.created_at.desc())
        .all()
    )
    return [JobPostingInfoResponse.model_validate(p) for p in postings]


def get_all_job_postings(db: Session, page: int = 1, size: int = 20) -> MainJobPostingsResponse:
    """Main page listing, newest first. page is 1-based."""
    total = db.query(JobPosting).count()
    postings = (
        db.query(JobPosting)
        .order_by(JobPosting.created_at.desc())
        .offset((page - 1) * size)
        .limit(size)
        .all()
    )

    company_keys = {p.company_key for p in postings}
    companies = {
        c.company_key: c.company_name
        for c in db.query(Company).filter(Company.company_key.in_(company_keys)).all()
    }

    items = []
    for p in postings:
        if p.company_key not in companies:
            raise NotFoundError(ErrorCode.COMPANY_NOT_FOUND)
        items.append(
            JobPostingMainInfo(
                job_posting_key=p.job_posting_key,
                company_name=companies[p.company_key],
                title=p.title,
                tech_stack=p.tech_stack or [],
                end_date=p.end_date,
            )
        )

    logger.info(f"Listed {len(items)} job postings (page {page})")
    return MainJobPostingsResponse(
        job_postings=items,
        total_pages=math.ceil(total / size) if size else 0,
        total_elements=total,
    )


def get_job_posting_detail(db: Session, job_posting_key: str) -> JobPostingDetailResponse:
    posting = _get_posting(db, job_posting_key)
    return JobPostingDetailResponse(
        job_posting_key=posting.job_posting_key,
        company_key=posting.company_key,
        title=posting.title,
        job_category=posting.job_category,
        career=posting.career,
        work_location=posting.work_location,
        education=posting.education,
        employment_type=posting.employment_type,
        salary=posting.salary,
        work_time=posting.work_time,
        start_date=posting.start_date,
        end_date=posting.end_date,
        job_posting_content=posting.job_posting_content,
        passing_number=posting.passing_number,
        tech_stack=posting.tech_stack or [],
        steps=_step_names(db, job_posting_key),
    )


def edit_job_posting(
    db: Session,
    filtering: FilteringService,
    caller_company_key: str | None,
    job_posting_key: str,
    data: JobPostingUpdate,
) -> tuple[JobPosting, list[Recipient]]:
    """Update a posting, rescheduling its pipeline when the deadline moves.

    Returns the posting and the first-step candidates to notify. Sending is
    left to the caller, after this transaction has committed.
    """
    posting = _get_posting(db, job_posting_key)
    ensure_company_owner(caller_company_key, posting.company_key)

    step = _get_first_step(db, job_posting_key)
    roster = (
        db.query(CandidateList)
        .filter(CandidateList.job_posting_key == job_posting_key, CandidateList.job_posting_step_id == step.id)
        .all()
    )

    deadline_moved = data.end_date is not None and data.end_date != posting.end_date
    old_end_date = posting.end_date
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(posting, field, value)

    recipients = []
    for entry in roster:
        candidate = db.query(Candidate).filter(Candidate.candidate_key == entry.candidate_key).first()
        if not candidate:
            logger.warning(f"[{job_posting_key}] Candidate {entry.candidate_key} missing, not notified")
            continue
        recipients.append(Recipient(email=candidate.email, name=candidate.name))

    db.commit()

    # Triggers follow the committed row; a failure restores the old deadline
    if deadline_moved:
        try:
            filtering.schedule_resume_scoring_job(job_posting_key, data.end_date)
        except SchedulingError:
            logger.error(f"Rescheduling failed, restoring end date of {job_posting_key} to {old_end_date}")
            posting.end_date = old_end_date
            db.commit()
            # Overdue triggers would fire at once, so only future ones come back
            if filtering.fire_time_for(old_end_date) > datetime.now(UTC):
                try:
                    filtering.schedule_resume_scoring_job(job_posting_key, old_end_date)
                except SchedulingError as e:
                    logger.error(f"Restoring triggers for {job_posting_key} failed: {e}")
            raise

    db.refresh(posting)
    logger.info(f"Job posting edited - jobPostingKey: {job_posting_key}, {len(recipients)} candidates to notify")
    return posting, recipients


def delete_job_posting(
    db: Session, filtering: FilteringService, caller_company_key: str | None, job_posting_key: str
) -> None:
    """Delete a posting that has nobody in its first step."""
    posting = _get_posting(db, job_posting_key)
    ensure_company_owner(caller_company_key, posting.company_key)

    step = _get_first_step(db, job_posting_key)
    has_candidates = (
        db.query(CandidateList)
        .filter(CandidateList.job_posting_key == job_posting_key, CandidateList.job_posting_step_id == step.id)
        .first()
        is not None
    )
    if has_candidates:
        raise ConflictError(ErrorCode.JOB_POSTING_HAS_CANDIDATES)

    filtering.unschedule_resume_scoring_job(job_posting_key)

    db.query(JobPostingStep).filter(JobPostingStep.job_posting_key == job_posting_key).delete()
    db.query(ScreeningRun).filter(ScreeningRun.job_posting_key == job_posting_key).delete()
    db.delete(posting)
    db.commit()
    logger.info(f"Job posting deleted - jobPostingKey: {job_posting_key}")


def apply_job_posting(db: Session, job_posting_key: str, candidate_key: str) -> CandidateList:
    """Apply a candidate to a posting, placing them in its first step."""
    posting = _get_posting(db, job_posting_key)

    candidate = db.query(Candidate).filter(Candidate.candidate_key == candidate_key).first()
    if not candidate:
        raise NotFoundError(ErrorCode.CANDIDATE_NOT_FOUND)

    step = _get_first_step(db, job_posting_key)

    already_applied = (
        db.query(Applicant)
        .filter(Applicant.candidate_key == candidate_key, Applicant.job_posting_key == job_posting_key)
        .first()
        is not None
    )
    if already_applied:
        raise ConflictError(ErrorCode.ALREADY_APPLIED)

    db.add(Applicant(applicant_key=generate_key(), candidate_key=candidate_key, job_posting_key=job_posting_key))
    db.add(
        AppliedJobPosting(
            applied_job_posting_key=generate_key(),
            candidate_key=candidate_key,
            job_posting_key=job_posting_key,
            title=posting.title,
            step_name=step.step,
            start_date=posting.start_date,
            end_date=posting.end_date,
        )
    )
    entry = CandidateList(
        candidate_list_key=generate_key(),
        job_posting_key=job_posting_key,
        job_posting_step_id=step.id,
        candidate_key=candidate_key,
        candidate_name=candidate.name,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)

    logger.info(f"Application completed - jobPostingKey: {job_posting_key}, candidateKey: {candidate_key}")
    return entry


def get_candidates_by_step(
    db: Session, caller_company_key: str | None, job_posting_key: str, step_id: int
) -> tuple[JobPostingStep, list[CandidateList]]:
    """Candidates currently placed in one step of a posting."""
    posting = _get_posting(db, job_posting_key)
    ensure_company_owner(caller_company_key, posting.company_key)

    step = (
        db.query(JobPostingStep)
        .filter(JobPostingStep.id == step_id, JobPostingStep.job_posting_key == job_posting_key)
        .first()
    )
    if not step:
        raise NotFoundError(ErrorCode.JOB_POSTING_STEP_NOT_FOUND)

    entries = (
        db.query(CandidateList)
        .filter(CandidateList.job_posting_key == job_posting_key, CandidateList.job_posting_step_id == step_id)
        .all()
    )
    return step, entries
