"""Job posting endpoints."""

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query, Request
from sqlalchemy.orm import Session

from ats.api.limiter import limiter
from ats.api.schemas import (
    ApplyResponse,
    CandidateListResponse,
    JobPostingCreatedResponse,
    JobPostingDetailResponse,
    JobPostingInfoResponse,
    JobPostingRequest,
    JobPostingUpdate,
    MainJobPostingsResponse,
    StepCandidatesResponse,
)
from ats.config import settings
from ats.db import get_db
from ats.notifications.mailer import SmtpMailer, get_mailer, notify_candidates
from ats.services import job_postings as service
from ats.services.filtering import FilteringService, get_filtering_service

router = APIRouter()


@router.post("", response_model=JobPostingCreatedResponse, status_code=201)
def create_job_posting(
    data: JobPostingRequest,
    x_company_key: str = Header(..., alias="X-Company-Key"),
    db: Session = Depends(get_db),
    filtering: FilteringService = Depends(get_filtering_service),
):
    """Create a job posting and schedule its screening."""
    posting = service.create_job_posting(db, filtering, x_company_key, data)
    return JobPostingCreatedResponse(job_posting_key=posting.job_posting_key, message="Job posting created")


@router.get("", response_model=MainJobPostingsResponse)
def list_job_postings(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Main page listing."""
    return service.get_all_job_postings(db, page, size)


@router.get("/{job_posting_key}", response_model=JobPostingDetailResponse)
def get_job_posting(job_posting_key: str, db: Session = Depends(get_db)):
    """Job posting detail."""
    return service.get_job_posting_detail(db, job_posting_key)


@router.put("/{job_posting_key}", response_model=JobPostingInfoResponse)
def edit_job_posting(
    job_posting_key: str,
    data: JobPostingUpdate,
    background_tasks: BackgroundTasks,
    x_company_key: str = Header(..., alias="X-Company-Key"),
    db: Session = Depends(get_db),
    filtering: FilteringService = Depends(get_filtering_service),
    mailer: SmtpMailer = Depends(get_mailer),
):
    """Edit a job posting; first-step candidates are emailed after the response."""
    posting, recipients = service.edit_job_posting(db, filtering, x_company_key, job_posting_key, data)
    if recipients:
        background_tasks.add_task(notify_candidates, mailer, posting.title, job_posting_key, recipients)
    return JobPostingInfoResponse.model_validate(posting)


@router.delete("/{job_posting_key}")
def delete_job_posting(
    job_posting_key: str,
    x_company_key: str = Header(..., alias="X-Company-Key"),
    db: Session = Depends(get_db),
    filtering: FilteringService = Depends(get_filtering_service),
):
    """Delete a job posting without first-step candidates."""
    service.delete_job_posting(db, filtering, x_company_key, job_posting_key)
    return {"message": "Job posting deleted"}


@router.post("/{job_posting_key}/apply", response_model=ApplyResponse, status_code=201)
@limiter.limit(settings.apply_rate_limit)
def apply_job_posting(
    request: Request,
    job_posting_key: str,
    x_candidate_key: str = Header(..., alias="X-Candidate-Key"),
    db: Session = Depends(get_db),
):
    """Apply to a job posting."""
    service.apply_job_posting(db, job_posting_key, x_candidate_key)
    return ApplyResponse(job_posting_key=job_posting_key, candidate_key=x_candidate_key, message="Application completed")


@router.get("/{job_posting_key}/steps/{step_id}/candidates", response_model=StepCandidatesResponse)
def get_step_candidates(
    job_posting_key: str,
    step_id: int,
    x_company_key: str = Header(..., alias="X-Company-Key"),
    db: Session = Depends(get_db),
):
    """Candidates placed in a step of a job posting."""
    step, entries = service.get_candidates_by_step(db, x_company_key, job_posting_key, step_id)
    return StepCandidatesResponse(
        step_id=step.id,
        step_name=step.step,
        candidates=[CandidateListResponse.model_validate(e) for e in entries],
    )
