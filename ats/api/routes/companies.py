"""Company endpoints."""

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from ats.api.schemas import JobPostingInfoResponse
from ats.db import get_db
from ats.services import job_postings as service

router = APIRouter()


@router.get("/{company_key}/job-postings", response_model=list[JobPostingInfoResponse])
def list_company_job_postings(
    company_key: str,
    x_company_key: str = Header(..., alias="X-Company-Key"),
    db: Session = Depends(get_db),
):
    """Job postings registered by the calling company."""
    return service.get_job_postings_by_company(db, x_company_key, company_key)
