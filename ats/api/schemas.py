"""API request/response schemas."""

from datetime import date

from pydantic import BaseModel, Field


# Job posting schemas
class JobPostingRequest(BaseModel):
    title: str
    job_category: str
    career: int | None = Field(default=None, description="Years of experience required")
    work_location: str = ""
    education: str = ""
    employment_type: str = ""
    salary: int | None = None
    work_time: str = ""
    start_date: date
    end_date: date
    job_posting_content: str = ""
    passing_number: int = Field(ge=1, description="Max candidates advanced by filtering")
    tech_stack: list[str] = []
    steps: list[str] = Field(min_length=1, description="Hiring steps in order")


class JobPostingUpdate(BaseModel):
    title: str | None = None
    job_category: str | None = None
    career: int | None = None
    work_location: str | None = None
    education: str | None = None
    employment_type: str | None = None
    salary: int | None = None
    work_time: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    job_posting_content: str | None = None
    passing_number: int | None = Field(default=None, ge=1)
    tech_stack: list[str] | None = None


class JobPostingInfoResponse(BaseModel):
    job_posting_key: str
    title: str
    job_category: str
    start_date: date
    end_date: date

    class Config:
        from_attributes = True


class JobPostingMainInfo(BaseModel):
    job_posting_key: str
    company_name: str
    title: str
    tech_stack: list[str]
    end_date: date


class MainJobPostingsResponse(BaseModel):
    job_postings: list[JobPostingMainInfo]
    total_pages: int
    total_elements: int


class JobPostingDetailResponse(BaseModel):
    job_posting_key: str
    company_key: str
    title: str
    job_category: str
    career: int | None
    work_location: str
    education: str
    employment_type: str
    salary: int | None
    work_time: str
    start_date: date
    end_date: date
    job_posting_content: str
    passing_number: int
    tech_stack: list[str]
    steps: list[str]


class JobPostingCreatedResponse(BaseModel):
    job_posting_key: str
    message: str


# Application schemas
class ApplyResponse(BaseModel):
    job_posting_key: str
    candidate_key: str
    message: str


class CandidateListResponse(BaseModel):
    candidate_list_key: str
    candidate_key: str
    candidate_name: str
    job_posting_step_id: int

    class Config:
        from_attributes = True


class StepCandidatesResponse(BaseModel):
    step_id: int
    step_name: str
    candidates: list[CandidateListResponse]
