"""Error codes and the exception hierarchy raised by the services."""

from enum import Enum


class ErrorCode(Enum):
    """Error code -> (HTTP status, message)."""

    JOB_POSTING_NOT_FOUND = (404, "Job posting not found")
    JOB_POSTING_STEP_NOT_FOUND = (404, "Job posting step not found")
    CANDIDATE_NOT_FOUND = (404, "Candidate not found")
    COMPANY_NOT_FOUND = (404, "Company not found")
    APPLY_NOT_FOUND = (404, "Application record not found")

    ALREADY_APPLIED = (409, "Candidate has already applied to this job posting")
    JOB_POSTING_HAS_CANDIDATES = (409, "Job posting has candidates in its first step")

    NOT_RESOURCE_OWNER = (403, "Access denied")

    SCHEDULE_FAILED = (500, "Failed to schedule the screening pipeline")
    UNSCHEDULE_FAILED = (500, "Failed to cancel the screening pipeline")

    @property
    def status(self) -> int:
        return self.value[0]

    @property
    def message(self) -> str:
        return self.value[1]


class AtsError(Exception):
    """Base class for service errors carrying an ErrorCode."""

    def __init__(self, code: ErrorCode, detail: str | None = None):
        self.code = code
        self.detail = detail or code.message
        super().__init__(f"{code.name}: {self.detail}")


class NotFoundError(AtsError):
    """A posting, step, candidate, company or application record is missing."""


class ConflictError(AtsError):
    """The request conflicts with existing state (duplicate application, etc.)."""


class ForbiddenError(AtsError):
    """The caller does not own the resource."""


class SchedulingError(AtsError):
    """The scheduler engine refused a schedule or unschedule request."""
