"""Ownership checks for company-owned resources."""

from ats.exceptions import ErrorCode, ForbiddenError


def is_company_owner(caller_company_key: str | None, owner_company_key: str) -> bool:
    return bool(caller_company_key) and caller_company_key == owner_company_key


def ensure_company_owner(caller_company_key: str | None, owner_company_key: str) -> None:
    """Raise ForbiddenError unless the caller is the owning company."""
    if not is_company_owner(caller_company_key, owner_company_key):
        raise ForbiddenError(ErrorCode.NOT_RESOURCE_OWNER)
