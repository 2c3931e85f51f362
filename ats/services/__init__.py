"""
Services.

- filtering: screening pipeline scheduling and candidate ranking
- scoring: resume scoring of applicants
- job_postings: posting lifecycle, applications, notifications
- ownership: company ownership checks
"""

from ats.services.filtering import FilteringService, get_filtering_service

__all__ = ["FilteringService", "get_filtering_service"]
