"""Resume scoring for a posting's applicants.

Score range: 0-100. The default scorer is the share of the posting's tech
stack found in the candidate's resume skills.
"""

import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from ats.db import Applicant, Candidate, JobPosting
from ats.exceptions import ErrorCode, NotFoundError

logger = logging.getLogger(__name__)

Scorer = Callable[[JobPosting, Candidate], int | None]


def skill_match_score(posting: JobPosting, candidate: Candidate) -> int | None:
    """Percentage of posting tech stack covered by candidate skills.

    Returns None when the posting lists no tech stack, meaning "keep the
    current score".
    """
    stack = {s.strip().lower() for s in (posting.tech_stack or []) if s.strip()}
    if not stack:
        return None
    skills = {s.strip().lower() for s in (candidate.skills or [])}
    return round(100 * len(stack & skills) / len(stack))


def score_applicants(db: Session, job_posting_key: str, scorer: Scorer = skill_match_score) -> int:
    """Recompute scores of every applicant of a posting and commit.

    Returns:
        Number of applicants whose score was written.
    """
    posting = db.query(JobPosting).filter(JobPosting.job_posting_key == job_posting_key).first()
    if not posting:
        raise NotFoundError(ErrorCode.JOB_POSTING_NOT_FOUND)

    applicants = db.query(Applicant).filter(Applicant.job_posting_key == job_posting_key).all()

    scored = 0
    for applicant in applicants:
        candidate = db.query(Candidate).filter(Candidate.candidate_key == applicant.candidate_key).first()
        if not candidate:
            logger.warning(f"[{job_posting_key}] Candidate {applicant.candidate_key} missing, score left as is")
            continue

        score = scorer(posting, candidate)
        if score is None:
            continue
        applicant.score = score
        scored += 1

    db.commit()
    logger.info(f"[{job_posting_key}] Scored {scored}/{len(applicants)} applicants")
    return scored
