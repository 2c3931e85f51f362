"""
Job callables fired by the scheduler.

These run on scheduler worker threads, so each opens its own session.
They are referenced by "module:function" strings and must stay importable
at module level for persistent job stores.

Stage ordering is explicit: scoring records completion on the posting's
ScreeningRun and pulls the filtering job forward to "now"; filtering ranks
only when that record says "scored", otherwise it defers itself.

Both stages can fire at the same moment (overdue triggers on recovery), so
the run row may be created by either of them and the filtering stage never
writes a status it read earlier.
"""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ats.config import settings
from ats.db import ScreeningRun, session_scope
from ats.services.filtering import get_filtering_service
from ats.services.scoring import score_applicants

logger = logging.getLogger(__name__)

PENDING = "pending"
SCORING = "scoring"
SCORED = "scored"
FILTERING = "filtering"
FILTERED = "filtered"
FAILED = "failed"


def _ensure_run(db: Session, job_posting_key: str) -> ScreeningRun:
    """Run row for a posting, inserted as pending when missing."""
    run = db.get(ScreeningRun, job_posting_key)
    if run is not None:
        return run

    db.add(ScreeningRun(job_posting_key=job_posting_key, status=PENDING, filter_deferrals=0))
    try:
        db.commit()
    except IntegrityError:
        # The other stage inserted it first
        db.rollback()
        logger.debug(f"[{job_posting_key}] Screening run created concurrently, re-reading")
    return db.get(ScreeningRun, job_posting_key)


def _set_status(db: Session, job_posting_key: str, status: str, **fields) -> ScreeningRun:
    run = _ensure_run(db, job_posting_key)
    run.status = status
    for name, value in fields.items():
        setattr(run, name, value)
    db.commit()
    return run


def _record_deferral(db: Session, job_posting_key: str) -> None:
    """Count a filtering deferral without touching the status."""
    _ensure_run(db, job_posting_key)
    db.query(ScreeningRun).filter(ScreeningRun.job_posting_key == job_posting_key).update(
        {ScreeningRun.filter_deferrals: ScreeningRun.filter_deferrals + 1},
        synchronize_session=False,
    )
    db.commit()


def _give_up(db: Session, job_posting_key: str) -> bool:
    """Mark the run failed unless scoring finished meanwhile."""
    updated = (
        db.query(ScreeningRun)
        .filter(ScreeningRun.job_posting_key == job_posting_key, ScreeningRun.status.in_([PENDING, SCORING]))
        .update(
            {ScreeningRun.status: FAILED, ScreeningRun.error: "Scoring did not complete"},
            synchronize_session=False,
        )
    )
    db.commit()
    return updated > 0


def run_scoring_job(job_posting_key: str) -> None:
    """Score applicants, then signal the filtering stage."""
    logger.info(f"[{job_posting_key}] Resume scoring started")
    service = get_filtering_service()

    with session_scope() as db:
        try:
            _set_status(db, job_posting_key, SCORING, filter_deferrals=0, error=None, scored_at=None)
            score_applicants(db, job_posting_key)
        except Exception as e:
            logger.error(f"[{job_posting_key}] Resume scoring failed: {e}")
            db.rollback()
            _set_status(db, job_posting_key, FAILED, error=str(e))
            raise
        _set_status(db, job_posting_key, SCORED, scored_at=datetime.now(UTC))

    service.schedule_filtering_at(job_posting_key, datetime.now(UTC))
    logger.info(f"[{job_posting_key}] Resume scoring completed, filtering triggered")


def run_filtering_job(job_posting_key: str) -> None:
    """Rank applicants once scoring is confirmed complete."""
    service = get_filtering_service()

    with session_scope() as db:
        run = _ensure_run(db, job_posting_key)

        if run.status == FILTERED:
            logger.info(f"[{job_posting_key}] Already filtered, skipping")
            return
        if run.status == FAILED:
            logger.warning(f"[{job_posting_key}] Screening run failed earlier, filtering skipped")
            return

        if run.status != SCORED:
            status, deferrals = run.status, run.filter_deferrals
            if deferrals >= settings.filtering_max_deferrals:
                if _give_up(db, job_posting_key):
                    logger.error(f"[{job_posting_key}] Scoring did not complete after {deferrals} deferrals")
                    return
                logger.info(f"[{job_posting_key}] Scoring completed while giving up, waiting for its signal")
                return

            _record_deferral(db, job_posting_key)
            db.expire_all()
            if db.get(ScreeningRun, job_posting_key).status == SCORED:
                # Scoring finished after the status was read
                service.schedule_filtering_at(job_posting_key, datetime.now(UTC))
                return
            retry_at = datetime.now(UTC) + timedelta(seconds=settings.filtering_retry_seconds)
            logger.info(f"[{job_posting_key}] Scoring not complete ({status}), filtering deferred to {retry_at.isoformat()}")
            service.schedule_filtering_at(job_posting_key, retry_at)
            return

        _set_status(db, job_posting_key, FILTERING)
        try:
            shortlist = service.filter_candidates(db, job_posting_key)
        except Exception as e:
            logger.error(f"[{job_posting_key}] Filtering failed: {e}")
            _set_status(db, job_posting_key, FAILED, error=str(e))
            raise
        _set_status(db, job_posting_key, FILTERED, filtered_at=datetime.now(UTC))

    logger.info(f"[{job_posting_key}] Filtering completed with {len(shortlist)} candidates")
