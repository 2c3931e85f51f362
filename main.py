"""
Applicant tracking backend - CLI entry point.

Commands:
    serve              Run the API server
    filter KEY         Rank and advance applicants of a posting right now
    reschedule         Re-register the screening pipeline of every open posting
"""

import argparse
import logging
import sys
from datetime import date

from dotenv import load_dotenv

load_dotenv()

from ats.config import settings  # noqa: E402
from ats.db import JobPosting, session_scope  # noqa: E402
from ats.exceptions import AtsError  # noqa: E402
from ats.log import configure_logging  # noqa: E402
from ats.scheduling.scheduler import init_scheduler, shutdown_scheduler  # noqa: E402
from ats.services.filtering import FilteringService  # noqa: E402

logger = logging.getLogger("ats.cli")


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("ats.api.app:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def filter_now(args: argparse.Namespace) -> int:
    service = FilteringService(init_scheduler(start=False))
    with session_scope() as db:
        try:
            shortlist = service.filter_candidates(db, args.job_posting_key)
        except AtsError as e:
            print(f"Error: {e}")
            return 1
        for rank, entry in enumerate(shortlist, start=1):
            print(f"{rank:>3}. {entry.candidate_name} ({entry.candidate_key})")
    print(f"{len(shortlist)} candidates advanced")
    return 0


def reschedule(args: argparse.Namespace) -> int:
    """Schedule every posting whose deadline has not passed (e.g. after switching job stores)."""
    # Paused: store jobs without running anything that is already due
    service = FilteringService(init_scheduler(start=True, paused=True))
    count = 0
    try:
        with session_scope() as db:
            postings = db.query(JobPosting).filter(JobPosting.end_date >= date.today()).all()
            for posting in postings:
                service.schedule_resume_scoring_job(posting.job_posting_key, posting.end_date)
                count += 1
    except AtsError as e:
        print(f"Error: {e}")
        return 1
    finally:
        shutdown_scheduler()
    print(f"Rescheduled {count} job postings")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Applicant tracking backend")
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="Run the API server")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--reload", action="store_true")
    p_serve.set_defaults(func=serve)

    p_filter = sub.add_parser("filter", help="Run candidate filtering for a posting now")
    p_filter.add_argument("job_posting_key")
    p_filter.set_defaults(func=filter_now)

    p_resched = sub.add_parser("reschedule", help="Re-register screening for open postings")
    p_resched.set_defaults(func=reschedule)

    args = parser.parse_args(argv)
    configure_logging(settings.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
