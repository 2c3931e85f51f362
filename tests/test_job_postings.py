"""Tests for the job posting lifecycle, applications and ownership checks."""

from datetime import date, datetime
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest

from ats.api.schemas import JobPostingRequest, JobPostingUpdate
from ats.db import Applicant, AppliedJobPosting, CandidateList, JobPosting, JobPostingStep, ScreeningRun
from ats.exceptions import ConflictError, ErrorCode, ForbiddenError, NotFoundError, SchedulingError
from ats.scheduling.scheduler import JobScheduler, SchedulerEngineError
from ats.services import job_postings as service
from ats.services.filtering import FilteringService
from ats.services.ownership import ensure_company_owner, is_company_owner
from tests.factories import first_step_id, make_candidate, make_company, make_posting

UTC = ZoneInfo("UTC")


def _request(**overrides) -> JobPostingRequest:
    data = {
        "title": "Backend Engineer",
        "job_category": "engineering",
        "start_date": date(2024, 6, 1),
        "end_date": date(2024, 6, 10),
        "passing_number": 2,
        "tech_stack": ["Python"],
        "steps": ["document screening", "interview", "offer"],
    }
    data.update(overrides)
    return JobPostingRequest(**data)


def _broken_filtering() -> FilteringService:
    engine = MagicMock()
    engine.get_job.return_value = None
    engine.add_job.side_effect = RuntimeError("job store unavailable")
    engine.remove_job.side_effect = RuntimeError("job store unavailable")
    return FilteringService(JobScheduler(engine))


@pytest.fixture
def company(db):
    return make_company(db)


class TestCreateJobPosting:
    def test_creates_posting_and_steps_in_order(self, db, filtering, company) -> None:
        posting = service.create_job_posting(db, filtering, company.company_key, _request())

        steps = (
            db.query(JobPostingStep)
            .filter(JobPostingStep.job_posting_key == posting.job_posting_key)
            .order_by(JobPostingStep.id.asc())
            .all()
        )
        assert [s.step for s in steps] == ["document screening", "interview", "offer"]
        assert posting.company_key == company.company_key
        assert posting.tech_stack == ["Python"]

    def test_schedules_pipeline(self, db, filtering, company) -> None:
        posting = service.create_job_posting(db, filtering, company.company_key, _request())

        schedule = filtering.get_schedule(posting.job_posting_key)
        assert schedule["scoring"] == datetime(2024, 6, 11, 0, 0, tzinfo=UTC)
        assert schedule["filtering"] == datetime(2024, 6, 11, 0, 1, tzinfo=UTC)

    def test_unknown_company(self, db, filtering) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            service.create_job_posting(db, filtering, "missing", _request())

        assert exc_info.value.code is ErrorCode.COMPANY_NOT_FOUND

    def test_scheduling_failure_discards_posting(self, db, company) -> None:
        with pytest.raises(SchedulingError) as exc_info:
            service.create_job_posting(db, _broken_filtering(), company.company_key, _request())

        assert exc_info.value.code is ErrorCode.SCHEDULE_FAILED
        assert db.query(JobPosting).count() == 0
        assert db.query(JobPostingStep).count() == 0
        assert db.query(ScreeningRun).count() == 0

    def test_records_pending_screening_run(self, db, filtering, company) -> None:
        posting = service.create_job_posting(db, filtering, company.company_key, _request())

        run = db.get(ScreeningRun, posting.job_posting_key)
        assert run.status == "pending"
        assert run.filter_deferrals == 0

    def test_partial_schedule_is_cleaned_up(self, db, filtering, scheduler, company, monkeypatch) -> None:
        schedule_at = scheduler.schedule_at

        def reject_filtering(job_name, *args, **kwargs):
            if job_name.startswith("filteringJob-"):
                raise SchedulerEngineError("job store full")
            return schedule_at(job_name, *args, **kwargs)

        monkeypatch.setattr(scheduler, "schedule_at", reject_filtering)

        with pytest.raises(SchedulingError):
            service.create_job_posting(db, filtering, company.company_key, _request())

        assert scheduler.engine.get_jobs() == []
        assert db.query(JobPosting).count() == 0


class TestListing:
    def test_pagination(self, db, company) -> None:
        for i in range(3):
            make_posting(db, company.company_key, title=f"Role {i}")

        first = service.get_all_job_postings(db, page=1, size=2)
        second = service.get_all_job_postings(db, page=2, size=2)

        assert first.total_elements == 3
        assert first.total_pages == 2
        assert len(first.job_postings) == 2
        assert len(second.job_postings) == 1
        assert first.job_postings[0].company_name == "Acme"

    def test_empty(self, db) -> None:
        result = service.get_all_job_postings(db)

        assert result.job_postings == []
        assert result.total_pages == 0

    def test_by_company_owner_only(self, db, company) -> None:
        make_posting(db, company.company_key)
        other = make_company(db, "Other")
        make_posting(db, other.company_key)

        listed = service.get_job_postings_by_company(db, company.company_key, company.company_key)
        assert len(listed) == 1

        with pytest.raises(ForbiddenError):
            service.get_job_postings_by_company(db, other.company_key, company.company_key)

    def test_detail_lists_steps(self, db, company) -> None:
        posting = make_posting(db, company.company_key, steps=("screening", "interview"))

        detail = service.get_job_posting_detail(db, posting.job_posting_key)

        assert detail.steps == ["screening", "interview"]
        assert detail.passing_number == 2

    def test_detail_unknown_posting(self, db) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            service.get_job_posting_detail(db, "missing")
        assert exc_info.value.code is ErrorCode.JOB_POSTING_NOT_FOUND


class TestEditJobPosting:
    def test_updates_given_fields_only(self, db, filtering, company) -> None:
        posting = make_posting(db, company.company_key, title="Old")

        edited, _ = service.edit_job_posting(
            db, filtering, company.company_key, posting.job_posting_key, JobPostingUpdate(title="New")
        )

        assert edited.title == "New"
        assert edited.job_category == "engineering"
        assert edited.end_date == date(2024, 6, 10)

    def test_moved_deadline_reschedules(self, db, filtering, company) -> None:
        posting = service.create_job_posting(db, filtering, company.company_key, _request())

        service.edit_job_posting(
            db, filtering, company.company_key, posting.job_posting_key, JobPostingUpdate(end_date=date(2024, 7, 1))
        )

        schedule = filtering.get_schedule(posting.job_posting_key)
        assert schedule["scoring"] == datetime(2024, 7, 2, 0, 0, tzinfo=UTC)
        assert schedule["filtering"] == datetime(2024, 7, 2, 0, 1, tzinfo=UTC)

    def test_same_deadline_does_not_reschedule(self, db, filtering, company) -> None:
        posting = make_posting(db, company.company_key)

        service.edit_job_posting(
            db,
            filtering,
            company.company_key,
            posting.job_posting_key,
            JobPostingUpdate(title="New", end_date=date(2024, 6, 10)),
        )

        assert filtering.get_schedule(posting.job_posting_key) == {"scoring": None, "filtering": None}

    def test_returns_first_step_recipients(self, db, filtering, company) -> None:
        posting = make_posting(db, company.company_key)
        first = make_candidate(db, "First")
        later = make_candidate(db, "Later")
        service.apply_job_posting(db, posting.job_posting_key, first.candidate_key)
        second_step = (
            db.query(JobPostingStep)
            .filter(JobPostingStep.job_posting_key == posting.job_posting_key)
            .order_by(JobPostingStep.id.desc())
            .first()
        )
        db.add(
            CandidateList(
                job_posting_key=posting.job_posting_key,
                job_posting_step_id=second_step.id,
                candidate_key=later.candidate_key,
                candidate_name=later.name,
            )
        )
        db.commit()

        _, recipients = service.edit_job_posting(
            db, filtering, company.company_key, posting.job_posting_key, JobPostingUpdate(title="New")
        )

        assert [(r.email, r.name) for r in recipients] == [(first.email, "First")]

    def test_not_owner(self, db, filtering, company) -> None:
        posting = make_posting(db, company.company_key, title="Old")
        intruder = make_company(db, "Intruder")

        with pytest.raises(ForbiddenError) as exc_info:
            service.edit_job_posting(
                db, filtering, intruder.company_key, posting.job_posting_key, JobPostingUpdate(title="Hacked")
            )

        assert exc_info.value.code is ErrorCode.NOT_RESOURCE_OWNER
        db.expire_all()
        assert db.get(JobPosting, posting.job_posting_key).title == "Old"

    def test_scheduling_failure_keeps_old_values(self, db, company) -> None:
        posting = make_posting(db, company.company_key)

        with pytest.raises(SchedulingError):
            service.edit_job_posting(
                db,
                _broken_filtering(),
                company.company_key,
                posting.job_posting_key,
                JobPostingUpdate(end_date=date(2024, 7, 1)),
            )

        db.expire_all()
        assert db.get(JobPosting, posting.job_posting_key).end_date == date(2024, 6, 10)

    def test_failed_reschedule_restores_future_triggers(self, db, filtering, scheduler, company, monkeypatch) -> None:
        posting = service.create_job_posting(db, filtering, company.company_key, _request(end_date=date(2099, 3, 1)))
        schedule_at = scheduler.schedule_at

        def reject_new_deadline(job_name, group, func, payload, fire_at, *args, **kwargs):
            if fire_at.year == 2100:
                raise SchedulerEngineError("job store unavailable")
            return schedule_at(job_name, group, func, payload, fire_at, *args, **kwargs)

        monkeypatch.setattr(scheduler, "schedule_at", reject_new_deadline)

        with pytest.raises(SchedulingError):
            service.edit_job_posting(
                db, filtering, company.company_key, posting.job_posting_key, JobPostingUpdate(end_date=date(2100, 1, 1))
            )

        db.expire_all()
        assert db.get(JobPosting, posting.job_posting_key).end_date == date(2099, 3, 1)
        schedule = filtering.get_schedule(posting.job_posting_key)
        assert schedule["scoring"] == datetime(2099, 3, 2, 0, 0, tzinfo=UTC)
        assert schedule["filtering"] == datetime(2099, 3, 2, 0, 1, tzinfo=UTC)


class TestDeleteJobPosting:
    def test_deletes_and_unschedules(self, db, filtering, company) -> None:
        posting = service.create_job_posting(db, filtering, company.company_key, _request())
        key = posting.job_posting_key
        assert db.get(ScreeningRun, key).status == "pending"

        service.delete_job_posting(db, filtering, company.company_key, key)

        assert db.query(JobPosting).count() == 0
        assert db.query(JobPostingStep).count() == 0
        assert db.query(ScreeningRun).count() == 0
        assert filtering.get_schedule(key) == {"scoring": None, "filtering": None}

    def test_first_step_candidates_block_delete(self, db, filtering, company) -> None:
        posting = make_posting(db, company.company_key)
        service.apply_job_posting(db, posting.job_posting_key, make_candidate(db).candidate_key)

        with pytest.raises(ConflictError) as exc_info:
            service.delete_job_posting(db, filtering, company.company_key, posting.job_posting_key)

        assert exc_info.value.code is ErrorCode.JOB_POSTING_HAS_CANDIDATES
        assert db.query(JobPosting).count() == 1

    def test_not_owner(self, db, filtering, company) -> None:
        posting = make_posting(db, company.company_key)

        with pytest.raises(ForbiddenError):
            service.delete_job_posting(db, filtering, "someone-else", posting.job_posting_key)

    def test_unschedule_failure_keeps_posting(self, db, company) -> None:
        posting = make_posting(db, company.company_key)

        with pytest.raises(SchedulingError) as exc_info:
            service.delete_job_posting(db, _broken_filtering(), company.company_key, posting.job_posting_key)

        assert exc_info.value.code is ErrorCode.UNSCHEDULE_FAILED
        assert db.query(JobPosting).count() == 1


class TestApplyJobPosting:
    def test_records_application(self, db, company) -> None:
        posting = make_posting(db, company.company_key)
        candidate = make_candidate(db, "Lee")

        entry = service.apply_job_posting(db, posting.job_posting_key, candidate.candidate_key)

        assert entry.job_posting_step_id == first_step_id(db, posting.job_posting_key)
        assert entry.candidate_name == "Lee"
        assert db.query(Applicant).count() == 1
        application = db.query(AppliedJobPosting).one()
        assert application.step_name == "document screening"
        assert application.title == posting.title

    def test_duplicate_application(self, db, company) -> None:
        posting = make_posting(db, company.company_key)
        candidate = make_candidate(db)
        service.apply_job_posting(db, posting.job_posting_key, candidate.candidate_key)

        with pytest.raises(ConflictError) as exc_info:
            service.apply_job_posting(db, posting.job_posting_key, candidate.candidate_key)

        assert exc_info.value.code is ErrorCode.ALREADY_APPLIED
        assert db.query(Applicant).count() == 1

    def test_unknown_candidate(self, db, company) -> None:
        posting = make_posting(db, company.company_key)

        with pytest.raises(NotFoundError) as exc_info:
            service.apply_job_posting(db, posting.job_posting_key, "missing")

        assert exc_info.value.code is ErrorCode.CANDIDATE_NOT_FOUND

    def test_posting_without_steps(self, db, company) -> None:
        posting = make_posting(db, company.company_key, steps=())

        with pytest.raises(NotFoundError) as exc_info:
            service.apply_job_posting(db, posting.job_posting_key, make_candidate(db).candidate_key)

        assert exc_info.value.code is ErrorCode.JOB_POSTING_STEP_NOT_FOUND


class TestCandidatesByStep:
    def test_lists_step_entries(self, db, company) -> None:
        posting = make_posting(db, company.company_key)
        candidate = make_candidate(db, "Park")
        service.apply_job_posting(db, posting.job_posting_key, candidate.candidate_key)
        step_id = first_step_id(db, posting.job_posting_key)

        step, entries = service.get_candidates_by_step(db, company.company_key, posting.job_posting_key, step_id)

        assert step.step == "document screening"
        assert [e.candidate_name for e in entries] == ["Park"]

    def test_step_of_another_posting(self, db, company) -> None:
        posting = make_posting(db, company.company_key)
        other = make_posting(db, company.company_key)

        with pytest.raises(NotFoundError) as exc_info:
            service.get_candidates_by_step(
                db, company.company_key, posting.job_posting_key, first_step_id(db, other.job_posting_key)
            )

        assert exc_info.value.code is ErrorCode.JOB_POSTING_STEP_NOT_FOUND

    def test_not_owner(self, db, company) -> None:
        posting = make_posting(db, company.company_key)

        with pytest.raises(ForbiddenError):
            service.get_candidates_by_step(db, None, posting.job_posting_key, 1)


class TestOwnership:
    def test_owner(self) -> None:
        assert is_company_owner("c1", "c1") is True
        ensure_company_owner("c1", "c1")

    @pytest.mark.parametrize("caller", ["c2", "", None])
    def test_not_owner(self, caller) -> None:
        assert is_company_owner(caller, "c1") is False
        with pytest.raises(ForbiddenError):
            ensure_company_owner(caller, "c1")
