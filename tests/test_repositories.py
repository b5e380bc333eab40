"""Tests for database repositories."""

import pytest
from datetime import datetime, timedelta

from reelforge.database.repositories.video_job import (
    SourceContentRepository,
    VideoJobRepository,
    check_transition,
)
from reelforge.core.content.video_pipeline.exceptions import (
    InvalidTransitionError,
    JobNotFoundError,
)
from reelforge.core.content.video_pipeline.models import (
    STATUS_ORDER,
    AspectRatio,
    SourceContentCreate,
    VideoJobCreate,
    VideoJobStatus,
)


def complete_job(repo: VideoJobRepository, job_id: int, code: str = "return Video;"):
    """Walk a job through every stage and mark it completed."""
    for status in STATUS_ORDER[1:-1]:
        repo.update_status(job_id, status)
    repo.set_result(job_id, "generated_code", code)
    return repo.mark_completed(job_id)


class TestCheckTransition:
    """Test the status transition rules."""

    def test_forward_step_allowed(self):
        check_transition(VideoJobStatus.PENDING, VideoJobStatus.GATHERING_CONTEXT)
        check_transition(VideoJobStatus.RENDERING, VideoJobStatus.POST_PROCESSING)

    def test_same_status_allowed(self):
        check_transition(VideoJobStatus.RENDERING, VideoJobStatus.RENDERING)

    def test_skipping_a_stage_rejected(self):
        with pytest.raises(InvalidTransitionError):
            check_transition(VideoJobStatus.GATHERING_CONTEXT, VideoJobStatus.RENDERING)

    def test_backwards_rejected(self):
        with pytest.raises(InvalidTransitionError):
            check_transition(VideoJobStatus.RENDERING, VideoJobStatus.GENERATING_SCRIPT)

    def test_any_active_stage_can_fail(self):
        for status in STATUS_ORDER[:-1]:
            check_transition(status, VideoJobStatus.FAILED)

    def test_failed_restarts_from_context(self):
        check_transition(VideoJobStatus.FAILED, VideoJobStatus.GATHERING_CONTEXT)
        with pytest.raises(InvalidTransitionError):
            check_transition(VideoJobStatus.FAILED, VideoJobStatus.RENDERING)

    def test_completed_is_final(self):
        with pytest.raises(InvalidTransitionError):
            check_transition(VideoJobStatus.COMPLETED, VideoJobStatus.FAILED)
        with pytest.raises(InvalidTransitionError):
            check_transition(VideoJobStatus.COMPLETED, VideoJobStatus.GATHERING_CONTEXT)


class TestVideoJobRepository:
    """Test VideoJobRepository operations."""

    def test_create_job(self, db_session):
        repo = VideoJobRepository(db_session)

        job = repo.create(
            VideoJobCreate(
                prompt="Promote my mixing course",
                target_duration=20,
                aspect_ratio=AspectRatio.SQUARE,
                voice_id="voice-1",
            )
        )

        assert job.id is not None
        assert job.status == VideoJobStatus.PENDING
        assert job.progress == 0
        assert job.retry_count == 0
        assert job.version == 1
        assert job.aspect_ratio == AspectRatio.SQUARE
        assert job.created_at is not None

    def test_require_missing_job(self, db_session):
        repo = VideoJobRepository(db_session)
        with pytest.raises(JobNotFoundError):
            repo.require(999)

    def test_update_status_sets_progress(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))

        job = repo.update_status(job.id, VideoJobStatus.GATHERING_CONTEXT)
        assert job.status == VideoJobStatus.GATHERING_CONTEXT
        assert job.progress == 10

        job = repo.update_status(job.id, VideoJobStatus.GENERATING_SCRIPT)
        assert job.progress == 25

    def test_repeated_status_update_is_idempotent(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))
        repo.update_status(job.id, VideoJobStatus.GATHERING_CONTEXT)

        job = repo.update_status(job.id, VideoJobStatus.GATHERING_CONTEXT)
        assert job.status == VideoJobStatus.GATHERING_CONTEXT
        assert job.progress == 10

    def test_progress_never_decreases_within_attempt(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))
        repo.update_status(job.id, VideoJobStatus.GATHERING_CONTEXT)

        job = repo.update_status(job.id, VideoJobStatus.GATHERING_CONTEXT, progress=5)
        assert job.progress == 10

    def test_invalid_transition_rejected(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))

        with pytest.raises(InvalidTransitionError):
            repo.update_status(job.id, VideoJobStatus.RENDERING)

    def test_append_error_increments_retry_count(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))
        repo.update_status(job.id, VideoJobStatus.GATHERING_CONTEXT)

        count = repo.append_error(job.id, "boom")

        job = repo.get_by_id(job.id)
        assert count == 1
        assert job.status == VideoJobStatus.FAILED
        assert job.last_error == "boom"
        assert job.progress == 10

    def test_append_error_records_retry_due_time(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))
        due = datetime.utcnow() + timedelta(seconds=5)

        repo.append_error(job.id, "boom", retry_at=due, max_retries=3)

        job = repo.get_by_id(job.id)
        assert job.status == VideoJobStatus.FAILED
        assert job.next_attempt_at == due

    def test_append_error_last_attempt_owes_no_retry(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))
        for _ in range(2):
            repo.append_error(job.id, "boom", retry_at=datetime.utcnow(), max_retries=3)
            repo.update_status(job.id, VideoJobStatus.GATHERING_CONTEXT)

        count = repo.append_error(job.id, "boom", retry_at=datetime.utcnow(), max_retries=3)

        assert count == 3
        assert repo.get_by_id(job.id).next_attempt_at is None

    def test_append_error_truncates_message(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))

        repo.append_error(job.id, "e" * 5000)

        assert len(repo.get_by_id(job.id).last_error) == 4000

    def test_new_attempt_resets_progress(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))
        repo.update_status(job.id, VideoJobStatus.GATHERING_CONTEXT)
        repo.update_status(job.id, VideoJobStatus.GENERATING_SCRIPT)
        repo.append_error(job.id, "boom", retry_at=datetime.utcnow())

        job = repo.update_status(job.id, VideoJobStatus.GATHERING_CONTEXT)

        assert job.progress == 10
        assert job.next_attempt_at is None
        assert job.retry_count == 1

    def test_set_result(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))

        job = repo.set_result(job.id, "caption_text", "Great caption")
        assert job.caption_text == "Great caption"

    def test_set_result_unknown_field(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))

        with pytest.raises(ValueError):
            repo.set_result(job.id, "status", "completed")

    def test_mark_completed(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))

        job = complete_job(repo, job.id)

        assert job.status == VideoJobStatus.COMPLETED
        assert job.progress == 100
        assert job.completed_at is not None

    def test_mark_completed_is_idempotent(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))
        job = complete_job(repo, job.id)
        completed_at = job.completed_at

        job = repo.mark_completed(job.id)

        assert job.status == VideoJobStatus.COMPLETED
        assert job.completed_at == completed_at

    def test_mark_completed_requires_post_processing(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))

        with pytest.raises(InvalidTransitionError):
            repo.mark_completed(job.id)

    def test_completed_job_cannot_fail(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))
        complete_job(repo, job.id)

        with pytest.raises(InvalidTransitionError):
            repo.append_error(job.id, "late failure")

    def test_list_jobs_filters_by_status(self, db_session):
        repo = VideoJobRepository(db_session)
        first = repo.create(VideoJobCreate(prompt="one"))
        repo.create(VideoJobCreate(prompt="two"))
        repo.append_error(first.id, "boom")

        failed = repo.list_jobs(status=VideoJobStatus.FAILED)
        assert [j.id for j in failed] == [first.id]
        assert len(repo.list_jobs()) == 2


class TestIteration:
    """Test revision jobs."""

    def test_revision_of_completed_job(self, db_session):
        repo = VideoJobRepository(db_session)
        parent = repo.create(VideoJobCreate(prompt="x"))
        complete_job(repo, parent.id)

        child = repo.create(
            VideoJobCreate(prompt="x", parent_job_id=parent.id, iteration_feedback="slower")
        )

        assert child.parent_job_id == parent.id
        assert child.version == 2
        assert child.iteration_feedback == "slower"

    def test_revision_of_missing_job(self, db_session):
        repo = VideoJobRepository(db_session)
        with pytest.raises(ValueError, match="not found"):
            repo.create(VideoJobCreate(prompt="x", parent_job_id=42, iteration_feedback="y"))

    def test_revision_of_unfinished_job(self, db_session):
        repo = VideoJobRepository(db_session)
        parent = repo.create(VideoJobCreate(prompt="x"))

        with pytest.raises(ValueError, match="not completed"):
            repo.create(
                VideoJobCreate(prompt="x", parent_job_id=parent.id, iteration_feedback="y")
            )

    def test_list_versions_oldest_first(self, db_session):
        repo = VideoJobRepository(db_session)
        v1 = repo.create(VideoJobCreate(prompt="x"))
        complete_job(repo, v1.id)
        v2 = repo.create(VideoJobCreate(prompt="x", parent_job_id=v1.id, iteration_feedback="a"))
        complete_job(repo, v2.id)
        v3 = repo.create(VideoJobCreate(prompt="x", parent_job_id=v2.id, iteration_feedback="b"))

        versions = repo.list_versions(v3.id)

        assert [j.id for j in versions] == [v1.id, v2.id, v3.id]
        assert [j.version for j in versions] == [1, 2, 3]


class TestScripts:
    """Test script persistence."""

    def test_store_and_get_script(self, db_session, sample_script):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))

        record = repo.store_script(job.id, sample_script)

        assert record.id is not None
        assert record.voiceover_text == sample_script.voiceover_text
        assert repo.get_script(job.id) == sample_script

    def test_store_script_replaces_existing(self, db_session, sample_script):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))
        first = repo.store_script(job.id, sample_script)

        shorter = sample_script.model_copy(update={"scenes": sample_script.scenes[:1]})
        second = repo.store_script(job.id, shorter)

        assert second.id == first.id
        assert len(repo.get_script(job.id).scenes) == 1

    def test_get_script_missing(self, db_session):
        repo = VideoJobRepository(db_session)
        job = repo.create(VideoJobCreate(prompt="x"))
        assert repo.get_script(job.id) is None


class TestJobStore:
    """Test the session-per-call store used by the pipeline."""

    def test_create_and_get(self, job_store):
        job_id = job_store.create(VideoJobCreate(prompt="Promote my course"))

        view = job_store.get(job_id)

        assert view.id == job_id
        assert view.prompt == "Promote my course"
        assert view.status == VideoJobStatus.PENDING

    def test_get_missing_job(self, job_store):
        with pytest.raises(JobNotFoundError):
            job_store.get(123)

    def test_list_resumable(self, job_store):
        pending = job_store.create(VideoJobCreate(prompt="pending"))

        interrupted = job_store.create(VideoJobCreate(prompt="interrupted"))
        job_store.update_status(interrupted, VideoJobStatus.GATHERING_CONTEXT)

        retrying = job_store.create(VideoJobCreate(prompt="retrying"))
        job_store.append_error(retrying, "boom", datetime.utcnow() + timedelta(seconds=5))

        exhausted = job_store.create(VideoJobCreate(prompt="exhausted"))
        for _ in range(3):
            job_store.append_error(exhausted, "boom")
            job_store.update_status(exhausted, VideoJobStatus.GATHERING_CONTEXT)
        job_store.append_error(exhausted, "boom")

        not_retried = job_store.create(VideoJobCreate(prompt="bad context"))
        job_store.append_error(not_retried, "voice does not exist")

        resumable = {job.id for job in job_store.list_resumable()}

        assert resumable == {pending, interrupted, retrying}


class TestSourceContentRepository:
    """Test source content storage."""

    def test_create_and_list(self, db_session):
        repo = SourceContentRepository(db_session)

        source = repo.create(
            SourceContentCreate(
                title="Mixing Masterclass",
                price=49.0,
                category="course",
                highlights=["12 lessons", "Lifetime access"],
            )
        )

        assert source.id is not None
        assert repo.get_by_id(source.id).highlights == ["12 lessons", "Lifetime access"]
        assert [s.title for s in repo.list_sources()] == ["Mixing Masterclass"]
