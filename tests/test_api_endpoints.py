"""Tests for API endpoints using FastAPI TestClient."""

import pytest
from unittest.mock import AsyncMock, Mock
from fastapi import FastAPI
from fastapi.testclient import TestClient

from reelforge.dashboard.routers.video_jobs import (
    get_db,
    get_pipeline,
    get_voiceover_service,
    router,
)
from reelforge.core.content.video_pipeline.pipeline import VideoPipeline
from reelforge.database.repositories.video_job import JobStore, VideoJobRepository
from reelforge.core.content.video_pipeline.models import (
    STATUS_ORDER,
    VideoJobCreate,
    VideoJobStatus,
)


# Create a test app with the router
app = FastAPI()
app.include_router(router)


@pytest.fixture
def pipeline(db_session_factory):
    """Pipeline with stub stages whose queue records submitted job IDs."""
    return VideoPipeline(
        job_store=JobStore(db_session_factory),
        context_gatherer=Mock(),
        script_generator=Mock(),
        image_generator=Mock(),
        voice_synthesizer=Mock(),
        code_generator=Mock(),
        renderer=Mock(),
        post_processor=Mock(),
        resolver=Mock(),
        queue=Mock(),
    )


@pytest.fixture
def client(db_session_factory, pipeline):
    """Create a test client with database session override.

    Uses db_session_factory to create sessions that work across threads.
    """
    def override_get_db():
        session = db_session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_pipeline] = lambda: pipeline

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def completed_job_id(db_session_factory, sample_script):
    """A completed job with code, subtitles and a stored script.

    Returns the ID to avoid detached instance errors.
    """
    session = db_session_factory()
    try:
        repo = VideoJobRepository(session)
        job = repo.create(VideoJobCreate(prompt="Promote my course", target_duration=10))
        for status in STATUS_ORDER[1:-1]:
            repo.update_status(job.id, status)
        repo.store_script(job.id, sample_script)
        repo.set_result(job.id, "generated_code", "return Video;")
        repo.set_result(job.id, "subtitle_text", "1\n00:00:00,000 --> 00:00:01,000\nHi\n")
        repo.mark_completed(job.id)
        return job.id
    finally:
        session.close()


class TestJobEndpoints:
    """Test job submission and polling."""

    def test_submit_job(self, client, pipeline):
        response = client.post(
            "/api/video/jobs",
            json={"prompt": "Promote my mixing course", "target_duration": 20, "aspect_ratio": "1:1"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["progress"] == 0
        assert data["aspect_ratio"] == "1:1"
        assert data["version"] == 1
        pipeline.queue.submit.assert_called_once_with(data["id"])

    def test_submit_job_validation_error(self, client, pipeline):
        response = client.post("/api/video/jobs", json={"prompt": "x", "target_duration": 500})

        assert response.status_code == 422
        pipeline.queue.submit.assert_not_called()

    def test_submit_job_unknown_source(self, client, pipeline):
        response = client.post("/api/video/jobs", json={"prompt": "x", "source_content_id": 42})

        assert response.status_code == 400
        pipeline.queue.submit.assert_not_called()

    def test_submit_revision_of_unfinished_job(self, client, pipeline):
        first = client.post("/api/video/jobs", json={"prompt": "x"}).json()

        response = client.post(
            "/api/video/jobs",
            json={"prompt": "x", "parent_job_id": first["id"], "iteration_feedback": "faster"},
        )

        assert response.status_code == 400
        assert "not completed" in response.json()["detail"]
        pipeline.queue.submit.assert_called_once_with(first["id"])

    def test_get_job(self, client):
        created = client.post("/api/video/jobs", json={"prompt": "x"}).json()

        response = client.get(f"/api/video/jobs/{created['id']}")

        assert response.status_code == 200
        assert response.json()["prompt"] == "x"

    def test_get_job_not_found(self, client):
        response = client.get("/api/video/jobs/999")
        assert response.status_code == 404

    def test_list_jobs_by_status(self, client, completed_job_id):
        client.post("/api/video/jobs", json={"prompt": "pending one"})

        response = client.get("/api/video/jobs", params={"status": "completed"})

        assert response.status_code == 200
        assert [j["id"] for j in response.json()] == [completed_job_id]

    def test_pipeline_not_configured(self, db_session_factory):
        bare = FastAPI()
        bare.include_router(router)

        def override_get_db():
            session = db_session_factory()
            try:
                yield session
            finally:
                session.close()

        bare.dependency_overrides[get_db] = override_get_db

        with TestClient(bare) as bare_client:
            response = bare_client.post("/api/video/jobs", json={"prompt": "x"})

        assert response.status_code == 503


class TestIterationEndpoints:
    """Test revising completed jobs."""

    def test_iterate_completed_job(self, client, pipeline, completed_job_id):
        response = client.post(
            f"/api/video/jobs/{completed_job_id}/iterate",
            json={"feedback": "use a warmer palette"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["parent_job_id"] == completed_job_id
        assert data["iteration_feedback"] == "use a warmer palette"
        assert data["version"] == 2
        assert data["target_duration"] == 10
        pipeline.queue.submit.assert_called_once_with(data["id"])

    def test_iterate_missing_job(self, client):
        response = client.post("/api/video/jobs/999/iterate", json={"feedback": "x"})
        assert response.status_code == 404

    def test_versions(self, client, completed_job_id):
        child = client.post(
            f"/api/video/jobs/{completed_job_id}/iterate", json={"feedback": "x"}
        ).json()

        response = client.get(f"/api/video/jobs/{child['id']}/versions")

        assert response.status_code == 200
        assert [j["version"] for j in response.json()] == [1, 2]


class TestArtifactEndpoints:
    """Test script and subtitle retrieval."""

    def test_get_script(self, client, completed_job_id):
        response = client.get(f"/api/video/jobs/{completed_job_id}/script")

        assert response.status_code == 200
        assert [s["id"] for s in response.json()["scenes"]] == ["hook", "solution", "cta"]

    def test_get_script_not_generated(self, client):
        created = client.post("/api/video/jobs", json={"prompt": "x"}).json()

        response = client.get(f"/api/video/jobs/{created['id']}/script")

        assert response.status_code == 404

    def test_get_subtitles(self, client, completed_job_id):
        response = client.get(f"/api/video/jobs/{completed_job_id}/subtitles")

        assert response.status_code == 200
        assert response.text.startswith("1\n00:00:00,000 --> 00:00:01,000")
        assert "attachment" in response.headers["content-disposition"]

    def test_get_subtitles_missing(self, client):
        created = client.post("/api/video/jobs", json={"prompt": "x"}).json()

        response = client.get(f"/api/video/jobs/{created['id']}/subtitles")

        assert response.status_code == 404


class TestSourceEndpoints:
    """Test source content endpoints."""

    def test_create_and_list_sources(self, client):
        response = client.post(
            "/api/video/sources",
            json={"title": "Mixing Masterclass", "price": 49.0, "category": "course"},
        )
        assert response.status_code == 201

        listed = client.get("/api/video/sources").json()
        assert listed == [
            {"id": response.json()["id"], "title": "Mixing Masterclass", "category": "course", "price": 49.0}
        ]

    def test_submit_job_with_source(self, client, pipeline):
        source = client.post("/api/video/sources", json={"title": "Course"}).json()

        response = client.post(
            "/api/video/jobs", json={"prompt": "x", "source_content_id": source["id"]}
        )

        assert response.status_code == 201
        assert response.json()["source_content_id"] == source["id"]


class TestVoiceEndpoints:
    """Test voice listing."""

    def test_list_voices(self, client):
        service = Mock()
        service.list_voices = AsyncMock(
            return_value=[{"id": "v1", "name": "Rachel", "preview_url": None}]
        )
        app.dependency_overrides[get_voiceover_service] = lambda: service

        response = client.get("/api/video/voices")

        assert response.status_code == 200
        assert response.json()[0]["id"] == "v1"

    def test_voices_not_configured(self, client):
        response = client.get("/api/video/voices")
        assert response.status_code == 503
