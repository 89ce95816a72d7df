import pytest
from fastapi.testclient import TestClient

from lecture_ai.core.config import Settings
from lecture_ai.main import create_app
from lecture_ai.services import queue as queue_module
from lecture_ai.services.queue import detect_queue

from conftest import TRANSCRIPT


def test_submit_runs_eagerly_and_job_is_done(client, store, generator):
    store.upsert_transcript("11", "en", TRANSCRIPT)

    r = client.post("/api/queue/summary/11", json={"language": "EN"})
    assert r.status_code == 200, r.text
    job_id = r.json()["job_id"]

    g = client.get(f"/api/jobs/{job_id}")
    assert g.status_code == 200
    job = g.json()
    assert job["status"] == "done"
    assert job["error"] is None
    assert job["job_type"] == "summary"
    assert job["payload"]["result"]["provenance"] == "fresh"
    assert job["payload"]["language"] == "en"
    assert generator.count("summary") == 1

    stats = client.get("/api/queue/stats").json()["stats"]
    assert stats["summary"] == {"waiting": 0, "active": 0, "completed": 1, "failed": 0}
    assert stats["quiz"]["completed"] == 0


def test_job_without_transcript_fails(client):
    r = client.post("/api/queue/quiz/12", json={"language": "en"})
    job = client.get(f"/api/jobs/{r.json()['job_id']}").json()
    assert job["status"] == "failed"
    assert "transcript" in job["error"].lower()


def test_unknown_job_kind_rejected(client):
    r = client.post("/api/queue/flashcards/11", json={"language": "en"})
    assert r.status_code == 400


def test_unknown_job_is_404(client):
    assert client.get("/api/jobs/999").status_code == 404


def test_degraded_mode_answers_503(container):
    container.executor = None
    with TestClient(create_app(container)) as client:
        r = client.post("/api/queue/summary/11", json={"language": "en"})
        assert r.status_code == 503
        assert r.json()["error"] == "QueueUnavailable"
        assert client.get("/api/queue/stats").status_code == 503


def test_detect_queue_respects_disable_flag(monkeypatch, container):
    monkeypatch.setenv("QUEUE_ENABLED", "0")
    assert detect_queue(Settings(), container.session_factory) is None


def test_detect_queue_without_broker(monkeypatch, container):
    monkeypatch.setenv("ENV", "local")
    monkeypatch.setattr(queue_module, "broker_reachable", lambda url: False)
    assert detect_queue(Settings(), container.session_factory) is None

    monkeypatch.setattr(queue_module, "broker_reachable", lambda url: True)
    assert detect_queue(Settings(), container.session_factory) is not None


@pytest.mark.parametrize("url", ["memory://", "amqp://guest@localhost//"])
def test_non_redis_broker_is_not_pinged(url):
    assert queue_module.broker_reachable(url) is False


def test_broker_failure_on_submit_marks_job_failed(monkeypatch, client, store):
    from lecture_ai.worker.generate_tasks import KIND_TO_TASK

    def broken_dispatch(*args, **kwargs):
        raise ConnectionError("broker connection refused")

    monkeypatch.setattr(KIND_TO_TASK["summary"], "apply_async", broken_dispatch)
    store.upsert_transcript("11", "en", TRANSCRIPT)

    r = client.post("/api/queue/summary/11", json={"language": "en"})
    assert r.status_code == 503
    assert r.json()["error"] == "QueueUnavailable"

    job = client.get("/api/jobs/1").json()
    assert job["status"] == "failed"
    assert "broker connection refused" in job["error"]

    stats = client.get("/api/queue/stats").json()["stats"]
    assert stats["summary"] == {"waiting": 0, "active": 0, "completed": 0, "failed": 1}


def test_unexpected_task_error_marks_job_failed(monkeypatch, client, container):
    def crash(*args, **kwargs):
        raise RuntimeError("worker crashed")

    monkeypatch.setattr(container.services["quiz"], "get_or_generate", crash)

    r = client.post("/api/queue/quiz/11", json={"language": "en"})
    assert r.status_code == 200, r.text

    job = client.get(f"/api/jobs/{r.json()['job_id']}").json()
    assert job["status"] == "failed"
    assert job["error"] == "worker crashed"
    assert job["payload"]["progress"]["stage"] == "failed"
