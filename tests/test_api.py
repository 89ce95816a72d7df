from conftest import TRANSCRIPT


def _upload(client, subject_id="11", language="en", content=TRANSCRIPT):
    r = client.post(
        "/api/transcripts/upload",
        json={"subject_id": subject_id, "language": language, "content": content},
    )
    assert r.status_code == 200, r.text
    return r.json()


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["service"] == "api"
    assert body["db_ok"] is True
    assert body["generator_configured"] is True


def test_status_reports_flags_and_cache(client):
    body = client.get("/status").json()
    assert body["ok"] is True
    assert body["features"]["summary_enabled"] is True
    assert body["queue_available"] is True
    assert set(body["cache"]) == {"size", "hits", "misses", "hit_rate"}


def test_transcript_upload_and_read(client):
    body = _upload(client, language="DE-DE")
    assert body["language"] == "de-de"

    r = client.get("/api/transcripts/11", params={"language": "de-de"})
    assert r.status_code == 200
    assert r.json()["content"] == TRANSCRIPT
    assert r.headers["X-Cache-Hit"] == "false"

    r2 = client.get("/api/transcripts/11", params={"language": "DE-de"})
    assert r2.headers["X-Cache-Hit"] == "true"


def test_transcript_too_long_rejected(client, container):
    r = client.post(
        "/api/transcripts/upload",
        json={"subject_id": "11", "language": "en", "content": "x" * (container.settings.transcript_max_chars + 1)},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "ValidationError"


def test_summary_generate_then_cached(client, generator):
    _upload(client)

    r = client.post("/api/summaries/generate/11", json={"language": "en"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["ok"] is True
    assert body["cached"] is False
    assert body["from_store"] is False
    assert body["provenance"] == "fresh"
    assert body["summary"]
    assert r.headers["X-Cache-Hit"] == "false"

    r2 = client.post("/api/summaries/generate/11", json={"language": "EN"})
    assert r2.json()["cached"] is True
    assert r2.headers["X-Cache-Hit"] == "true"
    assert generator.count("summary") == 1

    r3 = client.post("/api/summaries/generate/11", json={"language": "en", "force_regenerate": True})
    assert r3.json()["provenance"] == "fresh"
    assert generator.count("summary") == 2


def test_missing_language_is_400(client, generator):
    _upload(client)
    r = client.post("/api/quizzes/generate/11", json={})
    assert r.status_code == 400
    body = r.json()
    assert body == {
        "ok": False,
        "error": "ValidationError",
        "message": "Language code is required and cannot be empty",
        "kind": None,
        "subject_id": None,
        "language": None,
    }
    assert generator.calls == []


def test_generate_without_transcript_is_404(client):
    r = client.post("/api/quizzes/generate/77", json={"language": "en"})
    assert r.status_code == 404
    assert r.json()["kind"] == "transcript"
    assert r.json()["subject_id"] == "77"


def test_generator_failure_is_502(client, generator):
    _upload(client)
    generator.fail_with = RuntimeError("upstream exploded")
    r = client.post("/api/quizzes/generate/11", json={"language": "en"})
    assert r.status_code == 502
    assert r.json()["error"] == "GenerationError"


def test_disabled_feature_is_403(client, store):
    _upload(client)
    store.set_config("summary_enabled", False)
    r = client.post("/api/summaries/generate/11", json={"language": "en"})
    assert r.status_code == 403


def test_quiz_read_and_delete(client):
    _upload(client)
    assert client.get("/api/quizzes/11", params={"language": "en"}).status_code == 404

    client.post("/api/quizzes/generate/11", json={"language": "en"})
    r = client.get("/api/quizzes/11", params={"language": "en"})
    assert r.status_code == 200
    assert len(r.json()["quiz"]["questions"]) >= 5

    d = client.delete("/api/quizzes/11", params={"language": "en"})
    assert d.json()["deleted"] is True
    assert client.get("/api/quizzes/11", params={"language": "en"}).status_code == 404


def test_cumulative_quiz_flow(client, seed_subject):
    seed_subject(1, series_id=9, order_hint=1, created_offset=1)
    seed_subject(2, series_id=9, order_hint=2, created_offset=2)
    for sid in ("1", "2"):
        _upload(client, subject_id=sid)
        client.post(f"/api/quizzes/generate/{sid}", json={"language": "en"})

    r = client.post("/api/cumulative-quizzes/generate/2", json={"language": "en"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["included_subject_ids"] == ["1", "2"]
    assert body["subject_count"] == 2
    assert body["question_count"] == len(body["quiz"]["questions"])
    numbers = [q["video_context"]["video_number"] for q in body["quiz"]["questions"]]
    assert numbers == sorted(numbers)
    assert set(numbers) == {1, 2}

    again = client.post("/api/cumulative-quizzes/generate/2", json={"language": "en"})
    assert again.json()["cached"] is True

    stats = client.get("/api/cumulative-quizzes/stats").json()["stats"]
    assert stats["total_quizzes"] == 1
    assert stats["avg_videos_per_quiz"] == 2.0

    assert client.get("/api/cumulative-quizzes/2", params={"language": "en"}).status_code == 200
    assert client.delete("/api/cumulative-quizzes/2", params={"language": "en"}).json()["deleted"] is True


def test_cumulative_for_unknown_subject_is_404(client):
    r = client.post("/api/cumulative-quizzes/generate/555", json={"language": "en"})
    assert r.status_code == 404


def test_admin_delete_all_forces_regeneration(client, generator):
    _upload(client)
    client.post("/api/summaries/generate/11", json={"language": "en"})

    r = client.delete("/api/admin/summaries/all")
    assert r.json() == {"ok": True, "kind": "summaries", "deleted": 1}

    again = client.post("/api/summaries/generate/11", json={"language": "en"})
    assert again.json()["provenance"] == "fresh"
    assert generator.count("summary") == 2

    assert client.delete("/api/admin/transcripts/all").json()["deleted"] == 1
    assert client.delete("/api/admin/flashcards/all").status_code == 400


def test_admin_config_and_metrics(client):
    _upload(client)
    client.post("/api/summaries/generate/11", json={"language": "en"})
    client.post("/api/summaries/generate/11", json={"language": "en"})
    client.post("/api/summaries/generate/11", json={})

    config = client.get("/api/admin/config").json()
    assert config["generator"]["provider"] == "fake"
    assert config["features"]["features_enabled"] is True

    metrics = client.get("/api/admin/metrics").json()
    assert metrics["requests"]["total_requests"] >= 4
    assert metrics["requests"]["cache_hit_rate"] > 0
    assert metrics["recent_errors"][-1]["status_code"] == 400


def test_prometheus_endpoint_labels_by_route_template(client):
    _upload(client)
    client.post("/api/summaries/generate/11", json={"language": "en"})

    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert 'route="/api/summaries/generate/{subject_id}"' in resp.text
    assert 'route="/api/summaries/generate/11"' not in resp.text


def test_non_ascii_digit_subject_id_is_400(client, generator):
    r = client.post("/api/summaries/generate/²", json={"language": "en"})
    assert r.status_code == 400
    assert r.json()["error"] == "ValidationError"
    assert generator.calls == []
