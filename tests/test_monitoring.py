from lecture_ai.services.monitoring import RequestMetrics


def test_empty_stats():
    assert RequestMetrics().stats() == {
        "total_requests": 0,
        "avg_response_time_ms": 0.0,
        "error_rate": 0.0,
        "cache_hit_rate": 0.0,
    }


def test_stats_and_recent_errors():
    m = RequestMetrics()
    m.record("/api/summaries/generate/{subject_id}", "POST", 200, 10.0, cached=False)
    m.record("/api/summaries/generate/{subject_id}", "POST", 200, 2.0, cached=True)
    m.record("/api/quizzes/generate/{subject_id}", "POST", 404, 3.0, cached=False)
    m.record("/api/quizzes/generate/{subject_id}", "POST", 502, 5.0, cached=False)

    stats = m.stats()
    assert stats["total_requests"] == 4
    assert stats["avg_response_time_ms"] == 5.0
    assert stats["error_rate"] == 50.0
    assert stats["cache_hit_rate"] == 25.0

    errors = m.recent_errors(limit=1)
    assert len(errors) == 1
    assert errors[0]["status_code"] == 502


def test_counters_exposed_in_prometheus_format():
    m = RequestMetrics()
    m.record("/api/quizzes/{subject_id}", "GET", 200, 1.0, cached=True)
    m.record("/api/quizzes/{subject_id}", "GET", 200, 1.0, cached=False)

    labels = {"route": "/api/quizzes/{subject_id}", "method": "GET", "status": "200"}
    assert m.registry.get_sample_value("http_server_requests_total", labels) == 2.0
    assert m.registry.get_sample_value("http_server_requests_seconds_count", labels) == 2.0
    assert m.registry.get_sample_value("artifact_cache_hits_total", {"route": "/api/quizzes/{subject_id}"}) == 1.0

    text = m.exposition().decode()
    assert "http_server_requests_seconds_bucket" in text


def test_registries_are_independent():
    a, b = RequestMetrics(), RequestMetrics()
    a.record("/health", "GET", 200, 1.0, cached=False)
    assert a.stats()["total_requests"] == 1
    assert b.stats()["total_requests"] == 0


def test_error_buffer_keeps_latest_entries():
    m = RequestMetrics(max_errors=3)
    for i in range(5):
        m.record(f"/r/{i}", "GET", 500, 1.0, cached=False)
    assert m.stats()["total_requests"] == 5
    assert [e["endpoint"] for e in m.recent_errors()] == ["/r/2", "/r/3", "/r/4"]
