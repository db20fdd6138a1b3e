from __future__ import annotations

from tabi.utils.metrics import MetricsRegistry


def test_metrics_registry_enforces_max_events():
    registry = MetricsRegistry(max_events=3)
    for idx in range(5):
        registry.record("GET", f"/path/{idx}", 10.0, 200)
    assert len(registry._events) == 3  # bounded by max_events
    snapshot = registry.snapshot()
    assert snapshot["total_requests"] == 5


def test_snapshot_window_prunes_old_events(monkeypatch):
    registry = MetricsRegistry(max_events=10)
    fake_time = {"now": 0.0}

    def _fake_time() -> float:
        return fake_time["now"]

    monkeypatch.setattr("tabi.utils.metrics.time", _fake_time)
    registry.record("GET", "/old", 5.0, 200)
    fake_time["now"] = 10.0
    registry.record("PUT", "/api/activities/reorder", 6.0, 500)

    windowed = registry.snapshot_window(window_seconds=5)
    assert windowed["total_requests"] == 1
    route = windowed["routes"][0]
    assert route["path"] == "/api/activities/reorder"
    assert route["failures"] == 1


def test_snapshot_counts_failures_per_route():
    registry = MetricsRegistry()
    registry.record("DELETE", "/api/activities/{activity_id}", 3.0, 200)
    registry.record("DELETE", "/api/activities/{activity_id}", 4.0, 500)

    (route,) = registry.snapshot()["routes"]
    assert route["count"] == 2
    assert route["failures"] == 1
    assert route["avg_ms"] == 3.5
