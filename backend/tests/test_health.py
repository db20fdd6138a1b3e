def test_healthz_endpoint(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["database"]["status"] == "ok"
    assert body["version"]


def test_metrics_endpoint_groups_by_route(client):
    trip = client.post(
        "/api/trips",
        json={"name": "Metrics", "startDate": "2026-05-01", "endDate": "2026-05-02"},
    ).json()
    client.get(f"/api/trips/{trip['id']}")
    client.get("/api/trips/does-not-exist")

    body = client.get("/healthz/metrics").json()
    routes = {(item["method"], item["path"]): item for item in body["routes"]}
    detail = routes[("GET", "/api/trips/{trip_id}")]
    assert detail["count"] == 2
    assert detail["failures"] == 1
    assert ("POST", "/api/trips") in routes
