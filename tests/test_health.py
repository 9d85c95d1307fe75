from unittest.mock import patch


def _patch_loadavg(monkeypatch, value=(0.2, 0.1, 0.1)):
    monkeypatch.setattr('tigli.app.routes.health.os.getloadavg', lambda: value)
    monkeypatch.setattr('tigli.app.routes.health.os.cpu_count', lambda: 4)


def test_health_ok(client, monkeypatch):
    _patch_loadavg(monkeypatch)

    res = client.get("/api/health")
    assert res.status_code == 200

    data = res.get_json()
    assert data["status"] == "ok"
    assert data["crm_status"] == "configured"

    metrics = data["metrics"]
    assert set(metrics.keys()) == {"crm_timeout_seconds", "system_load"}
    assert metrics["crm_timeout_seconds"] == 5
    assert metrics["system_load"] == {"ratio": 0.05, "cores": 4, "raw": 0.2}
    assert data["indicators"] == {"crm": "ok", "system": "ok"}
    assert "timestamp" in data


def test_health_degraded_by_load(client, monkeypatch):
    _patch_loadavg(monkeypatch, value=(4.0, 3.0, 2.0))

    res = client.get("/api/health")
    assert res.status_code == 200

    data = res.get_json()
    assert data["status"] == "degraded"
    assert data["indicators"]["system"] == "warning"


def test_health_load_unavailable(client, monkeypatch):
    def no_loadavg():
        raise OSError("not supported")

    monkeypatch.setattr('tigli.app.routes.health.os.getloadavg', no_loadavg)

    data = client.get("/api/health").get_json()
    assert data["indicators"]["system"] == "unknown"
    assert data["metrics"]["system_load"]["ratio"] is None


def test_health_missing_crm_key_returns_error(app, client, monkeypatch):
    _patch_loadavg(monkeypatch)

    with patch.dict(app.config, {"BREVO_API_KEY": None}):
        res = client.get("/api/health")

    assert res.status_code == 500
    data = res.get_json()
    assert data["status"] == "error"
    assert data["crm_status"] == "missing"
    assert data["indicators"]["crm"] == "critical"


def test_health_never_exposes_the_key(client, monkeypatch):
    _patch_loadavg(monkeypatch)
    assert b"test-brevo-key" not in client.get("/api/health").data
