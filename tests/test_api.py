"""
tests/test_api.py
-----------------
FastAPI endpoints over a session preloaded with the example dataset.

Run with:
    pytest tests/test_api.py -v
"""

from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient

import api.main as api_main
from core.session import DashboardSession


@pytest.fixture
def session(tmp_path, example_csv, monkeypatch):
    s = DashboardSession(sample_path=tmp_path / "missing.csv")
    s.load_upload(example_csv)
    monkeypatch.setattr(api_main, "_session", s)
    return s


@pytest.fixture
def client(session):
    return TestClient(api_main.app)


class TestReadEndpoints:

    def test_dashboard(self, client):
        resp = client.get("/dashboard")
        assert resp.status_code == 200
        body = resp.json()
        assert body["total_tests"] == 250
        assert body["positivity_rate_percent"] == 6.0
        assert body["peak_month"] == "January 2021"
        assert "charts" not in body

    def test_dashboard_with_charts(self, client):
        body = client.get("/dashboard", params={"include_charts": True}).json()
        assert set(body["charts"]) == {"daily_cases", "category", "positivity", "monthly"}

    def test_meta(self, client):
        assert client.get("/meta/test-types").json() == {"test_types": ["A", "B"]}
        assert client.get("/meta/residences").json() == {"residences": ["X", "Y"]}
        assert set(client.get("/meta/analysis-modes").json()["modes"]) == {"temporal", "group", "residence", "positivity"}

    def test_preview(self, client):
        body = client.get("/preview", params={"limit": 2}).json()
        assert body["record_count"] == 3
        assert [r["date"] for r in body["records"]] == ["2021-01-01", "2021-01-01"]


class TestAnalysisEndpoint:

    def test_group(self, client):
        body = client.post("/analysis", params={"mode": "group"}, json={}).json()
        assert body["groups"]["A"] == {"positive": 15, "total": 150, "positivity_rate": 10.0}

    def test_date_filter(self, client):
        body = client.post("/analysis", params={"mode": "temporal"}, json={"start_date": "2021-01-02"}).json()
        assert body["total_days"] == 1
        assert body["filters"]["start_date"] == "2021-01-02"

    def test_chart(self, client):
        body = client.post("/analysis", params={"mode": "positivity", "include_chart": True}, json={}).json()
        assert body["chart"]["title"] == "Positivity Analysis - Daily Positivity Rate"

    def test_unknown_mode_is_not_a_server_error(self, client):
        resp = client.post("/analysis", params={"mode": "bogus"}, json={})
        assert resp.status_code == 200
        assert resp.json()["error"] == "Unknown analysis type"


class TestLoadEndpoints:

    def test_upload(self, client):
        csv_bytes = b"h\n2022-03-01,C,Z,4,16\n2022-03-02,C,Z,1,9\n"
        body = client.post("/upload", files={"file": ("tests.csv", csv_bytes, "text/csv")}).json()
        assert body == {"notice": {"level": "success", "message": "Data uploaded successfully!"}, "record_count": 2}
        assert client.get("/dashboard").json()["total_tests"] == 30

    def test_upload_without_file(self, client):
        body = client.post("/upload").json()
        assert body["notice"]["level"] == "warning"
        assert body["record_count"] == 3

    def test_failed_reload_keeps_dataset(self, client):
        body = client.post("/reload").json()
        assert body["notice"]["level"] == "danger"
        assert body["record_count"] == 3


def test_concurrent_first_requests_share_one_session(monkeypatch):
    monkeypatch.setattr(api_main, "_session", None)
    with ThreadPoolExecutor(max_workers=8) as pool:
        sessions = list(pool.map(lambda _: api_main.get_session(), range(16)))
    assert all(s is sessions[0] for s in sessions)
    assert api_main.get_session() is sessions[0]
