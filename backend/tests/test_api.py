"""
HTTP layer: synchronous binning endpoint and analysis job endpoints.
"""

import json

import pytest
from fastapi.testclient import TestClient

from clickbin.main import app
from clickbin.models.job import JobStatus
from clickbin.routers import analyses
from clickbin.storage.file_manager import ARTIFACTS, file_manager
from clickbin.storage.job_store import job_store

SCENARIO = [
    {"event_id": "A", "species": "Kogia", "peak": 100.5},
    {"event_id": "A", "species": "Kogia", "peak": 101.2},
    {"event_id": "B", "species": "Phocoena", "peak": 105.9},
]


@pytest.fixture
def pipeline_calls() -> list:
    return []


@pytest.fixture
def client(storage, monkeypatch, pipeline_calls):
    async def _no_pipeline(job_id: str, reuse: bool = True) -> None:
        pipeline_calls.append((job_id, reuse))

    monkeypatch.setattr(analyses, "run_pipeline", _no_pipeline)
    with TestClient(app) as test_client:
        yield test_client


class TestHealth:

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok"}


class TestBinningEndpoint:

    def test_scenario(self, client):
        resp = client.post(
            "/api/binning",
            json={"clicks": SCENARIO, "feature_name": "peak", "bin_width": 1, "range_start": 100, "range_end": 102},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["counts"] == {"A": [1, 1], "B": [0, 0]}
        assert body["excluded"] == {"A": 0, "B": 1}
        assert body["bin_edges"] == [100.0, 101.0, 102.0]

    def test_zero_bin_width(self, client):
        resp = client.post("/api/binning", json={"clicks": SCENARIO, "feature_name": "peak", "bin_width": 0})
        assert resp.status_code == 422
        assert "bin_width" in resp.json()["detail"]

    def test_missing_feature(self, client):
        resp = client.post("/api/binning", json={"clicks": SCENARIO, "feature_name": "duration", "bin_width": 1})
        assert resp.status_code == 422
        assert "duration" in resp.json()["detail"]

    def test_empty_clicks(self, client):
        resp = client.post("/api/binning", json={"clicks": [], "feature_name": "peak", "bin_width": 1})
        assert resp.status_code == 422

    def test_unknown_policy_rejected_by_schema(self, client):
        resp = client.post(
            "/api/binning",
            json={"clicks": SCENARIO, "feature_name": "peak", "bin_width": 1, "out_of_range": "clip"},
        )
        assert resp.status_code == 422


class TestAnalysisEndpoints:

    def test_create_and_fetch(self, client):
        resp = client.post(
            "/api/analyses/",
            json={"title": "scenario", "clicks": SCENARIO, "params": {"feature_name": "peak", "bin_width": 1}},
        )
        assert resp.status_code == 200
        job = resp.json()
        assert job["status"] == "pending"
        assert job["n_clicks"] == 3
        assert job["feature_name"] == "peak"

        assert client.get(f"/api/analyses/{job['id']}").json()["title"] == "scenario"
        assert [j["id"] for j in client.get("/api/analyses/").json()] == [job["id"]]
        assert file_manager.request_path(job["id"]).exists()

    def test_artifact_not_ready_then_served(self, client):
        job_id = client.post(
            "/api/analyses/", json={"clicks": SCENARIO, "params": {"feature_name": "peak"}}
        ).json()["id"]

        assert client.get(f"/api/analyses/{job_id}/counts").status_code == 404

        file_manager.artifact_path(job_id, "counts").write_text(json.dumps({"counts": {"A": [1]}}))
        assert client.get(f"/api/analyses/{job_id}/counts").json() == {"counts": {"A": [1]}}

    def test_unknown_job(self, client):
        assert client.get("/api/analyses/nope").status_code == 404
        assert client.get("/api/analyses/nope/counts").status_code == 404

    def test_unknown_artifact(self, client):
        job_id = client.post(
            "/api/analyses/", json={"clicks": SCENARIO, "params": {"feature_name": "peak"}}
        ).json()["id"]
        assert client.get(f"/api/analyses/{job_id}/plot").status_code == 404

    def test_empty_clicks_rejected(self, client):
        resp = client.post("/api/analyses/", json={"clicks": [], "params": {"feature_name": "peak"}})
        assert resp.status_code == 422

    def test_rerun_clears_artifacts_and_recomputes(self, client, pipeline_calls):
        job_id = client.post(
            "/api/analyses/", json={"clicks": SCENARIO, "params": {"feature_name": "peak"}}
        ).json()["id"]
        for name in ARTIFACTS:
            file_manager.artifact_path(job_id, name).write_text("{}")
        job_store.record_result(job_id, n_events=2, artifacts=list(ARTIFACTS))

        resp = client.post(f"/api/analyses/{job_id}/rerun")

        assert resp.status_code == 200
        assert resp.json()["status"] == "pending"
        assert resp.json()["artifacts"] == []
        assert client.get(f"/api/analyses/{job_id}/counts").status_code == 404
        assert pipeline_calls[-1] == (job_id, False)

    def test_rerun_while_running_conflicts(self, client):
        job_id = client.post(
            "/api/analyses/", json={"clicks": SCENARIO, "params": {"feature_name": "peak"}}
        ).json()["id"]
        job_store.update_status(job_id, JobStatus.ordinating, progress=55)

        assert client.post(f"/api/analyses/{job_id}/rerun").status_code == 409

    def test_rerun_unknown_job(self, client):
        assert client.post("/api/analyses/nope/rerun").status_code == 404
