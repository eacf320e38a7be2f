import time

import pytest
from fastapi.testclient import TestClient

from tools.main import app


@pytest.fixture
def client():
    return TestClient(app)


def wait_for(client, job_id, timeout=15.0):
    deadline = time.time() + timeout
    while True:
        r = client.get(f"/result/{job_id}")
        if r.status_code != 202 or time.time() > deadline:
            return r
        time.sleep(0.05)


def upload(client, text, name="data.csv"):
    return client.post("/upload_async", files={"file": (name, text.encode("utf-8"), "text/csv")})


def test_full_flow(client, linear_csv):
    r = upload(client, linear_csv)
    assert r.status_code == 200
    upload_job = r.json()["job_id"]

    r = wait_for(client, upload_job)
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "done"
    dataset_id = body["report"]["dataset_id"]
    assert body["report"]["insights"]["source"] == "fallback"

    r = client.get(f"/datasets/{dataset_id}/preview", params={"limit": 3})
    assert r.status_code == 200
    assert r.json()["rows"] == [{"a": 1, "b": 2}, {"a": 2, "b": 4}, {"a": 3, "b": 6}]

    r = client.post(f"/analyze_async/{dataset_id}")
    assert r.status_code == 200
    analysis_job = r.json()["job_id"]

    r = wait_for(client, analysis_job)
    assert r.status_code == 200
    analysis = r.json()["report"]["analysis"]
    assert analysis["summary"]["total_rows"] == 11
    assert [t["trend"] for t in analysis["trends"]] == ["increasing", "increasing"]

    r = client.get(f"/progress/{analysis_job}")
    assert "event: done" in r.text

    r = client.get(f"/export/{analysis_job}.md")
    assert r.status_code == 200
    assert "# Data Analysis Report" in r.text

    r = client.get(f"/export/{analysis_job}.csv")
    assert r.status_code == 200
    assert r.text.splitlines()[0] == "a,b"

    r = client.get(f"/export/{analysis_job}.pdf")
    assert r.status_code == 200
    assert r.content.startswith(b"%PDF")

    r = client.post(f"/summary/{analysis_job}")
    assert r.status_code == 200
    assert r.json()["source"] == "fallback"
    assert "## Executive Summary" in client.get(f"/export/{analysis_job}.md").text

    # exports need a finished analysis job
    assert client.get(f"/export/{upload_job}.md").status_code == 404

    r = client.get("/logs", params={"limit": 500})
    assert r.status_code == 200
    assert any("File upload initiated" in e["message"] for e in r.json()["logs"])


def test_rejects_non_csv(client):
    r = upload(client, "hello", name="notes.txt")
    assert r.status_code == 400


def test_rejects_oversized_file(client, monkeypatch, linear_csv):
    monkeypatch.setenv("APP_MAX_FILE_SIZE", "10")
    r = upload(client, linear_csv)
    assert r.status_code == 413


def test_parse_failure_is_unprocessable(client):
    r = upload(client, "x,y\n1,2,3")
    r = wait_for(client, r.json()["job_id"])
    assert r.status_code == 422
    assert r.json()["kind"] == "no_valid_rows"


def test_empty_file_is_unprocessable(client):
    r = upload(client, "a,b\n")
    r = wait_for(client, r.json()["job_id"])
    assert r.status_code == 422
    assert r.json()["kind"] == "empty_input"


def test_unknown_ids(client):
    assert client.get("/result/nope").status_code == 404
    assert client.get("/progress/nope").status_code == 404
    assert client.post("/analyze_async/nope").status_code == 404
    assert client.get("/datasets/nope/preview").status_code == 404
    assert client.post("/summary/nope").status_code == 404
