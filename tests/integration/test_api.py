"""
Integration tests for the HTTP surface.

The generation backend is a MockTransport; profiles come from a temporary
SQLite store.
"""

import asyncio
import json
import sqlite3

import httpx
import pytest
from fastapi.testclient import TestClient

from resumeforge.api import create_app
from resumeforge.contexts.generation.pipeline import GenerationPipeline
from resumeforge.contexts.profiles.profile_database import ProfileDatabase

JOB_TEXT = "Senior Software Engineer needed. Experience with RESTful APIs and Docker required."

FOUR_EVENTS = [("# Summary\n", False), ("Engineer ", False), ("with APIs.", False), ("", True)]


@pytest.fixture
def profile_db(tmp_path, sample_profile):
    db = ProfileDatabase.from_profiles([sample_profile], tmp_path / "profiles.db")
    yield db
    db.close()


@pytest.fixture
def make_client(streaming_pipeline, profile_db):
    """Factory: backend events -> (TestClient, line_stream, backend requests)."""

    def _make(events=FOUR_EVENTS, status_code=200, profiles=profile_db):
        pipeline, stream, requests = streaming_pipeline(events, status_code=status_code)
        return TestClient(create_app(pipeline=pipeline, profiles=profiles)), stream, requests

    return _make


def decode_lines(text):
    return [json.loads(line) for line in text.splitlines() if line.strip()]


# ---------------------- health / keywords ----------------------


@pytest.mark.integration
def test_health(make_client):
    client, _, _ = make_client()
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.integration
def test_extract_keywords(make_client):
    client, _, _ = make_client()
    response = client.post("/api/keywords/extract", json={"text": JOB_TEXT})

    assert response.status_code == 200
    keywords = response.json()["keywords"]
    assert keywords[0] == {"word": "software engineer", "score": pytest.approx(0.3), "count": 1}
    assert {"software", "engineer", "restful", "apis"}.isdisjoint(k["word"] for k in keywords)


@pytest.mark.integration
def test_extract_keywords_cap_and_empty(make_client):
    client, _, _ = make_client()

    capped = client.post("/api/keywords/extract", json={"text": JOB_TEXT, "maxTerms": 2})
    assert len(capped.json()["keywords"]) == 2

    empty = client.post("/api/keywords/extract", json={"text": "!!!"})
    assert empty.json() == {"keywords": []}


@pytest.mark.integration
def test_extract_keywords_invalid_cap(make_client):
    client, _, _ = make_client()
    response = client.post("/api/keywords/extract", json={"text": JOB_TEXT, "maxTerms": 0})

    assert response.status_code == 400
    assert "error" in response.json()


# ---------------------- generate: validation and lookup ----------------------


@pytest.mark.integration
@pytest.mark.parametrize("body", [{}, {"jobDescription": ""}, {"jobDescription": "   "}])
def test_generate_requires_job_description(make_client, body):
    client, _, requests = make_client()
    response = client.post("/api/resume/generate", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "Job description is required"}
    assert requests == []


@pytest.mark.integration
def test_generate_unknown_profile(make_client):
    client, _, requests = make_client()
    response = client.post(
        "/api/resume/generate", json={"jobDescription": JOB_TEXT, "userId": 999}
    )

    assert response.status_code == 404
    assert "999" in response.json()["error"]
    assert requests == []


@pytest.mark.integration
def test_generate_profile_store_failure(make_client):
    class LockedProfiles:
        def get_profile_with_details(self, profile_id):
            raise sqlite3.OperationalError("database is locked")

    client, _, _ = make_client(profiles=LockedProfiles())
    response = client.post("/api/resume/generate", json={"jobDescription": JOB_TEXT, "userId": 1})

    assert response.status_code == 503
    assert "database is locked" in response.json()["error"]


@pytest.mark.integration
def test_generate_without_profile_store(streaming_pipeline, monkeypatch):
    monkeypatch.delenv("PROFILE_DB_PATH", raising=False)
    pipeline, _, _ = streaming_pipeline(FOUR_EVENTS)
    client = TestClient(create_app(pipeline=pipeline))

    response = client.post("/api/resume/generate", json={"jobDescription": JOB_TEXT, "userId": 1})

    assert response.status_code == 503


# ---------------------- generate: non-streaming ----------------------


@pytest.mark.integration
def test_generate_non_streaming(make_backend, profile_db):
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        return httpx.Response(200, json={"model": "m", "response": "# Summary\nAda", "done": True})

    pipeline = GenerationPipeline(backend=make_backend(handler), model="m")
    client = TestClient(create_app(pipeline=pipeline, profiles=profile_db))

    response = client.post("/api/resume/generate", json={"jobDescription": JOB_TEXT, "userId": 1})

    assert response.status_code == 200
    assert response.json() == {"resume": "# Summary\nAda", "source": "llm"}
    assert requests[0]["stream"] is False
    assert "Name: Ada Quintero" in requests[0]["prompt"]


@pytest.mark.integration
def test_generate_backend_unavailable(make_backend):
    pipeline = GenerationPipeline(
        backend=make_backend(lambda request: httpx.Response(500, text="out of memory")),
        model="m",
    )
    client = TestClient(create_app(pipeline=pipeline, profiles=None))

    response = client.post("/api/resume/generate", json={"jobDescription": JOB_TEXT})

    assert response.status_code == 503
    body = response.json()
    assert body["error"] == "AI service temporarily unavailable, please try again later"
    assert "out of memory" in body["details"]


@pytest.mark.integration
def test_generate_backend_protocol_error(make_backend):
    pipeline = GenerationPipeline(
        backend=make_backend(lambda request: httpx.Response(200, text="<html>")),
        model="m",
    )
    client = TestClient(create_app(pipeline=pipeline, profiles=None))

    response = client.post("/api/resume/generate", json={"jobDescription": JOB_TEXT})

    assert response.status_code == 502


# ---------------------- generate: streaming ----------------------


@pytest.mark.integration
def test_generate_streaming(make_client):
    """Test NDJSON chunks followed by the source marker."""
    client, stream, requests = make_client()
    response = client.post(
        "/api/resume/generate",
        json={"jobDescription": JOB_TEXT, "userId": 1, "streaming": True},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    assert decode_lines(response.text) == [
        {"chunk": "# Summary\n", "done": False},
        {"chunk": "Engineer ", "done": False},
        {"chunk": "with APIs.", "done": False},
        {"chunk": "", "done": True},
        {"source": "llm"},
    ]
    assert "Ada Quintero" in requests[0]["prompt"]
    assert stream.closed


@pytest.mark.integration
def test_generate_streaming_truncated(make_client):
    """Test that a failure after streaming started ends with one error line."""
    client, _, _ = make_client(events=[("# Summary\n", False), ("partial", False)])
    response = client.post(
        "/api/resume/generate", json={"jobDescription": JOB_TEXT, "streaming": True}
    )

    assert response.status_code == 200
    lines = decode_lines(response.text)
    assert lines[:2] == [
        {"chunk": "# Summary\n", "done": False},
        {"chunk": "partial", "done": False},
    ]
    assert list(lines[2]) == ["error"]
    assert len(lines) == 3


@pytest.mark.integration
def test_generate_streaming_backend_status(make_client):
    """Test that a backend status error inside the stream becomes an error line."""
    client, _, _ = make_client(status_code=500)
    response = client.post(
        "/api/resume/generate", json={"jobDescription": JOB_TEXT, "streaming": True}
    )

    lines = decode_lines(response.text)
    assert len(lines) == 1
    assert "500" in lines[0]["error"]


@pytest.mark.integration
def test_generate_streaming_validates_before_streaming(make_client):
    client, _, requests = make_client()
    response = client.post("/api/resume/generate", json={"jobDescription": "", "streaming": True})

    assert response.status_code == 400
    assert response.json() == {"error": "Job description is required"}
    assert requests == []


@pytest.mark.integration
def test_generate_streaming_client_disconnect(streaming_pipeline):
    """Test that the backend stream is closed once the HTTP client goes away."""
    events = [(f"part {i} ", False) for i in range(6)] + [("", True)]
    pipeline, stream, _ = streaming_pipeline(events)
    app = create_app(pipeline=pipeline, profiles=None)

    body = json.dumps({"jobDescription": JOB_TEXT, "streaming": True}).encode()
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/api/resume/generate",
        "raw_path": b"/api/resume/generate",
        "root_path": "",
        "query_string": b"",
        "headers": [
            (b"content-type", b"application/json"),
            (b"content-length", str(len(body)).encode()),
        ],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }
    chunks = []

    async def run():
        request_sent = False
        two_chunks_received = asyncio.Event()

        async def receive():
            nonlocal request_sent
            if not request_sent:
                request_sent = True
                return {"type": "http.request", "body": body, "more_body": False}
            await two_chunks_received.wait()
            return {"type": "http.disconnect"}

        async def send(message):
            if message["type"] == "http.response.body" and message.get("body"):
                chunks.append(message["body"].decode())
                if len(chunks) == 2:
                    two_chunks_received.set()

        await app(scope, receive, send)

    asyncio.run(run())

    assert decode_lines("".join(chunks))[:2] == [
        {"chunk": "part 0 ", "done": False},
        {"chunk": "part 1 ", "done": False},
    ]
    assert stream.closed
    assert stream.pulled < len(events)
