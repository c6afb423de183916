"""Shared fixtures: fake /generate backends (httpx.MockTransport) and sample profiles."""

import json
from datetime import date

import httpx
import pytest

from resumeforge.contexts.generation.backend import HTTPGenerationBackend
from resumeforge.contexts.generation.pipeline import GenerationPipeline
from resumeforge.contexts.profiles.profile_data_structure import (
    EducationEntry,
    ProfileSnapshot,
    WorkHistoryEntry,
)

GENERATE_URL = "http://llm.test/api/generate"
TEST_MODEL = "test-model"


class LineStream(httpx.SyncByteStream):
    """Response body yielding one NDJSON line per pull, recording pulls and close()."""

    def __init__(self, lines):
        self.lines = list(lines)
        self.pulled = 0
        self.closed = False

    def __iter__(self):
        for line in self.lines:
            self.pulled += 1
            yield line.encode("utf-8")

    def close(self):
        self.closed = True


def event_line(fragment: str, done: bool = False) -> str:
    return json.dumps(
        {
            "model": TEST_MODEL,
            "created_at": "2024-01-01T00:00:00Z",
            "response": fragment,
            "done": done,
        }
    ) + "\n"


@pytest.fixture
def make_line_stream():
    """Factory: (fragment, done) pairs or raw strings -> LineStream."""

    def _make(events):
        lines = [item if isinstance(item, str) else event_line(*item) for item in events]
        return LineStream(lines)

    return _make


@pytest.fixture
def make_backend():
    """Factory: request handler -> HTTPGenerationBackend on a MockTransport."""
    backends = []

    def _make(handler, **kwargs):
        backend = HTTPGenerationBackend(
            endpoint=GENERATE_URL,
            transport=httpx.MockTransport(handler),
            **kwargs,
        )
        backends.append(backend)
        return backend

    yield _make

    for backend in backends:
        backend.close()


@pytest.fixture
def streaming_pipeline(make_backend, make_line_stream):
    """
    Factory: events -> (pipeline, line_stream, requests).

    Every request is answered with the same LineStream body; requests records
    the decoded JSON payloads sent to the backend.
    """

    def _make(events, status_code=200):
        stream = make_line_stream(events)
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return httpx.Response(status_code, stream=stream)

        pipeline = GenerationPipeline(backend=make_backend(handler), model=TEST_MODEL)
        return pipeline, stream, requests

    return _make


@pytest.fixture
def sample_profile():
    return ProfileSnapshot(
        full_name="Ada Quintero",
        email="ada.quintero@example.org",
        phone="+1 555 0100",
        location="Lisbon, PT",
        title="Platform Engineer",
        summary="Builds reliable deployment tooling.",
        work_history=(
            WorkHistoryEntry(
                company="Northwind Logistics",
                title="Senior Platform Engineer",
                start_date=date(2021, 3, 1),
                end_date=date(2023, 1, 1),
                is_current=True,
                location="Remote",
                description="Ran the Kubernetes fleet and CI/CD pipelines.",
            ),
            WorkHistoryEntry(
                company="Tessellate Labs",
                title="Backend Developer",
                start_date=date(2018, 6, 1),
                end_date=date(2021, 2, 1),
                location="Porto, PT",
                description="Wrote Go services behind a RESTful API.",
            ),
        ),
        education=(
            EducationEntry(
                school="University of Coimbra",
                degree="MSc",
                field="Computer Science",
                start_date=date(2016, 9, 1),
                end_date=None,
                location="Coimbra, PT",
                description="Thesis on distributed consensus.",
            ),
        ),
        profile_id=7,
    )
