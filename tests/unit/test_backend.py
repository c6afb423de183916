"""Unit tests for the HTTP /generate backend client."""

import json
import threading
import time
from contextlib import closing

import httpx
import pytest

from resumeforge.contexts.generation.backend import GenerationEvent, parse_event
from resumeforge.contexts.generation.exceptions import (
    BackendProtocolError,
    BackendUnavailable,
    GenerationCancelled,
)


class FakeClock:
    """Monotonic clock returning queued readings, then repeating the last one."""

    def __init__(self, *readings):
        self.readings = list(readings)

    def __call__(self):
        if len(self.readings) > 1:
            return self.readings.pop(0)
        return self.readings[0]


class StallingStream(httpx.SyncByteStream):
    """Response body that sends its lines, then blocks until the response is closed."""

    def __init__(self, lines):
        self.lines = list(lines)
        self.released = threading.Event()

    def __iter__(self):
        for line in self.lines:
            yield line.encode("utf-8")
        self.released.wait(10.0)

    def close(self):
        self.released.set()


# ---------------------- parse_event ----------------------


@pytest.mark.unit
def test_parse_event():
    line = '{"model": "m", "created_at": "2024-01-01T00:00:00Z", "response": "Hi", "done": false}'
    assert parse_event(line) == GenerationEvent(fragment="Hi", is_final=False)


@pytest.mark.unit
def test_parse_final_event_without_response():
    assert parse_event('{"done": true}') == GenerationEvent(fragment="", is_final=True)


@pytest.mark.unit
@pytest.mark.parametrize(
    "line",
    [
        "not json",
        "[1, 2]",
        "{}",
        '{"response": "x"}',
        '{"response": 5, "done": false}',
        '{"response": "x", "done": "yes"}',
    ],
)
def test_parse_malformed_event(line):
    """Test that malformed payloads raise BackendProtocolError carrying the line."""
    with pytest.raises(BackendProtocolError) as exc_info:
        parse_event(line)
    assert exc_info.value.line == line


@pytest.mark.unit
def test_parse_in_band_error():
    """Test that a backend-reported error is treated as the backend being unavailable."""
    with pytest.raises(BackendUnavailable, match="model 'x' not found"):
        parse_event('{"error": "model \'x\' not found"}')


# ---------------------- stream_generate ----------------------


@pytest.mark.unit
def test_stream_request_payload(make_backend, make_line_stream):
    """Test the request body sent for a streaming generation."""
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, stream=make_line_stream([("ok", True)]))

    backend = make_backend(handler)
    events = list(backend.stream_generate("deepseek-r1", "Write a resume"))

    assert events == [GenerationEvent("ok", True)]
    assert requests[0].method == "POST"
    assert str(requests[0].url) == "http://llm.test/api/generate"
    assert json.loads(requests[0].content) == {
        "model": "deepseek-r1",
        "prompt": "Write a resume",
        "stream": True,
    }


@pytest.mark.unit
def test_stream_events_in_order(make_backend, make_line_stream):
    """Test that events are yielded in order and iteration stops at the final event."""
    stream = make_line_stream([("# Summary\n", False), ("text", False), ("", True), ("late", False)])
    backend = make_backend(lambda request: httpx.Response(200, stream=stream))

    events = list(backend.stream_generate("m", "p"))

    assert [event.fragment for event in events] == ["# Summary\n", "text", ""]
    assert events[-1].is_final
    assert stream.closed


@pytest.mark.unit
def test_stream_skips_blank_lines(make_backend, make_line_stream):
    stream = make_line_stream(["\n", ("a", False), "   \n", ("", True)])
    backend = make_backend(lambda request: httpx.Response(200, stream=stream))

    assert [event.fragment for event in backend.stream_generate("m", "p")] == ["a", ""]


@pytest.mark.unit
def test_stream_non_success_status(make_backend):
    """Test that a non-2xx status raises BackendUnavailable with status and body."""
    backend = make_backend(lambda request: httpx.Response(500, text="model not loaded"))

    with pytest.raises(BackendUnavailable) as exc_info:
        list(backend.stream_generate("m", "p"))

    error = exc_info.value
    assert error.status_code == 500
    assert error.body == "model not loaded"
    assert "500 Internal Server Error" in str(error)
    assert "model not loaded" in str(error)


@pytest.mark.unit
def test_stream_malformed_line(make_backend, make_line_stream):
    stream = make_line_stream([("a", False), "{broken\n", ("", True)])
    backend = make_backend(lambda request: httpx.Response(200, stream=stream))

    events = backend.stream_generate("m", "p")
    assert next(events).fragment == "a"
    with pytest.raises(BackendProtocolError):
        next(events)
    assert stream.closed


@pytest.mark.unit
def test_stream_truncated(make_backend, make_line_stream):
    """Test that a stream ending without done=true raises BackendUnavailable."""
    stream = make_line_stream([("a", False), ("b", False)])
    backend = make_backend(lambda request: httpx.Response(200, stream=stream))

    received = []
    with pytest.raises(BackendUnavailable, match="ended before completion"):
        for event in backend.stream_generate("m", "p"):
            received.append(event.fragment)

    assert received == ["a", "b"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "error, message",
    [
        (httpx.ConnectError("connection refused"), "failed"),
        (httpx.ReadTimeout("read timed out"), "timed out"),
    ],
)
def test_stream_transport_errors(make_backend, error, message):
    """Test that httpx transport failures map to BackendUnavailable."""

    def handler(request):
        raise error

    backend = make_backend(handler)
    with pytest.raises(BackendUnavailable, match=message):
        list(backend.stream_generate("m", "p"))


@pytest.mark.unit
def test_stream_overall_deadline(make_backend, make_line_stream):
    """Test that a stream running past timeout_s raises BackendUnavailable."""
    stream = make_line_stream([("a", False), ("b", False), ("", True)])
    clock = FakeClock(0.0, 1.0, 500.0)
    backend = make_backend(
        lambda request: httpx.Response(200, stream=stream), timeout_s=120.0, clock=clock
    )

    events = backend.stream_generate("m", "p")
    assert next(events).fragment == "a"
    with pytest.raises(BackendUnavailable, match="exceeded timeout"):
        next(events)


@pytest.mark.unit
def test_stream_deadline_interrupts_stalled_read(make_backend):
    """Test that a read blocked past timeout_s is interrupted, not left waiting."""
    stream = StallingStream(['{"response": "a", "done": false}\n'])
    backend = make_backend(lambda request: httpx.Response(200, stream=stream), timeout_s=0.3)

    start = time.monotonic()
    events = backend.stream_generate("m", "p")
    assert next(events).fragment == "a"
    with pytest.raises(BackendUnavailable, match="exceeded timeout"):
        next(events)

    assert time.monotonic() - start < 2.0
    assert stream.released.is_set()


@pytest.mark.unit
def test_stream_cancel_interrupts_stalled_read(make_backend):
    """Test that setting cancel_event unblocks a stalled read with GenerationCancelled."""
    stream = StallingStream(['{"response": "a", "done": false}\n'])
    backend = make_backend(lambda request: httpx.Response(200, stream=stream), timeout_s=30.0)
    cancel_event = threading.Event()

    events = backend.stream_generate("m", "p", cancel_event)
    assert next(events).fragment == "a"

    timer = threading.Timer(0.1, cancel_event.set)
    timer.start()
    start = time.monotonic()
    with pytest.raises(GenerationCancelled):
        next(events)
    timer.join()

    assert time.monotonic() - start < 2.0
    assert stream.released.is_set()


@pytest.mark.unit
def test_stream_closed_early_releases_response(make_backend, make_line_stream):
    """Test that closing the iterator early closes the HTTP response."""
    stream = make_line_stream([("a", False), ("b", False), ("", True)])
    backend = make_backend(lambda request: httpx.Response(200, stream=stream))

    with closing(backend.stream_generate("m", "p")) as events:
        next(events)

    assert stream.closed
    assert stream.pulled == 1


# ---------------------- generate ----------------------


@pytest.mark.unit
def test_generate_non_streaming(make_backend):
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        return httpx.Response(
            200,
            json={
                "model": "m",
                "created_at": "2024-01-01T00:00:00Z",
                "response": "# Summary\nFull text",
                "done": True,
            },
        )

    response = make_backend(handler).generate("m", "p")

    assert response.content == "# Summary\nFull text"
    assert response.model == "m"
    assert response.created_at == "2024-01-01T00:00:00Z"
    assert requests == [{"model": "m", "prompt": "p", "stream": False}]


@pytest.mark.unit
def test_generate_non_success_status(make_backend):
    backend = make_backend(lambda request: httpx.Response(404, text="no such model"))

    with pytest.raises(BackendUnavailable) as exc_info:
        backend.generate("m", "p")
    assert exc_info.value.status_code == 404


@pytest.mark.unit
@pytest.mark.parametrize("body", ["not json", '{"done": true}', '["x"]'])
def test_generate_malformed_body(make_backend, body):
    backend = make_backend(lambda request: httpx.Response(200, text=body))

    with pytest.raises(BackendProtocolError):
        backend.generate("m", "p")
