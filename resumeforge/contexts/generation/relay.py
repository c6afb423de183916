"""
Caller-facing relay encoding.

Generation events are exposed to clients as newline-delimited JSON:

    {"chunk": "# Summary\\n", "done": false}
    {"chunk": "", "done": true}
    {"source": "llm"}

The {"source": "llm"} marker follows the final event only on successful
completion. When the relay fails after streaming has started, a single
{"error": "..."} line is written instead and the stream ends.

Async servers drive the blocking relay through relay_until_disconnect(),
which stops reading and closes the backend connection once the client is
gone.
"""

import json
import threading
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Generator,
    Iterable,
    Iterator,
    Optional,
)

from fastapi.concurrency import run_in_threadpool

from resumeforge.contexts.generation.backend import GenerationEvent
from resumeforge.contexts.generation.exceptions import GenerationError
from resumeforge.contexts.generation.logger import _log_error, _log_warning

SOURCE_MARKER = {"source": "llm"}

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def encode_line(payload: dict) -> str:
    """Encode one JSON object as a newline-terminated line."""
    return json.dumps(payload) + "\n"


def encode_event(event: GenerationEvent) -> str:
    return encode_line({"chunk": event.fragment, "done": event.is_final})


def ndjson_relay(events: Iterable[GenerationEvent]) -> Iterator[str]:
    """
    Encode a generation event stream as NDJSON lines.

    Closes the event iterator when the relay ends, including when the
    consumer stops early.

    Args:
        events: Events from GenerationPipeline.stream()

    Yields:
        One line per event, the source marker after the final event, or one
        error line if the stream fails
    """
    iterator = iter(events)
    try:
        for event in iterator:
            yield encode_event(event)
            if event.is_final:
                yield encode_line(SOURCE_MARKER)
                return
    except GenerationError as e:
        _log_error(f"Relay aborted: {type(e).__name__}: {e}")
        yield encode_line({"error": str(e)})
    finally:
        close = getattr(iterator, "close", None)
        if close is not None:
            close()


async def relay_until_disconnect(
    lines: Generator[str, None, None],
    is_disconnected: Callable[[], Awaitable[bool]],
    cancel_event: threading.Event,
) -> AsyncIterator[str]:
    """
    Relay NDJSON lines to an async server until the client disconnects.

    Each line is pulled on a worker thread. The relay stops as soon as
    is_disconnected() reports the client gone, or when the server cancels the
    response. Either way lines is closed (closing the backend connection) and
    cancel_event is set.

    Args:
        lines: Generator from ndjson_relay()
        is_disconnected: Async disconnect check (e.g. Request.is_disconnected)
        cancel_event: The event passed to GenerationPipeline.stream()
    """
    try:
        while True:
            if await is_disconnected():
                _log_warning("Client disconnected, closing backend stream")
                return
            line = await run_in_threadpool(next, lines, None)
            if line is None:
                return
            yield line
    finally:
        # The worker thread has returned by now, so lines is not executing
        lines.close()
        cancel_event.set()


class NDJSONSink:
    """
    Sink writing events as NDJSON lines to a text stream.

    Usage:
        pipeline.generate(profile, job_text, sink=NDJSONSink(sys.stdout.write, sys.stdout.flush))
    """

    def __init__(self, write: Callable[[str], Any], flush: Optional[Callable[[], Any]] = None):
        self._write = write
        self._flush = flush
        self.events_written = 0

    def __call__(self, event: GenerationEvent) -> None:
        self._write(encode_event(event))
        if event.is_final:
            self._write(encode_line(SOURCE_MARKER))
        if self._flush is not None:
            self._flush()
        self.events_written += 1


class TextSink:
    """Sink writing only the text fragments, accumulating the full document."""

    def __init__(self, write: Callable[[str], Any], flush: Optional[Callable[[], Any]] = None):
        self._write = write
        self._flush = flush
        self._fragments: list[str] = []

    def __call__(self, event: GenerationEvent) -> None:
        self._write(event.fragment)
        self._fragments.append(event.fragment)
        if self._flush is not None:
            self._flush()

    @property
    def text(self) -> str:
        return "".join(self._fragments)
