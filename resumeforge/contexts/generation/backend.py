"""
Generation backend abstraction and HTTP client.

The backend protocol is a single POST of {model, prompt, stream} to a
/generate endpoint:
- stream=false: one JSON object {model, created_at, response, done}
- stream=true: newline-delimited JSON objects of the same shape, one per
  event; the last one has done=true

No retries are performed here; retry policy belongs to the caller.
"""

import json
import socket
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

import httpx

from resumeforge.contexts.generation.exceptions import (
    BackendProtocolError,
    BackendUnavailable,
    GenerationCancelled,
)
from resumeforge.contexts.generation.logger import _log_debug, _log_warning

DEFAULT_TIMEOUT_S = 120.0

# How often an open stream checks its cancel event
CANCEL_POLL_S = 0.05


@dataclass(frozen=True)
class GenerationRequest:
    """Request body sent to the backend."""

    model: str
    prompt: str
    stream: bool

    def to_payload(self) -> dict:
        return {"model": self.model, "prompt": self.prompt, "stream": self.stream}


@dataclass(frozen=True)
class GenerationEvent:
    """One incremental unit of backend output plus its completion flag."""

    fragment: str
    is_final: bool


@dataclass(frozen=True)
class GenerationResponse:
    """Complete response from a non-streaming backend call."""

    content: str
    model: str
    created_at: Optional[str] = None


def parse_event(line: str) -> GenerationEvent:
    """
    Parse one backend JSON line into a GenerationEvent.

    Raises:
        BackendProtocolError: If the line is not a JSON object, has no done field,
            or a field has the wrong type
        BackendUnavailable: If the backend reports an error in-band
    """
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as e:
        raise BackendProtocolError(f"Failed to parse LLM response chunk: {e}", line=line) from e

    if not isinstance(payload, dict):
        raise BackendProtocolError("LLM response chunk is not a JSON object", line=line)

    if payload.get("error"):
        raise BackendUnavailable(f"LLM backend reported an error: {payload['error']}")

    if "done" not in payload:
        raise BackendProtocolError("LLM response chunk has no 'done' field", line=line)

    fragment = payload.get("response", "")
    done = payload["done"]
    if not isinstance(fragment, str) or not isinstance(done, bool):
        raise BackendProtocolError(
            "LLM response chunk has wrong field types (expected response: str, done: bool)",
            line=line,
        )

    return GenerationEvent(fragment=fragment, is_final=done)


class GenerationBackend(ABC):
    """
    Abstract base for generation backends.

    Subclasses must:
    - Implement generate() for a single non-streaming call
    - Implement stream_generate() as a lazy iterator of events that stops
      after the final event and releases its connection when closed early
    """

    name: str

    @abstractmethod
    def generate(self, model: str, prompt: str) -> GenerationResponse:
        """Make a single non-streaming call and return the full text."""
        pass

    @abstractmethod
    def stream_generate(
        self, model: str, prompt: str, cancel_event: Optional[threading.Event] = None
    ) -> Iterator[GenerationEvent]:
        """
        Stream events for a prompt; the last yielded event is final.

        Setting cancel_event while the stream is open closes the connection and
        raises GenerationCancelled.
        """
        pass

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class StreamWatchdog:
    """
    Interrupts a streaming response once its deadline passes or it is cancelled.

    Runs on a daemon thread for the lifetime of one stream. Interrupting shuts
    down the response's socket, which wakes a reader blocked in recv(). Without
    a socket (e.g. httpx.MockTransport) the response is closed instead.
    """

    def __init__(
        self,
        response: httpx.Response,
        deadline: float,
        cancel_event: Optional[threading.Event] = None,
        poll_s: float = CANCEL_POLL_S,
    ):
        """
        Args:
            response: Open streaming response
            deadline: time.monotonic() value after which the stream is timed out
            cancel_event: Caller's cancel signal, polled every poll_s
            poll_s: Poll interval for cancel_event
        """
        self.response = response
        self.deadline = deadline
        self.cancel_event = cancel_event
        self.poll_s = poll_s
        self.reason: Optional[str] = None  # "timeout" or "cancelled" once fired
        self._finished = threading.Event()
        self._thread = threading.Thread(target=self._run, name="stream-watchdog", daemon=True)

    def start(self) -> "StreamWatchdog":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._finished.set()

    def _run(self) -> None:
        while True:
            remaining = self.deadline - time.monotonic()
            if remaining <= 0:
                self._interrupt("timeout")
                return

            wait_s = remaining if self.cancel_event is None else min(self.poll_s, remaining)
            if self._finished.wait(wait_s):
                return

            if self.cancel_event is not None and self.cancel_event.is_set():
                self._interrupt("cancelled")
                return

    def _interrupt(self, reason: str) -> None:
        self.reason = reason
        _log_warning(f"Interrupting backend stream ({reason})")

        network_stream = self.response.extensions.get("network_stream")
        sock = network_stream.get_extra_info("socket") if network_stream is not None else None
        if sock is None:
            self.response.close()
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            # The reader already closed the connection
            _log_debug(f"Socket shutdown skipped: {e}")


class HTTPGenerationBackend(GenerationBackend):
    """
    Backend speaking the /generate protocol over HTTP (e.g. a local Ollama).

    A single overall deadline of timeout_s covers connection and the full
    stream. httpx's per-operation timeout uses the same bound for connecting
    and waiting for headers; once the body starts, a StreamWatchdog interrupts
    a read that is still blocked when the deadline passes.
    """

    def __init__(
        self,
        endpoint: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            endpoint: Full URL of the /generate endpoint
            timeout_s: Overall bound for one request, in seconds
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
            clock: Monotonic clock checked between stream lines
        """
        self.endpoint = endpoint
        self.timeout_s = timeout_s
        self.name = f"http/{endpoint}"
        self._clock = clock
        self.client = httpx.Client(
            timeout=httpx.Timeout(timeout_s),
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        self.client.close()

    def _check_status(self, response: httpx.Response) -> None:
        """Raise BackendUnavailable for a non-success status (body must be readable)."""
        if response.is_success:
            return
        body = response.read().decode("utf-8", errors="replace")
        _log_warning(f"Backend returned HTTP {response.status_code}")
        raise BackendUnavailable(
            f"LLM API request failed with status: {response.status_code} "
            f"{response.reason_phrase}, body: {body}",
            status_code=response.status_code,
            body=body,
        )

    def _interrupted_error(self, watchdog: StreamWatchdog) -> Exception:
        if watchdog.reason == "cancelled":
            return GenerationCancelled("Generation cancelled by caller")
        return BackendUnavailable(f"LLM stream exceeded timeout of {self.timeout_s}s")

    def generate(self, model: str, prompt: str) -> GenerationResponse:
        request = GenerationRequest(model=model, prompt=prompt, stream=False)
        _log_debug(f"POST {self.endpoint} (stream=false, model={model})")

        try:
            response = self.client.post(self.endpoint, json=request.to_payload())
        except httpx.TimeoutException as e:
            raise BackendUnavailable(f"LLM API request timed out after {self.timeout_s}s") from e
        except httpx.HTTPError as e:
            raise BackendUnavailable(f"LLM API request failed: {e}") from e

        self._check_status(response)

        try:
            payload = response.json()
        except json.JSONDecodeError as e:
            raise BackendProtocolError(
                f"Failed to parse LLM response: {e}", line=response.text
            ) from e

        if not isinstance(payload, dict) or not isinstance(payload.get("response"), str):
            raise BackendProtocolError("LLM response has no text 'response' field", line=response.text)

        return GenerationResponse(
            content=payload["response"],
            model=payload.get("model", model),
            created_at=payload.get("created_at"),
        )

    def stream_generate(
        self, model: str, prompt: str, cancel_event: Optional[threading.Event] = None
    ) -> Iterator[GenerationEvent]:
        request = GenerationRequest(model=model, prompt=prompt, stream=True)
        started = time.monotonic()
        deadline = self._clock() + self.timeout_s
        _log_debug(f"POST {self.endpoint} (stream=true, model={model})")

        try:
            with self.client.stream("POST", self.endpoint, json=request.to_payload()) as response:
                self._check_status(response)

                watchdog = StreamWatchdog(
                    response, started + self.timeout_s, cancel_event
                ).start()
                try:
                    for line in response.iter_lines():
                        if watchdog.reason is not None:
                            raise self._interrupted_error(watchdog)
                        if self._clock() > deadline:
                            raise BackendUnavailable(
                                f"LLM stream exceeded timeout of {self.timeout_s}s"
                            )
                        if not line.strip():
                            continue

                        event = parse_event(line)
                        yield event

                        if event.is_final:
                            _log_debug("Backend signalled completion")
                            return
                except (httpx.HTTPError, httpx.StreamError) as e:
                    if watchdog.reason is not None:
                        raise self._interrupted_error(watchdog) from e
                    raise
                finally:
                    watchdog.stop()

                if watchdog.reason is not None:
                    raise self._interrupted_error(watchdog)
        except httpx.TimeoutException as e:
            raise BackendUnavailable(f"LLM stream timed out after {self.timeout_s}s") from e
        except httpx.HTTPError as e:
            raise BackendUnavailable(f"LLM stream failed: {e}") from e
        except httpx.StreamError as e:
            raise BackendUnavailable(f"LLM stream failed: {e}") from e

        raise BackendUnavailable("LLM stream ended before completion")
