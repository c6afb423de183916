"""Error kinds raised by the generation pipeline and its collaborators."""

from typing import Optional


class GenerationError(Exception):
    """Base class for every failure of a generation request."""


class ValidationError(GenerationError, ValueError):
    """Malformed or missing input to the pipeline."""


class CollaboratorUnavailable(GenerationError):
    """The profile store (or another upstream collaborator) could not be reached."""


class BackendUnavailable(GenerationError):
    """
    The generation backend failed before signalling completion.

    Covers connection failures, timeouts, non-success HTTP statuses and
    streams that end without a final event.

    Attributes:
        message: Error description
        status_code: HTTP status returned by the backend, if any
        body: Response body text returned with a non-success status
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class BackendProtocolError(GenerationError):
    """
    A backend payload did not match the expected JSON shape.

    Attributes:
        message: Error description
        line: The offending payload (truncated for display)
    """

    def __init__(self, message: str, line: Optional[str] = None):
        self.message = message
        self.line = line

        parts = [message]
        if line:
            snippet = line[:200] + "..." if len(line) > 200 else line
            parts.append(f"\nPayload:\n{snippet}")

        super().__init__("\n".join(parts))


class SinkError(GenerationError):
    """
    The caller's sink failed while consuming an event.

    Attributes:
        message: Error description
        original_error: The exception raised by the sink, if it was wrapped
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error

        parts = [message]
        if original_error:
            parts.append(f"\nOriginal error: {str(original_error)}")

        super().__init__("\n".join(parts))


class GenerationCancelled(GenerationError):
    """The caller cancelled the request while the stream was in flight."""
