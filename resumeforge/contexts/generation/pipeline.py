"""
Resume generation pipeline.

Flow: job text -> ranked terms -> prompt -> backend stream -> caller.

Two ways to consume a streaming generation:
- stream(): a lazy, finite, non-restartable iterator of GenerationEvent.
  Each next() reads from the backend connection; closing the iterator early
  closes the connection.
- generate(): drains stream() into a sink callable, one event at a time, in
  order, on the calling thread.

Partial output is never retracted. Any exception from either method means the
whole generation failed, even if fragments were already delivered.

Usage:
    pipeline = GenerationPipeline.from_settings(load_settings())

    pipeline.generate(profile, job_text, sink=lambda event: print(event.fragment, end=""))

    with closing(pipeline.stream(None, job_text)) as events:
        for event in events:
            ...
"""

import threading
import time
from contextlib import closing
from typing import Callable, Iterator, Optional, Protocol

from resumeforge.contexts.generation.backend import (
    GenerationBackend,
    GenerationEvent,
    HTTPGenerationBackend,
)
from resumeforge.contexts.generation.exceptions import (
    CollaboratorUnavailable,
    GenerationCancelled,
    GenerationError,
    SinkError,
    ValidationError,
)
from resumeforge.contexts.generation.logger import (
    _log_error,
    log_generation_result,
    log_generation_start,
)
from resumeforge.contexts.generation.prompts import build_prompt
from resumeforge.contexts.intake.term_extractor import TermExtractor, top_term_texts
from resumeforge.contexts.profiles.profile_data_structure import ProfileSnapshot
from resumeforge.contexts.profiles.profile_database import ProfileNotFoundError
from resumeforge.utils.config import Settings

DEFAULT_PROMPT_TERMS = 10

EventSink = Callable[[GenerationEvent], None]


class ProfileLookup(Protocol):
    def get_profile_with_details(self, profile_id: int) -> ProfileSnapshot: ...


class GenerationPipeline:
    """
    Builds prompts from job postings and relays backend output.

    The pipeline holds no per-request state; concurrent calls each open their
    own backend stream.
    """

    def __init__(
        self,
        backend: GenerationBackend,
        model: str,
        extractor: Optional[TermExtractor] = None,
        prompt_terms: int = DEFAULT_PROMPT_TERMS,
    ):
        """
        Args:
            backend: Generation backend
            model: Model identifier sent with every request
            extractor: Term extractor (default: built-in dictionary, cap 50)
            prompt_terms: Number of top-ranked terms included in the prompt
        """
        self.backend = backend
        self.model = model
        self.extractor = extractor or TermExtractor()
        self.prompt_terms = prompt_terms

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationPipeline":
        backend = HTTPGenerationBackend(
            endpoint=settings.backend.generate_url,
            timeout_s=settings.backend.timeout_s,
        )
        return cls(
            backend=backend,
            model=settings.backend.model,
            extractor=TermExtractor(max_terms=settings.extraction.max_terms),
            prompt_terms=settings.extraction.prompt_terms,
        )

    # --- Prompt construction ---

    def top_terms(self, job_text: str) -> list[str]:
        """Return the top prompt_terms term texts in ranked order."""
        return top_term_texts(self.extractor.extract(job_text), self.prompt_terms)

    def build_prompt(self, profile: Optional[ProfileSnapshot], job_text: str) -> str:
        """Validate inputs and build the prompt (shared by every generation variant)."""
        return self._prepare(profile, job_text)[0]

    def _prepare(
        self, profile: Optional[ProfileSnapshot], job_text: str
    ) -> tuple[str, list[str]]:
        _validate_inputs(profile, job_text)
        terms = self.top_terms(job_text)
        return build_prompt(terms, job_text, profile), terms

    # --- Streaming ---

    def stream(
        self,
        profile: Optional[ProfileSnapshot],
        job_text: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> Iterator[GenerationEvent]:
        """
        Start a streaming generation.

        Inputs are validated immediately; the backend request is sent on the
        first next().

        Args:
            profile: Candidate profile, or None for the generic template
            job_text: Job posting text
            cancel_event: Once set, no further event is yielded, the backend
                connection is closed (within CANCEL_POLL_S even while a read
                is blocked) and GenerationCancelled is raised

        Raises:
            ValidationError: If job_text is blank or profile has the wrong type
        """
        prompt, terms = self._prepare(profile, job_text)
        log_generation_start(self.model, terms, profile is not None, streaming=True)
        return self._relay(prompt, cancel_event)

    def _relay(
        self, prompt: str, cancel_event: Optional[threading.Event]
    ) -> Iterator[GenerationEvent]:
        start = time.time()
        delivered = 0
        try:
            _raise_if_cancelled(cancel_event)
            with closing(self.backend.stream_generate(self.model, prompt, cancel_event)) as events:
                for event in events:
                    _raise_if_cancelled(cancel_event)
                    yield event
                    delivered += 1
                    if event.is_final:
                        break
        except GenerationError as e:
            log_generation_result(self.model, time.time() - start, delivered, error=e)
            raise
        log_generation_result(self.model, time.time() - start, delivered)

    def generate(
        self,
        profile: Optional[ProfileSnapshot],
        job_text: str,
        sink: EventSink,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Relay a streaming generation to sink.

        The sink is called once per event, in order. Returns after the sink has
        processed the final event.

        Raises:
            ValidationError: Invalid input
            BackendUnavailable: Connection, timeout, non-success status, or
                stream ended without a final event
            BackendProtocolError: Malformed backend event
            SinkError: The sink raised; the backend stream is closed and no
                further event is read
            GenerationCancelled: cancel_event was set
        """
        with closing(self.stream(profile, job_text, cancel_event)) as events:
            for event in events:
                try:
                    sink(event)
                except SinkError as e:
                    _log_error(f"Sink failed, closing backend stream: {e}")
                    raise
                except Exception as e:
                    _log_error(f"Sink failed, closing backend stream: {type(e).__name__}: {e}")
                    raise SinkError("Sink failed while consuming event", original_error=e) from e

    # --- Non-streaming ---

    def generate_text(self, profile: Optional[ProfileSnapshot], job_text: str) -> str:
        """
        Generate the full resume text in a single backend call.

        Raises:
            ValidationError, BackendUnavailable, BackendProtocolError
        """
        prompt, terms = self._prepare(profile, job_text)
        log_generation_start(self.model, terms, profile is not None, streaming=False)

        start = time.time()
        try:
            response = self.backend.generate(self.model, prompt)
        except GenerationError as e:
            log_generation_result(self.model, time.time() - start, 0, error=e)
            raise
        log_generation_result(self.model, time.time() - start, 1)
        return response.content

    # --- Profile-backed generation ---

    def generate_for_profile(
        self,
        profiles: ProfileLookup,
        profile_id: int,
        job_text: str,
        sink: EventSink,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Look up a profile snapshot, then relay a streaming generation to sink.

        Raises:
            ProfileNotFoundError: No profile has this id
            CollaboratorUnavailable: The profile store failed
            (plus everything generate() raises)
        """
        profile = load_profile(profiles, profile_id)
        self.generate(profile, job_text, sink, cancel_event)


def load_profile(profiles: ProfileLookup, profile_id: int) -> ProfileSnapshot:
    """
    Fetch a profile snapshot, mapping store failures to CollaboratorUnavailable.

    Raises:
        ProfileNotFoundError: No profile has this id
        CollaboratorUnavailable: The lookup failed for any other reason
    """
    try:
        return profiles.get_profile_with_details(profile_id)
    except (ProfileNotFoundError, CollaboratorUnavailable):
        raise
    except Exception as e:
        raise CollaboratorUnavailable(f"Failed to fetch profile {profile_id}: {e}") from e


def _validate_inputs(profile: Optional[ProfileSnapshot], job_text: str) -> None:
    if not isinstance(job_text, str) or not job_text.strip():
        raise ValidationError("Job description is required")
    if profile is not None and not isinstance(profile, ProfileSnapshot):
        raise ValidationError(
            f"profile must be a ProfileSnapshot or None, got: {type(profile).__name__}"
        )


def _raise_if_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise GenerationCancelled("Generation cancelled by caller")
