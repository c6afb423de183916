"""
HTTP surface for term extraction and resume generation.

Endpoints:
  /health                   GET  - liveness check
  /api/keywords/extract     POST - rank terms for a job posting
  /api/resume/generate      POST - generate a resume (JSON or NDJSON stream)

Streaming responses use newline-delimited JSON ({chunk, done} lines, then a
{source: "llm"} marker). Errors raised before streaming starts become regular
JSON error responses; errors after that become one trailing {error} line.

Usage:
    import uvicorn
    from resumeforge.api import create_app

    uvicorn.run(create_app(), port=8080)
"""

import os
import threading
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from resumeforge.contexts.generation.exceptions import (
    BackendProtocolError,
    BackendUnavailable,
    CollaboratorUnavailable,
    GenerationError,
    ValidationError,
)
from resumeforge.contexts.generation.pipeline import (
    GenerationPipeline,
    ProfileLookup,
    load_profile,
)
from resumeforge.contexts.generation.relay import (
    NDJSON_MEDIA_TYPE,
    SOURCE_MARKER,
    ndjson_relay,
    relay_until_disconnect,
)
from resumeforge.contexts.intake.term_extractor import TermExtractor
from resumeforge.contexts.profiles.profile_database import ProfileDatabase, ProfileNotFoundError
from resumeforge.utils.config import load_settings

load_dotenv()


class ExtractTermsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    max_terms: Optional[int] = Field(default=None, alias="maxTerms", ge=1)


class GenerateResumeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    job_description: str = Field(default="", alias="jobDescription")
    user_id: Optional[int] = Field(default=None, alias="userId")
    streaming: bool = False


def _default_profiles() -> Optional[ProfileLookup]:
    """Open the profile store named by PROFILE_DB_PATH, if it exists."""
    db_path = os.getenv("PROFILE_DB_PATH")
    if db_path and Path(db_path).exists():
        return ProfileDatabase(Path(db_path))
    return None


def create_app(
    pipeline: Optional[GenerationPipeline] = None,
    profiles: Optional[ProfileLookup] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        pipeline: Generation pipeline (default: built from load_settings())
        profiles: Profile lookup (default: ProfileDatabase at PROFILE_DB_PATH, if present)
    """
    if pipeline is None:
        pipeline = GenerationPipeline.from_settings(load_settings())
    if profiles is None:
        profiles = _default_profiles()

    app = FastAPI(title="Resume Forge")

    # ---------------------- Error mapping ----------------------

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Invalid request format"})

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(ProfileNotFoundError)
    async def not_found_handler(request: Request, exc: ProfileNotFoundError):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(CollaboratorUnavailable)
    async def collaborator_handler(request: Request, exc: CollaboratorUnavailable):
        return JSONResponse(status_code=503, content={"error": str(exc)})

    @app.exception_handler(BackendUnavailable)
    async def backend_handler(request: Request, exc: BackendUnavailable):
        return JSONResponse(
            status_code=503,
            content={
                "error": "AI service temporarily unavailable, please try again later",
                "details": str(exc),
            },
        )

    @app.exception_handler(BackendProtocolError)
    async def protocol_handler(request: Request, exc: BackendProtocolError):
        return JSONResponse(status_code=502, content={"error": exc.message})

    @app.exception_handler(GenerationError)
    async def generation_handler(request: Request, exc: GenerationError):
        return JSONResponse(status_code=500, content={"error": str(exc)})

    # ---------------------- Routes ----------------------

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/api/keywords/extract")
    def extract_keywords(request: ExtractTermsRequest):
        extractor = pipeline.extractor
        if request.max_terms is not None:
            extractor = TermExtractor(
                known_phrases=extractor.known_phrases,
                stopwords=extractor.stopwords,
                max_terms=request.max_terms,
            )
        return {"keywords": [term.to_dict() for term in extractor.extract(request.text)]}

    @app.post("/api/resume/generate")
    def generate_resume(body: GenerateResumeRequest, request: Request):
        profile = None
        if body.user_id is not None:
            if profiles is None:
                raise CollaboratorUnavailable("Profile store is not configured")
            profile = load_profile(profiles, body.user_id)

        if body.streaming:
            # stream() validates eagerly, so input errors still map to JSON responses
            cancel_event = threading.Event()
            events = pipeline.stream(profile, body.job_description, cancel_event)
            lines = relay_until_disconnect(
                ndjson_relay(events), request.is_disconnected, cancel_event
            )
            return StreamingResponse(lines, media_type=NDJSON_MEDIA_TYPE)

        resume = pipeline.generate_text(profile, body.job_description)
        return {"resume": resume, **SOURCE_MARKER}

    return app
