"""
Exception types and the FastAPI handlers that render them
"""

from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from .helpers import info_log


class KabyarError(Exception):
    """Base class for application errors."""


class ProviderConfigError(KabyarError):
    """Unknown provider, or no API key configured for it."""


class InvalidMessagesError(KabyarError):
    """A message list with nothing but system turns."""


class InsufficientCreditsError(KabyarError):
    """Not enough daily credits left for the requested generation."""

    def __init__(self, credits_needed: int, credits_remaining: int):
        super().__init__(
            f"Insufficient credits: need {credits_needed}, have {credits_remaining}"
        )
        self.credits_needed = credits_needed
        self.credits_remaining = credits_remaining


class RewardLimitError(KabyarError):
    """The daily number of rewarded-ad top-ups is used up."""

    def __init__(self, limit: int):
        super().__init__(f"Daily reward limit of {limit} reached")
        self.limit = limit


class ClientAbortedError(KabyarError):
    """The client disconnected before any upstream work started."""


class UpstreamError(KabyarError):
    """Non-success HTTP status from an API route, seen by the relay client."""

    def __init__(self, status_code: int, detail: str = ""):
        super().__init__(f"HTTP {status_code}: {detail[:200]}")
        self.status_code = status_code
        self.detail = detail


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten pydantic errors into field-level details, dropping the "body" prefix."""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        details.append({
            "field": ".".join(loc),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        })
    return details


def credits_payload(exc: InsufficientCreditsError) -> Dict[str, Any]:
    return {
        "error": "Insufficient credits",
        "creditsNeeded": exc.credits_needed,
        "creditsRemaining": exc.credits_remaining,
    }


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON error envelopes used by every route."""

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        details = format_validation_errors(exc.errors())
        info_log("[VALIDATION] request rejected", path=request.url.path, fields=[d["field"] for d in details])
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid input", "details": details},
        )

    @app.exception_handler(InvalidMessagesError)
    async def handle_invalid_messages(request: Request, exc: InvalidMessagesError):
        details = [{"field": "messages", "message": str(exc), "type": "value_error"}]
        info_log("[VALIDATION] request rejected", path=request.url.path, fields=["messages"])
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid input", "details": details},
        )

    @app.exception_handler(InsufficientCreditsError)
    async def handle_insufficient_credits(request: Request, exc: InsufficientCreditsError):
        info_log(
            "[CREDITS] generation refused",
            path=request.url.path,
            needed=exc.credits_needed,
            remaining=exc.credits_remaining,
        )
        return JSONResponse(status_code=402, content=credits_payload(exc))

    @app.exception_handler(RewardLimitError)
    async def handle_reward_limit(request: Request, exc: RewardLimitError):
        info_log("[CREDITS] reward refused", path=request.url.path, limit=exc.limit)
        return JSONResponse(
            status_code=429,
            content={"error": "Daily reward limit reached", "limit": exc.limit},
        )

    @app.exception_handler(ClientAbortedError)
    async def handle_client_aborted(request: Request, exc: ClientAbortedError):
        return PlainTextResponse("Request cancelled", status_code=499)

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )
