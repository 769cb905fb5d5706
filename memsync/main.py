"""
memsync/main.py
FastAPI application for the hook intake surface.
Endpoints: POST /hook/before, POST /hook/after, POST /hook/thought
"""

from typing import Any, TypeVar
import logging

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from pydantic import BaseModel, ValidationError

from memsync.discovery import HOOK_TOKEN_HEADER
from memsync.processor import (
    HookAfterPayload,
    HookBeforePayload,
    HookEventProcessor,
    HookThoughtPayload,
)

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


def create_app(processor: HookEventProcessor, token: str) -> FastAPI:
    """
    Build the intake app bound to one processor and one bearer token.

    Args:
        processor: Hook event processor that owns correlation state.
        token: Secret every request must present in the X-Hook-Token header.
    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(title="memsync hook intake", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.processor = processor
    app.state.hook_token = token

    @app.post("/hook/before")
    async def hook_before(request: Request, background_tasks: BackgroundTasks) -> dict[str, bool]:
        """
        Record a submitted prompt and refresh context for it.

        Raises:
            HTTPException 401: Missing or incorrect token.
            HTTPException 400: Empty or invalid JSON body.
        """
        _verify_hook_token(request)
        payload = await _parse_hook_body(request, HookBeforePayload)
        interaction = processor.handle_before(payload)
        if interaction is not None:
            background_tasks.add_task(processor.run_refresh, interaction.query)
        return {"ok": True}

    @app.post("/hook/after")
    async def hook_after(request: Request, background_tasks: BackgroundTasks) -> dict[str, bool]:
        """
        Correlate a produced response and schedule its synchronization.

        Uncorrelated responses still return 200 so the dispatcher does not retry.

        Raises:
            HTTPException 401: Missing or incorrect token.
            HTTPException 400: Empty or invalid JSON body.
        """
        _verify_hook_token(request)
        payload = await _parse_hook_body(request, HookAfterPayload)
        interaction = processor.handle_after(payload)
        if interaction is not None:
            background_tasks.add_task(processor.run_sync, interaction)
        return {"ok": True}

    @app.post("/hook/thought")
    async def hook_thought(request: Request) -> dict[str, bool]:
        """Accept an intermediate thinking event (logged only)."""
        _verify_hook_token(request)
        payload = await _parse_hook_body(request, HookThoughtPayload)
        processor.handle_thought(payload)
        return {"ok": True}

    return app


def _verify_hook_token(request: Request) -> None:
    """
    Reject requests whose X-Hook-Token header does not match the app token.

    Raises:
        HTTPException 401: When the header is missing or incorrect.
    """
    expected = request.app.state.hook_token
    provided = request.headers.get(HOOK_TOKEN_HEADER, "")
    if not provided or provided != expected:
        logger.warning("Unauthorized hook request to %s.", request.url.path)
        raise HTTPException(status_code=401, detail="Unauthorized hook request.")


async def _parse_hook_body(request: Request, model: type[PayloadT]) -> PayloadT:
    """
    Parse and validate a required JSON object body.

    Raises:
        HTTPException 400: Empty body, invalid JSON, non-object body or bad field types.
    """
    body = await request.body()
    if not body.strip():
        raise HTTPException(status_code=400, detail="Empty request body.")
    try:
        payload: Any = await request.json()
    except Exception as exc:
        raise HTTPException(status_code=400, detail="Invalid JSON body.") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="JSON body must be an object.")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid hook payload: {exc.error_count()} error(s).") from exc
