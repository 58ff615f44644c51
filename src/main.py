from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.adapters.api.controllers.departures import router as departures_router
from src.adapters.api.dependencies import get_feed_store, get_settings
from src.config import env_bool


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Keep the static feed fresh for as long as the app runs.

    The first refresh runs in the background so the API answers (with the
    fallback board) while the feed is still downloading.
    """

    settings = get_settings()
    task: asyncio.Task[None] | None = None
    if settings.refresh_on_startup:
        task = asyncio.create_task(
            get_feed_store().run_periodic(interval_s=settings.refresh_interval_s)
        )
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


app = FastAPI(title="Haferkamp Board", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)
app.include_router(departures_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Ensure API errors are JSON so the display frontend can show them."""

    logging.getLogger("uvicorn.error").exception(
        "Unhandled exception", extra={"path": str(request.url.path)}
    )

    if env_bool("BOARD_REVEAL_ERRORS") or isinstance(exc, (RuntimeError, ValueError)):
        detail = str(exc) or exc.__class__.__name__
    else:
        detail = "Internal Server Error"

    return JSONResponse(status_code=500, content={"success": False, "detail": detail})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
