"""Identicon server - FastAPI application.

This module defines the FastAPI application factory, the HTTP routes, the
translation of pipeline errors into responses, and the ``main()`` CLI entry
point that launches uvicorn.

Endpoints
---------
========  ==================  ============================================
Method    Path                Purpose
========  ==================  ============================================
GET       ``/{name}``         Render the identicon for ``name`` as PNG
GET       ``/api/stats``      Gate occupancy and cache statistics
GET       ``/favicon.ico``    Always 404
========  ==================  ============================================

Request handling
----------------
``GET /{name}`` extracts the identifier from the path before touching the
request gate, so malformed input never consumes a slot.  Cache hits are
answered without entering the gate either.  Misses run
:func:`~identicon.core.pipeline.render` under the gate while a watcher on
the ASGI receive channel cancels the work if the client disconnects.

Status codes
------------
- ``200`` PNG body with ``ETag`` and long-lived ``Cache-Control``.
- ``304`` when ``If-None-Match`` matches the identicon's ETag.
- ``400`` input too long or malformed.
- ``404`` ``/favicon.ico`` and unknown routes.
- ``503`` with ``Retry-After`` when the gate sheds the request or it times
  out waiting; the ``error`` field tells the two apart.
- ``500`` internal faults.  Details are logged, never sent to the client.

Usage
-----
CLI (installed entry point)::

    identicon-server --addr 0.0.0.0:8080 --concurrency 64

Direct invocation::

    python -m identicon.api.main
"""

from __future__ import annotations

import asyncio
import logging
import unicodedata
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from typing import Any, TypeVar
from urllib.parse import quote_from_bytes, unquote_to_bytes

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from identicon import __version__
from identicon.api.models import ErrorResponse, StatsResponse
from identicon.core.cache import ImageCache
from identicon.core.config import IdenticonConfig, config
from identicon.core.errors import (
    ClientDisconnected,
    IdenticonError,
    InputMalformed,
    InputTooLong,
)
from identicon.core.gate import RequestGate
from identicon.core.pipeline import RequestTrace, Stage, render

logger = logging.getLogger(__name__)

T = TypeVar("T")

CACHE_CONTROL = "public, max-age=30672000"
NOT_FOUND_TEXT = "nothing to see here"

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Identifier too long or malformed"},
    503: {"model": ErrorResponse, "description": "Overloaded or timed out waiting for a slot"},
    500: {"model": ErrorResponse, "description": "Internal error"},
}


# ---------------------------------------------------------------------------
# Application lifecycle.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the request gate and image cache for the app's lifetime.

    Both are built from ``app.state.config`` and stored on ``app.state`` so
    every app instance, including each one built in tests, has its own.
    """
    cfg: IdenticonConfig = app.state.config
    app.state.gate = RequestGate(
        limit=cfg.concurrency,
        max_waiting=cfg.queue_limit,
        timeout=cfg.timeout,
    )
    app.state.cache = ImageCache(cfg.lru_cap)
    logger.info(
        "Identicon server ready (concurrency=%d, queue_limit=%d, timeout=%.1fs, lru_cap=%d)",
        cfg.concurrency,
        cfg.queue_limit,
        cfg.timeout,
        cfg.lru_cap,
    )

    yield

    app.state.cache.clear()
    logger.info("Identicon server stopped.")


# ---------------------------------------------------------------------------
# Request helpers.
# ---------------------------------------------------------------------------


def raw_segment(request: Request, name: str) -> bytes:
    """Return the last path segment exactly as the client sent it.

    Falls back to re-encoding ``name`` when the server provides no
    ``raw_path`` in the ASGI scope.
    """
    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return quote_from_bytes(name.encode("utf-8"), safe="").encode("ascii")
    return raw_path.split(b"?", 1)[0].rsplit(b"/", 1)[-1]


def extract_identifier(raw: bytes, max_length: int) -> bytes:
    """Turn a raw, still percent-encoded path segment into identifier bytes.

    Decoding happens here rather than in the router, which replaces invalid
    UTF-8 with U+FFFD and would map distinct inputs to one identicon.

    Args:
        raw: The ``{name}`` segment as sent on the wire.
        max_length: Largest accepted identifier in UTF-8 bytes.

    Returns:
        The percent-decoded identifier bytes.

    Raises:
        InputMalformed: The segment is not valid UTF-8, is blank, or
            contains control characters.
        InputTooLong: The decoded identifier exceeds ``max_length``.
    """
    data = unquote_to_bytes(raw)
    try:
        name = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InputMalformed("input identifier is not valid UTF-8") from e
    if not name.strip():
        raise InputMalformed("input identifier is empty")
    if any(unicodedata.category(ch) == "Cc" for ch in name):
        raise InputMalformed("input identifier contains control characters")
    if len(data) > max_length:
        raise InputTooLong(len(data), max_length)
    return data


def etag_matches(if_none_match: str | None, etag: str) -> bool:
    """Return whether an ``If-None-Match`` header matches ``etag``.

    Weak validators and unquoted tags are compared by their opaque value.
    """
    if not if_none_match:
        return False
    wanted = etag.strip('"')
    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate == "*":
            return True
        if candidate.startswith("W/"):
            candidate = candidate[2:]
        if candidate.strip('"') == wanted:
            return True
    return False


async def _wait_for_disconnect(request: Request) -> None:
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            return


async def cancel_on_disconnect(request: Request, work: Coroutine[Any, Any, T]) -> T:
    """Run ``work`` until it finishes or the client disconnects.

    On disconnect the work task is cancelled and awaited, so any gate permit
    it held is back in the gate before this function raises.

    Raises:
        ClientDisconnected: The client went away first.
    """
    task = asyncio.ensure_future(work)
    watcher = asyncio.ensure_future(_wait_for_disconnect(request))
    try:
        await asyncio.wait({task, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        watcher.cancel()
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.debug("Cancelled render finished with an error", exc_info=True)
    if task.cancelled():
        raise ClientDisconnected()
    return task.result()


# ---------------------------------------------------------------------------
# Error translation.
# ---------------------------------------------------------------------------


async def identicon_error_handler(request: Request, exc: IdenticonError) -> Response:
    """Translate an :class:`IdenticonError` into its JSON error response."""
    if exc.status_code >= 500:
        logger.error(
            "Unexpected %s for %s: %s", exc.kind, request.url.path, exc.message, exc_info=exc
        )
    elif exc.retriable:
        logger.info("Shed %s: %s", request.url.path, exc.kind)

    headers = {"Retry-After": "1"} if exc.retriable else None
    body = ErrorResponse(detail=exc.message, error=exc.kind)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(), headers=headers)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Plain-text 404s; everything else keeps FastAPI's JSON shape."""
    if exc.status_code == 404:
        return PlainTextResponse(NOT_FOUND_TEXT, status_code=404)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------

router = APIRouter()


@router.get("/api/stats", response_model=StatsResponse)
async def get_stats(request: Request) -> StatsResponse:
    """Return current gate occupancy and cache statistics."""
    gate: RequestGate = request.app.state.gate
    cache: ImageCache = request.app.state.cache
    return StatsResponse(
        version=__version__,
        in_flight=gate.in_flight,
        waiting=gate.waiting,
        concurrency=gate.limit,
        queue_limit=gate.max_waiting,
        cache_entries=len(cache),
        cache_capacity=cache.capacity,
        cache_hits=cache.hits,
        cache_misses=cache.misses,
    )


@router.get("/favicon.ico", include_in_schema=False)
async def favicon() -> Response:
    return PlainTextResponse(NOT_FOUND_TEXT, status_code=404)


@router.get(
    "/{name}",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}, 304: {"description": "Not modified"}}
    | _ERROR_RESPONSES,
)
async def get_identicon(name: str, request: Request) -> Response:
    """Render the identicon for ``name``.

    The same ``name`` always yields byte-identical PNG output.

    Raises:
        IdenticonError: Translated to a status code by
            :func:`identicon_error_handler`.
    """
    cfg: IdenticonConfig = request.app.state.config
    gate: RequestGate = request.app.state.gate
    cache: ImageCache = request.app.state.cache
    trace = RequestTrace()

    try:
        data = extract_identifier(raw_segment(request, name), cfg.max_input_length)
    except IdenticonError as e:
        trace.fail(e.kind)
        raise

    image = cache.get(data)
    if image is None:
        try:
            image = await cancel_on_disconnect(
                request,
                render(data, gate, max_length=cfg.max_input_length, trace=trace),
            )
        except ClientDisconnected as e:
            trace.fail(e.kind)
            raise
        except IdenticonError:
            raise
        except Exception as e:
            logger.exception("Unhandled error rendering identicon in stage %s", trace.current)
            raise IdenticonError() from e
        cache.put(data, image)

    trace.enter(Stage.RESPONDING)
    headers = {"Cache-Control": CACHE_CONTROL, "ETag": image.etag}
    if etag_matches(request.headers.get("if-none-match"), image.etag):
        response = Response(status_code=304, headers=headers)
    else:
        response = Response(content=image.data, media_type=image.mime_type, headers=headers)
    trace.enter(Stage.DONE)
    return response


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(cfg: IdenticonConfig | None = None) -> FastAPI:
    """Build a FastAPI app bound to ``cfg`` (the global config by default)."""
    app = FastAPI(
        title="Identicon Server",
        description="Deterministic identicons rendered as PNG.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = cfg or config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["ETag"],
    )
    app.add_exception_handler(IdenticonError, identicon_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.include_router(router)
    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse flags, configure logging, and serve the app with uvicorn.

    Flags mirror the :class:`IdenticonConfig` fields (``--addr``,
    ``--concurrency``, ``--queue_limit``, ``--timeout``, ``--lru_cap``,
    ``--max_input_length``, ``--log_level``) and override ``IDENTICON_*``
    environment variables.  Uvicorn handles SIGINT/SIGTERM and drains
    in-flight requests before exiting.

    Args:
        argv: Arguments to parse instead of ``sys.argv[1:]``.
    """
    import uvicorn

    cfg = IdenticonConfig(
        _cli_parse_args=argv if argv is not None else True,
        _cli_prog_name="identicon-server",
    )

    logging.basicConfig(
        level=cfg.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Configuration: %s", cfg.model_dump())
    logger.info("Listening on %s", cfg.addr)

    uvicorn.run(
        create_app(cfg),
        host=cfg.host,
        port=cfg.port,
        log_level=cfg.log_level.lower(),
    )


if __name__ == "__main__":
    main()
