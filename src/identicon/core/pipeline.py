"""The identicon pipeline: digest, pattern, raster, encode.

Two drivers share the same four stages:

- :func:`build_identicon` runs them synchronously with no admission control.
  It is what tests and offline callers use.
- :func:`render` runs them under a :class:`~identicon.core.gate.RequestGate`.
  Each stage executes in a worker thread, and control returns to the event
  loop between stages, so a cancelled request stops at the next stage
  boundary and its permit is released on the way out.

Request lifecycle
-----------------
A request moves through the :class:`Stage` values in order::

    RECEIVED -> GATE_WAIT -> DERIVING -> GENERATING -> RASTERIZING
             -> ENCODING -> RESPONDING -> DONE

and may end in ``FAILED`` from any of them.  :class:`RequestTrace` records
the path a request took for logging and tests.

The gate ceiling counts permits, not threads: a cancelled request gives its
permit back immediately, but the worker thread finishes the stage it was
running, so for up to one stage more than ``limit`` pipelines may be busy.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from identicon.core.digest import MAX_INPUT_LENGTH, derive
from identicon.core.encoder import EncodedImage, encode
from identicon.core.gate import RequestGate
from identicon.core.pattern import generate
from identicon.core.raster import rasterize

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    RECEIVED = "received"
    GATE_WAIT = "gate_wait"
    DERIVING = "deriving"
    GENERATING = "generating"
    RASTERIZING = "rasterizing"
    ENCODING = "encoding"
    RESPONDING = "responding"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RequestTrace:
    """Stages visited by one request, and why it failed if it did."""

    stages: list[Stage] = field(default_factory=lambda: [Stage.RECEIVED])
    failure: str | None = None

    @property
    def current(self) -> Stage:
        return self.stages[-1]

    def enter(self, stage: Stage) -> None:
        self.stages.append(stage)

    def fail(self, kind: str) -> None:
        if self.current is Stage.FAILED:
            return
        logger.debug("Request failed in %s: %s", self.current.value, kind)
        self.failure = kind
        self.stages.append(Stage.FAILED)


def build_identicon(data: bytes, max_length: int = MAX_INPUT_LENGTH) -> EncodedImage:
    """Run the whole pipeline synchronously for ``data``."""
    grid, color = generate(derive(data, max_length))
    return encode(rasterize(grid, color))


async def render(
    data: bytes,
    gate: RequestGate,
    *,
    max_length: int = MAX_INPUT_LENGTH,
    trace: RequestTrace | None = None,
) -> EncodedImage:
    """Render ``data`` while holding a slot of ``gate``.

    Args:
        data: Input identifier bytes.
        gate: Admission gate bounding concurrent pipelines.
        max_length: Largest accepted input length in bytes.
        trace: Optional trace that receives every stage transition.

    Returns:
        The encoded identicon.

    Raises:
        ServiceOverloaded: The gate shed the request.
        GateTimeout: The gate wait timed out.
        InputTooLong: ``data`` exceeds ``max_length``.
        EncodingFailed: The encoder failed.
        asyncio.CancelledError: The request was cancelled; the permit, if
            any, has been released.
    """
    trace = trace or RequestTrace()
    try:
        trace.enter(Stage.GATE_WAIT)
        async with gate.admit():
            trace.enter(Stage.DERIVING)
            digest = await asyncio.to_thread(derive, data, max_length)
            trace.enter(Stage.GENERATING)
            grid, color = await asyncio.to_thread(generate, digest)
            trace.enter(Stage.RASTERIZING)
            image = await asyncio.to_thread(rasterize, grid, color)
            trace.enter(Stage.ENCODING)
            encoded = await asyncio.to_thread(encode, image)
    except asyncio.CancelledError:
        trace.fail("cancelled")
        raise
    except Exception as e:
        trace.fail(getattr(e, "kind", type(e).__name__))
        raise
    return encoded
