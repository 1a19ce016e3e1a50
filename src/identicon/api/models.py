"""Pydantic response models for the identicon API.

Identicons themselves are returned as raw PNG bodies, so the only JSON
payloads are error bodies and the operational stats view.

Models
------
ErrorResponse
    Body of every 4xx/5xx JSON response.
StatsResponse
    Payload of ``GET /api/stats``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """JSON body returned for failed requests.

    Attributes:
        detail: Human-readable description, safe to show to clients.
        error: Stable machine-readable error kind, e.g.
            ``"service_overloaded"`` or ``"gate_timeout"``.
    """

    detail: str = Field(..., description="Human-readable error description.")
    error: str = Field(..., description="Machine-readable error kind.")


class StatsResponse(BaseModel):
    """Point-in-time view of the request gate and image cache."""

    version: str = Field(..., description="Server version.")
    in_flight: int = Field(..., description="Pipelines currently holding a slot.")
    waiting: int = Field(..., description="Requests queued for a slot.")
    concurrency: int = Field(..., description="Configured slot ceiling.")
    queue_limit: int = Field(..., description="Configured wait-queue bound.")
    cache_entries: int = Field(..., description="Identicons currently cached.")
    cache_capacity: int = Field(..., description="Configured cache capacity.")
    cache_hits: int = Field(default=0, description="Cache hits since startup.")
    cache_misses: int = Field(default=0, description="Cache misses since startup.")
