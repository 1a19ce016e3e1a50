"""Configuration management for the identicon server.

Configuration is managed with Pydantic Settings.  Values are resolved in
this order:

1. Command-line flags (only when :func:`identicon.api.main.main` parses them)
2. Environment variables with the ``IDENTICON_`` prefix
3. A ``.env`` file in the working directory
4. Defaults defined in :class:`IdenticonConfig`

Example .env file::

    IDENTICON_ADDR=0.0.0.0:8080
    IDENTICON_CONCURRENCY=64
    IDENTICON_QUEUE_LIMIT=256
    IDENTICON_TIMEOUT=10

Equivalent command line::

    identicon-server --addr 0.0.0.0:8080 --concurrency 64

Rendering constants (grid size, cell scale, palette, digest algorithm) are
deliberately not configurable: they define what every identicon looks like
and live in :mod:`identicon.core.pattern` and :mod:`identicon.core.raster`.
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from identicon.core.digest import MAX_INPUT_LENGTH

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str) -> float:
    """Parse a duration such as ``"10s"``, ``"500ms"`` or ``"1m30s"`` into seconds.

    Bare numbers are taken as seconds.

    Raises:
        ValueError: If ``value`` is not a duration.
    """
    text = value.strip().lower()
    try:
        return float(text)
    except ValueError:
        pass
    parts = _DURATION_PART.findall(text)
    if not parts or _DURATION_PART.sub("", text).strip():
        raise ValueError(f"invalid duration {value!r}")
    return sum(float(n) * _DURATION_UNITS[unit] for n, unit in parts)


class IdenticonConfig(BaseSettings):
    """Runtime configuration for the identicon server.

    Attributes:
        addr: ``host:port`` the HTTP server binds to.
        concurrency: Ceiling on concurrently running pipelines.
        queue_limit: Requests allowed to wait for a slot before new arrivals
            are shed with 503.
        timeout: Seconds a request may wait for a slot.
        lru_cap: Number of encoded identicons kept in memory.  0 disables
            the cache.
        max_input_length: Largest accepted identifier, in UTF-8 bytes.
        log_level: Root log level for the server process.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="IDENTICON_",
        case_sensitive=False,
        extra="ignore",
    )

    addr: str = Field(
        default="127.0.0.1:8080",
        description="Listen address (host:port)",
    )
    concurrency: int = Field(
        default=1024,
        description="Limit the max number of in-flight requests",
        ge=1,
    )
    queue_limit: int = Field(
        default=1024,
        description="Max requests waiting for a slot before shedding load",
        ge=0,
    )
    timeout: float = Field(
        default=10.0,
        description="How long a request may wait for a rendering slot (seconds, or e.g. 10s, 500ms)",
        gt=0,
    )
    lru_cap: int = Field(
        default=64,
        description="LRU cache capacity",
        ge=0,
    )
    max_input_length: int = Field(
        default=MAX_INPUT_LENGTH,
        description="Maximum identifier length in bytes",
        ge=1,
        le=MAX_INPUT_LENGTH,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
    )

    @field_validator("addr")
    @classmethod
    def _check_addr(cls, value: str) -> str:
        host, sep, port = value.rpartition(":")
        if not sep or not host:
            raise ValueError(f"addr must look like host:port, got {value!r}")
        if not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"invalid port in addr {value!r}")
        return value

    @field_validator("timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value):
        return parse_duration(value) if isinstance(value, str) else value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    @property
    def host(self) -> str:
        return self.addr.rpartition(":")[0].strip("[]")

    @property
    def port(self) -> int:
        return int(self.addr.rpartition(":")[2])


# Global configuration instance, loaded from the environment at import time.
config = IdenticonConfig()
