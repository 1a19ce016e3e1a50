"""Identicon server - FastAPI HTTP layer.

Modules
-------
main
    FastAPI application factory, route handlers, error translation, and the
    ``main()`` CLI entry point.
models
    Pydantic models for JSON error and stats responses.
"""
