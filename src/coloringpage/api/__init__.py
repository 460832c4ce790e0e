"""Coloring Page Generator — FastAPI HTTP gateway.

Modules
-------
main
    FastAPI application factory, route handlers, error handlers and the
    ``main()`` CLI entry point.
models
    Pydantic models for the JSON responses.
"""
