"""
lease_api -- FastAPI interface boundary.

Resolves the caller's identity once per request, runs core operations in a
single ``session_scope()`` unit of work, and maps kernel exceptions to
``{ok: false, error, message}`` responses.

Run with ``uvicorn --factory lease_api.app:create_app``.
"""

from lease_api.app import create_app

__all__ = ["create_app"]
