"""Authentication module.

This module provides:
- Token verification (JWKS verifier)
- Auth middleware for FastAPI
- Request state with viewer identity

Note: Test-only verifiers are in tests/support/verifier.py
"""

from restip.auth.middleware import AuthMiddleware, Viewer, get_viewer
from restip.auth.verifier import JwksTokenVerifier, TokenVerifier

__all__ = [
    "AuthMiddleware",
    "Viewer",
    "get_viewer",
    "JwksTokenVerifier",
    "TokenVerifier",
]
