"""Session token authentication for the user and admin endpoints."""

from .session_tokens import AuthContext, SessionTokenError, SessionTokenVerifier

__all__ = ["AuthContext", "SessionTokenError", "SessionTokenVerifier"]
