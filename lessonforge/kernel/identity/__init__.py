"""Caller identity (JWT bearer tokens)."""

from lessonforge.kernel.identity.jwt import AccessTokenPayload, JWTManager, verify_access_token

__all__ = ["AccessTokenPayload", "JWTManager", "verify_access_token"]
