"""API route handlers."""

from api.routes import health, proofs, members

__all__ = ["health", "proofs", "members"]
