from typing import Optional

from pydantic import BaseModel


class Principal(BaseModel):
    """Authenticated identity attached to a request. Built per request from a validated token."""

    user_id: str
    role: str
    email: Optional[str] = None
    token_id: Optional[str] = None

    @classmethod
    def from_claims(cls, claims) -> "Principal":
        return cls(user_id=claims.sub, role=claims.role, email=claims.email, token_id=claims.jti)

