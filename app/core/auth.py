"""
Authentication Utility - JWT bearer token → Actor.

Tokens are issued elsewhere; this service only verifies them.
Expected claims:
- sub: user id
- role: recruiter | team_leader | sr_team_leader | admin
- team_id: optional
"""

from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import ValidationError

from app.core.config import get_settings
from app.models.placement import Actor

# Bearer token extractor
bearer_scheme = HTTPBearer()


def create_access_token(data: dict) -> str:
    """Sign claims with the shared secret. Used by scripts and tests."""
    settings = get_settings()
    return jwt.encode(data, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def actor_from_claims(payload: dict) -> Optional[Actor]:
    user_id = payload.get("sub")
    if not user_id:
        return None
    try:
        return Actor(
            user_id=int(user_id) if str(user_id).isdigit() else user_id,
            role=payload.get("role"),
            team_id=payload.get("team_id"),
        )
    except ValidationError:
        return None


async def get_current_actor(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> Actor:
    """
    FastAPI dependency - Get the actor performing the request.

    Usage:
        @router.post("/candidates")
        async def route(actor: Actor = Depends(get_current_actor)):
            ...
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if not payload:
        raise credentials_exception

    actor = actor_from_claims(payload)
    if actor is None:
        raise credentials_exception
    return actor
