"""Actor authentication from JWT bearer tokens."""

from typing import Any, Dict, Optional
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from .config import get_settings


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

DEV_TOKEN = "dev-token-for-testing"


def create_access_token(data: dict) -> str:
    """Create a JWT access token for an actor.

    Args:
        data: Token payload. Should include 'sub' (user_id).

    Returns:
        Encoded JWT token string.
    """
    settings = get_settings()
    return jwt.encode(data.copy(), settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a token and return the actor without raising exceptions."""
    settings = get_settings()

    # DEV_ONLY_START
    if token == DEV_TOKEN and settings.ENVIRONMENT == "development":
        return {
            "id": "dev-user",
            "username": "dev_user",
            "is_superuser": True,
            "roles": ["admin"],
        }
    # DEV_ONLY_END

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    user_id = payload.get("sub")
    if user_id is None:
        return None

    return {
        "id": str(user_id),
        "username": payload.get("username", "user"),
        "is_superuser": bool(payload.get("is_superuser", False)),
        "roles": payload.get("roles", ["user"]),
    }


async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
) -> Optional[Dict[str, Any]]:
    """Get the current actor, or None for anonymous callers."""
    if not token:
        return None

    actor = verify_token(token)
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor


async def get_current_user(
    actor: Optional[Dict[str, Any]] = Depends(get_optional_user),
) -> Dict[str, Any]:
    """Get the current actor, requiring authentication."""
    if actor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return actor
