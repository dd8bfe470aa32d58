"""Authentication utilities."""
from typing import Optional
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session
import logging

from database import get_db
from models import UserProfile
from monitoring import auth_failures_counter, auth_attempts_counter
from security import lookup_session_user

logger = logging.getLogger(__name__)


def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> UserProfile:
    """
    Resolve the bearer token to the signed-in user.

    Args:
        authorization: Authorization header value
        db: Database session

    Returns:
        The user's profile

    Raises:
        HTTPException: If token is invalid or missing
    """
    auth_attempts_counter.add(1, {"type": "bearer_token"})

    if authorization is None:
        auth_failures_counter.add(1, {"reason": "missing_header"})
        logger.warning("Authentication failed: Missing authorization header")
        raise HTTPException(status_code=401, detail="Missing authorization header")

    # Extract token (Bearer <token>)
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        auth_failures_counter.add(1, {"reason": "invalid_format"})
        logger.warning("Authentication failed: Invalid authorization header format", extra={
            "auth_header": authorization[:20] + "..." if len(authorization) > 20 else authorization
        })
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    token = parts[1]
    user = lookup_session_user(db, token)
    if user is None:
        auth_failures_counter.add(1, {"reason": "invalid_token"})
        logger.warning("Authentication failed: Invalid token", extra={
            "token_prefix": token[:8] + "..." if len(token) > 8 else token
        })
        raise HTTPException(status_code=401, detail="Invalid token")

    logger.debug("Authentication successful", extra={"user_id": user.id})
    return user


def require_admin(user: UserProfile = Depends(get_current_user)) -> UserProfile:
    """Allow only admin profiles through."""
    if not user.is_admin:
        auth_failures_counter.add(1, {"reason": "not_admin"})
        logger.warning("Authorization failed: admin required", extra={"user_id": user.id})
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
