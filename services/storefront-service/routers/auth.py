"""Authentication API router."""
from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
import logging

from auth import get_current_user
from database import get_db
from models import AuthSession, UserProfile
from monitoring import auth_attempts_counter, auth_failures_counter
from schemas import LoginRequest, RegisterRequest, TokenResponse, UserProfileResponse
from security import extract_bearer_token, hash_password, new_session_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


def _open_session(db: Session, user: UserProfile) -> TokenResponse:
    token = new_session_token()
    db.add(AuthSession(token=token, user_id=user.id))
    db.commit()
    return TokenResponse(token=token, user_id=user.id)


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(request: RegisterRequest, db: Session = Depends(get_db)):
    """Create a customer account and sign it in."""
    email = request.email.lower()
    if db.query(UserProfile).filter(UserProfile.email == email).first():
        logger.warning("Registration failed: email already in use", extra={"email": email})
        raise HTTPException(status_code=409, detail="Email already registered")

    user = UserProfile(
        email=email,
        full_name=request.full_name,
        password_hash=hash_password(request.password)
    )
    db.add(user)
    db.commit()

    logger.info("User registered", extra={"user_id": user.id})
    return _open_session(db, user)


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate user and return token."""
    auth_attempts_counter.add(1, {"type": "login"})

    user = db.query(UserProfile).filter(UserProfile.email == request.email.lower()).first()
    if user is None or not verify_password(request.password, user.password_hash):
        auth_failures_counter.add(1, {"reason": "invalid_credentials"})
        logger.warning("Login failed: Invalid credentials", extra={
            "email": request.email
        })
        raise HTTPException(status_code=401, detail="Invalid email or password")

    logger.info("User logged in successfully", extra={"user_id": user.id})
    return _open_session(db, user)


@router.post("/logout", status_code=204)
async def logout(
    authorization: Optional[str] = Header(None),
    user: UserProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Drop the current session token."""
    token = extract_bearer_token(authorization)
    db.query(AuthSession).filter(AuthSession.token == token).delete()
    db.commit()
    logger.info("User logged out", extra={"user_id": user.id})


@router.get("/me", response_model=UserProfileResponse)
async def me(user: UserProfile = Depends(get_current_user)):
    return user
