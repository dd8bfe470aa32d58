"""Password hashing, session lookup and route protection."""
import logging
import secrets
from typing import Callable, Optional

from fastapi import Request
from fastapi.responses import RedirectResponse
from passlib.context import CryptContext
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from models import AuthSession, UserProfile
from monitoring import route_redirects_counter

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ADMIN_PREFIX = "/admin"
AUTH_PAGES = ("/auth/login", "/auth/register")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash; unrecognized hashes never match."""
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        return False


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from a ``Bearer <token>`` header, or None."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def lookup_session_user(db: Session, token: Optional[str]) -> Optional[UserProfile]:
    """Resolve a bearer token to its user profile."""
    if not token:
        return None
    session = db.query(AuthSession).filter(AuthSession.token == token).first()
    if session is None:
        return None
    return session.user


class RouteProtectionMiddleware(BaseHTTPMiddleware):
    """
    Redirect-based route guard.

    - Paths under ``/admin`` need a valid session (else redirect to login)
      and an admin profile (else redirect to the storefront root).
    - The login and register paths send already-authenticated callers to the
      storefront root.
    """

    def __init__(self, app, session_factory: Callable[[], Session]):
        """
        Initialize route protection.

        Args:
            app: FastAPI application
            session_factory: Callable returning a new database session
        """
        super().__init__(app)
        self.session_factory = session_factory

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        is_admin_path = path == ADMIN_PREFIX or path.startswith(ADMIN_PREFIX + "/")
        is_auth_page = path in AUTH_PAGES

        if not (is_admin_path or is_auth_page):
            return await call_next(request)

        token = extract_bearer_token(request.headers.get("authorization"))
        db = self.session_factory()
        try:
            user = lookup_session_user(db, token)
            is_admin = bool(user and user.is_admin)
            user_id = user.id if user else None
        finally:
            db.close()

        if is_admin_path:
            if user_id is None:
                route_redirects_counter.add(1, {"reason": "no_session"})
                logger.warning("Admin route requested without session", extra={"path": path})
                return RedirectResponse("/auth/login", status_code=303)
            if not is_admin:
                route_redirects_counter.add(1, {"reason": "not_admin"})
                logger.warning("Admin route requested by non-admin", extra={
                    "path": path,
                    "user_id": user_id
                })
                return RedirectResponse("/", status_code=303)

        if is_auth_page and user_id is not None:
            route_redirects_counter.add(1, {"reason": "already_authenticated"})
            return RedirectResponse("/", status_code=303)

        return await call_next(request)
