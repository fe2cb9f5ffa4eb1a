import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, Header, Query, Request, Response
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from core.config import settings
from core.database import get_db
from core.errors import ErrorMessage
from core.exceptions import AdminAuthError, AuthError
from core.models import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def create_token(data: dict) -> str:
    user_id = str(data.get("id") or "")
    if not user_id:
        raise RuntimeError("create_token() requires data['id']")

    now = datetime.now(timezone.utc)
    payload = {
        **data,
        "id": user_id,
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(hours=settings.SESSION_TTL_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def set_session_cookie(response: Response, user: User) -> None:
    token = create_token({"id": user.id, "username": user.username})
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_TTL_HOURS * 3600,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(settings.SESSION_COOKIE_NAME, httponly=True, samesite="lax")


def _session_token(request: Request) -> str | None:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token

    # API clients may send the same token as a bearer header
    authorization = request.headers.get("Authorization", "")
    if authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1]
    return None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    token = _session_token(request)
    if not token:
        raise AuthError()

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": True},
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("Session expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid session")

    user_id = payload.get("id") or payload.get("sub")
    if not user_id:
        raise AuthError("Invalid session")

    user = db.query(User).filter(User.id == str(user_id)).first()
    if not user:
        raise AuthError(ErrorMessage.USER_NOT_FOUND)

    return user


@dataclass(frozen=True)
class AdminPrincipal:
    """Capability resolved from a valid shared admin key."""

    source: str  # "header" | "query"


def require_admin(
    header_key: str | None = Header(None, alias="x-admin-key"),
    query_key: str | None = Query(None, alias="x-admin-key"),
) -> AdminPrincipal:
    if not settings.ADMIN_KEY:
        logger.warning("Admin request rejected: ADMIN_KEY is not configured")
        raise AdminAuthError(ErrorMessage.ADMIN_DISABLED)

    supplied, source = (header_key, "header") if header_key else (query_key, "query")
    if not supplied or not hmac.compare_digest(supplied.encode(), settings.ADMIN_KEY.encode()):
        logger.warning("Admin request rejected: bad or missing key")
        raise AdminAuthError()

    return AdminPrincipal(source=source)
