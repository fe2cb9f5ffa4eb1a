from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from core.auth import clear_session_cookie, set_session_cookie
from core.config import settings
from core.database import get_db
from core.exceptions import ValidationError
from core.rate_limit import limiter
from users import accounts
from users.schemas import LoginSchema, RegisterSchema

router = APIRouter(prefix="/api", tags=["Auth"])


@router.post("/register")
@limiter.limit(settings.LOGIN_RATE_LIMIT)
def register(request: Request, req: RegisterSchema, response: Response, db: Session = Depends(get_db)):
    user = accounts.create_account(db, req.email, req.username, req.password)
    set_session_cookie(response, user)
    return {"ok": True, "user": accounts.serialize_user(user)}


@router.post("/login")
@limiter.limit(settings.LOGIN_RATE_LIMIT)
def login(request: Request, req: LoginSchema, response: Response, db: Session = Depends(get_db)):
    if not req.identifier:
        raise ValidationError("Username/Email and password required")

    user = accounts.authenticate(db, req.identifier, req.password)
    set_session_cookie(response, user)
    return {"ok": True, "user": accounts.serialize_user(user)}


@router.post("/logout")
def logout(response: Response):
    clear_session_cookie(response)
    return {"ok": True}
