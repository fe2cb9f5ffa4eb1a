"""
Account store: user records, credentials and per-coin balances.

Balances live in one row per (user, coin). Every change goes through
`credit` / `debit`, which issue single UPDATE statements so two concurrent
requests can never both spend the same funds.
"""

import logging
from decimal import Decimal

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.auth import hash_password, verify_password
from core.constants import BALANCE_COINS
from core.errors import ErrorCode, ErrorMessage
from core.exceptions import AuthError, ConflictError, NotFoundError
from core.models import Balance, User

logger = logging.getLogger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _ensure_unique(db: Session, email: str | None, username: str | None, exclude_id: str | None = None):
    conditions = []
    if email is not None:
        conditions.append(func.lower(User.email) == email)
    if username is not None:
        conditions.append(User.username == username)
    if not conditions:
        return

    query = db.query(User).filter(or_(*conditions))
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise ConflictError()


def create_account(db: Session, email: str, username: str, password: str) -> User:
    email = _normalize_email(email)
    username = username.strip()
    _ensure_unique(db, email, username)

    user = User(email=email, username=username, password=hash_password(password))
    user.balances = [Balance(coin=coin, amount=Decimal("0")) for coin in BALANCE_COINS]
    db.add(user)

    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration
        db.rollback()
        raise ConflictError()

    db.refresh(user)
    logger.info("Registered user %s (%s)", user.username, user.id)
    return user


def find_by_identifier(db: Session, identifier: str) -> User | None:
    identifier = identifier.strip()
    return (
        db.query(User)
        .filter(or_(User.username == identifier, func.lower(User.email) == identifier.lower()))
        .first()
    )


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(ErrorMessage.USER_NOT_FOUND, ErrorCode.USER_NOT_FOUND)
    return user


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username.strip()).first()


def authenticate(db: Session, identifier: str, password: str) -> User:
    user = find_by_identifier(db, identifier)
    if not user or not verify_password(password, user.password):
        raise AuthError(ErrorMessage.INVALID_CREDENTIALS, ErrorCode.AUTH_INVALID_CREDENTIALS)
    return user


def update_profile(
    db: Session,
    user: User,
    bio: str | None = None,
    username: str | None = None,
    email: str | None = None,
) -> User:
    if email is not None:
        email = _normalize_email(email)
    if username is not None:
        username = username.strip()

    new_email = email if email is not None and email != user.email else None
    new_username = username if username is not None and username != user.username else None
    _ensure_unique(db, new_email, new_username, exclude_id=user.id)

    if bio is not None:
        user.bio = bio
    if new_email is not None:
        user.email = new_email
    if new_username is not None:
        user.username = new_username

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError()

    db.refresh(user)
    return user


#balances

def get_balances(db: Session, user_id: str) -> dict[str, Decimal]:
    balances = {coin: Decimal("0") for coin in BALANCE_COINS}
    rows = db.query(Balance.coin, Balance.amount).filter(Balance.user_id == user_id).all()
    for coin, amount in rows:
        balances[coin] = Decimal(amount or 0)
    return balances


def get_balance(db: Session, user_id: str, coin: str) -> Decimal:
    row = db.query(Balance.amount).filter(Balance.user_id == user_id, Balance.coin == coin).first()
    return Decimal(row[0]) if row and row[0] is not None else Decimal("0")


def credit(db: Session, user_id: str, coin: str, amount: Decimal) -> None:
    """Atomically add `amount` to a balance. Does not commit."""
    updated = (
        db.query(Balance)
        .filter(Balance.user_id == user_id, Balance.coin == coin)
        .update({Balance.amount: Balance.amount + amount}, synchronize_session="fetch")
    )
    if updated == 0:
        db.add(Balance(user_id=user_id, coin=coin, amount=amount))
        db.flush()


def debit(db: Session, user_id: str, coin: str, amount: Decimal) -> bool:
    """
    Atomically subtract `amount` if the balance covers it. Does not commit.

    Returns False, leaving the balance untouched, when funds are short.
    """
    updated = (
        db.query(Balance)
        .filter(
            Balance.user_id == user_id,
            Balance.coin == coin,
            Balance.amount >= amount,
        )
        .update({Balance.amount: Balance.amount - amount}, synchronize_session="fetch")
    )
    return updated == 1


def serialize_balances(balances: dict[str, Decimal]) -> dict[str, float]:
    return {coin: float(amount) for coin, amount in balances.items()}


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "bio": user.bio,
        "activeMembershipId": user.active_membership_id,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
    }
