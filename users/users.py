from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from core.models import User
from memberships.service import get_latest_membership, serialize_membership
from transactions.ledger import list_transactions, serialize_transaction
from users import accounts
from users.schemas import UpdateProfileSchema

router = APIRouter(prefix="/api", tags=["Users"])

RECENT_TRANSACTIONS = 20


@router.get("/profile")
def get_profile(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    balances = accounts.get_balances(db, current_user.id)
    _, recent = list_transactions(db, current_user.id, limit=RECENT_TRANSACTIONS)

    return {
        "ok": True,
        "user": accounts.serialize_user(current_user),
        "balances": accounts.serialize_balances(balances),
        "membership": serialize_membership(get_latest_membership(db, current_user.id)),
        "transactions": [serialize_transaction(t) for t in recent],
    }


@router.put("/profile")
def update_profile(
    data: UpdateProfileSchema,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = accounts.update_profile(
        db,
        current_user,
        bio=data.bio,
        username=data.username,
        email=data.email,
    )
    return {"ok": True, "user": accounts.serialize_user(user)}


@router.get("/balance")
def get_balance(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    balances = accounts.get_balances(db, current_user.id)
    return {"ok": True, "balances": accounts.serialize_balances(balances)}
