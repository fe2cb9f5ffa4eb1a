"""
Admin gate operations: the only place PENDING deposits and withdrawals
become CONFIRMED or DECLINED.

Status changes are compare-and-set updates on `status = 'PENDING'`, so a
second concurrent approval finds nothing to claim and cannot apply the
balance effect twice.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from core.constants import TransactionStatus, TransactionType
from core.errors import ErrorCode
from core.exceptions import InsufficientBalanceError, ValidationError
from core.models import Transaction, User
from memberships import service as memberships
from memberships.tiers import get_tier
from transactions.ledger import get_transaction
from users import accounts

logger = logging.getLogger(__name__)


def _expect_type(txn: Transaction, expected: str) -> None:
    if txn.type != expected:
        raise ValidationError(
            f"Transaction {txn.id} is a {txn.type}, not a {expected}",
            ErrorCode.INVALID_STATE,
        )


def _claim(db: Session, txn_id: str, new_status: str) -> bool:
    updated = (
        db.query(Transaction)
        .filter(Transaction.id == txn_id, Transaction.status == TransactionStatus.PENDING)
        .update(
            {Transaction.status: new_status, Transaction.updated_at: datetime.now(timezone.utc)},
            synchronize_session="fetch",
        )
    )
    return updated == 1


def _reject_terminal(txn: Transaction, action: str) -> None:
    raise ValidationError(
        f"Cannot {action} a {txn.status.lower()} transaction",
        ErrorCode.INVALID_STATE,
        {"status": txn.status},
    )


def approve_deposit(db: Session, tx_id: str) -> dict:
    txn = get_transaction(db, tx_id)
    _expect_type(txn, TransactionType.DEPOSIT)

    if txn.status == TransactionStatus.CONFIRMED:
        return {"transaction": txn, "outcome": "already_confirmed", "membership": None}
    if txn.status != TransactionStatus.PENDING:
        _reject_terminal(txn, "approve")

    if not _claim(db, txn.id, TransactionStatus.CONFIRMED):
        # someone else moved it first; report whatever they decided
        db.rollback()
        db.refresh(txn)
        if txn.status == TransactionStatus.CONFIRMED:
            return {"transaction": txn, "outcome": "already_confirmed", "membership": None}
        _reject_terminal(txn, "approve")

    meta = dict(txn.meta or {})
    tier = get_tier(meta.get("membershipTier")) if meta.get("membershipPurchase") else None
    user = accounts.get_user(db, txn.user_id)
    membership = None

    if tier and memberships.get_active_membership(db, user.id) is None:
        membership = memberships.activate_membership(db, user, tier, source_tx_id=txn.id)
        meta["membershipId"] = membership.id
        outcome = "membership_activated"
    else:
        if meta.get("membershipPurchase"):
            meta["membershipFallback"] = "unknown tier" if tier is None else "membership already active"
        accounts.credit(db, user.id, txn.coin, txn.amount)
        outcome = "credited"

    meta["confirmedAt"] = datetime.now(timezone.utc).isoformat()
    txn.meta = meta
    db.commit()
    db.refresh(txn)
    if membership is not None:
        db.refresh(membership)

    logger.info("Approved deposit %s (%s %s) for %s: %s", txn.id, txn.amount, txn.coin, user.id, outcome)
    return {"transaction": txn, "outcome": outcome, "membership": membership}


def approve_withdraw(db: Session, tx_id: str, tx_hash: str | None = None) -> dict:
    txn = get_transaction(db, tx_id)
    _expect_type(txn, TransactionType.WITHDRAW)

    if txn.status == TransactionStatus.CONFIRMED:
        return {"transaction": txn, "outcome": "already_confirmed"}
    if txn.status != TransactionStatus.PENDING:
        _reject_terminal(txn, "approve")

    if not _claim(db, txn.id, TransactionStatus.CONFIRMED):
        db.rollback()
        db.refresh(txn)
        if txn.status == TransactionStatus.CONFIRMED:
            return {"transaction": txn, "outcome": "already_confirmed"}
        _reject_terminal(txn, "approve")

    if not accounts.debit(db, txn.user_id, txn.coin, txn.amount):
        db.rollback()
        available = accounts.get_balance(db, txn.user_id, txn.coin)
        _decline(db, txn, "Insufficient balance at approval")
        logger.warning(
            "Declined withdraw %s: %s %s requested, %s available",
            txn.id, txn.amount, txn.coin, available,
        )
        raise InsufficientBalanceError(txn.coin, txn.amount, available)

    meta = dict(txn.meta or {})
    if tx_hash:
        meta["txHash"] = tx_hash
    meta["confirmedAt"] = datetime.now(timezone.utc).isoformat()
    txn.meta = meta
    db.commit()
    db.refresh(txn)

    logger.info("Approved withdraw %s (%s %s) for %s", txn.id, txn.amount, txn.coin, txn.user_id)
    return {"transaction": txn, "outcome": "debited"}


def _decline(db: Session, txn: Transaction, reason: str | None) -> bool:
    if not _claim(db, txn.id, TransactionStatus.DECLINED):
        db.rollback()
        return False

    meta = dict(txn.meta or {})
    meta["declinedAt"] = datetime.now(timezone.utc).isoformat()
    if reason:
        meta["declineReason"] = reason
    txn.meta = meta
    db.commit()
    db.refresh(txn)
    return True


def decline_transaction(db: Session, tx_id: str, reason: str | None = None) -> dict:
    txn = get_transaction(db, tx_id)

    if txn.status == TransactionStatus.DECLINED:
        return {"transaction": txn, "outcome": "already_declined"}
    if txn.status != TransactionStatus.PENDING:
        _reject_terminal(txn, "decline")

    if not _decline(db, txn, reason):
        db.refresh(txn)
        if txn.status == TransactionStatus.DECLINED:
            return {"transaction": txn, "outcome": "already_declined"}
        _reject_terminal(txn, "decline")

    logger.info("Declined %s %s", txn.type.lower(), txn.id)
    return {"transaction": txn, "outcome": "declined"}


def list_pending(db: Session, type: str):
    return (
        db.query(Transaction)
        .filter(Transaction.type == type, Transaction.status == TransactionStatus.PENDING)
        .order_by(Transaction.created_at.asc())
        .all()
    )


def list_users(db: Session):
    users = db.query(User).order_by(User.created_at.desc()).all()
    return [
        {**accounts.serialize_user(u), "balances": accounts.serialize_balances(accounts.get_balances(db, u.id))}
        for u in users
    ]
