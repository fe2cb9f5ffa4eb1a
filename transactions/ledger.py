"""
Transaction ledger: user-initiated deposit, withdraw and transfer flows.

Ledger rows are the audit trail. The live balance is the per-coin row kept
by `users.accounts`; only transfers (here) and the admin gate move it.
"""

import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from core.constants import (
    BALANCE_COINS,
    DEPOSIT_COINS,
    MembershipStatus,
    TransactionStatus,
    TransactionType,
    TransferDirection,
)
from core.errors import ErrorCode, ErrorMessage
from core.exceptions import InsufficientBalanceError, NotFoundError, ValidationError
from core.models import Membership, Transaction, User
from core.types import AMOUNT_PLACES, MAX_AMOUNT
from memberships.tiers import TIERS
from users import accounts

logger = logging.getLogger(__name__)


def normalize_coin(coin: str | None, allowed=BALANCE_COINS) -> str:
    symbol = (coin or "").strip().upper()
    if not symbol:
        raise ValidationError("Coin is required", ErrorCode.UNSUPPORTED_COIN)
    if symbol not in allowed:
        raise ValidationError(
            f"Unsupported coin: {symbol}",
            ErrorCode.UNSUPPORTED_COIN,
            {"supported": list(allowed)},
        )
    return symbol


def parse_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(ErrorMessage.INVALID_AMOUNT, ErrorCode.INVALID_AMOUNT)

    if not value.is_finite() or value <= 0:
        raise ValidationError(ErrorMessage.INVALID_AMOUNT, ErrorCode.INVALID_AMOUNT)
    if value.normalize().as_tuple().exponent < -AMOUNT_PLACES:
        raise ValidationError(
            f"Amount supports at most {AMOUNT_PLACES} decimal places", ErrorCode.INVALID_AMOUNT
        )
    if value > MAX_AMOUNT:
        raise ValidationError(ErrorMessage.INVALID_AMOUNT, ErrorCode.INVALID_AMOUNT)
    return value


def record_transaction(
    db: Session,
    user_id: str,
    type: str,
    coin: str,
    amount: Decimal,
    status: str = TransactionStatus.PENDING,
    meta: dict | None = None,
) -> Transaction:
    txn = Transaction(
        user_id=user_id,
        type=type,
        coin=coin,
        amount=amount,
        status=status,
        meta=dict(meta or {}),
    )
    db.add(txn)
    db.flush()
    return txn


def create_deposit(db: Session, user: User, coin: str, amount, membership_tier: str | None = None) -> Transaction:
    coin = normalize_coin(coin, DEPOSIT_COINS)
    amount = parse_amount(amount)

    meta = {}
    if membership_tier:
        tier_code = str(membership_tier).strip().upper()
        active = (
            db.query(Membership)
            .filter(Membership.user_id == user.id, Membership.status == MembershipStatus.ACTIVE)
            .first()
        )
        if active:
            raise ValidationError(ErrorMessage.MEMBERSHIP_ALREADY_ACTIVE)
        # unknown tiers are kept so approval can fall back to a plain credit
        meta = {"membershipTier": tier_code, "membershipPurchase": True}
        if tier_code not in TIERS:
            logger.warning("Deposit by %s references unknown tier %s", user.id, tier_code)

    txn = record_transaction(db, user.id, TransactionType.DEPOSIT, coin, amount, meta=meta)
    db.commit()
    db.refresh(txn)

    logger.info("Deposit request %s: %s %s by %s", txn.id, amount, coin, user.id)
    return txn


def create_withdraw(db: Session, user: User, coin: str, amount, address: str | None = None) -> Transaction:
    coin = normalize_coin(coin, BALANCE_COINS)
    amount = parse_amount(amount)

    # request-time check only; the admin gate re-checks atomically on approval
    available = accounts.get_balance(db, user.id, coin)
    if available < amount:
        raise InsufficientBalanceError(coin, amount, available)

    meta = {"address": address} if address else {}
    txn = record_transaction(db, user.id, TransactionType.WITHDRAW, coin, amount, meta=meta)
    db.commit()
    db.refresh(txn)

    logger.info("Withdraw request %s: %s %s by %s", txn.id, amount, coin, user.id)
    return txn


def create_transfer(db: Session, sender: User, recipient_username: str, coin: str, amount):
    coin = normalize_coin(coin, BALANCE_COINS)
    amount = parse_amount(amount)

    if not recipient_username or not str(recipient_username).strip():
        raise ValidationError("Recipient is required")

    recipient = accounts.get_user_by_username(db, str(recipient_username))
    if not recipient:
        raise NotFoundError(ErrorMessage.RECIPIENT_NOT_FOUND, ErrorCode.USER_NOT_FOUND)
    if recipient.id == sender.id:
        raise ValidationError(ErrorMessage.SELF_TRANSFER)

    try:
        if not accounts.debit(db, sender.id, coin, amount):
            available = accounts.get_balance(db, sender.id, coin)
            raise InsufficientBalanceError(coin, amount, available)
        accounts.credit(db, recipient.id, coin, amount)

        sent = record_transaction(
            db, sender.id, TransactionType.TRANSFER, coin, amount,
            status=TransactionStatus.CONFIRMED,
            meta={"direction": TransferDirection.SENT, "counterparty": recipient.username},
        )
        received = record_transaction(
            db, recipient.id, TransactionType.TRANSFER, coin, amount,
            status=TransactionStatus.CONFIRMED,
            meta={"direction": TransferDirection.RECEIVED, "counterparty": sender.username},
        )
        sent.meta = {**sent.meta, "linkedTxId": received.id}
        received.meta = {**received.meta, "linkedTxId": sent.id}
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(sent)
    db.refresh(received)
    logger.info("Transfer %s %s from %s to %s", amount, coin, sender.username, recipient.username)
    return sent, received


def list_transactions(
    db: Session,
    user_id: str,
    limit: int = 50,
    offset: int = 0,
    type: str = "ALL",
):
    query = db.query(Transaction).filter(Transaction.user_id == user_id)

    if type and type.upper() != "ALL":
        type = type.upper()
        if type not in TransactionType.ALL:
            raise ValidationError(f"Unknown transaction type: {type}")
        query = query.filter(Transaction.type == type)

    total = query.count()
    txns = query.order_by(Transaction.created_at.desc()).offset(offset).limit(limit).all()
    return total, txns


def get_transaction(db: Session, tx_id: str) -> Transaction:
    txn = db.query(Transaction).filter(Transaction.id == str(tx_id)).first()
    if not txn:
        raise NotFoundError(ErrorMessage.TRANSACTION_NOT_FOUND, ErrorCode.TRANSACTION_NOT_FOUND)
    return txn


def get_user_transaction(db: Session, user_id: str, tx_id: str) -> Transaction:
    txn = get_transaction(db, tx_id)
    # other users' transactions look exactly like missing ones
    if txn.user_id != user_id:
        raise NotFoundError(ErrorMessage.TRANSACTION_NOT_FOUND, ErrorCode.TRANSACTION_NOT_FOUND)
    return txn


def serialize_transaction(txn: Transaction) -> dict:
    return {
        "id": txn.id,
        "userId": txn.user_id,
        "type": txn.type,
        "coin": txn.coin,
        "amount": float(txn.amount),
        "status": txn.status,
        "meta": txn.meta or {},
        "createdAt": txn.created_at.isoformat() if txn.created_at else None,
    }
