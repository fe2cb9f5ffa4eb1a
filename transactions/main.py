from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.auth import get_current_user
from core.database import get_db
from core.models import User
from transactions import ledger
from transactions.schemas import (
    DepositRequest,
    TransferRequest,
    VerifyPaymentRequest,
    WithdrawRequest,
)

router = APIRouter(prefix="/api", tags=["Transactions"])


@router.post("/deposit")
def deposit_funds(
    payload: DepositRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    txn = ledger.create_deposit(db, current_user, payload.coin, payload.amount, payload.membershipTier)
    return {
        "ok": True,
        "txId": txn.id,
        "status": txn.status,
        "message": "Deposit request received",
    }


@router.post("/withdraw")
def withdraw_funds(
    payload: WithdrawRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    txn = ledger.create_withdraw(db, current_user, payload.coin, payload.amount, payload.address)
    return {
        "ok": True,
        "txId": txn.id,
        "status": txn.status,
        "message": "Withdrawal request submitted",
    }


@router.post("/internal-transfer")
def internal_transfer(
    payload: TransferRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sent, received = ledger.create_transfer(db, current_user, payload.recipient, payload.coin, payload.amount)
    return {
        "ok": True,
        "sent": ledger.serialize_transaction(sent),
        "receivedTxId": received.id,
    }


@router.get("/transactions")
def transaction_history(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    type: str = Query("ALL"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    total, txns = ledger.list_transactions(db, current_user.id, limit=limit, offset=offset, type=type)
    return {
        "ok": True,
        "transactions": [ledger.serialize_transaction(t) for t in txns],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
        },
    }


@router.get("/transaction/{tx_id}")
def transaction_detail(
    tx_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    txn = ledger.get_user_transaction(db, current_user.id, tx_id)
    return {"ok": True, "transaction": ledger.serialize_transaction(txn)}


@router.post("/verify-payment")
def verify_payment(
    payload: VerifyPaymentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    # no chain lookups here, confirmation is manual through the admin gate
    txn = ledger.get_user_transaction(db, current_user.id, payload.txId)
    return {
        "ok": True,
        "status": txn.status,
        "coin": txn.coin,
        "amount": float(txn.amount),
    }
