import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from admin import service
from admin.schemas import (
    ApproveDepositRequest,
    ApproveWithdrawRequest,
    CancelMembershipRequest,
    DeclineRequest,
)
from core.auth import AdminPrincipal, require_admin
from core.constants import TransactionType
from core.database import get_db
from memberships import service as memberships
from transactions.ledger import serialize_transaction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Admin"])


@router.get("/admin/users")
def admin_users(
    db: Session = Depends(get_db),
    admin: AdminPrincipal = Depends(require_admin),
):
    return {"ok": True, "users": service.list_users(db)}


@router.get("/admin/pending-deposits")
def pending_deposits(
    db: Session = Depends(get_db),
    admin: AdminPrincipal = Depends(require_admin),
):
    txns = service.list_pending(db, TransactionType.DEPOSIT)
    return {"ok": True, "transactions": [serialize_transaction(t) for t in txns]}


@router.get("/admin/pending-withdraws")
def pending_withdraws(
    db: Session = Depends(get_db),
    admin: AdminPrincipal = Depends(require_admin),
):
    txns = service.list_pending(db, TransactionType.WITHDRAW)
    return {"ok": True, "transactions": [serialize_transaction(t) for t in txns]}


@router.post("/admin/approve-deposit")
def approve_deposit(
    payload: ApproveDepositRequest,
    db: Session = Depends(get_db),
    admin: AdminPrincipal = Depends(require_admin),
):
    logger.info("Admin (%s key) approving deposit %s", admin.source, payload.txId)
    result = service.approve_deposit(db, payload.txId)
    return {
        "ok": True,
        "outcome": result["outcome"],
        "transaction": serialize_transaction(result["transaction"]),
        "membership": memberships.serialize_membership(result["membership"]),
    }


@router.post("/admin/approve-withdraw")
def approve_withdraw(
    payload: ApproveWithdrawRequest,
    db: Session = Depends(get_db),
    admin: AdminPrincipal = Depends(require_admin),
):
    logger.info("Admin (%s key) approving withdraw %s", admin.source, payload.txId)
    result = service.approve_withdraw(db, payload.txId, payload.txHash)
    return {
        "ok": True,
        "outcome": result["outcome"],
        "transaction": serialize_transaction(result["transaction"]),
    }


@router.post("/admin/decline-transaction")
def decline_transaction(
    payload: DeclineRequest,
    db: Session = Depends(get_db),
    admin: AdminPrincipal = Depends(require_admin),
):
    logger.info("Admin (%s key) declining %s", admin.source, payload.txId)
    result = service.decline_transaction(db, payload.txId, payload.reason)
    return {
        "ok": True,
        "outcome": result["outcome"],
        "transaction": serialize_transaction(result["transaction"]),
    }


@router.get("/admin/memberships")
def admin_memberships(
    status: str | None = Query(None),
    db: Session = Depends(get_db),
    admin: AdminPrincipal = Depends(require_admin),
):
    rows = memberships.list_memberships(db, status)
    return {
        "ok": True,
        "memberships": [{**memberships.serialize_membership(m), "userId": m.user_id} for m in rows],
    }


@router.post("/admin/cancel-membership")
def cancel_membership(
    payload: CancelMembershipRequest,
    db: Session = Depends(get_db),
    admin: AdminPrincipal = Depends(require_admin),
):
    membership = memberships.cancel_membership(db, payload.membershipId)
    return {"ok": True, "membership": memberships.serialize_membership(membership)}


@router.post("/cron/payouts")
def cron_payouts(
    db: Session = Depends(get_db),
    admin: AdminPrincipal = Depends(require_admin),
):
    results = memberships.run_payouts(db)
    return {"ok": True, "results": results}
