import logging
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.config import settings
from core.constants import SETTLEMENT_COIN, MembershipStatus, TransactionStatus, TransactionType
from core.errors import ErrorCode, ErrorMessage
from core.exceptions import NotFoundError, ValidationError
from core.models import Membership, User
from memberships.tiers import Tier
from transactions.ledger import record_transaction
from users import accounts

logger = logging.getLogger(__name__)

COMPLETED_AND_PAID = "completed & bonus paid"
ALREADY_PAID_TODAY = "already paid today"
CLAIMED_ELSEWHERE = "claimed by a concurrent run"


def _aware(now: datetime | None) -> datetime:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now


def payout_date(now: datetime) -> date:
    """Calendar date of `now` in the payout timezone."""
    return _aware(now).astimezone(ZoneInfo(settings.PAYOUT_TIMEZONE)).date()


def get_active_membership(db: Session, user_id: str) -> Membership | None:
    return (
        db.query(Membership)
        .filter(Membership.user_id == user_id, Membership.status == MembershipStatus.ACTIVE)
        .first()
    )


def get_latest_membership(db: Session, user_id: str) -> Membership | None:
    return (
        db.query(Membership)
        .filter(Membership.user_id == user_id)
        .order_by(Membership.created_at.desc())
        .first()
    )


def activate_membership(
    db: Session,
    user: User,
    tier: Tier,
    source_tx_id: str | None = None,
    now: datetime | None = None,
) -> Membership:
    """Create an ACTIVE membership from the tier schedule. Does not commit."""
    membership = Membership(
        user_id=user.id,
        tier=tier.code,
        status=MembershipStatus.ACTIVE,
        start_date=_aware(now),
        duration_days=tier.duration_days,
        days_paid=0,
        daily_amount=tier.daily_amount,
        bonus_amount=tier.bonus_amount,
        bonus_paid=False,
        source_tx_id=source_tx_id,
    )
    db.add(membership)
    db.flush()

    user.active_membership_id = membership.id
    logger.info("Activated %s membership %s for user %s", tier.code, membership.id, user.id)
    return membership


def _release_user_reference(db: Session, membership: Membership) -> None:
    db.query(User).filter(
        User.id == membership.user_id,
        User.active_membership_id == membership.id,
    ).update({User.active_membership_id: None}, synchronize_session="fetch")


def list_memberships(db: Session, status: str | None = None):
    query = db.query(Membership)
    if status:
        query = query.filter(Membership.status == status.upper())
    return query.order_by(Membership.created_at.desc()).all()


def cancel_membership(db: Session, membership_id: str) -> Membership:
    membership = db.query(Membership).filter(Membership.id == str(membership_id)).first()
    if not membership:
        raise NotFoundError(ErrorMessage.MEMBERSHIP_NOT_FOUND, ErrorCode.MEMBERSHIP_NOT_FOUND)

    if membership.status == MembershipStatus.CANCELLED:
        return membership
    if membership.status != MembershipStatus.ACTIVE:
        raise ValidationError("Only active memberships can be cancelled", ErrorCode.INVALID_STATE)

    membership.status = MembershipStatus.CANCELLED
    _release_user_reference(db, membership)
    db.commit()
    db.refresh(membership)

    logger.info("Cancelled membership %s", membership.id)
    return membership


def _pay_bonus(db: Session, membership: Membership, result: dict) -> dict:
    claimed = (
        db.query(Membership)
        .filter(
            Membership.id == membership.id,
            Membership.bonus_paid.is_(False),
            Membership.days_paid >= Membership.duration_days,
        )
        .update(
            {Membership.bonus_paid: True, Membership.status: MembershipStatus.COMPLETED},
            synchronize_session="fetch",
        )
    )
    if not claimed:
        return {**result, "status": "skipped", "reason": CLAIMED_ELSEWHERE}

    amount = membership.bonus_amount
    txn = record_transaction(
        db, membership.user_id, TransactionType.PAYOUT, SETTLEMENT_COIN, amount,
        status=TransactionStatus.CONFIRMED,
        meta={"membershipId": membership.id, "tier": membership.tier, "bonus": True},
    )
    accounts.credit(db, membership.user_id, SETTLEMENT_COIN, amount)

    logger.info("Paid %s bonus %s to user %s", membership.tier, amount, membership.user_id)
    return {**result, "status": "bonus_paid", "amount": float(amount), "txId": txn.id}


def _pay_daily(db: Session, membership: Membership, now: datetime, today: date, result: dict) -> dict:
    observed_days = membership.days_paid
    days_paid = observed_days + 1
    completed = days_paid >= membership.duration_days

    # compare-and-set on the row so overlapping runs cannot both pay today
    claimed = (
        db.query(Membership)
        .filter(
            Membership.id == membership.id,
            Membership.status == MembershipStatus.ACTIVE,
            Membership.days_paid == observed_days,
            or_(Membership.last_payout_date.is_(None), Membership.last_payout_date < today),
        )
        .update(
            {
                Membership.days_paid: days_paid,
                Membership.last_payout: now,
                Membership.last_payout_date: today,
                Membership.status: MembershipStatus.COMPLETED if completed else MembershipStatus.ACTIVE,
            },
            synchronize_session="fetch",
        )
    )
    if not claimed:
        return {**result, "status": "skipped", "reason": CLAIMED_ELSEWHERE}

    amount = membership.daily_amount
    txn = record_transaction(
        db, membership.user_id, TransactionType.MEMBERSHIP_PAYOUT, SETTLEMENT_COIN, amount,
        status=TransactionStatus.CONFIRMED,
        meta={"membershipId": membership.id, "tier": membership.tier, "day": days_paid},
    )
    accounts.credit(db, membership.user_id, SETTLEMENT_COIN, amount)
    if completed:
        _release_user_reference(db, membership)

    logger.info(
        "Paid day %s/%s of %s membership %s",
        days_paid, membership.duration_days, membership.tier, membership.id,
    )
    return {
        **result,
        "status": "credited",
        "amount": float(amount),
        "daysPaid": days_paid,
        "completed": completed,
        "txId": txn.id,
    }


def process_membership(db: Session, membership: Membership, now: datetime, today: date) -> dict:
    result = {"membershipId": membership.id, "userId": membership.user_id, "tier": membership.tier}

    if membership.status == MembershipStatus.CANCELLED:
        return {**result, "status": "skipped", "reason": "cancelled"}

    if membership.last_payout_date is not None and membership.last_payout_date >= today:
        return {**result, "status": "skipped", "reason": ALREADY_PAID_TODAY}

    if membership.days_paid >= membership.duration_days:
        if membership.bonus_paid:
            return {**result, "status": "skipped", "reason": COMPLETED_AND_PAID}
        return _pay_bonus(db, membership, result)

    return _pay_daily(db, membership, now, today, result)


def run_payouts(db: Session, now: datetime | None = None) -> list[dict]:
    """
    Advance every ACTIVE membership by one day and pay completion bonuses.

    Each membership is committed on its own; a failure rolls back only that
    membership and is reported in the results.
    """
    now = _aware(now)
    today = payout_date(now)

    membership_ids = [
        row.id
        for row in db.query(Membership.id)
        .filter(Membership.status.in_((MembershipStatus.ACTIVE, MembershipStatus.COMPLETED)))
        .order_by(Membership.created_at.asc())
        .all()
    ]

    results = []
    for membership_id in membership_ids:
        try:
            membership = db.query(Membership).filter(Membership.id == membership_id).first()
            if membership is None:
                continue
            results.append(process_membership(db, membership, now, today))
            db.commit()
        except Exception as e:
            db.rollback()
            logger.exception("Payout failed for membership %s", membership_id)
            results.append({"membershipId": membership_id, "status": "failed", "error": str(e)})

    credited = sum(1 for r in results if r["status"] in ("credited", "bonus_paid"))
    logger.info("Payout run for %s: %s processed, %s paid", today.isoformat(), len(results), credited)
    return results


def serialize_membership(membership: Membership | None) -> dict | None:
    if membership is None:
        return None
    return {
        "id": membership.id,
        "tier": membership.tier,
        "status": membership.status,
        "startDate": membership.start_date.isoformat() if membership.start_date else None,
        "durationDays": membership.duration_days,
        "daysPaid": membership.days_paid,
        "dailyAmount": float(membership.daily_amount),
        "bonusAmount": float(membership.bonus_amount),
        "bonusPaid": bool(membership.bonus_paid),
        "lastPayout": membership.last_payout.isoformat() if membership.last_payout else None,
    }
