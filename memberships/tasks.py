import logging

from celery import shared_task
from sqlalchemy.orm import Session

from core.database import SessionLocal
from memberships.service import run_payouts

logger = logging.getLogger(__name__)


@shared_task(name="memberships.run_payouts")
def run_payouts_task():
    db: Session = SessionLocal()
    try:
        results = run_payouts(db)
    finally:
        db.close()

    failed = [r for r in results if r["status"] == "failed"]
    if failed:
        logger.warning("Scheduled payout run finished with %s failures", len(failed))
    return results
