from celery import Celery
from celery.schedules import crontab

from core.config import settings

celery = Celery(
    "ledger",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["memberships.tasks"],
)

celery.conf.update(
    task_serializer='json',
    result_serializer='json',
    accept_content=['json'],
    timezone=settings.PAYOUT_TIMEZONE,
    enable_utc=True,
    beat_schedule={
        "daily-membership-payouts": {
            "task": "memberships.run_payouts",
            "schedule": crontab(hour=settings.PAYOUT_HOUR, minute=settings.PAYOUT_MINUTE),
        },
    },
)
