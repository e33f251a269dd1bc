# backend/leaseflow/workers/celery_app.py
from __future__ import annotations

import os

from celery import Celery
from celery.schedules import crontab

from ..config import settings

BROKER = settings.celery_broker_url or os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
BACKEND = settings.celery_result_backend or os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

celery_app = Celery(
    "leaseflow",
    broker=BROKER,
    backend=BACKEND,
    include=["leaseflow.workers.sweep_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone="UTC",
)

celery_app.conf.task_routes = {
    "leaseflow.workers.sweep_tasks.*": {"queue": "sweeps"},
}

# nightly expiry sweeps, staggered so they don't contend on the same rows
celery_app.conf.beat_schedule = {
    "expire-overdue-leases": {
        "task": "leaseflow.workers.sweep_tasks.expire_overdue_leases",
        "schedule": crontab(hour=settings.sweep_hour_utc, minute=0),
    },
    "expire-lapsed-lease-offers": {
        "task": "leaseflow.workers.sweep_tasks.expire_lapsed_lease_offers",
        "schedule": crontab(hour=settings.sweep_hour_utc, minute=10),
    },
    "expire-stale-applications": {
        "task": "leaseflow.workers.sweep_tasks.expire_stale_applications",
        "schedule": crontab(hour=settings.sweep_hour_utc, minute=20),
    },
}
