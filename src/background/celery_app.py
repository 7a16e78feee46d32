"""
Celery application configuration and setup.
"""

from celery import Celery

from src.config.logging import configure_logging
from src.config.settings import settings

configure_logging()

# Celery configuration
celery_app = Celery(
    "intervention_dispatch",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["src.background.tasks.dispatch_timeouts"],
)

celery_app.conf.update(
    # Task routing
    task_routes={
        "check_dispatch_timeouts_task": {"queue": "timeouts"},
        "dispatch_intervention_task": {"queue": "default"},
    },
    # Worker configuration
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,
    worker_pool="prefork",
    # Task configuration
    task_always_eager=False,
    task_eager_propagates=True,
    task_ignore_result=False,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Result backend configuration
    result_expires=3600,
    # Queue configuration
    task_default_queue="default",
    task_default_exchange="default",
    task_default_routing_key="default",
    # Beat scheduler configuration
    beat_schedule={
        "check-dispatch-timeouts": {
            "task": "check_dispatch_timeouts_task",
            "schedule": float(settings.CELERY_CHECK_DISPATCH_TIMEOUTS_INTERVAL_SECONDS),
            "options": {"queue": "timeouts"},
        },
    },
    # Task time limits
    task_soft_time_limit=settings.CELERY_TASK_SOFT_TIME_LIMIT,
    task_time_limit=settings.CELERY_TASK_TIME_LIMIT,
    # Retry configuration
    task_acks_late=settings.CELERY_TASK_ACKS_LATE,
    task_reject_on_worker_lost=settings.CELERY_TASK_REJECT_ON_WORKER_LOST,
    # Monitoring
    worker_send_task_events=True,
    task_send_sent_event=True,
    worker_hijack_root_logger=False,
)

celery_app.conf.task_annotations = {
    "check_dispatch_timeouts_task": {
        "rate_limit": settings.CELERY_CHECK_DISPATCH_TIMEOUTS_TASK_RATE_LIMIT,
    },
}

if __name__ == "__main__":
    celery_app.start()
