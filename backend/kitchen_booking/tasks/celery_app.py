# backend/kitchen_booking/tasks/celery_app.py
"""
Celery application configuration for the kitchen booking engine.

Redis is the broker and result backend. Periodic jobs are driven by the beat
schedule in ``beat_schedule.py``.
"""

import logging
import os
from typing import Any

from celery import Celery
from celery.signals import setup_logging

from kitchen_booking.core.config import settings


def _broker_url() -> str:
    # Priority: CELERY_BROKER_URL -> REDIS_URL -> settings.redis_url -> default
    broker_url = (
        os.getenv("CELERY_BROKER_URL")
        or os.getenv("REDIS_URL")
        or settings.redis_url
        or "redis://localhost:6379"
    )
    # Ensure Redis URL includes database number
    if not any(broker_url.endswith(f"/{i}") for i in range(16)):
        broker_url = f"{broker_url}/0"
    return broker_url


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Returns:
        Celery: Configured Celery application instance
    """
    broker_url = _broker_url()
    celery_app = Celery(
        "kitchen_booking",
        broker=broker_url,
        backend=os.getenv("CELERY_RESULT_BACKEND") or broker_url,
    )

    celery_app.conf.update(
        {
            # Task settings
            "task_serializer": "json",
            "accept_content": ["json"],
            "result_serializer": "json",
            "timezone": "UTC",
            "enable_utc": True,
            # Worker settings
            "worker_prefetch_multiplier": 1,
            "worker_max_tasks_per_child": 1000,
            # Task execution settings
            "task_soft_time_limit": 300,
            "task_time_limit": 600,
            "task_acks_late": True,
            "task_reject_on_worker_lost": True,
            "task_default_retry_delay": 60,
            "task_max_retries": 3,
            "worker_hijack_root_logger": False,
            "broker_transport_options": {"visibility_timeout": 3600},
        }
    )

    # Force import of task modules so tasks are registered without autodiscovery
    celery_app.conf.imports = ("kitchen_booking.tasks.overstay_tasks",)
    celery_app.conf.task_routes = {"overstay.*": {"queue": "maintenance"}}

    from kitchen_booking.tasks.beat_schedule import get_beat_schedule

    celery_app.conf.beat_schedule = get_beat_schedule(settings.environment)
    return celery_app


# Disable Celery's default logging configuration
@setup_logging.connect
def config_loggers(*args: Any, **kwargs: Any) -> None:
    """Configure logging to integrate with the application's logging setup."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Create the Celery app instance
celery_app = create_celery_app()
