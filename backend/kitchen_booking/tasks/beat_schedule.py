# backend/kitchen_booking/tasks/beat_schedule.py
"""
Celery Beat schedule configuration.

Tasks are scheduled using crontab expressions (UTC).
"""

from typing import Any, Dict

from celery.schedules import crontab

CELERYBEAT_SCHEDULE: Dict[str, Dict[str, Any]] = {
    # Overstay detection - daily, shortly after midnight UTC so "today" is settled
    "detect-storage-overstays": {
        "task": "overstay.detect_overstays",
        "schedule": crontab(hour=0, minute=15),
        "options": {"queue": "maintenance", "priority": 5},
    },
}


def get_beat_schedule(environment: str) -> Dict[str, Dict[str, Any]]:
    """
    Beat schedule for an environment.

    Development runs the sweep hourly so overstays are visible while testing.
    """
    schedule = {name: dict(entry) for name, entry in CELERYBEAT_SCHEDULE.items()}
    if environment == "development":
        schedule["detect-storage-overstays"]["schedule"] = crontab(minute=15)
    return schedule
