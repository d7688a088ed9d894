# backend/kitchen_booking/tasks/overstay_tasks.py
"""
Celery tasks for storage overstay detection.

The sweep only creates reviewable records; charging requires a manager
decision through the overstay routes.
"""

from datetime import date
import logging
from typing import Any, Dict, Optional

from kitchen_booking.database import SessionLocal
from kitchen_booking.models.overstay import OverstayEventSource
from kitchen_booking.services.overstay_service import OverstayService
from kitchen_booking.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="overstay.detect_overstays",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
)
def detect_overstays_task(
    self: Any,
    max_days_to_charge: Optional[int] = None,
    today: Optional[str] = None,
) -> Dict[str, Any]:
    """Run one overstay detection sweep and report its counts."""
    db = SessionLocal()
    try:
        service = OverstayService(db)
        result = service.detect_overstays(
            today=date.fromisoformat(today) if today else None,
            max_days_to_charge=max_days_to_charge,
            event_source=OverstayEventSource.CRON.value,
        )
        summary = {
            "detected": len(result.succeeded),
            "failed": len(result.failed),
            "pending_review": sum(1 for r in result.succeeded if r.status == "pending_review"),
            "failed_booking_ids": [f.storage_booking_id for f in result.failed],
        }
        logger.info("Overstay detection completed", extra=summary)
        return summary
    except Exception as exc:
        logger.error(f"Overstay detection failed: {str(exc)}", exc_info=True)
        raise self.retry(exc=exc)
    finally:
        db.close()
