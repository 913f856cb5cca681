"""
Activity log helper: rows are added to the caller's transaction
"""

import logging

from sqlalchemy.orm import Session

from parcel_tracker.models import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(db: Session, action: str, resource_type: str | None = None,
                 resource_id=None, details: dict | None = None) -> ActivityLog:
    entry = ActivityLog(
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=details or {},
    )
    db.add(entry)
    logger.info(f"[activity] {action} {resource_type or ''} {resource_id or ''}".rstrip())
    return entry
