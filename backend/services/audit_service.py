"""Audit trail for admin actions."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import AuditAction
from db.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


async def record_audit(
    db: AsyncSession,
    actor_id: Optional[str],
    action: AuditAction,
    resource_type: str,
    resource_id: str,
    old_values: Optional[dict] = None,
    new_values: Optional[dict] = None,
) -> AuditLog:
    """Add an audit row to the caller's transaction."""
    entry = AuditLog(
        user_id=actor_id,
        action=action.value,
        resource_type=resource_type,
        resource_id=resource_id,
        old_values=old_values,
        new_values=new_values,
    )
    db.add(entry)
    await db.flush()
    logger.info(f"Audit: {action.value} {resource_type}={resource_id} by={actor_id}")
    return entry
