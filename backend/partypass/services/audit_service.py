"""
Administrative audit trail.

record_audit() only adds the row to the session; it is committed (or rolled
back) together with the change it describes.
"""

from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from partypass.models.audit_log import AuditLog
from partypass.models.user import User
from partypass.schemas.admin import AuditLogResponse


def record_audit(
    db: AsyncSession,
    actor_id: Optional[int],
    action: str,
    target_type: str,
    target_id: Optional[int] = None,
    **details: Any,
) -> AuditLog:
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=details,
    )
    db.add(entry)
    return entry


async def recent_audit_logs(db: AsyncSession, limit: int = 100) -> list[AuditLogResponse]:
    """Most recent audit entries first, with the actor's display name."""
    result = await db.execute(
        select(AuditLog, User.name)
        .outerjoin(User, AuditLog.actor_id == User.id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
    )
    return [
        AuditLogResponse(
            id=entry.id,
            actor_id=entry.actor_id,
            actor_name=actor_name,
            action=entry.action,
            target_type=entry.target_type,
            target_id=entry.target_id,
            details=entry.details or {},
            created_at=entry.created_at,
        )
        for entry, actor_name in result.all()
    ]
