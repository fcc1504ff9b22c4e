"""
Admin read-side rollups.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from partypass.core.config import get_settings
from partypass.core.security import Principal, require_admin
from partypass.db.session import get_db
from partypass.schemas.admin import AuditLogResponse, StatsResponse
from partypass.services.audit_service import recent_audit_logs
from partypass.services.stats_service import get_stats

settings = get_settings()
router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/stats", response_model=StatsResponse)
async def stats(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await get_stats(db)


@router.get("/audit-logs", response_model=list[AuditLogResponse])
async def audit_logs(
    limit: int = Query(settings.AUDIT_LOG_LIMIT, ge=1, le=1000),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await recent_audit_logs(db, limit=limit)
