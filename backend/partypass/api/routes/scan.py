"""
Door scanning endpoints (admin).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from partypass.api.deps import rate_limit
from partypass.core.config import get_settings
from partypass.core.security import Principal, require_admin
from partypass.db.session import get_db
from partypass.schemas.scan import ScanLogResponse, ScanRequest, ScanResponse
from partypass.services.scan_service import recent_scan_logs, redeem_ticket

settings = get_settings()
router = APIRouter(tags=["Scanning"])


@router.post("/scan", response_model=ScanResponse, dependencies=[Depends(rate_limit("scan"))])
async def scan_ticket(
    payload: ScanRequest,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Redeem a ticket. Exactly one of any number of concurrent scans of the same
    code succeeds; the others get 409.
    """
    return await redeem_ticket(db, payload.ticket_code, admin)


@router.get("/scan-logs", response_model=list[ScanLogResponse])
async def scan_logs(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await recent_scan_logs(db, limit=settings.SCAN_LOG_LIMIT)
