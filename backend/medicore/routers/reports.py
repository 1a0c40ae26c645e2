from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from medicore.db.session import get_db
from medicore.deps import require_admin, require_clinical
from medicore.models.audit_log import AuditLog
from medicore.schemas.common import ApiResponse, envelope
from medicore.schemas.reports import AuditLogOut, ReportsStatsOut
from medicore.services.reports import reports_stats

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/stats", response_model=ApiResponse[ReportsStatsOut])
def get_reports_stats(
    months: int = Query(default=6, ge=1, le=24),
    db: Session = Depends(get_db),
    _=Depends(require_clinical),
):
    return envelope(reports_stats(db, date.today(), months=months))


@router.get("/logs", response_model=ApiResponse[list[AuditLogOut]])
def get_audit_logs(
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    _=Depends(require_admin),
):
    stmt = select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit)
    return envelope([AuditLogOut.model_validate(row) for row in db.scalars(stmt)])
