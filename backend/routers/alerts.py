from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_active_user
from db.alert import Alert as AlertModel
from db.database import get_async_session
from db.users import User
from schemas.alerts import AlertRead

router = APIRouter()


@router.get("/", response_model=List[AlertRead])
async def list_alerts(
    resolved: bool = False,
    alert_type: Optional[str] = Query(default=None, alias="type"),
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    """Open alerts by default, newest first"""
    stmt = (
        select(AlertModel)
        .where(AlertModel.is_resolved.is_(resolved))
        .order_by(AlertModel.created_at.desc())
    )
    if alert_type:
        stmt = stmt.where(AlertModel.type == alert_type)
    res = await db.execute(stmt)
    return [AlertRead(**a.to_schema) for a in res.scalars().all()]


@router.post("/{alert_id}/resolve", response_model=AlertRead)
async def resolve_alert(
    alert_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    user: User = Depends(current_active_user),
):
    alert = await db.get(AlertModel, alert_id)
    if alert is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Alert with id {alert_id} not found")
    if not alert.is_resolved:
        alert.is_resolved = True
        alert.resolved_by = user.id
        alert.resolved_at = datetime.now(timezone.utc).replace(tzinfo=None)
        await db.commit()
        await db.refresh(alert)
    return AlertRead(**alert.to_schema)
