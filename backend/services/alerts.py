"""Low-stock alerts kept in step with ingredient stock."""
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from db.alert import Alert

logger = get_logger("alerts")


def _severity(current_stock: float, reorder_point: float) -> str:
    if current_stock <= 0 or current_stock <= reorder_point * 0.5:
        return "high"
    return "medium"


async def sync_low_stock_alert(
    db: AsyncSession,
    *,
    ingredient_id: UUID,
    ingredient_name: str,
    unit: Optional[str],
    current_stock: float,
    reorder_point: float,
) -> Optional[Alert]:
    """
    Keep at most one open low_stock alert per ingredient: open (or refresh) it
    while stock is at or below the reorder point, resolve it once stock is back above.
    Runs inside the caller's transaction.
    """
    res = await db.execute(
        select(Alert).where(
            Alert.type == "low_stock",
            Alert.related_item_id == ingredient_id,
            Alert.is_resolved.is_(False),
        )
    )
    open_alert = res.scalars().first()

    if current_stock > reorder_point:
        if open_alert is not None:
            open_alert.is_resolved = True
            open_alert.resolved_at = datetime.now(timezone.utc).replace(tzinfo=None)
            logger.info("Resolved low stock alert for %s", ingredient_name)
        return None

    unit_label = f" {unit}" if unit else ""
    description = f"{ingredient_name} is at {current_stock:g}{unit_label} (reorder point {reorder_point:g}{unit_label})"
    severity = _severity(current_stock, reorder_point)

    if open_alert is None:
        open_alert = Alert(
            type="low_stock",
            severity=severity,
            title=f"Low stock: {ingredient_name}",
            description=description,
            suggested_action="Create a purchase order to restock to par level",
            related_item_id=ingredient_id,
            related_item_type="ingredient",
        )
        db.add(open_alert)
        logger.info("Opened low stock alert for %s", ingredient_name)
    else:
        open_alert.severity = severity
        open_alert.description = description
    return open_alert
