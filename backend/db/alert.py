import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text, false
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from .database import Base


ALERT_TYPES = ("low_stock", "expiring", "anomaly", "approval", "system")
ALERT_SEVERITIES = ("low", "medium", "high")


class Alert(Base):
    __tablename__ = "alerts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    type = Column(Text, nullable=False, index=True)
    severity = Column(Text, nullable=False, default="medium")
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    suggested_action = Column(Text, nullable=True)
    related_item_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    related_item_type = Column(String, nullable=True)
    is_resolved = Column(Boolean, nullable=False, default=False, index=True)
    resolved_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity,
            "title": self.title,
            "description": self.description,
            "suggested_action": self.suggested_action,
            "related_item_id": self.related_item_id,
            "related_item_type": self.related_item_type,
            "is_resolved": bool(self.is_resolved),
            "resolved_by": self.resolved_by,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


# At most one open alert of a type per item
Index(
    "uq_alerts_open_per_item",
    Alert.type,
    Alert.related_item_id,
    unique=True,
    postgresql_where=Alert.is_resolved == false(),
    sqlite_where=Alert.is_resolved == false(),
)
