import uuid
from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


STORAGE_LOCATIONS = ("walk_in_cooler", "freezer", "dry_storage", "bar", "other")


class Ingredient(Base):
    """Stocked ingredient with its reorder thresholds and unit cost"""
    __tablename__ = "ingredients"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False, default="other")
    unit = Column(String, nullable=False)
    storage_location = Column(Text, nullable=True)  # one of STORAGE_LOCATIONS

    current_stock = Column(Float, nullable=False, default=0)
    reorder_point = Column(Float, nullable=False, default=0)
    par_level = Column(Float, nullable=False, default=0)
    unit_cost = Column(Float, nullable=False, default=0)

    # Bumped on every stock write; conditional updates compare against it
    stock_version = Column(Integer, nullable=False, default=0)

    shelf_life_days = Column(Integer, nullable=True)
    allergens = Column(JSON, nullable=False, default=list)
    vendor_id = Column(UUID(as_uuid=True), ForeignKey("vendors.id", ondelete="SET NULL"), nullable=True, index=True)
    vendor_sku = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    vendor = relationship("Vendor", back_populates="ingredients")

    @property
    def is_low_stock(self) -> bool:
        return float(self.current_stock or 0) <= float(self.reorder_point or 0)

    @property
    def to_schema(self):
        """Convert Ingredient model to schema dictionary format"""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "unit": self.unit,
            "storage_location": self.storage_location,
            "current_stock": float(self.current_stock or 0),
            "reorder_point": float(self.reorder_point or 0),
            "par_level": float(self.par_level or 0),
            "unit_cost": float(self.unit_cost or 0),
            "shelf_life_days": self.shelf_life_days,
            "allergens": list(self.allergens or []),
            "vendor_id": self.vendor_id,
            "vendor_sku": self.vendor_sku,
            "is_active": bool(self.is_active),
        }
