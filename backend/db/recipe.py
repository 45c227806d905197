import uuid
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


class Recipe(Base):
    """Recipe - a sellable menu item (or prep) and the ingredients one yield unit consumes"""
    __tablename__ = "recipes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False, default="main")
    yield_amount = Column(Float, nullable=False, default=1)
    yield_unit = Column(String, nullable=False, default="portion")
    menu_price = Column(Float, nullable=True)
    prep_time_minutes = Column(Integer, nullable=True)
    instructions = Column(Text, nullable=True)
    pos_item_id = Column(String, nullable=True, index=True)
    image_url = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    recipe_ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.sort_order",
    )

    @property
    def to_schema(self):
        """Convert Recipe model to schema dictionary format (requires recipe_ingredients loaded)"""
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "yield_amount": float(self.yield_amount or 0),
            "yield_unit": self.yield_unit,
            "menu_price": float(self.menu_price) if self.menu_price is not None else None,
            "prep_time_minutes": self.prep_time_minutes,
            "instructions": self.instructions,
            "pos_item_id": self.pos_item_id,
            "image_url": self.image_url,
            "is_active": bool(self.is_active),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "ingredients": [
                {
                    "ingredient_id": ri.ingredient_id,
                    "name": ri.ingredient.name if ri.ingredient else None,
                    "quantity": float(ri.quantity),
                    "unit": ri.unit,
                }
                for ri in self.recipe_ingredients
            ],
        }
