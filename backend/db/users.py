from fastapi_users.db import SQLAlchemyBaseUserTableUUID
from sqlalchemy.orm import relationship
from .database import Base


class User(SQLAlchemyBaseUserTableUUID, Base):
    """Kitchen staff account; email, password hash and flags come from fastapi-users."""
    __tablename__ = "users"

    restaurants = relationship("Restaurant", back_populates="owner", cascade="all, delete-orphan")
