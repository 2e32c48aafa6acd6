import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from cvforge.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    password_hash = Column(String, nullable=True)

    role = Column(String, nullable=False, default="user", server_default="user")  # user | admin
    current_plan = Column(String, nullable=False, default="basic", server_default="basic")  # basic | pro | premium
    plan_start_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', plan='{self.current_plan}')>"
