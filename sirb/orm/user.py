"""
sirb/orm/user.py
User model as seen by the content workflow.

Accounts are issued by the external auth service; this table mirrors
the fields the workflow needs (role, ban flag, points total).
"""
from enum import Enum

from sqlalchemy import Column, Integer, String, Boolean, Enum as SQLEnum

from sirb.orm.base import BaseModel


class UserRole(str, Enum):
    """Platform roles. Subject moderation is granted separately."""
    USER = "USER"
    ADMIN = "ADMIN"


class User(BaseModel):
    __tablename__ = "users"

    name = Column(String(200), nullable=False, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.USER, index=True)

    is_active = Column(Boolean, default=True, nullable=False)
    banned = Column(Boolean, default=False, nullable=True)

    # Denormalized sum of the user_points ledger
    total_points = Column(Integer, default=0, nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role})>"
