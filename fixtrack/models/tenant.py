import uuid
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid

from fixtrack.core.db import Base, utcnow
from fixtrack.models.issue import enum_column_type


class UserRole(str, PyEnum):
    CUSTOMER = "customer"
    SUPPORT = "support"
    ADMIN = "admin"


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, unique=True)
    contact_email = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (UniqueConstraint("customer_id", "name", name="uq_project_customer_name"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=True)
    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    # Chat-platform account id (a Discord snowflake, for example)
    platform_user_id = Column(String(100), nullable=True, unique=True)
    role = Column(enum_column_type(UserRole), nullable=False, default=UserRole.CUSTOMER)
    is_internal = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)

    def can_manage_project(self, project_customer_id) -> bool:
        if self.role in (UserRole.ADMIN, UserRole.SUPPORT):
            return True
        return self.customer_id is not None and self.customer_id == project_customer_id


class Channel(Base):
    """A chat channel registered to a project; issues reported there land in that project."""
    __tablename__ = "channels"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id"), nullable=False, index=True)
    platform_channel_id = Column(String(100), nullable=False, unique=True)
    guild_id = Column(String(100), nullable=False)
    registered_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    channel_type = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
