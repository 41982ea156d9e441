import logging
import uuid
from typing import Any, Optional

from sqlalchemy.orm import Session

from fixtrack.core.db import transaction, utcnow
from fixtrack.core.errors import (
    AlreadyExists,
    ChannelNotFound,
    CustomerNotFound,
    ProjectNotFound,
    UserNotFound,
    ValidationFailed,
)
from fixtrack.models import Channel, Customer, Project, User, UserRole
from fixtrack.repositories import (
    SqlChannelRepository,
    SqlCustomerRepository,
    SqlProjectRepository,
    SqlUserRepository,
)

logger = logging.getLogger(__name__)


def _required(value: Optional[str], field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationFailed(f"{field} cannot be empty")
    return cleaned


def _coerce_user_role(value: Any) -> UserRole:
    try:
        return UserRole(value)
    except (ValueError, TypeError):
        raise ValidationFailed(f"invalid user role: {value!r}") from None


class TenantDirectory:
    """Customers, their projects, the users acting on issues and the chat channels bound to projects."""

    def __init__(self, db: Session):
        self.db = db
        self.customers = SqlCustomerRepository(db)
        self.projects = SqlProjectRepository(db)
        self.users = SqlUserRepository(db)
        self.channels = SqlChannelRepository(db)

    def create_customer(self, name: str, contact_email: Optional[str] = None) -> Customer:
        name = _required(name, "customer name")
        with transaction(self.db):
            if self.customers.get_by_name(name) is not None:
                raise AlreadyExists(f"customer already exists: {name}")
            customer = self.customers.create(Customer(id=uuid.uuid4(), name=name, contact_email=contact_email))
        logger.info("Created customer %s (%s)", customer.id, name)
        return customer

    def get_customer(self, customer_id: uuid.UUID) -> Customer:
        customer = self.customers.get_by_id(customer_id)
        if customer is None:
            raise CustomerNotFound(customer_id)
        return customer

    def create_project(self, customer_id: uuid.UUID, name: str, description: Optional[str] = None) -> Project:
        name = _required(name, "project name")
        with transaction(self.db):
            self.get_customer(customer_id)
            if self.projects.get_by_customer_and_name(customer_id, name) is not None:
                raise AlreadyExists(f"project already exists: {name}")
            project = self.projects.create(
                Project(id=uuid.uuid4(), customer_id=customer_id, name=name, description=description)
            )
        logger.info("Created project %s (%s) for customer %s", project.id, name, customer_id)
        return project

    def get_project(self, project_id: uuid.UUID) -> Project:
        project = self.projects.get_by_id(project_id)
        if project is None:
            raise ProjectNotFound(project_id)
        return project

    def create_user(
        self,
        name: Optional[str] = None,
        email: Optional[str] = None,
        platform_user_id: Optional[str] = None,
        role: Any = UserRole.CUSTOMER,
        customer_id: Optional[uuid.UUID] = None,
        is_internal: bool = False,
    ) -> User:
        role = _coerce_user_role(role)
        with transaction(self.db):
            if platform_user_id and self.users.get_by_platform_id(platform_user_id) is not None:
                raise AlreadyExists(f"user already exists: {platform_user_id}")
            if customer_id is not None:
                self.get_customer(customer_id)
            user = self.users.create(
                User(
                    id=uuid.uuid4(),
                    name=name,
                    email=email,
                    platform_user_id=platform_user_id,
                    role=role,
                    customer_id=customer_id,
                    is_internal=is_internal,
                    created_at=utcnow(),
                )
            )
        logger.info("Created user %s (%s)", user.id, role.value)
        return user

    def get_user(self, user_id: uuid.UUID) -> User:
        user = self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFound(user_id)
        return user

    def get_or_create_user(self, platform_user_id: str, name: Optional[str] = None) -> User:
        """First contact from a chat account creates a customer-role user for it."""
        platform_user_id = _required(platform_user_id, "platform user id")
        existing = self.users.get_by_platform_id(platform_user_id)
        if existing is not None:
            return existing
        return self.create_user(name=name, platform_user_id=platform_user_id)

    def register_channel(
        self,
        project_id: uuid.UUID,
        platform_channel_id: str,
        guild_id: str,
        registered_by: uuid.UUID,
        channel_type: Optional[str] = None,
    ) -> Channel:
        platform_channel_id = _required(platform_channel_id, "channel id")
        guild_id = _required(guild_id, "guild id")
        with transaction(self.db):
            self.get_project(project_id)
            self.get_user(registered_by)
            if self.channels.get_by_platform_id(platform_channel_id) is not None:
                raise AlreadyExists(f"channel is already registered: {platform_channel_id}")
            channel = self.channels.create(
                Channel(
                    id=uuid.uuid4(),
                    project_id=project_id,
                    platform_channel_id=platform_channel_id,
                    guild_id=guild_id,
                    registered_by=registered_by,
                    channel_type=channel_type,
                    is_active=True,
                )
            )
        logger.info("Registered channel %s to project %s", platform_channel_id, project_id)
        return channel

    def get_channel(self, channel_id: uuid.UUID) -> Channel:
        channel = self.channels.get_by_id(channel_id)
        if channel is None:
            raise ChannelNotFound(channel_id)
        return channel

    def get_channel_by_platform_id(self, platform_channel_id: str) -> Channel:
        channel = self.channels.get_by_platform_id(platform_channel_id)
        if channel is None:
            raise ChannelNotFound(platform_channel_id)
        return channel

    def set_channel_active(self, channel_id: uuid.UUID, active: bool) -> Channel:
        with transaction(self.db):
            channel = self.get_channel(channel_id)
            channel.is_active = active
            self.channels.update(channel)
        logger.info("Channel %s %s", channel_id, "activated" if active else "deactivated")
        return channel
