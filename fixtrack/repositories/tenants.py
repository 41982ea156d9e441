import uuid
from typing import Optional

from sqlalchemy import select

from fixtrack.models import Channel, Customer, Project, User
from fixtrack.repositories.base import SqlRepository, storage_errors


class SqlUserRepository(SqlRepository):
    def create(self, user: User) -> User:
        return self._add(user, "create user")

    def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        with storage_errors("get user"):
            return self.db.get(User, user_id)

    def get_by_platform_id(self, platform_user_id: str) -> Optional[User]:
        stmt = select(User).where(User.platform_user_id == platform_user_id)
        with storage_errors("get user by platform id"):
            return self.db.execute(stmt).scalar_one_or_none()


class SqlCustomerRepository(SqlRepository):
    def create(self, customer: Customer) -> Customer:
        return self._add(customer, "create customer")

    def get_by_id(self, customer_id: uuid.UUID) -> Optional[Customer]:
        with storage_errors("get customer"):
            return self.db.get(Customer, customer_id)

    def get_by_name(self, name: str) -> Optional[Customer]:
        stmt = select(Customer).where(Customer.name == name)
        with storage_errors("get customer by name"):
            return self.db.execute(stmt).scalar_one_or_none()


class SqlProjectRepository(SqlRepository):
    def create(self, project: Project) -> Project:
        return self._add(project, "create project")

    def get_by_id(self, project_id: uuid.UUID) -> Optional[Project]:
        with storage_errors("get project"):
            return self.db.get(Project, project_id)

    def get_by_customer_and_name(self, customer_id: uuid.UUID, name: str) -> Optional[Project]:
        stmt = select(Project).where(Project.customer_id == customer_id, Project.name == name)
        with storage_errors("get project by name"):
            return self.db.execute(stmt).scalar_one_or_none()


class SqlChannelRepository(SqlRepository):
    def create(self, channel: Channel) -> Channel:
        return self._add(channel, "register channel")

    def get_by_id(self, channel_id: uuid.UUID) -> Optional[Channel]:
        with storage_errors("get channel"):
            return self.db.get(Channel, channel_id)

    def get_by_platform_id(self, platform_channel_id: str) -> Optional[Channel]:
        stmt = select(Channel).where(Channel.platform_channel_id == platform_channel_id)
        with storage_errors("get channel by platform id"):
            return self.db.execute(stmt).scalar_one_or_none()

    def update(self, channel: Channel) -> Channel:
        return self._add(channel, "update channel")
