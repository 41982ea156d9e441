import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from fixtrack.models import UserRole


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact_email: Optional[str] = Field(None, max_length=255)


class CustomerResponse(BaseModel):
    id: uuid.UUID
    name: str
    contact_email: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProjectCreate(BaseModel):
    customer_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class ProjectResponse(BaseModel):
    id: uuid.UUID
    customer_id: uuid.UUID
    name: str
    description: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    platform_user_id: Optional[str] = Field(None, max_length=100, description="Chat-platform account id.")
    role: str = Field(UserRole.CUSTOMER.value, description="One of customer, support, admin.")
    customer_id: Optional[uuid.UUID] = None
    is_internal: bool = False


class UserResponse(BaseModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: Optional[str] = None
    platform_user_id: Optional[str] = None
    role: UserRole
    customer_id: Optional[uuid.UUID] = None
    is_internal: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ChannelCreate(BaseModel):
    project_id: uuid.UUID
    platform_channel_id: str = Field(..., min_length=1, max_length=100)
    guild_id: str = Field(..., min_length=1, max_length=100)
    registered_by: uuid.UUID
    channel_type: Optional[str] = Field(None, max_length=100)


class ChannelResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    platform_channel_id: str
    guild_id: str
    registered_by: uuid.UUID
    is_active: bool
    channel_type: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
