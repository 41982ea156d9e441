import uuid

from fastapi import APIRouter, Depends, status

from fixtrack.api.deps import get_directory
from fixtrack.core.tenants import TenantDirectory
from fixtrack.schemas.tenant import (
    ChannelCreate,
    ChannelResponse,
    CustomerCreate,
    CustomerResponse,
    ProjectCreate,
    ProjectResponse,
    UserCreate,
    UserResponse,
)

router = APIRouter(tags=["Tenants"])


@router.post("/customers", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(customer_in: CustomerCreate, directory: TenantDirectory = Depends(get_directory)):
    return directory.create_customer(customer_in.name, customer_in.contact_email)


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(project_in: ProjectCreate, directory: TenantDirectory = Depends(get_directory)):
    return directory.create_project(project_in.customer_id, project_in.name, project_in.description)


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(user_in: UserCreate, directory: TenantDirectory = Depends(get_directory)):
    return directory.create_user(
        name=user_in.name,
        email=user_in.email,
        platform_user_id=user_in.platform_user_id,
        role=user_in.role,
        customer_id=user_in.customer_id,
        is_internal=user_in.is_internal,
    )


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: uuid.UUID, directory: TenantDirectory = Depends(get_directory)):
    return directory.get_user(user_id)


@router.post("/channels", response_model=ChannelResponse, status_code=status.HTTP_201_CREATED)
def register_channel(channel_in: ChannelCreate, directory: TenantDirectory = Depends(get_directory)):
    """
    Bind a chat channel to a project. A channel can only be registered once.
    """
    return directory.register_channel(
        project_id=channel_in.project_id,
        platform_channel_id=channel_in.platform_channel_id,
        guild_id=channel_in.guild_id,
        registered_by=channel_in.registered_by,
        channel_type=channel_in.channel_type,
    )


@router.post("/channels/{channel_id}/deactivate", response_model=ChannelResponse)
def deactivate_channel(channel_id: uuid.UUID, directory: TenantDirectory = Depends(get_directory)):
    return directory.set_channel_active(channel_id, False)


@router.post("/channels/{channel_id}/activate", response_model=ChannelResponse)
def activate_channel(channel_id: uuid.UUID, directory: TenantDirectory = Depends(get_directory)):
    return directory.set_channel_active(channel_id, True)
