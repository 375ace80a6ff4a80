"""
User Controllers (API Routes)
==============================

Minimal user administration: enough to seed requesters and agents and to
take an agent out of the assignment pool.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ticketdesk.dependencies import get_user_service
from ticketdesk.tickets.application import (
    UserCreateRequest,
    UserDeactivateRequest,
    UserDeactivateResponse,
    UserResponse,
    UserService,
)
from ticketdesk.tickets.application.dto import RoleStr

router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
    responses={409: {"description": "Email already registered"}}
)
async def create_user(
    request: UserCreateRequest,
    service: UserService = Depends(get_user_service)
):
    return await service.create_user(
        request.email, request.role, full_name=request.full_name, phone=request.phone
    )


@router.get("", response_model=List[UserResponse], summary="List users")
async def list_users(
    role: Optional[RoleStr] = Query(None),
    include_inactive: bool = Query(False),
    service: UserService = Depends(get_user_service)
):
    return await service.list_users(role=role, include_inactive=include_inactive)


@router.get("/{user_id}", response_model=UserResponse, summary="Get a user")
async def get_user(
    user_id: str,
    service: UserService = Depends(get_user_service)
):
    return await service.get_user(user_id)


@router.post(
    "/{user_id}/deactivate",
    response_model=UserDeactivateResponse,
    summary="Deactivate a user",
    description="""
    Remove a user from automatic assignment. When `reassign_to` is given,
    the user's open tickets move to that user in the same transaction.
    """
)
async def deactivate_user(
    user_id: str,
    request: UserDeactivateRequest,
    service: UserService = Depends(get_user_service)
):
    user, moved = await service.deactivate_user(user_id, request.reassign_to)
    return UserDeactivateResponse(
        user=UserResponse.model_validate(user),
        reassigned_tickets=moved
    )


users_router = router
