"""Caller identity for the HTTP layer.

Authentication happens upstream; the gateway forwards the verified user id
and role as headers.
"""

from uuid import UUID

from fastapi import Depends, Header

from internship_messaging.errors import ForbiddenRoleError
from internship_messaging.models.enums import Role
from internship_messaging.services.access_control import Actor


async def current_actor(
    x_user_id: UUID = Header(..., description="Authenticated user id"),
    x_user_role: Role = Header(..., description="Authenticated user role"),
) -> Actor:
    return Actor(user_id=x_user_id, role=x_user_role)


async def require_admin(actor: Actor = Depends(current_actor)) -> Actor:
    if actor.role != Role.ADMIN:
        raise ForbiddenRoleError("Administrator role required")
    return actor
