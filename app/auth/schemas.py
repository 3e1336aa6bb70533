from typing import Dict
from uuid import UUID

from pydantic import BaseModel

from app.core.enums import Role


class CurrentUser(BaseModel):
    """Authenticated user as supplied by the auth collaborator (token claims), used for attribution and RBAC."""

    id: UUID
    role: Role
    permissions: Dict[str, Dict[str, bool]]
