from fastapi import APIRouter
from typing import List

from ...core.catalog import ROLES
from ...schemas.auth import RoleOption, RoleSelection

router = APIRouter(prefix="/roles", tags=["Roles"])

@router.get("", response_model=List[RoleOption])
async def list_roles():
    """Entry screen: the two ways into the app."""
    return [RoleOption(role=role, **option) for role, option in ROLES.items()]

@router.post("/select", response_model=RoleOption)
async def select_role(selection: RoleSelection):
    """Where a visitor goes next after picking a role."""
    return RoleOption(role=selection.role, **ROLES[selection.role.value])
