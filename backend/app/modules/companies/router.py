"""
Company role API routes.
Grants and revokes administrator and lawyer roles.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.database import get_db
from app.modules.companies.models import Company
from app.modules.companies.roles import AddUserRoleService, RemoveUserRoleService
from app.modules.companies.services import get_company_or_404
from app.modules.users.models import User

router = APIRouter()


class RoleChange(BaseModel):
    user_id: str
    role: str  # 'admin' or 'lawyer'


def _to_response(result: dict, success_status: int) -> JSONResponse:
    if result['success']:
        return JSONResponse(status_code=success_status, content={"success": True})
    return JSONResponse(status_code=422, content={"success": False, "error": result['error']})


@router.post("/{company_id}/roles")
def add_role(
    data: RoleChange,
    company: Company = Depends(get_company_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Grant a role to a user."""
    result = AddUserRoleService(db, company, data.user_id, data.role).perform()
    return _to_response(result, 201)


@router.delete("/{company_id}/roles")
def remove_role(
    data: RoleChange,
    company: Company = Depends(get_company_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Revoke a role from a user. Admins can't revoke their own role or the last admin."""
    result = RemoveUserRoleService(db, company, data.user_id, data.role, acting_user=current_user).perform()
    return _to_response(result, 200)
