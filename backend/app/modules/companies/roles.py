"""
Company role management: granting and revoking administrator and lawyer roles.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional, Type, Union

from sqlalchemy.orm import Session

from app.modules.companies.models import Company, CompanyAdministrator, CompanyLawyer
from app.modules.users.models import User
from app.modules.users.services import get_user_by_external_id

logger = logging.getLogger(__name__)


class Role(str, Enum):
    ADMIN = "admin"
    LAWYER = "lawyer"


INVALID_ROLE_ERROR = f"Invalid role. Must be one of: {', '.join(role.value for role in Role)}"

# role -> (membership model, "already" error, "not a member" error)
ROLE_MEMBERSHIPS: Dict[Role, tuple[Type[Union[CompanyAdministrator, CompanyLawyer]], str, str]] = {
    Role.ADMIN: (CompanyAdministrator, "User is already an administrator", "User is not an administrator"),
    Role.LAWYER: (CompanyLawyer, "User is already a lawyer", "User is not a lawyer"),
}


def parse_role(role: Union[str, Role, None]) -> Optional[Role]:
    """Role for a case-insensitive role name, or None if unknown."""
    if isinstance(role, Role):
        return role
    try:
        return Role(str(role or "").strip().lower())
    except ValueError:
        return None


def _find_membership(db: Session, role: Role, company_id: int, user_id: int):
    model = ROLE_MEMBERSHIPS[role][0]
    return db.query(model).filter(model.company_id == company_id, model.user_id == user_id).first()


class AddUserRoleService:
    """
    Grants a role on a company to a user.

    Usage:
        AddUserRoleService(db, company, user_external_id, "lawyer").perform()
        # {"success": True} / {"success": False, "error": "User is already a lawyer"}
    """

    def __init__(self, db: Session, company: Company, user_external_id: str, role: Union[str, Role]):
        self.db = db
        self.company = company
        self.company_id = company.id
        self.user_external_id = user_external_id
        self.role = role

    def perform(self) -> Dict[str, Any]:
        try:
            user = get_user_by_external_id(self.db, self.user_external_id)
            if user is None:
                return {'success': False, 'error': "User not found"}

            role = parse_role(self.role)
            if role is None:
                return {'success': False, 'error': INVALID_ROLE_ERROR}

            model, already_error, _ = ROLE_MEMBERSHIPS[role]
            if _find_membership(self.db, role, self.company_id, user.id) is not None:
                self.db.rollback()
                return {'success': False, 'error': already_error}

            self.db.add(model(company_id=self.company_id, user_id=user.id))
            self.db.commit()
            logger.info(f"Granted {role.value} role to user {user.id} in company {self.company_id}")
            return {'success': True}

        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to add role for user {self.user_external_id} in company {self.company_id}: {e}", exc_info=True)
            return {'success': False, 'error': str(e)}


class RemoveUserRoleService:
    """
    Revokes a role on a company from a user.

    Administrators can't be removed when they are the company's only
    administrator, and the acting user can't remove their own admin role.
    Both checks and the deletion run in one transaction with the company row
    locked, so concurrent removals can't leave a company without administrators.
    """

    def __init__(
        self,
        db: Session,
        company: Company,
        user_external_id: str,
        role: Union[str, Role],
        acting_user: Optional[User],
    ):
        self.db = db
        self.company = company
        self.company_id = company.id
        self.user_external_id = user_external_id
        self.role = role
        self.acting_user_id = acting_user.id if acting_user is not None else None

    def perform(self) -> Dict[str, Any]:
        try:
            user = get_user_by_external_id(self.db, self.user_external_id)
            if user is None:
                return {'success': False, 'error': "User not found"}

            role = parse_role(self.role)
            if role is None:
                return {'success': False, 'error': INVALID_ROLE_ERROR}

            self.db.query(Company).filter(Company.id == self.company_id).with_for_update().one()

            if role is Role.ADMIN:
                result = self._remove_admin_role(user)
            elif role is Role.LAWYER:
                result = self._remove_lawyer_role(user)
            else:
                raise AssertionError(f"Unhandled role {role!r}")

            if result['success']:
                self.db.commit()
                logger.info(f"Removed {role.value} role from user {user.id} in company {self.company_id}")
            else:
                self.db.rollback()
            return result

        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to remove role from user {self.user_external_id} in company {self.company_id}: {e}", exc_info=True)
            return {'success': False, 'error': str(e)}

    def _remove_admin_role(self, user: User) -> Dict[str, Any]:
        admin_count = self.db.query(CompanyAdministrator).filter(
            CompanyAdministrator.company_id == self.company_id
        ).count()
        admin = _find_membership(self.db, Role.ADMIN, self.company_id, user.id)

        if admin_count == 1 and admin is not None:
            return {'success': False, 'error': "Cannot remove the last administrator"}

        if self.acting_user_id == user.id:
            return {'success': False, 'error': "You cannot remove your own admin role"}

        if admin is None:
            return {'success': False, 'error': ROLE_MEMBERSHIPS[Role.ADMIN][2]}

        self.db.delete(admin)
        self.db.flush()
        return {'success': True}

    def _remove_lawyer_role(self, user: User) -> Dict[str, Any]:
        lawyer = _find_membership(self.db, Role.LAWYER, self.company_id, user.id)
        if lawyer is None:
            return {'success': False, 'error': ROLE_MEMBERSHIPS[Role.LAWYER][2]}

        self.db.delete(lawyer)
        self.db.flush()
        return {'success': True}
