"""
User directory lookups.
"""

from typing import Optional
from sqlalchemy.orm import Session

from app.modules.users.models import User


def get_user_by_external_id(db: Session, external_id: Optional[str]) -> Optional[User]:
    """Get a user by external id. Returns None for blank ids."""
    if not external_id:
        return None
    return db.query(User).filter(User.external_id == str(external_id)).first()
