"""
User directory models.
"""

from sqlalchemy import Column, String, Boolean

from app.shared.models.base import BaseModel, ExternalIdMixin


class User(BaseModel, ExternalIdMixin):
    """A person or business that works for, invests in or administers companies."""

    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    legal_name = Column(String(255), nullable=True)
    preferred_name = Column(String(255), nullable=True)

    # Business entity details (contractors invoicing through a company)
    business_entity = Column(Boolean, default=False, nullable=False)
    business_name = Column(String(255), nullable=True)

    country_code = Column(String(2), nullable=True)  # ISO 3166-1 alpha-2, e.g. 'US', 'IN'

    def __repr__(self) -> str:
        return f"<User {self.external_id} {self.email}>"
