"""
Company and company role membership models.
"""

from sqlalchemy import Column, Integer, BigInteger, String, Numeric, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from app.shared.models.base import BaseModel, ExternalIdMixin, generate_external_id


class Company(BaseModel, ExternalIdMixin):
    """A client company. Owns every equity, dividend and invoice record below it."""

    __tablename__ = "companies"

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)

    equity_enabled = Column(Boolean, default=False, nullable=False)

    # Aggregate, kept equal to the sum of investor total_shares after cap table changes
    fully_diluted_shares = Column(BigInteger, default=0, nullable=False)
    share_price_in_usd = Column(Numeric(18, 4), nullable=True)

    invite_token = Column(String(64), default=generate_external_id, nullable=True)

    administrators = relationship("CompanyAdministrator", back_populates="company", cascade="all, delete-orphan")
    lawyers = relationship("CompanyLawyer", back_populates="company", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Company {self.external_id} {self.name}>"


class CompanyAdministrator(BaseModel, ExternalIdMixin):
    """Grants the administrator role on a company to a user."""

    __tablename__ = "company_administrators"

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    company = relationship("Company", back_populates="administrators")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('company_id', 'user_id', name='uq_company_administrator'),
    )


class CompanyLawyer(BaseModel, ExternalIdMixin):
    """Grants the lawyer role on a company to a user."""

    __tablename__ = "company_lawyers"

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    company = relationship("Company", back_populates="lawyers")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint('company_id', 'user_id', name='uq_company_lawyer'),
    )
