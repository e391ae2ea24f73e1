"""
Equity module database models: cap table, option grants and vesting.
"""

from sqlalchemy import Column, Integer, BigInteger, String, Numeric, Date, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from app.shared.models.base import BaseModel, ExternalIdMixin


class ShareClass(BaseModel):
    """Named category of equity within a company (e.g. 'Common')."""

    __tablename__ = "share_classes"

    DEFAULT_NAME = "Common"

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False)
    name = Column(String(100), nullable=False)

    company = relationship("Company")

    __table_args__ = (
        UniqueConstraint('company_id', 'name', name='uq_share_class_name'),
    )


class OptionPool(BaseModel, ExternalIdMixin):
    """Pool of shares reserved for option grants."""

    __tablename__ = "option_pools"

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    share_class_id = Column(Integer, ForeignKey('share_classes.id'), nullable=True)
    name = Column(String(100), nullable=False)
    authorized_shares = Column(BigInteger, default=0, nullable=False)
    issued_shares = Column(BigInteger, default=0, nullable=False)


class CompanyInvestor(BaseModel, ExternalIdMixin):
    """A user's position in a company's cap table."""

    __tablename__ = "company_investors"

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    investment_amount_in_cents = Column(BigInteger, default=0, nullable=False)
    # Sum of number_of_shares over this investor's share holdings
    total_shares = Column(BigInteger, default=0, nullable=False)

    company = relationship("Company")
    user = relationship("User")
    share_holdings = relationship("ShareHolding", back_populates="company_investor")
    equity_grants = relationship("EquityGrant", back_populates="company_investor")

    __table_args__ = (
        UniqueConstraint('company_id', 'user_id', name='uq_company_investor'),
    )


class ShareHolding(BaseModel):
    """A block of shares issued to one investor."""

    __tablename__ = "share_holdings"

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False)
    company_investor_id = Column(Integer, ForeignKey('company_investors.id'), nullable=False)
    share_class_id = Column(Integer, ForeignKey('share_classes.id'), nullable=False)

    name = Column(String(50), nullable=False)  # e.g. "GUM-1", sequential per company
    share_holder_name = Column(String(255), nullable=False)

    number_of_shares = Column(BigInteger, nullable=False)
    share_price_usd = Column(Numeric(18, 4), nullable=False)
    total_amount_in_cents = Column(BigInteger, nullable=False)

    issued_at = Column(DateTime, nullable=False)
    originally_acquired_at = Column(DateTime, nullable=False)

    company_investor = relationship("CompanyInvestor", back_populates="share_holdings")
    share_class = relationship("ShareClass")

    __table_args__ = (
        UniqueConstraint('company_id', 'name', name='uq_share_holding_name'),
    )


class EquityGrant(BaseModel, ExternalIdMixin):
    """Stock option grant (ISO or NSO) from an option pool."""

    __tablename__ = "equity_grants"

    company_investor_id = Column(Integer, ForeignKey('company_investors.id'), nullable=False, index=True)
    option_pool_id = Column(Integer, ForeignKey('option_pools.id'), nullable=False)

    name = Column(String(50), nullable=True)  # e.g. "GUM-12"
    option_grant_type = Column(String(10), nullable=True)  # 'iso', 'nso'

    # vested + unvested + exercised + forfeited == number_of_shares
    number_of_shares = Column(BigInteger, nullable=False)
    vested_shares = Column(BigInteger, default=0, nullable=False)
    unvested_shares = Column(BigInteger, default=0, nullable=False)
    exercised_shares = Column(BigInteger, default=0, nullable=False)
    forfeited_shares = Column(BigInteger, default=0, nullable=False)

    share_price_usd = Column(Numeric(18, 4), nullable=False)
    exercise_price_usd = Column(Numeric(18, 4), nullable=False)

    issued_at = Column(DateTime, nullable=True)
    expires_at = Column(Date, nullable=False)
    cancelled_at = Column(DateTime, nullable=True)

    company_investor = relationship("CompanyInvestor", back_populates="equity_grants")
    option_pool = relationship("OptionPool")
    vesting_events = relationship("VestingEvent", back_populates="equity_grant")


class VestingEvent(BaseModel):
    """Scheduled release of unvested options. Counts as vested once processed and not cancelled."""

    __tablename__ = "vesting_events"

    equity_grant_id = Column(Integer, ForeignKey('equity_grants.id'), nullable=False)

    vesting_date = Column(Date, nullable=False)
    vested_shares = Column(BigInteger, nullable=False)
    processed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    equity_grant = relationship("EquityGrant", back_populates="vesting_events")

    __table_args__ = (
        Index('idx_vesting_event_processed_at', 'processed_at'),
    )


class ConvertibleInvestment(BaseModel, ExternalIdMixin):
    """A SAFE or note investment made by an outside entity."""

    __tablename__ = "convertible_investments"

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    entity_name = Column(String(255), nullable=False)
    amount_in_cents = Column(BigInteger, nullable=False)

    convertible_securities = relationship(
        "ConvertibleSecurity", back_populates="convertible_investment", order_by="ConvertibleSecurity.id"
    )


class ConvertibleSecurity(BaseModel):
    """One investor's share of a convertible investment."""

    __tablename__ = "convertible_securities"

    convertible_investment_id = Column(Integer, ForeignKey('convertible_investments.id'), nullable=False)
    company_investor_id = Column(Integer, ForeignKey('company_investors.id'), nullable=False)
    principal_value_in_cents = Column(BigInteger, nullable=False)

    convertible_investment = relationship("ConvertibleInvestment", back_populates="convertible_securities")
    company_investor = relationship("CompanyInvestor")
