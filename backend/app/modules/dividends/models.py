"""
Dividend module database models.

A DividendComputation is a draft: per-investor outputs that can be reviewed and
exported. Finalizing it creates an immutable DividendRound with one Dividend
per investor.
"""

from sqlalchemy import (
    Column, Integer, BigInteger, String, Numeric, Date, DateTime, Boolean,
    ForeignKey, Table, Index,
)
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.shared.models.base import BaseModel, ExternalIdMixin


# Dividend statuses
ISSUED = "Issued"
PENDING_SIGNUP = "Pending signup"
PROCESSING = "Processing"
PAID = "Paid"
RETAINED = "Retained"

# Payment statuses
PAYMENT_INITIAL = "initial"
PAYMENT_SUCCEEDED = "succeeded"
PAYMENT_FAILED = "failed"
PAYMENT_CANCELLED = "cancelled"


dividends_dividend_payments = Table(
    "dividends_dividend_payments",
    Base.metadata,
    Column("dividend_id", Integer, ForeignKey("dividends.id"), primary_key=True),
    Column("dividend_payment_id", Integer, ForeignKey("dividend_payments.id"), primary_key=True),
)


class DividendComputation(BaseModel, ExternalIdMixin):
    """Draft dividend parameters and their computed per-investor outputs."""

    __tablename__ = "dividend_computations"

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)

    total_amount_in_usd = Column(Numeric(18, 2), nullable=False)
    dividends_issuance_date = Column(Date, nullable=False)
    return_of_capital = Column(Boolean, default=False, nullable=False)
    total_fees_cents = Column(BigInteger, default=0, nullable=False)

    # draft -> finalized, one way
    finalized_at = Column(DateTime, nullable=True)

    company = relationship("Company")
    outputs = relationship(
        "DividendComputationOutput",
        back_populates="dividend_computation",
        cascade="all, delete-orphan",
        order_by="DividendComputationOutput.id",
    )

    @property
    def finalized(self) -> bool:
        return self.finalized_at is not None


class DividendComputationOutput(BaseModel):
    """
    One computed line of a dividend computation.

    Share holders are identified by company_investor_id. SAFE holders have no
    investor record yet and are identified by investor_name (the entity name
    of their convertible investment).
    """

    __tablename__ = "dividend_computation_outputs"

    dividend_computation_id = Column(Integer, ForeignKey('dividend_computations.id'), nullable=False)
    company_investor_id = Column(Integer, ForeignKey('company_investors.id'), nullable=True)
    investor_name = Column(String(255), nullable=True)

    share_class = Column(String(100), nullable=True)
    number_of_shares = Column(BigInteger, default=0, nullable=False)
    hurdle_rate = Column(Numeric(8, 4), nullable=True)
    original_issue_price_in_usd = Column(Numeric(18, 4), nullable=True)
    dividend_amount_in_usd = Column(Numeric(18, 2), default=0, nullable=False)
    preferred_dividend_amount_in_usd = Column(Numeric(18, 2), default=0, nullable=False)
    total_amount_in_usd = Column(Numeric(18, 2), nullable=False)
    qualified_dividend_amount_usd = Column(Numeric(18, 2), default=0, nullable=False)
    investment_amount_cents = Column(BigInteger, nullable=True)

    dividend_computation = relationship("DividendComputation", back_populates="outputs")
    company_investor = relationship("CompanyInvestor")


class DividendRound(BaseModel, ExternalIdMixin):
    """Finalized, immutable dividend distribution."""

    __tablename__ = "dividend_rounds"

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    dividend_computation_id = Column(Integer, ForeignKey('dividend_computations.id'), nullable=True, unique=True)

    issued_at = Column(Date, nullable=False)
    number_of_shares = Column(BigInteger, default=0, nullable=False)
    number_of_shareholders = Column(Integer, default=0, nullable=False)
    total_amount_in_cents = Column(BigInteger, nullable=False)
    return_of_capital = Column(Boolean, default=False, nullable=False)
    status = Column(String(50), default=ISSUED, nullable=False)

    company = relationship("Company")
    dividends = relationship("Dividend", back_populates="dividend_round", order_by="Dividend.id")


class Dividend(BaseModel, ExternalIdMixin):
    """One investor's share of a dividend round."""

    __tablename__ = "dividends"

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    dividend_round_id = Column(Integer, ForeignKey('dividend_rounds.id'), nullable=False)
    company_investor_id = Column(Integer, ForeignKey('company_investors.id'), nullable=False)

    number_of_shares = Column(BigInteger, nullable=True)  # None for SAFE holders
    total_amount_in_cents = Column(BigInteger, nullable=False)
    qualified_amount_cents = Column(BigInteger, default=0, nullable=False)
    investment_amount_cents = Column(BigInteger, nullable=True)
    net_amount_in_cents = Column(BigInteger, nullable=True)
    withholding_percentage = Column(Integer, nullable=True)
    withheld_tax_cents = Column(BigInteger, default=0, nullable=False)

    status = Column(String(50), default=ISSUED, nullable=False)
    paid_at = Column(DateTime, nullable=True)

    company = relationship("Company")
    dividend_round = relationship("DividendRound", back_populates="dividends")
    company_investor = relationship("CompanyInvestor")
    dividend_payments = relationship(
        "DividendPayment",
        secondary=dividends_dividend_payments,
        back_populates="dividends",
        order_by="DividendPayment.created_at",
    )


class DividendPayment(BaseModel):
    """Transfer that pays out one or more dividends."""

    __tablename__ = "dividend_payments"

    status = Column(String(50), default=PAYMENT_INITIAL, nullable=False)
    processor_name = Column(String(50), nullable=True)  # 'wise', 'stripe'
    transfer_id = Column(String(100), nullable=True)
    total_transaction_cents = Column(BigInteger, nullable=True)
    transfer_fee_in_cents = Column(BigInteger, nullable=True)

    dividends = relationship(
        "Dividend",
        secondary=dividends_dividend_payments,
        back_populates="dividend_payments",
    )

    __table_args__ = (
        Index('idx_dividend_payment_status_created', 'status', 'created_at'),
    )
