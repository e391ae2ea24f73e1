"""
Invoice module database models.

Contractors submit Invoices; a company pays a batch of them through one
ConsolidatedInvoice, charged via ConsolidatedPayments and paid out to each
contractor via Payments.
"""

from sqlalchemy import Column, Integer, BigInteger, String, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.shared.models.base import BaseModel, ExternalIdMixin


# Invoice statuses
RECEIVED = "received"
APPROVED = "approved"
PAYMENT_PENDING = "payment_pending"
PROCESSING = "processing"
PAID = "paid"
REJECTED = "rejected"
FAILED = "failed"

# Consolidated invoice statuses
CONSOLIDATED_SENT = "sent"
CONSOLIDATED_PAID = "paid"
CONSOLIDATED_REFUNDED = "refunded"


class ConsolidatedInvoice(BaseModel, ExternalIdMixin):
    """The bill a company receives for a batch of contractor invoices."""

    __tablename__ = "consolidated_invoices"

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)

    invoice_date = Column(Date, nullable=False)
    invoice_amount_cents = Column(BigInteger, nullable=False)
    flexile_fee_cents = Column(BigInteger, default=0, nullable=False)
    transfer_fee_cents = Column(BigInteger, default=0, nullable=False)
    total_cents = Column(BigInteger, nullable=False)
    status = Column(String(50), default=CONSOLIDATED_SENT, nullable=False)

    company = relationship("Company")
    invoices = relationship("Invoice", back_populates="consolidated_invoice", order_by="Invoice.id")
    consolidated_payments = relationship(
        "ConsolidatedPayment",
        back_populates="consolidated_invoice",
        order_by="ConsolidatedPayment.id",
    )

    @property
    def flexile_fee_usd(self) -> float:
        return self.flexile_fee_cents / 100.0

    @property
    def total_amount_in_usd(self) -> float:
        return self.total_cents / 100.0

    @property
    def alive_invoices(self):
        return [invoice for invoice in self.invoices if invoice.deleted_at is None]


class ConsolidatedPayment(BaseModel):
    """Charge collected from the company for a consolidated invoice."""

    __tablename__ = "consolidated_payments"

    consolidated_invoice_id = Column(Integer, ForeignKey('consolidated_invoices.id'), nullable=False)

    status = Column(String(50), default="initial", nullable=False)
    succeeded_at = Column(DateTime, nullable=True)
    stripe_fee_cents = Column(BigInteger, nullable=True)
    stripe_payment_intent_id = Column(String(100), nullable=True)

    consolidated_invoice = relationship("ConsolidatedInvoice", back_populates="consolidated_payments")


class Invoice(BaseModel, ExternalIdMixin):
    """A contractor's invoice to a company."""

    __tablename__ = "invoices"

    company_id = Column(Integer, ForeignKey('companies.id'), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    consolidated_invoice_id = Column(Integer, ForeignKey('consolidated_invoices.id'), nullable=True)

    invoice_date = Column(Date, nullable=True)
    cash_amount_in_cents = Column(BigInteger, default=0, nullable=False)
    equity_amount_in_cents = Column(BigInteger, default=0, nullable=False)
    total_amount_in_usd_cents = Column(BigInteger, nullable=False)
    status = Column(String(50), default=RECEIVED, nullable=False)

    deleted_at = Column(DateTime, nullable=True)  # soft delete

    user = relationship("User")
    consolidated_invoice = relationship("ConsolidatedInvoice", back_populates="invoices")
    payments = relationship("Payment", back_populates="invoice", order_by="Payment.id")

    @property
    def cash_amount_in_usd(self) -> float:
        return self.cash_amount_in_cents / 100.0

    @property
    def equity_amount_in_usd(self) -> float:
        return self.equity_amount_in_cents / 100.0

    @property
    def total_amount_in_usd(self) -> float:
        return self.total_amount_in_usd_cents / 100.0


class WiseRecipient(BaseModel):
    """Bank account details registered with Wise for a payee."""

    __tablename__ = "wise_recipients"

    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    recipient_id = Column(String(100), nullable=False)
    account_holder_name = Column(String(255), nullable=True)


class Payment(BaseModel):
    """Payout of an invoice to a contractor."""

    __tablename__ = "payments"

    invoice_id = Column(Integer, ForeignKey('invoices.id'), nullable=False)
    wise_recipient_id = Column(Integer, ForeignKey('wise_recipients.id'), nullable=True)

    status = Column(String(50), default="initial", nullable=False)
    net_amount_in_cents = Column(BigInteger, nullable=False)
    transfer_fee_in_cents = Column(BigInteger, nullable=True)
    wise_transfer_id = Column(String(100), nullable=True)

    invoice = relationship("Invoice", back_populates="payments")
    wise_recipient = relationship("WiseRecipient")
