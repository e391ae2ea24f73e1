"""
Imports every model module so all tables are registered with Base.metadata.
"""

from app.modules.users.models import User
from app.modules.companies.models import Company, CompanyAdministrator, CompanyLawyer
from app.modules.equity.models import (
    ShareClass,
    OptionPool,
    CompanyInvestor,
    ShareHolding,
    EquityGrant,
    VestingEvent,
    ConvertibleInvestment,
    ConvertibleSecurity,
)
from app.modules.dividends.models import (
    DividendComputation,
    DividendComputationOutput,
    DividendRound,
    Dividend,
    DividendPayment,
)
from app.modules.invoices.models import (
    ConsolidatedInvoice,
    ConsolidatedPayment,
    Invoice,
    Payment,
    WiseRecipient,
)

__all__ = [
    "User",
    "Company",
    "CompanyAdministrator",
    "CompanyLawyer",
    "ShareClass",
    "OptionPool",
    "CompanyInvestor",
    "ShareHolding",
    "EquityGrant",
    "VestingEvent",
    "ConvertibleInvestment",
    "ConvertibleSecurity",
    "DividendComputation",
    "DividendComputationOutput",
    "DividendRound",
    "Dividend",
    "DividendPayment",
    "ConsolidatedInvoice",
    "ConsolidatedPayment",
    "Invoice",
    "Payment",
    "WiseRecipient",
]
