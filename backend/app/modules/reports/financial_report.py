"""
Financial Report CSV Service

Builds the platform's monthly financial report as four CSV files:
- invoices:       one row per invoice in a consolidated invoice created in range
- dividends:      one row per paid dividend whose first successful payment is in range
- grouped:        invoices and dividends together, by date
- stock_options:  one row per processed vesting event, with Black-Scholes expense

Every file has a header row and, when there is data, a TOTAL row summing the
summable columns.

Usage:
    files = FinancialReportCsvService(db, date(2025, 8, 1), date(2025, 8, 31)).generate()
    # {"invoices-August 2025.csv": "...", "dividends-August 2025.csv": "...", ...}
"""

import csv
import io
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload, selectinload

from app.modules.dividends.models import PAID, PAYMENT_SUCCEEDED, Dividend, DividendPayment
from app.modules.equity.black_scholes import calculate_option_value
from app.modules.equity.models import CompanyInvestor, EquityGrant, VestingEvent
from app.modules.invoices.models import RECEIVED, ConsolidatedInvoice, Invoice, WiseRecipient
from app.shared.services.fee_calculator import calculate_dividend_fee_cents

logger = logging.getLogger(__name__)


LEADING_NUMBER = re.compile(r"^\s*[-+]?(\d+(\.\d*)?|\.\d+)")


@dataclass(frozen=True)
class CsvColumn:
    key: str
    header: str
    summable: bool = False


INVOICES_COLUMNS = [
    CsvColumn("invoice_date", "Invoice date"),
    CsvColumn("payment_succeeded_at", "Payment succeeded at"),
    CsvColumn("consolidated_invoice_id", "Consolidated invoice ID"),
    CsvColumn("client_name", "Client name"),
    CsvColumn("invoiced_amount_usd", "Invoiced amount (USD)", True),
    CsvColumn("flexile_fees_usd", "Flexile fees (USD)", True),
    CsvColumn("transfer_fees_usd", "Transfer fees (USD)", True),
    CsvColumn("total_amount_usd", "Total amount (USD)", True),
    CsvColumn("stripe_fee_usd", "Stripe fee (USD)", True),
    CsvColumn("consolidated_invoice_status", "Consolidated invoice status"),
    CsvColumn("stripe_payment_intent_id", "Stripe payment intent ID"),
    CsvColumn("contractor_name", "Contractor name"),
    CsvColumn("wise_account_holder_name", "Wise account holder name"),
    CsvColumn("wise_recipient_id", "Wise recipient ID"),
    CsvColumn("invoice_id", "Invoice ID"),
    CsvColumn("wise_transfer_id", "Wise transfer ID"),
    CsvColumn("cash_amount_usd", "Cash amount (USD)", True),
    CsvColumn("equity_amount_usd", "Equity amount (USD)", True),
    CsvColumn("invoice_total_amount_usd", "Total amount (USD)", True),
    CsvColumn("invoice_status", "Invoice status"),
]

DIVIDENDS_COLUMNS = [
    CsvColumn("date_initiated", "Date initiated"),
    CsvColumn("date_paid", "Date paid"),
    CsvColumn("client_name", "Client name"),
    CsvColumn("dividend_round_id", "Dividend round ID"),
    CsvColumn("dividend_id", "Dividend ID"),
    CsvColumn("investor_name", "Investor name"),
    CsvColumn("investor_email", "Investor email"),
    CsvColumn("number_of_shares", "Number of shares", True),
    CsvColumn("dividend_amount_usd", "Dividend amount (USD)", True),
    CsvColumn("processor", "Processor"),
    CsvColumn("transfer_id", "Transfer ID"),
    CsvColumn("total_transaction_amount_usd", "Total transaction amount (USD)", True),
    CsvColumn("net_amount_usd", "Net amount (USD)", True),
    CsvColumn("transfer_fee_usd", "Transfer fee (USD)", True),
    CsvColumn("tax_withholding_percentage", "Tax withholding percentage"),
    CsvColumn("tax_withheld_usd", "Tax withheld", True),
    CsvColumn("flexile_fee_usd", "Flexile fee (USD)", True),
    CsvColumn("dividend_round_status", "Dividend round status"),
]

GROUPED_COLUMNS = [
    CsvColumn("type", "Type"),
    CsvColumn("date", "Date"),
    CsvColumn("client_name", "Client name"),
    CsvColumn("description", "Description"),
    CsvColumn("amount_usd", "Amount (USD)", True),
    CsvColumn("flexile_fee_usd", "Flexile fee (USD)", True),
    CsvColumn("transfer_fee_usd", "Transfer fee (USD)", True),
    CsvColumn("net_amount_usd", "Net amount (USD)", True),
]

STOCK_OPTIONS_COLUMNS = [
    CsvColumn("date_vested", "Date Vested"),
    CsvColumn("company_name", "Company Name"),
    CsvColumn("investor_name", "Investor Name"),
    CsvColumn("investor_email", "Investor Email"),
    CsvColumn("grant_id", "Grant ID"),
    CsvColumn("vesting_event_id", "Vesting Event ID"),
    CsvColumn("shares_vested", "Shares Vested", True),
    CsvColumn("exercise_price_usd", "Exercise Price (USD)"),
    CsvColumn("current_share_price_usd", "Current Share Price (USD)"),
    CsvColumn("expiration_date", "Expiration Date"),
    CsvColumn("black_scholes_option_value", "Black-Scholes Option Value"),
    CsvColumn("total_option_expense", "Total Option Expense", True),
    CsvColumn("grant_type", "Grant Type"),
    CsvColumn("grant_status", "Grant Status"),
]


# =============================================================================
# FORMATTING HELPERS
# =============================================================================

def us_date(value) -> Optional[str]:
    """6/1/2024 style date, no zero padding."""
    if value is None:
        return None
    return f"{value.month}/{value.day}/{value.year}"


def parse_us_date(value: Optional[str]) -> date:
    """Sort key for report rows. Unparseable dates sort as today."""
    try:
        return datetime.strptime(value, "%m/%d/%Y").date()
    except (TypeError, ValueError):
        return date.today()


def to_float(value: Any) -> float:
    """
    Numeric value of a cell for totals.

    Joined multi-value cells ("1.5;2.0") count their leading number only,
    blanks count as 0.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    match = LEADING_NUMBER.match(str(value))
    return float(match.group(0)) if match else 0.0


def cents_to_usd(cents: Optional[int]) -> float:
    return cents / 100.0 if cents else 0.0


def generate_csv(columns: List[CsvColumn], data: List[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([col.header for col in columns])
    for row in data:
        writer.writerow([row.get(col.key) for col in columns])

    if data:
        writer.writerow(calculate_csv_totals(data, columns))

    return buffer.getvalue()


def calculate_csv_totals(data: List[Dict[str, Any]], columns: List[CsvColumn]) -> List[Any]:
    first_key = columns[0].key
    totals = []
    for col in columns:
        if col.key == first_key:
            totals.append("TOTAL")
        elif col.summable:
            totals.append(sum(to_float(row.get(col.key)) for row in data))
        else:
            totals.append("")
    return totals


# =============================================================================
# REPORT SERVICE
# =============================================================================

class FinancialReportCsvService:
    """Generates the four financial report CSVs for a date range (both ends inclusive)."""

    def __init__(self, db: Session, start_date: date, end_date: date):
        self.db = db
        self.start_date = start_date
        self.end_date = end_date
        self.range_start = datetime.combine(start_date, time.min)
        self.range_end = datetime.combine(end_date, time.max)
        self._consolidated_invoices = None
        self._dividends = None

    def generate(self) -> Dict[str, str]:
        if self.start_date > self.end_date:
            raise ValueError("Start date must be before end date")

        report_date = self.start_date.strftime("%B %Y")
        logger.info(f"Generating financial report for {self.start_date} to {self.end_date}")

        return {
            f"invoices-{report_date}.csv": generate_csv(INVOICES_COLUMNS, self.invoices_data()),
            f"dividends-{report_date}.csv": generate_csv(DIVIDENDS_COLUMNS, self.dividends_data()),
            f"grouped-{report_date}.csv": generate_csv(GROUPED_COLUMNS, self.grouped_data()),
            f"stock_options-{report_date}.csv": generate_csv(STOCK_OPTIONS_COLUMNS, self.stock_options_data()),
        }

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def consolidated_invoices(self) -> List[ConsolidatedInvoice]:
        if self._consolidated_invoices is None:
            self._consolidated_invoices = self.db.query(ConsolidatedInvoice).options(
                joinedload(ConsolidatedInvoice.company),
                selectinload(ConsolidatedInvoice.consolidated_payments),
                selectinload(ConsolidatedInvoice.invoices).selectinload(Invoice.payments),
                selectinload(ConsolidatedInvoice.invoices).joinedload(Invoice.user),
            ).filter(
                ConsolidatedInvoice.created_at >= self.range_start,
                ConsolidatedInvoice.created_at <= self.range_end,
            ).order_by(ConsolidatedInvoice.created_at.asc(), ConsolidatedInvoice.id.asc()).all()
        return self._consolidated_invoices

    def dividends_with_first_payment(self) -> List[tuple[Dividend, DividendPayment]]:
        """
        Paid dividends paired with their first successful payment.

        A dividend is included only when that first successful payment was
        created in range; dividends without a successful payment are skipped.
        """
        if self._dividends is None:
            candidates = self.db.query(Dividend).options(
                joinedload(Dividend.company),
                joinedload(Dividend.dividend_round),
                joinedload(Dividend.company_investor).joinedload(CompanyInvestor.user),
                selectinload(Dividend.dividend_payments),
            ).filter(
                Dividend.status == PAID,
                Dividend.dividend_payments.any(DividendPayment.status == PAYMENT_SUCCEEDED),
            ).order_by(Dividend.created_at.asc(), Dividend.id.asc()).all()

            self._dividends = []
            for dividend in candidates:
                successful = sorted(
                    (p for p in dividend.dividend_payments if p.status == PAYMENT_SUCCEEDED),
                    key=lambda p: (p.created_at, p.id),
                )
                if not successful:
                    continue
                payment = successful[0]
                if self.range_start <= payment.created_at <= self.range_end:
                    self._dividends.append((dividend, payment))
        return self._dividends

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    def invoices_data(self) -> List[Dict[str, Any]]:
        rows = []
        for ci in self.consolidated_invoices():
            payments = ci.consolidated_payments

            for invoice in ci.alive_invoices:
                status = "open" if invoice.status == RECEIVED else invoice.status
                invoice_payments = invoice.payments
                recipient_ids = [p.wise_recipient_id for p in invoice_payments if p.wise_recipient_id]
                wise_recipients = []
                if recipient_ids:
                    wise_recipients = self.db.query(WiseRecipient).filter(
                        WiseRecipient.id.in_(recipient_ids)
                    ).order_by(WiseRecipient.id).all()

                rows.append({
                    'invoice_date': us_date(ci.invoice_date),
                    'payment_succeeded_at': ";".join(us_date(p.succeeded_at) for p in payments if p.succeeded_at),
                    'consolidated_invoice_id': ci.id,
                    'client_name': ci.company.name,
                    'invoiced_amount_usd': ci.invoice_amount_cents / 100.0,
                    'flexile_fees_usd': ci.flexile_fee_usd,
                    'transfer_fees_usd': ci.transfer_fee_cents / 100.0,
                    'total_amount_usd': ci.total_amount_in_usd,
                    'stripe_fee_usd': ";".join(
                        str(0 if p.stripe_fee_cents == 0 else p.stripe_fee_cents / 100.0)
                        for p in payments if p.stripe_fee_cents is not None
                    ),
                    'consolidated_invoice_status': ci.status,
                    'stripe_payment_intent_id': ";".join(
                        p.stripe_payment_intent_id for p in payments if p.stripe_payment_intent_id
                    ),
                    'contractor_name': invoice.user.legal_name,
                    'wise_account_holder_name': ";".join(_unique(
                        r.account_holder_name for r in wise_recipients if r.account_holder_name
                    )),
                    'wise_recipient_id': ";".join(_unique(r.recipient_id for r in wise_recipients)),
                    'invoice_id': invoice.id,
                    'wise_transfer_id': ";".join(p.wise_transfer_id for p in invoice_payments if p.wise_transfer_id),
                    'cash_amount_usd': invoice.cash_amount_in_usd,
                    'equity_amount_usd': invoice.equity_amount_in_usd,
                    'invoice_total_amount_usd': invoice.total_amount_in_usd,
                    'invoice_status': status,
                })
        return rows

    def dividends_data(self) -> List[Dict[str, Any]]:
        rows = []
        for dividend, payment in self.dividends_with_first_payment():
            user = dividend.company_investor.user
            flexile_fee = calculate_dividend_fee_cents(dividend.total_amount_in_cents) / 100.0

            rows.append({
                'date_initiated': us_date(payment.created_at),
                'date_paid': us_date(dividend.paid_at),
                'client_name': dividend.company.name,
                'dividend_round_id': dividend.dividend_round_id,
                'dividend_id': dividend.id,
                'investor_name': user.legal_name,
                'investor_email': user.email,
                'number_of_shares': dividend.number_of_shares,
                'dividend_amount_usd': dividend.total_amount_in_cents / 100.0,
                'processor': payment.processor_name,
                'transfer_id': payment.transfer_id,
                'total_transaction_amount_usd': cents_to_usd(payment.total_transaction_cents),
                'net_amount_usd': cents_to_usd(dividend.net_amount_in_cents),
                'transfer_fee_usd': cents_to_usd(payment.transfer_fee_in_cents),
                'tax_withholding_percentage': dividend.withholding_percentage,
                'tax_withheld_usd': cents_to_usd(dividend.withheld_tax_cents),
                'flexile_fee_usd': flexile_fee,
                'dividend_round_status': dividend.dividend_round.status,
            })
        return rows

    def grouped_data(self) -> List[Dict[str, Any]]:
        rows = []

        for ci in self.consolidated_invoices():
            transfer_fee = ci.transfer_fee_cents / 100.0
            for invoice in ci.alive_invoices:
                rows.append({
                    'type': "Invoice",
                    'date': us_date(ci.invoice_date),
                    'client_name': ci.company.name,
                    'description': f"Invoice #{invoice.id} - {invoice.user.legal_name}",
                    'amount_usd': invoice.total_amount_in_usd,
                    'flexile_fee_usd': ci.flexile_fee_usd,
                    'transfer_fee_usd': transfer_fee,
                    'net_amount_usd': invoice.total_amount_in_usd - ci.flexile_fee_usd - transfer_fee,
                })

        for dividend, payment in self.dividends_with_first_payment():
            rows.append({
                'type': "Dividend",
                'date': us_date(dividend.paid_at) or us_date(payment.created_at),
                'client_name': dividend.company.name,
                'description': f"Dividend #{dividend.id} - {dividend.company_investor.user.legal_name}",
                'amount_usd': dividend.total_amount_in_cents / 100.0,
                'flexile_fee_usd': calculate_dividend_fee_cents(dividend.total_amount_in_cents) / 100.0,
                'transfer_fee_usd': cents_to_usd(payment.transfer_fee_in_cents),
                'net_amount_usd': cents_to_usd(dividend.net_amount_in_cents),
            })

        return sorted(rows, key=lambda row: parse_us_date(row['date']))

    def stock_options_data(self) -> List[Dict[str, Any]]:
        vesting_events = self.db.query(VestingEvent).options(
            joinedload(VestingEvent.equity_grant)
            .joinedload(EquityGrant.company_investor)
            .joinedload(CompanyInvestor.user),
            joinedload(VestingEvent.equity_grant)
            .joinedload(EquityGrant.company_investor)
            .joinedload(CompanyInvestor.company),
        ).filter(
            VestingEvent.processed_at.isnot(None),
            VestingEvent.cancelled_at.is_(None),
            VestingEvent.processed_at >= self.range_start,
            VestingEvent.processed_at <= self.range_end,
        ).order_by(VestingEvent.id).all()

        rows = []
        for vesting_event in vesting_events:
            equity_grant = vesting_event.equity_grant
            company = equity_grant.company_investor.company
            user = equity_grant.company_investor.user

            current_price = float(equity_grant.share_price_usd)
            exercise_price = float(equity_grant.exercise_price_usd)
            expiration_date = equity_grant.expires_at

            option_value_per_share = calculate_option_value(current_price, exercise_price, expiration_date)
            total_option_expense = option_value_per_share * vesting_event.vested_shares

            rows.append({
                'date_vested': us_date(vesting_event.processed_at),
                'company_name': company.name,
                'investor_name': user.legal_name,
                'investor_email': user.email,
                'grant_id': equity_grant.id,
                'vesting_event_id': vesting_event.id,
                'shares_vested': vesting_event.vested_shares,
                'exercise_price_usd': exercise_price,
                'current_share_price_usd': current_price,
                'expiration_date': us_date(expiration_date),
                'black_scholes_option_value': round(option_value_per_share, 4),
                'total_option_expense': round(total_option_expense, 2),
                'grant_type': equity_grant.option_grant_type.upper() if equity_grant.option_grant_type else "N/A",
                'grant_status': "Cancelled" if equity_grant.cancelled_at else "Active",
            })

        return sorted(rows, key=lambda row: parse_us_date(row['date_vested']))


def _unique(values) -> List[str]:
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen
