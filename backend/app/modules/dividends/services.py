"""
Dividend computation services.

Aggregates a computation's outputs per investor, exports them, and finalizes
a computation into a DividendRound.
"""

import csv
import io
import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.modules.dividends.models import (
    ISSUED,
    Dividend,
    DividendComputation,
    DividendRound,
)
from app.modules.equity.models import CompanyInvestor, ConvertibleInvestment

logger = logging.getLogger(__name__)


CENT = Decimal("0.01")


def _to_cents(amount_usd: Decimal) -> int:
    return int((Decimal(amount_usd) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def get_dividend_computation(db: Session, company_id: int, external_id: str) -> Optional[DividendComputation]:
    """Get a company's dividend computation by external id."""
    return db.query(DividendComputation).filter(
        DividendComputation.company_id == company_id,
        DividendComputation.external_id == external_id,
    ).first()


# =============================================================================
# PER-INVESTOR AGGREGATION
# =============================================================================

def dividends_info(computation: DividendComputation) -> tuple[Dict[int, Dict[str, Any]], Dict[str, Dict[str, Any]]]:
    """
    Sum a computation's outputs per holder.

    Returns:
        (share_dividends, safe_dividends): share holders keyed by
        company_investor_id, SAFE holders keyed by investor_name.
    """
    share_dividends = defaultdict(lambda: {
        'number_of_shares': 0,
        'total_amount': Decimal('0'),
        'qualified_dividends_amount': Decimal('0'),
        'investment_amount_cents': 0,
    })
    safe_dividends = defaultdict(lambda: {
        'number_of_shares': 0,
        'total_amount': Decimal('0'),
        'qualified_dividends_amount': Decimal('0'),
    })

    for output in computation.outputs:
        if output.investor_name:
            info = safe_dividends[output.investor_name]
        else:
            info = share_dividends[output.company_investor_id]
            info['investment_amount_cents'] += output.investment_amount_cents or 0

        info['number_of_shares'] += output.number_of_shares or 0
        info['total_amount'] += Decimal(output.total_amount_in_usd)
        info['qualified_dividends_amount'] += Decimal(output.qualified_dividend_amount_usd or 0)

    return dict(share_dividends), dict(safe_dividends)


def broken_down_by_investor(db: Session, computation: DividendComputation) -> List[Dict[str, Any]]:
    """One entry per share holder and per SAFE holder, for review before finalizing."""
    share_dividends, safe_dividends = dividends_info(computation)

    investors_by_id = {
        investor.id: investor
        for investor in db.query(CompanyInvestor).filter(
            CompanyInvestor.company_id == computation.company_id,
            CompanyInvestor.id.in_(list(share_dividends.keys())),
        ).all()
    }

    data = []
    for company_investor_id, info in share_dividends.items():
        investor = investors_by_id[company_investor_id]
        data.append({
            'investor_name': investor.user.legal_name,
            'company_investor_id': company_investor_id,
            'investor_external_id': investor.user.external_id,
            'total_amount': info['total_amount'],
            'number_of_shares': info['number_of_shares'],
        })

    for investor_name, info in safe_dividends.items():
        data.append({
            'investor_name': investor_name,
            'company_investor_id': None,
            'investor_external_id': None,
            'total_amount': info['total_amount'],
            'number_of_shares': info['number_of_shares'],
        })

    return data


def to_per_investor_csv(db: Session, computation: DividendComputation) -> str:
    """Export broken_down_by_investor() as CSV."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["Investor", "Investor ID", "Number of shares", "Amount (USD)"])
    for row in broken_down_by_investor(db, computation):
        writer.writerow([
            row['investor_name'],
            row['company_investor_id'],
            row['number_of_shares'],
            row['total_amount'],
        ])
    return buffer.getvalue()


def to_csv(computation: DividendComputation) -> str:
    """Export every computation output, one row per investor and share class."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow([
        "Investor", "Share class", "Number of shares", "Hurdle rate", "Original issue price (USD)",
        "Common dividend amount (USD)", "Preferred dividend amount (USD)", "Total amount (USD)",
    ])
    for output in computation.outputs:
        writer.writerow([
            output.investor_name or output.company_investor.user.legal_name,
            output.share_class,
            output.number_of_shares,
            output.hurdle_rate,
            output.original_issue_price_in_usd,
            output.dividend_amount_in_usd,
            output.preferred_dividend_amount_in_usd,
            output.total_amount_in_usd,
        ])
    return buffer.getvalue()


def to_final_csv(db: Session, computation: DividendComputation) -> str:
    """Export the dividends finalizing would create, with SAFE amounts split per security holder."""
    data = data_for_dividend_creation(db, computation)
    investors_by_id = {
        investor.id: investor
        for investor in db.query(CompanyInvestor).filter(
            CompanyInvestor.company_id == computation.company_id,
            CompanyInvestor.id.in_({row['company_investor_id'] for row in data}),
        ).all()
    }

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["Investor", "Investor ID", "Number of shares", "Amount (USD)"])
    for row in data:
        writer.writerow([
            investors_by_id[row['company_investor_id']].user.legal_name,
            row['company_investor_id'],
            row['number_of_shares'],
            row['total_amount'],
        ])
    return buffer.getvalue()


def data_for_dividend_creation(db: Session, computation: DividendComputation) -> List[Dict[str, Any]]:
    """
    Dividend attributes per receiving investor.

    SAFE holders' amounts are split across the securities of their convertible
    investment in proportion to each security's principal.
    """
    share_dividends, safe_dividends = dividends_info(computation)
    data = []

    for company_investor_id, info in share_dividends.items():
        data.append({
            'company_investor_id': company_investor_id,
            'total_amount': info['total_amount'],
            'qualified_dividends_amount': info['qualified_dividends_amount'],
            'number_of_shares': info['number_of_shares'],
            'investment_amount_cents': info['investment_amount_cents'],
        })

    for investor_name, info in safe_dividends.items():
        investment = db.query(ConvertibleInvestment).filter(
            ConvertibleInvestment.company_id == computation.company_id,
            ConvertibleInvestment.entity_name == investor_name,
        ).first()
        if investment is None:
            raise ValueError(f"Convertible investment not found for {investor_name}")

        investment_usd = Decimal(investment.amount_in_cents) / 100
        for security in investment.convertible_securities:
            security_usd = Decimal(security.principal_value_in_cents) / 100
            data.append({
                'company_investor_id': security.company_investor_id,
                'total_amount': (info['total_amount'] / investment_usd * security_usd).quantize(CENT, rounding=ROUND_HALF_UP),
                'qualified_dividends_amount': (
                    info['qualified_dividends_amount'] / investment_usd * security_usd
                ).quantize(CENT, rounding=ROUND_HALF_UP),
                'number_of_shares': None,
                'investment_amount_cents': security.principal_value_in_cents,
            })

    return data


def generate_dividends(db: Session, computation: DividendComputation) -> DividendRound:
    """Create the DividendRound and its Dividends. Caller owns the transaction."""
    data = data_for_dividend_creation(db, computation)

    dividend_round = DividendRound(
        company_id=computation.company_id,
        dividend_computation_id=computation.id,
        issued_at=computation.dividends_issuance_date,
        number_of_shares=sum(row['number_of_shares'] or 0 for row in data),
        number_of_shareholders=len({row['company_investor_id'] for row in data}),
        status=ISSUED,
        total_amount_in_cents=_to_cents(computation.total_amount_in_usd),
        return_of_capital=computation.return_of_capital,
    )
    db.add(dividend_round)
    db.flush()

    for row in data:
        investor = db.query(CompanyInvestor).filter(
            CompanyInvestor.company_id == computation.company_id,
            CompanyInvestor.id == row['company_investor_id'],
        ).one()
        db.add(Dividend(
            company_id=computation.company_id,
            dividend_round_id=dividend_round.id,
            company_investor_id=investor.id,
            total_amount_in_cents=_to_cents(row['total_amount']),
            qualified_amount_cents=_to_cents(row['qualified_dividends_amount']),
            number_of_shares=row['number_of_shares'],
            investment_amount_cents=row['investment_amount_cents'],
            status=ISSUED,
        ))
    db.flush()

    return dividend_round


# =============================================================================
# FINALIZATION
# =============================================================================

class CreateDividendRound:
    """
    Finalizes a draft dividend computation into a dividend round.

    Usage:
        result = CreateDividendRound(db, computation).process()
        # {"success": True, "dividend_round": <DividendRound>}
        # {"success": False, "error": "Dividend computation is already finalized"}

    Finalization and round creation commit together or not at all.
    """

    def __init__(self, db: Session, dividend_computation: DividendComputation):
        self.db = db
        self.dividend_computation = dividend_computation
        self.computation_id = dividend_computation.id

    def process(self) -> Dict[str, Any]:
        try:
            computation = self.db.query(DividendComputation).filter(
                DividendComputation.id == self.computation_id
            ).with_for_update().populate_existing().one()

            if computation.finalized:
                self.db.rollback()
                logger.warning(f"Dividend computation {self.computation_id} is already finalized")
                return {'success': False, 'error': "Dividend computation is already finalized"}

            computation.finalized_at = datetime.utcnow()
            dividend_round = generate_dividends(self.db, computation)

            self.db.commit()
            logger.info(
                f"Finalized dividend computation {self.computation_id} into round {dividend_round.id} "
                f"({dividend_round.number_of_shareholders} shareholders)"
            )
            return {'success': True, 'dividend_round': dividend_round}

        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to finalize dividend computation {self.computation_id}: {e}", exc_info=True)
            return {'success': False, 'error': str(e)}
