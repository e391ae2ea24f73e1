"""
Initial cap table creation.

Takes a list of investors and share counts for a company with no equity data
yet, and creates the default share class, one CompanyInvestor and one
ShareHolding per investor, and the company's fully diluted share count.
"""

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.modules.companies.models import Company
from app.modules.equity.models import CompanyInvestor, OptionPool, ShareClass, ShareHolding
from app.modules.equity.naming import next_share_holding_name, option_holder_name
from app.modules.users.models import User
from app.modules.users.services import get_user_by_external_id

logger = logging.getLogger(__name__)


DEFAULT_SHARE_PRICE_USD = Decimal("0.01")
SHARE_NAME_PREFIX_LENGTH = 3


def cap_table_empty(db: Session, company: Company) -> bool:
    """True when the company has no share classes, option pools, investors or holdings."""
    for model in (ShareClass, OptionPool, CompanyInvestor, ShareHolding):
        exists = db.query(model.id).filter(model.company_id == company.id).first()
        if exists is not None:
            return False
    return True


def investment_amount_cents(shares: int, share_price_usd: Decimal) -> int:
    """shares * price in cents, rounded half up."""
    amount = Decimal(shares) * Decimal(share_price_usd) * 100
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class CreateCapTable:
    """
    Creates a company's initial cap table.

    Usage:
        result = CreateCapTable(db, company, [{"user_id": "abc", "shares": 1000}]).perform()
        # {"success": True, "errors": []}

    All validation errors for individual investor rows are collected and
    returned together. Nothing is written unless every row is valid.
    """

    def __init__(self, db: Session, company: Company, investors_data: List[Dict[str, Any]]):
        self.db = db
        self.company = company
        self.company_id = company.id
        self.investors_data = investors_data or []
        self.errors: List[str] = []

    def perform(self) -> Dict[str, Any]:
        try:
            # Lock the company row so the emptiness check, validation and
            # inserts (including share name sequencing) are serialized
            company = self._lock_company()

            if not company.equity_enabled:
                return self._fail("Company must have equity enabled")
            if not cap_table_empty(self.db, company):
                return self._fail("Company already has cap table data")

            investors = self._validate_data(company)
            if self.errors:
                self.db.rollback()
                logger.warning(f"Cap table for company {company.id} rejected: {self.errors}")
                return {'success': False, 'errors': self.errors}

            share_class = ShareClass(company_id=company.id, name=ShareClass.DEFAULT_NAME)
            self.db.add(share_class)
            self.db.flush()

            self._create_investors_and_holdings(company, share_class, investors)
            self._update_company_shares(company)

            self.db.commit()
            logger.info(
                f"Created cap table for company {company.id}: {len(investors)} investors, "
                f"{company.fully_diluted_shares} fully diluted shares"
            )
            return {'success': True, 'errors': []}

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create cap table for company {self.company_id}: {e}", exc_info=True)
            self.errors.append(str(e))
            return {'success': False, 'errors': self.errors}
        except Exception as e:
            self.db.rollback()
            logger.error(f"Unexpected error creating cap table for company {self.company_id}: {e}", exc_info=True)
            self.errors.append(f"Unexpected error: {e}")
            return {'success': False, 'errors': self.errors}

    def _lock_company(self) -> Company:
        return self.db.query(Company).filter(
            Company.id == self.company_id
        ).with_for_update().populate_existing().one()

    def _fail(self, error: str) -> Dict[str, Any]:
        self.db.rollback()
        logger.warning(f"Cap table for company {self.company_id} rejected: {error}")
        return {'success': False, 'errors': [error]}

    def _validate_data(self, company: Company) -> List[tuple[User, int]]:
        """Resolve every row to (user, shares), collecting errors for invalid rows."""
        valid = []
        seen_user_ids = set()
        total_shares = 0

        for index, investor_data in enumerate(self.investors_data, start=1):
            user = get_user_by_external_id(self.db, investor_data.get('user_id'))
            shares = int(investor_data.get('shares') or 0)

            if user is None:
                self.errors.append(f"Investor {index}: User not found")
                continue

            if not option_holder_name(user):
                self.errors.append(f"Investor {index}: User has no legal name")
                continue

            already_investor = self.db.query(CompanyInvestor.id).filter(
                CompanyInvestor.company_id == company.id,
                CompanyInvestor.user_id == user.id,
            ).first()
            if already_investor is not None or user.id in seen_user_ids:
                self.errors.append(f"Investor {index}: User is already an investor in this company")
                continue

            seen_user_ids.add(user.id)
            total_shares += shares
            valid.append((user, shares))

        fully_diluted = company.fully_diluted_shares or 0
        if fully_diluted > 0 and total_shares > fully_diluted:
            self.errors.append(
                f"Total shares ({total_shares}) cannot exceed company's fully diluted shares ({fully_diluted})"
            )

        return valid

    def _create_investors_and_holdings(
        self,
        company: Company,
        share_class: ShareClass,
        investors: List[tuple[User, int]],
    ) -> None:
        share_price = company.share_price_in_usd or DEFAULT_SHARE_PRICE_USD
        now = datetime.utcnow()

        for user, shares in investors:
            amount_cents = investment_amount_cents(shares, share_price)

            company_investor = CompanyInvestor(
                company_id=company.id,
                user_id=user.id,
                investment_amount_in_cents=amount_cents,
                total_shares=0,
            )
            self.db.add(company_investor)
            self.db.flush()

            holding = ShareHolding(
                company_id=company.id,
                company_investor_id=company_investor.id,
                share_class_id=share_class.id,
                name=next_share_holding_name(self.db, company, SHARE_NAME_PREFIX_LENGTH),
                issued_at=now,
                originally_acquired_at=now,
                number_of_shares=shares,
                share_price_usd=share_price,
                total_amount_in_cents=amount_cents,
                share_holder_name=option_holder_name(user),
            )
            self.db.add(holding)
            company_investor.total_shares += shares
            # Flush so the next name in the sequence sees this holding
            self.db.flush()

    def _update_company_shares(self, company: Company) -> None:
        total_shares = self.db.query(
            func.coalesce(func.sum(CompanyInvestor.total_shares), 0)
        ).filter(CompanyInvestor.company_id == company.id).scalar()
        company.fully_diluted_shares = int(total_shares)
        self.db.flush()
