"""
Tests for initial cap table creation.
"""

from decimal import Decimal
from unittest.mock import patch

from sqlalchemy import func
from sqlalchemy.exc import OperationalError

from app.modules.equity.cap_table import CreateCapTable, cap_table_empty, investment_amount_cents
from app.modules.equity.models import CompanyInvestor, OptionPool, ShareClass, ShareHolding


def _count(db, model):
    return db.query(func.count(model.id)).scalar()


class TestCreateCapTable:

    def test_creates_share_class_investors_and_holdings(self, test_db, company, create_user):
        alice = create_user(legal_name="Alice")
        bob = create_user(legal_name="Bob")

        result = CreateCapTable(test_db, company, [
            {'user_id': alice.external_id, 'shares': 100_000},
            {'user_id': bob.external_id, 'shares': 50_000},
        ]).perform()

        assert result == {'success': True, 'errors': []}

        share_classes = test_db.query(ShareClass).filter(ShareClass.company_id == company.id).all()
        assert [sc.name for sc in share_classes] == ["Common"]

        holdings = test_db.query(ShareHolding).order_by(ShareHolding.id).all()
        assert [h.name for h in holdings] == ["GUM-1", "GUM-2"]
        assert [h.share_holder_name for h in holdings] == ["Alice", "Bob"]
        assert [h.number_of_shares for h in holdings] == [100_000, 50_000]

    def test_fully_diluted_shares_equals_investor_totals(self, test_db, company, create_user):
        rows = [
            {'user_id': create_user().external_id, 'shares': 100_000},
            {'user_id': create_user().external_id, 'shares': 50_000},
        ]

        CreateCapTable(test_db, company, rows).perform()
        test_db.refresh(company)

        investor_total = test_db.query(func.sum(CompanyInvestor.total_shares)).filter(
            CompanyInvestor.company_id == company.id
        ).scalar()
        assert company.fully_diluted_shares == 150_000
        assert investor_total == company.fully_diluted_shares

    def test_investment_amount_uses_default_share_price(self, test_db, company, create_user):
        user = create_user()

        CreateCapTable(test_db, company, [{'user_id': user.external_id, 'shares': 1_234}]).perform()

        investor = test_db.query(CompanyInvestor).one()
        holding = test_db.query(ShareHolding).one()
        assert investor.investment_amount_in_cents == 1_234
        assert holding.share_price_usd == Decimal("0.01")
        assert holding.total_amount_in_cents == 1_234

    def test_investment_amount_uses_company_share_price(self, test_db, create_company, create_user):
        company = create_company(share_price_in_usd=Decimal("1.2345"))
        user = create_user()

        CreateCapTable(test_db, company, [{'user_id': user.external_id, 'shares': 10}]).perform()

        assert test_db.query(CompanyInvestor).one().investment_amount_in_cents == 1_235

    def test_requires_equity_enabled(self, test_db, create_company, create_user):
        company = create_company(equity_enabled=False)

        result = CreateCapTable(test_db, company, [{'user_id': create_user().external_id, 'shares': 10}]).perform()

        assert result == {'success': False, 'errors': ["Company must have equity enabled"]}
        assert _count(test_db, ShareClass) == 0

    def test_second_create_rejected_without_changes(self, test_db, company, create_user):
        CreateCapTable(test_db, company, [{'user_id': create_user().external_id, 'shares': 100}]).perform()

        result = CreateCapTable(test_db, company, [{'user_id': create_user().external_id, 'shares': 200}]).perform()

        assert result == {'success': False, 'errors': ["Company already has cap table data"]}
        assert _count(test_db, ShareHolding) == 1
        assert _count(test_db, CompanyInvestor) == 1
        test_db.refresh(company)
        assert company.fully_diluted_shares == 100

    def test_option_pool_counts_as_cap_table_data(self, test_db, company, create_user):
        test_db.add(OptionPool(company_id=company.id, name="Pool"))
        test_db.commit()

        assert not cap_table_empty(test_db, company)
        result = CreateCapTable(test_db, company, [{'user_id': create_user().external_id, 'shares': 1}]).perform()
        assert result['errors'] == ["Company already has cap table data"]

    def test_collects_every_row_error(self, test_db, company, create_user):
        valid = create_user()

        result = CreateCapTable(test_db, company, [
            {'user_id': "missing", 'shares': 10},
            {'user_id': valid.external_id, 'shares': 10},
            {'user_id': "also-missing", 'shares': 10},
            {'user_id': valid.external_id, 'shares': 5},
        ]).perform()

        assert result == {
            'success': False,
            'errors': [
                "Investor 1: User not found",
                "Investor 3: User not found",
                "Investor 4: User is already an investor in this company",
            ],
        }
        assert _count(test_db, CompanyInvestor) == 0
        assert _count(test_db, ShareClass) == 0

    def test_existing_investor_in_another_company_is_allowed(self, test_db, company, create_user, create_company, create_investor):
        user = create_user()
        create_investor(create_company(name="Other"), user=user)

        result = CreateCapTable(test_db, company, [{'user_id': user.external_id, 'shares': 10}]).perform()

        assert result['success'] is True

    def test_duplicate_user_in_input_is_rejected(self, test_db, company, create_user):
        user = create_user()

        result = CreateCapTable(test_db, company, [
            {'user_id': user.external_id, 'shares': 10},
            {'user_id': user.external_id, 'shares': 10},
        ]).perform()

        assert result['errors'] == ["Investor 2: User is already an investor in this company"]
        assert _count(test_db, CompanyInvestor) == 0

    def test_user_without_any_name_is_rejected(self, test_db, company, create_user):
        named = create_user()
        nameless = create_user(legal_name=None)

        result = CreateCapTable(test_db, company, [
            {'user_id': named.external_id, 'shares': 10},
            {'user_id': nameless.external_id, 'shares': 10},
        ]).perform()

        assert result == {'success': False, 'errors': ["Investor 2: User has no legal name"]}
        assert _count(test_db, ShareHolding) == 0

    def test_business_without_business_name_holds_under_legal_name(self, test_db, company, create_user):
        user = create_user(legal_name="Jane Doe", business_entity=True, country_code="US")

        result = CreateCapTable(test_db, company, [{'user_id': user.external_id, 'shares': 10}]).perform()

        assert result['success'] is True
        assert test_db.query(ShareHolding).one().share_holder_name == "Jane Doe"

    def test_total_cannot_exceed_fully_diluted_shares(self, test_db, create_company, create_user):
        company = create_company(fully_diluted_shares=1_000)

        result = CreateCapTable(test_db, company, [
            {'user_id': create_user().external_id, 'shares': 600},
            {'user_id': create_user().external_id, 'shares': 500},
        ]).perform()

        assert result == {
            'success': False,
            'errors': ["Total shares (1100) cannot exceed company's fully diluted shares (1000)"],
        }

    def test_total_within_fully_diluted_shares(self, test_db, create_company, create_user):
        company = create_company(fully_diluted_shares=1_000)

        result = CreateCapTable(test_db, company, [{'user_id': create_user().external_id, 'shares': 1_000}]).perform()

        assert result['success'] is True

    def test_database_error_rolls_back(self, test_db, company, create_user):
        user = create_user()
        error = OperationalError("INSERT", {}, Exception("disk I/O error"))

        with patch("app.modules.equity.cap_table.next_share_holding_name", side_effect=error):
            result = CreateCapTable(test_db, company, [{'user_id': user.external_id, 'shares': 10}]).perform()

        assert result['success'] is False
        assert "disk I/O error" in result['errors'][0]
        assert _count(test_db, ShareClass) == 0
        assert _count(test_db, CompanyInvestor) == 0
        assert cap_table_empty(test_db, company)

    def test_unexpected_error_rolls_back(self, test_db, company, create_user):
        user = create_user()

        with patch("app.modules.equity.cap_table.option_holder_name", side_effect=RuntimeError("boom")):
            result = CreateCapTable(test_db, company, [{'user_id': user.external_id, 'shares': 10}]).perform()

        assert result == {'success': False, 'errors': ["Unexpected error: boom"]}
        assert cap_table_empty(test_db, company)


class TestInvestmentAmount:

    def test_rounds_half_up(self):
        assert investment_amount_cents(1, Decimal("0.005")) == 1
        assert investment_amount_cents(3, Decimal("0.0015")) == 0
        assert investment_amount_cents(100, Decimal("0.01")) == 100
