"""
Pytest configuration and shared fixtures.
"""
import itertools
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
import app.models  # noqa: F401  (registers every table)
from app.modules.companies.models import Company, CompanyAdministrator, CompanyLawyer
from app.modules.dividends.models import (
    PAID,
    PAYMENT_SUCCEEDED,
    Dividend,
    DividendComputation,
    DividendComputationOutput,
    DividendPayment,
    DividendRound,
)
from app.modules.equity.models import (
    CompanyInvestor,
    EquityGrant,
    OptionPool,
    ShareClass,
    VestingEvent,
)
from app.modules.users.models import User


_sequence = itertools.count(1)


@pytest.fixture(scope="function")
def test_db():
    """
    Create an in-memory SQLite database for testing.

    Fresh database for each test. A single shared connection lets the API
    tests' worker threads see the same data.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


# ============================================================================
# Factories
# ============================================================================

@pytest.fixture
def create_user(test_db):
    def _create(**kwargs):
        n = next(_sequence)
        user = User(
            email=kwargs.pop("email", f"user{n}@example.com"),
            legal_name=kwargs.pop("legal_name", f"User {n}"),
            **kwargs,
        )
        test_db.add(user)
        test_db.commit()
        return user
    return _create


@pytest.fixture
def create_company(test_db):
    def _create(**kwargs):
        company = Company(
            name=kwargs.pop("name", "Gummy Bears Inc"),
            equity_enabled=kwargs.pop("equity_enabled", True),
            **kwargs,
        )
        test_db.add(company)
        test_db.commit()
        return company
    return _create


@pytest.fixture
def company(create_company):
    return create_company()


@pytest.fixture
def add_administrator(test_db):
    def _add(company, user):
        test_db.add(CompanyAdministrator(company_id=company.id, user_id=user.id))
        test_db.commit()
    return _add


@pytest.fixture
def add_lawyer(test_db):
    def _add(company, user):
        test_db.add(CompanyLawyer(company_id=company.id, user_id=user.id))
        test_db.commit()
    return _add


@pytest.fixture
def create_investor(test_db, create_user):
    def _create(company, user=None, total_shares=0, investment_amount_in_cents=0):
        investor = CompanyInvestor(
            company_id=company.id,
            user_id=(user or create_user()).id,
            total_shares=total_shares,
            investment_amount_in_cents=investment_amount_in_cents,
        )
        test_db.add(investor)
        test_db.commit()
        return investor
    return _create


@pytest.fixture
def create_dividend_computation(test_db):
    def _create(company, outputs, total_amount_in_usd=Decimal("1000.00"), **kwargs):
        """outputs: list of dicts of DividendComputationOutput columns."""
        computation = DividendComputation(
            company_id=company.id,
            total_amount_in_usd=total_amount_in_usd,
            dividends_issuance_date=kwargs.pop("dividends_issuance_date", date(2024, 6, 1)),
            **kwargs,
        )
        computation.outputs = [DividendComputationOutput(**output) for output in outputs]
        test_db.add(computation)
        test_db.commit()
        return computation
    return _create


@pytest.fixture
def create_paid_dividend(test_db, create_investor):
    def _create(company, amount_cents, payment_created_at, net_amount_in_cents=None,
                payment_status=PAYMENT_SUCCEEDED, user=None, number_of_shares=100):
        investor = create_investor(company, user=user)
        dividend_round = DividendRound(
            company_id=company.id,
            issued_at=payment_created_at.date(),
            number_of_shares=number_of_shares,
            number_of_shareholders=1,
            total_amount_in_cents=amount_cents,
            status=PAID,
        )
        test_db.add(dividend_round)
        test_db.flush()

        dividend = Dividend(
            company_id=company.id,
            dividend_round_id=dividend_round.id,
            company_investor_id=investor.id,
            number_of_shares=number_of_shares,
            total_amount_in_cents=amount_cents,
            net_amount_in_cents=net_amount_in_cents,
            status=PAID,
            paid_at=payment_created_at,
        )
        dividend.dividend_payments = [
            DividendPayment(
                status=payment_status,
                processor_name="wise",
                transfer_id=f"T-{next(_sequence)}",
                total_transaction_cents=amount_cents,
                transfer_fee_in_cents=100,
                created_at=payment_created_at,
            )
        ]
        test_db.add(dividend)
        test_db.commit()
        return dividend
    return _create


@pytest.fixture
def create_vesting_event(test_db, create_investor):
    def _create(company, processed_at, vested_shares=1000, cancelled_at=None,
                expires_at=date(2034, 6, 1), grant_cancelled_at=None, option_grant_type="iso",
                exercise_price_usd=Decimal("5.00")):
        investor = create_investor(company)
        pool = OptionPool(company_id=company.id, name="2024 Plan", authorized_shares=100_000)
        test_db.add(pool)
        test_db.flush()

        grant = EquityGrant(
            company_investor_id=investor.id,
            option_pool_id=pool.id,
            option_grant_type=option_grant_type,
            number_of_shares=vested_shares * 4,
            vested_shares=vested_shares,
            unvested_shares=vested_shares * 3,
            share_price_usd=Decimal("10.00"),
            exercise_price_usd=exercise_price_usd,
            issued_at=datetime(2024, 1, 1),
            expires_at=expires_at,
            cancelled_at=grant_cancelled_at,
        )
        test_db.add(grant)
        test_db.flush()

        event = VestingEvent(
            equity_grant_id=grant.id,
            vesting_date=processed_at.date() if processed_at else date(2024, 6, 1),
            vested_shares=vested_shares,
            processed_at=processed_at,
            cancelled_at=cancelled_at,
        )
        test_db.add(event)
        test_db.commit()
        return event
    return _create


@pytest.fixture
def share_class(test_db, company):
    share_class = ShareClass(company_id=company.id, name=ShareClass.DEFAULT_NAME)
    test_db.add(share_class)
    test_db.commit()
    return share_class
