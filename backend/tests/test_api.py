"""
API tests for the company, equity, dividend and report routes.
"""

import csv
import io
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.core.auth import create_access_token
from app.core.config import settings
from app.core.database import get_db
from app.main import create_app
from app.modules.dividends.models import DividendRound


@pytest.fixture
def client(test_db):
    application = create_app()

    def override_get_db():
        yield test_db

    application.dependency_overrides[get_db] = override_get_db
    return TestClient(application)


@pytest.fixture
def acting_user(company, create_user, add_administrator):
    user = create_user(legal_name="Acting Admin")
    add_administrator(company, user)
    return user


@pytest.fixture
def auth_headers(acting_user):
    return {"Authorization": f"Bearer {create_access_token(acting_user.external_id)}"}


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAuthentication:

    def test_missing_token(self, client, company):
        response = client.post(f"/api/v1/companies/{company.external_id}/cap_table", json={"investors": []})

        assert response.status_code == 401

    def test_invalid_token(self, client, company):
        response = client.post(
            f"/api/v1/companies/{company.external_id}/cap_table",
            json={"investors": []},
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token"

    def test_expired_token(self, client, company, acting_user):
        token = create_access_token(acting_user.external_id, expires_delta=timedelta(minutes=-5))

        response = client.post(
            f"/api/v1/companies/{company.external_id}/cap_table",
            json={"investors": []},
            headers={"Authorization": f"Bearer {token}"},
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Token has expired"


class TestCapTableApi:

    def test_create(self, client, company, create_user, auth_headers):
        investor = create_user()

        response = client.post(
            f"/api/v1/companies/{company.external_id}/cap_table",
            json={"investors": [{"userId": investor.external_id, "shares": 1_000}]},
            headers=auth_headers,
        )

        assert response.status_code == 201
        assert response.json() == {"success": True}

    def test_validation_errors(self, client, company, auth_headers):
        response = client.post(
            f"/api/v1/companies/{company.external_id}/cap_table",
            json={"investors": [{"userId": "missing", "shares": 1_000}]},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json() == {"success": False, "errors": ["Investor 1: User not found"]}

    def test_unknown_company(self, client, auth_headers):
        response = client.post("/api/v1/companies/nope/cap_table", json={"investors": []}, headers=auth_headers)

        assert response.status_code == 404


class TestDividendRoundApi:

    @pytest.fixture
    def computation(self, company, create_investor, create_dividend_computation):
        investor = create_investor(company, total_shares=100)
        return create_dividend_computation(company, [
            {'company_investor_id': investor.id, 'number_of_shares': 100,
             'total_amount_in_usd': Decimal("1000.00"), 'investment_amount_cents': 100},
        ])

    def test_finalize(self, client, test_db, company, computation, auth_headers):
        url = f"/api/v1/companies/{company.external_id}/dividend_computations/{computation.external_id}/dividend_round"

        response = client.post(url, headers=auth_headers)

        assert response.status_code == 201
        assert response.json() == {"id": test_db.query(DividendRound).one().external_id}

        again = client.post(url, headers=auth_headers)
        assert again.status_code == 422
        assert again.json() == {"error": "Dividend computation is already finalized"}

    def test_computation_of_other_company_not_found(self, client, create_company, computation, auth_headers):
        other = create_company(name="Other")

        response = client.post(
            f"/api/v1/companies/{other.external_id}/dividend_computations/{computation.external_id}/dividend_round",
            headers=auth_headers,
        )

        assert response.status_code == 404

    def test_per_investor_csv(self, client, company, computation, auth_headers):
        response = client.get(
            f"/api/v1/companies/{company.external_id}/dividend_computations/{computation.external_id}/per_investor.csv",
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert response.text.splitlines()[0] == "Investor,Investor ID,Number of shares,Amount (USD)"

    @pytest.mark.parametrize("export,header", [
        ("per_investor_and_share_class.csv", "Investor,Share class,Number of shares,Hurdle rate"),
        ("final.csv", "Investor,Investor ID,Number of shares,Amount (USD)"),
    ])
    def test_computation_exports(self, client, company, computation, auth_headers, export, header):
        response = client.get(
            f"/api/v1/companies/{company.external_id}/dividend_computations/{computation.external_id}/{export}",
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.splitlines()
        assert lines[0].startswith(header)
        assert len(lines) == 2


class TestRolesApi:

    def test_add_and_remove_lawyer(self, client, company, create_user, auth_headers):
        lawyer = create_user()
        url = f"/api/v1/companies/{company.external_id}/roles"
        body = {"user_id": lawyer.external_id, "role": "lawyer"}

        added = client.post(url, json=body, headers=auth_headers)
        removed = client.request("DELETE", url, json=body, headers=auth_headers)

        assert added.status_code == 201
        assert removed.status_code == 200
        assert removed.json() == {"success": True}

    def test_cannot_remove_last_admin(self, client, company, acting_user, auth_headers):
        response = client.request(
            "DELETE",
            f"/api/v1/companies/{company.external_id}/roles",
            json={"user_id": acting_user.external_id, "role": "admin"},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json() == {"success": False, "error": "Cannot remove the last administrator"}

    def test_cannot_remove_own_admin_role(self, client, company, acting_user, create_user, add_administrator, auth_headers):
        add_administrator(company, create_user())

        response = client.request(
            "DELETE",
            f"/api/v1/companies/{company.external_id}/roles",
            json={"user_id": acting_user.external_id, "role": "admin"},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["error"] == "You cannot remove your own admin role"


class TestFinancialReportApi:

    @pytest.fixture
    def admin_headers(self, acting_user, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "PLATFORM_ADMIN_EMAILS", [acting_user.email.upper()])
        return auth_headers

    def test_requires_platform_admin(self, client, auth_headers):
        response = client.get(
            "/api/v1/reports/financial",
            params={"start_date": "2024-06-01", "end_date": "2024-06-30"},
            headers=auth_headers,
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Platform admin access required"

    def test_download(self, client, company, create_paid_dividend, admin_headers):
        create_paid_dividend(company, 25_025, datetime(2024, 6, 3), net_amount_in_cents=24_269)

        response = client.get(
            "/api/v1/reports/financial",
            params={"start_date": "2024-06-01", "end_date": "2024-06-30", "report": "dividends"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert 'filename="dividends-June 2024.csv"' in response.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(response.text)))
        assert len(rows) == 3
        assert rows[-1][0] == "TOTAL"

    def test_invalid_range(self, client, admin_headers):
        response = client.get(
            "/api/v1/reports/financial",
            params={"start_date": "2024-07-01", "end_date": "2024-06-30"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Start date must be before end date"

    def test_unknown_report(self, client, admin_headers):
        response = client.get(
            "/api/v1/reports/financial",
            params={"start_date": "2024-06-01", "end_date": "2024-06-30", "report": "payroll"},
            headers=admin_headers,
        )

        assert response.status_code == 422
