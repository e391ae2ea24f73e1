"""
Dividend API routes.
Finalizing dividend computations into dividend rounds.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.database import get_db
from app.modules.companies.models import Company
from app.modules.companies.services import get_company_or_404
from app.modules.dividends.services import (
    CreateDividendRound,
    get_dividend_computation,
    to_csv,
    to_final_csv,
    to_per_investor_csv,
)
from app.modules.users.models import User

router = APIRouter()


def _load_computation(db: Session, company: Company, computation_id: str):
    computation = get_dividend_computation(db, company.id, computation_id)
    if computation is None:
        raise HTTPException(status_code=404, detail="Dividend computation not found")
    return computation


@router.get("/{company_id}/dividend_computations/{computation_id}/per_investor.csv")
def export_per_investor(
    computation_id: str,
    company: Company = Depends(get_company_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Per-investor breakdown of a dividend computation, as CSV."""
    computation = _load_computation(db, company, computation_id)
    return PlainTextResponse(to_per_investor_csv(db, computation), media_type="text/csv")


@router.get("/{company_id}/dividend_computations/{computation_id}/per_investor_and_share_class.csv")
def export_per_investor_and_share_class(
    computation_id: str,
    company: Company = Depends(get_company_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    computation = _load_computation(db, company, computation_id)
    return PlainTextResponse(to_csv(computation), media_type="text/csv")


@router.get("/{company_id}/dividend_computations/{computation_id}/final.csv")
def export_final(
    computation_id: str,
    company: Company = Depends(get_company_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Dividends a finalized round would contain, as CSV."""
    computation = _load_computation(db, company, computation_id)
    return PlainTextResponse(to_final_csv(db, computation), media_type="text/csv")


@router.post("/{company_id}/dividend_computations/{computation_id}/dividend_round")
def create_dividend_round(
    computation_id: str,
    company: Company = Depends(get_company_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Finalize a dividend computation into a dividend round."""
    computation = _load_computation(db, company, computation_id)
    result = CreateDividendRound(db, computation).process()

    if result['success']:
        return JSONResponse(status_code=201, content={"id": result['dividend_round'].external_id})
    return JSONResponse(status_code=422, content={"error": result['error']})
