"""
Equity API routes.
Cap table creation.
"""

from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.core.database import get_db
from app.modules.companies.models import Company
from app.modules.companies.services import get_company_or_404
from app.modules.equity.cap_table import CreateCapTable
from app.modules.users.models import User

router = APIRouter()


class InvestorShares(BaseModel):
    user_id: str = Field(alias="userId")
    shares: int = Field(ge=0)

    model_config = {"populate_by_name": True}


class CapTableCreate(BaseModel):
    investors: List[InvestorShares]


@router.post("/{company_id}/cap_table")
def create_cap_table(
    data: CapTableCreate,
    company: Company = Depends(get_company_or_404),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create the company's initial cap table."""
    investors_data = [investor.model_dump() for investor in data.investors]
    result = CreateCapTable(db, company, investors_data).perform()

    if result['success']:
        return JSONResponse(status_code=201, content={"success": True})
    return JSONResponse(status_code=422, content={"success": False, "errors": result['errors']})
