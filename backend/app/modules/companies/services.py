"""
Company lookups shared by the API routers.
"""

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.modules.companies.models import Company


def get_company_by_external_id(db: Session, external_id: str):
    """Get a company by external id."""
    return db.query(Company).filter(Company.external_id == external_id).first()


def get_company_or_404(company_id: str, db: Session = Depends(get_db)) -> Company:
    """Dependency resolving the {company_id} path parameter."""
    company = get_company_by_external_id(db, company_id)
    if company is None:
        raise HTTPException(status_code=404, detail="Company not found")
    return company
