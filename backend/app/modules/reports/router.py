"""
Reports API routes.
Financial report CSV downloads.
"""

from datetime import date
from enum import Enum
from io import BytesIO

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.core.auth import get_platform_admin
from app.core.database import get_db
from app.modules.reports.financial_report import FinancialReportCsvService
from app.modules.users.models import User

router = APIRouter()


class ReportType(str, Enum):
    INVOICES = "invoices"
    DIVIDENDS = "dividends"
    GROUPED = "grouped"
    STOCK_OPTIONS = "stock_options"


@router.get("/financial")
def download_financial_report(
    start_date: date,
    end_date: date,
    report: ReportType = ReportType.INVOICES,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_platform_admin),
):
    """Download one of the four financial report CSVs for a date range."""
    try:
        files = FinancialReportCsvService(db, start_date, end_date).generate()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    filename = next(name for name in files if name.startswith(f"{report.value}-"))
    return StreamingResponse(
        BytesIO(files[filename].encode("utf-8")),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"'
        }
    )
