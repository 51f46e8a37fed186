from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lash_studio.core.database import get_db
from lash_studio.core.security import get_current_admin
from lash_studio.schemas.schemas import AnnualReport, MonthlyReport
from lash_studio.services.report_service import ReportService

router = APIRouter()


@router.get("/monthly", response_model=MonthlyReport)
def monthly_report(
    month: str = Query(..., description="YYYY-MM"),
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    return ReportService(db).monthly(month)


@router.get("/monthly.csv")
def monthly_report_csv(
    month: str = Query(..., description="YYYY-MM"),
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    return ReportService(db).monthly_csv(month)


@router.get("/annual", response_model=AnnualReport)
def annual_report(
    year: str = Query(..., description="YYYY"),
    db: Session = Depends(get_db),
    admin: str = Depends(get_current_admin),
):
    return ReportService(db).annual(year)
