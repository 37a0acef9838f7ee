from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.access import authorize
from ..auth.jwt import get_current_user
from ..models.models import User
from ..schemas.schemas import OrganizationSummaryRead
from ..services.reports import generate_payments_report, generate_transactions_report, organization_summary

router = APIRouter()


def _csv_response(filename: str, content: str) -> Response:
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return Response(content=content, media_type="text/csv", headers=headers)


@router.get("/summary", response_model=OrganizationSummaryRead)
def get_summary(
    organization_id: int = Query(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> OrganizationSummaryRead:
    authorize(db, user, organization_id)
    return OrganizationSummaryRead.model_validate(organization_summary(db, organization_id))


@router.get("/payments.csv")
def export_payments(
    organization_id: int = Query(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Response:
    authorize(db, user, organization_id)
    report = generate_payments_report(db, organization_id)
    return _csv_response(report.filename, report.content)


@router.get("/transactions.csv")
def export_transactions(
    organization_id: int = Query(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Response:
    authorize(db, user, organization_id)
    report = generate_transactions_report(db, organization_id)
    return _csv_response(report.filename, report.content)
