from datetime import date
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.access import authorize, organization_of_member
from ..auth.jwt import get_current_user
from ..constants import WRITE_ROLES
from ..models.models import Dues, User
from ..schemas.schemas import (
    DuesConfigRead,
    DuesConfigUpdate,
    DuesRead,
    DuesStatusView,
    EnsureDuesRequest,
    MemberYearStatusRead,
    SetDuesBatchResult,
    SetDuesRequest,
    UnpaidMemberRead,
)
from ..services import dues as dues_service
from ..services import dues_status

router = APIRouter()


@router.get("/outstanding/{member_id}", response_model=List[DuesStatusView])
def get_outstanding_dues(
    member_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[dict]:
    authorize(db, user, organization_of_member(db, member_id))
    return [balance.as_view() for balance in dues_status.outstanding_dues_for_member(db, member_id)]


@router.get("/unpaid", response_model=List[UnpaidMemberRead])
def get_unpaid_members(
    organization_id: int = Query(...),
    month: Optional[int] = Query(None),
    year: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[dues_status.UnpaidMember]:
    authorize(db, user, organization_id)
    today = date.today()
    return dues_status.unpaid_members_for_period(
        db,
        organization_id,
        month if month is not None else today.month,
        year if year is not None else today.year,
    )


@router.get("/yearly-status", response_model=List[MemberYearStatusRead])
def get_yearly_status(
    organization_id: int = Query(...),
    year: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[dict]:
    authorize(db, user, organization_id)
    rows = dues_status.yearly_status_matrix(db, organization_id, year if year is not None else date.today().year)
    return [
        {
            "member": row.member,
            "year": row.year,
            "monthly_status": {month: balance.as_view() for month, balance in row.monthly_status.items()},
        }
        for row in rows
    ]


@router.get("/history/{member_id}", response_model=List[DuesStatusView])
def get_payment_history(
    member_id: int,
    months: int = Query(12, ge=1, le=120),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[dict]:
    authorize(db, user, organization_of_member(db, member_id))
    return [balance.as_view() for balance in dues_status.member_payment_history(db, member_id, months=months)]


@router.post("", response_model=Union[DuesRead, SetDuesBatchResult])
def set_dues(
    payload: SetDuesRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Union[Dues, SetDuesBatchResult]:
    authorize(db, user, payload.organization_id, WRITE_ROLES)
    result = dues_service.set_dues_for_period(
        db,
        payload.organization_id,
        payload.month,
        payload.year,
        payload.amount,
        member_id=payload.member_id,
    )
    if payload.member_id is not None:
        return result.records[0]
    return SetDuesBatchResult(
        created_or_updated=result.created_or_updated,
        created=result.created,
        updated=result.updated,
    )


@router.post("/ensure", response_model=DuesRead)
def ensure_dues(
    payload: EnsureDuesRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Dues:
    authorize(db, user, payload.organization_id, WRITE_ROLES)
    amount = payload.amount
    if amount is None:
        amount, _ = dues_service.get_dues_config(db, payload.organization_id)
    return dues_service.ensure_dues(
        db,
        payload.organization_id,
        payload.member_id,
        payload.month,
        payload.year,
        amount,
    )


@router.get("/config", response_model=DuesConfigRead)
def get_dues_config(
    organization_id: int = Query(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> DuesConfigRead:
    authorize(db, user, organization_id)
    amount, currency = dues_service.get_dues_config(db, organization_id)
    return DuesConfigRead(organization_id=organization_id, amount=amount, currency=currency)


@router.put("/config", response_model=DuesConfigRead)
def update_dues_config(
    payload: DuesConfigUpdate,
    organization_id: int = Query(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> DuesConfigRead:
    authorize(db, user, organization_id, WRITE_ROLES)
    config = dues_service.save_dues_config(db, organization_id, payload.amount, payload.currency)
    return DuesConfigRead(organization_id=organization_id, amount=config.amount, currency=config.currency)
