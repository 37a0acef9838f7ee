from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.access import authorize, organization_of_dues
from ..auth.jwt import get_current_user
from ..constants import WRITE_ROLES
from ..models.models import User
from ..schemas.schemas import PaymentCreate, PaymentRecorded, PaymentsCleared
from ..services.notifications import notification_center
from ..services.payments import clear_payments, record_payment

router = APIRouter()


@router.post("", response_model=PaymentRecorded)
def create_payment(
    payload: PaymentCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
) -> PaymentRecorded:
    organization_id = organization_of_dues(db, payload.dues_id)
    authorize(db, actor, organization_id, WRITE_ROLES)
    payment = record_payment(
        db,
        payload.dues_id,
        payload.amount,
        method=payload.method,
        note=payload.note,
        created_by_id=actor.id,
    )
    status = payment.dues.status
    notification_center.dispatch(
        organization_id,
        "payment.recorded",
        {
            "payment_id": payment.id,
            "dues_id": payment.dues_id,
            "member_id": payment.member_id,
            "amount": payment.amount,
            "status": status,
        },
    )
    return PaymentRecorded(payment_id=payment.id, status=status)


@router.delete("/dues/{dues_id}", response_model=PaymentsCleared)
def delete_dues_payments(
    dues_id: int,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
) -> PaymentsCleared:
    organization_id = organization_of_dues(db, dues_id)
    authorize(db, actor, organization_id, WRITE_ROLES)
    deleted = clear_payments(db, dues_id)
    notification_center.dispatch(organization_id, "payments.cleared", {"dues_id": dues_id, "deleted": deleted})
    return PaymentsCleared(deleted=deleted)
