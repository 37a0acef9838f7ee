from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import DuesStatus
from ..core.errors import NotFound, StoreError
from ..models.models import Dues, Payment
from .balances import derive_status
from .dues import paid_total, validate_amount

logger = logging.getLogger(__name__)


def _lock_dues(session: Session, dues_id: int) -> Optional[Dues]:
    # FOR UPDATE is a no-op on SQLite, where the database-wide write lock serializes writers instead.
    return (
        session.query(Dues)
        .filter(Dues.id == dues_id)
        .with_for_update()
        .populate_existing()
        .one_or_none()
    )


def apply_dues_status(session: Session, dues: Dues) -> str:
    """Recompute ``dues.status`` from the payments currently visible to this transaction."""
    dues.status = derive_status(int(dues.amount), paid_total(session, dues.id))
    session.add(dues)
    session.flush()
    return dues.status


def record_payment(
    session: Session,
    dues_id: int,
    amount: Optional[int],
    method: Optional[str] = None,
    note: Optional[str] = None,
    created_by_id: Optional[int] = None,
) -> Payment:
    """Append a payment to a dues record and refresh its status in one commit."""
    validate_amount(amount)

    dues = _lock_dues(session, dues_id)
    if dues is None:
        raise NotFound("Dues not found")

    try:
        payment = Payment(
            dues_id=dues.id,
            member_id=dues.member_id,
            amount=amount,
            method=method,
            note=note,
            created_by_id=created_by_id,
        )
        session.add(payment)
        session.flush()
        status = apply_dues_status(session, dues)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Failed to record payment of %s against dues %s", amount, dues_id)
        raise StoreError() from exc
    except Exception:
        session.rollback()
        raise

    session.refresh(payment)
    logger.info("Recorded payment %s of %s against dues %s (status=%s)", payment.id, amount, dues_id, status)
    return payment


def clear_payments(session: Session, dues_id: int) -> int:
    """Delete every payment of a dues record and return it to PENDING."""
    dues = _lock_dues(session, dues_id)
    if dues is None:
        raise NotFound("Dues not found")

    try:
        deleted = (
            session.query(Payment)
            .filter(Payment.dues_id == dues_id)
            .delete(synchronize_session=False)
        )
        dues.status = DuesStatus.PENDING
        session.add(dues)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Failed to clear payments for dues %s", dues_id)
        raise StoreError() from exc

    session.expire(dues, ["payments"])
    logger.info("Cleared %s payments from dues %s", deleted, dues_id)
    return deleted
