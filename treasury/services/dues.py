from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..constants import MAX_DUES_YEAR, MIN_DUES_YEAR, DuesStatus
from ..core.errors import ConflictError, NotFound, StoreError, ValidationError
from ..models.models import Dues, DuesConfig, Member, Organization, Payment
from .balances import derive_status

logger = logging.getLogger(__name__)


@dataclass
class SetDuesResult:
    records: List[Dues] = field(default_factory=list)
    created: int = 0
    updated: int = 0

    @property
    def created_or_updated(self) -> int:
        return self.created + self.updated


def validate_period(month: Optional[int], year: Optional[int]) -> None:
    if month is None or year is None:
        raise ValidationError("month and year are required")
    if not isinstance(month, int) or isinstance(month, bool) or not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    if not isinstance(year, int) or isinstance(year, bool) or not MIN_DUES_YEAR <= year <= MAX_DUES_YEAR:
        raise ValidationError(f"year must be between {MIN_DUES_YEAR} and {MAX_DUES_YEAR}")


def validate_amount(amount: Optional[int], label: str = "amount") -> None:
    if amount is None:
        raise ValidationError(f"{label} is required")
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise ValidationError(f"{label} must be a positive whole number")


def _get_organization_or_404(session: Session, organization_id: int) -> Organization:
    organization = session.get(Organization, organization_id)
    if organization is None:
        raise NotFound("Organization not found")
    return organization


def _get_member_or_404(session: Session, organization_id: int, member_id: int) -> Member:
    member = session.get(Member, member_id)
    if member is None or member.organization_id != organization_id:
        raise NotFound("Member not found")
    return member


def find_dues(session: Session, member_id: int, month: int, year: int) -> Optional[Dues]:
    return (
        session.query(Dues)
        .filter(Dues.member_id == member_id, Dues.month == month, Dues.year == year)
        .first()
    )


def paid_total(session: Session, dues_id: int) -> int:
    total = (
        session.query(func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.dues_id == dues_id)
        .scalar()
    )
    return int(total or 0)


def ensure_dues(
    session: Session,
    organization_id: int,
    member_id: int,
    month: int,
    year: int,
    amount: int,
) -> Dues:
    """Return the member's dues for the period, creating a PENDING record if none exists.

    An existing record is returned untouched; its amount is never overwritten here.
    """
    validate_period(month, year)
    validate_amount(amount)
    _get_organization_or_404(session, organization_id)
    _get_member_or_404(session, organization_id, member_id)

    existing = find_dues(session, member_id, month, year)
    if existing:
        return existing

    dues = Dues(
        organization_id=organization_id,
        member_id=member_id,
        month=month,
        year=year,
        amount=amount,
        status=DuesStatus.PENDING,
    )
    session.add(dues)
    try:
        session.commit()
    except IntegrityError:
        # Another request created the same (member, month, year) first.
        session.rollback()
        existing = find_dues(session, member_id, month, year)
        if existing is None:
            raise ConflictError("Dues record could not be created")
        logger.info("Dues for member %s %02d/%s created concurrently; reusing it", member_id, month, year)
        return existing
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Failed to create dues for member %s %02d/%s", member_id, month, year)
        raise StoreError() from exc
    session.refresh(dues)
    logger.info("Created dues %s for member %s %02d/%s amount=%s", dues.id, member_id, month, year, amount)
    return dues


def _upsert_period_dues(
    session: Session,
    organization_id: int,
    member_id: int,
    month: int,
    year: int,
    amount: int,
) -> Tuple[Dues, bool]:
    dues = find_dues(session, member_id, month, year)
    if dues is None:
        dues = Dues(
            organization_id=organization_id,
            member_id=member_id,
            month=month,
            year=year,
            amount=amount,
            status=DuesStatus.PENDING,
        )
        session.add(dues)
        session.flush()
        return dues, True

    dues.amount = amount
    dues.status = derive_status(amount, paid_total(session, dues.id))
    session.add(dues)
    session.flush()
    return dues, False


def set_dues_for_period(
    session: Session,
    organization_id: int,
    month: int,
    year: int,
    amount: int,
    member_id: Optional[int] = None,
) -> SetDuesResult:
    """Administrative upsert of the period's dues amount.

    With ``member_id`` only that member's record is written; without it every
    active member of the organization is upserted in a single transaction.
    """
    validate_period(month, year)
    validate_amount(amount)
    _get_organization_or_404(session, organization_id)
    if member_id is not None:
        _get_member_or_404(session, organization_id, member_id)
        member_ids = [member_id]
    else:
        member_ids = [
            row[0]
            for row in session.query(Member.id)
            .filter(Member.organization_id == organization_id, Member.is_active.is_(True))
            .order_by(Member.id.asc())
            .all()
        ]

    attempts = 2
    for attempt in range(1, attempts + 1):
        result = SetDuesResult()
        try:
            for target_id in member_ids:
                dues, created = _upsert_period_dues(session, organization_id, target_id, month, year, amount)
                result.records.append(dues)
                if created:
                    result.created += 1
                else:
                    result.updated += 1
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            if attempt < attempts:
                logger.warning(
                    "Unique-key collision while setting dues for organization %s %02d/%s; retrying as update",
                    organization_id,
                    month,
                    year,
                )
                continue
            raise ConflictError("Dues records changed concurrently") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Failed to set dues for organization %s %02d/%s", organization_id, month, year)
            raise StoreError() from exc
        except Exception:
            session.rollback()
            raise
        break

    for dues in result.records:
        session.refresh(dues)
    logger.info(
        "Set dues for organization %s %02d/%s amount=%s (created=%s updated=%s)",
        organization_id,
        month,
        year,
        amount,
        result.created,
        result.updated,
    )
    return result


def get_dues_config(session: Session, organization_id: int) -> Tuple[int, str]:
    """Return the organization's default monthly ``(amount, currency)``."""
    config = session.query(DuesConfig).filter(DuesConfig.organization_id == organization_id).first()
    if config:
        return config.amount, config.currency
    return settings.default_dues_amount, settings.default_currency


def save_dues_config(
    session: Session,
    organization_id: int,
    amount: int,
    currency: Optional[str] = None,
) -> DuesConfig:
    validate_amount(amount)
    _get_organization_or_404(session, organization_id)
    config = session.query(DuesConfig).filter(DuesConfig.organization_id == organization_id).first()
    if config is None:
        config = DuesConfig(organization_id=organization_id)
    config.amount = amount
    config.currency = (currency or config.currency or settings.default_currency).upper()
    session.add(config)
    session.commit()
    session.refresh(config)
    return config
