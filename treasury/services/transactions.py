from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from ..constants import TransactionType
from ..core.errors import NotFound, ValidationError
from ..models.models import Organization, Transaction
from .dues import validate_amount

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("type", "amount", "category", "occurred_at", "note")


def _validate_type(value: Optional[str]) -> str:
    normalized = (value or "").strip().upper()
    if normalized not in TransactionType.ALL:
        raise ValidationError(f"type must be one of {', '.join(TransactionType.ALL)}")
    return normalized


def list_transactions(session: Session, organization_id: int, limit: Optional[int] = None) -> List[Transaction]:
    query = (
        session.query(Transaction)
        .options(joinedload(Transaction.created_by))
        .filter(Transaction.organization_id == organization_id)
        .order_by(Transaction.occurred_at.desc(), Transaction.id.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def create_transaction(
    session: Session,
    organization_id: int,
    type: str,
    amount: int,
    category: Optional[str] = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
    created_by_id: Optional[int] = None,
) -> Transaction:
    transaction_type = _validate_type(type)
    validate_amount(amount)
    if session.get(Organization, organization_id) is None:
        raise NotFound("Organization not found")

    transaction = Transaction(
        organization_id=organization_id,
        type=transaction_type,
        amount=amount,
        category=category,
        note=note,
        created_by_id=created_by_id,
    )
    if occurred_at is not None:
        transaction.occurred_at = occurred_at
    session.add(transaction)
    session.commit()
    session.refresh(transaction)
    logger.info(
        "Recorded %s transaction %s of %s for organization %s",
        transaction_type,
        transaction.id,
        amount,
        organization_id,
    )
    return transaction


def update_transaction(session: Session, transaction_id: int, changes: Dict[str, Any]) -> Transaction:
    transaction = session.get(Transaction, transaction_id)
    if transaction is None:
        raise NotFound("Transaction not found")

    updates = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}
    if "type" in updates:
        updates["type"] = _validate_type(updates["type"])
    if "amount" in updates:
        validate_amount(updates["amount"])
    if "occurred_at" in updates and updates["occurred_at"] is None:
        raise ValidationError("occurred_at cannot be cleared")

    for key, value in updates.items():
        setattr(transaction, key, value)
    session.add(transaction)
    session.commit()
    session.refresh(transaction)
    return transaction


def delete_transaction(session: Session, transaction_id: int) -> None:
    transaction = session.get(Transaction, transaction_id)
    if transaction is None:
        raise NotFound("Transaction not found")
    session.delete(transaction)
    session.commit()
    logger.info("Deleted transaction %s", transaction_id)
