"""Organization-scoped authorization.

Every route that touches an organization's books calls :func:`authorize` once,
before any service call, with the organization the request targets. Routes that
address a record by id (a member, a dues row, a transaction) resolve the record's
organization first and authorize against that.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ..core.errors import AccessDenied, NotFound
from ..models.models import Dues, Member, Membership, Organization, Transaction, User

logger = logging.getLogger(__name__)


def authorize(
    db: Session,
    user: User,
    organization_id: Optional[int],
    roles: Iterable[str] = (),
) -> Membership:
    if organization_id is None:
        raise AccessDenied("Organization is required")
    organization = db.get(Organization, organization_id)
    if organization is None:
        raise NotFound("Organization not found")

    membership = (
        db.query(Membership)
        .filter(Membership.user_id == user.id, Membership.organization_id == organization_id)
        .first()
    )
    if membership is None:
        logger.info("User %s denied access to organization %s (no membership)", user.id, organization_id)
        raise AccessDenied("Access denied to organization")

    allowed = set(roles)
    if allowed and membership.role not in allowed:
        logger.info(
            "User %s denied access to organization %s (role %s not in %s)",
            user.id,
            organization_id,
            membership.role,
            sorted(allowed),
        )
        raise AccessDenied("Operation not permitted for your role")
    return membership


def organization_of_member(db: Session, member_id: int) -> int:
    member = db.get(Member, member_id)
    if member is None:
        raise NotFound("Member not found")
    return member.organization_id


def organization_of_dues(db: Session, dues_id: int) -> int:
    dues = db.get(Dues, dues_id)
    if dues is None:
        raise NotFound("Dues not found")
    return dues.organization_id


def organization_of_transaction(db: Session, transaction_id: int) -> int:
    transaction = db.get(Transaction, transaction_id)
    if transaction is None:
        raise NotFound("Transaction not found")
    return transaction.organization_id
