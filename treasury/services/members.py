from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.errors import NotFound, ValidationError
from ..models.models import Member, Organization
from ..utils.csv_utils import csv_to_rows, rows_to_csv

logger = logging.getLogger(__name__)

IMPORT_HEADERS = ("full_name", "email", "phone")
UPDATABLE_FIELDS = ("full_name", "email", "phone", "is_active")


@dataclass
class MemberImportResult:
    created: List[Member] = field(default_factory=list)
    skipped: int = 0


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _require_organization(session: Session, organization_id: int) -> None:
    if session.get(Organization, organization_id) is None:
        raise NotFound("Organization not found")


def list_members(session: Session, organization_id: int, active: Optional[bool] = None) -> List[Member]:
    query = session.query(Member).filter(Member.organization_id == organization_id)
    if active is not None:
        query = query.filter(Member.is_active.is_(active))
    return query.order_by(Member.full_name.asc(), Member.id.asc()).all()


def get_member(session: Session, member_id: int) -> Member:
    member = session.get(Member, member_id)
    if member is None:
        raise NotFound("Member not found")
    return member


def create_member(
    session: Session,
    organization_id: int,
    full_name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> Member:
    name = _clean(full_name)
    if not name:
        raise ValidationError("full_name is required")
    _require_organization(session, organization_id)

    member = Member(
        organization_id=organization_id,
        full_name=name,
        email=_clean(email),
        phone=_clean(phone),
    )
    session.add(member)
    session.commit()
    session.refresh(member)
    logger.info("Created member %s in organization %s", member.id, organization_id)
    return member


def update_member(session: Session, member_id: int, changes: Dict[str, Any]) -> Member:
    member = get_member(session, member_id)
    for key, value in changes.items():
        if key not in UPDATABLE_FIELDS:
            continue
        if key == "full_name":
            value = _clean(value)
            if not value:
                raise ValidationError("full_name cannot be blank")
        elif key in ("email", "phone"):
            value = _clean(value)
        elif value is None:
            raise ValidationError("is_active cannot be null")
        setattr(member, key, value)
    session.add(member)
    session.commit()
    session.refresh(member)
    return member


def delete_member(session: Session, member_id: int) -> None:
    """Remove the member together with every dues record and payment it owns."""
    member = get_member(session, member_id)
    session.delete(member)
    session.commit()
    logger.info("Deleted member %s from organization %s", member_id, member.organization_id)


def import_members_csv(session: Session, organization_id: int, content: str) -> MemberImportResult:
    """Create members from a ``full_name,email,phone`` CSV.

    Rows without a name are skipped, as are rows whose email already belongs to
    a member of the organization (or to an earlier row of the same file).
    """
    _require_organization(session, organization_id)
    try:
        rows = csv_to_rows(content, required_headers=("full_name",))
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    known_emails = {
        email
        for (email,) in session.query(func.lower(Member.email))
        .filter(Member.organization_id == organization_id, Member.email.isnot(None))
        .all()
    }

    result = MemberImportResult()
    for row in rows:
        name = _clean(row.get("full_name"))
        email = _clean(row.get("email"))
        if not name:
            result.skipped += 1
            continue
        if email and email.lower() in known_emails:
            result.skipped += 1
            continue
        member = Member(
            organization_id=organization_id,
            full_name=name,
            email=email,
            phone=_clean(row.get("phone")),
        )
        session.add(member)
        result.created.append(member)
        if email:
            known_emails.add(email.lower())

    session.commit()
    for member in result.created:
        session.refresh(member)
    logger.info(
        "Imported %s members into organization %s (skipped=%s)",
        len(result.created),
        organization_id,
        result.skipped,
    )
    return result


def export_members_csv(session: Session, organization_id: int) -> str:
    _require_organization(session, organization_id)
    members = list_members(session, organization_id)
    return rows_to_csv(
        list(IMPORT_HEADERS) + ["is_active"],
        [
            [member.full_name, member.email or "", member.phone or "", "true" if member.is_active else "false"]
            for member in members
        ],
    )
