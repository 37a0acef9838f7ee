from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.access import authorize, organization_of_member
from ..auth.jwt import get_current_user
from ..constants import ADMIN_ROLES, WRITE_ROLES
from ..core.errors import ValidationError
from ..models.models import Member, User
from ..schemas.schemas import MemberCreate, MemberImportResult, MemberRead, MemberUpdate
from ..services import members as member_service

router = APIRouter()


@router.get("", response_model=List[MemberRead])
def list_members(
    organization_id: int = Query(...),
    active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[Member]:
    authorize(db, user, organization_id)
    return member_service.list_members(db, organization_id, active=active)


@router.post("", response_model=MemberRead, status_code=201)
def create_member(
    payload: MemberCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Member:
    authorize(db, user, payload.organization_id, WRITE_ROLES)
    return member_service.create_member(
        db,
        payload.organization_id,
        payload.full_name,
        email=payload.email,
        phone=payload.phone,
    )


@router.post("/import", response_model=MemberImportResult)
async def import_members(
    organization_id: int = Query(...),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> MemberImportResult:
    authorize(db, user, organization_id, WRITE_ROLES)
    raw = await file.read()
    try:
        content = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ValidationError("CSV must be UTF-8 encoded") from exc
    result = member_service.import_members_csv(db, organization_id, content)
    return MemberImportResult(
        created=len(result.created),
        skipped=result.skipped,
        members=[MemberRead.model_validate(member) for member in result.created],
    )


@router.get("/export")
def export_members(
    organization_id: int = Query(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Response:
    authorize(db, user, organization_id)
    content = member_service.export_members_csv(db, organization_id)
    headers = {"Content-Disposition": f'attachment; filename="members-{organization_id}.csv"'}
    return Response(content=content, media_type="text/csv", headers=headers)


@router.get("/{member_id}", response_model=MemberRead)
def get_member(
    member_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Member:
    authorize(db, user, organization_of_member(db, member_id))
    return member_service.get_member(db, member_id)


@router.patch("/{member_id}", response_model=MemberRead)
def update_member(
    member_id: int,
    payload: MemberUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Member:
    authorize(db, user, organization_of_member(db, member_id), WRITE_ROLES)
    return member_service.update_member(db, member_id, payload.model_dump(exclude_unset=True))


@router.delete("/{member_id}", status_code=204)
def delete_member(
    member_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> Response:
    authorize(db, user, organization_of_member(db, member_id), ADMIN_ROLES)
    member_service.delete_member(db, member_id)
    return Response(status_code=204)
