from typing import List

from fastapi import APIRouter, Depends

from ..auth.jwt import get_current_user
from ..constants import ROLE_PRIORITY
from ..models.models import Membership, User
from ..schemas.schemas import MembershipRead, MeRead

router = APIRouter()


def _sort_memberships_by_priority(memberships: List[Membership]) -> List[Membership]:
    return sorted(
        memberships,
        key=lambda membership: (-ROLE_PRIORITY.get(membership.role, 0), membership.organization_id),
    )


@router.get("/me", response_model=MeRead)
def read_current_user(current_user: User = Depends(get_current_user)) -> MeRead:
    return MeRead(
        id=current_user.id,
        email=current_user.email,
        name=current_user.name,
        memberships=[
            MembershipRead(
                organization_id=membership.organization_id,
                organization_name=membership.organization.name,
                role=membership.role,
            )
            for membership in _sort_memberships_by_priority(list(current_user.memberships))
        ],
    )
