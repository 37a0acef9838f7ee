from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.access import authorize
from ..auth.jwt import get_current_user
from ..constants import WRITE_ROLES
from ..models.models import User
from ..schemas.schemas import ReminderRunRequest, ReminderRunResult
from ..services.reminders import send_monthly_reminders

router = APIRouter()


@router.post("/monthly", response_model=ReminderRunResult)
def run_monthly_reminders(
    payload: ReminderRunRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ReminderRunResult:
    authorize(db, user, payload.organization_id, WRITE_ROLES)
    result = send_monthly_reminders(db, payload.organization_id, month=payload.month, year=payload.year)
    return ReminderRunResult.model_validate(result)
