from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.jwt import resolve_token_user
from ..models.models import Membership
from ..services.notifications import notification_websocket_handler

router = APIRouter()


@router.websocket("/ws")
async def websocket_notifications(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    organization_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
) -> None:
    if not token:
        await websocket.close(code=4401)
        return
    user = resolve_token_user(db, token)
    if user is None:
        await websocket.close(code=4401)
        return
    if organization_id is None:
        await websocket.close(code=4403)
        return
    membership = (
        db.query(Membership)
        .filter(Membership.user_id == user.id, Membership.organization_id == organization_id)
        .first()
    )
    if membership is None:
        await websocket.close(code=4403)
        return

    await notification_websocket_handler(user.id, organization_id, websocket)
