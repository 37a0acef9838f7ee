from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.access import authorize, organization_of_transaction
from ..auth.jwt import get_current_user
from ..constants import WRITE_ROLES
from ..models.models import Transaction, User
from ..schemas.schemas import TransactionCreate, TransactionRead, TransactionUpdate
from ..services import transactions as transaction_service

router = APIRouter()


@router.get("", response_model=List[TransactionRead])
def list_transactions(
    organization_id: int = Query(...),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> List[Transaction]:
    authorize(db, user, organization_id)
    return transaction_service.list_transactions(db, organization_id, limit=limit)


@router.post("", response_model=TransactionRead, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
) -> Transaction:
    authorize(db, actor, payload.organization_id, WRITE_ROLES)
    return transaction_service.create_transaction(
        db,
        payload.organization_id,
        payload.type,
        payload.amount,
        category=payload.category,
        occurred_at=payload.occurred_at,
        note=payload.note,
        created_by_id=actor.id,
    )


@router.patch("/{transaction_id}", response_model=TransactionRead)
def update_transaction(
    transaction_id: int,
    payload: TransactionUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
) -> Transaction:
    authorize(db, actor, organization_of_transaction(db, transaction_id), WRITE_ROLES)
    return transaction_service.update_transaction(db, transaction_id, payload.model_dump(exclude_unset=True))


@router.delete("/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
) -> Response:
    authorize(db, actor, organization_of_transaction(db, transaction_id), WRITE_ROLES)
    transaction_service.delete_transaction(db, transaction_id)
    return Response(status_code=204)
