from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..core.version import get_version_info

router = APIRouter()


@router.get("/health")
def health(db: Session = Depends(get_db)) -> Dict[str, Any]:
    db.execute(text("SELECT 1"))
    return {"status": "ok", **get_version_info()}


@router.get("/version")
def version() -> Dict[str, Any]:
    return get_version_info()
