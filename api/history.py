from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlmodel import Session

from api.security import get_current_user
from db.database import get_session
from db.models import ScanRecord, ScanStatus, User
from services.history import list_scans, scan_stats

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("/", response_model=list[ScanRecord])
def read_history(
    status: Optional[ScanStatus] = None,
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """
    The caller's scans, newest first.

    Args:
        status: Only scans with this status (Verified, Suspect, Unknown)
        search: Case-insensitive match on drug name, manufacturer or barcode
    """
    return list_scans(session, user_id=current_user.id, status=status, search=search)


@router.get("/export")
def export_history(
    status: Optional[ScanStatus] = None,
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    scans = list_scans(session, user_id=current_user.id, status=status, search=search)
    return JSONResponse(
        content=jsonable_encoder(scans),
        headers={"Content-Disposition": 'attachment; filename="scan-history.json"'},
    )


@router.get("/stats")
def read_stats(current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return scan_stats(session, current_user.id)
