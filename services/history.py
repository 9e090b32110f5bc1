"""
Scan history: an append-only log of verification outcomes, one row per attempt.

Records are written once and never updated or deleted here. Each append is its
own transaction, so concurrent verifications cannot overwrite each other.
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select, col, or_, func

from db.models import ScanRecord, ScanStatus, User, new_id, utc_now
from services.errors import PersistenceError, UnknownUser
from services.rules import scan_status
from services.schemas import DrugQuery, VerificationVerdict

logger = logging.getLogger(__name__)


def append_scan(session: Session, record: ScanRecord) -> ScanRecord:
    """Persist a new scan with a fresh id and a server-side timestamp."""
    if session.get(User, record.user_id) is None:
        raise UnknownUser(record.user_id)

    record.id = new_id()
    record.timestamp = utc_now()
    try:
        session.add(record)
        session.commit()
        session.refresh(record)
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Failed to add scan to history")
        raise PersistenceError("Could not save scan to history.") from e

    logger.info("Recorded scan %s for user %s (%s)", record.id, record.user_id, record.status.value)
    return record


def record_verdict(session: Session, user_id: str, query: DrugQuery, verdict: VerificationVerdict) -> ScanRecord:
    record = ScanRecord(
        user_id=user_id,
        barcode=query.primary_identifier(),
        drug_name=verdict.drug_name or "N/A",
        manufacturer=verdict.manufacturer or "N/A",
        status=scan_status(verdict),
        reason=verdict.reason,
        is_flagged=verdict.is_suspect,
        source_model=verdict.source_model,
    )
    return append_scan(session, record)


def list_scans(session: Session, user_id: Optional[str] = None, status: Optional[ScanStatus] = None,
               search: Optional[str] = None) -> list[ScanRecord]:
    """All matching scans, most recent first."""
    statement = select(ScanRecord)
    if user_id:
        statement = statement.where(ScanRecord.user_id == user_id)
    if status:
        statement = statement.where(ScanRecord.status == status)
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        statement = statement.where(or_(
            func.lower(ScanRecord.drug_name).like(pattern),
            func.lower(ScanRecord.manufacturer).like(pattern),
            func.lower(ScanRecord.barcode).like(pattern),
        ))
    statement = statement.order_by(col(ScanRecord.timestamp).desc())

    try:
        return list(session.exec(statement).all())
    except SQLAlchemyError as e:
        logger.exception("Failed to read scan history")
        raise PersistenceError("Could not retrieve scan history.") from e


def get_scan(session: Session, scan_id: str) -> Optional[ScanRecord]:
    return session.get(ScanRecord, scan_id)


def scan_stats(session: Session, user_id: str) -> dict:
    statement = (
        select(ScanRecord.status, func.count())
        .where(ScanRecord.user_id == user_id)
        .group_by(ScanRecord.status)
    )
    try:
        rows = session.exec(statement).all()
    except SQLAlchemyError as e:
        logger.exception("Failed to count scans")
        raise PersistenceError("Could not retrieve scan history.") from e

    counts = {status.value: 0 for status in ScanStatus}
    for status, count in rows:
        counts[ScanStatus(status).value] = count
    return {"total": sum(counts.values()), "by_status": counts}
