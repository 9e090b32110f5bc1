import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# -------------------
# USER MODEL
# -------------------
class PublicUser(SQLModel):
    id: str
    fullname: str
    email: str
    created_at: Optional[datetime] = None


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    fullname: str
    email: str = Field(index=True, unique=True)  # always stored lower-case
    password_hash: str
    created_at: datetime = Field(default_factory=utc_now)


# -------------------
# SCAN MODEL
# -------------------
class ScanStatus(str, Enum):
    VERIFIED = "Verified"
    SUSPECT = "Suspect"
    UNKNOWN = "Unknown"


class ScanRecord(SQLModel, table=True):
    __tablename__ = "scans"

    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    barcode: str
    drug_name: str = "N/A"
    manufacturer: str = "N/A"
    status: ScanStatus = ScanStatus.UNKNOWN
    reason: Optional[str] = None
    is_flagged: bool = False
    source_model: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now, index=True)
