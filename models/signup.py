from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, EmailStr, field_validator
from sqlmodel import SQLModel, Field

from core.utils import normalize_email, sanitize_text


# --------------------------------------------------------------------
# ROLES accepted on the public waitlist form ("" = not specified)
# --------------------------------------------------------------------
SignupRole = Literal["aspiring", "licensed", "provider", ""]


# --------------------------------------------------------------------
# Store layout: (record field, CSV header title), in column order
# --------------------------------------------------------------------
SIGNUP_COLUMNS: List[Tuple[str, str]] = [
    ("timestamp", "Timestamp"),
    ("email", "Email"),
    ("name", "Name"),
    ("role", "Role"),
    ("accreditation", "Accreditation Number"),
    ("comments", "Comments"),
    ("ip", "IP Address"),
]

SIGNUP_HEADER: List[str] = [title for _, title in SIGNUP_COLUMNS]


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2025-01-31T09:15:02.123Z"""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# --------------------------------------------------------------------
# PUBLIC REQUEST BODY — what the waitlist form sends
# --------------------------------------------------------------------
class SignupCreate(BaseModel):
    email: EmailStr
    role: SignupRole

    name: Optional[str] = None
    accreditation: Optional[str] = None
    comments: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def _bare_address_only(cls, value):
        # EmailStr would reduce "Name <a@x.com>" to the address
        if isinstance(value, str) and ("<" in value or ">" in value):
            raise ValueError("display-name form is not accepted")
        return value

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("name", "accreditation", "comments")
    @classmethod
    def _sanitize(cls, value: Optional[str]) -> Optional[str]:
        return sanitize_text(value) if value is not None else None


# --------------------------------------------------------------------
# STORED RECORD
# --------------------------------------------------------------------
class SignupRecord(BaseModel):
    timestamp: str
    email: str
    name: str = ""
    role: str = ""
    accreditation: str = ""
    comments: str = ""
    ip: str = ""

    def to_row(self) -> List[str]:
        return [getattr(self, field) for field, _ in SIGNUP_COLUMNS]

    @classmethod
    def from_row(cls, row: Dict[str, Optional[str]]) -> "SignupRecord":
        """Build from a CSV row keyed by header title. Missing cells read as ""."""
        return cls(**{field: row.get(title) or "" for field, title in SIGNUP_COLUMNS})


# --------------------------------------------------------------------
# SQL table for the `sql` store backend
# --------------------------------------------------------------------
class SignupRow(SQLModel, table=True):
    __tablename__ = "signups"

    id: Optional[int] = Field(default=None, primary_key=True)

    timestamp: str
    email: str = Field(index=True)
    name: str = ""
    role: str = ""
    accreditation: str = ""
    comments: str = ""
    ip: str = ""

    @classmethod
    def from_record(cls, record: SignupRecord) -> "SignupRow":
        return cls(**record.model_dump())

    def to_record(self) -> SignupRecord:
        return SignupRecord(**self.model_dump(exclude={"id"}))


# --------------------------------------------------------------------
# API RESPONSES
# --------------------------------------------------------------------
class SignupResponse(BaseModel):
    success: bool = True
    message: str


class SignupCountResponse(BaseModel):
    count: int


class HealthResponse(BaseModel):
    status: str = "OK"
    signups_file: bool
