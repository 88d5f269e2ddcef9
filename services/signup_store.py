# services/signup_store.py

"""
Persistence for waitlist signups.

Handlers only see the `SignupStore` protocol; the backend is picked from
settings by `build_signup_store()`:

  • csv — one UTF-8 CSV file with a fixed header row (default)
  • sql — a `signups` table through SQLModel (SQLite, Postgres, ...)
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import List, Optional, Protocol

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine, select

from core.config import Settings
from core.errors import StorageError
from core.logging_config import logger
from models.signup import SIGNUP_HEADER, SignupRecord, SignupRow


class SignupStore(Protocol):
    location: str

    def ensure_exists(self) -> None:
        ...

    def exists(self) -> bool:
        ...

    def append(self, record: SignupRecord) -> None:
        ...

    def list_all(self) -> List[SignupRecord]:
        ...

    def export_bytes(self) -> Optional[bytes]:
        ...


def render_csv(records: List[SignupRecord]) -> bytes:
    buffer = io.StringIO(newline="")
    writer = csv.writer(buffer)
    writer.writerow(SIGNUP_HEADER)
    for record in records:
        writer.writerow(record.to_row())
    return buffer.getvalue().encode("utf-8")


# ============================================================
# CSV file backend
# ============================================================
class CsvSignupStore:
    """Append-only CSV file. A missing file reads as an empty store."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    @property
    def location(self) -> str:
        return str(self.path)

    def ensure_exists(self) -> None:
        if self.path.exists():
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow(SIGNUP_HEADER)
        except OSError as e:
            raise StorageError.wrap(e, "Failed to create signups file")

        logger.info(f"Signups file created: {self.path}")

    def exists(self) -> bool:
        return self.path.is_file()

    def append(self, record: SignupRecord) -> None:
        try:
            # The header goes in first if the file vanished since startup
            needs_header = not self.path.exists() or self.path.stat().st_size == 0
            with self.path.open("a", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                if needs_header:
                    writer.writerow(SIGNUP_HEADER)
                writer.writerow(record.to_row())
        except OSError as e:
            raise StorageError.wrap(e, "Failed to append signup")

    def list_all(self) -> List[SignupRecord]:
        if not self.exists():
            return []

        try:
            with self.path.open("r", newline="", encoding="utf-8") as f:
                return [SignupRecord.from_row(row) for row in csv.DictReader(f)]
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise StorageError.wrap(e, "Failed to read signups file")

    def export_bytes(self) -> Optional[bytes]:
        if not self.exists():
            return None

        try:
            return self.path.read_bytes()
        except OSError as e:
            raise StorageError.wrap(e, "Failed to read signups file")


# ============================================================
# SQL backend
# ============================================================
class SqlSignupStore:
    """Signups in a `signups` table; rows are returned in insertion order."""

    def __init__(self, database_url: str):
        # Render/Neon often provide 'postgres://'. SQLAlchemy prefers 'postgresql+psycopg2://'
        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql+psycopg2://", 1)

        self.database_url = database_url
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.engine = create_engine(database_url, echo=False, connect_args=connect_args)

    @property
    def location(self) -> str:
        return self.engine.url.render_as_string(hide_password=True)

    def ensure_exists(self) -> None:
        try:
            SQLModel.metadata.create_all(self.engine, tables=[SignupRow.__table__])
        except SQLAlchemyError as e:
            raise StorageError.wrap(e, "Failed to create signups table")

    def exists(self) -> bool:
        try:
            return inspect(self.engine).has_table(SignupRow.__tablename__)
        except SQLAlchemyError as e:
            raise StorageError.wrap(e, "Failed to inspect signups table")

    def append(self, record: SignupRecord) -> None:
        try:
            with Session(self.engine) as session:
                session.add(SignupRow.from_record(record))
                session.commit()
        except SQLAlchemyError as e:
            raise StorageError.wrap(e, "Failed to append signup")

    def list_all(self) -> List[SignupRecord]:
        if not self.exists():
            return []

        try:
            with Session(self.engine) as session:
                rows = session.exec(select(SignupRow).order_by(SignupRow.id)).all()
                return [row.to_record() for row in rows]
        except SQLAlchemyError as e:
            raise StorageError.wrap(e, "Failed to read signups table")

    def export_bytes(self) -> Optional[bytes]:
        if not self.exists():
            return None
        return render_csv(self.list_all())


def build_signup_store(settings: Settings) -> SignupStore:
    if settings.SIGNUP_STORE_BACKEND == "sql":
        return SqlSignupStore(settings.DATABASE_URL)
    return CsvSignupStore(settings.SIGNUPS_FILE)
