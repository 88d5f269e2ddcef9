# services/signup_service.py

"""
Waitlist signup flow: validate → dedupe-check → append.

Duplicate detection is a full scan of the store on every submission, matched
on the normalized (lower-cased) email. The check and the append run under one
process-wide lock, so two threads in one worker cannot both accept the same
new email. Separate worker processes can still race; that is accepted.
"""

from threading import Lock
from typing import Any, Dict, List, Mapping, Set

from pydantic import ValidationError as PydanticValidationError

from core.errors import DuplicateError, StorageError, ValidationError
from core.logging_config import logger
from models.signup import SignupCreate, SignupRecord, utc_timestamp
from services.signup_store import SignupStore


SUCCESS_MESSAGE = "Thank you for joining our waitlist! We'll be in touch soon."

# Field-level messages shown to the form; anything else uses pydantic's text
FIELD_MESSAGES = {
    "email": "Valid email required",
    "role": "Invalid role",
}

_write_lock = Lock()


def _field_errors(exc: PydanticValidationError) -> List[Dict[str, str]]:
    errors = []
    seen = set()

    for err in exc.errors():
        loc = err.get("loc") or ()
        field = str(loc[0]) if loc else "body"
        if field in seen:
            continue
        seen.add(field)

        errors.append({
            "field": field,
            "message": FIELD_MESSAGES.get(field, err.get("msg", "Invalid value")),
            "location": "body",
        })

    return errors


def parse_signup(data: Mapping[str, Any]) -> SignupCreate:
    """Validate and clean a submitted form. Raises ValidationError."""
    try:
        return SignupCreate.model_validate(dict(data))
    except PydanticValidationError as exc:
        raise ValidationError(_field_errors(exc))


def existing_emails(store: SignupStore) -> Set[str]:
    return {r.email.lower() for r in store.list_all() if r.email}


def submit_signup(store: SignupStore, payload: SignupCreate, ip: str) -> SignupRecord:
    """
    Append a new signup.

    Raises:
        DuplicateError: the normalized email is already stored
        StorageError: the store could not be read or written
    """
    with _write_lock:
        if payload.email.lower() in existing_emails(store):
            logger.warning(f"Duplicate signup rejected: {payload.email}")
            raise DuplicateError()

        record = SignupRecord(
            timestamp=utc_timestamp(),
            email=payload.email,
            name=payload.name or "",
            role=payload.role or "",
            accreditation=payload.accreditation or "",
            comments=payload.comments or "",
            ip=ip,
        )
        store.append(record)

    logger.info(f"New signup: {record.email} ({record.role})")
    return record


def count_signups(store: SignupStore) -> int:
    """Number of stored signups. Read failures are logged and count as 0."""
    try:
        return len(store.list_all())
    except StorageError as e:
        logger.error(f"Signup count failed: {e.detail}")
        return 0
