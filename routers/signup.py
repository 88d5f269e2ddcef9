# routers/signup.py

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from core.errors import ValidationError
from core.rate_limiter import signup_rate_limit
from core.utils import get_client_ip
from dependencies.auth import require_export_key
from dependencies.store import get_signup_store
from models.signup import SignupCountResponse, SignupResponse
from services.signup_service import (
    SUCCESS_MESSAGE,
    count_signups,
    parse_signup,
    submit_signup,
)
from services.signup_store import SignupStore


EXPORT_FILENAME = "signups.csv"


FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


router = APIRouter(
    prefix="/api",
    tags=["Signup"],
)


# -----------------------------------------------------
# Helper — does an export hold anything past the header row?
# -----------------------------------------------------
def has_data_rows(data: bytes) -> bool:
    return len(data.strip().splitlines()) > 1


# -----------------------------------------------------
# Helper — read JSON or form body into a plain dict
# -----------------------------------------------------
async def read_signup_form(request: Request) -> Dict[str, Any]:
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return dict(form)

    body = await request.body()
    if not body.strip():
        return {}

    try:
        data = await request.json()
    except ValueError:
        data = None

    if not isinstance(data, dict):
        raise ValidationError([
            {"field": "body", "message": "Request body must be a JSON object", "location": "body"}
        ])

    return data


# -----------------------------------------------------
# PUBLIC — Join the waitlist
# -----------------------------------------------------
@router.post(
    "/signup",
    response_model=SignupResponse,
    summary="Public: Join the waitlist",
    dependencies=[Depends(signup_rate_limit)],
)
async def signup(request: Request, store: SignupStore = Depends(get_signup_store)):
    payload = parse_signup(await read_signup_form(request))

    settings = request.app.state.settings
    ip = get_client_ip(request, settings.TRUST_FORWARDED_FOR)

    # File / DB I/O plus the write lock stay off the event loop
    await run_in_threadpool(submit_signup, store, payload, ip)

    return SignupResponse(success=True, message=SUCCESS_MESSAGE)


# -----------------------------------------------------
# PUBLIC — Signup count
# -----------------------------------------------------
@router.get(
    "/signup-count",
    response_model=SignupCountResponse,
    summary="Public: Total signups",
)
def signup_count(store: SignupStore = Depends(get_signup_store)):
    return SignupCountResponse(count=count_signups(store))


# -----------------------------------------------------
# ADMIN — Download the raw store (shared secret in ?key=)
# -----------------------------------------------------
@router.get(
    "/download-signups",
    summary="Admin: Download signups as CSV",
    dependencies=[Depends(require_export_key)],
)
def download_signups(store: SignupStore = Depends(get_signup_store)):
    # Raw bytes, undecoded: a store the CSV reader rejects still downloads
    data = store.export_bytes()

    if data is None or not has_data_rows(data):
        return JSONResponse(status_code=404, content={"error": "No signups yet"})

    return Response(
        content=data,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )
