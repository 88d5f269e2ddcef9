# -------------------------
# Signup Models
# -------------------------
from .signup import (
    SIGNUP_COLUMNS,
    SIGNUP_HEADER,
    SignupRole,
    SignupCreate,
    SignupRecord,
    SignupRow,
    SignupResponse,
    SignupCountResponse,
    HealthResponse,
    utc_timestamp,
)
