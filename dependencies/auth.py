# dependencies/auth.py

import hmac
from typing import Optional, Protocol

from fastapi import Depends, Query, Request

from core.errors import AuthError


# ============================================================
# Authenticator interface
# ============================================================
class Authenticator(Protocol):
    def authorize(self, presented_credential: Optional[str]) -> bool:
        ...


class SharedSecretAuthenticator:
    """
    Static shared-secret check for the signup export.
    With no secret configured nothing is authorized.
    """

    def __init__(self, secret: Optional[str]):
        self.secret = secret or None

    def authorize(self, presented_credential: Optional[str]) -> bool:
        if self.secret is None or not presented_credential:
            return False

        return hmac.compare_digest(
            presented_credential.encode("utf-8"),
            self.secret.encode("utf-8"),
        )


# ============================================================
# FastAPI dependencies
# ============================================================
def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


def require_export_key(
    key: Optional[str] = Query(None, description="Export shared secret"),
    authenticator: Authenticator = Depends(get_authenticator),
) -> None:
    if not authenticator.authorize(key):
        raise AuthError()
