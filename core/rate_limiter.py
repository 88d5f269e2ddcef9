# core/rate_limiter.py

from typing import Dict, Tuple, Optional
from fastapi import HTTPException, Request
from collections import defaultdict
from threading import Lock
import time

from core.utils import get_client_ip


RATE_LIMIT_MESSAGE = "Too many submissions from this IP, please try again later."

# Simple in-memory rate limiter, per process.
# For multiple workers, put a shared limiter (Redis, proxy) in front instead.
_rate_limit_store: Dict[str, list] = defaultdict(list)
_lock = Lock()


def check_rate_limit(
    identifier: str,
    max_requests: int = 10,
    window_seconds: int = 900,
) -> Tuple[bool, int]:
    """
    Check if a request should be rate limited.
    
    Args:
        identifier: Unique identifier (usually the caller IP)
        max_requests: Maximum number of requests allowed
        window_seconds: Time window in seconds
    
    Returns:
        Tuple of (allowed: bool, remaining: int)
    """
    now = time.time()
    window_start = now - window_seconds

    with _lock:
        _drop_idle_identifiers(window_start)

        # Remove expired entries
        requests = [ts for ts in _rate_limit_store.get(identifier, []) if ts > window_start]

        # Check if limit exceeded
        if len(requests) >= max_requests:
            _rate_limit_store[identifier] = requests
            return False, 0

        # Add current request
        requests.append(now)
        _rate_limit_store[identifier] = requests

    remaining = max_requests - len(requests)
    return True, remaining


def _drop_idle_identifiers(window_start: float) -> None:
    """Forget origins with no request inside the window. Caller holds _lock."""
    idle = [key for key, stamps in _rate_limit_store.items() if not stamps or stamps[-1] <= window_start]
    for key in idle:
        del _rate_limit_store[key]


def reset_rate_limits() -> None:
    """Forget every tracked origin."""
    with _lock:
        _rate_limit_store.clear()


def get_rate_limit_identifier(request: Request, trust_forwarded: bool = False) -> str:
    """
    Get a unique identifier for rate limiting (the caller IP).
    """
    return f"ip:{get_client_ip(request, trust_forwarded)}"


def require_rate_limit(
    request: Request,
    identifier: Optional[str] = None,
    max_requests: int = 10,
    window_seconds: int = 900,
) -> int:
    """
    Raise HTTPException if the caller has exceeded its budget.
    
    Raises:
        HTTPException: 429 Too Many Requests if limit exceeded
    """
    if identifier is None:
        identifier = get_rate_limit_identifier(request)

    allowed, remaining = check_rate_limit(identifier, max_requests, window_seconds)

    if not allowed:
        raise HTTPException(
            status_code=429,
            detail=RATE_LIMIT_MESSAGE,
            headers={
                "X-RateLimit-Limit": str(max_requests),
                "X-RateLimit-Window": str(window_seconds),
                "Retry-After": str(window_seconds),
            }
        )

    return remaining


def signup_rate_limit(request: Request) -> int:
    """FastAPI dependency: per-origin budget for POST /api/signup."""
    settings = request.app.state.settings
    identifier = get_rate_limit_identifier(request, settings.TRUST_FORWARDED_FOR)
    return require_rate_limit(
        request,
        identifier=identifier,
        max_requests=settings.SIGNUP_RATE_LIMIT_MAX,
        window_seconds=settings.SIGNUP_RATE_LIMIT_WINDOW_SECONDS,
    )
