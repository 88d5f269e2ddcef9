# dependencies/store.py

from fastapi import Request

from services.signup_store import SignupStore


def get_signup_store(request: Request) -> SignupStore:
    """The store built for this app in create_app()."""
    return request.app.state.signup_store
