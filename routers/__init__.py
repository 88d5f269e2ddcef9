# routers/__init__.py

from .signup import router as signup_router
from .health import router as health_router
