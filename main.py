from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Core
from core.config import Settings, settings as default_settings
from core.config_validator import validate_config_on_startup
from core.errors import SignupServiceError, StorageError
from core.logging_config import logger

from dependencies.auth import SharedSecretAuthenticator
from services.signup_store import build_signup_store

# -------------------------------------------------
# Routers
# -------------------------------------------------
from routers.signup import router as signup_router
from routers.health import router as health_router


# -------------------------------------------------
# Create the Application
# -------------------------------------------------
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    validate_config_on_startup(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Waitlist signup API: form intake, count and CSV export",
    )

    app.state.settings = settings
    app.state.signup_store = build_signup_store(settings)
    app.state.authenticator = SharedSecretAuthenticator(settings.EXPORT_KEY)

    # -------------------------------------------------
    # CORS
    # -------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------
    # Startup: make sure the store exists
    # -------------------------------------------------
    @app.on_event("startup")
    async def on_startup():
        store = app.state.signup_store
        logger.info(f"🚀 Starting {settings.PROJECT_NAME} ({settings.ENV})")
        try:
            store.ensure_exists()
        except StorageError as e:
            # Appends recreate the file with its header, so keep serving
            logger.error(f"Could not initialise signup store: {e.detail}")
        logger.info(f"Signup store ({settings.SIGNUP_STORE_BACKEND}): {store.location}")
        # From the schema: app.routes may hold router entries without a .path
        for path, operations in app.openapi().get("paths", {}).items():
            methods = ",".join(sorted(m.upper() for m in operations))
            logger.info(f"➡️ {methods:10s} {path}")

    # -------------------------------------------------
    # Error handling
    # -------------------------------------------------
    @app.exception_handler(SignupServiceError)
    async def handle_signup_error(request: Request, exc: SignupServiceError):
        if isinstance(exc, StorageError):
            logger.error(f"Storage error at {request.url.path} — {exc.detail}", exc_info=exc)
        elif exc.status_code in (401, 403):
            logger.warning(f"HTTP {exc.status_code} at {request.url.path} — {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(StarletteHTTPException)
    async def handle_http(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (401, 403, 429, 500):
            logger.warning(
                f"HTTP {exc.status_code} at {request.url.path} — {exc.detail}"
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.error("Unhandled error at %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # -------------------------------------------------
    # Register Routers
    # -------------------------------------------------
    app.include_router(signup_router)
    app.include_router(health_router)

    return app


# Create the global FastAPI instance
app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT)
