# retailer_api/main.py
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from retailer_api import __version__
from retailer_api.config import Settings, get_settings
from retailer_api.db import StoreFactory, check_db_health
from retailer_api.accounts.errors import CredentialError
from retailer_api.accounts.flows import build_account_services
from retailer_api.accounts.mailer import EmailGateway
from retailer_api.accounts.auth_routes import router as auth_router
from retailer_api.accounts.routes import router as profile_router
from retailer_api.uploads import FileReferenceResolver

# =========================
# Logging
# =========================
logger = logging.getLogger("retailer")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")


# =========================
# Error Rendering
# =========================
def error_json(message: str, status: int = 400, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message}, headers=headers)


async def credential_error_handler(request: Request, exc: CredentialError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return error_json(exc.message, exc.status_code, headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg") if errors else None
    return error_json(message or "Invalid input", 400)


async def http_exc_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_json(message, exc.status_code, getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_json("Internal server error", 500)


# =========================
# App Setup
# =========================
def create_app(
    settings: Optional[Settings] = None,
    *,
    store_factory: Optional[StoreFactory] = None,
    email_gateway: Optional[EmailGateway] = None,
    upload_resolver: Optional[FileReferenceResolver] = None,
) -> FastAPI:
    """
    Build the API.

    Collaborator overrides exist for tests; production passes nothing and
    everything is derived from the environment once, here.
    """
    settings = settings or get_settings()

    app = FastAPI(title="Retailer Credential API", version=__version__)
    app.state.settings = settings
    app.state.services = build_account_services(
        settings,
        store_factory=store_factory,
        email_gateway=email_gateway,
        upload_resolver=upload_resolver,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CredentialError, credential_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exc_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(auth_router)
    app.include_router(profile_router)

    @app.get("/health")
    async def health():
        db = await check_db_health(app.state.services.pool)
        return {"status": "ok", "version": __version__, **db}

    return app


app = create_app()
