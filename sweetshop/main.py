import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config.logging_config import configure_logging
from .config.settings import Settings
from .db.crud import AccountStore
from .db.database import init_db, make_engine, make_session_factory
from .errors import ServiceError
from .routers import auth as auth_router
from .routers import inventory as inventory_router
from .security.hashing import PasswordHasher
from .security.tokens import SessionIssuer
from .services.accounts import AccountService

logger = logging.getLogger(__name__)


def _error_response(status_code: int, kind: str, detail) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"kind": kind, "detail": detail})


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return _error_response(exc.status_code, exc.kind, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Report which fields failed, without echoing the submitted values
        problems = [
            "{}: {}".format(".".join(str(part) for part in error["loc"] if part != "body"), error["msg"])
            for error in exc.errors()
        ]
        return _error_response(status.HTTP_400_BAD_REQUEST, "validation_error", "; ".join(problems) or "Invalid input")

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", "Internal server error")


def bootstrap_admin(app: FastAPI) -> None:
    settings = app.state.settings
    if not (settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD):
        return
    db = app.state.session_factory()
    try:
        service = AccountService(AccountStore(db, app.state.hasher), app.state.issuer)
        service.bootstrap_admin(settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
    finally:
        db.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Builds the application; every collaborator gets the same Settings value."""
    settings = settings or Settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="SweetShop Inventory Management",
        description="API for managing a sweet shop's stock behind role-based access.",
        version="1.0.0",
    )

    engine = make_engine(settings.DATABASE_URL)
    init_db(engine)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
    app.state.issuer = SessionIssuer(settings)

    register_exception_handlers(app)

    # Include routers
    app.include_router(auth_router.router)
    app.include_router(inventory_router.router)

    @app.get("/health", tags=["Health"])
    def health_check():
        return {"status": "ok"}

    bootstrap_admin(app)
    logger.info("SweetShop API ready")
    return app
