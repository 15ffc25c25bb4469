import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import applications as applications_api
from .api import auth as auth_api
from .api import subjects as subjects_api
from .api import uploads as uploads_api
from .config import Settings, get_settings
from .database import build_engine, build_session_factory, init_db
from .services.file_storage import UploadStore
from .services.session_store import SessionStore
from .utils.error_handlers import create_error_response, get_error_message

logger = logging.getLogger(__name__)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTPException with user-friendly messages."""
        return create_error_response(exc.status_code, exc.detail, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        """Missing or malformed input is a plain 400 for this API, not FastAPI's 422."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(p) for p in first.get("loc", ())[1:]) or "request"
        message = f"{field}: {first.get('msg')}" if first else get_error_message("validation_error")
        return create_error_response(400, message)

    @app.exception_handler(OperationalError)
    async def sqlalchemy_operational_error_handler(request: Request, exc: OperationalError):
        """Handle database operational errors."""
        logger.exception("Database OperationalError: %s", exc)
        return create_error_response(503, get_error_message("database_error"))

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
        """Handle general database errors."""
        logger.exception("Database SQLAlchemyError: %s", exc)
        return create_error_response(500, get_error_message("server_error"))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle unexpected errors globally."""
        logger.exception("Unhandled exception: %s", exc)
        return create_error_response(500, get_error_message("server_error"))


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = build_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            init_db(engine)
            app.state.upload_store.ensure_root()
            app.state.db_init_error = None
        except Exception as e:
            logger.exception("Startup initialization failed: %s", e)
            app.state.db_init_error = str(e)
        yield
        engine.dispose()

    app = FastAPI(title="Internship Application API", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.session_store = SessionStore(max_age_s=settings.session_max_age_s)
    app.state.upload_store = UploadStore(settings.upload_dir, max_bytes=settings.max_upload_bytes)
    app.state.db_init_error = None

    app.include_router(auth_api.router)
    app.include_router(applications_api.router)
    app.include_router(subjects_api.router)
    app.include_router(uploads_api.router)

    _register_exception_handlers(app)

    _default_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[*_default_origins, *settings.frontend_origins],
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {
            "status": "Backend running",
            "service": "Internship Application API"
        }

    @app.get("/db/health")
    def db_health():
        if app.state.db_init_error:
            logger.error("DB health check failed, init error: %s", app.state.db_init_error)
            raise HTTPException(
                status_code=503,
                detail=get_error_message("database_error"),
            )

        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            raise HTTPException(
                status_code=503,
                detail=get_error_message("database_error"),
            )

        return {"status": "ok"}

    return app


app = create_app()
