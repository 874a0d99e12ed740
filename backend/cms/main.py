import json
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from .database import Base, engine, async_session_factory
from .db_models import *
from .config import settings
from .exceptions import CMSError, ConfigurationError
from .auth.router import router as auth_router
from .users.router import router as users_router
from .categories.router import router as categories_router, public_router as public_categories_router
from .articles.router import router as articles_router, public_router as public_articles_router
from .newsletter.router import router as newsletter_router, public_router as public_newsletter_router
from .media.router import router as media_router
from .analytics.router import router as analytics_router, public_router as public_analytics_router
from .settings.router import router as settings_router

# Logging to stdout (container friendly)
log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
logging.basicConfig(
    level=log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)
logger.info(f"Application starting with log level: {settings.LOG_LEVEL}")


async def seed_categories_from_file(path: str) -> None:
    from .categories import service as categories_service
    from .categories.models import Category

    file_path = Path(path)
    if not file_path.exists():
        logger.warning(f"CATEGORY_SEED_FILE not found: {file_path}")
        return

    async with async_session_factory() as session:
        # Seed only if table is empty
        count = (await session.execute(select(func.count(Category.id)))).scalar_one()
        if count > 0:
            logger.info("Categories table is not empty; skipping seed on startup.")
            return
        payload = json.loads(file_path.read_text(encoding="utf-8"))
        items = payload.get("categories", []) if isinstance(payload, dict) else payload
        created = await categories_service.seed_categories(session, items)
        logger.info(f"Seeded categories from {file_path}: created={created}, total={len(items)}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.JWT_SECRET_KEY:
        raise ConfigurationError("JWT_SECRET_KEY is not set; refusing to start")

    if settings.DB_AUTO_CREATE:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured (DB_AUTO_CREATE)")

    if settings.CATEGORY_SEED_FILE:
        try:
            await seed_categories_from_file(settings.CATEGORY_SEED_FILE)
        except (OSError, ValueError, SQLAlchemyError) as e:
            logger.exception(f"Failed to seed categories from {settings.CATEGORY_SEED_FILE}: {e}")

    yield
    await engine.dispose()


def _error_body(code: str, message: str, **extra) -> dict:
    return {"success": False, "error": code, "message": message, **extra}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(CMSError)
    async def cms_error_handler(request: Request, exc: CMSError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.code, exc.message),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", "Invalid input", details=jsonable_encoder(exc.errors())),
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception(f"Database error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content=_error_body("database_error", "Database error"))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        extra = {"details": repr(exc)} if settings.is_development else {}
        return JSONResponse(status_code=500, content=_error_body("unexpected_error", "Unexpected error", **extra))


def create_app() -> FastAPI:
    app = FastAPI(title="Municipal CMS", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    for router in (
        auth_router, users_router, categories_router, articles_router,
        newsletter_router, media_router, analytics_router, settings_router,
    ):
        app.include_router(router, prefix=settings.ADMIN_API_PREFIX)
    for router in (public_categories_router, public_articles_router, public_newsletter_router, public_analytics_router):
        app.include_router(router, prefix=settings.PUBLIC_API_PREFIX)

    if settings.serve_media:
        app.mount(
            settings.MEDIA_URL_PREFIX,
            StaticFiles(directory=settings.MEDIA_ROOT, check_dir=False),
            name="media",
        )
        logger.info(f"Serving {settings.MEDIA_ROOT} under {settings.MEDIA_URL_PREFIX}")

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
