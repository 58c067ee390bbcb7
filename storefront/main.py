from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging, os

from storefront.core.config import Settings, get_settings
from storefront.core.errors import (
    CatalogNotLoadedError,
    CatalogUnavailableError,
    DataError,
    EmptyCartError,
    InvalidQuantityError,
    NotFoundError,
    OutOfStockError,
    PersistenceError,
    StorefrontError,
)
from storefront.core.lifespan import lifespan
from storefront.core.logging import configure_logging
from storefront.api.v1.routers.admin import router as admin_router
from storefront.api.v1.routers.health import router as health_router
from storefront.api.v1.routers.orders import router as orders_router
from storefront.api.v1.routers.products import router as products_router

logger = logging.getLogger(__name__)

# Most specific first: InvalidQuantityError is matched before its bases
ERROR_STATUS = [
    (NotFoundError, 404),
    (OutOfStockError, 409),
    (InvalidQuantityError, 422),
    (DataError, 422),
    (EmptyCartError, 400),
    (CatalogNotLoadedError, 503),
    (CatalogUnavailableError, 503),
    (PersistenceError, 503),
]


async def storefront_error_handler(request: Request, exc: StorefrontError):
    status = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
    if status >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, status, exc)
    else:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, status, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def create_app(settings: Settings | None = None, backend=None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.backend = backend  # None => chosen at startup (Redis or files)

    # ------- CORS -------
    # ALLOWED_ORIGINS from env (CSV), e.g. "https://shop.example.com,https://www.shop.example.com"
    allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
    allowed_origins = [o.strip() for o in allowed_origins_env.split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or ["*"],
        allow_credentials=False,                        # bearer tokens, no cookies
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    app.add_exception_handler(StorefrontError, storefront_error_handler)

    # ------- Routes -------
    app.include_router(health_router)
    app.include_router(products_router, prefix=settings.api_prefix)
    app.include_router(orders_router, prefix=settings.api_prefix)
    app.include_router(admin_router)
    return app


settings = get_settings()
configure_logging(level=logging.DEBUG if settings.DEBUG else logging.INFO)

app = create_app(settings)
