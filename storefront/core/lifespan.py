# storefront/core/lifespan.py
from contextlib import asynccontextmanager
import logging
from fastapi import FastAPI

from storefront.core.errors import StorefrontError
from storefront.db import redis as r
from storefront.domain.repositories.catalog_repo import CatalogRepo
from storefront.domain.repositories.kv_backend import build_backend
from storefront.domain.services.storefront_svc import Storefront

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings

    # --- Startup ---
    # A backend injected by create_app (tests) wins; otherwise Redis if reachable, files if not
    backend = getattr(app.state, "backend", None)
    connected_redis = False
    if backend is None:
        await r.connect(settings.REDIS_URL)
        connected_redis = r.get_redis() is not None
        backend = build_backend(settings, r.get_redis())
        app.state.backend = backend

    storefront = Storefront(settings, backend)
    repo = CatalogRepo(
        backend,
        key=settings.catalog_key,
        source=settings.CATALOG_SOURCE,
        timeout_s=settings.catalog_fetch_timeout_s,
    )

    # Catalog is mandatory: a bad or unreachable catalog aborts startup
    try:
        storefront.load_catalog(await repo.fetch_document())
    except StorefrontError as e:
        logger.error("Catalog load failed, aborting startup: %s", e)
        if connected_redis:
            await r.disconnect()
        raise

    app.state.storefront = storefront
    app.state.catalog_repo = repo
    logger.info("Storefront ready products=%s backend=%s", len(storefront.catalog), backend.kind)

    # Application runs
    yield

    # --- Shutdown ---
    if connected_redis:
        await r.disconnect()
