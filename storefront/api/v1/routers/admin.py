# storefront/api/v1/routers/admin.py
from fastapi import APIRouter, Depends, HTTPException, Request
import json
import logging

from storefront.api.deps import catalog_repo_dep, require_admin, settings_dep, storefront_dep
from storefront.api.v1.schemas.storefront import CatalogUpdateOut, LoginIn, LoginOut
from storefront.core.errors import DataError
from storefront.core.security import check_password, issue_admin_token
from storefront.domain.services.catalog_store import CatalogStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/login", response_model=LoginOut)
async def login(body: LoginIn, settings = Depends(settings_dep)):
    if not check_password(settings, body.password):
        logger.warning("admin login rejected")
        raise HTTPException(status_code=401, detail="Invalid password")
    logger.info("admin login ok")
    return {"success": True, "token": issue_admin_token(settings)}


@router.get("/check", dependencies=[Depends(require_admin)])
async def check():
    return {"success": True}


@router.get("/products", dependencies=[Depends(require_admin)])
async def get_catalog(storefront = Depends(storefront_dep)):
    return storefront.catalog.to_document()


@router.put("/products", response_model=CatalogUpdateOut, dependencies=[Depends(require_admin)])
async def replace_catalog(
    request: Request,
    storefront = Depends(storefront_dep),
    repo = Depends(catalog_repo_dep),
):
    """
    Replace the whole catalog. The document is validated in a scratch store
    first, so a bad upload leaves both the stored slot and the live catalog
    untouched.
    """
    # body read here, after the admin check, so anonymous callers never get it parsed
    try:
        document = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DataError(f"Catalog document is not valid JSON: {e}") from e

    scratch = CatalogStore()
    scratch.load_document(document)

    await repo.save_document(document)
    storefront.catalog.load(scratch.get_all())
    categories = storefront.catalog.get_categories()
    logger.info("admin catalog replaced products=%s", len(storefront.catalog))
    return {"success": True, "products": len(storefront.catalog), "categories": categories}
