# storefront/api/deps.py
from typing import Optional
from fastapi import Depends, Header, HTTPException, Request
from storefront.core.security import bearer_token, verify_admin_token
from storefront.domain.repositories.catalog_repo import CatalogRepo
from storefront.domain.services.storefront_svc import Storefront

# Settings the app was created with (may differ from get_settings() in tests)
def settings_dep(request: Request):
    return request.app.state.settings

# The session-wide catalog, index, view resolver and formatter
def storefront_dep(request: Request) -> Storefront:
    return request.app.state.storefront

def catalog_repo_dep(request: Request) -> CatalogRepo:
    return request.app.state.catalog_repo

# Admin gate: rejects before the request body is looked at
def require_admin(
    authorization: Optional[str] = Header(default=None),
    settings = Depends(settings_dep),
) -> None:
    if not verify_admin_token(settings, bearer_token(authorization)):
        raise HTTPException(status_code=401, detail="Unauthorized")
