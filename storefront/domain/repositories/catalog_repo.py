# storefront/domain/repositories/catalog_repo.py

from __future__ import annotations
from pathlib import Path
from typing import Any, Optional
import json
import logging
import httpx

from storefront.core.errors import CatalogUnavailableError, DataError
from storefront.domain.repositories.kv_backend import KeyValueBackend
from storefront.utils.cache import kv_get_json, kv_set_json

logger = logging.getLogger(__name__)


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


class CatalogRepo:
    """
    Where the catalog document comes from.
    The admin-managed copy lives in a key-value slot; until an admin has
    published one, the read-only seed at `source` (file path or URL) is used.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        key: str = "products",
        source: Optional[str] = None,
        timeout_s: float = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.backend = backend
        self.key = key
        self.source = source
        self.timeout_s = timeout_s
        self.transport = transport

    async def get_stored(self) -> Optional[Any]:
        try:
            return await kv_get_json(self.backend, self.key)
        except json.JSONDecodeError as e:
            raise DataError(f"Stored catalog '{self.key}' is not valid JSON: {e}") from e

    async def fetch_source(self) -> Any:
        if not self.source:
            logger.warning("No catalog source configured, starting with an empty catalog")
            return {"products": []}

        if _is_url(self.source):
            try:
                async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
                    resp = await client.get(self.source)
                    resp.raise_for_status()
            except httpx.HTTPError as e:
                raise CatalogUnavailableError(f"Catalog fetch from {self.source} failed: {e}") from e
            text = resp.text
        else:
            try:
                text = Path(self.source).read_text(encoding="utf-8")
            except OSError as e:
                raise CatalogUnavailableError(f"Catalog file {self.source} unreadable: {e}") from e

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise DataError(f"Catalog source {self.source} is not valid JSON: {e}") from e

    async def fetch_document(self) -> Any:
        stored = await self.get_stored()
        if stored is not None:
            logger.info("catalog from slot key=%s", self.key)
            return stored
        logger.info("catalog from source=%s", self.source)
        return await self.fetch_source()

    async def save_document(self, document: Any) -> None:
        await kv_set_json(self.backend, self.key, document)
        logger.info("catalog saved key=%s products=%s", self.key, len(document.get("products") or []))
