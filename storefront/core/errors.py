"""
Storefront error taxonomy.

Catalog errors abort a load without touching the live catalog.
Cart errors reject a single call and leave the cart as it was.
PersistenceError never leaves the cart store: it is logged and the cart
keeps working in memory.
"""


class StorefrontError(Exception):
    """Base class for every engine error."""


# ---------------- Catalog ----------------

class DataError(StorefrontError):
    """Malformed catalog input (bad document, missing id, negative price...)."""


class CatalogNotLoadedError(StorefrontError):
    """A view was requested before the first catalog load finished."""


class CatalogUnavailableError(StorefrontError):
    """The catalog source could not be read (missing file, HTTP failure)."""


# ---------------- Cart ----------------

class NotFoundError(StorefrontError):
    """The product id does not exist in the catalog."""

    def __init__(self, product_id: str):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class OutOfStockError(StorefrontError):
    """The product exists but is not in stock."""

    def __init__(self, product_id: str):
        super().__init__(f"Product is out of stock: {product_id}")
        self.product_id = product_id


class InvalidQuantityError(StorefrontError, ValueError):
    """Quantity to add is below 1."""


class EmptyCartError(StorefrontError):
    """Checkout requested with nothing in the cart."""


# ---------------- Storage ----------------

class PersistenceError(StorefrontError):
    """Key-value backend read or write failed."""
