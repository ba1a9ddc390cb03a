"""
Material Catalog Module (``budget_modules.catalog``).

Responsibility
--------------
Adding, editing, deleting and listing catalog materials.  A direct stock
edit here is the only way to change stock outside the inventory ledger.

Failure modes
-------------
* ``InvalidFieldError`` -- empty name, negative price or stock.
* ``MaterialNotFoundError`` -- unknown id.
* ``OptimisticLockError`` -- the edit was prepared from a stale read.
"""

from budget_modules.catalog.config import CatalogConfig
from budget_modules.catalog.service import CatalogService

__all__ = [
    "CatalogConfig",
    "CatalogService",
]
