"""Adapters implementing the domain catalog port."""

from .http import HttpDomainCatalog
from .memory import InMemoryDomainCatalog
from .mongo import CATALOG_COLLECTIONS, MongoDomainCatalog

__all__ = [
    "CATALOG_COLLECTIONS",
    "HttpDomainCatalog",
    "InMemoryDomainCatalog",
    "MongoDomainCatalog",
]
