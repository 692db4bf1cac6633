# Catalog Sync Services
from .normalizer import ProductNormalizer
from .resolver import ReferenceResolver
from .pipeline import CatalogSyncPipeline, SyncCancelled

__all__ = [
    "ProductNormalizer",
    "ReferenceResolver",
    "CatalogSyncPipeline",
    "SyncCancelled",
]
