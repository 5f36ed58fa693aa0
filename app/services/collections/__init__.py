"""
Collection services: per-application wiring of the collection domain
"""

from app.services.collections.collection_service import (
    CollectionService,
    get_collection_service,
    init_collection_service,
)

__all__ = ['CollectionService', 'get_collection_service', 'init_collection_service']
