"""
Adapters layer - Document stores the dataset is synchronised with.
"""

from .local_store import LocalDocumentStore
from .remote_store import RemoteStoreClient

__all__ = ["LocalDocumentStore", "RemoteStoreClient"]
