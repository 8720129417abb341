"""
Service layer helpers that hold application state and talk to the stores.
"""

from .booking_store import BookingStore
from .sync_gateway import RemoteStoreProtocol, SyncGateway, SyncStatus

__all__ = ["BookingStore", "RemoteStoreProtocol", "SyncGateway", "SyncStatus"]
