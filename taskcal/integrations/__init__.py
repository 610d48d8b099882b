"""
Remote store integrations behind the RemoteSyncFacade protocol.
"""

from .facade import RemoteSyncFacade
from .memory import InMemoryFacade
from .sync import GoogleSyncFacade, TimeoutFacade, build_default_facade

__all__ = [
    "RemoteSyncFacade",
    "GoogleSyncFacade",
    "TimeoutFacade",
    "InMemoryFacade",
    "build_default_facade",
]
