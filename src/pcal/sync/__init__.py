"""PCAL Sync -- 本地物化视图与云端关系型存储的双向同步

公开接口导出。
"""

from .client import CloudSyncClient
from .config import SyncConfig, load_sync_config
from .exceptions import RemoteError
from .protocols import SyncRemote
from .reconcile import Reconciler
from .remote_store import SqliteRemoteStore, open_remote_store

__all__ = [
    "CloudSyncClient",
    "SyncConfig",
    "load_sync_config",
    "RemoteError",
    "SyncRemote",
    "Reconciler",
    "SqliteRemoteStore",
    "open_remote_store",
]
