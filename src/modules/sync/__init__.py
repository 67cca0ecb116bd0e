"""One-way Todoist synchronization: normalize, map, reconcile, apply."""

from src.modules.sync.executor import SyncExecutor
from src.modules.sync.mapper import map_to_local
from src.modules.sync.normalizer import normalize
from src.modules.sync.reconciler import reconcile
from src.modules.sync.service import SyncService


__all__ = [
    "SyncExecutor",
    "SyncService",
    "map_to_local",
    "normalize",
    "reconcile",
]
