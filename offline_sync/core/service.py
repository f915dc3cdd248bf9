"""
Host-facing operations.

Binds the sync engine to an application data directory and a notification
sink, and keeps sync runs against one storage directory from overlapping.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Dict, List, Optional, Sequence

from .config import SyncConfig
from .errors import SyncInProgressError
from .notifications import NotificationSink
from .sync_engine import SyncEngine


_active_dirs: Dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()


def _storage_lock(offline_dir: str) -> threading.Lock:
    key = os.path.realpath(offline_dir)
    with _registry_lock:
        return _active_dirs.setdefault(key, threading.Lock())


class OfflineContentService:
    def __init__(self,
                 app_data_dir: os.PathLike | str,
                 sink: Optional[NotificationSink] = None,
                 config: Optional[SyncConfig] = None,
                 engine: Optional[SyncEngine] = None):
        self.logger = logging.getLogger(__name__)
        self.engine = engine or SyncEngine(app_data_dir, sink=sink, config=config)

    def download_and_store(self, urls: Sequence[str]) -> None:
        """
        Run a sync batch, streaming progress to the sink.

        Raises:
            SyncInProgressError: A batch is already running for this directory
            StorageError, IndexPersistError: The batch could not complete
        """
        lock = _storage_lock(str(self.engine.offline_dir))
        if not lock.acquire(blocking=False):
            self.logger.warning(f"Rejected overlapping sync for {self.engine.offline_dir}")
            raise SyncInProgressError(f"A sync is already running for {self.engine.offline_dir}")
        try:
            self.engine.sync(urls)
        finally:
            lock.release()

    def is_offline_available(self, url: str) -> bool:
        return self.engine.is_available(url)

    def get_offline_content_raw(self, url: str) -> Optional[str]:
        return self.engine.get_raw(url)

    def check_offline_availability(self, urls: Sequence[str]) -> List[bool]:
        return self.engine.check_many(urls)

    def close(self):
        self.engine.close()
