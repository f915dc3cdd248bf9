"""
Offline sync orchestrator: fetch, extract, store and index a batch of URLs.

Storage lives under ``<base_dir>/offline_content``. A batch is best effort:
URLs that fail to download or save are logged and skipped, and the run still
succeeds as long as the index can be persisted.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Sequence

from .config import SyncConfig
from .content_extractor import ContentExtractor
from .errors import ArtifactWriteError, FetchError, IndexLoadError
from .fetcher import PageFetcher
from .index_store import IndexStore, OfflineIndex
from .logger import ErrorTracker
from .notifications import COMPLETION_MARKER, NotificationSink, SyncProgress
from offline_sync.utils.file_manager import FileManager, derive_filename


OFFLINE_DIR_NAME = "offline_content"


class SyncEngine:
    def __init__(self,
                 base_dir: os.PathLike | str,
                 sink: Optional[NotificationSink] = None,
                 config: Optional[SyncConfig] = None,
                 fetcher: Optional[PageFetcher] = None,
                 extractor: Optional[ContentExtractor] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config or SyncConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.sink = sink or NotificationSink()
        self.offline_dir = Path(base_dir) / OFFLINE_DIR_NAME
        self.fetcher = fetcher or PageFetcher(timeout=self.config.request_timeout,
                                              user_agent=self.config.user_agent)
        self.extractor = extractor or ContentExtractor(self.config.content_selectors,
                                                       title=self.config.document_title)
        self.files = FileManager(self.offline_dir)
        self.index_store = IndexStore(self.offline_dir)
        self.error_tracker = ErrorTracker(self.logger)
        self._lock = threading.Lock()

    def sync(self, urls: Sequence[str]) -> None:
        """
        Download and store every URL, then persist the index once.

        Raises:
            StorageError: The offline directory cannot be created
            IndexPersistError: The final index cannot be written
        """
        urls = list(urls)
        total = len(urls)
        # Failures are reported per run
        self.error_tracker = ErrorTracker(self.logger)
        self.files.ensure_directory()
        index = self._load_index_for_sync()
        completed = 0
        failed = 0

        self.logger.info(f"Starting sync of {total} URLs into {self.offline_dir}")

        def process_one(url: str) -> None:
            nonlocal completed, failed
            # Progress and index updates share one lock so parallel workers
            # emit non-decreasing counters and never mutate the index at once.
            with self._lock:
                self._emit_progress(SyncProgress(total=total, completed=completed, current_item=url))
            filename = self._store_one(url)
            with self._lock:
                if filename is None:
                    failed += 1
                else:
                    index.upsert(url, filename)
                completed += 1

        if self.config.concurrency > 1 and total > 1:
            with ThreadPoolExecutor(max_workers=min(self.config.concurrency, total)) as ex:
                for fut in [ex.submit(process_one, url) for url in urls]:
                    fut.result()
        else:
            for url in urls:
                process_one(url)

        self.index_store.save(index)

        self.logger.info(f"Sync complete: {total} attempted, {failed} failed, "
                         f"{len(index)} entries indexed")
        self._emit_progress(SyncProgress(total=total, completed=total,
                                         current_item=COMPLETION_MARKER, is_complete=True))

    def _store_one(self, url: str) -> Optional[str]:
        """Fetch, extract and write one URL; returns the filename or None."""
        try:
            result = self.fetcher.fetch(url)
        except FetchError as e:
            self.error_tracker.log_error(e, context="fetch", url=url)
            return None

        document = self.extractor.extract(result.html, url)
        filename = derive_filename(url)
        try:
            self.files.save_artifact(filename, document, url=url)
        except ArtifactWriteError as e:
            self.error_tracker.log_error(e, context="write", url=url)
            return None
        return filename

    def _load_index_for_sync(self) -> OfflineIndex:
        try:
            return self.index_store.load()
        except IndexLoadError as e:
            self.error_tracker.log_warning(f"Starting from an empty index: {e}", context="index load")
            return OfflineIndex()

    def _load_index_for_query(self) -> OfflineIndex:
        try:
            return self.index_store.load()
        except IndexLoadError as e:
            self.logger.warning(f"Treating unreadable index as empty: {e}")
            return OfflineIndex()

    def _emit_progress(self, progress: SyncProgress) -> None:
        try:
            self.sink.progress(progress)
        except Exception as e:
            self.logger.warning(f"Progress notification failed: {e}")

    def _available_filename(self, index: OfflineIndex, url: str) -> Optional[str]:
        filename = index.lookup(url)
        if filename is None or not self.index_store.exists(filename):
            return None
        return filename

    def has_offline_copy(self, url: str) -> bool:
        """True iff the URL is indexed and its artifact is on disk."""
        return self._available_filename(self._load_index_for_query(), url) is not None

    def get_raw(self, url: str) -> Optional[str]:
        """Return the stored document, or None if the URL is not available."""
        filename = self._available_filename(self._load_index_for_query(), url)
        if filename is None:
            return None
        return self.files.read_artifact(filename)

    def deliver_content(self, url: str) -> bool:
        """Push the stored document to the sink's content channel if available."""
        content = self.get_raw(url)
        if content is None:
            return False
        try:
            self.sink.content_ready(content)
        except Exception as e:
            self.logger.warning(f"Content notification failed for {url}: {e}")
        return True

    def is_available(self, url: str) -> bool:
        """Availability check that also delivers the content when available."""
        return self.deliver_content(url)

    def check_many(self, urls: Sequence[str]) -> List[bool]:
        index = self._load_index_for_query()
        return [self._available_filename(index, url) is not None for url in urls]

    def close(self):
        self.fetcher.close()
