"""
Offline index persistence.

The index maps each cached URL to the filename of its offline artifact and is
stored as ``<offline_dir>/index.json``::

    { "entries": { "<url>": "<filename>", ... } }

It is the single source of truth for what is cached: a URL missing from the
index, or an entry whose file is gone, simply means "not available".
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import IndexLoadError, IndexPersistError


INDEX_FILENAME = "index.json"

logger = logging.getLogger(__name__)


def _default_file_mode() -> int:
    # NamedTemporaryFile creates 0600; match what open() would give instead
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


@dataclass
class OfflineIndex:
    entries: Dict[str, str] = field(default_factory=dict)

    def lookup(self, url: str) -> Optional[str]:
        return self.entries.get(url)

    def upsert(self, url: str, filename: str) -> None:
        self.entries[url] = filename

    def __len__(self) -> int:
        return len(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {"entries": dict(self.entries)}

    @classmethod
    def from_dict(cls, data: Any) -> "OfflineIndex":
        if not isinstance(data, dict) or not isinstance(data.get("entries"), dict):
            raise IndexLoadError("Index must be an object with an 'entries' mapping")
        entries = data["entries"]
        for url, filename in entries.items():
            if not isinstance(filename, str):
                raise IndexLoadError(f"Index entry for {url} is not a filename", url=url)
        return cls(entries=dict(entries))


def lookup(index: OfflineIndex, url: str) -> Optional[str]:
    return index.lookup(url)


class IndexStore:
    def __init__(self, offline_dir: os.PathLike | str):
        self.offline_dir = Path(offline_dir)
        self.path = self.offline_dir / INDEX_FILENAME

    def load(self) -> OfflineIndex:
        """
        Read the index from disk.

        Returns:
            The stored index, or an empty one if no index file exists yet

        Raises:
            IndexLoadError: The file exists but cannot be read or parsed
        """
        if not self.path.exists():
            return OfflineIndex()
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise IndexLoadError(f"Failed to parse index {self.path}: {e}") from e
        index = OfflineIndex.from_dict(data)
        logger.debug(f"Loaded {len(index)} index entries from {self.path}")
        return index

    def save(self, index: OfflineIndex) -> Path:
        """
        Atomically replace the index file.

        Raises:
            IndexPersistError: Serialization or the write failed
        """
        temp_name = None
        try:
            payload = json.dumps(index.to_dict(), indent=2, ensure_ascii=False, sort_keys=True)
            with tempfile.NamedTemporaryFile(
                'w', encoding='utf-8', dir=str(self.offline_dir),
                prefix='.index-', suffix='.tmp', delete=False
            ) as handle:
                temp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(temp_name, _default_file_mode())
            os.replace(temp_name, self.path)
        except (OSError, TypeError, ValueError) as e:
            if temp_name and os.path.exists(temp_name):
                os.unlink(temp_name)
            raise IndexPersistError(f"Failed to write index {self.path}: {e}") from e

        logger.info(f"Saved index with {len(index)} entries: {self.path}")
        return self.path

    def exists(self, filename: str) -> bool:
        return (self.offline_dir / filename).is_file()
