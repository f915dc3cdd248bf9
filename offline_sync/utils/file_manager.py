"""
File Management Utilities

This module derives stable local filenames from URLs and reads and writes the
offline artifacts stored under the offline content directory.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional
import logging

from offline_sync.core.errors import ArtifactReadError, ArtifactWriteError, StorageError


ARTIFACT_EXTENSION = ".html"
MAX_FILENAME_LENGTH = 200
# Most filesystems cap a name at 255 bytes, extension included
MAX_FILENAME_BYTES = 255 - len(ARTIFACT_EXTENSION)

_UNSAFE_CHARS = re.compile(r'[/:?&=]')
_SCHEME_PREFIXES = ('https_', 'http_')


def derive_filename(url: str) -> str:
    """
    Map a URL to a flat local filename.

    Distinct URLs that only differ in the replaced characters map to the same
    name; the later download overwrites the earlier one.

    Args:
        url: Source URL

    Returns:
        Filename ending in .html, free of / : ? & =
    """
    filename_base = _UNSAFE_CHARS.sub('_', url)

    for prefix in _SCHEME_PREFIXES:
        if filename_base.startswith(prefix):
            filename_base = filename_base[len(prefix):]
            break

    filename_base = filename_base[:MAX_FILENAME_LENGTH]
    encoded = filename_base.encode('utf-8')
    if len(encoded) > MAX_FILENAME_BYTES:
        # Drop the partial character left at the cut
        filename_base = encoded[:MAX_FILENAME_BYTES].decode('utf-8', errors='ignore')
    return f"{filename_base}{ARTIFACT_EXTENSION}"


class FileManager:
    """
    Manages the artifact files of the offline content directory.
    """

    def __init__(self, offline_dir: str):
        """
        Initialize the file manager.

        Args:
            offline_dir: Directory holding index.json and the artifacts
        """
        self.offline_dir = Path(offline_dir)
        self.logger = logging.getLogger(__name__)

    def ensure_directory(self) -> Path:
        """Create the offline directory (and parents) if needed."""
        try:
            self.offline_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create offline directory {self.offline_dir}: {e}") from e
        if not os.access(self.offline_dir, os.W_OK):
            raise StorageError(f"Offline directory is not writable: {self.offline_dir}")
        return self.offline_dir

    def generate_filename(self, url: str) -> str:
        return derive_filename(url)

    def artifact_path(self, filename: str) -> Path:
        return self.offline_dir / filename

    def save_artifact(self, filename: str, content: str, url: Optional[str] = None) -> Path:
        """
        Write an artifact, replacing any previous version.

        Args:
            filename: Name produced by derive_filename
            content: Offline HTML document
            url: Source URL, for error reporting

        Returns:
            Path of the written file
        """
        path = self.artifact_path(filename)
        try:
            with open(path, 'w', encoding='utf-8', newline='') as f:
                f.write(content)
        except OSError as e:
            raise ArtifactWriteError(f"Failed to write file {filename}: {e}", url=url) from e

        self.logger.info(f"Saved artifact ({path.stat().st_size} bytes): {filename}")
        return path

    def read_artifact(self, filename: str) -> Optional[str]:
        """
        Read an artifact back exactly as written.

        Returns:
            File content, or None if the file does not exist
        """
        path = self.artifact_path(filename)
        try:
            with open(path, 'r', encoding='utf-8', newline='') as f:
                return f.read()
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise ArtifactReadError(f"Failed to read offline content {filename}: {e}") from e

    def get_output_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the offline directory.

        Returns:
            Dictionary with artifact count and total size
        """
        stats = {
            'artifact_files': 0,
            'total_size': 0,
            'offline_dir': str(self.offline_dir),
        }

        if self.offline_dir.exists():
            artifacts = list(self.offline_dir.glob(f'*{ARTIFACT_EXTENSION}'))
            stats['artifact_files'] = len(artifacts)
            stats['total_size'] = sum(f.stat().st_size for f in artifacts)

        return stats
