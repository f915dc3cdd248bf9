"""
Progress and content notifications pushed to the host during sync runs.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Optional


COMPLETION_MARKER = "Complete"


@dataclass(frozen=True)
class SyncProgress:
    total: int
    completed: int
    current_item: str
    is_complete: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class NotificationSink:
    """
    Receives push notifications from the sync engine.

    The default implementation ignores everything; hosts override the
    methods they care about.
    """

    def progress(self, progress: SyncProgress) -> None:
        pass

    def content_ready(self, content: str) -> None:
        pass


class CallbackSink(NotificationSink):
    """Adapts plain callables to the sink interface."""

    def __init__(self,
                 on_progress: Optional[Callable[[SyncProgress], None]] = None,
                 on_content: Optional[Callable[[str], None]] = None):
        self.on_progress = on_progress
        self.on_content = on_content

    def progress(self, progress: SyncProgress) -> None:
        if self.on_progress:
            self.on_progress(progress)

    def content_ready(self, content: str) -> None:
        if self.on_content:
            self.on_content(content)
