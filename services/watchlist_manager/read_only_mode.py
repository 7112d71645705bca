"""
Read-only mode flag.
"""
from typing import Optional

from shared.configs.models import ReadOnlyConfig


class ReadOnlyMode:
    """Settings-driven read-only switch. While set, watchlist writes are skipped."""

    def __init__(self, config: Optional[ReadOnlyConfig] = None):
        config = config or ReadOnlyConfig()
        self._enabled = config.enabled
        self._reason = config.reason

    def is_read_only(self) -> bool:
        return self._enabled

    def get_reason(self) -> Optional[str]:
        if not self._enabled:
            return None
        return self._reason or "The wiki is in read-only mode"

    def set_reason(self, reason: Optional[str]) -> None:
        """Enter read-only mode with the given reason, or leave it with None."""
        self._enabled = reason is not None
        self._reason = reason
