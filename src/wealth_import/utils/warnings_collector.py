"""
Bounded collection of non-fatal import warnings.
"""
import logging
from typing import List

logger = logging.getLogger(__name__)

DEFAULT_MAX_WARNINGS = 50


class WarningsCollector:
    """
    Collects skip reasons for dropped rows. Keeps at most `limit` messages and
    counts the rest so the result can say how many were left out.
    """

    def __init__(self, limit: int = DEFAULT_MAX_WARNINGS):
        self.limit = max(0, limit)
        self._messages: List[str] = []
        self._overflow = 0

    def add(self, message: str) -> None:
        logger.debug(f"Import warning: {message}")
        if len(self._messages) < self.limit:
            self._messages.append(message)
        else:
            self._overflow += 1

    def extend(self, messages: List[str]) -> None:
        for message in messages:
            self.add(message)

    @property
    def total(self) -> int:
        return len(self._messages) + self._overflow

    def __len__(self) -> int:
        return self.total

    def to_list(self) -> List[str]:
        result = list(self._messages)
        if self._overflow:
            result.append(f"... and {self._overflow} more")
        return result
