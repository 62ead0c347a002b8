"""Bounded audit log of mutating branch operations."""

import secrets
import time
from collections.abc import Iterator

from gitplex.types.stats import OperationHistoryItem, OperationType

MAX_HISTORY = 50


class OperationHistory:
    """Most-recent-first log; the oldest entry is dropped past ``cap``."""

    def __init__(self, cap: int = MAX_HISTORY) -> None:
        if cap < 1:
            raise ValueError(f"History cap must be >= 1, got {cap}")
        self.cap = cap
        self._items: list[OperationHistoryItem] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[OperationHistoryItem]:
        return iter(list(self._items))

    @property
    def items(self) -> list[OperationHistoryItem]:
        return list(self._items)

    def record(
        self,
        type: OperationType,
        target: str,
        success: bool,
        message: str,
    ) -> OperationHistoryItem:
        item = OperationHistoryItem(
            id=f"{int(time.time() * 1000)}-{secrets.token_hex(5)}",
            type=OperationType(type),
            target=target,
            result="success" if success else "error",
            message=message,
        )
        self._items = [item, *self._items[: self.cap - 1]]
        return item

    def clear(self) -> None:
        self._items = []
