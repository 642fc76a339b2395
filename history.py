from __future__ import annotations

import logging
import os
import time
import uuid
from collections import deque
from typing import List, Optional

from models import BetRequest, HistoryItem, SettlementResult

logger = logging.getLogger(__name__)


def _limit_from_env(default: int = 50) -> int:
    raw = os.getenv("HANDICAP_HISTORY_LIMIT", "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer HANDICAP_HISTORY_LIMIT=%r", raw)
        return default
    return value if value > 0 else default


HISTORY_LIMIT = _limit_from_env()


class SettlementHistory:
    """Newest-first log of settled bets, capped at ``limit`` entries.

    Owned by the caller; the settlement engine never reads or writes it.
    """

    def __init__(self, limit: Optional[int] = None) -> None:
        if limit is None:
            limit = HISTORY_LIMIT
        if limit <= 0:
            raise ValueError(f"History limit must be positive, got {limit}")
        self.limit = limit
        self._items: deque[HistoryItem] = deque(maxlen=self.limit)

    def record(self, request: BetRequest, result: SettlementResult) -> HistoryItem:
        item = HistoryItem(
            id=uuid.uuid4().hex,
            timestamp=int(time.time() * 1000),
            request=request,
            result=result,
        )
        self._items.appendleft(item)
        return item

    def items(self) -> List[HistoryItem]:
        return list(self._items)

    def get(self, item_id: str) -> Optional[HistoryItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
