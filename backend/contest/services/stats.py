import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from contest.core.errors import StoreError
from contest.services.participation import (
    TOTAL_ATTEMPTS_KEY,
    TOTAL_WINNERS_KEY,
    daily_attempts_key,
    utcnow,
)
from contest.services.stores import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatsSnapshot:
    total_attempts: int
    attempts_today: int
    winners: int
    prizes_remaining: int


class StatsReporter:
    """Reads the contest counters concurrently; any single unreadable counter reports as 0."""

    def __init__(
        self,
        store: KeyValueStore,
        prize_pool: int,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.prize_pool = prize_pool
        self.clock = clock

    def _read_counter(self, key: str) -> int:
        try:
            raw = self.store.get(key)
        except StoreError as e:
            logger.warning('Counter %s unreadable, reporting 0: %s', key, e)
            return 0
        if raw is None:
            return 0
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning('Counter %s holds %r, reporting 0', key, raw)
            return 0

    async def report(self) -> StatsSnapshot:
        keys = (TOTAL_ATTEMPTS_KEY, daily_attempts_key(self.clock()), TOTAL_WINNERS_KEY)
        total, today, winners = await asyncio.gather(
            *(asyncio.to_thread(self._read_counter, key) for key in keys)
        )
        # estimate only; concurrent wins are not reserved against the pool
        remaining = max(0, self.prize_pool - winners)
        return StatsSnapshot(total, today, winners, remaining)
