import logging
import threading
from typing import Callable

from contest.core.config import Settings
from contest.services.draw import RandomSource
from contest.services.notifier import Notifier, build_notifier
from contest.services.participation import ParticipationService
from contest.services.stats import StatsReporter
from contest.services.stores import KeyValueStore, build_store

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Process-wide holder for the store and notifier clients.

    Clients are built on first use. A failed build raises on the request that
    triggered it and is retried on the next one.
    """

    def __init__(
        self,
        settings: Settings,
        store_factory: Callable[[Settings], KeyValueStore] = build_store,
        notifier_factory: Callable[[Settings], Notifier] = build_notifier,
        rng: RandomSource | None = None,
    ):
        self.settings = settings
        self._store_factory = store_factory
        self._notifier_factory = notifier_factory
        self._rng = rng
        self._store: KeyValueStore | None = None
        self._notifier: Notifier | None = None
        self._lock = threading.Lock()

    @property
    def store(self) -> KeyValueStore:
        if self._store is None:
            with self._lock:
                if self._store is None:
                    self._store = self._store_factory(self.settings)
                    logger.info('Store client ready (%s)', self.settings.STORE_BACKEND)
        return self._store

    @property
    def notifier(self) -> Notifier:
        if self._notifier is None:
            with self._lock:
                if self._notifier is None:
                    self._notifier = self._notifier_factory(self.settings)
                    logger.info('Notifier ready (%s)', self.settings.MAIL_BACKEND)
        return self._notifier

    def participation_service(self) -> ParticipationService:
        return ParticipationService(self.store, self.notifier, self.settings, rng=self._rng)

    def stats_reporter(self) -> StatsReporter:
        return StatsReporter(self.store, self.settings.PRIZE_POOL)
