"""Contest entry workflow.

A submission has a hard path and a soft path. Validation, the duplicate
lookup and the participant-record write raise and end the request. Counter
updates and the notification mail run after the record exists; their failures
are logged and returned as ``StepOutcome`` values, never raised.

The duplicate guard is a lookup followed by a set-if-absent write. Two
concurrent submissions for one address can both pass the lookup, but only one
of them creates the record; the other gets ``DuplicateEntryError``. Counters
are not coordinated with that write or with each other.
"""
import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from contest.core.config import Settings
from contest.core.errors import (
    ContestError,
    CounterError,
    DuplicateEntryError,
    NotificationError,
    StoreError,
    ValidationError,
)
from contest.i18n import translator
from contest.services.draw import OutcomeDraw, RandomSource, default_rng, draw_outcome
from contest.services.notifier import Notification, Notifier
from contest.services.stores import KeyValueStore

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r'[^\s@]+@[^\s@]+\.[^\s@]+')

TOTAL_ATTEMPTS_KEY = 'total_attempts'
TOTAL_WINNERS_KEY = 'total_winners'


def participant_key(email: str) -> str:
    return f'participant:{email}'


def daily_attempts_key(day: datetime) -> str:
    return f'attempts_{day.astimezone(timezone.utc).date().isoformat()}'


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_email(email: Any) -> str:
    if not isinstance(email, str) or not EMAIL_RE.fullmatch(email):
        raise ValidationError(f'rejected email {email!r}')
    return email


@dataclass(frozen=True)
class StepOutcome:
    ok: bool
    error: ContestError | None = None

    @classmethod
    def success(cls) -> 'StepOutcome':
        return cls(True)

    @classmethod
    def failure(cls, error: ContestError) -> 'StepOutcome':
        return cls(False, error)


@dataclass(frozen=True)
class SubmissionResult:
    email: str
    draw: OutcomeDraw
    counters: StepOutcome
    notification: StepOutcome

    @property
    def is_winner(self) -> bool:
        return self.draw.is_winner


class ParticipationService:
    def __init__(
        self,
        store: KeyValueStore,
        notifier: Notifier,
        settings: Settings,
        rng: RandomSource | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.notifier = notifier
        self.settings = settings
        self.rng = rng or default_rng()
        self.clock = clock

    def submit(self, email: Any, locale: str | None = None) -> SubmissionResult:
        locale = locale or self.settings.DEFAULT_LOCALE
        email = validate_email(email)
        key = participant_key(email)

        try:
            existing = self.store.get(key)
        except StoreError as e:
            logger.error('Participant lookup failed for %s', email, exc_info=True)
            raise StoreError(str(e), message_key='submission.lookup_failed') from e
        if existing:
            raise DuplicateEntryError(f'{email} already participated')

        draw = draw_outcome(self.rng, self.settings.WIN_PROBABILITY)
        now = self.clock()
        self._save_record(key, email, draw, now)
        logger.info('Recorded entry for %s (winner=%s)', email, draw.is_winner)

        counters = self._update_counters(draw, now)
        notification = self._notify(email, draw, locale)
        return SubmissionResult(email, draw, counters, notification)

    def _save_record(self, key: str, email: str, draw: OutcomeDraw, now: datetime) -> None:
        record = json.dumps({
            'email': email,
            'isWinner': draw.is_winner,
            'videoLink': draw.video_link,
            'timestamp': now.isoformat(),
        })
        try:
            created = self.store.set(
                key,
                record,
                ttl_seconds=self.settings.PARTICIPANT_TTL_SECONDS,
                only_if_absent=True,
            )
        except StoreError as e:
            logger.error('Participant write failed for %s', email, exc_info=True)
            raise StoreError(str(e), message_key='submission.save_failed') from e
        if not created:
            raise DuplicateEntryError(f'{email} was recorded by a concurrent request')

    def _update_counters(self, draw: OutcomeDraw, now: datetime) -> StepOutcome:
        keys = [TOTAL_ATTEMPTS_KEY, daily_attempts_key(now)]
        if draw.is_winner:
            keys.append(TOTAL_WINNERS_KEY)
        failed = []
        for key in keys:
            try:
                self.store.incr(key)
            except StoreError as e:
                logger.warning('Counter %s not incremented: %s', key, e)
                failed.append(key)
        if failed:
            return StepOutcome.failure(CounterError(failed))
        return StepOutcome.success()

    def build_notification(self, email: str, draw: OutcomeDraw, locale: str) -> Notification:
        outcome_line = translator.t(
            'email.winner' if draw.is_winner else 'email.non_winner', locale=locale
        )
        body = translator.t(
            'email.body',
            locale=locale,
            video_link=draw.video_link,
            outcome_line=outcome_line,
        )
        return Notification(
            to=email,
            sender=self.settings.MAIL_FROM,
            subject=translator.t('email.subject', locale=locale),
            body=body,
        )

    def _notify(self, email: str, draw: OutcomeDraw, locale: str) -> StepOutcome:
        message = self.build_notification(email, draw, locale)
        try:
            self.notifier.send(message)
        except NotificationError as e:
            logger.warning('Mail to %s not sent: %s', email, e)
            return StepOutcome.failure(e)
        except Exception as e:
            logger.warning('Mail to %s not sent', email, exc_info=True)
            return StepOutcome.failure(NotificationError(str(e)))
        return StepOutcome.success()
