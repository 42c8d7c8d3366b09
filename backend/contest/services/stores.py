"""Key-value store adapters.

Both adapters expose the same three operations and raise ``StoreError`` for
any backend failure, so callers never see client-library exceptions.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from sqlalchemy import Integer, Text, and_, case, cast, null, or_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from upstash_redis import Redis

from contest.core.config import Settings, store_credentials
from contest.core.database import make_engine, make_session_factory
from contest.core.errors import ConfigurationError, StoreError
from contest.models.kv_entry import KVEntry

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(
        self,
        key: str,
        value: str,
        ttl_seconds: int | None = None,
        only_if_absent: bool = False,
    ) -> bool: ...

    def incr(self, key: str) -> int: ...


class UpstashStore:
    """Upstash Redis over its REST API."""

    def __init__(self, url: str, token: str):
        try:
            self._redis = Redis(url=url, token=token)
        except Exception as e:
            logger.error('Redis initialization error', exc_info=True)
            raise ConfigurationError(f'Failed to initialize Redis connection: {e}') from e

    def get(self, key: str) -> str | None:
        try:
            return self._redis.get(key)
        except Exception as e:
            raise StoreError(f'GET {key} failed: {e}') from e

    def set(self, key, value, ttl_seconds=None, only_if_absent=False) -> bool:
        try:
            result = self._redis.set(key, value, ex=ttl_seconds, nx=only_if_absent)
        except Exception as e:
            raise StoreError(f'SET {key} failed: {e}') from e
        # NX that did not write answers nil
        return bool(result)

    def incr(self, key: str) -> int:
        try:
            return int(self._redis.incr(key))
        except Exception as e:
            raise StoreError(f'INCR {key} failed: {e}') from e


_UPSERTS = {
    'sqlite': sqlite_insert,
    'postgresql': pg_insert,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlStore:
    """Key-value semantics on a single SQLAlchemy table.

    Expired rows read as absent. Timestamps are kept as naive UTC. Writes are
    single upsert statements, so concurrent ``set``/``incr`` calls on one key
    never lose updates. Needs a dialect with ``ON CONFLICT`` (SQLite,
    PostgreSQL).
    """

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], datetime] = _utcnow):
        self._session_factory = session_factory
        self._clock = clock

    @classmethod
    def from_url(cls, url: str) -> 'SqlStore':
        return cls(make_session_factory(make_engine(url)))

    def _now(self) -> datetime:
        return self._clock().astimezone(timezone.utc).replace(tzinfo=None)

    def _expired(self, now: datetime):
        return and_(KVEntry.expires_at.is_not(None), KVEntry.expires_at <= now)

    def _upsert(self, db: Session):
        dialect = db.get_bind().dialect.name
        if dialect not in _UPSERTS:
            raise StoreError(f'{dialect} has no ON CONFLICT support')
        return _UPSERTS[dialect](KVEntry)

    def get(self, key: str) -> str | None:
        try:
            with self._session_factory() as db:
                entry = db.get(KVEntry, key)
        except SQLAlchemyError as e:
            raise StoreError(f'GET {key} failed: {e}') from e
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._now():
            return None
        return entry.value

    def set(self, key, value, ttl_seconds=None, only_if_absent=False) -> bool:
        now = self._now()
        expires_at = now + timedelta(seconds=ttl_seconds) if ttl_seconds else None
        try:
            with self._session_factory() as db:
                stmt = self._upsert(db).values(key=key, value=value, expires_at=expires_at)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[KVEntry.key],
                    set_={'value': stmt.excluded.value, 'expires_at': stmt.excluded.expires_at},
                    # NX overwrites only a row that has already expired
                    where=self._expired(now) if only_if_absent else None,
                ).returning(KVEntry.key)
                written = db.execute(stmt).first() is not None
                db.commit()
                return written
        except SQLAlchemyError as e:
            raise StoreError(f'SET {key} failed: {e}') from e

    def incr(self, key: str) -> int:
        now = self._now()
        expired = self._expired(now)
        as_int = cast(KVEntry.value, Integer)
        try:
            with self._session_factory() as db:
                stmt = self._upsert(db).values(key=key, value='1', expires_at=None)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[KVEntry.key],
                    set_={
                        'value': case((expired, '1'), else_=cast(as_int + 1, Text)),
                        'expires_at': case((expired, null()), else_=KVEntry.expires_at),
                    },
                    # a live non-integer value is left untouched and returns no row
                    where=or_(expired, cast(as_int, Text) == KVEntry.value),
                ).returning(KVEntry.value)
                row = db.execute(stmt).first()
                db.commit()
        except SQLAlchemyError as e:
            raise StoreError(f'INCR {key} failed: {e}') from e
        if row is None:
            raise StoreError(f'INCR {key} failed: value is not an integer')
        return int(row[0])


def build_store(cfg: Settings) -> KeyValueStore:
    if cfg.STORE_BACKEND == 'upstash':
        url, token = store_credentials(cfg)
        return UpstashStore(url, token)
    if cfg.STORE_BACKEND == 'sql':
        logger.info('Using SQL key-value store at %s', cfg.DATABASE_URL)
        return SqlStore.from_url(cfg.DATABASE_URL)
    raise ConfigurationError(f'Unknown STORE_BACKEND {cfg.STORE_BACKEND!r}')
