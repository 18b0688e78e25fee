import threading
from contextlib import contextmanager

from redis.exceptions import LockError, RedisError

from app.core.redis import get_redis_client
from app.core.logging_config import get_logger
from app.core.exceptions import LockUnavailable

logger = get_logger()

LOCK_TIMEOUT = 10
LOCK_WAIT = 5

_local_locks: dict[str, threading.Lock] = {}
_local_locks_guard = threading.Lock()


def _local_lock(name: str) -> threading.Lock:
    with _local_locks_guard:
        lock = _local_locks.get(name)
        if lock is None:
            lock = threading.Lock()
            _local_locks[name] = lock
        return lock


@contextmanager
def keyed_lock(name: str):
    """
    Serialize a critical section across workers.

    Uses a redis lock when REDIS_URL is configured, otherwise a
    process-local lock keyed by the same name.
    """
    client = get_redis_client()

    if client is not None:
        lock = client.lock(f"lock:{name}", timeout=LOCK_TIMEOUT, blocking_timeout=LOCK_WAIT)
        try:
            acquired = lock.acquire()
        except RedisError as e:
            raise LockUnavailable(f"Could not acquire {name}: {e}")
        if not acquired:
            raise LockUnavailable(f"Timed out waiting for {name}")
        try:
            yield
        finally:
            try:
                lock.release()
            except LockError:
                # expired while held; the next holder already owns it
                logger.warning(f"Lock {name} expired before release")
        return

    lock = _local_lock(name)
    if not lock.acquire(timeout=LOCK_WAIT):
        raise LockUnavailable(f"Timed out waiting for {name}")
    try:
        yield
    finally:
        lock.release()
