"""
Cache Backend Selector

Decides which backend serves cache operations and owns the fallback
transition.

State machine:

    initialize()
      ├── no REDIS_URL and not production ─────────────► LOCAL
      ├── connect ok (within retry budget) ────────────► DISTRIBUTED
      └── retry budget exhausted ──────────────────────► LOCAL (permanent)

    DISTRIBUTED ── report_failure(connection error) ──► LOCAL (permanent)

There is no transition back to the distributed backend for the lifetime of
the process. Transitions are logged, never raised.

Author: Platform Team
Date: 2025-10-02
"""

from dataclasses import dataclass

from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from member_ops.core.config.constants import BackendKind
from member_ops.core.config.settings import Settings, get_settings
from member_ops.core.exceptions import CacheConnectionError
from member_ops.core.logging.logger import get_logger, log_stage
from member_ops.infrastructure.cache.local_store import LocalStore
from member_ops.infrastructure.cache.redis_client import RedisClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class ActiveBackend:
    """The backend serving calls right now. Exactly one of the handles is set."""

    kind: BackendKind
    redis: RedisClient | None = None
    local: LocalStore | None = None

    @property
    def is_distributed(self) -> bool:
        return self.kind is BackendKind.DISTRIBUTED


class BackendSelector:
    """
    Chooses between the distributed (Redis) and local cache backends.

    Usage:
        selector = BackendSelector(settings)
        await selector.initialize()
        backend = selector.active
        ...
        selector.report_failure(error)   # on a Redis connection error
        await selector.shutdown()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        redis_client: RedisClient | None = None,
        local_store: LocalStore | None = None,
    ):
        self._settings = settings or get_settings()
        cache_settings = self._settings.cache
        self._redis = redis_client
        self._local = local_store or LocalStore(
            default_ttl=cache_settings.CACHE_DEFAULT_TTL,
            check_period=cache_settings.CACHE_CHECK_PERIOD,
        )
        self._kind = BackendKind.LOCAL
        self._distributed_disabled = False

    @property
    def local_store(self) -> LocalStore:
        return self._local

    @property
    def redis_client(self) -> RedisClient | None:
        return self._redis

    @property
    def active(self) -> ActiveBackend:
        if self._kind is BackendKind.DISTRIBUTED and self._redis is not None:
            return ActiveBackend(kind=BackendKind.DISTRIBUTED, redis=self._redis)
        return ActiveBackend(kind=BackendKind.LOCAL, local=self._local)

    @property
    def distributed_disabled(self) -> bool:
        """True once the distributed backend was given up for this process."""
        return self._distributed_disabled

    def _wants_distributed(self) -> bool:
        return bool(self._settings.redis.REDIS_URL) or self._settings.is_production

    async def initialize(self) -> ActiveBackend:
        """
        Select the initial backend.

        STAGE-BS.1: Backend selection

        The local store is always started so that a later fallback finds it
        running.
        """
        self._local.start()

        if not self._wants_distributed():
            log_stage(logger, "BS.1", "Using local cache backend", reason="no distributed cache configured")
            self._kind = BackendKind.LOCAL
            return self.active

        if self._redis is None:
            self._redis = RedisClient(self._settings)

        try:
            await self._connect_with_backoff()
        except (CacheConnectionError, RetryError) as e:
            self._distributed_disabled = True
            self._kind = BackendKind.LOCAL
            log_stage(
                logger,
                "BS.1",
                "Distributed cache unavailable, using local cache backend",
                level="warning",
                error=str(e),
                attempts=self._settings.cache.CACHE_RECONNECT_MAX_ATTEMPTS,
            )
            return self.active

        self._kind = BackendKind.DISTRIBUTED
        log_stage(logger, "BS.1", "Using distributed cache backend")
        return self.active

    async def _connect_with_backoff(self) -> None:
        """
        Connect with capped linear backoff: delay after attempt n is
        min(base * n, max_delay).
        """
        cache_settings = self._settings.cache
        base = cache_settings.CACHE_RECONNECT_BASE_DELAY
        redis_client = self._redis

        @retry(
            stop=stop_after_attempt(max(1, cache_settings.CACHE_RECONNECT_MAX_ATTEMPTS)),
            wait=wait_incrementing(start=base, increment=base, max=cache_settings.CACHE_RECONNECT_MAX_DELAY),
            retry=retry_if_exception_type(CacheConnectionError),
            before_sleep=lambda retry_state: logger.info(
                "Retrying distributed cache connection",
                stage="BS.1.1",
                attempt=retry_state.attempt_number,
                delay=round(retry_state.next_action.sleep, 3),
            ),
            reraise=True,
        )
        async def _attempt() -> None:
            await redis_client.connect()

        await _attempt()

    def report_failure(self, error: Exception) -> None:
        """
        Record a distributed backend failure and fall back to local.

        STAGE-BS.2: Fail-safe fallback

        Only connection errors trigger the switch. Once switched, the
        distributed backend is not used again by this process.
        """
        if not isinstance(error, CacheConnectionError):
            return
        if self._kind is BackendKind.LOCAL:
            return

        self._kind = BackendKind.LOCAL
        self._distributed_disabled = True
        log_stage(
            logger,
            "BS.2",
            "Distributed cache connection lost, switched to local cache backend",
            level="warning",
            error=str(error),
        )

    async def shutdown(self) -> None:
        """
        STAGE-BS.3: Backend cleanup
        """
        if self._redis is not None:
            await self._redis.disconnect()
        await self._local.shutdown()
        log_stage(logger, "BS.3", "Cache backends shut down")
