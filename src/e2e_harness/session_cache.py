"""Session cache deduplicating login work across test cases.

A ``SessionCache`` is constructed explicitly (usually by a session-scoped
pytest fixture) and maps a key such as ``SessionKey("standard", email)``
to at most one ``AuthContext``.

Usage::

    cache = SessionCache()
    auth = await cache.get_or_establish(
        identity.session_key,
        lambda: authenticator.authenticate(identity),
        validate=validate_via_profile(client),
        scope=CacheScope.PROCESS,
        label=identity.label,
    )

Invariants:
    - At most one establishment is in flight per key. Late arrivals await
      the pending placeholder instead of logging in a second time.
    - A cached context is validated before it is handed out again.
    - Establishment errors are propagated unchanged and nothing is cached.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Hashable, Iterator, Optional

import anyio

from e2e_harness.errors import SessionEstablishmentError
from e2e_harness.models import AuthContext

logger = logging.getLogger(__name__)

EstablishFn = Callable[[], Awaitable[AuthContext]]
ValidateFn = Callable[[AuthContext], Awaitable[bool]]

# Initial establishment plus one retry after a failed validation
MAX_ESTABLISH_ATTEMPTS = 2


class CacheScope(enum.Enum):
    """Lifetime of a cached context."""

    RUN = "run"  # dropped by end_run()
    PROCESS = "process"  # kept until invalidated or the process exits


@dataclass
class _CacheEntry:
    context: AuthContext
    scope: CacheScope


class _PendingEstablishment:
    """Placeholder stored under a key while its establishment is in flight."""

    def __init__(self) -> None:
        self._done = anyio.Event()
        self._context: Optional[AuthContext] = None
        self._error: Optional[BaseException] = None

    def resolve(self, context: AuthContext) -> None:
        self._context = context
        self._done.set()

    def fail(self, error: BaseException) -> None:
        self._error = error
        self._done.set()

    async def wait(self) -> AuthContext:
        await self._done.wait()
        if self._error is not None:
            raise self._error
        return self._context


class SessionCache:
    """Keyed store of authenticated contexts with validation-before-reuse."""

    def __init__(self, name: str = "default") -> None:
        self.name = name
        self._entries: Dict[Hashable, _CacheEntry] = {}
        self._pending: Dict[Hashable, _PendingEstablishment] = {}
        self.establish_count = 0

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._entries))

    def get(self, key: Hashable) -> Optional[AuthContext]:
        """Return the cached context for ``key`` without validating it."""
        entry = self._entries.get(key)
        return entry.context if entry else None

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    async def get_or_establish(
        self,
        key: Hashable,
        establish: EstablishFn,
        validate: Optional[ValidateFn] = None,
        *,
        scope: CacheScope = CacheScope.RUN,
        label: Optional[str] = None,
    ) -> AuthContext:
        """Return a validated context for ``key``, establishing it if needed.

        Args:
            key: Cache key (identity label plus distinguishing parameter)
            establish: Coroutine factory performing the login
            validate: Coroutine checking a context is still honoured
            scope: Lifetime of a newly stored entry
            label: Identity label attached to errors (defaults to ``str(key)``)

        Raises:
            SessionEstablishmentError: Validation failed after the retry
            AuthenticationError: Propagated unchanged from ``establish``
        """
        label = label or getattr(key, "label", None) or str(key)

        pending = self._pending.get(key)
        if pending is not None:
            logger.debug("[SESSION] Awaiting in-flight establishment for %s", key)
            return await pending.wait()

        placeholder = _PendingEstablishment()
        self._pending[key] = placeholder
        try:
            context = await self._resolve(key, establish, validate, scope, label)
        except Exception as exc:
            placeholder.fail(exc)
            raise
        except BaseException:
            # Cancelled: waiters get a typed error instead of hanging
            placeholder.fail(SessionEstablishmentError(label, "establishment was cancelled"))
            raise
        else:
            placeholder.resolve(context)
            return context
        finally:
            self._pending.pop(key, None)

    def invalidate(self, key: Hashable) -> bool:
        """Drop the entry for ``key``. Returns True if one existed."""
        removed = self._entries.pop(key, None) is not None
        if removed:
            logger.info("[SESSION] Invalidated %s", key)
        return removed

    def end_run(self) -> int:
        """Drop every run-scoped entry. Returns the number removed."""
        stale = [key for key, entry in self._entries.items() if entry.scope is CacheScope.RUN]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("[SESSION] End of run: dropped %d run-scoped session(s)", len(stale))
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    # -- internal ---------------------------------------------------------

    async def _resolve(
        self,
        key: Hashable,
        establish: EstablishFn,
        validate: Optional[ValidateFn],
        scope: CacheScope,
        label: str,
    ) -> AuthContext:
        entry = self._entries.get(key)
        if entry is not None:
            valid, _ = await self._check(entry.context, validate)
            if valid:
                logger.debug("[SESSION] Reusing cached session for %s (age %.0fs)", key, entry.context.age_seconds)
                return entry.context
            logger.info("[SESSION] Cached session for %s rejected; re-establishing", key)
            self._entries.pop(key, None)

        last_error: Optional[BaseException] = None
        for attempt in range(1, MAX_ESTABLISH_ATTEMPTS + 1):
            self.establish_count += 1
            logger.info("[SESSION] Establishing session for %s (attempt %d)", key, attempt)
            context = await establish()
            valid, last_error = await self._check(context, validate)
            if valid:
                self._entries[key] = _CacheEntry(context=context, scope=scope)
                return context
            logger.warning("[SESSION] New session for %s failed validation (attempt %d)", key, attempt)

        reason = f"session rejected by validation after {MAX_ESTABLISH_ATTEMPTS} attempts"
        if last_error is not None:
            reason += f": {last_error}"
        raise SessionEstablishmentError(label, reason) from last_error

    @staticmethod
    async def _check(
        context: AuthContext, validate: Optional[ValidateFn]
    ) -> tuple[bool, Optional[Exception]]:
        if not context.session_cookie:
            return False, None
        if validate is None:
            return True, None
        try:
            return bool(await validate(context)), None
        except Exception as exc:
            logger.warning("[SESSION] Validation raised %s: %s", type(exc).__name__, exc)
            return False, exc
