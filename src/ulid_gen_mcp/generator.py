"""The current-identifier slot shared by every tool invocation."""

from __future__ import annotations

import logging
import threading

from ulid_gen_mcp.config import DEFAULT_GUARD_TIMEOUT
from ulid_gen_mcp.ulid import Ulid

log = logging.getLogger(__name__)


class GeneratorError(RuntimeError):
    """Base class for failures of the guarded generator state."""


class GeneratorPoisonedError(GeneratorError):
    """A previous critical section failed; the stored value is untrustworthy."""


class GeneratorStalledError(GeneratorError):
    """The guard could not be acquired within the configured timeout."""


class UlidGenerator:
    """Owns the most recently generated ULID.

    Reads and replacements of the current value happen under one lock, so
    concurrent callers never observe a half-updated slot.  The critical
    section never awaits.  Values are strictly increasing within one
    generator, even when several land in the same millisecond.

    ``threading.Lock`` cannot be poisoned by a crash the way some mutexes
    can, so poisoning is tracked explicitly: an exception inside the
    critical section marks the generator poisoned and every later access
    raises :class:`GeneratorPoisonedError`.
    """

    def __init__(self, *, guard_timeout: float = DEFAULT_GUARD_TIMEOUT) -> None:
        self._lock = threading.Lock()
        self._guard_timeout = guard_timeout
        self._poisoned = False
        self._current = Ulid.new()

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    @property
    def current(self) -> Ulid:
        """Return the last generated value."""
        self._acquire()
        try:
            self._check_poison()
            return self._current
        finally:
            self._lock.release()

    def generate(self) -> Ulid:
        """Replace the current value with a new ULID and return it."""
        self._acquire()
        try:
            self._check_poison()
            try:
                candidate = Ulid.new()
                if candidate <= self._current:
                    # Same millisecond or clock went backwards.  The increment may
                    # carry into the timestamp bits, so after a backwards step the
                    # stored timestamp stays ahead of the wall clock until it catches
                    # up.  Strict ordering wins over timestamp accuracy here.
                    candidate = self._current.increment()
                self._current = candidate
            except Exception as exc:
                self._poisoned = True
                log.critical("ULID generation failed inside the guard; state poisoned")
                raise GeneratorError(f"ULID generation failed: {exc}") from exc
            return self._current
        finally:
            self._lock.release()

    def _acquire(self) -> None:
        if not self._lock.acquire(timeout=self._guard_timeout):
            raise GeneratorStalledError(
                f"Could not acquire ULID state guard within {self._guard_timeout:g}s"
            )

    def _check_poison(self) -> None:
        if self._poisoned:
            raise GeneratorPoisonedError("ULID state guard is poisoned by an earlier failure")
