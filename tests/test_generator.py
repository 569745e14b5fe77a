"""Tests for the guarded current-ULID slot."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from ulid_gen_mcp.generator import (
    GeneratorError,
    GeneratorPoisonedError,
    GeneratorStalledError,
    UlidGenerator,
)
from ulid_gen_mcp.ulid import ENCODED_LENGTH, MAX_RANDOMNESS, Ulid


def test_starts_with_a_value(generator: UlidGenerator) -> None:
    assert len(str(generator.current)) == ENCODED_LENGTH


def test_generate_replaces_current(generator: UlidGenerator) -> None:
    first = generator.current
    new = generator.generate()
    assert new != first
    assert generator.current == new


def test_successive_values_never_go_backwards(generator: UlidGenerator) -> None:
    with patch("ulid_gen_mcp.ulid._now_ms", side_effect=range(5_000, 5_100)):
        values = [generator.generate() for _ in range(100)]
    assert values == sorted(values)


def test_same_millisecond_values_strictly_increase(generator: UlidGenerator) -> None:
    with patch("ulid_gen_mcp.ulid._now_ms", return_value=generator.current.timestamp_ms):
        values = [generator.generate() for _ in range(50)]
    assert all(a < b for a, b in zip(values, values[1:]))
    assert len({str(v) for v in values}) == 50


def test_clock_going_backwards_keeps_order(generator: UlidGenerator) -> None:
    latest = generator.generate()
    with patch("ulid_gen_mcp.ulid._now_ms", return_value=latest.timestamp_ms - 60_000):
        after = generator.generate()
    assert after > latest
    assert after.timestamp_ms >= latest.timestamp_ms


def test_concurrent_generate_is_unique(generator: UlidGenerator) -> None:
    def burst(_: int) -> list[Ulid]:
        return [generator.generate() for _ in range(2_000)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = [u for chunk in pool.map(burst, range(8)) for u in chunk]

    assert len(set(results)) == len(results) == 16_000
    assert generator.current in set(results)


class TestPoisoning:
    def test_failure_inside_guard_poisons(self, generator: UlidGenerator) -> None:
        with patch("ulid_gen_mcp.generator.Ulid.new", side_effect=OSError("no entropy")):
            with pytest.raises(GeneratorError, match="no entropy"):
                generator.generate()
        assert generator.poisoned is True

        with pytest.raises(GeneratorPoisonedError):
            generator.generate()
        with pytest.raises(GeneratorPoisonedError):
            _ = generator.current

    def test_guard_is_released_after_poisoning(self, generator: UlidGenerator) -> None:
        with patch("ulid_gen_mcp.generator.Ulid.new", side_effect=OSError("boom")):
            with pytest.raises(GeneratorError):
                generator.generate()
        assert generator._lock.acquire(blocking=False)
        generator._lock.release()


def test_stalled_guard_raises() -> None:
    generator = UlidGenerator(guard_timeout=0.05)
    holder = threading.Lock()
    holder.acquire()

    def hold() -> None:
        with generator._lock:
            holder.acquire()

    thread = threading.Thread(target=hold)
    thread.start()
    try:
        while not generator._lock.locked():
            pass
        with pytest.raises(GeneratorStalledError, match="0.05s"):
            generator.generate()
        assert generator.poisoned is False
    finally:
        holder.release()
        thread.join(timeout=5)
    assert generator.generate() == generator.current


def test_randomness_overflow_carries_into_timestamp(generator: UlidGenerator) -> None:
    """A full random part rolls over into the next millisecond rather than failing."""
    generator._current = Ulid.from_parts(2_000, MAX_RANDOMNESS)
    with patch("ulid_gen_mcp.ulid._now_ms", return_value=2_000):
        rolled = generator.generate()
    assert rolled.timestamp_ms == 2_001
    assert rolled.randomness == 0
    assert generator.poisoned is False
