from __future__ import annotations

import pytest

from breakerbox.circuit_breaker import CircuitKeys, align_time


def test_storage_key_includes_partition() -> None:
    keys = CircuitKeys("yammer", "12")

    assert keys.storage_key("asleep") == "circuits:yammer:12:asleep"


def test_storage_key_without_partition_segment() -> None:
    keys = CircuitKeys("yammer", "12")

    assert (
        keys.storage_key("stats", 60, "failure", without_partition=True)
        == "circuits:yammer:stats:60:failure"
    )


@pytest.mark.parametrize("partition", [None, ""])
def test_missing_partition_is_omitted(partition: str | None) -> None:
    keys = CircuitKeys("yammer", partition)

    assert keys.storage_key("half_open") == "circuits:yammer:half_open"


def test_stat_key_composes_bucket_and_event() -> None:
    keys = CircuitKeys("yammer", "12")

    assert keys.stat_key("success", 1_700_000_400) == (
        "circuits:yammer:12:stats:1700000400:success"
    )


def test_response_key_is_stable_content_hash() -> None:
    keys = CircuitKeys("yammer", "12")

    first = keys.response_key(("GET", "/users", {"id": 1}))
    second = keys.response_key(("GET", "/users", {"id": 1}))
    other = keys.response_key(("GET", "/users", {"id": 2}))

    assert first == second
    assert first != other
    assert len(first) == 40


def test_circuit_name_joins_service_and_partition() -> None:
    assert CircuitKeys("yammer", "12").circuit_name == "yammer:12"
    assert CircuitKeys("yammer").circuit_name == "yammer"


@pytest.mark.parametrize(
    ("timestamp", "window", "expected"),
    [
        (125, 60, 120),
        (120, 60, 120),
        (1_700_000_459.9, 60, 1_700_000_400),
        (305, 300, 300),
        (42, 0, 42),
    ],
)
def test_align_time_floors_to_window(
    timestamp: float, window: float, expected: int
) -> None:
    assert align_time(timestamp, window) == expected


def test_window_key_is_distinct_from_stat_key() -> None:
    keys = CircuitKeys("yammer", "12")

    assert keys.window_key("failure", 60) == "circuits:yammer:12:window:60:failure"
    assert keys.window_key("failure", 60) != keys.stat_key("failure", 60)
