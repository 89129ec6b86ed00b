"""Unit tests for the exponential backoff policy."""

from datetime import timedelta

import pytest

from infrastructure.resilience.retry.backoff import backoff_delay, backoff_timedelta


@pytest.mark.parametrize(
    "attempt,expected", [(0, 1.0), (1, 2.0), (2, 4.0), (3, 8.0), (4, 16.0)]
)
def test_delay_doubles_per_attempt(attempt, expected):
    assert backoff_delay(attempt) == expected


def test_each_delay_is_twice_the_previous():
    delays = [backoff_delay(n) for n in range(8)]
    assert all(b == 2 * a for a, b in zip(delays, delays[1:]))


def test_base_unit_scales_sequence():
    assert backoff_delay(3, base_delay_seconds=0.5) == 4.0


def test_max_delay_caps_result():
    assert backoff_delay(10, max_delay_seconds=30) == 30


def test_negative_attempt_rejected():
    with pytest.raises(ValueError):
        backoff_delay(-1)


def test_timedelta_form():
    assert backoff_timedelta(2) == timedelta(seconds=4)
