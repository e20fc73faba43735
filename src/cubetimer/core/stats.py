"""Statistics engine — WCA-style rolling averages over a solve history.

All functions are pure: they read the given sequence and never mutate it.
Two non-numeric outcomes must be kept apart by callers:

* ``None`` -- not enough solves to compute the value.
* :data:`DNF_AVERAGE` -- enough solves, but the average itself is a DNF.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from cubetimer.core.solve import Solve, effective_time

DNF_AVERAGE = -1

_LARGE_WINDOW = 100
_SMALL_TRIM = 1
_LARGE_TRIM = 5


@dataclass(frozen=True)
class Averages:
    """Aggregates displayed for a history."""

    ao5: Optional[int]
    ao12: Optional[int]
    ao100: Optional[int]
    best: Optional[int]
    worst: Optional[int]


def is_dnf_average(value: Optional[int]) -> bool:
    """Return True if *value* is the DNF-average sentinel."""
    return value == DNF_AVERAGE


def _trim_count(window_size: int) -> int:
    return _SMALL_TRIM if window_size < _LARGE_WINDOW else _LARGE_TRIM


def compute_trimmed_average(solves: Sequence[Solve], window_size: int) -> Optional[int]:
    """Return the trimmed mean of the most recent *window_size* solves.

    The fastest and slowest ``trim`` effective times are discarded (one each
    below a window of 100, five each from 100 up) and the rest averaged,
    rounded half-up to the millisecond.  More DNFs than ``trim`` make the
    whole average a DNF.

    Raises ``ValueError`` if *window_size* leaves nothing after trimming.
    """
    trim = _trim_count(window_size)
    if window_size <= 2 * trim:
        raise ValueError(f"window_size must be greater than {2 * trim}, got {window_size}")
    if len(solves) < window_size:
        return None

    times = [effective_time(solve) for solve in solves[len(solves) - window_size :]]
    dnf_count = sum(1 for t in times if t == math.inf)
    if dnf_count > trim:
        return DNF_AVERAGE

    kept = sorted(times)[trim:-trim]
    total = int(sum(kept))
    count = len(kept)
    # Integer round-half-up of total / count.
    return (2 * total + count) // (2 * count)


def calculate_averages(solves: Sequence[Solve]) -> Averages:
    """Compute ao5/ao12/ao100 over the end of *solves*, plus best and worst singles."""
    valid = [t for t in map(effective_time, solves) if t != math.inf]
    return Averages(
        ao5=compute_trimmed_average(solves, 5),
        ao12=compute_trimmed_average(solves, 12),
        ao100=compute_trimmed_average(solves, 100),
        best=int(min(valid)) if valid else None,
        worst=int(max(valid)) if valid else None,
    )


def get_best_average(solves: Sequence[Solve], window_size: int) -> Optional[int]:
    """Return the lowest average over every contiguous window of *window_size*.

    Windows averaging to a DNF, ``None``, or a non-positive value are skipped.
    The comparison is strict, so the first window reaching the minimum wins.
    """
    best: Optional[int] = None
    for start in range(len(solves) - window_size + 1):
        average = compute_trimmed_average(solves[start : start + window_size], window_size)
        if average is None or average <= 0:
            continue
        if best is None or average < best:
            best = average
    return best


@dataclass(frozen=True)
class SessionStats:
    """Descriptive statistics over the valid (non-DNF) solves of a history."""

    count: int
    best: int
    worst: int
    mean: float
    std_dev: float
    total_time: int
    improvement: int


def calculate_session_stats(solves: Sequence[Solve]) -> Optional[SessionStats]:
    """Summarise *solves*, or return ``None`` when none of them is valid.

    ``count`` includes DNFs; every other figure uses effective times of the
    non-DNF solves.  ``std_dev`` is the population standard deviation and
    ``improvement`` is the first valid time minus the best.
    """
    times = [int(t) for t in map(effective_time, solves) if t != math.inf]
    if not times:
        return None

    total = sum(times)
    mean = total / len(times)
    variance = sum((t - mean) ** 2 for t in times) / len(times)
    best = min(times)
    return SessionStats(
        count=len(solves),
        best=best,
        worst=max(times),
        mean=mean,
        std_dev=math.sqrt(variance),
        total_time=total,
        improvement=times[0] - best,
    )
