"""Solve records and penalty semantics shared by the timer and the statistics."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum

PLUS2_PENALTY_MS = 2000

_TIME_PATTERN = re.compile(r"^(?:(\d+):)?(\d+)(?:\.(\d{1,3}))?$")


class Penalty(Enum):
    """Penalty attached to a solve."""

    NONE = "OK"
    PLUS2 = "+2"
    DNF = "DNF"

    @classmethod
    def parse(cls, text: str) -> Penalty:
        """Parse a user-supplied penalty name (``ok``, ``+2``, ``dnf``, ...)."""
        key = text.strip().lower()
        if key in ("", "ok", "none"):
            return cls.NONE
        if key in ("+2", "plus2"):
            return cls.PLUS2
        if key == "dnf":
            return cls.DNF
        raise ValueError(f"unknown penalty {text!r}, expected one of: ok, +2, dnf")


@dataclass(frozen=True)
class Solve:
    """A single timed attempt.

    ``time_ms`` is the raw recorded time; the penalty is applied only when
    the effective time is computed.
    """

    time_ms: int
    penalty: Penalty = Penalty.NONE


def effective_time(solve: Solve) -> float:
    """Return the time used for ranking: raw, raw + 2 s, or infinity for DNF."""
    if solve.penalty is Penalty.DNF:
        return math.inf
    if solve.penalty is Penalty.PLUS2:
        return solve.time_ms + PLUS2_PENALTY_MS
    return solve.time_ms


def format_time(ms: int) -> str:
    """Format *ms* as ``S.CC`` or ``M:SS.CC`` (truncated to centiseconds)."""
    centis = int(ms) // 10
    minutes, centis = divmod(centis, 6000)
    seconds, centis = divmod(centis, 100)
    if minutes:
        return f"{minutes}:{seconds:02d}.{centis:02d}"
    return f"{seconds}.{centis:02d}"


def parse_time(text: str) -> int:
    """Parse ``"12.34"`` or ``"1:02.5"`` into milliseconds."""
    match = _TIME_PATTERN.match(text.strip())
    if match is None:
        raise ValueError(f"invalid time {text!r}, expected SS.CC or M:SS.CC")
    minutes, seconds, fraction = match.groups()
    total = int(seconds) * 1000
    if minutes is not None:
        total += int(minutes) * 60_000
    if fraction:
        total += int(fraction.ljust(3, "0"))
    return total
