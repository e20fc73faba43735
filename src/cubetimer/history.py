"""Solve history — the host-side record of finished solves, with JSON persistence."""

from __future__ import annotations

import fcntl
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Sequence

from cubetimer.core.config import TimerSettings
from cubetimer.core.solve import Penalty, Solve
from cubetimer.core.stats import (
    Averages,
    SessionStats,
    calculate_averages,
    calculate_session_stats,
    get_best_average,
    is_dnf_average,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "cubetimer"
_HISTORY_FILE = "solves.json"
_SETTINGS_FILE = "settings.json"

_AVERAGE_WINDOWS = (("ao5", 5), ("ao12", 12), ("ao100", 100))


class HistoryError(Exception):
    """Raised when a history operation refers to a solve that does not exist."""


@dataclass(frozen=True)
class SolveEntry:
    """A solve as recorded by the host: the timing result plus its scramble."""

    solve: Solve
    scramble: str = ""
    timestamp: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "time_ms": self.solve.time_ms,
            "penalty": self.solve.penalty.value,
            "scramble": self.scramble,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SolveEntry:
        return cls(
            solve=Solve(int(data["time_ms"]), Penalty(data.get("penalty", Penalty.NONE.value))),
            scramble=data.get("scramble", ""),
            timestamp=data.get("timestamp", 0.0),
        )


@dataclass(frozen=True)
class RecordResult:
    """Outcome of :meth:`SolveHistory.add`."""

    entry: SolveEntry
    index: int
    personal_bests: list[str] = field(default_factory=list)


def detect_personal_bests(previous: Sequence[Solve], updated: Sequence[Solve]) -> list[str]:
    """Return which records *updated* beats compared with *previous*.

    A tie with the previous record is not a new record.
    """
    found: list[str] = []
    before = calculate_averages(previous)
    after = calculate_averages(updated)

    if after.best is not None and after.best > 0:
        if before.best is None or after.best < before.best:
            found.append("single")

    for name, window in _AVERAGE_WINDOWS:
        current = getattr(after, name)
        if current is None or current <= 0 or is_dnf_average(current):
            continue
        previous_best = get_best_average(previous, window)
        if previous_best is None or current < previous_best:
            found.append(name)
    return found


class SolveHistory:
    """Ordered solve history persisted to ``<config_dir>/solves.json``.

    Indexes in the public API are 1-based, matching what ``list`` prints.
    The file is rewritten after every mutation.
    """

    def __init__(self, config_dir: Optional[Path] = None) -> None:
        self._config_dir: Path = config_dir if config_dir is not None else DEFAULT_CONFIG_DIR
        self._entries: list[SolveEntry] = []
        self._load()

    # -- public API ----------------------------------------------------------

    @property
    def entries(self) -> list[SolveEntry]:
        return list(self._entries)

    @property
    def solves(self) -> list[Solve]:
        return [entry.solve for entry in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, time_ms: int, penalty: Penalty = Penalty.NONE, scramble: str = "") -> RecordResult:
        """Append a solve and report any personal bests it sets."""
        previous = self.solves
        entry = SolveEntry(Solve(time_ms, penalty), scramble=scramble, timestamp=time.time())
        self._entries.append(entry)
        personal_bests = detect_personal_bests(previous, self.solves)
        self._save()
        logger.info("recorded solve %d: %d ms %s", len(self._entries), time_ms, penalty.value)
        return RecordResult(entry=entry, index=len(self._entries), personal_bests=personal_bests)

    def set_penalty(self, index: int, penalty: Penalty) -> SolveEntry:
        """Replace the penalty of solve *index*, keeping its raw time."""
        position = self._position(index)
        old = self._entries[position]
        entry = SolveEntry(Solve(old.solve.time_ms, penalty), old.scramble, old.timestamp)
        self._entries[position] = entry
        self._save()
        logger.info("solve %d penalty %s -> %s", index, old.solve.penalty.value, penalty.value)
        return entry

    def delete(self, index: int) -> SolveEntry:
        """Remove and return solve *index*."""
        entry = self._entries.pop(self._position(index))
        self._save()
        logger.info("deleted solve %d", index)
        return entry

    def clear(self) -> int:
        """Remove every solve and return how many were removed."""
        count = len(self._entries)
        self._entries = []
        self._save()
        logger.info("cleared %d solves", count)
        return count

    def averages(self) -> Averages:
        return calculate_averages(self.solves)

    def best_average(self, window_size: int) -> Optional[int]:
        return get_best_average(self.solves, window_size)

    def session_stats(self) -> Optional[SessionStats]:
        return calculate_session_stats(self.solves)

    # -- private helpers -----------------------------------------------------

    def _position(self, index: int) -> int:
        if not 1 <= index <= len(self._entries):
            raise HistoryError(f"no solve #{index} (history has {len(self._entries)} solves)")
        return index - 1

    # -- persistence ---------------------------------------------------------

    def _save(self) -> None:
        """Write the history to the JSON file with file locking."""
        self._config_dir.mkdir(parents=True, exist_ok=True)
        data = {"solves": [entry.to_dict() for entry in self._entries]}
        with open(self._config_dir / _HISTORY_FILE, "w") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            json.dump(data, f)

    def _load(self) -> None:
        """Load the history from the JSON file if it exists."""
        path = self._config_dir / _HISTORY_FILE
        if not path.exists():
            return

        with open(path) as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            data = json.load(f)

        self._entries = [SolveEntry.from_dict(item) for item in data.get("solves", [])]
        logger.debug("loaded %d solves from %s", len(self._entries), path)


def load_settings(config_dir: Optional[Path] = None) -> TimerSettings:
    """Read timer settings from ``settings.json``, falling back to defaults."""
    path = (config_dir if config_dir is not None else DEFAULT_CONFIG_DIR) / _SETTINGS_FILE
    if not path.exists():
        return TimerSettings()
    with open(path) as f:
        fcntl.flock(f, fcntl.LOCK_SH)
        return TimerSettings.from_dict(json.load(f))


def save_settings(settings: TimerSettings, config_dir: Optional[Path] = None) -> None:
    """Write timer settings to ``settings.json``."""
    directory = config_dir if config_dir is not None else DEFAULT_CONFIG_DIR
    directory.mkdir(parents=True, exist_ok=True)
    with open(directory / _SETTINGS_FILE, "w") as f:
        fcntl.flock(f, fcntl.LOCK_EX)
        json.dump(settings.to_dict(), f)
    logger.info("saved timer settings to %s", directory)
