"""Timer configuration."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Optional

DEFAULT_HOLD_MS = 300
TOUCH_HOLD_MS = 500
DEFAULT_INSPECTION_MS = 15_000


@dataclass(frozen=True)
class TimerSettings:
    """Hold, inspection and countdown settings for the timer."""

    min_hold_time_ms: int = DEFAULT_HOLD_MS
    inspection_duration_ms: int = DEFAULT_INSPECTION_MS
    inspection_enabled: bool = True

    @classmethod
    def for_device(cls, touch_primary: bool) -> TimerSettings:
        """Return defaults for a keyboard or a touch-primary device."""
        return cls(min_hold_time_ms=TOUCH_HOLD_MS if touch_primary else DEFAULT_HOLD_MS)

    def updated(
        self,
        inspection_duration_ms: Optional[int] = None,
        hold_duration_ms: Optional[int] = None,
        inspection_enabled: Optional[bool] = None,
    ) -> TimerSettings:
        """Return a copy with the given fields replaced; ``None`` keeps a field."""
        changes: dict[str, Any] = {}
        if inspection_duration_ms is not None:
            changes["inspection_duration_ms"] = inspection_duration_ms
        if hold_duration_ms is not None:
            changes["min_hold_time_ms"] = hold_duration_ms
        if inspection_enabled is not None:
            changes["inspection_enabled"] = inspection_enabled
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimerSettings:
        """Build settings from *data*, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})
