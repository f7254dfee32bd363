"""Configuration models and helpers for code time tracking."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional

from .paths import get_db_path


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Timing constants of the active-time heuristic."""

    # Longest gap between two events still counted as continuous work.
    idle_timeout: timedelta = timedelta(minutes=5)
    # Credit for a lone event in the whole-window estimate.
    single_event_credit: timedelta = timedelta(minutes=1)
    # Credit appended after the last event of a run.
    last_event_credit: timedelta = timedelta(seconds=30)

    @classmethod
    def from_milliseconds(
        cls,
        idle_timeout_ms: int,
        single_event_credit_ms: int | None = None,
        last_event_credit_ms: int | None = None,
    ) -> "EngineSettings":
        defaults = cls()
        single = (
            timedelta(milliseconds=single_event_credit_ms)
            if single_event_credit_ms is not None
            else defaults.single_event_credit
        )
        last = (
            timedelta(milliseconds=last_event_credit_ms)
            if last_event_credit_ms is not None
            else defaults.last_event_credit
        )
        return cls(
            idle_timeout=timedelta(milliseconds=idle_timeout_ms),
            single_event_credit=single,
            last_event_credit=last,
        )

    def as_milliseconds(self) -> dict[str, int]:
        return {
            "idle_timeout_ms": _to_ms(self.idle_timeout),
            "single_event_credit_ms": _to_ms(self.single_event_credit),
            "last_event_credit_ms": _to_ms(self.last_event_credit),
        }


@dataclass(slots=True)
class ServerSettings:
    """Runtime configuration for the HTTP service."""

    host: str = "127.0.0.1"
    port: int = 8765
    db_path: Optional[Path] = None
    log_level: str = "info"
    engine: EngineSettings = field(default_factory=EngineSettings)

    def resolved_db_path(self) -> Path:
        return Path(self.db_path) if self.db_path else get_db_path()


def _to_ms(value: timedelta) -> int:
    return value // timedelta(milliseconds=1)
