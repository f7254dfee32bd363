"""Domain models for recorded editor activity."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

VALID_EVENT_TYPES: tuple[str, ...] = (
    "activateFileChanged",
    "editorChanged",
    "fileAddedLine",
    "fileCreated",
    "fileEdited",
    "fileRemoved",
    "fileSaved",
    "changeEditorSelection",
    "changeEditorVisibleRanges",
)

VALID_OPERATION_TYPES: tuple[str, ...] = ("read", "write")


def timestamp_from_epoch_ms(value: int) -> datetime:
    """Convert a millisecond epoch value into an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)


@dataclass(frozen=True, slots=True)
class EditorEvent:
    """A single activity signal sent by an editor plugin."""

    timestamp: datetime
    event_type: str = "fileEdited"
    language: Optional[str] = None
    project: Optional[str] = None
    platform: Optional[str] = None
    operation_type: Optional[str] = None
    editor: Optional[str] = None
    relative_file: Optional[str] = None
    absolute_file: Optional[str] = None
    platform_arch: Optional[str] = None
    git_origin: Optional[str] = None
    git_branch: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_epoch_ms(cls, event_time_ms: int, **fields: object) -> "EditorEvent":
        return cls(timestamp=timestamp_from_epoch_ms(event_time_ms), **fields)  # type: ignore[arg-type]


AttributeSelector = Callable[[EditorEvent], Optional[str]]


class EventAttribute(enum.Enum):
    """Categorical event fields that activity time can be grouped by."""

    LANGUAGE = "language"
    PROJECT = "project"
    PLATFORM = "platform"

    def __call__(self, event: EditorEvent) -> Optional[str]:
        if self is EventAttribute.LANGUAGE:
            return event.language
        if self is EventAttribute.PROJECT:
            return event.project
        return event.platform


@dataclass(frozen=True, slots=True)
class User:
    """Owner of an event stream, identified by an API token."""

    id: int
    email: str
    token: str
    name: Optional[str] = None
    created_at: Optional[datetime] = None
