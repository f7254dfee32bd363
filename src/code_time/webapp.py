"""FastAPI application that ingests editor events and reports coding time."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from fastapi import Body, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .analytics import (
    AnalyticsCalculator,
    minutes_since,
    period_start,
    resolve_period,
    trailing_window_start,
)
from .config import EngineSettings
from .db import database_connection, fetch_events, fetch_user_by_token, insert_events
from .models import (
    VALID_EVENT_TYPES,
    VALID_OPERATION_TYPES,
    EditorEvent,
    User,
    timestamp_from_epoch_ms,
)
from .paths import get_db_path

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _either(snake: str, camel: str) -> Any:
    return Field(default=None, validation_alias=AliasChoices(snake, camel))


class EventLogPayload(BaseModel):
    """Event body sent by editor plugins, in snake_case or camelCase."""

    event_time: int = Field(validation_alias=AliasChoices("event_time", "eventTime"))
    event_type: str = Field(validation_alias=AliasChoices("event_type", "eventType"))
    operation_type: Optional[str] = _either("operation_type", "operationType")
    project: Optional[str] = None
    language: Optional[str] = None
    editor: Optional[str] = None
    platform: Optional[str] = None
    platform_arch: Optional[str] = _either("platform_arch", "platformArch")
    relative_file: Optional[str] = _either("relative_file", "relativeFile")
    absolute_file: Optional[str] = _either("absolute_file", "absoluteFile")
    git_origin: Optional[str] = _either("git_origin", "gitOrigin")
    git_branch: Optional[str] = _either("git_branch", "gitBranch")

    model_config = ConfigDict(extra="ignore")

    @field_validator("event_time")
    @classmethod
    def _representable_event_time(cls, value: int) -> int:
        try:
            timestamp_from_epoch_ms(value)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError(f"event_time {value} is out of range") from exc
        return value

    @field_validator("event_type")
    @classmethod
    def _known_event_type(cls, value: str) -> str:
        if value not in VALID_EVENT_TYPES:
            raise ValueError(f"event_type {value!r} is not included in the list")
        return value

    @field_validator("operation_type")
    @classmethod
    def _known_operation_type(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        if value not in VALID_OPERATION_TYPES:
            raise ValueError(f"operation_type {value!r} is not included in the list")
        return value

    def to_event(self) -> EditorEvent:
        fields = self.model_dump(exclude={"event_time"})
        return EditorEvent.from_epoch_ms(self.event_time, **fields)


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[EngineSettings] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_db_path = Path(db_path or get_db_path())
    resolved_settings = settings or EngineSettings()
    now: Clock = clock or (lambda: datetime.now(timezone.utc))

    app = FastAPI(title="Code Time", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db_path = resolved_db_path

    def current_user(
        request: Request, authorization: Optional[str] = Header(default=None)
    ) -> User:
        token = _extract_bearer_token(authorization)
        user: Optional[User] = None
        if token:
            with database_connection(request.app.state.db_path) as conn:
                user = fetch_user_by_token(conn, token)
        if user is None:
            logger.info("Rejected request to %s without a valid token.", request.url.path)
            raise HTTPException(status_code=401, detail="Unauthorized")
        return user

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        return {
            "database_path": str(request.app.state.db_path),
            **resolved_settings.as_milliseconds(),
        }

    @app.post("/v3/users/event-log")
    def event_log(
        request: Request,
        body: Dict[str, Any] = Body(...),
        user: User = Depends(current_user),
    ) -> Dict[str, Any]:
        try:
            payload = EventLogPayload.model_validate(body)
        except ValidationError as exc:
            errors = [_format_error(error) for error in exc.errors()]
            raise HTTPException(status_code=422, detail=errors) from exc
        event = payload.to_event()
        with database_connection(request.app.state.db_path) as conn:
            insert_events(conn, user.id, [event])
        logger.debug("Stored %s event for user %s at %s", event.event_type, user.id, event.timestamp)
        return {}

    @app.get("/v3/users/self/minutes")
    def minutes(
        request: Request,
        minutes: Optional[str] = Query(
            default=None, description="Size of the trailing window in minutes."
        ),
        user: User = Depends(current_user),
    ) -> Dict[str, Any]:
        window = _parse_minutes(minutes)
        end = now()
        start = trailing_window_start(end, window)
        with database_connection(request.app.state.db_path) as conn:
            events = fetch_events(conn, user.id, start, end)
        return {"minutes": minutes_since(events, end, window, resolved_settings)}

    @app.get("/api/analytics")
    def analytics(
        request: Request,
        period: Optional[str] = Query(
            default=None, description="One of today, 7d or 30d (default 7d)."
        ),
        user: User = Depends(current_user),
    ) -> Dict[str, Any]:
        resolved = resolve_period(period)
        end = now()
        start = period_start(resolved, end)
        with database_connection(request.app.state.db_path) as conn:
            calculator = AnalyticsCalculator.for_user(
                conn, user.id, start, end, resolved_settings
            )
        return calculator.report(resolved).to_dict()

    return app


def _extract_bearer_token(header: Optional[str]) -> Optional[str]:
    if not header or not header.startswith("Bearer "):
        return None
    token = header.split(" ", 1)[1].strip()
    return token or None


def _parse_minutes(value: Optional[str]) -> int:
    try:
        return max(int(value), 0) if value else 0
    except ValueError:
        return 0


def _format_error(error: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location} {error.get('msg', 'is invalid')}".strip()
