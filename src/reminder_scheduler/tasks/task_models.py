# src/reminder_scheduler/tasks/task_models.py

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from .errors import EventError


def format_instant(instant: datetime | None) -> str | None:
    """RFC 3339 UTC with a `Z` suffix (the wire format for every instant)."""
    if instant is None:
        return None
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC).isoformat().replace("+00:00", "Z")


def parse_instant(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, str):
        try:
            dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError as e:
            raise EventError(f"invalid timestamp {raw!r}") from e
    else:
        raise EventError(f"invalid timestamp {raw!r}")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


class EventKind(StrEnum):
    """Lifecycle event kinds. The set is closed: anything else is rejected."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    TRIGGER = "trigger"

    @classmethod
    def parse(cls, raw: Any) -> EventKind:
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise EventError(f"unknown event type: {raw!r}") from None

    @property
    def needs_payload(self) -> bool:
        return self in (EventKind.CREATE, EventKind.UPDATE)


@dataclass(slots=True)
class Task:
    id: str
    user_id: str
    title: str
    schedule: str

    description: str = ""
    amount: float = 0.0
    category: str = ""
    is_active: bool = True

    last_run: datetime | None = None
    next_run: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "amount": self.amount,
            "category": self.category,
            "schedule": self.schedule,
            "is_active": self.is_active,
            "last_run": format_instant(self.last_run),
            "next_run": format_instant(self.next_run),
            "created_at": format_instant(self.created_at),
            "updated_at": format_instant(self.updated_at),
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> Task:
        if not isinstance(data, dict):
            raise EventError("task payload must be a JSON object")
        try:
            amount = float(data.get("amount") or 0.0)
        except (TypeError, ValueError):
            raise EventError(f"invalid amount {data.get('amount')!r}") from None
        is_active = data.get("is_active")
        return cls(
            id=str(data.get("id") or ""),
            user_id=str(data.get("user_id") or ""),
            title=str(data.get("title") or ""),
            schedule=str(data.get("schedule") or ""),
            description=str(data.get("description") or ""),
            amount=amount,
            category=str(data.get("category") or ""),
            is_active=True if is_active is None else bool(is_active),
            last_run=parse_instant(data.get("last_run")),
            next_run=parse_instant(data.get("next_run")),
            created_at=parse_instant(data.get("created_at")),
            updated_at=parse_instant(data.get("updated_at")),
        )


@dataclass(slots=True)
class LifecycleEvent:
    """
    Envelope for create/update/delete/trigger intent.

    `task` is required for create/update and ignored for delete/trigger. After
    decoding, `task.id` and `task.user_id` always agree with the envelope.
    """

    kind: EventKind
    task_id: str
    user_id: str = ""
    timestamp: datetime | None = None
    task: Task | None = None

    def to_payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.kind.value,
            "task_id": self.task_id,
            "user_id": self.user_id,
            "timestamp": format_instant(self.timestamp),
        }
        if self.task is not None:
            out["data"] = self.task.to_payload()
        return out

    @classmethod
    def from_payload(cls, data: Any) -> LifecycleEvent:
        if not isinstance(data, dict):
            raise EventError("event must be a JSON object")

        kind = EventKind.parse(data.get("type"))
        task_id = str(data.get("task_id") or "")
        user_id = str(data.get("user_id") or "")
        timestamp = parse_instant(data.get("timestamp"))

        task: Task | None = None
        if kind.needs_payload:
            raw = data.get("data")
            if not raw:
                raise EventError(f"{kind.value} event without task payload")
            task = Task.from_payload(raw)
            if task.id and task_id and task.id != task_id:
                raise EventError(f"payload id {task.id!r} does not match envelope task_id {task_id!r}")
            task_id = task_id or task.id
            task.id = task_id
            task.user_id = task.user_id or user_id

        if not task_id:
            raise EventError(f"{kind.value} event without task_id")

        return cls(kind=kind, task_id=task_id, user_id=user_id, timestamp=timestamp, task=task)


@dataclass(slots=True, frozen=True)
class NotificationRequest:
    """
    Outbound reminder. `to` is left empty by the scheduler: the recipient address
    is resolved downstream from the user directory.
    """

    subject: str
    body: str
    task_id: str
    to: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "to": self.to,
            "subject": self.subject,
            "body": self.body,
            "task_id": self.task_id,
        }


def decode_event(raw: bytes | str | dict[str, Any]) -> LifecycleEvent:
    """Decode a JSON lifecycle envelope; raises EventError on anything malformed."""
    if isinstance(raw, dict):
        return LifecycleEvent.from_payload(raw)
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, UnicodeDecodeError) as e:
        raise EventError(f"event is not valid JSON: {e}") from e
    return LifecycleEvent.from_payload(data)


def encode_event(event: LifecycleEvent) -> bytes:
    return json.dumps(event.to_payload(), ensure_ascii=False).encode("utf-8")


def encode_notification(notification: NotificationRequest) -> bytes:
    return json.dumps(notification.to_payload(), ensure_ascii=False).encode("utf-8")
