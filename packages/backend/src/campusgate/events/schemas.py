"""Pydantic schemas for real-time event payloads.

Each known event type maps to a payload model. Publishing validates the
payload against its model and delivers the normalized dict, so the
dashboard never sees a shape drift for a type it knows about.

Unknown event types are allowed and delivered as-is, as long as the payload
is JSON-serializable.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from campusgate.events import types


# ─── Payloads (publisher → dashboard) ───────────────────


class _Payload(BaseModel):
    model_config = {"extra": "allow"}


class StudentPayload(_Payload):
    """A student record changed (enrolled, updated)."""
    id: Union[int, str] = Field(..., description="Student record id")
    name: Optional[str] = None
    email: Optional[str] = None
    course_id: Optional[Union[int, str]] = None


class StudentDeletedPayload(_Payload):
    id: Union[int, str]


class CoursePayload(_Payload):
    """A course record changed (created, updated)."""
    id: Union[int, str] = Field(..., description="Course record id")
    title: Optional[str] = None
    code: Optional[str] = None
    capacity: Optional[int] = None


class CourseDeletedPayload(_Payload):
    id: Union[int, str]


PAYLOAD_SCHEMAS: dict[str, type[BaseModel]] = {
    types.STUDENT_ENROLLED: StudentPayload,
    types.STUDENT_UPDATED: StudentPayload,
    types.STUDENT_DELETED: StudentDeletedPayload,
    types.COURSE_CREATED: CoursePayload,
    types.COURSE_UPDATED: CoursePayload,
    types.COURSE_DELETED: CourseDeletedPayload,
}


def normalize_payload(event_type: str, payload: Any) -> Any:
    """Validate a payload for its event type and return the wire form.

    Raises ValueError on a schema mismatch and TypeError when the payload
    cannot be serialized to JSON.
    """
    schema = PAYLOAD_SCHEMAS.get(event_type)
    if schema is not None:
        payload = schema.model_validate(payload).model_dump(exclude_none=True)
    json.dumps(payload)
    return payload


@dataclass(frozen=True)
class Event:
    """A transient event addressed to one room."""

    room: str
    type: str
    payload: Any = field(default_factory=dict)


# ─── Publish request (admin API → publisher) ────────────


class PublishEventRequest(BaseModel):
    """Admin asks the gateway to push an event to a room."""
    room: str = Field(..., min_length=1, description="Target room name")
    type: str = Field(..., min_length=1, description="Event type tag")
    payload: Any = Field(default_factory=dict, description="JSON payload")
