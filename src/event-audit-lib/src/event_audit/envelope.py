"""
event_audit.envelope — Validate the outer shape of an echo webhook body.
"""

from __future__ import annotations

import json
from typing import Any

from event_audit.exceptions import EventFieldError, MalformedEventError
from event_audit.models import SPINNAKER_EVENT_NAME, EventEnvelope

MALFORMED_BODY_MESSAGE = "Spinnaker audit log request body is malformed."


def load_body(raw_body: Any) -> dict[str, Any]:
    """Decode a JSON request body into a dict.

    Raises MalformedEventError when the body is absent, not JSON, or not a
    JSON object.
    """
    if isinstance(raw_body, dict):
        return raw_body
    if raw_body is None:
        raise MalformedEventError(MALFORMED_BODY_MESSAGE)
    if isinstance(raw_body, bytes):
        try:
            raw_body = raw_body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedEventError(MALFORMED_BODY_MESSAGE) from exc
    try:
        body = json.loads(raw_body)
    except (TypeError, json.JSONDecodeError) as exc:
        raise MalformedEventError(MALFORMED_BODY_MESSAGE) from exc
    if not isinstance(body, dict):
        raise MalformedEventError(MALFORMED_BODY_MESSAGE)
    return body


def parse_envelope(body: dict[str, Any]) -> EventEnvelope:
    """Check the sentinel event name and payload, and lift out the details.

    A wrong eventName or missing payload is a MalformedEventError (400).
    A payload without details or content is an EventFieldError (500).
    """
    if body.get("eventName") != SPINNAKER_EVENT_NAME or body.get("payload") is None:
        raise MalformedEventError(MALFORMED_BODY_MESSAGE)

    payload = body["payload"]
    if not isinstance(payload, dict):
        raise EventFieldError("payload")
    details = payload.get("details")
    if not isinstance(details, dict):
        raise EventFieldError("payload.details")
    content = payload.get("content")
    if not isinstance(content, dict):
        raise EventFieldError("payload.content")

    return EventEnvelope(
        event_name=body["eventName"],
        source=details.get("source"),
        event_type=details.get("type"),
        created=details.get("created"),
        content=content,
        raw=body,
    )
