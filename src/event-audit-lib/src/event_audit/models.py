"""
event_audit.models — Value types shared by the classifier, sink and handler.

Everything here is transient: an AuditMessage lives for the duration of one
webhook request and is discarded once handed to the sink. AuditConfig is
built once per cold start and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
SPINNAKER_EVENT_NAME: str = "spinnaker_events"
CLOUD_FUNCTION_RESOURCE: str = "cloud_function"
NOT_AVAILABLE: str = "n/a"


# ---------------------------------------------------------------------------
# Enums — constrained vocabulary for severities and event kinds
# ---------------------------------------------------------------------------


class Severity(StrEnum):
    """Audit log severity. AuditMessage defaults to INFO."""

    DEFAULT = "DEFAULT"
    DEBUG = "DEBUG"
    INFO = "INFO"
    NOTICE = "NOTICE"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"
    ALERT = "ALERT"
    EMERGENCY = "EMERGENCY"


class EventSource(StrEnum):
    IGOR = "igor"


class EventType(StrEnum):
    BUILD = "build"
    DOCKER = "docker"
    GIT = "git"
    STAGE_STARTING = "orca:stage:starting"
    PIPELINE_STARTING = "orca:pipeline:starting"
    PIPELINE_FAILED = "orca:pipeline:failed"
    PIPELINE_COMPLETE = "orca:pipeline:complete"
    TASK_FAILED = "orca:task:failed"
    TASK_COMPLETE = "orca:task:complete"


class StageType(StrEnum):
    SAVE_PIPELINE = "savePipeline"
    MANUAL_JUDGMENT = "manualJudgment"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuditMessage:
    """
    One rendered audit entry.

    application and pipeline are only set for pipeline-scoped events; they
    are copied into the sink payload as separate keys so the log backend can
    filter on them.
    """

    text: str
    application: str | None = None
    pipeline: str | None = None
    severity: Severity = Severity.INFO

    def json_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"message": self.text}
        if self.application:
            payload["application"] = self.application
        if self.pipeline:
            payload["pipeline"] = self.pipeline
        return payload


@dataclass(frozen=True)
class EventEnvelope:
    """Validated top-level view of an inbound webhook body."""

    event_name: str
    source: str | None
    event_type: str | None
    created: Any
    content: dict[str, Any]
    raw: dict[str, Any] = field(repr=False, default_factory=dict)


@dataclass(frozen=True)
class AuditConfig:
    """Static configuration, loaded once per cold start."""

    username: str
    password: str = field(repr=False)
    project_id: str = ""
    credentials_path: str | None = None
    audit_log_name: str = "spinnaker-audit-log"
    timezone: str = "UTC"
    region: str = "eu-west-2"
