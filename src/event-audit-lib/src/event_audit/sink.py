"""
event_audit.sink — Audit log sinks.

AuditLogSink is the single capability the handler depends on. The
production implementation, CloudWatchLogsSink, writes one JSON log event per
audit message to a CloudWatch Logs group.

Writes are fire-and-forget: a failed write is logged through the
operational logger and never raised to the caller, so an audit backend
outage does not fail the webhook delivery.
"""

from __future__ import annotations

import json
import time
from datetime import UTC, datetime
from typing import Any, Protocol

import boto3
import botocore.session
from aws_lambda_powertools import Logger
from botocore.exceptions import BotoCoreError, ClientError

from event_audit.models import CLOUD_FUNCTION_RESOURCE, AuditMessage, Severity

logger = Logger(service="event-audit-sink")

_ALREADY_EXISTS = "ResourceAlreadyExistsException"


class AuditLogSink(Protocol):
    def write(
        self,
        log_name: str,
        severity: Severity,
        json_payload: dict[str, Any],
        *,
        resource_type: str = CLOUD_FUNCTION_RESOURCE,
    ) -> None: ...


def write_message(sink: AuditLogSink, log_name: str, message: AuditMessage) -> None:
    """Hand an AuditMessage to a sink."""
    sink.write(log_name, message.severity, message.json_payload())


def logs_client(*, region: str, credentials_path: str | None = None) -> Any:
    """Build a CloudWatch Logs client, optionally from a shared credentials file."""
    core_session = botocore.session.Session()
    if credentials_path:
        core_session.set_config_variable("credentials_file", credentials_path)
    session = boto3.session.Session(botocore_session=core_session, region_name=region)
    return session.client("logs")


class CloudWatchLogsSink:
    """
    Sink writing to CloudWatch Logs.

    The log group is the configured audit log name. Streams are per resource
    type and UTC day ("cloud_function/2026/10/18"). Group and stream are
    created on first use; "already exists" responses are expected on warm
    starts and ignored.

    Each log event body is JSON:
        {"severity": ..., "resource": {"type": ..., "labels": {...}},
         "jsonPayload": {"message": ..., "application"?: ..., "pipeline"?: ...}}
    """

    def __init__(
        self,
        *,
        project_id: str = "",
        region: str = "eu-west-2",
        credentials_path: str | None = None,
        client: Any = None,
    ) -> None:
        self._project_id = project_id
        self._logs: Any = client or logs_client(region=region, credentials_path=credentials_path)
        self._known_streams: set[tuple[str, str]] = set()

    @staticmethod
    def stream_name(resource_type: str, now: datetime | None = None) -> str:
        now = now or datetime.now(UTC)
        return f"{resource_type}/{now:%Y/%m/%d}"

    def _create_ignoring_existing(self, operation: str, **kwargs: Any) -> None:
        try:
            getattr(self._logs, operation)(**kwargs)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") != _ALREADY_EXISTS:
                raise

    def _ensure_stream(self, log_name: str, stream: str) -> None:
        if (log_name, stream) in self._known_streams:
            return
        self._create_ignoring_existing("create_log_group", logGroupName=log_name)
        self._create_ignoring_existing(
            "create_log_stream", logGroupName=log_name, logStreamName=stream
        )
        self._known_streams.add((log_name, stream))

    def build_entry(
        self, severity: Severity, json_payload: dict[str, Any], resource_type: str
    ) -> dict[str, Any]:
        return {
            "severity": str(severity),
            "resource": {"type": resource_type, "labels": {"project_id": self._project_id}},
            "jsonPayload": json_payload,
        }

    def write(
        self,
        log_name: str,
        severity: Severity,
        json_payload: dict[str, Any],
        *,
        resource_type: str = CLOUD_FUNCTION_RESOURCE,
    ) -> None:
        stream = self.stream_name(resource_type)
        entry = self.build_entry(severity, json_payload, resource_type)
        try:
            self._ensure_stream(log_name, stream)
            self._logs.put_log_events(
                logGroupName=log_name,
                logStreamName=stream,
                logEvents=[
                    {
                        "timestamp": int(time.time() * 1000),
                        "message": json.dumps(entry, default=str),
                    }
                ],
            )
        except (ClientError, BotoCoreError):
            logger.exception(
                "Failed to write audit log entry",
                extra={"log_name": log_name, "log_stream": stream, "severity": str(severity)},
            )
