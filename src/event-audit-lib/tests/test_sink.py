"""
tests/test_sink.py — CloudWatchLogsSink against moto, plus failure handling.

Write failures must be logged and swallowed (fire-and-forget).
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from event_audit.models import AuditMessage, Severity
from event_audit.sink import CloudWatchLogsSink, write_message
from moto import mock_aws

REGION = "eu-west-2"
LOG_NAME = "spinnaker-audit-log"


@pytest.fixture(autouse=True)
def aws_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AWS_REGION", REGION)
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")


def _read_events(client, stream: str) -> list[dict]:
    response = client.get_log_events(logGroupName=LOG_NAME, logStreamName=stream)
    return [json.loads(event["message"]) for event in response["events"]]


def test_stream_name_is_per_resource_and_day():
    now = datetime(2026, 10, 18, 23, 59, tzinfo=UTC)
    assert CloudWatchLogsSink.stream_name("cloud_function", now) == "cloud_function/2026/10/18"


def test_write_creates_group_and_stream():
    with mock_aws():
        client = boto3.client("logs", region_name=REGION)
        sink = CloudWatchLogsSink(project_id="delivery", client=client)

        sink.write(
            LOG_NAME,
            Severity.WARNING,
            {"message": "User carol canceled pipeline", "application": "shop"},
        )

        stream = CloudWatchLogsSink.stream_name("cloud_function")
        events = _read_events(client, stream)

    assert events == [
        {
            "severity": "WARNING",
            "resource": {"type": "cloud_function", "labels": {"project_id": "delivery"}},
            "jsonPayload": {"message": "User carol canceled pipeline", "application": "shop"},
        }
    ]


def test_write_reuses_existing_group_and_stream():
    with mock_aws():
        client = boto3.client("logs", region_name=REGION)
        stream = CloudWatchLogsSink.stream_name("cloud_function")
        client.create_log_group(logGroupName=LOG_NAME)
        client.create_log_stream(logGroupName=LOG_NAME, logStreamName=stream)

        first = CloudWatchLogsSink(client=client)
        second = CloudWatchLogsSink(client=client)
        write_message(first, LOG_NAME, AuditMessage("one"))
        write_message(second, LOG_NAME, AuditMessage("two", severity=Severity.ERROR))

        events = _read_events(client, stream)

    assert [e["jsonPayload"]["message"] for e in events] == ["one", "two"]
    assert [e["severity"] for e in events] == ["INFO", "ERROR"]


def test_known_stream_is_not_recreated():
    client = MagicMock()
    sink = CloudWatchLogsSink(client=client)

    sink.write(LOG_NAME, Severity.INFO, {"message": "a"})
    sink.write(LOG_NAME, Severity.INFO, {"message": "b"})

    assert client.create_log_group.call_count == 1
    assert client.create_log_stream.call_count == 1
    assert client.put_log_events.call_count == 2


def test_client_error_is_swallowed():
    client = MagicMock()
    client.put_log_events.side_effect = ClientError(
        {"Error": {"Code": "AccessDeniedException", "Message": "denied"}}, "PutLogEvents"
    )
    sink = CloudWatchLogsSink(client=client)

    sink.write(LOG_NAME, Severity.INFO, {"message": "dropped"})

    client.put_log_events.assert_called_once()


def test_create_failure_other_than_exists_is_swallowed():
    client = MagicMock()
    client.create_log_group.side_effect = ClientError(
        {"Error": {"Code": "LimitExceededException", "Message": "too many"}}, "CreateLogGroup"
    )
    sink = CloudWatchLogsSink(client=client)

    sink.write(LOG_NAME, Severity.INFO, {"message": "dropped"})

    client.put_log_events.assert_not_called()


def test_connection_error_is_swallowed():
    client = MagicMock()
    client.put_log_events.side_effect = EndpointConnectionError(endpoint_url="https://logs")
    sink = CloudWatchLogsSink(client=client)

    sink.write(LOG_NAME, Severity.INFO, {"message": "dropped"})


def test_json_payload_omits_absent_context():
    assert AuditMessage("hello").json_payload() == {"message": "hello"}
    assert AuditMessage("hi", application="shop", pipeline="deploy").json_payload() == {
        "message": "hi",
        "application": "shop",
        "pipeline": "deploy",
    }
