"""
audit_log.handler — Spinnaker audit log Lambda.

Receives echo webhook notifications via API Gateway, checks Basic auth,
classifies the event and writes one human-readable audit entry to the
CloudWatch Logs audit group.

Responses:
  200  "Success: {eventName}" (also when no audit rule matched)
  400  malformed body (wrong eventName, missing payload, not JSON)
  401  bad credentials
  5xx  any other failure, after writing the error to the audit log
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.typing import LambdaContext
from event_audit import (
    AuditConfig,
    AuditLogSink,
    AuthError,
    CloudWatchLogsSink,
    ConfigurationError,
    MalformedEventError,
    Severity,
    classify,
    load_body,
    load_config,
    parse_envelope,
    verify_basic_auth,
    write_message,
)
from event_audit.envelope import MALFORMED_BODY_MESSAGE

logger = Logger(service="audit-log")
tracer = Tracer()

# ---------------------------------------------------------------------------
# Global config/clients — reused across warm starts
# ---------------------------------------------------------------------------
_config: AuditConfig | None = None
_sink: AuditLogSink | None = None


def get_config() -> AuditConfig:
    """Lazy, once-per-container configuration load."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_sink(config: AuditConfig) -> AuditLogSink:
    """Lazy initialisation of the CloudWatch Logs sink."""
    global _sink
    if _sink is None:
        _sink = CloudWatchLogsSink(
            project_id=config.project_id,
            region=config.region,
            credentials_path=config.credentials_path,
        )
    return _sink


# ---------------------------------------------------------------------------
# Request/response helpers
# ---------------------------------------------------------------------------


def _header(event: dict[str, Any], name: str) -> str:
    headers = event.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if str(key).lower() == wanted and value is not None:
            return str(value)
    return ""


def _raw_body(event: dict[str, Any]) -> Any:
    body = event.get("body")
    if body is not None and event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body)
        except (binascii.Error, ValueError) as exc:
            raise MalformedEventError(MALFORMED_BODY_MESSAGE) from exc
    return body


def _text_response(status_code: int, text: str) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "text/plain; charset=utf-8"},
        "body": text,
    }


def error_response(status_code: int, code: str, message: str) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps({"error": {"code": code, "message": message}}),
    }


def _status_for(exc: Exception) -> int:
    status = getattr(exc, "status_code", None)
    if isinstance(status, int) and 400 <= status <= 599:
        return status
    return 500


# ---------------------------------------------------------------------------
# Request processing
# ---------------------------------------------------------------------------


def handle_webhook(
    event: dict[str, Any], *, config: AuditConfig, sink: AuditLogSink
) -> dict[str, Any]:
    """Authenticate, classify and audit one webhook request.

    Auth and malformed-body failures return before the sink is touched.
    """
    try:
        verify_basic_auth(
            _header(event, "Authorization"),
            username=config.username,
            password=config.password,
        )
        body = load_body(_raw_body(event))
        envelope = parse_envelope(body)

        logger.append_keys(event_source=envelope.source, event_type=envelope.event_type)
        logger.debug("Received Spinnaker event", extra={"payload": body.get("payload")})

        message = classify(envelope, timezone=config.timezone)
        if message is None:
            logger.info("No audit rule matched event")
        else:
            write_message(sink, config.audit_log_name, message)
            logger.info("Audit entry written", extra={"severity": str(message.severity)})

        return _text_response(200, f"Success: {envelope.event_name}")

    except AuthError as exc:
        return error_response(exc.status_code, "UNAUTHENTICATED", exc.message)
    except MalformedEventError as exc:
        logger.warning("Malformed Spinnaker audit request")
        return _text_response(exc.status_code, exc.message)
    except Exception as exc:
        logger.exception("Unhandled error while auditing Spinnaker event")
        try:
            sink.write(config.audit_log_name, Severity.ERROR, {"message": str(exc)})
        except Exception:
            logger.exception("Failed to write error to audit log")
        return error_response(_status_for(exc), "INTERNAL_ERROR", str(exc))


@logger.inject_lambda_context(
    correlation_id_path=correlation_paths.API_GATEWAY_REST, clear_state=True
)
@tracer.capture_lambda_handler
def handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    """Lambda entry point."""
    try:
        config = get_config()
    except ConfigurationError:
        logger.exception("Audit log function is misconfigured")
        return error_response(500, "CONFIGURATION_ERROR", "Audit log function is misconfigured")

    return handle_webhook(event, config=config, sink=get_sink(config))
