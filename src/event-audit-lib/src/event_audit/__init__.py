"""
event_audit — Translate Spinnaker echo webhook events into audit log entries.

Used by the audit_log Lambda handler. The classifier is pure; the sink is
the only component that talks to AWS.
"""

from event_audit.auth import verify_basic_auth
from event_audit.classifier import classify
from event_audit.config import load_config
from event_audit.envelope import load_body, parse_envelope
from event_audit.exceptions import (
    AuditLogError,
    AuthError,
    ConfigurationError,
    EventFieldError,
    MalformedEventError,
)
from event_audit.models import AuditConfig, AuditMessage, EventEnvelope, Severity
from event_audit.sink import AuditLogSink, CloudWatchLogsSink, write_message

__all__ = [
    "AuditConfig",
    "AuditLogError",
    "AuditLogSink",
    "AuditMessage",
    "AuthError",
    "CloudWatchLogsSink",
    "ConfigurationError",
    "EventEnvelope",
    "EventFieldError",
    "MalformedEventError",
    "Severity",
    "classify",
    "load_body",
    "load_config",
    "parse_envelope",
    "verify_basic_auth",
    "write_message",
]
