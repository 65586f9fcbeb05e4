"""
event_audit.classifier — Turn a Spinnaker event envelope into an audit message.

The classifier is an ordered rule table. Each rule pairs a predicate with a
renderer; the first rule whose predicate matches decides the outcome, even
when its renderer returns None. Rule order matters because conditions
overlap: the manual-judgment rules must be tried before the generic
task-failed rule, and the igor rules must shadow the source-independent
"git" rule.

Presence checks follow JSON truthiness as echo serialises it: null, false,
0 and "" are absent; empty objects and arrays are present.

classify() is side-effect free. Missing containers that a chosen template
needs raise EventFieldError; missing leaf values render as "n/a".
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from functools import cached_property
from typing import Any

from event_audit.exceptions import EventFieldError
from event_audit.models import (
    NOT_AVAILABLE,
    AuditMessage,
    EventEnvelope,
    EventSource,
    EventType,
    Severity,
    StageType,
)
from event_audit.timestamps import format_timestamp

_RUNNING = "RUNNING"


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def _present(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, int | float):
        return value != 0
    return True


def _text(value: Any) -> str:
    if value is None:
        return NOT_AVAILABLE
    return str(value)


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _require_mapping(parent: dict[str, Any], key: str, path: str) -> dict[str, Any]:
    value = parent.get(key)
    if not isinstance(value, dict):
        raise EventFieldError(path)
    return value


def _reason_segment(reason: Any) -> str:
    return f' for reason "{reason}"' if _present(reason) else ""


def resolve_user(execution: dict[str, Any] | None) -> str:
    """Return the acting user for an execution.

    Precedence: trigger.runAsUser, then trigger.user, then
    authentication.user, then "n/a".
    """
    execution = _mapping(execution)
    user = _mapping(execution.get("authentication")).get("user")
    if not _present(user):
        user = NOT_AVAILABLE

    trigger = _mapping(execution.get("trigger"))
    if _present(trigger.get("runAsUser")):
        user = trigger["runAsUser"]
    elif _present(trigger.get("user")):
        user = trigger["user"]
    return str(user)


def find_running_stage(execution: dict[str, Any] | None) -> dict[str, Any] | None:
    """First stage with status RUNNING.

    An execution without stages yields an empty record; stages with none
    running yield None.
    """
    stages = _mapping(execution).get("stages")
    if not isinstance(stages, list) or not stages:
        return {}
    for stage in stages:
        if isinstance(stage, dict) and stage.get("status") == _RUNNING:
            return stage
    return None


# ---------------------------------------------------------------------------
# Event view — lazy, validated accessors over one envelope
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EventView:
    envelope: EventEnvelope
    timezone: str

    @property
    def source(self) -> str | None:
        return self.envelope.source

    @property
    def event_type(self) -> str | None:
        return self.envelope.event_type

    @property
    def content(self) -> dict[str, Any]:
        return self.envelope.content

    @property
    def standalone(self) -> bool:
        return _present(self.content.get("standalone"))

    @property
    def execution(self) -> dict[str, Any]:
        return _require_mapping(self.content, "execution", "payload.content.execution")

    @property
    def context(self) -> dict[str, Any]:
        return _require_mapping(self.content, "context", "payload.content.context")

    @property
    def has_context(self) -> bool:
        return _present(self.content.get("context"))

    @cached_property
    def running_stage(self) -> dict[str, Any] | None:
        return find_running_stage(self.content.get("execution"))

    @property
    def stage(self) -> dict[str, Any]:
        stage = self.running_stage
        if stage is None:
            raise EventFieldError("payload.content.execution.stages")
        return stage

    @cached_property
    def user(self) -> str:
        return resolve_user(self.content.get("execution"))

    @cached_property
    def created_at(self) -> str:
        return self.format_epoch(self.envelope.created, "payload.details.created")

    @property
    def application(self) -> str:
        return _text(self.execution.get("application"))

    @property
    def pipeline(self) -> str:
        return _text(self.execution.get("name"))

    def format_epoch(self, value: Any, path: str) -> str:
        try:
            return format_timestamp(value, self.timezone)
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise EventFieldError(path) from exc

    def scoped(self, text: str, severity: Severity = Severity.INFO) -> AuditMessage:
        """Message carrying the execution's application and pipeline."""
        return AuditMessage(
            text=text,
            application=self.execution.get("application"),
            pipeline=self.execution.get("name"),
            severity=severity,
        )


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def _last_build(view: EventView) -> dict[str, Any]:
    project = _require_mapping(view.content, "project", "payload.content.project")
    return _require_mapping(project, "lastBuild", "payload.content.project.lastBuild")


def _build_succeeded(view: EventView) -> bool:
    return _last_build(view).get("result") == "SUCCESS"


def _render_build(view: EventView) -> AuditMessage:
    last_build = _last_build(view)
    project = _text(view.content["project"].get("name"))
    number = _text(last_build.get("number"))
    built_at = view.format_epoch(
        last_build.get("timestamp"), "payload.content.project.lastBuild.timestamp"
    )

    if last_build.get("result") == "SUCCESS":
        return AuditMessage(
            f"Jenkins project {project} successfully completed build #{number} at {built_at}."
        )
    return AuditMessage(
        f"Jenkins project {project} completed build #{number} with status "
        f"{_text(last_build.get('result'))} at {built_at}.",
        severity=Severity.ERROR,
    )


def _render_docker(view: EventView) -> AuditMessage:
    content = view.content
    return AuditMessage(
        f"Docker tag {_text(content.get('tag'))} was pushed to repository "
        f"{_text(content.get('repository'))} in registry {_text(content.get('registry'))} "
        f"at {view.created_at}."
    )


def _render_git(view: EventView) -> AuditMessage:
    content = view.content
    return AuditMessage(
        f"Received webhook for project {_text(content.get('slug'))} in org "
        f"{_text(content.get('repoProject'))} from {_text(view.source)} at commit "
        f"{_text(content.get('hash'))} on branch {_text(content.get('branch'))} "
        f"at {view.created_at}."
    )


def _render_stage_starting(view: EventView) -> AuditMessage:
    execution = view.execution
    stage = view.stage

    if not view.standalone:
        return view.scoped(
            f"User {view.user} executed operation {_text(stage.get('name'))} "
            f"(of type {_text(stage.get('type'))}) via pipeline {view.pipeline} "
            f"of application {view.application} at {view.created_at}."
        )

    description = _text(execution.get("description"))
    if stage.get("type") == StageType.SAVE_PIPELINE:
        return AuditMessage(
            f"User {view.user} executed operation ({description}) at {view.created_at}."
        )

    stages = execution.get("stages")
    if not isinstance(stages, list) or not stages or not isinstance(stages[0], dict):
        raise EventFieldError("payload.content.execution.stages")
    reason = _reason_segment(view.context.get("reason"))
    return AuditMessage(
        f"User {view.user} executed ad-hoc operation {_text(stages[0].get('type'))} "
        f"({description}){reason} at {view.created_at}."
    )


def _render_pipeline_starting(view: EventView) -> AuditMessage:
    trigger = _require_mapping(view.execution, "trigger", "payload.content.execution.trigger")
    parameters = trigger.get("parameters")
    params_segment = (
        f" (with parameters {_compact_json(parameters)})" if _present(parameters) else ""
    )
    return view.scoped(
        f"User {view.user} executed pipeline {view.pipeline} of application "
        f"{view.application} via {_text(trigger.get('type'))} trigger{params_segment} "
        f"at {view.created_at}."
    )


def _render_pipeline_canceled(view: EventView) -> AuditMessage:
    execution = view.execution
    canceled_by = execution.get("canceledBy")

    if _present(canceled_by):
        reason = _reason_segment(execution.get("cancellationReason"))
        return view.scoped(
            f"User {canceled_by} canceled pipeline {view.pipeline} of application "
            f"{view.application}{reason} at {view.created_at}.",
            Severity.WARNING,
        )
    return view.scoped(
        f"Pipeline {view.pipeline} of application {view.application} failed "
        f"at {view.created_at}.",
        Severity.ERROR,
    )


def _render_pipeline_complete(view: EventView) -> AuditMessage:
    return view.scoped(
        f"Pipeline {view.pipeline} of application {view.application} completed "
        f"at {view.created_at}."
    )


def _judgment(
    outcome: str, severity: Severity, *, scoped: bool
) -> Callable[[EventView], AuditMessage]:
    """Judgment renderer; only the stop variant carries application/pipeline."""

    def render(view: EventView) -> AuditMessage:
        context = view.context
        judgment_input = context.get("judgmentInput")
        judgment_segment = (
            f' (judgment "{judgment_input}" was selected)' if _present(judgment_input) else ""
        )
        text = (
            f"User {_text(context.get('lastModifiedBy'))} judged stage "
            f"{_text(view.stage.get('name'))} of pipeline {view.pipeline} of application "
            f"{view.application} to {outcome}{judgment_segment} at {view.created_at}."
        )
        if scoped:
            return view.scoped(text, severity)
        return AuditMessage(text, severity=severity)

    return render


def _failure_segment(context: dict[str, Any]) -> str:
    exception = _mapping(context.get("exception"))
    errors = _mapping(exception.get("details")).get("errors")
    if isinstance(errors, list) and errors and _present(errors[0]):
        return f" due to {_compact_json(errors)}"
    return ""


def _render_task_failed(view: EventView) -> AuditMessage:
    failure = _failure_segment(view.context)
    stage = view.stage

    if not view.standalone:
        return view.scoped(
            f"Operation {_text(stage.get('name'))} (of type {_text(stage.get('type'))}) "
            f"of pipeline {view.pipeline} of application {view.application} "
            f"failed{failure} at {view.created_at}.",
            Severity.ERROR,
        )
    return AuditMessage(
        f"Ad-hoc operation {_text(stage.get('type'))} failed{failure} at {view.created_at}.",
        severity=Severity.ERROR,
    )


def _render_nothing(_view: EventView) -> None:
    return None


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rule:
    name: str
    matches: Callable[[EventView], bool]
    render: Callable[[EventView], AuditMessage | None]


def _is_igor(view: EventView) -> bool:
    return view.source == EventSource.IGOR


def _is_manual_judgment(view: EventView) -> bool:
    return (
        not view.standalone
        and view.has_context
        and (view.running_stage or {}).get("type") == StageType.MANUAL_JUDGMENT
    )


RULES: tuple[Rule, ...] = (
    Rule(
        "build-succeeded",
        lambda v: _is_igor(v) and v.event_type == EventType.BUILD and _build_succeeded(v),
        _render_build,
    ),
    Rule(
        "build-completed",
        lambda v: _is_igor(v) and v.event_type == EventType.BUILD,
        _render_build,
    ),
    Rule(
        "docker-push",
        lambda v: _is_igor(v) and v.event_type == EventType.DOCKER,
        _render_docker,
    ),
    Rule("igor-other", _is_igor, _render_nothing),
    Rule("git", lambda v: v.event_type == EventType.GIT, _render_git),
    Rule(
        "stage-starting",
        lambda v: v.event_type == EventType.STAGE_STARTING
        and not _present(v.stage.get("syntheticStageOwner")),
        _render_stage_starting,
    ),
    Rule(
        "pipeline-starting",
        lambda v: v.event_type == EventType.PIPELINE_STARTING,
        _render_pipeline_starting,
    ),
    Rule(
        "pipeline-canceled",
        lambda v: v.event_type == EventType.PIPELINE_FAILED
        and _present(v.execution.get("canceled")),
        _render_pipeline_canceled,
    ),
    Rule(
        "pipeline-complete",
        lambda v: v.event_type == EventType.PIPELINE_COMPLETE,
        _render_pipeline_complete,
    ),
    Rule(
        "judgment-stopped",
        lambda v: v.event_type == EventType.TASK_FAILED and _is_manual_judgment(v),
        _judgment("stop", Severity.WARNING, scoped=True),
    ),
    Rule(
        "judgment-continued",
        lambda v: v.event_type == EventType.TASK_COMPLETE and _is_manual_judgment(v),
        _judgment("continue", Severity.INFO, scoped=False),
    ),
    Rule(
        "task-failed",
        lambda v: v.event_type == EventType.TASK_FAILED,
        _render_task_failed,
    ),
)


def classify(envelope: EventEnvelope, *, timezone: str) -> AuditMessage | None:
    """Return the audit message for an envelope, or None when no rule applies."""
    view = EventView(envelope, timezone)
    for rule in RULES:
        if rule.matches(view):
            return rule.render(view)
    return None
