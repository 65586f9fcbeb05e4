"""
dev-invoke.py — Send a sample Spinnaker event to a deployed audit log endpoint.

Builds an echo-style envelope for the chosen event kind, POSTs it with Basic
auth, and prints the HTTP status and body.

Usage:
    uv run python scripts/dev-invoke.py \\
        --url https://<api-id>.execute-api.<region>.amazonaws.com/dev/audit \\
        --username <user> --password <password> \\
        --kind pipeline-starting|pipeline-complete|build|git \\
        [--application demo] [--pipeline deploy]

Exit codes:
    0  endpoint answered 2xx
    1  endpoint answered anything else, or could not be reached
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import Any

import requests

logger = logging.getLogger("dev_invoke")
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

EVENT_NAME = "spinnaker_events"
KINDS = ("pipeline-starting", "pipeline-complete", "build", "git")


def build_envelope(
    kind: str, *, application: str, pipeline: str, now_ms: int | None = None
) -> dict[str, Any]:
    """Return a minimal envelope that produces one audit entry for `kind`."""
    created = now_ms if now_ms is not None else int(time.time() * 1000)
    execution = {
        "name": pipeline,
        "application": application,
        "authentication": {"user": "dev-invoke"},
        "trigger": {"type": "manual", "user": "dev-invoke"},
        "stages": [],
    }

    if kind == "pipeline-starting":
        details: dict[str, Any] = {"source": "orca", "type": "orca:pipeline:starting"}
        content: dict[str, Any] = {"execution": execution}
    elif kind == "pipeline-complete":
        details = {"source": "orca", "type": "orca:pipeline:complete"}
        content = {"execution": execution}
    elif kind == "build":
        details = {"source": "igor", "type": "build"}
        content = {
            "project": {
                "name": pipeline,
                "lastBuild": {"number": 1, "result": "SUCCESS", "timestamp": created},
            }
        }
    elif kind == "git":
        details = {"source": "github", "type": "git"}
        content = {
            "slug": application,
            "repoProject": "dev",
            "hash": "0000000",
            "branch": "main",
        }
    else:
        raise ValueError(f"Unknown event kind {kind!r}; expected one of {', '.join(KINDS)}")

    details["created"] = created
    return {"eventName": EVENT_NAME, "payload": {"details": details, "content": content}}


def send(url: str, envelope: dict[str, Any], *, username: str, password: str) -> requests.Response:
    return requests.post(url, json=envelope, auth=(username, password), timeout=30)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0])
    parser.add_argument("--url", required=True)
    parser.add_argument("--username", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument("--kind", choices=KINDS, default="pipeline-starting")
    parser.add_argument("--application", default="demo")
    parser.add_argument("--pipeline", default="deploy")
    args = parser.parse_args(argv)

    envelope = build_envelope(args.kind, application=args.application, pipeline=args.pipeline)
    try:
        response = send(args.url, envelope, username=args.username, password=args.password)
    except requests.RequestException as exc:
        logger.error("Request failed: %s", exc)
        return 1

    print(f"{response.status_code} {response.text}")
    return 0 if response.ok else 1


if __name__ == "__main__":
    sys.exit(main())
