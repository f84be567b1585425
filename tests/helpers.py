"""Test doubles and payload builders shared by the test modules."""

import json
from typing import Any, Dict, List, Optional

import httpx

from gitlab_access.routing import ConfigSource, Configuration

HOOK_USER_AGENT = "Robot-Gitlab-Hook-Delivery"


class StaticSource(ConfigSource):
    """In-memory routing configuration whose version is set by the test."""

    def __init__(self, document: Any, version: str = "v1"):
        self.document = document
        self.version = version
        self.calls = 0

    def fetch(self):
        self.calls += 1
        return self.version, Configuration.from_document(self.document)


class Recorder:
    """Mock outbound transport that records every request it receives."""

    def __init__(self, failing: Optional[set] = None):
        self.requests: List[httpx.Request] = []
        self.failing = failing or set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if str(request.url) in self.failing:
            return httpx.Response(500, text="boom")
        return httpx.Response(200, text="ok")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def to(self, endpoint: str) -> List[httpx.Request]:
        return [r for r in self.requests if str(r.url) == endpoint]


def plugins_document(*plugins: Dict[str, Any]) -> Dict[str, Any]:
    return {"access": {"plugins": list(plugins)}}


def project(path: str = "robot/community") -> Dict[str, Any]:
    return {"id": 7, "name": path.rsplit("/", 1)[-1], "path_with_namespace": path}


def push_payload(path: str = "robot/community") -> bytes:
    return json.dumps(
        {
            "object_kind": "push",
            "ref": "refs/heads/main",
            "before": "95790bf8",
            "after": "da1560886d",
            "project": project(path),
        }
    ).encode()


def merge_request_payload(path: str = "robot/community") -> bytes:
    return json.dumps(
        {
            "object_kind": "merge_request",
            "project": project(path),
            "object_attributes": {"iid": 1, "title": "Fix it", "action": "open"},
        }
    ).encode()


def issue_payload(path: str = "robot/community") -> bytes:
    return json.dumps(
        {
            "object_kind": "issue",
            "project": project(path),
            "object_attributes": {"iid": 3, "title": "Broken", "action": "open"},
        }
    ).encode()


def note_payload(noteable_type: str, path: str = "robot/community", object_kind: str = "note") -> bytes:
    body: Dict[str, Any] = {
        "object_kind": object_kind,
        "project": project(path),
        "object_attributes": {"note": "/lgtm", "noteable_type": noteable_type},
    }
    if noteable_type == "Commit":
        body["commit"] = {"id": "da1560886d", "message": "fix"}
    elif noteable_type == "MergeRequest":
        body["merge_request"] = {"iid": 1, "title": "Fix it"}
    elif noteable_type == "Issue":
        body["issue"] = {"iid": 3, "title": "Broken"}
    return json.dumps(body).encode()


def hook_headers(event_type: str = "Push Hook", event_id: str = "9c2f-11ee") -> Dict[str, str]:
    return {
        "User-Agent": HOOK_USER_AGENT,
        "X-Gitlab-Event": event_type,
        "X-Gitlab-Event-UUID": event_id,
        "X-Gitlab-Token": "secret-token",
        "Content-Type": "application/json",
    }


