"""GitLab webhook payload shapes.

Only the fields needed to identify an event's origin are modelled; anything
else in the payload is ignored and forwarded untouched.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class EventType(str, Enum):
    """GitLab webhook event types, as sent in the X-Gitlab-Event header."""

    MERGE_REQUEST = "Merge Request Hook"
    ISSUE = "Issue Hook"
    NOTE = "Note Hook"
    PUSH = "Push Hook"


class NoteableType(str, Enum):
    """Resources a note (comment) can be attached to."""

    COMMIT = "Commit"
    MERGE_REQUEST = "MergeRequest"
    ISSUE = "Issue"


NOTE_OBJECT_KIND = "note"


class Project(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    path_with_namespace: str
    web_url: Optional[str] = None


class MergeRequestAttributes(BaseModel):
    iid: Optional[int] = None
    title: Optional[str] = None
    action: Optional[str] = None
    source_branch: Optional[str] = None
    target_branch: Optional[str] = None


class IssueAttributes(BaseModel):
    iid: Optional[int] = None
    title: Optional[str] = None
    action: Optional[str] = None


class MergeRequestEvent(BaseModel):
    object_kind: str
    project: Project
    object_attributes: MergeRequestAttributes


class IssueEvent(BaseModel):
    object_kind: str
    project: Project
    object_attributes: IssueAttributes


class PushEvent(BaseModel):
    object_kind: str
    ref: str
    before: Optional[str] = None
    after: Optional[str] = None
    project: Project


# -----------------------------------
# Notes
# -----------------------------------


class NoteAttributes(BaseModel):
    noteable_type: str = ""
    note: Optional[str] = None


class NoteEnvelope(BaseModel):
    """The part shared by every note payload, used to pick the concrete shape."""

    object_kind: str = ""
    object_attributes: NoteAttributes = NoteAttributes()


class Commit(BaseModel):
    id: str
    message: Optional[str] = None


class CommitCommentEvent(BaseModel):
    object_kind: str
    project: Project
    object_attributes: NoteAttributes
    commit: Commit


class MergeCommentEvent(BaseModel):
    object_kind: str
    project: Project
    object_attributes: NoteAttributes
    merge_request: MergeRequestAttributes


class IssueCommentEvent(BaseModel):
    object_kind: str
    project: Project
    object_attributes: NoteAttributes
    issue: IssueAttributes
