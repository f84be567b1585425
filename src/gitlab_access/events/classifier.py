"""Classifies inbound webhooks and works out which repository they came from."""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import PayloadParseError, UnsupportedEventTypeError, UnsupportedNoteableTypeError
from .models import (
    NOTE_OBJECT_KIND,
    CommitCommentEvent,
    EventType,
    IssueCommentEvent,
    IssueEvent,
    MergeCommentEvent,
    MergeRequestEvent,
    NoteableType,
    NoteEnvelope,
    Project,
    PushEvent,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class ClassifiedEvent:
    """An event that should be dispatched."""

    event_type: EventType
    org: str
    repo: str

    @property
    def origin(self) -> Tuple[str, str]:
        return self.org, self.repo


def get_org_repo(path_with_namespace: str) -> Tuple[str, str]:
    """Split a project path into its namespace and project name.

    Nested groups stay part of the namespace:
    ``"group/sub/project"`` -> ``("group/sub", "project")``.
    """
    org, _, repo = path_with_namespace.rpartition("/")
    return org, repo


def _parse(model: Type[ModelT], payload: bytes) -> ModelT:
    try:
        return model.model_validate_json(payload)
    except ValidationError as e:
        raise PayloadParseError(
            f"payload is not a valid {model.__name__}: {e.error_count()} error(s), "
            f"first: {e.errors()[0]['msg']}"
        ) from e


def _merge_request_project(payload: bytes) -> Optional[Project]:
    return _parse(MergeRequestEvent, payload).project


def _issue_project(payload: bytes) -> Optional[Project]:
    return _parse(IssueEvent, payload).project


def _push_project(payload: bytes) -> Optional[Project]:
    return _parse(PushEvent, payload).project


_NOTE_SHAPES: Dict[NoteableType, Type[BaseModel]] = {
    NoteableType.COMMIT: CommitCommentEvent,
    NoteableType.MERGE_REQUEST: MergeCommentEvent,
    NoteableType.ISSUE: IssueCommentEvent,
}


def _note_project(payload: bytes) -> Optional[Project]:
    envelope = _parse(NoteEnvelope, payload)
    if envelope.object_kind != NOTE_OBJECT_KIND:
        return None

    noteable_type = envelope.object_attributes.noteable_type
    try:
        shape = _NOTE_SHAPES[NoteableType(noteable_type)]
    except ValueError:
        raise UnsupportedNoteableTypeError(noteable_type) from None

    return _parse(shape, payload).project


_PROJECT_EXTRACTORS: Dict[EventType, Callable[[bytes], Optional[Project]]] = {
    EventType.MERGE_REQUEST: _merge_request_project,
    EventType.ISSUE: _issue_project,
    EventType.NOTE: _note_project,
    EventType.PUSH: _push_project,
}


def classify(event_type: str, payload: bytes) -> Optional[ClassifiedEvent]:
    """Determine how an inbound webhook should be dispatched.

    Args:
        event_type: Value of the X-Gitlab-Event header.
        payload: Raw request body.

    Returns:
        The classified event, or None for a note payload whose object kind is
        not a note; such events are valid but not dispatched.

    Raises:
        UnsupportedEventTypeError: The event type is not one we route.
        UnsupportedNoteableTypeError: A note is attached to an unknown resource.
        PayloadParseError: The payload does not match its declared shape.
    """
    try:
        kind = EventType(event_type)
    except ValueError:
        raise UnsupportedEventTypeError(event_type) from None

    project = _PROJECT_EXTRACTORS[kind](payload)
    if project is None:
        return None

    org, repo = get_org_repo(project.path_with_namespace)
    return ClassifiedEvent(event_type=kind, org=org, repo=repo)
