"""Inbound GitLab event classification."""

from .classifier import ClassifiedEvent, classify, get_org_repo
from .models import NOTE_OBJECT_KIND, EventType, NoteableType

__all__ = [
    "ClassifiedEvent",
    "classify",
    "get_org_repo",
    "EventType",
    "NoteableType",
    "NOTE_OBJECT_KIND",
]
