"""Shared fixtures for gitlab-access tests."""

from typing import Any, Dict

import pytest

from gitlab_access.config import Settings

from .helpers import plugins_document


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with fast retries and a reload interval that never fires in a test."""
    return Settings(
        config_file=tmp_path / "config.yaml",
        forward_retry_attempts=3,
        forward_retry_delay=0,
        reload_interval=3600,
    )


@pytest.fixture
def routing_document() -> Dict[str, Any]:
    return plugins_document(
        {"name": "lgtm", "endpoint": "http://lgtm.test/hook", "events": ["Note Hook", "Push Hook"]},
        {"name": "ci", "endpoint": "http://ci.test/hook", "events": ["Push Hook"]},
        {"name": "triage", "endpoint": "http://triage.test/hook", "events": ["Issue Hook", "Push Hook"]},
    )
