"""gitlab-access: routes GitLab webhooks to plugin endpoints."""

__version__ = "0.1.0"
