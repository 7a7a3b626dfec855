"""API routes package."""

from studpal.api.routes import (
    auth,
    dashboard,
    events,
    files,
    groups,
    materials,
    notifications,
    profile,
    tags,
)

__all__ = [
    "auth",
    "dashboard",
    "events",
    "files",
    "groups",
    "materials",
    "notifications",
    "profile",
    "tags",
]
