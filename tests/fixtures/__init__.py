"""Shared testing fixtures for the quiz_bank test suite."""

from .payloads import PayloadFactory  # noqa: F401
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "PayloadFactory",
    "WorkspaceBuilder",
    "build_tree",
]
