"""Repositories wrapping SQLModel queries for the service layer.

Repositories never commit: the service layer owns transaction boundaries.
"""

from collab.repositories.workspace_repository import (
    WorkspaceRepository,
    TeamMemberRepository,
)
from collab.repositories.task_repository import TaskRepository

__all__ = [
    "WorkspaceRepository",
    "TeamMemberRepository",
    "TaskRepository",
]
