"""Dependency gating and cycle detection for workspace tasks.

Pure functions over task statuses and edges; the task service loads the
rows and applies the results.

Gates per edge type, for the dependent task's target status:

    FINISH_TO_START   IN_PROGRESS/REVIEW_REQUIRED/COMPLETED need the
                      prerequisite COMPLETED
    START_TO_START    the same targets need the prerequisite started
    FINISH_TO_FINISH  COMPLETED needs the prerequisite COMPLETED
"""

from collections import defaultdict
from typing import Iterable, Optional
from uuid import UUID

from collab.db.models import DependencyType, TaskStatus, WorkspaceTask

STARTED_STATUSES = frozenset(
    [TaskStatus.IN_PROGRESS, TaskStatus.REVIEW_REQUIRED, TaskStatus.COMPLETED]
)

GATED_TARGETS: dict[DependencyType, frozenset[TaskStatus]] = {
    DependencyType.FINISH_TO_START: STARTED_STATUSES,
    DependencyType.START_TO_START: STARTED_STATUSES,
    DependencyType.FINISH_TO_FINISH: frozenset([TaskStatus.COMPLETED]),
}

REQUIRED_PREREQUISITE: dict[DependencyType, frozenset[TaskStatus]] = {
    DependencyType.FINISH_TO_START: frozenset([TaskStatus.COMPLETED]),
    DependencyType.START_TO_START: STARTED_STATUSES,
    DependencyType.FINISH_TO_FINISH: frozenset([TaskStatus.COMPLETED]),
}


def is_gated(dependency_type: DependencyType, target: TaskStatus) -> bool:
    """Whether an edge of this type has any say over the target status."""
    return target in GATED_TARGETS[dependency_type]


def is_satisfied(
    dependency_type: DependencyType,
    prerequisite: WorkspaceTask,
    target: TaskStatus,
) -> bool:
    """Whether one prerequisite lets the dependent move to target."""
    if prerequisite.is_deleted or not is_gated(dependency_type, target):
        return True
    return prerequisite.status in REQUIRED_PREREQUISITE[dependency_type]


def unmet_prerequisites(
    target: TaskStatus,
    prerequisites: Iterable[tuple[DependencyType, WorkspaceTask]],
) -> list[WorkspaceTask]:
    """Prerequisites that keep a task from reaching target, in edge order."""
    return [
        prerequisite
        for dependency_type, prerequisite in prerequisites
        if not is_satisfied(dependency_type, prerequisite, target)
    ]


def resolve_status(
    current: TaskStatus,
    requested: Optional[TaskStatus],
    prerequisites: list[tuple[DependencyType, WorkspaceTask]],
) -> tuple[TaskStatus, Optional[TaskStatus]]:
    """Status and requested_status a task should hold given its prerequisites.

    A BLOCKED task moves to its requested status once that is allowed. Any
    other status that is no longer allowed becomes BLOCKED, remembering
    the status it had.
    """
    if current == TaskStatus.BLOCKED:
        wanted = requested or TaskStatus.NOT_STARTED
        if unmet_prerequisites(wanted, prerequisites):
            return TaskStatus.BLOCKED, wanted
        return wanted, None
    if unmet_prerequisites(current, prerequisites):
        return TaskStatus.BLOCKED, current
    return current, None


def would_create_cycle(
    edges: Iterable[tuple[UUID, UUID]],
    task_id: UUID,
    depends_on_task_id: UUID,
) -> bool:
    """Whether adding task_id -> depends_on_task_id closes a cycle.

    Edges are (task_id, depends_on_task_id) pairs. The new edge closes a
    cycle iff task_id is already reachable from depends_on_task_id.
    """
    if task_id == depends_on_task_id:
        return True

    prerequisites_of: dict[UUID, list[UUID]] = defaultdict(list)
    for dependent, prerequisite in edges:
        prerequisites_of[dependent].append(prerequisite)

    stack = [depends_on_task_id]
    seen = {depends_on_task_id}
    while stack:
        node = stack.pop()
        for nxt in prerequisites_of.get(node, ()):
            if nxt == task_id:
                return True
            if nxt not in seen:
                seen.add(nxt)
                stack.append(nxt)
    return False
