"""Tests for dependency gating rules and cycle detection."""

from uuid import uuid4

import pytest

from api.services.task_dependencies import (
    is_satisfied,
    resolve_status,
    unmet_prerequisites,
    would_create_cycle,
)
from collab.db.models import DependencyType, TaskCategory, TaskStatus, WorkspaceTask, utcnow

FS = DependencyType.FINISH_TO_START
SS = DependencyType.START_TO_START
FF = DependencyType.FINISH_TO_FINISH


def make_task(status: TaskStatus = TaskStatus.NOT_STARTED, deleted: bool = False) -> WorkspaceTask:
    return WorkspaceTask(
        title="Prerequisite",
        category=TaskCategory.SETUP,
        workspace_id=uuid4(),
        creator_id=uuid4(),
        status=status,
        deleted_at=utcnow() if deleted else None,
    )


class TestIsSatisfied:
    """Tests for dependency satisfaction."""

    @pytest.mark.parametrize(
        "dependency_type,prerequisite_status,target,expected",
        [
            (FS, TaskStatus.IN_PROGRESS, TaskStatus.IN_PROGRESS, False),
            (FS, TaskStatus.COMPLETED, TaskStatus.IN_PROGRESS, True),
            (FS, TaskStatus.NOT_STARTED, TaskStatus.NOT_STARTED, True),
            (SS, TaskStatus.NOT_STARTED, TaskStatus.IN_PROGRESS, False),
            (SS, TaskStatus.IN_PROGRESS, TaskStatus.IN_PROGRESS, True),
            (SS, TaskStatus.REVIEW_REQUIRED, TaskStatus.COMPLETED, True),
            (FF, TaskStatus.IN_PROGRESS, TaskStatus.IN_PROGRESS, True),
            (FF, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, False),
            (FF, TaskStatus.COMPLETED, TaskStatus.COMPLETED, True),
        ],
    )
    def test_gates(self, dependency_type, prerequisite_status, target, expected):
        """Each dependency type gates the right target statuses."""
        prerequisite = make_task(prerequisite_status)
        assert is_satisfied(dependency_type, prerequisite, target) is expected

    def test_deleted_prerequisite_never_gates(self):
        """Soft-deleted prerequisites are ignored."""
        prerequisite = make_task(TaskStatus.NOT_STARTED, deleted=True)
        assert is_satisfied(FS, prerequisite, TaskStatus.COMPLETED)

    def test_unmet_prerequisites_keeps_edge_order(self):
        """Unmet prerequisites are reported in edge order."""
        first = make_task(TaskStatus.NOT_STARTED)
        done = make_task(TaskStatus.COMPLETED)
        last = make_task(TaskStatus.IN_PROGRESS)
        unmet = unmet_prerequisites(
            TaskStatus.IN_PROGRESS, [(FS, first), (FS, done), (FS, last)]
        )
        assert unmet == [first, last]


class TestResolveStatus:
    """Tests for status gating."""

    def test_allowed_status_is_kept(self):
        """An allowed status is applied as requested."""
        prerequisites = [(FS, make_task(TaskStatus.COMPLETED))]
        assert resolve_status(TaskStatus.IN_PROGRESS, None, prerequisites) == (
            TaskStatus.IN_PROGRESS,
            None,
        )

    def test_gated_status_becomes_blocked_and_is_remembered(self):
        """A gated request blocks the task and is remembered."""
        prerequisites = [(FS, make_task(TaskStatus.IN_PROGRESS))]
        assert resolve_status(TaskStatus.IN_PROGRESS, None, prerequisites) == (
            TaskStatus.BLOCKED,
            TaskStatus.IN_PROGRESS,
        )

    def test_blocked_task_moves_to_requested_once_allowed(self):
        """Blocked tasks move to the remembered status once released."""
        prerequisites = [(FS, make_task(TaskStatus.COMPLETED))]
        assert resolve_status(TaskStatus.BLOCKED, TaskStatus.COMPLETED, prerequisites) == (
            TaskStatus.COMPLETED,
            None,
        )

    def test_blocked_task_stays_blocked_while_gated(self):
        """Blocked tasks stay blocked while any prerequisite gates."""
        prerequisites = [(FF, make_task(TaskStatus.IN_PROGRESS))]
        assert resolve_status(TaskStatus.BLOCKED, TaskStatus.COMPLETED, prerequisites) == (
            TaskStatus.BLOCKED,
            TaskStatus.COMPLETED,
        )

    def test_blocked_without_request_falls_back_to_not_started(self):
        """Released tasks without a request go back to NOT_STARTED."""
        assert resolve_status(TaskStatus.BLOCKED, None, []) == (TaskStatus.NOT_STARTED, None)

    def test_no_prerequisites_never_blocks(self):
        """Tasks without prerequisites are never blocked."""
        assert resolve_status(TaskStatus.COMPLETED, None, []) == (TaskStatus.COMPLETED, None)


class TestWouldCreateCycle:
    """Tests for cycle detection."""

    def test_self_edge(self):
        """A self edge is a cycle."""
        task = uuid4()
        assert would_create_cycle([], task, task)

    def test_direct_back_edge(self):
        """A direct back edge is a cycle."""
        a, b = uuid4(), uuid4()
        # b depends on a; a -> b would close the loop
        assert would_create_cycle([(b, a)], a, b)

    def test_transitive_cycle(self):
        """Cycles through other tasks are found."""
        a, b, c = uuid4(), uuid4(), uuid4()
        edges = [(b, a), (c, b)]
        assert would_create_cycle(edges, a, c)

    def test_diamond_is_not_a_cycle(self):
        """Shared prerequisites are not a cycle."""
        a, b, c, d = uuid4(), uuid4(), uuid4(), uuid4()
        edges = [(b, a), (c, a), (d, b)]
        assert not would_create_cycle(edges, d, c)

    def test_unrelated_edges(self):
        """Edges between unrelated tasks are fine."""
        a, b, c = uuid4(), uuid4(), uuid4()
        assert not would_create_cycle([(b, a)], c, a)
