"""Repository for workspace tasks and their dependency edges."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import Session, col, func, select

from collab.db.models import (
    TaskCategory,
    TaskDependency,
    TaskPriority,
    TaskStatus,
    TaskSummary,
    WorkspaceTask,
)


class TaskRepository:
    """Repository for WorkspaceTask and TaskDependency operations."""

    def __init__(self, session: Session):
        self.session = session

    # =========================================================================
    # Tasks
    # =========================================================================

    def add(self, task: WorkspaceTask) -> WorkspaceTask:
        """Stage a new task and assign its primary key."""
        self.session.add(task)
        self.session.flush()
        return task

    def get(self, task_id: UUID, include_deleted: bool = False) -> Optional[WorkspaceTask]:
        """Get a task by ID. Soft-deleted tasks are hidden by default."""
        task = self.session.get(WorkspaceTask, task_id)
        if task and task.is_deleted and not include_deleted:
            return None
        return task

    def list_by_workspace(
        self,
        workspace_id: UUID,
        status: Optional[TaskStatus] = None,
        category: Optional[TaskCategory] = None,
        priority: Optional[TaskPriority] = None,
        assignee_id: Optional[UUID] = None,
    ) -> list[WorkspaceTask]:
        """List non-deleted tasks of a workspace with optional filters."""
        statement = select(WorkspaceTask).where(
            WorkspaceTask.workspace_id == workspace_id,
            col(WorkspaceTask.deleted_at).is_(None),
        )
        if status:
            statement = statement.where(WorkspaceTask.status == status)
        if category:
            statement = statement.where(WorkspaceTask.category == category)
        if priority:
            statement = statement.where(WorkspaceTask.priority == priority)
        if assignee_id:
            statement = statement.where(WorkspaceTask.assignee_id == assignee_id)
        statement = statement.order_by(col(WorkspaceTask.created_at))
        return list(self.session.exec(statement).all())

    def summarize(self, workspace_id: UUID, now: datetime) -> TaskSummary:
        """Count non-deleted tasks by progress; overdue excludes COMPLETED."""
        tasks = self.list_by_workspace(workspace_id)
        return TaskSummary(
            total=len(tasks),
            completed=sum(1 for t in tasks if t.status == TaskStatus.COMPLETED),
            in_progress=sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
            blocked=sum(1 for t in tasks if t.status == TaskStatus.BLOCKED),
            overdue=sum(
                1
                for t in tasks
                if t.due_date is not None
                and t.due_date < now
                and t.status != TaskStatus.COMPLETED
            ),
        )

    def list_unfinished_for_assignee(self, assignee_id: UUID) -> list[WorkspaceTask]:
        """List non-deleted, not completed tasks assigned to a member."""
        statement = select(WorkspaceTask).where(
            WorkspaceTask.assignee_id == assignee_id,
            WorkspaceTask.status != TaskStatus.COMPLETED,
            col(WorkspaceTask.deleted_at).is_(None),
        )
        return list(self.session.exec(statement).all())

    # =========================================================================
    # Dependencies
    # =========================================================================

    def add_dependency(self, dependency: TaskDependency) -> TaskDependency:
        """Stage a new dependency edge."""
        self.session.add(dependency)
        self.session.flush()
        return dependency

    def get_dependency(
        self, task_id: UUID, depends_on_task_id: UUID
    ) -> Optional[TaskDependency]:
        """Get the edge task_id -> depends_on_task_id, if present."""
        statement = select(TaskDependency).where(
            TaskDependency.task_id == task_id,
            TaskDependency.depends_on_task_id == depends_on_task_id,
        )
        return self.session.exec(statement).first()

    def list_dependencies(self, task_id: UUID) -> list[TaskDependency]:
        """List a task's prerequisites in the order they were added."""
        statement = (
            select(TaskDependency)
            .where(TaskDependency.task_id == task_id)
            .order_by(col(TaskDependency.position))
        )
        return list(self.session.exec(statement).all())

    def list_dependents(self, task_id: UUID) -> list[TaskDependency]:
        """List edges whose prerequisite is the given task."""
        statement = select(TaskDependency).where(
            TaskDependency.depends_on_task_id == task_id
        )
        return list(self.session.exec(statement).all())

    def list_workspace_edges(self, workspace_id: UUID) -> list[tuple[UUID, UUID]]:
        """List every (task_id, depends_on_task_id) edge inside a workspace."""
        statement = (
            select(TaskDependency.task_id, TaskDependency.depends_on_task_id)
            .join(WorkspaceTask, WorkspaceTask.id == TaskDependency.task_id)
            .where(WorkspaceTask.workspace_id == workspace_id)
        )
        return [(row[0], row[1]) for row in self.session.exec(statement).all()]

    def next_position(self, task_id: UUID) -> int:
        """Position for the next prerequisite appended to a task."""
        statement = select(func.max(TaskDependency.position)).where(
            TaskDependency.task_id == task_id
        )
        current = self.session.exec(statement).one()
        return 0 if current is None else current + 1
