"""Task engine: task CRUD, assignment and dependency-gated status changes.

BLOCKED is managed by the engine. Asking for a status whose prerequisites
are not met parks the task as BLOCKED with the request remembered in
``requested_status``; it moves on by itself once the prerequisites allow.
"""

from collections import deque
from typing import Any, Optional
from uuid import UUID

from sqlmodel import Session

from api.auth.capabilities import Capability, has_capability
from api.auth.workspace_access import (
    ensure_mutable,
    get_active_membership,
    load_workspace,
    require_capability,
    require_read_access,
)
from api.exceptions import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from api.services.audit_service import audited, current_audit_trail, guarded_read
from api.services.validators import coerce_enum
from api.services.task_dependencies import resolve_status, would_create_cycle
from collab.db.models import (
    AuditAction,
    DependencyType,
    MemberStatus,
    TaskCategory,
    TaskDependency,
    TaskPriority,
    TaskStatus,
    TaskSummary,
    TeamMember,
    Workspace,
    WorkspaceTask,
    WorkspaceTaskCreate,
    WorkspaceTaskUpdate,
    as_utc,
    utcnow,
)
from collab.logging.structured import get_logger
from collab.repositories import TaskRepository

logger = get_logger(__name__)


def _task_snapshot(task: WorkspaceTask) -> dict[str, Any]:
    return {
        "title": task.title,
        "category": task.category,
        "priority": task.priority,
        "status": task.status,
        "assignee_id": task.assignee_id,
        "due_date": task.due_date,
    }


class TaskService:
    """Service for workspace tasks and their dependencies."""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _load_task(self, session: Session, task_id: UUID) -> WorkspaceTask:
        task = TaskRepository(session).get(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        current_audit_trail().workspace_id = task.workspace_id
        return task

    def _require_assignable(
        self, session: Session, workspace_id: UUID, assignee_id: UUID
    ) -> TeamMember:
        member = session.get(TeamMember, assignee_id)
        if (
            member is None
            or member.workspace_id != workspace_id
            or member.status != MemberStatus.ACTIVE
        ):
            raise ValidationError(
                "Assignee must be an active member of this workspace",
                field="assignee_id",
            )
        return member

    def _prerequisites(
        self, repo: TaskRepository, task: WorkspaceTask
    ) -> list[tuple[DependencyType, WorkspaceTask]]:
        prerequisites = []
        for edge in repo.list_dependencies(task.id):
            prerequisite = repo.get(edge.depends_on_task_id, include_deleted=True)
            if prerequisite is not None:
                prerequisites.append((edge.dependency_type, prerequisite))
        return prerequisites

    def _apply_gating(
        self,
        repo: TaskRepository,
        task: WorkspaceTask,
        requested: Optional[TaskStatus] = None,
    ) -> bool:
        """Set task status from its prerequisites; True if anything changed."""
        current = requested or task.status
        pending = task.requested_status if requested is None else None
        status, requested_status = resolve_status(
            current, pending, self._prerequisites(repo, task)
        )
        changed = (status, requested_status) != (task.status, task.requested_status)
        if changed:
            if status == TaskStatus.BLOCKED and task.status != TaskStatus.BLOCKED:
                logger.info(
                    "task_blocked",
                    task_id=str(task.id),
                    requested_status=requested_status.value if requested_status else None,
                )
            elif task.status == TaskStatus.BLOCKED and status != TaskStatus.BLOCKED:
                logger.info("task_unblocked", task_id=str(task.id), status=status.value)
            task.status = status
            task.requested_status = requested_status
            repo.session.add(task)
        return changed

    def _propagate(self, repo: TaskRepository, changed_task: WorkspaceTask) -> None:
        """Re-evaluate everything downstream of a task whose gate inputs changed."""
        queue = deque([changed_task.id])
        while queue:
            prerequisite_id = queue.popleft()
            for edge in repo.list_dependents(prerequisite_id):
                dependent = repo.get(edge.task_id)
                if dependent is not None and self._apply_gating(repo, dependent):
                    queue.append(dependent.id)
        repo.session.flush()

    def _check_workspace(
        self, session: Session, workspace_id: UUID, actor_id: UUID, capability: Capability
    ) -> Workspace:
        workspace = load_workspace(session, workspace_id)
        require_capability(session, workspace, actor_id, capability)
        ensure_mutable(workspace)
        return workspace

    # ==========================================================================
    # Tasks
    # ==========================================================================

    @audited(AuditAction.task_created, "task", actor_arg="creator_id")
    def create_task(
        self,
        session: Session,
        workspace_id: UUID,
        creator_id: UUID,
        fields: WorkspaceTaskCreate,
    ) -> WorkspaceTask:
        """Create a NOT_STARTED task.

        Raises:
            AccessDeniedError: Creator lacks CREATE_TASKS
            ValidationError: Blank title, invalid enum value or assignee
                outside the workspace
        """
        self._check_workspace(session, workspace_id, creator_id, Capability.CREATE_TASKS)

        title = (fields.title or "").strip()
        if not title:
            raise ValidationError("Title is required", field="title")
        try:
            category = TaskCategory(fields.category)
            priority = TaskPriority(fields.priority)
        except ValueError as exc:
            raise ValidationError(str(exc), field="category/priority") from exc
        if fields.assignee_id is not None:
            self._require_assignable(session, workspace_id, fields.assignee_id)

        task = TaskRepository(session).add(
            WorkspaceTask(
                workspace_id=workspace_id,
                title=title,
                description=fields.description,
                category=category,
                priority=priority,
                due_date=as_utc(fields.due_date),
                assignee_id=fields.assignee_id,
                creator_id=creator_id,
                status=TaskStatus.NOT_STARTED,
            )
        )

        trail = current_audit_trail()
        trail.resource_id = task.id
        trail.new_value = _task_snapshot(task)
        trail.description = f"Created task {task.title}"

        logger.info(
            "task_created",
            task_id=str(task.id),
            workspace_id=str(workspace_id),
            category=category.value,
        )
        return task

    @guarded_read("task")
    def get_task(self, session: Session, task_id: UUID, actor_id: UUID) -> WorkspaceTask:
        """Get a non-deleted task the actor may view."""
        task = self._load_task(session, task_id)
        workspace = load_workspace(session, task.workspace_id)
        require_read_access(session, workspace, actor_id, Capability.VIEW_TASKS)
        return task

    @guarded_read("task")
    def list_tasks(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: UUID,
        status: Optional[TaskStatus] = None,
        category: Optional[TaskCategory] = None,
        priority: Optional[TaskPriority] = None,
        assignee_id: Optional[UUID] = None,
    ) -> list[WorkspaceTask]:
        """List non-deleted tasks of a workspace with optional filters."""
        workspace = load_workspace(session, workspace_id)
        require_read_access(session, workspace, actor_id, Capability.VIEW_TASKS)
        return TaskRepository(session).list_by_workspace(
            workspace_id,
            status=status,
            category=category,
            priority=priority,
            assignee_id=assignee_id,
        )

    @guarded_read("task")
    def get_task_summary(
        self, session: Session, workspace_id: UUID, actor_id: UUID
    ) -> TaskSummary:
        """Counters: total, completed, in_progress, blocked, overdue."""
        workspace = load_workspace(session, workspace_id)
        require_read_access(session, workspace, actor_id, Capability.VIEW_TASKS)
        return TaskRepository(session).summarize(workspace_id, utcnow())

    @audited(AuditAction.task_updated, "task")
    def update_task(
        self,
        session: Session,
        task_id: UUID,
        actor_id: UUID,
        changes: WorkspaceTaskUpdate,
    ) -> WorkspaceTask:
        """Edit title, description, category, priority or due date."""
        task = self._load_task(session, task_id)
        self._check_workspace(session, task.workspace_id, actor_id, Capability.MANAGE_TASKS)

        updates = changes.model_dump(exclude_unset=True)
        if not updates:
            raise ValidationError("No fields to update")
        if "title" in updates:
            updates["title"] = (updates["title"] or "").strip()
            if not updates["title"]:
                raise ValidationError("Title is required", field="title")
        for field in ("category", "priority"):
            if field in updates and updates[field] is None:
                raise ValidationError(f"{field} cannot be null", field=field)
        if "due_date" in updates:
            updates["due_date"] = as_utc(updates["due_date"])

        old_value = {key: getattr(task, key) for key in updates}
        for key, value in updates.items():
            setattr(task, key, value)
        session.add(task)
        session.flush()

        trail = current_audit_trail()
        trail.resource_id = task.id
        trail.old_value = old_value
        trail.new_value = updates
        trail.description = f"Updated task {task.title}"
        return task

    @audited(AuditAction.task_status_changed, "task")
    def update_task_status(
        self,
        session: Session,
        task_id: UUID,
        actor_id: UUID,
        new_status: TaskStatus,
    ) -> WorkspaceTask:
        """Move a task to a new status, subject to its dependencies.

        Allowed for the assignee (with UPDATE_TASK_PROGRESS) and for holders
        of MANAGE_TASKS. If a prerequisite does not allow the new status the
        task becomes BLOCKED instead. Dependents are re-evaluated.

        Raises:
            AccessDeniedError: Actor is neither assignee nor task manager
            ValidationError: BLOCKED was requested directly
        """
        task = self._load_task(session, task_id)
        workspace = load_workspace(session, task.workspace_id)

        member = get_active_membership(session, workspace.id, actor_id)
        if member is None:
            raise AccessDeniedError()
        is_assignee = task.assignee_id == member.id and has_capability(
            member.role, Capability.UPDATE_TASK_PROGRESS
        )
        if not (is_assignee or has_capability(member.role, Capability.MANAGE_TASKS)):
            raise AccessDeniedError()
        ensure_mutable(workspace)

        new_status = coerce_enum(TaskStatus, new_status, "status")
        if new_status == TaskStatus.BLOCKED:
            raise ValidationError(
                "BLOCKED is set automatically from task dependencies",
                field="status",
            )

        old_value = {"status": task.status, "requested_status": task.requested_status}
        repo = TaskRepository(session)
        self._apply_gating(repo, task, requested=new_status)
        session.flush()
        self._propagate(repo, task)

        trail = current_audit_trail()
        trail.resource_id = task.id
        trail.old_value = old_value
        trail.new_value = {
            "status": task.status,
            "requested_status": task.requested_status,
        }
        trail.description = f"Requested {new_status.value} for task {task.title}"

        logger.info(
            "task_status_changed",
            task_id=str(task.id),
            requested=new_status.value,
            status=task.status.value,
        )
        return task

    @audited(AuditAction.task_assigned, "task")
    def assign_task(
        self,
        session: Session,
        task_id: UUID,
        actor_id: UUID,
        assignee_id: Optional[UUID],
    ) -> WorkspaceTask:
        """Assign a task to an ACTIVE member, or unassign it with None."""
        task = self._load_task(session, task_id)
        self._check_workspace(session, task.workspace_id, actor_id, Capability.MANAGE_TASKS)
        if assignee_id is not None:
            self._require_assignable(session, task.workspace_id, assignee_id)

        trail = current_audit_trail()
        trail.old_value = {"assignee_id": task.assignee_id}
        task.assignee_id = assignee_id
        session.add(task)
        session.flush()

        trail.resource_id = task.id
        trail.new_value = {"assignee_id": assignee_id}
        trail.description = f"Assigned task {task.title}"
        return task

    @audited(AuditAction.task_deleted, "task")
    def delete_task(self, session: Session, task_id: UUID, actor_id: UUID) -> WorkspaceTask:
        """Soft-delete a task. It stops gating its dependents."""
        task = self._load_task(session, task_id)
        self._check_workspace(session, task.workspace_id, actor_id, Capability.MANAGE_TASKS)

        task.deleted_at = utcnow()
        session.add(task)
        session.flush()
        self._propagate(TaskRepository(session), task)

        trail = current_audit_trail()
        trail.resource_id = task.id
        trail.old_value = _task_snapshot(task)
        trail.description = f"Deleted task {task.title}"
        return task

    # ==========================================================================
    # Dependencies
    # ==========================================================================

    @audited(
        AuditAction.dependency_added,
        "task_dependency",
        conflict_message="Dependency already exists",
    )
    def add_dependency(
        self,
        session: Session,
        task_id: UUID,
        depends_on_task_id: UUID,
        dependency_type: DependencyType,
        actor_id: UUID,
    ) -> TaskDependency:
        """Make task_id depend on depends_on_task_id.

        The dependent task is re-evaluated afterwards and becomes BLOCKED if
        its current status is no longer allowed.

        Raises:
            ValidationError: Self-dependency, cross-workspace edge or cycle
            ConflictError: Edge already exists
        """
        task = self._load_task(session, task_id)
        self._check_workspace(session, task.workspace_id, actor_id, Capability.MANAGE_TASKS)

        dependency_type = coerce_enum(DependencyType, dependency_type, "dependency_type")
        if task_id == depends_on_task_id:
            raise ValidationError(
                "A task cannot depend on itself", field="depends_on_task_id"
            )

        repo = TaskRepository(session)
        prerequisite = repo.get(depends_on_task_id)
        if prerequisite is None:
            raise NotFoundError("Task not found")
        if prerequisite.workspace_id != task.workspace_id:
            raise ValidationError(
                "Dependencies must stay within one workspace",
                field="depends_on_task_id",
            )
        if repo.get_dependency(task_id, depends_on_task_id) is not None:
            raise ConflictError("Dependency already exists")
        if would_create_cycle(
            repo.list_workspace_edges(task.workspace_id), task_id, depends_on_task_id
        ):
            raise ValidationError(
                "Dependency would create a cycle", field="depends_on_task_id"
            )

        dependency = repo.add_dependency(
            TaskDependency(
                task_id=task_id,
                depends_on_task_id=depends_on_task_id,
                dependency_type=dependency_type,
                position=repo.next_position(task_id),
            )
        )
        if self._apply_gating(repo, task):
            session.flush()
            self._propagate(repo, task)

        trail = current_audit_trail()
        trail.resource_id = dependency.id
        trail.new_value = {
            "task_id": task_id,
            "depends_on_task_id": depends_on_task_id,
            "dependency_type": dependency_type,
            "task_status": task.status,
        }
        trail.description = f"Task {task.title} now depends on {prerequisite.title}"
        return dependency

    @audited(AuditAction.dependency_removed, "task_dependency")
    def remove_dependency(
        self,
        session: Session,
        task_id: UUID,
        depends_on_task_id: UUID,
        actor_id: UUID,
    ) -> WorkspaceTask:
        """Remove an edge and re-evaluate the dependent task."""
        task = self._load_task(session, task_id)
        self._check_workspace(session, task.workspace_id, actor_id, Capability.MANAGE_TASKS)

        repo = TaskRepository(session)
        dependency = repo.get_dependency(task_id, depends_on_task_id)
        if dependency is None:
            raise NotFoundError("Dependency not found")

        trail = current_audit_trail()
        trail.resource_id = dependency.id
        trail.old_value = {
            "task_id": task_id,
            "depends_on_task_id": depends_on_task_id,
            "dependency_type": dependency.dependency_type,
        }
        session.delete(dependency)
        session.flush()
        if self._apply_gating(repo, task):
            session.flush()
            self._propagate(repo, task)

        trail.new_value = {"task_status": task.status}
        trail.description = f"Removed a dependency of task {task.title}"
        return task

    @guarded_read("task_dependency")
    def list_dependencies(
        self, session: Session, task_id: UUID, actor_id: UUID
    ) -> list[TaskDependency]:
        """Prerequisite edges of a task in the order they were added."""
        task = self._load_task(session, task_id)
        workspace = load_workspace(session, task.workspace_id)
        require_read_access(session, workspace, actor_id, Capability.VIEW_TASKS)
        return TaskRepository(session).list_dependencies(task_id)
