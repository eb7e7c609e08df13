"""Task routes: CRUD, status changes, assignment and dependencies."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, status

from api.auth.dependencies import CurrentUserDep, ServicesDep, SessionDep
from api.models.api_models import (
    AddDependencyRequest,
    AssignTaskRequest,
    UpdateTaskStatusRequest,
)
from api.responses import ERROR_RESPONSES, ApiResponse, ok
from collab.db.models import (
    TaskCategory,
    TaskDependencyRead,
    TaskPriority,
    TaskStatus,
    TaskSummary,
    WorkspaceTaskCreate,
    WorkspaceTaskRead,
    WorkspaceTaskUpdate,
)


router = APIRouter(prefix="/tasks", tags=["tasks"], responses=ERROR_RESPONSES)


@router.get("/workspace/{workspace_id}", response_model=ApiResponse[list[WorkspaceTaskRead]])
def list_tasks(
    workspace_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
    status: Optional[TaskStatus] = None,
    category: Optional[TaskCategory] = None,
    priority: Optional[TaskPriority] = None,
    assignee_id: Optional[UUID] = None,
):
    tasks = services.tasks.list_tasks(
        session,
        workspace_id,
        current_user.user_id,
        status=status,
        category=category,
        priority=priority,
        assignee_id=assignee_id,
    )
    return ok([WorkspaceTaskRead.model_validate(t) for t in tasks])


@router.get("/workspace/{workspace_id}/summary", response_model=ApiResponse[TaskSummary])
def get_task_summary(
    workspace_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    return ok(services.tasks.get_task_summary(session, workspace_id, current_user.user_id))


@router.post(
    "/{workspace_id}",
    response_model=ApiResponse[WorkspaceTaskRead],
    status_code=status.HTTP_201_CREATED,
)
def create_task(
    workspace_id: UUID,
    body: WorkspaceTaskCreate,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    task = services.tasks.create_task(session, workspace_id, current_user.user_id, body)
    return ok(WorkspaceTaskRead.model_validate(task))


@router.get("/{task_id}", response_model=ApiResponse[WorkspaceTaskRead])
def get_task(
    task_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    task = services.tasks.get_task(session, task_id, current_user.user_id)
    return ok(WorkspaceTaskRead.model_validate(task))


@router.put("/{task_id}", response_model=ApiResponse[WorkspaceTaskRead])
def update_task(
    task_id: UUID,
    body: WorkspaceTaskUpdate,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    task = services.tasks.update_task(session, task_id, current_user.user_id, body)
    return ok(WorkspaceTaskRead.model_validate(task))


@router.put("/{task_id}/status", response_model=ApiResponse[WorkspaceTaskRead])
def update_task_status(
    task_id: UUID,
    body: UpdateTaskStatusRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    """Request a status. The task comes back BLOCKED if a dependency gates it."""
    task = services.tasks.update_task_status(
        session, task_id, current_user.user_id, body.status
    )
    return ok(WorkspaceTaskRead.model_validate(task))


@router.post("/{task_id}/assign", response_model=ApiResponse[WorkspaceTaskRead])
def assign_task(
    task_id: UUID,
    body: AssignTaskRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    task = services.tasks.assign_task(
        session, task_id, current_user.user_id, body.assignee_id
    )
    return ok(WorkspaceTaskRead.model_validate(task))


@router.delete("/{task_id}", response_model=ApiResponse[WorkspaceTaskRead])
def delete_task(
    task_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    task = services.tasks.delete_task(session, task_id, current_user.user_id)
    return ok(WorkspaceTaskRead.model_validate(task))


# =============================================================================
# Dependencies
# =============================================================================


@router.get("/{task_id}/dependencies", response_model=ApiResponse[list[TaskDependencyRead]])
def list_dependencies(
    task_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    edges = services.tasks.list_dependencies(session, task_id, current_user.user_id)
    return ok([TaskDependencyRead.model_validate(e) for e in edges])


@router.post(
    "/{task_id}/dependencies",
    response_model=ApiResponse[TaskDependencyRead],
    status_code=status.HTTP_201_CREATED,
)
def add_dependency(
    task_id: UUID,
    body: AddDependencyRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    """Make this task depend on another. Cycles are rejected."""
    edge = services.tasks.add_dependency(
        session,
        task_id,
        body.depends_on_task_id,
        body.dependency_type,
        current_user.user_id,
    )
    return ok(TaskDependencyRead.model_validate(edge))


@router.delete(
    "/{task_id}/dependencies/{depends_on_task_id}",
    response_model=ApiResponse[WorkspaceTaskRead],
)
def remove_dependency(
    task_id: UUID,
    depends_on_task_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    task = services.tasks.remove_dependency(
        session, task_id, depends_on_task_id, current_user.user_id
    )
    return ok(WorkspaceTaskRead.model_validate(task))
