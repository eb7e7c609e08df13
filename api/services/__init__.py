"""API services module.

Services are plain objects built once by ``build_services()`` and shared
through ``app.state.services``. Each method takes the caller's session.
"""

from dataclasses import dataclass

from api.services.audit_service import AuditService, audited, guarded_read
from api.services.lifecycle_service import LifecycleService
from api.services.membership_service import MembershipService
from api.services.task_service import TaskService
from api.services.template_service import TemplateService
from api.services.workspace_service import WorkspaceService


@dataclass(frozen=True)
class ServiceContainer:
    """Every service the routes and jobs use."""

    audit: AuditService
    workspaces: WorkspaceService
    membership: MembershipService
    tasks: TaskService
    lifecycle: LifecycleService
    templates: TemplateService


def build_services() -> ServiceContainer:
    """Construct the services once at process start."""
    workspaces = WorkspaceService()
    return ServiceContainer(
        audit=AuditService(),
        workspaces=workspaces,
        membership=MembershipService(),
        tasks=TaskService(),
        lifecycle=LifecycleService(workspaces),
        templates=TemplateService(),
    )


__all__ = [
    "AuditService",
    "LifecycleService",
    "MembershipService",
    "ServiceContainer",
    "TaskService",
    "TemplateService",
    "WorkspaceService",
    "audited",
    "build_services",
    "guarded_read",
]
