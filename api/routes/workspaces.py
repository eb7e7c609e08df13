"""Workspace routes: provisioning, reads, settings, lifecycle and audit log."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from api.auth.dependencies import CurrentUserDep, ServicesDep, SessionDep
from api.models.api_models import (
    ApplyTemplateRequest,
    DissolveWorkspaceRequest,
    ProvisionWorkspaceRequest,
    WorkspaceDetail,
)
from api.responses import ERROR_RESPONSES, ApiResponse, Page, ok
from collab.db.models import (
    AuditAction,
    AuditLogRead,
    WorkspaceChannelRead,
    WorkspaceRead,
    WorkspaceStatusRead,
    WorkspaceUpdate,
)


router = APIRouter(prefix="/workspace", tags=["workspace"], responses=ERROR_RESPONSES)


@router.post(
    "/provision",
    response_model=ApiResponse[WorkspaceDetail],
    status_code=status.HTTP_201_CREATED,
)
def provision_workspace(
    body: ProvisionWorkspaceRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    """Provision the workspace of an event. Only the organizer may do this."""
    workspace = services.workspaces.provision_workspace(
        session, body.event_id, current_user.user_id
    )
    return ok(services.workspaces.build_detail(session, workspace))


@router.get("/mine", response_model=ApiResponse[list[WorkspaceRead]])
def list_my_workspaces(
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    """Workspaces where the current user is an active member."""
    workspaces = services.workspaces.list_user_workspaces(session, current_user.user_id)
    return ok([WorkspaceRead.model_validate(w) for w in workspaces])


@router.get("/event/{event_id}", response_model=ApiResponse[WorkspaceDetail])
def get_workspace_by_event(
    event_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    workspace = services.workspaces.get_workspace_by_event(
        session, event_id, current_user.user_id
    )
    return ok(services.workspaces.build_detail(session, workspace))


@router.get("/{workspace_id}", response_model=ApiResponse[WorkspaceDetail])
def get_workspace(
    workspace_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    """Workspace with team members, channels and task summary."""
    workspace = services.workspaces.get_workspace(session, workspace_id, current_user.user_id)
    return ok(services.workspaces.build_detail(session, workspace))


@router.put("/{workspace_id}", response_model=ApiResponse[WorkspaceRead])
def update_workspace(
    workspace_id: UUID,
    body: WorkspaceUpdate,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    workspace = services.workspaces.update_workspace(
        session,
        workspace_id,
        current_user.user_id,
        name=body.name,
        description=body.description,
        settings=body.settings,
    )
    return ok(WorkspaceRead.model_validate(workspace))


@router.get("/{workspace_id}/channels", response_model=ApiResponse[list[WorkspaceChannelRead]])
def list_channels(
    workspace_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    channels = services.workspaces.list_channels(session, workspace_id, current_user.user_id)
    return ok([WorkspaceChannelRead.model_validate(c) for c in channels])


# =============================================================================
# Lifecycle
# =============================================================================


@router.post("/{workspace_id}/dissolve", response_model=ApiResponse[WorkspaceStatusRead])
def dissolve_workspace(
    workspace_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
    body: Optional[DissolveWorkspaceRequest] = None,
):
    """Start dissolution. The workspace winds down for the retention period."""
    services.lifecycle.dissolve_workspace(
        session,
        workspace_id,
        current_user.user_id,
        retention_period_days=body.retention_period_days if body else None,
    )
    return ok(
        services.lifecycle.get_workspace_status(session, workspace_id, current_user.user_id)
    )


@router.get("/{workspace_id}/status", response_model=ApiResponse[WorkspaceStatusRead])
def get_workspace_status(
    workspace_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    return ok(
        services.lifecycle.get_workspace_status(session, workspace_id, current_user.user_id)
    )


# =============================================================================
# Templates and audit
# =============================================================================


@router.post("/{workspace_id}/apply-template", response_model=ApiResponse[WorkspaceDetail])
def apply_template(
    workspace_id: UUID,
    body: ApplyTemplateRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    workspace = services.templates.apply_template(
        session, workspace_id, body.template_id, current_user.user_id
    )
    return ok(services.workspaces.build_detail(session, workspace))


@router.get("/{workspace_id}/audit-logs", response_model=ApiResponse[Page[AuditLogRead]])
def list_audit_logs(
    workspace_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
    action: Optional[AuditAction] = None,
    resource_type: Optional[str] = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
):
    """Audit entries, newest first."""
    entries, total = services.audit.list_audit_log(
        session,
        workspace_id,
        current_user.user_id,
        action=action,
        resource_type=resource_type,
        limit=limit,
        offset=offset,
    )
    return ok(
        Page(
            items=[AuditLogRead.model_validate(e) for e in entries],
            total=total,
            limit=limit,
            offset=offset,
        )
    )
