"""Template routes: snapshots, listing and recommendations."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from api.auth.dependencies import CurrentUserDep, ServicesDep, SessionDep
from api.models.api_models import CreateTemplateRequest
from api.responses import ERROR_RESPONSES, ApiResponse, ok
from collab.config import TEMPLATE_RECOMMENDATION_LIMIT
from collab.db.models import WorkspaceTemplateCreate, WorkspaceTemplateRead


router = APIRouter(prefix="/templates", tags=["templates"], responses=ERROR_RESPONSES)


@router.post(
    "/create-from-workspace",
    response_model=ApiResponse[WorkspaceTemplateRead],
    status_code=status.HTTP_201_CREATED,
)
def create_template_from_workspace(
    body: CreateTemplateRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    """Snapshot a workspace's roles, task categories and tasks."""
    metadata = WorkspaceTemplateCreate.model_validate(
        body.model_dump(exclude={"workspace_id"})
    )
    template = services.templates.create_template_from_workspace(
        session, body.workspace_id, current_user.user_id, metadata
    )
    return ok(WorkspaceTemplateRead.model_validate(template))


@router.get("", response_model=ApiResponse[list[WorkspaceTemplateRead]])
def list_templates(
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
    category: Optional[str] = None,
):
    templates = services.templates.list_templates(
        session, current_user.user_id, category=category
    )
    return ok([WorkspaceTemplateRead.model_validate(t) for t in templates])


@router.get(
    "/recommendations/{event_id}",
    response_model=ApiResponse[list[WorkspaceTemplateRead]],
)
def get_template_recommendations(
    event_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
    limit: int = Query(default=TEMPLATE_RECOMMENDATION_LIMIT, ge=1, le=50),
):
    """Ranked templates for an event; may be empty."""
    templates = services.templates.get_template_recommendations(
        session, event_id, current_user.user_id, limit=limit
    )
    return ok([WorkspaceTemplateRead.model_validate(t) for t in templates])


@router.get("/{template_id}", response_model=ApiResponse[WorkspaceTemplateRead])
def get_template(
    template_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    template = services.templates.get_template(session, template_id, current_user.user_id)
    return ok(WorkspaceTemplateRead.model_validate(template))
