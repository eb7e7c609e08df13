"""Workspace templates: snapshots, application and recommendations."""

from typing import Any, Optional
from uuid import UUID

from sqlmodel import Session, col, or_, select

from api.auth.capabilities import Capability
from api.auth.workspace_access import ensure_mutable, load_workspace, require_capability
from api.exceptions import ConflictError, NotFoundError
from api.services.audit_service import audited, current_audit_trail
from collab.config import TEMPLATE_RECOMMENDATION_LIMIT
from collab.db.models import (
    AuditAction,
    Event,
    MemberStatus,
    TaskCategory,
    TaskPriority,
    TaskStatus,
    WorkspaceStatus,
    WorkspaceTask,
    WorkspaceTemplate,
    WorkspaceTemplateCreate,
)
from collab.logging.structured import get_logger
from collab.repositories import TaskRepository, TeamMemberRepository

logger = get_logger(__name__)


def snapshot_structure(session: Session, workspace_id: UUID) -> dict[str, Any]:
    """Point-in-time copy of a workspace's roles, categories and tasks."""
    members = TeamMemberRepository(session).list_by_workspace(
        workspace_id, statuses=(MemberStatus.ACTIVE,)
    )
    tasks = TaskRepository(session).list_by_workspace(workspace_id)
    return {
        "roles": sorted({member.role.value for member in members}),
        "task_categories": sorted({task.category.value for task in tasks}),
        "tasks": [
            {
                "title": task.title,
                "description": task.description,
                "category": task.category.value,
                "priority": task.priority.value,
            }
            for task in tasks
        ],
    }


class TemplateService:
    """Service for creating, applying and recommending templates."""

    def _visible(self, actor_id: UUID):
        return select(WorkspaceTemplate).where(
            or_(
                col(WorkspaceTemplate.is_public).is_(True),
                WorkspaceTemplate.created_by == actor_id,
            )
        )

    @audited(AuditAction.template_created, "template")
    def create_template_from_workspace(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: UUID,
        metadata: WorkspaceTemplateCreate,
    ) -> WorkspaceTemplate:
        """Snapshot a workspace into a new template.

        Later changes to the workspace do not affect the template.

        Raises:
            AccessDeniedError: Actor lacks MANAGE_TEMPLATES
            ConflictError: Workspace is DISSOLVED
        """
        workspace = load_workspace(session, workspace_id)
        require_capability(session, workspace, actor_id, Capability.MANAGE_TEMPLATES)
        ensure_mutable(workspace)

        template = WorkspaceTemplate(
            name=metadata.name,
            description=metadata.description,
            category=metadata.category,
            complexity=metadata.complexity,
            is_public=metadata.is_public,
            tags=list(metadata.tags),
            structure=snapshot_structure(session, workspace_id),
            source_workspace_id=workspace_id,
            created_by=actor_id,
        )
        session.add(template)
        session.flush()

        trail = current_audit_trail()
        trail.resource_id = template.id
        trail.new_value = {
            "name": template.name,
            "roles": template.structure["roles"],
            "task_categories": template.structure["task_categories"],
        }
        trail.description = f"Created template {template.name}"

        logger.info(
            "template_created",
            template_id=str(template.id),
            workspace_id=str(workspace_id),
            roles=len(template.structure["roles"]),
            task_categories=len(template.structure["task_categories"]),
        )
        return template

    def get_template(
        self, session: Session, template_id: UUID, actor_id: UUID
    ) -> WorkspaceTemplate:
        """Get a public template or one the actor created."""
        template = session.get(WorkspaceTemplate, template_id)
        if template is None or not (template.is_public or template.created_by == actor_id):
            raise NotFoundError("Template not found")
        return template

    def list_templates(
        self,
        session: Session,
        actor_id: UUID,
        category: Optional[str] = None,
    ) -> list[WorkspaceTemplate]:
        """Templates visible to the actor, most used first."""
        statement = self._visible(actor_id)
        if category:
            statement = statement.where(WorkspaceTemplate.category == category)
        statement = statement.order_by(
            col(WorkspaceTemplate.usage_count).desc(),
            col(WorkspaceTemplate.created_at).desc(),
        )
        return list(session.exec(statement).all())

    @audited(AuditAction.template_applied, "template")
    def apply_template(
        self,
        session: Session,
        workspace_id: UUID,
        template_id: UUID,
        actor_id: UUID,
    ):
        """Scaffold an ACTIVE, untemplated workspace from a template.

        Stores the template's roles and categories in the workspace settings,
        clones its task skeletons as NOT_STARTED tasks and counts the use.

        Raises:
            AccessDeniedError: Actor lacks MANAGE_WORKSPACE
            NotFoundError: Template missing or not visible to the actor
            ConflictError: Workspace not ACTIVE or already templated
        """
        workspace = load_workspace(session, workspace_id)
        require_capability(session, workspace, actor_id, Capability.MANAGE_WORKSPACE)
        template = self.get_template(session, template_id, actor_id)
        if workspace.status != WorkspaceStatus.ACTIVE:
            raise ConflictError("Templates can only be applied to active workspaces")
        if workspace.template_id is not None:
            raise ConflictError("Workspace already has a template applied")

        structure = template.structure or {}
        workspace.template_id = template.id
        workspace.settings = {
            **(workspace.settings or {}),
            "roles": list(structure.get("roles", [])),
            "task_categories": list(structure.get("task_categories", [])),
        }
        session.add(workspace)

        task_repo = TaskRepository(session)
        created = []
        for skeleton in structure.get("tasks", []):
            task = task_repo.add(
                WorkspaceTask(
                    workspace_id=workspace_id,
                    title=skeleton["title"],
                    description=skeleton.get("description"),
                    category=TaskCategory(skeleton["category"]),
                    priority=TaskPriority(skeleton.get("priority", TaskPriority.MEDIUM.value)),
                    creator_id=actor_id,
                    status=TaskStatus.NOT_STARTED,
                )
            )
            created.append(task.id)

        template.usage_count += 1
        session.add(template)
        session.flush()

        trail = current_audit_trail()
        trail.resource_id = template.id
        trail.new_value = {
            "template_id": template.id,
            "roles": workspace.settings["roles"],
            "task_categories": workspace.settings["task_categories"],
            "tasks_created": len(created),
        }
        trail.description = f"Applied template {template.name}"
        return workspace

    def get_template_recommendations(
        self,
        session: Session,
        event_id: UUID,
        actor_id: UUID,
        limit: int = TEMPLATE_RECOMMENDATION_LIMIT,
    ) -> list[WorkspaceTemplate]:
        """Rank visible templates for an event.

        Templates in the event's category come first, then by usage count,
        then newest first. An empty list is a valid answer.
        """
        event = session.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")

        category = (event.category or "").lower()
        templates = list(session.exec(self._visible(actor_id)).all())
        templates.sort(
            key=lambda t: (
                bool(category) and t.category.lower() == category,
                t.usage_count,
                t.created_at,
            ),
            reverse=True,
        )
        return templates[: max(limit, 0)]
