"""Service for team membership: invitations, roles and removal.

A PENDING TeamMember row is the invitation handle. Accepting it turns the
same row ACTIVE; the partial unique index on ACTIVE (workspace, user)
pairs settles concurrent acceptances.
"""

from datetime import timedelta
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Session

from api.auth.capabilities import Capability, permission_snapshot
from api.auth.workspace_access import (
    ensure_mutable,
    load_workspace,
    require_capability,
    require_read_access,
)
from api.exceptions import AccessDeniedError, ConflictError, NotFoundError, ValidationError
from api.services.audit_service import audited, current_audit_trail, guarded_read
from api.services.validators import coerce_enum, normalize_email
from collab.config import INVITE_EXPIRE_DAYS
from collab.db.models import (
    AuditAction,
    MemberStatus,
    TeamMember,
    User,
    WorkspaceRole,
    utcnow,
)
from collab.logging.structured import get_logger
from collab.repositories import TaskRepository, TeamMemberRepository

logger = get_logger(__name__)


class MembershipService:
    """Service for managing workspace invitations and members.

    Handles the full membership lifecycle:
    - Inviting (invite_member) and revoking (revoke_invitation)
    - Accepting invitations by id (accept_invitation) or by the emailed
      token (accept_invitation_by_token)
    - Changing roles (update_member_role)
    - Removing members (remove_member)
    """

    def _load_member(
        self, session: Session, workspace_id: UUID, member_id: UUID, status: MemberStatus
    ) -> TeamMember:
        member = TeamMemberRepository(session).get(member_id)
        if member is None or member.workspace_id != workspace_id or member.status != status:
            raise NotFoundError(
                "Invitation not found" if status == MemberStatus.PENDING else "Member not found"
            )
        return member

    # ==========================================================================
    # Invitations
    # ==========================================================================

    @audited(
        AuditAction.member_invited,
        "team_member",
        actor_arg="inviter_id",
        conflict_message="User is already invited to this workspace",
    )
    def invite_member(
        self,
        session: Session,
        workspace_id: UUID,
        inviter_id: UUID,
        email: str,
        role: WorkspaceRole = WorkspaceRole.GENERAL_VOLUNTEER,
    ) -> TeamMember:
        """Invite an email address to the workspace with a role.

        Returns:
            The PENDING TeamMember that serves as the invitation handle

        Raises:
            AccessDeniedError: Inviter lacks INVITE_MEMBERS
            ValidationError: Invalid email or owner role requested
            ConflictError: Email already has a pending invitation or is a member
        """
        workspace = load_workspace(session, workspace_id)
        require_capability(session, workspace, inviter_id, Capability.INVITE_MEMBERS)
        ensure_mutable(workspace)

        role = coerce_enum(WorkspaceRole, role, "role")
        if role == WorkspaceRole.WORKSPACE_OWNER:
            raise ValidationError("Cannot invite as workspace owner", field="role")
        email = normalize_email(email)

        member_repo = TeamMemberRepository(session)
        if member_repo.get_active_by_email(workspace_id, email):
            raise ConflictError("User is already a member of this workspace")
        if member_repo.get_pending_by_email(workspace_id, email):
            raise ConflictError("User already has a pending invitation")

        invitation = member_repo.add(
            TeamMember(
                workspace_id=workspace_id,
                email=email,
                role=role,
                status=MemberStatus.PENDING,
                permissions=permission_snapshot(role),
                invited_by=inviter_id,
                invite_token=str(uuid4()),
                invite_expires_at=utcnow() + timedelta(days=INVITE_EXPIRE_DAYS),
            )
        )

        trail = current_audit_trail()
        trail.resource_id = invitation.id
        trail.new_value = {"email": email, "role": role}
        trail.description = f"Invited {email} as {role.value}"

        logger.info(
            "member_invited",
            workspace_id=str(workspace_id),
            invitation_id=str(invitation.id),
            role=role.value,
        )
        return invitation

    def _accept(
        self, session: Session, invitation: Optional[TeamMember], user_id: UUID
    ) -> TeamMember:
        if invitation is None or invitation.status != MemberStatus.PENDING:
            raise NotFoundError("Invitation not found")

        trail = current_audit_trail()
        trail.workspace_id = invitation.workspace_id
        trail.resource_id = invitation.id

        member_repo = TeamMemberRepository(session)
        workspace = load_workspace(session, invitation.workspace_id)
        user = session.get(User, user_id)
        if user is None or user.email.lower() != invitation.email.lower():
            raise AccessDeniedError()
        ensure_mutable(workspace)
        if member_repo.get_active(invitation.workspace_id, user_id) is not None:
            raise ConflictError("User is already an active member of this workspace")
        if invitation.invite_expires_at and invitation.invite_expires_at < utcnow():
            raise ValidationError("Invitation has expired")

        invitation.user_id = user_id
        invitation.status = MemberStatus.ACTIVE
        invitation.joined_at = utcnow()
        invitation.invite_token = None
        invitation.permissions = permission_snapshot(invitation.role)
        session.add(invitation)
        session.flush()

        trail.new_value = {"user_id": user_id, "role": invitation.role}
        trail.description = f"{invitation.email} joined as {invitation.role.value}"

        logger.info(
            "invitation_accepted",
            workspace_id=str(invitation.workspace_id),
            member_id=str(invitation.id),
        )
        return invitation

    @audited(
        AuditAction.invitation_accepted,
        "team_member",
        actor_arg="user_id",
        conflict_message="User is already an active member of this workspace",
    )
    def accept_invitation(
        self, session: Session, invitation_id: UUID, user_id: UUID
    ) -> TeamMember:
        """Accept an invitation, addressed by its id, as the invited user.

        Raises:
            NotFoundError: Invitation does not exist or is no longer pending
            AccessDeniedError: The user's email is not the invited email
            ConflictError: User already has an ACTIVE membership
            ValidationError: Invitation has expired
        """
        invitation = TeamMemberRepository(session).get(invitation_id)
        return self._accept(session, invitation, user_id)

    @audited(
        AuditAction.invitation_accepted,
        "team_member",
        actor_arg="user_id",
        conflict_message="User is already an active member of this workspace",
    )
    def accept_invitation_by_token(
        self, session: Session, invite_token: str, user_id: UUID
    ) -> TeamMember:
        """Accept an invitation using the token sent to the invitee.

        Tokens are single-use: accepting or revoking clears them, so a reused
        token is NotFound. Otherwise behaves like ``accept_invitation``.
        """
        invitation = None
        if invite_token:
            invitation = TeamMemberRepository(session).get_by_invite_token(invite_token)
        return self._accept(session, invitation, user_id)

    @audited(AuditAction.invitation_revoked, "team_member")
    def revoke_invitation(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: UUID,
        invitation_id: UUID,
    ) -> TeamMember:
        """Revoke a pending invitation."""
        workspace = load_workspace(session, workspace_id)
        require_capability(session, workspace, actor_id, Capability.INVITE_MEMBERS)
        ensure_mutable(workspace)
        invitation = self._load_member(
            session, workspace_id, invitation_id, MemberStatus.PENDING
        )

        invitation.status = MemberStatus.REMOVED
        invitation.invite_token = None
        session.add(invitation)
        session.flush()

        trail = current_audit_trail()
        trail.resource_id = invitation.id
        trail.old_value = {"status": MemberStatus.PENDING}
        trail.new_value = {"status": MemberStatus.REMOVED}
        trail.description = f"Revoked invitation for {invitation.email}"
        return invitation

    # ==========================================================================
    # Members
    # ==========================================================================

    @audited(AuditAction.role_changed, "team_member")
    def update_member_role(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: UUID,
        member_id: UUID,
        new_role: WorkspaceRole,
    ) -> TeamMember:
        """Change an ACTIVE member's role and refresh their permission snapshot.

        The owner role can neither be assigned nor taken away.
        """
        workspace = load_workspace(session, workspace_id)
        require_capability(session, workspace, actor_id, Capability.MANAGE_TEAM)
        ensure_mutable(workspace)

        new_role = coerce_enum(WorkspaceRole, new_role, "role")
        if new_role == WorkspaceRole.WORKSPACE_OWNER:
            raise ValidationError("Cannot assign the workspace owner role", field="role")
        member = self._load_member(session, workspace_id, member_id, MemberStatus.ACTIVE)
        if member.role == WorkspaceRole.WORKSPACE_OWNER:
            raise ValidationError("Cannot change the workspace owner's role", field="role")

        old_role = member.role
        member.role = new_role
        member.permissions = permission_snapshot(new_role)
        session.add(member)
        session.flush()

        trail = current_audit_trail()
        trail.resource_id = member.id
        trail.old_value = {"role": old_role}
        trail.new_value = {"role": new_role}
        trail.description = f"Changed role of {member.email} from {old_role.value} to {new_role.value}"
        return member

    @audited(AuditAction.member_removed, "team_member")
    def remove_member(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: UUID,
        member_id: UUID,
    ) -> TeamMember:
        """Soft-remove a member and hand their unfinished tasks to the remover.

        When members remove themselves the tasks go to the owner.
        """
        workspace = load_workspace(session, workspace_id)
        remover = require_capability(session, workspace, actor_id, Capability.MANAGE_TEAM)
        ensure_mutable(workspace)

        member = self._load_member(session, workspace_id, member_id, MemberStatus.ACTIVE)
        if member.role == WorkspaceRole.WORKSPACE_OWNER:
            raise ValidationError("The workspace owner cannot be removed")

        member_repo = TeamMemberRepository(session)
        heir = remover if remover.id != member.id else member_repo.get_owner(workspace_id)

        reassigned = []
        for task in TaskRepository(session).list_unfinished_for_assignee(member.id):
            task.assignee_id = heir.id if heir else None
            session.add(task)
            reassigned.append(task.id)

        member.status = MemberStatus.REMOVED
        member.left_at = utcnow()
        session.add(member)
        session.flush()

        trail = current_audit_trail()
        trail.resource_id = member.id
        trail.old_value = {"status": MemberStatus.ACTIVE, "role": member.role}
        trail.new_value = {
            "status": MemberStatus.REMOVED,
            "reassigned_tasks": reassigned,
            "reassigned_to": heir.id if heir else None,
        }
        trail.description = f"Removed {member.email}"

        logger.info(
            "member_removed",
            workspace_id=str(workspace_id),
            member_id=str(member.id),
            reassigned_tasks=len(reassigned),
        )
        return member

    @guarded_read("team_member")
    def list_members(
        self,
        session: Session,
        workspace_id: UUID,
        actor_id: UUID,
        include_removed: bool = False,
    ) -> list[TeamMember]:
        """ACTIVE members and pending invitations; REMOVED rows on request."""
        workspace = load_workspace(session, workspace_id)
        require_read_access(session, workspace, actor_id)
        statuses: Optional[tuple[MemberStatus, ...]] = None
        if not include_removed:
            statuses = (MemberStatus.ACTIVE, MemberStatus.PENDING)
        return TeamMemberRepository(session).list_by_workspace(workspace_id, statuses)
