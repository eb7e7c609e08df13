"""Team routes: members, invitations and roles."""

from uuid import UUID

from fastapi import APIRouter, status

from api.auth.dependencies import CurrentUserDep, ServicesDep, SessionDep
from api.models.api_models import (
    InvitationRead,
    InviteMemberRequest,
    UpdateMemberRoleRequest,
)
from api.responses import ERROR_RESPONSES, ApiResponse, ok
from collab.db.models import TeamMemberRead


router = APIRouter(prefix="/team", tags=["team"], responses=ERROR_RESPONSES)


@router.get("/{workspace_id}/members", response_model=ApiResponse[list[TeamMemberRead]])
def list_members(
    workspace_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
    include_removed: bool = False,
):
    """Active members and pending invitations."""
    members = services.membership.list_members(
        session, workspace_id, current_user.user_id, include_removed=include_removed
    )
    return ok([TeamMemberRead.model_validate(m) for m in members])


@router.post(
    "/{workspace_id}/invite",
    response_model=ApiResponse[InvitationRead],
    status_code=status.HTTP_201_CREATED,
)
def invite_member(
    workspace_id: UUID,
    body: InviteMemberRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    """Invite someone by email. The returned id is the invitation handle."""
    invitation = services.membership.invite_member(
        session, workspace_id, current_user.user_id, body.email, body.role
    )
    return ok(InvitationRead.model_validate(invitation))


@router.post("/invitations/{invitation_id}/accept", response_model=ApiResponse[TeamMemberRead])
def accept_invitation(
    invitation_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    member = services.membership.accept_invitation(
        session, invitation_id, current_user.user_id
    )
    return ok(TeamMemberRead.model_validate(member))


@router.post("/invites/{token}/accept", response_model=ApiResponse[TeamMemberRead])
def accept_invitation_by_token(
    token: str,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    """Accept the invitation the token was issued for. Tokens are single-use."""
    member = services.membership.accept_invitation_by_token(
        session, token, current_user.user_id
    )
    return ok(TeamMemberRead.model_validate(member))


@router.delete(
    "/{workspace_id}/invitations/{invitation_id}",
    response_model=ApiResponse[TeamMemberRead],
)
def revoke_invitation(
    workspace_id: UUID,
    invitation_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    invitation = services.membership.revoke_invitation(
        session, workspace_id, current_user.user_id, invitation_id
    )
    return ok(TeamMemberRead.model_validate(invitation))


@router.put(
    "/{workspace_id}/members/{member_id}/role",
    response_model=ApiResponse[TeamMemberRead],
)
def update_member_role(
    workspace_id: UUID,
    member_id: UUID,
    body: UpdateMemberRoleRequest,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    member = services.membership.update_member_role(
        session, workspace_id, current_user.user_id, member_id, body.role
    )
    return ok(TeamMemberRead.model_validate(member))


@router.delete(
    "/{workspace_id}/members/{member_id}",
    response_model=ApiResponse[TeamMemberRead],
)
def remove_member(
    workspace_id: UUID,
    member_id: UUID,
    current_user: CurrentUserDep,
    session: SessionDep,
    services: ServicesDep,
):
    """Remove a member. Their unfinished tasks move to the remover."""
    member = services.membership.remove_member(
        session, workspace_id, current_user.user_id, member_id
    )
    return ok(TeamMemberRead.model_validate(member))
