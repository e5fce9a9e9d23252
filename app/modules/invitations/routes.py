from fastapi import APIRouter, Depends, HTTPException, status
from app.database.supabase_client import get_supabase
from app.modules.invitations.schemas import InvitationCreate, InvitationResponse
from app.modules.invitations.service import InvitationService
from app.core.dependencies import (
    require_permission, check_team_access, check_team_manager, is_admin
)
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/invitations", tags=["invitations"])
team_router = APIRouter(prefix="/teams/{team_id}/invitations", tags=["invitations"])


def get_invitation_service(supabase: Client = Depends(get_supabase)) -> InvitationService:
    return InvitationService(supabase)


@team_router.post("", response_model=InvitationResponse, status_code=201)
async def invite_to_team(
    team_id: str,
    invitation_data: InvitationCreate,
    profile: Dict = Depends(require_permission("invitations:create")),
    service: InvitationService = Depends(get_invitation_service),
    supabase: Client = Depends(get_supabase)
):
    """Invite a classmate to the team (team leader)"""
    team = check_team_manager(team_id, profile, supabase)
    return service.invite(team, profile["id"], invitation_data)


@team_router.get("", response_model=List[InvitationResponse])
async def list_team_invitations(
    team_id: str,
    status: Optional[str] = None,
    profile: Dict = Depends(require_permission("invitations:read")),
    service: InvitationService = Depends(get_invitation_service),
    supabase: Client = Depends(get_supabase)
):
    """List invitations sent by a team"""
    check_team_access(team_id, profile, supabase)
    return service.list_for_team(team_id, status=status)


@router.get("", response_model=List[InvitationResponse])
async def list_my_invitations(
    status: Optional[str] = "pending",
    profile: Dict = Depends(require_permission("invitations:read")),
    service: InvitationService = Depends(get_invitation_service)
):
    """List invitations received by the current user (pending by default)"""
    return service.list_for_invitee(profile["id"], status=status or None)


@router.post("/{invitation_id}/accept", response_model=InvitationResponse)
async def accept_invitation(
    invitation_id: str,
    profile: Dict = Depends(require_permission("invitations:respond")),
    service: InvitationService = Depends(get_invitation_service)
):
    """Accept an invitation and join the team"""
    invitation = service.get_invitation_row(invitation_id)
    return service.accept(invitation, profile["id"])


@router.post("/{invitation_id}/decline", response_model=InvitationResponse)
async def decline_invitation(
    invitation_id: str,
    profile: Dict = Depends(require_permission("invitations:respond")),
    service: InvitationService = Depends(get_invitation_service)
):
    """Decline an invitation"""
    invitation = service.get_invitation_row(invitation_id)
    return service.decline(invitation, profile["id"])


@router.delete("/{invitation_id}", response_model=InvitationResponse)
async def cancel_invitation(
    invitation_id: str,
    profile: Dict = Depends(require_permission("invitations:create")),
    service: InvitationService = Depends(get_invitation_service),
    supabase: Client = Depends(get_supabase)
):
    """Cancel a pending invitation (inviter, team leader or admin)"""
    invitation = service.get_invitation_row(invitation_id)
    if invitation["inviter_id"] != profile["id"] and not is_admin(profile):
        try:
            check_team_manager(invitation["team_id"], profile, supabase)
        except HTTPException as e:
            if e.status_code != status.HTTP_403_FORBIDDEN:
                raise
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the inviter or team leader can cancel this invitation"
            )
    return service.cancel(invitation)
