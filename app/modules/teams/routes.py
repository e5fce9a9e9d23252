from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.teams.schemas import (
    TeamCreate, TeamUpdate, TeamResponse, TeamDetailResponse,
    TeamMemberResponse, LeaderTransfer, MemberRemovalResponse
)
from app.modules.teams.service import TeamService
from app.modules.chat.connection_manager import connection_manager, WSCloseCode
from app.modules.storage.service import FileStorageService
from app.core.dependencies import (
    require_permission, check_assignment_visible, check_team_access, check_team_manager
)
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/teams", tags=["teams"])


def get_team_service(supabase: Client = Depends(get_supabase)) -> TeamService:
    return TeamService(supabase, FileStorageService(supabase))


@router.post("", response_model=TeamResponse, status_code=201)
async def create_team(
    team_data: TeamCreate,
    profile: Dict = Depends(require_permission("teams:create")),
    service: TeamService = Depends(get_team_service),
    supabase: Client = Depends(get_supabase)
):
    """Form a new team for an assignment; the creator becomes leader"""
    assignment = check_assignment_visible(team_data.assignment_id, profile, supabase)
    return service.create_team(team_data, assignment, profile["id"])


@router.get("", response_model=List[TeamResponse])
async def list_teams(
    assignment_id: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    profile: Dict = Depends(require_permission("teams:read")),
    service: TeamService = Depends(get_team_service)
):
    """List teams visible to the current user, optionally for one assignment"""
    return service.list_teams(profile, assignment_id=assignment_id, limit=limit, offset=offset)


@router.get("/{team_id}", response_model=TeamDetailResponse)
async def get_team(
    team_id: str,
    profile: Dict = Depends(require_permission("teams:read")),
    service: TeamService = Depends(get_team_service),
    supabase: Client = Depends(get_supabase)
):
    """Get team with members (members, owning teacher or admin)"""
    team = check_team_access(team_id, profile, supabase)
    return service.get_team_detail(team_id, team=team)


@router.put("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: str,
    team_data: TeamUpdate,
    profile: Dict = Depends(require_permission("teams:update")),
    service: TeamService = Depends(get_team_service),
    supabase: Client = Depends(get_supabase)
):
    """Update team (leader, owning teacher or admin)"""
    team = check_team_manager(team_id, profile, supabase)
    return service.update_team(team, team_data)


@router.delete("/{team_id}", status_code=204)
async def delete_team(
    team_id: str,
    profile: Dict = Depends(require_permission("teams:delete")),
    service: TeamService = Depends(get_team_service),
    supabase: Client = Depends(get_supabase)
):
    """Disband team (leader, owning teacher or admin)"""
    check_team_manager(team_id, profile, supabase)
    service.delete_team(team_id)
    await connection_manager.close_room(team_id, WSCloseCode.NOT_FOUND, "Team deleted")
    return None


@router.get("/{team_id}/members", response_model=List[TeamMemberResponse])
async def list_members(
    team_id: str,
    profile: Dict = Depends(require_permission("teams:read")),
    service: TeamService = Depends(get_team_service),
    supabase: Client = Depends(get_supabase)
):
    """List team members"""
    check_team_access(team_id, profile, supabase)
    return service.list_members(team_id)


@router.delete("/{team_id}/members/{user_id}", response_model=MemberRemovalResponse)
async def remove_member(
    team_id: str,
    user_id: str,
    profile: Dict = Depends(require_permission("teams:manage_members")),
    service: TeamService = Depends(get_team_service),
    supabase: Client = Depends(get_supabase)
):
    """Leave a team (own user_id) or remove a member (leader, owning teacher or admin)"""
    if user_id == profile["id"]:
        team = check_team_access(team_id, profile, supabase)
    else:
        team = check_team_manager(team_id, profile, supabase)
    removal = service.remove_member(team, user_id)
    await connection_manager.revoke_member(removal.team_id, removal.user_id, removal.team_deleted)
    return removal


@router.put("/{team_id}/leader", response_model=TeamResponse)
async def transfer_leadership(
    team_id: str,
    transfer: LeaderTransfer,
    profile: Dict = Depends(require_permission("teams:manage_members")),
    service: TeamService = Depends(get_team_service),
    supabase: Client = Depends(get_supabase)
):
    """Hand team leadership to another member"""
    team = check_team_manager(team_id, profile, supabase)
    return service.transfer_leadership(team, transfer.user_id)
