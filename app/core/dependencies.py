"""
Core dependencies for route protection and permission checking
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config.permissions_config import has_permission
from app.database.supabase_client import SupabaseClient, get_supabase, get_service_supabase
from app.modules.auth.service import AuthService
from supabase import Client
from typing import List, Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for the current profile."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_auth_service(
    supabase: Client = Depends(get_supabase),
    service_client: Client = Depends(get_service_supabase)
) -> AuthService:
    return AuthService(supabase, service_client)


def get_admin_supabase() -> Client:
    """Service-role client for Auth admin calls; unavailable without the service role key"""
    if not SupabaseClient.has_service_client():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="SUPABASE_SERVICE_ROLE_KEY is not configured"
        )
    return get_service_supabase()


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


def load_profile(user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    """Return the profiles row for a user, or None. Uses request-scoped cache when provided."""
    if cache is not None and "profile" in cache and cache["profile"]["id"] == user_id:
        return cache["profile"]
    result = supabase.table("profiles")\
        .select("*")\
        .eq("id", user_id)\
        .limit(1)\
        .execute()
    profile = result.data[0] if result.data else None
    if cache is not None and profile is not None:
        cache["profile"] = profile
    return profile


def get_current_profile(
    request: Request,
    user_data: dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
) -> dict:
    """Resolve the authenticated user's profile (role, section, names)."""
    cache = _get_request_cache(request)
    profile = load_profile(user_data["id"], supabase, cache)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Profile not found for this account"
        )
    return profile


def is_admin(profile: dict) -> bool:
    return profile.get("role") == "admin"


def is_teacher(profile: dict) -> bool:
    return profile.get("role") == "teacher"


def is_student(profile: dict) -> bool:
    return profile.get("role") == "student"


def require_permission(required_permission: str):
    """Factory function to create permission check dependency"""
    def check_permission(profile: dict = Depends(get_current_profile)) -> dict:
        """Dependency to check if the user's role grants the permission"""
        if not has_permission(profile.get("role"), required_permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {required_permission}"
            )
        return profile
    return check_permission


def fetch_row(supabase: Client, table: str, row_id: str, not_found: str) -> Dict[str, Any]:
    """Fetch a single row by id or raise 404"""
    result = supabase.table(table)\
        .select("*")\
        .eq("id", row_id)\
        .limit(1)\
        .execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
    return result.data[0]


def get_user_team_ids(user_id: str, supabase: Client) -> List[str]:
    """Return team_ids from team_members"""
    result = supabase.table("team_members")\
        .select("team_id")\
        .eq("user_id", user_id)\
        .execute()
    return [m["team_id"] for m in result.data] if result.data else []


def check_assignment_owner(
    assignment_id: str,
    profile: dict,
    supabase: Client,
    assignment: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Allow if admin or the teacher who created the assignment. Returns the assignment row."""
    if assignment is None:
        assignment = fetch_row(supabase, "assignments", assignment_id, "Assignment not found")
    if is_admin(profile):
        return assignment
    if is_teacher(profile) and assignment.get("created_by") == profile["id"]:
        return assignment
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Only the teacher who created this assignment can manage it"
    )


def assignment_visible_to(assignment: Dict[str, Any], profile: dict) -> bool:
    """Students see published assignments for their section (or with no section)."""
    if is_admin(profile):
        return True
    if is_teacher(profile):
        return assignment.get("created_by") == profile["id"]
    if assignment.get("status") != "published":
        return False
    section = assignment.get("section")
    return not section or section == profile.get("section")


def check_assignment_visible(
    assignment_id: str,
    profile: dict,
    supabase: Client,
    assignment: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    if assignment is None:
        assignment = fetch_row(supabase, "assignments", assignment_id, "Assignment not found")
    if not assignment_visible_to(assignment, profile):
        # Hidden assignments look missing to students
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")
    return assignment


def check_team_access(
    team_id: str,
    profile: dict,
    supabase: Client,
    team: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Allow if admin, team member, or the teacher owning the team's assignment. Returns the team row."""
    if team is None:
        team = fetch_row(supabase, "teams", team_id, "Team not found")
    if is_admin(profile):
        return team
    if is_teacher(profile):
        check_assignment_owner(team["assignment_id"], profile, supabase)
        return team
    if team_id in get_user_team_ids(profile["id"], supabase):
        return team
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be a member of this team"
    )


def check_team_manager(
    team_id: str,
    profile: dict,
    supabase: Client,
    team: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Allow if admin, team leader, or the teacher owning the team's assignment."""
    if team is None:
        team = fetch_row(supabase, "teams", team_id, "Team not found")
    if is_admin(profile) or team.get("leader_id") == profile["id"]:
        return team
    if is_teacher(profile):
        check_assignment_owner(team["assignment_id"], profile, supabase)
        return team
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Only the team leader can perform this action"
    )
