import asyncio
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, status
from app.database.supabase_client import get_supabase
from app.config.settings import settings
from app.modules.profiles.schemas import (
    ProfileUpdate, ProfileRoleUpdate, ProfileResponse, BulkImportResponse
)
from app.modules.profiles.service import ProfileService, profile_visible_to
from app.modules.profiles.bulk_import import BulkUserImporter, parse_users_csv
from app.modules.storage.service import FileStorageService, build_object_path, read_upload
from app.modules.teams.service import TeamService
from app.modules.chat.connection_manager import connection_manager
from app.core.dependencies import get_current_profile, require_permission, get_admin_supabase
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_service(supabase: Client = Depends(get_supabase)) -> ProfileService:
    return ProfileService(supabase)


def get_storage_service(supabase: Client = Depends(get_supabase)) -> FileStorageService:
    return FileStorageService(supabase)


def get_team_service(supabase: Client = Depends(get_supabase)) -> TeamService:
    return TeamService(supabase, FileStorageService(supabase))


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(profile: Dict = Depends(get_current_profile)):
    """Get the current user's profile"""
    return ProfileResponse(**profile)


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    profile: Dict = Depends(get_current_profile),
    service: ProfileService = Depends(get_profile_service)
):
    """Update the current user's names, bio and avatar (students may also edit student_id/section)"""
    return service.update_profile(profile["id"], profile_data, profile["role"])


@router.post("/me/avatar", response_model=ProfileResponse)
async def upload_my_avatar(
    file: UploadFile = File(...),
    profile: Dict = Depends(get_current_profile),
    service: ProfileService = Depends(get_profile_service),
    storage: FileStorageService = Depends(get_storage_service)
):
    """Upload an avatar image and set it on the current profile; the previous image is removed"""
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="Avatar must be an image")
    content, content_type = await read_upload(file)
    bucket = settings.avatars_bucket
    url = storage.upload_file(bucket, build_object_path(profile["id"], file.filename), content, content_type)
    try:
        updated = service.set_avatar_url(profile["id"], url)
    except HTTPException:
        storage.delete_urls(bucket, [url])
        raise
    storage.delete_urls(bucket, [profile.get("avatar_url")])
    return updated


@router.get("", response_model=List[ProfileResponse])
async def list_profiles(
    role: Optional[str] = None,
    section: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    profile: Dict = Depends(require_permission("profiles:read")),
    service: ProfileService = Depends(get_profile_service)
):
    """List profiles: admins see all, teachers see students and teachers, students see their section."""
    return service.list_profiles(profile, role=role, section=section, search=search, limit=limit, offset=offset)


@router.post("/bulk", response_model=BulkImportResponse)
async def bulk_import_profiles(
    file: UploadFile = File(...),
    profile: Dict = Depends(require_permission("profiles:import")),
    admin_client: Client = Depends(get_admin_supabase)
):
    """Create users from a CSV file (email,password,role,first_name,last_name,student_id,section)"""
    content, _ = await read_upload(file)
    try:
        rows = parse_users_csv(content.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid CSV file: {e}")
    if not rows:
        raise HTTPException(status_code=400, detail="CSV file contains no users")
    importer = BulkUserImporter(admin_client, profile_wait_seconds=0.5, row_delay_seconds=0)
    # Blocking: the importer sleeps between Auth admin calls
    return await asyncio.to_thread(importer.run, rows)


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: str,
    profile: Dict = Depends(require_permission("profiles:read")),
    service: ProfileService = Depends(get_profile_service)
):
    """Get profile by ID (only if visible to the current user)"""
    target = service.get_profile_row(user_id)
    if not profile_visible_to(profile, target):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile not accessible")
    return ProfileResponse(**target)


@router.put("/{user_id}", response_model=ProfileResponse)
async def update_profile(
    user_id: str,
    profile_data: ProfileUpdate,
    profile: Dict = Depends(require_permission("profiles:update")),
    service: ProfileService = Depends(get_profile_service)
):
    """Update another user's profile (admin only)"""
    target = service.get_profile_row(user_id)
    return service.update_profile(user_id, profile_data, target["role"])


@router.put("/{user_id}/role", response_model=ProfileResponse)
async def update_profile_role(
    user_id: str,
    role_data: ProfileRoleUpdate,
    profile: Dict = Depends(require_permission("profiles:update")),
    service: ProfileService = Depends(get_profile_service)
):
    """Change a user's platform role (admin only)"""
    if user_id == profile["id"] and role_data.role != "admin":
        raise HTTPException(status_code=400, detail="Admins cannot demote themselves")
    return service.update_role(user_id, role_data.role)


@router.delete("/{user_id}", status_code=204)
async def delete_profile(
    user_id: str,
    profile: Dict = Depends(require_permission("profiles:delete")),
    service: ProfileService = Depends(get_profile_service),
    team_service: TeamService = Depends(get_team_service)
):
    """Delete a user's profile (admin only). Leadership of their teams is handed over first."""
    service.get_profile_row(user_id)
    for removal in team_service.remove_user_from_all_teams(user_id):
        await connection_manager.revoke_member(removal.team_id, removal.user_id, removal.team_deleted)
    service.delete_profile(user_id)
    return None
