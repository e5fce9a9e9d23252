from supabase import Client
from app.modules.profiles.schemas import ProfileUpdate, ProfileResponse
from app.config.permissions_config import ROLES
from typing import List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

STUDENT_ONLY_FIELDS = ("student_id", "section")


def profile_visible_to(viewer: dict, target: dict) -> bool:
    """Admins see everyone; teachers see students and teachers; students see classmates in their section and teachers."""
    if viewer["id"] == target["id"]:
        return True
    role = viewer.get("role")
    if role == "admin":
        return True
    if role == "teacher":
        return target.get("role") in ("student", "teacher")
    if role == "student":
        if target.get("role") == "teacher":
            return True
        return bool(viewer.get("section")) and target.get("section") == viewer.get("section")
    return False


def display_name(profile: Optional[dict]) -> Optional[str]:
    if not profile:
        return None
    name = " ".join(p for p in (profile.get("first_name"), profile.get("last_name")) if p)
    return name or profile.get("email")


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile_row(self, user_id: str) -> dict:
        result = self.supabase.table("profiles")\
            .select("*")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Profile not found")
        return result.data[0]

    def get_profile(self, user_id: str) -> ProfileResponse:
        """Get profile by ID"""
        return ProfileResponse(**self.get_profile_row(user_id))

    def get_profiles_by_ids(self, user_ids: List[str]) -> dict:
        """Map of id -> profile row for the given ids"""
        if not user_ids:
            return {}
        result = self.supabase.table("profiles")\
            .select("*")\
            .in_("id", list(set(user_ids)))\
            .execute()
        return {p["id"]: p for p in result.data or []}

    def update_profile(self, user_id: str, profile_data: ProfileUpdate, role: str) -> ProfileResponse:
        """Update the editable fields of a profile"""
        update_data = profile_data.model_dump(exclude_unset=True)
        if role != "student":
            forbidden = [f for f in STUDENT_ONLY_FIELDS if f in update_data]
            if forbidden:
                raise HTTPException(
                    status_code=400,
                    detail=f"Only students have {', '.join(forbidden)}"
                )
        if not update_data:
            return self.get_profile(user_id)

        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        if not result.data:
            raise HTTPException(status_code=404, detail="Profile not found")
        return ProfileResponse(**result.data[0])

    def set_avatar_url(self, user_id: str, avatar_url: str) -> ProfileResponse:
        return self.update_profile(user_id, ProfileUpdate(avatar_url=avatar_url), role="")

    def update_role(self, user_id: str, role: str) -> ProfileResponse:
        """Change a user's platform role (admin only)"""
        if role not in ROLES:
            raise HTTPException(status_code=400, detail=f"Unknown role: {role}")
        try:
            result = self.supabase.table("profiles")\
                .update({"role": role, "updated_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        if not result.data:
            raise HTTPException(status_code=404, detail="Profile not found")
        logger.info("Role of %s changed to %s", user_id, role)
        return ProfileResponse(**result.data[0])

    def list_profiles(
        self,
        viewer: dict,
        role: Optional[str] = None,
        section: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[ProfileResponse]:
        """List profiles visible to the viewer, optionally filtered by role, section and name/email search."""
        viewer_role = viewer.get("role")
        query = self.supabase.table("profiles").select("*")

        if viewer_role == "teacher":
            if role and role not in ("student", "teacher"):
                return []
            query = query.in_("role", [role] if role else ["student", "teacher"])
        elif viewer_role == "student":
            # Same rule as profile_visible_to: self, teachers, classmates in the section
            visible = [f"id.eq.{viewer['id']}", "role.eq.teacher"]
            if viewer.get("section"):
                visible.append(f"section.eq.{viewer['section']}")
            query = query.or_(",".join(visible))
            if role:
                query = query.eq("role", role)
        elif role:
            query = query.eq("role", role)

        if section:
            query = query.eq("section", section)
        if search:
            term = search.replace(",", " ").strip()
            query = query.or_(
                f"first_name.ilike.%{term}%,last_name.ilike.%{term}%,email.ilike.%{term}%"
            )

        try:
            result = query.order("last_name")\
                .limit(limit)\
                .offset(offset)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return [ProfileResponse(**p) for p in result.data]

    def delete_profile(self, user_id: str) -> bool:
        """Delete a profile after removing its team memberships and pending invitations"""
        try:
            self.supabase.table("team_members")\
                .delete()\
                .eq("user_id", user_id)\
                .execute()

            self.supabase.table("team_invitations")\
                .delete()\
                .eq("invitee_id", user_id)\
                .execute()

            result = self.supabase.table("profiles")\
                .delete()\
                .eq("id", user_id)\
                .execute()

            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
