from supabase import Client
from app.modules.teams.schemas import (
    TeamCreate, TeamUpdate, TeamResponse, TeamDetailResponse,
    TeamMemberResponse, MemberRemovalResponse
)
from app.config.settings import settings
from app.core.dependencies import get_user_team_ids
from app.modules.profiles.service import ProfileService
from app.modules.storage.service import FileStorageService
from collections import Counter
from typing import List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TeamService:
    def __init__(self, supabase: Client, storage: Optional[FileStorageService] = None):
        self.supabase = supabase
        self.storage = storage

    def get_team_row(self, team_id: str) -> dict:
        result = self.supabase.table("teams")\
            .select("*")\
            .eq("id", team_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Team not found")
        return result.data[0]

    def member_rows(self, team_id: str) -> List[dict]:
        """Members of a team, earliest joined first"""
        result = self.supabase.table("team_members")\
            .select("*")\
            .eq("team_id", team_id)\
            .order("joined_at")\
            .execute()
        return result.data or []

    def member_counts(self, team_ids: List[str]) -> Counter:
        if not team_ids:
            return Counter()
        result = self.supabase.table("team_members")\
            .select("team_id")\
            .in_("team_id", team_ids)\
            .execute()
        return Counter(m["team_id"] for m in result.data or [])

    def _to_response(self, team: dict, member_count: Optional[int] = None) -> TeamResponse:
        if member_count is None:
            member_count = self.member_counts([team["id"]])[team["id"]]
        return TeamResponse(**{**team, "member_count": member_count})

    def user_team_for_assignment(self, user_id: str, assignment_id: str) -> Optional[str]:
        """The id of the user's team for an assignment, if any"""
        teams = self.supabase.table("teams")\
            .select("id")\
            .eq("assignment_id", assignment_id)\
            .execute()
        team_ids = [t["id"] for t in teams.data or []]
        if not team_ids:
            return None
        membership = self.supabase.table("team_members")\
            .select("team_id")\
            .eq("user_id", user_id)\
            .in_("team_id", team_ids)\
            .limit(1)\
            .execute()
        return membership.data[0]["team_id"] if membership.data else None

    def ensure_capacity(self, team: dict, assignment: dict):
        """Raise 409 when the team already has max_team_size members"""
        count = self.member_counts([team["id"]])[team["id"]]
        if count >= assignment["max_team_size"]:
            raise HTTPException(status_code=409, detail="Team is full")

    def create_team(self, team_data: TeamCreate, assignment: dict, user_id: str) -> TeamResponse:
        """Create a team for an assignment; the creator becomes its leader"""
        if assignment.get("status") != "published":
            raise HTTPException(status_code=400, detail="Teams can only be formed for published assignments")

        if self.user_team_for_assignment(user_id, assignment["id"]):
            raise HTTPException(status_code=409, detail="You are already on a team for this assignment")

        existing = self.supabase.table("teams")\
            .select("id")\
            .eq("assignment_id", assignment["id"])\
            .eq("name", team_data.name)\
            .limit(1)\
            .execute()
        if existing.data:
            raise HTTPException(status_code=409, detail="A team with this name already exists for this assignment")

        try:
            result = self.supabase.table("teams").insert({
                "assignment_id": assignment["id"],
                "name": team_data.name,
                "description": team_data.description,
                "leader_id": user_id
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create team")

            self.supabase.table("team_members").insert({
                "team_id": result.data[0]["id"],
                "user_id": user_id,
                "role": "leader"
            }).execute()
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        logger.info("Team %s created for assignment %s by %s", result.data[0]["id"], assignment["id"], user_id)
        return self._to_response(result.data[0], member_count=1)

    def list_teams(
        self,
        viewer: dict,
        assignment_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[TeamResponse]:
        """Students list their own teams, teachers the teams of their assignments, admins all teams."""
        role = viewer.get("role")
        query = self.supabase.table("teams").select("*")

        if role == "student":
            team_ids = get_user_team_ids(viewer["id"], self.supabase)
            if not team_ids:
                return []
            query = query.in_("id", team_ids)
        elif role == "teacher":
            owned = self.supabase.table("assignments")\
                .select("id")\
                .eq("created_by", viewer["id"])\
                .execute()
            assignment_ids = [a["id"] for a in owned.data or []]
            if assignment_id:
                assignment_ids = [a for a in assignment_ids if a == assignment_id]
            if not assignment_ids:
                return []
            query = query.in_("assignment_id", assignment_ids)

        if assignment_id:
            query = query.eq("assignment_id", assignment_id)

        try:
            result = query.order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        teams = result.data or []
        counts = self.member_counts([t["id"] for t in teams])
        return [self._to_response(t, counts[t["id"]]) for t in teams]

    def list_members(self, team_id: str) -> List[TeamMemberResponse]:
        """Members with their profile names"""
        members = self.member_rows(team_id)
        profiles = ProfileService(self.supabase).get_profiles_by_ids([m["user_id"] for m in members])

        response = []
        for member in members:
            profile = profiles.get(member["user_id"], {})
            response.append(TeamMemberResponse(
                **member,
                first_name=profile.get("first_name"),
                last_name=profile.get("last_name"),
                email=profile.get("email")
            ))
        return response

    def get_team_detail(self, team_id: str, team: Optional[dict] = None) -> TeamDetailResponse:
        """Team with its members"""
        if team is None:
            team = self.get_team_row(team_id)
        members = self.list_members(team_id)
        return TeamDetailResponse(**{**team, "member_count": len(members), "members": members})

    def update_team(self, team: dict, team_data: TeamUpdate) -> TeamResponse:
        """Update team name/description"""
        update_data = team_data.model_dump(exclude_unset=True)
        if not update_data:
            return self._to_response(team)

        if update_data.get("name") and update_data["name"] != team["name"]:
            existing = self.supabase.table("teams")\
                .select("id")\
                .eq("assignment_id", team["assignment_id"])\
                .eq("name", update_data["name"])\
                .limit(1)\
                .execute()
            if existing.data:
                raise HTTPException(status_code=409, detail="A team with this name already exists for this assignment")

        update_data["updated_at"] = _now()
        try:
            result = self.supabase.table("teams")\
                .update(update_data)\
                .eq("id", team["id"])\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        if not result.data:
            raise HTTPException(status_code=404, detail="Team not found")
        return self._to_response(result.data[0])

    def delete_team(self, team_id: str) -> bool:
        """Delete team with its invitations, messages and members"""
        try:
            messages = []
            for table in ("team_invitations", "chat_messages", "team_members"):
                deleted = self.supabase.table(table)\
                    .delete()\
                    .eq("team_id", team_id)\
                    .execute()
                if table == "chat_messages":
                    messages = deleted.data or []

            result = self.supabase.table("teams")\
                .delete()\
                .eq("id", team_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        if self.storage is not None:
            self.storage.delete_urls(
                settings.chat_attachments_bucket,
                [m.get("attachment_url") for m in messages]
            )
        logger.info("Team %s deleted", team_id)
        return len(result.data) > 0

    def add_member(self, team_id: str, user_id: str, role: str = "member") -> dict:
        result = self.supabase.table("team_members").insert({
            "team_id": team_id,
            "user_id": user_id,
            "role": role
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to add member")
        return result.data[0]

    def _set_leader(self, team_id: str, old_leader_id: Optional[str], new_leader_id: str):
        if old_leader_id:
            self.supabase.table("team_members")\
                .update({"role": "member"})\
                .eq("team_id", team_id)\
                .eq("user_id", old_leader_id)\
                .execute()
        self.supabase.table("team_members")\
            .update({"role": "leader"})\
            .eq("team_id", team_id)\
            .eq("user_id", new_leader_id)\
            .execute()
        self.supabase.table("teams")\
            .update({"leader_id": new_leader_id, "updated_at": _now()})\
            .eq("id", team_id)\
            .execute()

    def remove_member(self, team: dict, user_id: str) -> MemberRemovalResponse:
        """
        Remove a member. A departing leader hands leadership to the earliest-joined
        remaining member; when nobody remains the team is deleted.
        """
        members = self.member_rows(team["id"])
        if not any(m["user_id"] == user_id for m in members):
            raise HTTPException(status_code=404, detail="User is not a member of this team")

        remaining = [m for m in members if m["user_id"] != user_id]
        if not remaining:
            self.delete_team(team["id"])
            return MemberRemovalResponse(team_id=team["id"], user_id=user_id, team_deleted=True)

        try:
            self.supabase.table("team_members")\
                .delete()\
                .eq("team_id", team["id"])\
                .eq("user_id", user_id)\
                .execute()

            new_leader_id = None
            if team.get("leader_id") == user_id:
                new_leader_id = remaining[0]["user_id"]
                self._set_leader(team["id"], None, new_leader_id)
                logger.info("Leadership of team %s passed to %s", team["id"], new_leader_id)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        return MemberRemovalResponse(team_id=team["id"], user_id=user_id, new_leader_id=new_leader_id)

    def transfer_leadership(self, team: dict, new_leader_id: str) -> TeamResponse:
        """Make another member the leader"""
        if team.get("leader_id") == new_leader_id:
            return self._to_response(team)
        members = self.member_rows(team["id"])
        if not any(m["user_id"] == new_leader_id for m in members):
            raise HTTPException(status_code=400, detail="New leader must be a member of the team")

        try:
            self._set_leader(team["id"], team.get("leader_id"), new_leader_id)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return self._to_response(self.get_team_row(team["id"]), member_count=len(members))

    def remove_user_from_all_teams(self, user_id: str) -> List[MemberRemovalResponse]:
        """Leave every team the user belongs to; used before deleting a profile"""
        return [
            self.remove_member(self.get_team_row(team_id), user_id)
            for team_id in get_user_team_ids(user_id, self.supabase)
        ]
