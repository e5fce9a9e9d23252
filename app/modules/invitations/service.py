from supabase import Client
from app.modules.invitations.schemas import InvitationCreate, InvitationResponse
from app.modules.teams.service import TeamService
from typing import List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InvitationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.teams = TeamService(supabase)

    def get_invitation_row(self, invitation_id: str) -> dict:
        result = self.supabase.table("team_invitations")\
            .select("*")\
            .eq("id", invitation_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Invitation not found")
        return result.data[0]

    def _get_assignment(self, assignment_id: str) -> dict:
        result = self.supabase.table("assignments")\
            .select("*")\
            .eq("id", assignment_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Assignment not found")
        return result.data[0]

    def invite(self, team: dict, inviter_id: str, invitation_data: InvitationCreate) -> InvitationResponse:
        """Invite a classmate who is not yet on a team for this assignment"""
        invitee_id = invitation_data.invitee_id
        if invitee_id == inviter_id:
            raise HTTPException(status_code=400, detail="You cannot invite yourself")

        invitee = self.supabase.table("profiles")\
            .select("id, role, section")\
            .eq("id", invitee_id)\
            .limit(1)\
            .execute()
        if not invitee.data:
            raise HTTPException(status_code=404, detail="Invitee not found")
        invitee = invitee.data[0]
        if invitee.get("role") != "student":
            raise HTTPException(status_code=400, detail="Only students can be invited to teams")

        assignment = self._get_assignment(team["assignment_id"])
        if assignment.get("status") != "published":
            raise HTTPException(status_code=400, detail="Assignment is not open for team formation")
        if assignment.get("section") and assignment["section"] != invitee.get("section"):
            raise HTTPException(status_code=400, detail="Invitee is not in this assignment's section")

        if self.teams.user_team_for_assignment(invitee_id, assignment["id"]):
            raise HTTPException(status_code=409, detail="Invitee is already on a team for this assignment")

        pending = self.supabase.table("team_invitations")\
            .select("id")\
            .eq("team_id", team["id"])\
            .eq("invitee_id", invitee_id)\
            .eq("status", "pending")\
            .limit(1)\
            .execute()
        if pending.data:
            raise HTTPException(status_code=409, detail="Invitation already pending")

        self.teams.ensure_capacity(team, assignment)

        try:
            result = self.supabase.table("team_invitations").insert({
                "team_id": team["id"],
                "inviter_id": inviter_id,
                "invitee_id": invitee_id,
                "status": "pending",
                "message": invitation_data.message
            }).execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create invitation")

        logger.info("Invitation %s: team %s -> %s", result.data[0]["id"], team["id"], invitee_id)
        return InvitationResponse(**result.data[0], team_name=team["name"], assignment_id=team["assignment_id"])

    def list_for_team(self, team_id: str, status: Optional[str] = None) -> List[InvitationResponse]:
        query = self.supabase.table("team_invitations")\
            .select("*")\
            .eq("team_id", team_id)
        if status:
            query = query.eq("status", status)
        result = query.order("created_at", desc=True).execute()
        return [InvitationResponse(**i) for i in result.data]

    def list_for_invitee(self, user_id: str, status: Optional[str] = None) -> List[InvitationResponse]:
        """Invitations received by the user, with team name and assignment"""
        query = self.supabase.table("team_invitations")\
            .select("*")\
            .eq("invitee_id", user_id)
        if status:
            query = query.eq("status", status)
        result = query.order("created_at", desc=True).execute()
        invitations = result.data or []

        teams = {}
        team_ids = list({i["team_id"] for i in invitations})
        if team_ids:
            teams_result = self.supabase.table("teams")\
                .select("id, name, assignment_id")\
                .in_("id", team_ids)\
                .execute()
            teams = {t["id"]: t for t in teams_result.data or []}

        return [
            InvitationResponse(
                **i,
                team_name=teams.get(i["team_id"], {}).get("name"),
                assignment_id=teams.get(i["team_id"], {}).get("assignment_id")
            )
            for i in invitations
        ]

    def _set_status(self, invitation_id: str, status: str) -> dict:
        result = self.supabase.table("team_invitations")\
            .update({"status": status, "responded_at": _now()})\
            .eq("id", invitation_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Invitation not found")
        return result.data[0]

    @staticmethod
    def _require_pending(invitation: dict):
        if invitation["status"] != "pending":
            raise HTTPException(status_code=409, detail=f"Invitation is already {invitation['status']}")

    def accept(self, invitation: dict, user_id: str) -> InvitationResponse:
        """
        Join the team. Capacity and existing membership are re-checked; the invitee's
        other pending invitations for the same assignment are declined.
        """
        if invitation["invitee_id"] != user_id:
            raise HTTPException(status_code=403, detail="This invitation is not addressed to you")
        self._require_pending(invitation)

        team = self.teams.get_team_row(invitation["team_id"])
        assignment = self._get_assignment(team["assignment_id"])
        if self.teams.user_team_for_assignment(user_id, assignment["id"]):
            raise HTTPException(status_code=409, detail="You are already on a team for this assignment")
        self.teams.ensure_capacity(team, assignment)

        try:
            self.teams.add_member(team["id"], user_id)
            accepted = self._set_status(invitation["id"], "accepted")
            self._decline_other_invitations(user_id, assignment["id"], invitation["id"])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        logger.info("User %s joined team %s via invitation %s", user_id, team["id"], invitation["id"])
        return InvitationResponse(**accepted, team_name=team["name"], assignment_id=assignment["id"])

    def _decline_other_invitations(self, user_id: str, assignment_id: str, keep_id: str):
        teams = self.supabase.table("teams")\
            .select("id")\
            .eq("assignment_id", assignment_id)\
            .execute()
        team_ids = [t["id"] for t in teams.data or []]
        if not team_ids:
            return
        self.supabase.table("team_invitations")\
            .update({"status": "declined", "responded_at": _now()})\
            .eq("invitee_id", user_id)\
            .eq("status", "pending")\
            .in_("team_id", team_ids)\
            .neq("id", keep_id)\
            .execute()

    def decline(self, invitation: dict, user_id: str) -> InvitationResponse:
        if invitation["invitee_id"] != user_id:
            raise HTTPException(status_code=403, detail="This invitation is not addressed to you")
        self._require_pending(invitation)
        return InvitationResponse(**self._set_status(invitation["id"], "declined"))

    def cancel(self, invitation: dict) -> InvitationResponse:
        self._require_pending(invitation)
        return InvitationResponse(**self._set_status(invitation["id"], "cancelled"))
