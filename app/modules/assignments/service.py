from supabase import Client
from app.modules.assignments.schemas import AssignmentCreate, AssignmentUpdate, AssignmentResponse
from typing import List, Optional
from collections import Counter
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def is_foreign_key_violation(error: Exception) -> bool:
    message = str(error).lower()
    return "23503" in message or "foreign key" in message


class AssignmentService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_assignment(self, assignment_data: AssignmentCreate, teacher_id: str) -> AssignmentResponse:
        """Create a new assignment owned by the teacher"""
        payload = assignment_data.model_dump(mode="json")
        payload["created_by"] = teacher_id
        try:
            result = self.supabase.table("assignments").insert(payload).execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create assignment")

        logger.info("Assignment %s created by %s", result.data[0]["id"], teacher_id)
        return AssignmentResponse(**result.data[0])

    def get_assignment_row(self, assignment_id: str) -> dict:
        result = self.supabase.table("assignments")\
            .select("*")\
            .eq("id", assignment_id)\
            .limit(1)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Assignment not found")
        return result.data[0]

    def get_assignment_by_id(self, assignment_id: str) -> AssignmentResponse:
        """Get assignment by ID"""
        return AssignmentResponse(**self.get_assignment_row(assignment_id))

    def list_assignments(
        self,
        viewer: dict,
        status: Optional[str] = None,
        section: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> List[AssignmentResponse]:
        """Teachers list their own assignments, admins all, students the published ones for their section."""
        query = self.supabase.table("assignments").select("*")
        role = viewer.get("role")

        if role == "teacher":
            query = query.eq("created_by", viewer["id"])
        elif role == "student":
            if status and status != "published":
                return []
            query = query.eq("status", "published")
            if viewer.get("section"):
                query = query.or_(f"section.eq.{viewer['section']},section.is.null")
            else:
                query = query.is_("section", "null")

        if status and role != "student":
            query = query.eq("status", status)
        if section:
            query = query.eq("section", section)

        try:
            result = query.order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return [AssignmentResponse(**a) for a in result.data]

    def largest_team_size(self, assignment_id: str) -> int:
        """Member count of the biggest team formed for the assignment"""
        teams = self.supabase.table("teams")\
            .select("id")\
            .eq("assignment_id", assignment_id)\
            .execute()
        team_ids = [t["id"] for t in teams.data or []]
        if not team_ids:
            return 0
        members = self.supabase.table("team_members")\
            .select("team_id")\
            .in_("team_id", team_ids)\
            .execute()
        counts = Counter(m["team_id"] for m in members.data or [])
        return max(counts.values(), default=0)

    def update_assignment(self, assignment_id: str, assignment_data: AssignmentUpdate) -> AssignmentResponse:
        """Update assignment; team size bounds are validated against the stored row and formed teams"""
        current = self.get_assignment_row(assignment_id)
        update_data = assignment_data.model_dump(mode="json", exclude_unset=True)
        if not update_data:
            return AssignmentResponse(**current)

        new_min = update_data.get("min_team_size", current["min_team_size"])
        new_max = update_data.get("max_team_size", current["max_team_size"])
        if new_min > new_max:
            raise HTTPException(status_code=400, detail="min_team_size cannot exceed max_team_size")
        if "max_team_size" in update_data and new_max < current["max_team_size"]:
            largest = self.largest_team_size(assignment_id)
            if new_max < largest:
                raise HTTPException(
                    status_code=409,
                    detail=f"A team already has {largest} members; max_team_size cannot be lower"
                )

        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            result = self.supabase.table("assignments")\
                .update(update_data)\
                .eq("id", assignment_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        if not result.data:
            raise HTTPException(status_code=404, detail="Assignment not found")
        return AssignmentResponse(**result.data[0])

    def delete_assignment(self, assignment_id: str) -> bool:
        """Delete assignment and its phases. Assignments with teams are kept."""
        teams = self.supabase.table("teams")\
            .select("id")\
            .eq("assignment_id", assignment_id)\
            .limit(1)\
            .execute()
        if teams.data:
            raise HTTPException(status_code=409, detail="Assignment has teams and cannot be deleted")

        try:
            self.supabase.table("assignment_phases")\
                .delete()\
                .eq("assignment_id", assignment_id)\
                .execute()

            result = self.supabase.table("assignments")\
                .delete()\
                .eq("id", assignment_id)\
                .execute()
        except Exception as e:
            if is_foreign_key_violation(e):
                raise HTTPException(status_code=409, detail="Assignment is still referenced and cannot be deleted")
            raise HTTPException(status_code=500, detail=str(e))

        return len(result.data) > 0
