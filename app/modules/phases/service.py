from supabase import Client
from app.modules.phases.schemas import PhaseCreate, PhaseUpdate, PhaseResponse
from typing import List
from datetime import datetime, timezone
from fastapi import HTTPException


def _parse_datetime(value):
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class PhaseService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_phases(self, assignment_id: str) -> List[PhaseResponse]:
        """List phases of an assignment in order"""
        result = self.supabase.table("assignment_phases")\
            .select("*")\
            .eq("assignment_id", assignment_id)\
            .order("phase_order")\
            .execute()
        return [PhaseResponse(**p) for p in result.data]

    def get_phase_row(self, assignment_id: str, phase_id: str) -> dict:
        result = self.supabase.table("assignment_phases")\
            .select("*")\
            .eq("id", phase_id)\
            .eq("assignment_id", assignment_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Phase not found")
        return result.data[0]

    def _next_phase_order(self, assignment_id: str) -> int:
        result = self.supabase.table("assignment_phases")\
            .select("phase_order")\
            .eq("assignment_id", assignment_id)\
            .order("phase_order", desc=True)\
            .limit(1)\
            .execute()
        return (result.data[0]["phase_order"] + 1) if result.data else 1

    def create_phase(self, assignment_id: str, phase_data: PhaseCreate) -> PhaseResponse:
        """Create a phase; without phase_order it is appended after the last one"""
        payload = phase_data.model_dump(mode="json")
        payload["assignment_id"] = assignment_id
        if payload.get("phase_order") is None:
            payload["phase_order"] = self._next_phase_order(assignment_id)

        try:
            result = self.supabase.table("assignment_phases").insert(payload).execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create phase")
        return PhaseResponse(**result.data[0])

    def update_phase(self, assignment_id: str, phase_id: str, phase_data: PhaseUpdate) -> PhaseResponse:
        """Update phase; the resulting start/due dates must stay ordered"""
        current = self.get_phase_row(assignment_id, phase_id)
        update_data = phase_data.model_dump(mode="json", exclude_unset=True)
        if not update_data:
            return PhaseResponse(**current)

        start = _parse_datetime(phase_data.start_date if "start_date" in update_data else current.get("start_date"))
        due = _parse_datetime(phase_data.due_date if "due_date" in update_data else current.get("due_date"))
        if start and due and start > due:
            raise HTTPException(status_code=400, detail="start_date must be before due_date")

        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            result = self.supabase.table("assignment_phases")\
                .update(update_data)\
                .eq("id", phase_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        if not result.data:
            raise HTTPException(status_code=404, detail="Phase not found")
        return PhaseResponse(**result.data[0])

    def delete_phase(self, assignment_id: str, phase_id: str) -> bool:
        """Delete phase"""
        self.get_phase_row(assignment_id, phase_id)
        try:
            result = self.supabase.table("assignment_phases")\
                .delete()\
                .eq("id", phase_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return len(result.data) > 0
