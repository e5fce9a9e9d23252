from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.phases.schemas import PhaseCreate, PhaseUpdate, PhaseResponse
from app.modules.phases.service import PhaseService
from app.core.dependencies import require_permission, check_assignment_owner, check_assignment_visible
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/assignments/{assignment_id}/phases", tags=["phases"])


def get_phase_service(supabase: Client = Depends(get_supabase)) -> PhaseService:
    return PhaseService(supabase)


@router.get("", response_model=List[PhaseResponse])
async def list_phases(
    assignment_id: str,
    profile: Dict = Depends(require_permission("phases:read")),
    service: PhaseService = Depends(get_phase_service),
    supabase: Client = Depends(get_supabase)
):
    """List the phases of an assignment"""
    check_assignment_visible(assignment_id, profile, supabase)
    return service.list_phases(assignment_id)


@router.post("", response_model=PhaseResponse, status_code=201)
async def create_phase(
    assignment_id: str,
    phase_data: PhaseCreate,
    profile: Dict = Depends(require_permission("phases:create")),
    service: PhaseService = Depends(get_phase_service),
    supabase: Client = Depends(get_supabase)
):
    """Add a phase to an assignment (owning teacher or admin)"""
    check_assignment_owner(assignment_id, profile, supabase)
    return service.create_phase(assignment_id, phase_data)


@router.put("/{phase_id}", response_model=PhaseResponse)
async def update_phase(
    assignment_id: str,
    phase_id: str,
    phase_data: PhaseUpdate,
    profile: Dict = Depends(require_permission("phases:update")),
    service: PhaseService = Depends(get_phase_service),
    supabase: Client = Depends(get_supabase)
):
    """Update a phase (owning teacher or admin)"""
    check_assignment_owner(assignment_id, profile, supabase)
    return service.update_phase(assignment_id, phase_id, phase_data)


@router.delete("/{phase_id}", status_code=204)
async def delete_phase(
    assignment_id: str,
    phase_id: str,
    profile: Dict = Depends(require_permission("phases:delete")),
    service: PhaseService = Depends(get_phase_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete a phase (owning teacher or admin)"""
    check_assignment_owner(assignment_id, profile, supabase)
    service.delete_phase(assignment_id, phase_id)
    return None
