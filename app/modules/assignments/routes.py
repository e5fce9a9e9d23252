from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.assignments.schemas import AssignmentCreate, AssignmentUpdate, AssignmentResponse
from app.modules.assignments.service import AssignmentService
from app.core.dependencies import require_permission, check_assignment_owner, check_assignment_visible
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/assignments", tags=["assignments"])


def get_assignment_service(supabase: Client = Depends(get_supabase)) -> AssignmentService:
    return AssignmentService(supabase)


@router.post("", response_model=AssignmentResponse, status_code=201)
async def create_assignment(
    assignment_data: AssignmentCreate,
    profile: Dict = Depends(require_permission("assignments:create")),
    service: AssignmentService = Depends(get_assignment_service)
):
    """Create a new assignment (teachers and admins)"""
    return service.create_assignment(assignment_data, profile["id"])


@router.get("", response_model=List[AssignmentResponse])
async def list_assignments(
    status: Optional[str] = None,
    section: Optional[str] = None,
    limit: int = 20,
    offset: int = 0,
    profile: Dict = Depends(require_permission("assignments:read")),
    service: AssignmentService = Depends(get_assignment_service)
):
    """List assignments visible to the current user"""
    return service.list_assignments(profile, status=status, section=section, limit=limit, offset=offset)


@router.get("/{assignment_id}", response_model=AssignmentResponse)
async def get_assignment(
    assignment_id: str,
    profile: Dict = Depends(require_permission("assignments:read")),
    service: AssignmentService = Depends(get_assignment_service),
    supabase: Client = Depends(get_supabase)
):
    """Get assignment by ID"""
    assignment = service.get_assignment_row(assignment_id)
    check_assignment_visible(assignment_id, profile, supabase, assignment=assignment)
    return AssignmentResponse(**assignment)


@router.put("/{assignment_id}", response_model=AssignmentResponse)
async def update_assignment(
    assignment_id: str,
    assignment_data: AssignmentUpdate,
    profile: Dict = Depends(require_permission("assignments:update")),
    service: AssignmentService = Depends(get_assignment_service),
    supabase: Client = Depends(get_supabase)
):
    """Update assignment (owning teacher or admin)"""
    check_assignment_owner(assignment_id, profile, supabase)
    return service.update_assignment(assignment_id, assignment_data)


@router.delete("/{assignment_id}", status_code=204)
async def delete_assignment(
    assignment_id: str,
    profile: Dict = Depends(require_permission("assignments:delete")),
    service: AssignmentService = Depends(get_assignment_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete assignment and its phases (owning teacher or admin)"""
    check_assignment_owner(assignment_id, profile, supabase)
    service.delete_assignment(assignment_id)
    return None
