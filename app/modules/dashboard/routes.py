from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.dashboard.schemas import AdminDashboard, TeacherDashboard, StudentDashboard
from app.modules.dashboard.service import DashboardService
from app.core.dependencies import require_permission
from supabase import Client
from typing import Dict, Union

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def get_dashboard_service(supabase: Client = Depends(get_supabase)) -> DashboardService:
    return DashboardService(supabase)


@router.get("", response_model=Union[AdminDashboard, TeacherDashboard, StudentDashboard])
async def get_dashboard(
    profile: Dict = Depends(require_permission("dashboard:read")),
    service: DashboardService = Depends(get_dashboard_service)
):
    """Summary for the current user's role"""
    if profile["role"] == "admin":
        return service.admin_dashboard()
    if profile["role"] == "teacher":
        return service.teacher_dashboard(profile)
    return service.student_dashboard(profile)
