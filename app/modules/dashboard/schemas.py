from pydantic import BaseModel
from typing import Optional, List, Dict
from datetime import datetime


class Deadline(BaseModel):
    kind: str  # assignment | phase
    assignment_id: str
    assignment_title: str
    title: str
    due_date: datetime


class AdminDashboard(BaseModel):
    role: str = "admin"
    users_by_role: Dict[str, int]
    total_users: int
    total_assignments: int
    published_assignments: int
    total_teams: int


class TeacherDashboard(BaseModel):
    role: str = "teacher"
    active_assignments: int
    sections: List[str]
    teams_formed: int
    complete_teams: int
    completion_rate: float
    upcoming_deadlines: List[Deadline]


class StudentDashboard(BaseModel):
    role: str = "student"
    section: Optional[str] = None
    team_count: int
    open_assignments: int
    assignments_without_team: int
    pending_invitations: int
    upcoming_deadlines: List[Deadline]
