from supabase import Client
from app.config.settings import settings
from app.config.permissions_config import ROLES
from app.modules.dashboard.schemas import AdminDashboard, TeacherDashboard, StudentDashboard, Deadline
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import List


class DashboardService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _count(self, table: str, **filters) -> int:
        query = self.supabase.table(table).select("id", count="exact")
        for column, value in filters.items():
            query = query.eq(column, value)
        result = query.execute()
        return result.count if result.count is not None else len(result.data or [])

    def _upcoming_deadlines(self, assignments: List[dict]) -> List[Deadline]:
        """Assignment and phase due dates within the configured window, soonest first"""
        if not assignments:
            return []
        now = datetime.now(timezone.utc)
        window_end = now + timedelta(days=settings.upcoming_window_days)
        by_id = {a["id"]: a for a in assignments}

        deadlines = []
        due_assignments = self.supabase.table("assignments")\
            .select("id, title, due_date")\
            .in_("id", list(by_id))\
            .gte("due_date", now.isoformat())\
            .lte("due_date", window_end.isoformat())\
            .execute()
        for a in due_assignments.data or []:
            deadlines.append(Deadline(
                kind="assignment",
                assignment_id=a["id"],
                assignment_title=a["title"],
                title=a["title"],
                due_date=a["due_date"]
            ))

        due_phases = self.supabase.table("assignment_phases")\
            .select("assignment_id, title, due_date")\
            .in_("assignment_id", list(by_id))\
            .gte("due_date", now.isoformat())\
            .lte("due_date", window_end.isoformat())\
            .execute()
        for p in due_phases.data or []:
            deadlines.append(Deadline(
                kind="phase",
                assignment_id=p["assignment_id"],
                assignment_title=by_id[p["assignment_id"]]["title"],
                title=p["title"],
                due_date=p["due_date"]
            ))

        return sorted(deadlines, key=lambda d: d.due_date)

    def admin_dashboard(self) -> AdminDashboard:
        profiles = self.supabase.table("profiles").select("role").execute()
        roles = Counter(p.get("role") for p in profiles.data or [])
        return AdminDashboard(
            users_by_role={role: roles.get(role, 0) for role in ROLES},
            total_users=sum(roles.values()),
            total_assignments=self._count("assignments"),
            published_assignments=self._count("assignments", status="published"),
            total_teams=self._count("teams")
        )

    def teacher_dashboard(self, teacher: dict) -> TeacherDashboard:
        assignments = self.supabase.table("assignments")\
            .select("*")\
            .eq("created_by", teacher["id"])\
            .execute().data or []
        active = [a for a in assignments if a.get("status") == "published"]
        sections = sorted({a["section"] for a in assignments if a.get("section")})

        teams = []
        if assignments:
            teams = self.supabase.table("teams")\
                .select("id, assignment_id")\
                .in_("assignment_id", [a["id"] for a in assignments])\
                .execute().data or []

        counts = Counter()
        if teams:
            members = self.supabase.table("team_members")\
                .select("team_id")\
                .in_("team_id", [t["id"] for t in teams])\
                .execute().data or []
            counts = Counter(m["team_id"] for m in members)

        min_sizes = {a["id"]: a.get("min_team_size") or 1 for a in assignments}
        complete = sum(1 for t in teams if counts[t["id"]] >= min_sizes[t["assignment_id"]])

        return TeacherDashboard(
            active_assignments=len(active),
            sections=sections,
            teams_formed=len(teams),
            complete_teams=complete,
            completion_rate=round(complete / len(teams), 4) if teams else 0.0,
            upcoming_deadlines=self._upcoming_deadlines(active)
        )

    def student_dashboard(self, student: dict) -> StudentDashboard:
        query = self.supabase.table("assignments")\
            .select("*")\
            .eq("status", "published")
        if student.get("section"):
            query = query.or_(f"section.eq.{student['section']},section.is.null")
        else:
            query = query.is_("section", "null")
        assignments = query.execute().data or []

        membership = self.supabase.table("team_members")\
            .select("team_id")\
            .eq("user_id", student["id"])\
            .execute().data or []
        team_ids = [m["team_id"] for m in membership]

        teamed_assignments = set()
        if team_ids:
            teams = self.supabase.table("teams")\
                .select("assignment_id")\
                .in_("id", team_ids)\
                .execute().data or []
            teamed_assignments = {t["assignment_id"] for t in teams}

        return StudentDashboard(
            section=student.get("section"),
            team_count=len(team_ids),
            open_assignments=len(assignments),
            assignments_without_team=sum(1 for a in assignments if a["id"] not in teamed_assignments),
            pending_invitations=self._count("team_invitations", invitee_id=student["id"], status="pending"),
            upcoming_deadlines=self._upcoming_deadlines(assignments)
        )
