"""
Bulk user creation from CSV.

Reads rows with columns email,password,role,first_name,last_name,student_id,section
and creates confirmed Supabase Auth users through the Admin API (service role key).
The profile row is created by the database trigger; it is verified after each user.
Shared by the admin import endpoint and app/scripts/bulk_create_users.py.
"""

import csv
import io
import logging
import time
from typing import Callable, List, Optional

from supabase import Client

from app.config.permissions_config import ROLES
from app.modules.profiles.schemas import BulkUserRow, BulkUserResult, BulkImportResponse

logger = logging.getLogger(__name__)

DUPLICATE_USER_MARKERS = ("already registered", "already been registered", "already exists")
EXTRA_CELLS_KEY = "_extra"


def parse_users_csv(content: str) -> List[BulkUserRow]:
    """Parse CSV text into rows; blank cells become None, cells beyond the header are ignored."""
    reader = csv.DictReader(io.StringIO(content.strip()), restkey=EXTRA_CELLS_KEY)
    rows = []
    for raw in reader:
        extra = raw.pop(EXTRA_CELLS_KEY, None)
        if extra:
            logger.warning("Ignoring %d extra cell(s) on CSV line %d", len(extra), reader.line_num)
        cleaned = {
            (key or "").strip(): ((value or "").strip() or None)
            for key, value in raw.items()
        }
        if not cleaned.get("email"):
            continue
        rows.append(BulkUserRow(**cleaned))
    return rows


class BulkUserImporter:
    def __init__(
        self,
        supabase: Client,
        profile_wait_seconds: float = 0.5,
        row_delay_seconds: float = 0.2,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.supabase = supabase
        self.profile_wait_seconds = profile_wait_seconds
        self.row_delay_seconds = row_delay_seconds
        self._sleep = sleep

    @staticmethod
    def _validate(row: BulkUserRow) -> Optional[str]:
        if not row.password or len(row.password) < 6:
            return "Password must be at least 6 characters"
        if row.role not in ROLES:
            return f"Invalid role: {row.role}"
        if row.role == "student" and (not row.student_id or not row.section):
            return "Students require student_id and section"
        return None

    @staticmethod
    def _user_metadata(row: BulkUserRow) -> dict:
        metadata = {
            "firstName": row.first_name,
            "lastName": row.last_name,
            "role": row.role,
        }
        if row.student_id:
            metadata["studentId"] = row.student_id
        if row.section:
            metadata["section"] = row.section
        return metadata

    def create_user(self, row: BulkUserRow) -> BulkUserResult:
        """Create a single confirmed user and check that its profile exists"""
        invalid = self._validate(row)
        if invalid:
            return BulkUserResult(email=row.email, success=False, error=invalid)

        try:
            auth_response = self.supabase.auth.admin.create_user({
                "email": row.email,
                "password": row.password,
                "email_confirm": True,
                "user_metadata": self._user_metadata(row)
            })
        except Exception as e:
            message = str(e)
            if any(marker in message.lower() for marker in DUPLICATE_USER_MARKERS):
                return BulkUserResult(email=row.email, success=False, skipped=True, error="User already exists")
            return BulkUserResult(email=row.email, success=False, error=message)

        user_id = auth_response.user.id

        if self.profile_wait_seconds:
            self._sleep(self.profile_wait_seconds)

        profile_created = False
        try:
            profile = self.supabase.table("profiles")\
                .select("id, email, role")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
            profile_created = bool(profile.data)
        except Exception as e:
            logger.warning(f"User {row.email} created in auth but profile check failed: {e}")

        return BulkUserResult(
            email=row.email,
            success=True,
            user_id=user_id,
            profile_created=profile_created
        )

    def run(self, rows: List[BulkUserRow]) -> BulkImportResponse:
        results = []
        created = skipped = failed = 0

        for row in rows:
            result = self.create_user(row)
            results.append(result)

            if result.success:
                created += 1
                logger.info(f"Created: {result.email} ({row.role})")
                if not result.profile_created:
                    logger.warning(f"Profile verification failed for {result.email}")
            elif result.skipped:
                skipped += 1
                logger.info(f"Skipped: {result.email} - {result.error}")
            else:
                failed += 1
                logger.error(f"Failed: {result.email} - {result.error}")

            # Avoid auth admin rate limiting
            if self.row_delay_seconds:
                self._sleep(self.row_delay_seconds)

        return BulkImportResponse(
            total=len(rows),
            created=created,
            skipped=skipped,
            failed=failed,
            results=results
        )
