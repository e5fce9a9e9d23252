"""
Bulk Create Users Script
Creates confirmed Supabase Auth users (and, via the signup trigger, their profiles)
from a CSV file. Requires SUPABASE_SERVICE_ROLE_KEY.

Usage: python app/scripts/bulk_create_users.py [path/to/users.csv]
Defaults to database/test_users.csv.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.database.supabase_client import SupabaseClient, get_service_supabase
from app.modules.profiles.bulk_import import BulkUserImporter, parse_users_csv
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_CSV_PATH = project_root / "database" / "test_users.csv"


def main(argv=None):
    """Main function to create users from CSV"""
    argv = sys.argv[1:] if argv is None else argv
    csv_path = Path(argv[0]) if argv else DEFAULT_CSV_PATH

    if not SupabaseClient.has_service_client():
        logger.error("SUPABASE_SERVICE_ROLE_KEY is not set; admin user creation is unavailable")
        sys.exit(1)

    try:
        logger.info(f"Reading users from: {csv_path}")
        rows = parse_users_csv(csv_path.read_text(encoding="utf-8"))
    except OSError as e:
        logger.error(f"Could not read {csv_path}: {e}")
        sys.exit(1)

    logger.info(f"Found {len(rows)} users to create")
    summary = BulkUserImporter(get_service_supabase()).run(rows)

    logger.info(f"Done: {summary.created} created, {summary.skipped} skipped, {summary.failed} failed")
    if summary.failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
