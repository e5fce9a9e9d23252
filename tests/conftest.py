"""pytest configuration and shared fixtures

- FakeSupabase: in-memory stand-in for the supabase client (tables, auth, storage)
- FastAPI TestClient with get_supabase / get_service_supabase / get_admin_supabase overridden
- Seeded users: admin, two teachers, students in sections A and B
"""

import copy
import re
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.core.dependencies import get_admin_supabase
from app.database.supabase_client import get_supabase, get_service_supabase
from app.main import app
from app.modules.auth.service import clear_auth_cache


# ===== In-memory supabase =====

TABLE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "profiles": {
        "first_name": None, "last_name": None, "role": "student", "student_id": None,
        "section": None, "avatar_url": None, "bio": None, "updated_at": None,
    },
    "assignments": {
        "description": None, "section": None, "due_date": None, "status": "draft",
        "min_team_size": 2, "max_team_size": 4, "updated_at": None,
    },
    "assignment_phases": {"description": None, "start_date": None, "due_date": None, "updated_at": None},
    "teams": {"description": None, "updated_at": None},
    "team_members": {"role": "member"},
    "team_invitations": {"status": "pending", "message": None, "responded_at": None},
    "chat_messages": {"content": "", "attachment_url": None, "attachment_name": None},
}

TIMESTAMP_COLUMN = {"team_members": "joined_at"}


def _coerce(value):
    """Timestamps compare as datetimes whatever their ISO spelling."""
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value


def _ilike(value, pattern: str) -> bool:
    if value is None:
        return False
    regex = "^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$"
    return re.match(regex, str(value), re.IGNORECASE) is not None


def _split_top_level(filters: str) -> List[str]:
    """Split a PostgREST logic list on commas outside parentheses and quotes."""
    parts, depth, quoted, current = [], 0, False, ""
    for char in filters:
        if char == '"':
            quoted = not quoted
        elif not quoted and char == "(":
            depth += 1
        elif not quoted and char == ")":
            depth -= 1
        elif not quoted and depth == 0 and char == ",":
            parts.append(current)
            current = ""
            continue
        current += char
    parts.append(current)
    return parts


def _or_term(term: str):
    if term.startswith("and(") and term.endswith(")"):
        terms = [_or_term(t) for t in _split_top_level(term[4:-1])]
        return lambda row: all(t(row) for t in terms)
    column, op, value = term.split(".", 2)
    value = value.strip('"')
    if op == "eq":
        return lambda row: row.get(column) is not None and _coerce(str(row.get(column))) == _coerce(value)
    if op == "lt":
        return lambda row: row.get(column) is not None and _coerce(row.get(column)) < _coerce(value)
    if op == "is" and value == "null":
        return lambda row: row.get(column) is None
    if op == "ilike":
        return lambda row: _ilike(row.get(column), value)
    raise NotImplementedError(f"or_ operator not supported by fake: {op}")


class FakeResponse:
    def __init__(self, data: List[dict], count: Optional[int] = None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.operation = "select"
        self.payload = None
        self.filters = []
        self.ordering = []
        self.row_limit = None
        self.row_offset = 0
        self.count_mode = None

    # operations
    def select(self, *columns, count=None):
        self.operation = "select"
        self.count_mode = count
        return self

    def insert(self, payload):
        self.operation = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.operation = "update"
        self.payload = payload
        return self

    def delete(self):
        self.operation = "delete"
        return self

    # filters
    def _where(self, predicate):
        self.filters.append(predicate)
        return self

    def eq(self, column, value):
        return self._where(lambda row: row.get(column) == value)

    def neq(self, column, value):
        return self._where(lambda row: row.get(column) != value)

    def in_(self, column, values):
        values = list(values)
        return self._where(lambda row: row.get(column) in values)

    def is_(self, column, value):
        expected = None if value in (None, "null") else value
        return self._where(lambda row: row.get(column) is expected)

    def _compare(self, column, value, op):
        bound = _coerce(value)

        def predicate(row):
            current = row.get(column)
            return current is not None and op(_coerce(current), bound)
        return self._where(predicate)

    def lt(self, column, value):
        return self._compare(column, value, lambda a, b: a < b)

    def lte(self, column, value):
        return self._compare(column, value, lambda a, b: a <= b)

    def gt(self, column, value):
        return self._compare(column, value, lambda a, b: a > b)

    def gte(self, column, value):
        return self._compare(column, value, lambda a, b: a >= b)

    def or_(self, filters: str):
        terms = [_or_term(t) for t in _split_top_level(filters)]
        return self._where(lambda row: any(term(row) for term in terms))

    # modifiers
    def order(self, column, desc=False):
        self.ordering.append((column, desc))
        return self

    def limit(self, size):
        self.row_limit = size
        return self

    def offset(self, start):
        self.row_offset = start
        return self

    def _matches(self, row) -> bool:
        return all(predicate(row) for predicate in self.filters)

    def execute(self) -> FakeResponse:
        error = self.db.errors.get((self.table, self.operation))
        if error is not None:
            raise error
        rows = self.db.tables.setdefault(self.table, [])

        if self.operation == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResponse([copy.deepcopy(self.db.insert_row(self.table, p)) for p in payload])

        if self.operation == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self.payload))
                    updated.append(copy.deepcopy(row))
            return FakeResponse(updated)

        if self.operation == "delete":
            deleted = [row for row in rows if self._matches(row)]
            self.db.tables[self.table] = [row for row in rows if not self._matches(row)]
            return FakeResponse(copy.deepcopy(deleted))

        selected = [row for row in rows if self._matches(row)]
        for column, desc in reversed(self.ordering):
            present = [r for r in selected if r.get(column) is not None]
            missing = [r for r in selected if r.get(column) is None]
            present.sort(key=lambda r: _coerce(r[column]), reverse=desc)
            selected = present + missing
        total = len(selected)
        selected = selected[self.row_offset:]
        if self.row_limit is not None:
            selected = selected[:self.row_limit]
        count = total if self.count_mode else None
        return FakeResponse(copy.deepcopy(selected), count=count)


class FakeAuthAdmin:
    def __init__(self, auth: "FakeAuth"):
        self.auth = auth
        self.updated: List[tuple] = []

    def create_user(self, attributes: dict):
        user = self.auth.add_user(
            attributes["email"],
            attributes["password"],
            attributes.get("user_metadata") or {},
        )
        return SimpleNamespace(user=user)

    def update_user_by_id(self, user_id: str, attributes: dict):
        self.updated.append((user_id, attributes))
        user = self.auth.users.get(user_id)
        if user is not None and "password" in attributes:
            self.auth.passwords[user.email] = attributes["password"]
        return SimpleNamespace(user=user)


class FakeAuth:
    """Supabase Auth: users, passwords and bearer tokens of the form token-<user id>."""

    def __init__(self, db: "FakeSupabase"):
        self.db = db
        self.users: Dict[str, SimpleNamespace] = {}
        self.passwords: Dict[str, str] = {}
        self.admin = FakeAuthAdmin(self)
        self.sign_up_calls: List[dict] = []
        self.reset_emails: List[tuple] = []
        self.signed_out = 0
        self.get_user_calls = 0

    def _by_email(self, email: str) -> Optional[SimpleNamespace]:
        return next((u for u in self.users.values() if u.email == email), None)

    def add_user(self, email: str, password: str, metadata: dict, profile: bool = True):
        if self._by_email(email):
            raise Exception("A user with this email address has already been registered")
        user = SimpleNamespace(
            id=str(uuid.uuid4()),
            email=email,
            user_metadata=metadata,
            app_metadata={},
            created_at=self.db.now(),
            updated_at=None,
        )
        self.users[user.id] = user
        self.passwords[email] = password
        if profile:
            # handle_new_user trigger
            self.db.insert_row("profiles", {
                "id": user.id,
                "email": email,
                "first_name": metadata.get("firstName"),
                "last_name": metadata.get("lastName"),
                "role": metadata.get("role") or "student",
                "student_id": metadata.get("studentId"),
                "section": metadata.get("section"),
            })
        return user

    def _session(self, user):
        return SimpleNamespace(
            access_token=f"token-{user.id}",
            refresh_token=f"refresh-{user.id}",
            expires_in=3600,
        )

    def sign_up(self, credentials: dict):
        self.sign_up_calls.append(credentials)
        if self._by_email(credentials["email"]):
            raise Exception("User already registered")
        metadata = credentials.get("options", {}).get("data", {})
        user = self.add_user(credentials["email"], credentials["password"], metadata)
        return SimpleNamespace(user=user, session=None)

    def sign_in_with_password(self, credentials: dict):
        user = self._by_email(credentials["email"])
        if user is None or self.passwords.get(user.email) != credentials["password"]:
            raise Exception("Invalid login credentials")
        return SimpleNamespace(user=user, session=self._session(user))

    def refresh_session(self, refresh_token: str):
        user_id = refresh_token[len("refresh-"):] if refresh_token.startswith("refresh-") else None
        user = self.users.get(user_id)
        if user is None:
            raise Exception("Invalid Refresh Token: Refresh Token Not Found")
        return SimpleNamespace(user=user, session=self._session(user))

    def get_user(self, jwt: str = None):
        self.get_user_calls += 1
        user_id = jwt[len("token-"):] if jwt and jwt.startswith("token-") else None
        user = self.users.get(user_id)
        if user is None:
            raise Exception("invalid JWT: unable to parse or verify signature")
        return SimpleNamespace(user=user)

    def sign_out(self):
        self.signed_out += 1

    def reset_password_for_email(self, email: str, options: dict = None):
        if self._by_email(email) is None:
            raise Exception("User not found")
        self.reset_emails.append((email, options))


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self.storage = storage
        self.name = name

    def upload(self, path: str, content: bytes, file_options: dict = None):
        key = (self.name, path)
        if key in self.storage.objects:
            raise Exception("The resource already exists")
        self.storage.objects[key] = (content, file_options or {})
        return SimpleNamespace(path=path)

    def get_public_url(self, path: str) -> str:
        return f"https://storage.test/{self.name}/{path}"

    def remove(self, paths: List[str]):
        for path in paths:
            self.storage.objects.pop((self.name, path), None)


class FakeStorage:
    def __init__(self):
        self.objects: Dict[tuple, tuple] = {}

    def from_(self, bucket: str) -> FakeBucket:
        return FakeBucket(self, bucket)


class FakeSupabase:
    """Just enough of supabase.Client for the services: table queries, auth and storage."""

    def __init__(self):
        self.tables: Dict[str, List[dict]] = {}
        self.errors: Dict[tuple, Exception] = {}
        self.auth = FakeAuth(self)
        self.storage = FakeStorage()
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def now(self) -> str:
        """Strictly increasing timestamps keep insertion order observable."""
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def insert_row(self, table: str, payload: dict) -> dict:
        row = dict(TABLE_DEFAULTS.get(table, {}))
        row.update(copy.deepcopy(payload))
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault(TIMESTAMP_COLUMN.get(table, "created_at"), self.now())
        self.tables.setdefault(table, []).append(row)
        return row

    def rows(self, table: str, **filters) -> List[dict]:
        return [
            row for row in self.tables.get(table, [])
            if all(row.get(k) == v for k, v in filters.items())
        ]


# ===== Fixtures =====


@pytest.fixture(autouse=True)
def _reset_auth_cache():
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def client(fake_supabase):
    """TestClient bound to the in-memory supabase"""
    app.dependency_overrides[get_supabase] = lambda: fake_supabase
    app.dependency_overrides[get_service_supabase] = lambda: fake_supabase
    app.dependency_overrides[get_admin_supabase] = lambda: fake_supabase
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(db: FakeSupabase, email: str, role: str, first_name: str, last_name: str,
              section: Optional[str] = None, student_id: Optional[str] = None) -> dict:
    metadata = {"firstName": first_name, "lastName": last_name, "role": role}
    if section:
        metadata["section"] = section
    if student_id:
        metadata["studentId"] = student_id
    user = db.auth.add_user(email, "password123", metadata)
    return db.rows("profiles", id=user.id)[0]


def auth_headers(profile: dict) -> dict:
    return {"Authorization": f"Bearer token-{profile['id']}"}


@pytest.fixture
def admin(fake_supabase) -> dict:
    return make_user(fake_supabase, "admin@school.test", "admin", "Ada", "Admin")


@pytest.fixture
def teacher(fake_supabase) -> dict:
    return make_user(fake_supabase, "teacher@school.test", "teacher", "Tom", "Teacher")


@pytest.fixture
def other_teacher(fake_supabase) -> dict:
    return make_user(fake_supabase, "teacher2@school.test", "teacher", "Tina", "Tutor")


@pytest.fixture
def student(fake_supabase) -> dict:
    return make_user(fake_supabase, "sam@school.test", "student", "Sam", "Stone", section="A", student_id="S1")


@pytest.fixture
def classmate(fake_supabase) -> dict:
    return make_user(fake_supabase, "cleo@school.test", "student", "Cleo", "Clark", section="A", student_id="S2")


@pytest.fixture
def third_student(fake_supabase) -> dict:
    return make_user(fake_supabase, "theo@school.test", "student", "Theo", "Tran", section="A", student_id="S3")


@pytest.fixture
def student_b(fake_supabase) -> dict:
    return make_user(fake_supabase, "bo@school.test", "student", "Bo", "Berg", section="B", student_id="S9")


@pytest.fixture
def assignment(fake_supabase, teacher) -> dict:
    """Published assignment for section A, teams of 2-3"""
    return fake_supabase.insert_row("assignments", {
        "title": "Group Project",
        "section": "A",
        "status": "published",
        "min_team_size": 2,
        "max_team_size": 3,
        "created_by": teacher["id"],
    })


@pytest.fixture
def team(fake_supabase, assignment, student) -> dict:
    """Team led by `student` with no other members"""
    team = fake_supabase.insert_row("teams", {
        "assignment_id": assignment["id"],
        "name": "Rockets",
        "leader_id": student["id"],
    })
    fake_supabase.insert_row("team_members", {"team_id": team["id"], "user_id": student["id"], "role": "leader"})
    return team


def add_member(db: FakeSupabase, team: dict, profile: dict) -> dict:
    return db.insert_row("team_members", {"team_id": team["id"], "user_id": profile["id"], "role": "member"})
