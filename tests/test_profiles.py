"""Profile API tests"""

from app.config.settings import settings
from tests.conftest import auth_headers, add_member, make_user


def test_get_my_profile(client, student):
    response = client.get("/api/v1/profiles/me", headers=auth_headers(student))

    assert response.status_code == 200
    assert response.json()["email"] == student["email"]
    assert response.json()["section"] == "A"


def test_student_updates_own_section_and_bio(client, fake_supabase, student):
    response = client.put(
        "/api/v1/profiles/me",
        json={"bio": "Likes databases", "section": "B"},
        headers=auth_headers(student),
    )

    assert response.status_code == 200
    stored = fake_supabase.rows("profiles", id=student["id"])[0]
    assert stored["bio"] == "Likes databases"
    assert stored["section"] == "B"
    assert stored["updated_at"] is not None


def test_teacher_cannot_set_student_fields(client, teacher):
    response = client.put(
        "/api/v1/profiles/me",
        json={"section": "A"},
        headers=auth_headers(teacher),
    )

    assert response.status_code == 400


def test_role_is_not_self_editable(client, fake_supabase, student):
    response = client.put(
        "/api/v1/profiles/me",
        json={"role": "admin", "first_name": "Samuel"},
        headers=auth_headers(student),
    )

    assert response.status_code == 200
    stored = fake_supabase.rows("profiles", id=student["id"])[0]
    assert stored["role"] == "student"
    assert stored["first_name"] == "Samuel"


def test_avatar_upload_sets_public_url(client, fake_supabase, student):
    response = client.post(
        "/api/v1/profiles/me/avatar",
        files={"file": ("me.png", b"\x89PNG fake", "image/png")},
        headers=auth_headers(student),
    )

    assert response.status_code == 200
    avatar_url = response.json()["avatar_url"]
    assert avatar_url.startswith(f"https://storage.test/{settings.avatars_bucket}/{student['id']}/")
    assert avatar_url.endswith("-me.png")
    (bucket, path), (content, options) = next(iter(fake_supabase.storage.objects.items()))
    assert content == b"\x89PNG fake"
    assert options["upsert"] == "false"


def test_avatar_must_be_an_image(client, student):
    response = client.post(
        "/api/v1/profiles/me/avatar",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=auth_headers(student),
    )

    assert response.status_code == 400


def test_student_lists_section_classmates_and_teachers(client, student, classmate, student_b, teacher, admin):
    response = client.get("/api/v1/profiles", headers=auth_headers(student))

    assert response.status_code == 200
    ids = {p["id"] for p in response.json()}
    assert ids == {student["id"], classmate["id"], teacher["id"]}


def test_student_list_agrees_with_single_fetch(client, student, teacher):
    listed = {p["id"] for p in client.get("/api/v1/profiles", headers=auth_headers(student)).json()}
    fetched = client.get(f"/api/v1/profiles/{teacher['id']}", headers=auth_headers(student))

    assert fetched.status_code == 200
    assert teacher["id"] in listed


def test_student_without_section_sees_self_and_teachers(client, fake_supabase, student, teacher):
    loner = make_user(fake_supabase, "lee@school.test", "student", "Lee", "Loner")

    response = client.get("/api/v1/profiles", headers=auth_headers(loner))

    assert {p["id"] for p in response.json()} == {loner["id"], teacher["id"]}


def test_student_role_filter_narrows_visible_set(client, student, classmate, teacher):
    response = client.get("/api/v1/profiles", params={"role": "teacher"}, headers=auth_headers(student))

    assert [p["id"] for p in response.json()] == [teacher["id"]]


def test_teacher_lists_students_filtered_by_section(client, teacher, admin, student, classmate, student_b):
    response = client.get("/api/v1/profiles", params={"role": "student", "section": "B"}, headers=auth_headers(teacher))

    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == [student_b["id"]]


def test_teacher_does_not_list_admins(client, teacher, admin):
    response = client.get("/api/v1/profiles", params={"role": "admin"}, headers=auth_headers(teacher))

    assert response.status_code == 200
    assert response.json() == []


def test_admin_search_matches_name_or_email(client, admin, student, classmate, student_b):
    by_name = client.get("/api/v1/profiles", params={"search": "cle"}, headers=auth_headers(admin))
    by_email = client.get("/api/v1/profiles", params={"search": "bo@"}, headers=auth_headers(admin))

    assert [p["id"] for p in by_name.json()] == [classmate["id"]]
    assert [p["id"] for p in by_email.json()] == [student_b["id"]]


def test_student_cannot_view_other_section(client, student, student_b, teacher):
    hidden = client.get(f"/api/v1/profiles/{student_b['id']}", headers=auth_headers(student))
    teacher_profile = client.get(f"/api/v1/profiles/{teacher['id']}", headers=auth_headers(student))

    assert hidden.status_code == 403
    assert teacher_profile.status_code == 200


def test_get_unknown_profile_is_404(client, admin):
    response = client.get("/api/v1/profiles/missing", headers=auth_headers(admin))

    assert response.status_code == 404


def test_admin_changes_role(client, fake_supabase, admin, teacher):
    response = client.put(
        f"/api/v1/profiles/{teacher['id']}/role",
        json={"role": "admin"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert fake_supabase.rows("profiles", id=teacher["id"])[0]["role"] == "admin"


def test_admin_cannot_demote_self(client, admin):
    response = client.put(
        f"/api/v1/profiles/{admin['id']}/role",
        json={"role": "student"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 400


def test_student_cannot_change_roles(client, student, classmate):
    response = client.put(
        f"/api/v1/profiles/{classmate['id']}/role",
        json={"role": "teacher"},
        headers=auth_headers(student),
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient permissions. Required: profiles:update"


def test_admin_updates_other_profile(client, admin, student):
    response = client.put(
        f"/api/v1/profiles/{student['id']}",
        json={"student_id": "S100"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["student_id"] == "S100"


def test_delete_profile_hands_over_leadership(client, fake_supabase, admin, team, student, classmate):
    add_member(fake_supabase, team, classmate)

    response = client.delete(f"/api/v1/profiles/{student['id']}", headers=auth_headers(admin))

    assert response.status_code == 204
    assert fake_supabase.rows("profiles", id=student["id"]) == []
    assert fake_supabase.rows("team_members", user_id=student["id"]) == []
    assert fake_supabase.rows("teams", id=team["id"])[0]["leader_id"] == classmate["id"]
    assert fake_supabase.rows("team_members", user_id=classmate["id"])[0]["role"] == "leader"


def test_delete_profile_requires_admin(client, teacher, student):
    response = client.delete(f"/api/v1/profiles/{student['id']}", headers=auth_headers(teacher))

    assert response.status_code == 403


def test_update_rejects_null_names(client, fake_supabase, student):
    response = client.put("/api/v1/profiles/me", json={"first_name": None}, headers=auth_headers(student))

    assert response.status_code == 422
    assert fake_supabase.rows("profiles", id=student["id"])[0]["first_name"] == "Sam"


def test_replacing_avatar_removes_previous_image(client, fake_supabase, student):
    def upload(name):
        return client.post(
            "/api/v1/profiles/me/avatar",
            files={"file": (name, b"\x89PNG fake", "image/png")},
            headers=auth_headers(student),
        )

    first = upload("old.png").json()["avatar_url"]
    second = upload("new.png").json()["avatar_url"]

    assert first != second
    assert [path for _, path in fake_supabase.storage.objects] == [second.split(f"/{settings.avatars_bucket}/", 1)[1]]
