"""Team formation API tests"""

from app.config.settings import settings
from tests.conftest import auth_headers, add_member


def test_student_creates_team_and_becomes_leader(client, fake_supabase, student, assignment):
    response = client.post(
        "/api/v1/teams",
        json={"assignment_id": assignment["id"], "name": "Rockets"},
        headers=auth_headers(student),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["leader_id"] == student["id"]
    assert body["member_count"] == 1
    member = fake_supabase.rows("team_members", team_id=body["id"])[0]
    assert member["user_id"] == student["id"]
    assert member["role"] == "leader"


def test_one_team_per_assignment(client, team, student):
    response = client.post(
        "/api/v1/teams",
        json={"assignment_id": team["assignment_id"], "name": "Second"},
        headers=auth_headers(student),
    )

    assert response.status_code == 409


def test_team_names_are_unique_per_assignment(client, team, classmate):
    response = client.post(
        "/api/v1/teams",
        json={"assignment_id": team["assignment_id"], "name": "Rockets"},
        headers=auth_headers(classmate),
    )

    assert response.status_code == 409


def test_cannot_form_team_for_hidden_assignment(client, fake_supabase, teacher, student, student_b, assignment):
    draft = fake_supabase.insert_row("assignments", {"title": "Draft", "section": "A", "created_by": teacher["id"]})

    unpublished = client.post(
        "/api/v1/teams", json={"assignment_id": draft["id"], "name": "Early"}, headers=auth_headers(student)
    )
    other_section = client.post(
        "/api/v1/teams", json={"assignment_id": assignment["id"], "name": "Visitors"}, headers=auth_headers(student_b)
    )

    assert unpublished.status_code == 404
    assert other_section.status_code == 404


def test_teachers_cannot_create_teams(client, teacher, assignment):
    response = client.post(
        "/api/v1/teams", json={"assignment_id": assignment["id"], "name": "Staff"}, headers=auth_headers(teacher)
    )

    assert response.status_code == 403


def test_listing_depends_on_role(client, fake_supabase, team, student, classmate, teacher, other_teacher, admin):
    add_member(fake_supabase, team, classmate)

    as_member = client.get("/api/v1/teams", headers=auth_headers(classmate)).json()
    as_owner = client.get("/api/v1/teams", headers=auth_headers(teacher)).json()
    as_other = client.get("/api/v1/teams", headers=auth_headers(other_teacher)).json()
    as_admin = client.get("/api/v1/teams", params={"assignment_id": team["assignment_id"]},
                          headers=auth_headers(admin)).json()

    assert [t["id"] for t in as_member] == [team["id"]]
    assert as_member[0]["member_count"] == 2
    assert [t["id"] for t in as_owner] == [team["id"]]
    assert as_other == []
    assert [t["id"] for t in as_admin] == [team["id"]]


def test_team_detail_lists_members_with_names(client, fake_supabase, team, student, classmate, teacher):
    add_member(fake_supabase, team, classmate)

    response = client.get(f"/api/v1/teams/{team['id']}", headers=auth_headers(teacher))

    assert response.status_code == 200
    members = response.json()["members"]
    assert [m["first_name"] for m in members] == ["Sam", "Cleo"]
    assert [m["role"] for m in members] == ["leader", "member"]


def test_non_member_cannot_view_team(client, team, classmate, other_teacher):
    assert client.get(f"/api/v1/teams/{team['id']}", headers=auth_headers(classmate)).status_code == 403
    assert client.get(f"/api/v1/teams/{team['id']}", headers=auth_headers(other_teacher)).status_code == 403


def test_only_leader_renames(client, fake_supabase, team, student, classmate):
    add_member(fake_supabase, team, classmate)

    by_member = client.put(f"/api/v1/teams/{team['id']}", json={"name": "Mine"}, headers=auth_headers(classmate))
    by_leader = client.put(f"/api/v1/teams/{team['id']}", json={"name": "Comets"}, headers=auth_headers(student))

    assert by_member.status_code == 403
    assert by_member.json()["detail"] == "Only the team leader can perform this action"
    assert by_leader.status_code == 200
    assert by_leader.json()["name"] == "Comets"


def test_rename_to_existing_name_is_409(client, fake_supabase, team, student, classmate):
    fake_supabase.insert_row("teams", {
        "assignment_id": team["assignment_id"], "name": "Comets", "leader_id": classmate["id"]
    })

    response = client.put(f"/api/v1/teams/{team['id']}", json={"name": "Comets"}, headers=auth_headers(student))

    assert response.status_code == 409


def test_leader_leaving_passes_leadership_to_earliest_member(
    client, fake_supabase, team, student, classmate, third_student
):
    add_member(fake_supabase, team, classmate)
    add_member(fake_supabase, team, third_student)

    response = client.delete(f"/api/v1/teams/{team['id']}/members/{student['id']}", headers=auth_headers(student))

    assert response.status_code == 200
    assert response.json()["new_leader_id"] == classmate["id"]
    assert response.json()["team_deleted"] is False
    assert fake_supabase.rows("teams", id=team["id"])[0]["leader_id"] == classmate["id"]
    assert fake_supabase.rows("team_members", team_id=team["id"], user_id=classmate["id"])[0]["role"] == "leader"


def test_last_member_leaving_deletes_team(client, fake_supabase, team, student):
    response = client.delete(f"/api/v1/teams/{team['id']}/members/{student['id']}", headers=auth_headers(student))

    assert response.status_code == 200
    assert response.json()["team_deleted"] is True
    assert fake_supabase.rows("teams") == []
    assert client.get(f"/api/v1/teams/{team['id']}", headers=auth_headers(student)).status_code == 404


def test_member_cannot_remove_others(client, fake_supabase, team, student, classmate, third_student):
    add_member(fake_supabase, team, classmate)
    add_member(fake_supabase, team, third_student)

    by_member = client.delete(
        f"/api/v1/teams/{team['id']}/members/{third_student['id']}", headers=auth_headers(classmate)
    )
    by_leader = client.delete(
        f"/api/v1/teams/{team['id']}/members/{third_student['id']}", headers=auth_headers(student)
    )

    assert by_member.status_code == 403
    assert by_leader.status_code == 200
    assert fake_supabase.rows("team_members", user_id=third_student["id"]) == []


def test_removing_non_member_is_404(client, team, student, classmate):
    response = client.delete(f"/api/v1/teams/{team['id']}/members/{classmate['id']}", headers=auth_headers(student))

    assert response.status_code == 404


def test_transfer_leadership(client, fake_supabase, team, student, classmate, third_student):
    add_member(fake_supabase, team, classmate)

    to_outsider = client.put(
        f"/api/v1/teams/{team['id']}/leader", json={"user_id": third_student["id"]}, headers=auth_headers(student)
    )
    to_member = client.put(
        f"/api/v1/teams/{team['id']}/leader", json={"user_id": classmate["id"]}, headers=auth_headers(student)
    )

    assert to_outsider.status_code == 400
    assert to_member.status_code == 200
    assert to_member.json()["leader_id"] == classmate["id"]
    roles = {m["user_id"]: m["role"] for m in fake_supabase.rows("team_members", team_id=team["id"])}
    assert roles == {student["id"]: "member", classmate["id"]: "leader"}


def test_delete_team_removes_related_rows(client, fake_supabase, team, student, classmate, third_student):
    add_member(fake_supabase, team, classmate)
    fake_supabase.insert_row("chat_messages", {"team_id": team["id"], "sender_id": student["id"], "content": "hi"})
    fake_supabase.insert_row("team_invitations", {
        "team_id": team["id"], "inviter_id": student["id"], "invitee_id": third_student["id"]
    })

    response = client.delete(f"/api/v1/teams/{team['id']}", headers=auth_headers(student))

    assert response.status_code == 204
    for table in ("teams", "team_members", "chat_messages", "team_invitations"):
        assert fake_supabase.rows(table) == []


def test_owning_teacher_can_disband_team(client, fake_supabase, team, teacher):
    response = client.delete(f"/api/v1/teams/{team['id']}", headers=auth_headers(teacher))

    assert response.status_code == 204
    assert fake_supabase.rows("teams") == []


def test_rename_rejects_null_name(client, team, student):
    response = client.put(f"/api/v1/teams/{team['id']}", json={"name": None}, headers=auth_headers(student))

    assert response.status_code == 422


def test_disbanding_removes_chat_attachments(client, fake_supabase, team, student):
    bucket = settings.chat_attachments_bucket
    fake_supabase.storage.from_(bucket).upload(f"{team['id']}/plan.pdf", b"pdf")
    fake_supabase.storage.from_("avatars").upload("someone/me.png", b"img")
    fake_supabase.insert_row("chat_messages", {
        "team_id": team["id"], "sender_id": student["id"], "content": "",
        "attachment_url": f"https://storage.test/{bucket}/{team['id']}/plan.pdf", "attachment_name": "plan.pdf",
    })

    response = client.delete(f"/api/v1/teams/{team['id']}", headers=auth_headers(student))

    assert response.status_code == 204
    assert list(fake_supabase.storage.objects) == [("avatars", "someone/me.png")]
