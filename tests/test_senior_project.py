"""
Tests for senior (capstone) projects
"""
import io
import json

import pytest
from fastapi import HTTPException
from PIL import Image

from app.api.routes.senior_project_routes import MAX_TEAM_MEMBERS, parse_project_form
from conftest import as_admin, auth_header

ADMIN = "admin@example.com"

MEMBER = {"name": "Kim", "uniId": "1971000", "introduction": "Backend"}


def project_form(**overrides):
    form = {
        "groupName": "Boogie", "classId": "2", "year": "2024",
        "teamMember": json.dumps([MEMBER]),
        "link": json.dumps(["https://youtu.be/demo"]),
        "platform": json.dumps(["2", "1"]),
        "technology": json.dumps([5, 3]),
    }
    form.update(overrides)
    return form


def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (50, 50)).save(buffer, format="PNG")
    return buffer.getvalue()


def bad_request_message(form):
    with pytest.raises(HTTPException) as exc:
        parse_project_form(form)
    assert exc.value.status_code == 400
    return exc.value.detail


class TestParseProjectForm:
    """Test validation of the multipart text fields"""

    def test_valid(self):
        project = parse_project_form(project_form())
        assert project["class_id"] == 2
        assert project["platform"] == [1, 2]
        assert project["technology"] == [3, 5]
        assert project["team_member"][0].uni_id == "1971000"

    def test_missing_field(self):
        form = project_form()
        del form["groupName"]
        assert bad_request_message(form) == "Bad request."

    def test_malformed_json(self):
        assert bad_request_message(project_form(link="[")) == "Bad request."

    def test_no_members(self):
        assert bad_request_message(project_form(teamMember="[]")) == "At least one team member is required."

    def test_too_many_members(self):
        members = [dict(MEMBER, uniId=str(i)) for i in range(MAX_TEAM_MEMBERS + 1)]
        bad_request_message(project_form(teamMember=json.dumps(members)))

    def test_member_needs_introduction(self):
        member = {"name": "Kim", "uniId": "1971000"}
        assert bad_request_message(project_form(teamMember=json.dumps([member]))) == "Bad request."

    @pytest.mark.parametrize("field", ["platform", "technology", "link"])
    def test_empty_lists(self, field):
        assert bad_request_message(project_form(**{field: "[]"})) == f"Please add at least one {field}."


class TestCreateProject:
    """Test POST /senior-project"""

    def test_admin_only(self, client, db):
        as_admin(db)
        response = client.post("/api/senior-project", data=project_form(), headers=auth_header("user@example.com"))
        assert response.status_code == 403

    def test_create_with_files(self, client, db, s3):
        as_admin(db, ADMIN)
        response = client.post(
            "/api/senior-project",
            data=project_form(),
            files={
                "projectDesign": ("design.pdf", b"%PDF-1.4", "application/pdf"),
                "profileImage1": ("kim.png", png_bytes(), "image/png"),
            },
            headers=auth_header(ADMIN),
        )
        assert response.status_code == 201
        assert response.json() == {"isPosted": True}

        assert s3.objects["2024/Boogie/design.pdf"] == b"%PDF-1.4"
        with Image.open(io.BytesIO(s3.objects["2024/Boogie/1971000_kim.png.png"])) as image:
            assert image.size == (1080, 790)

        [(_, params)] = db.statements("INSERT INTO senier_project")
        assert params["platform"] == "[1, 2]"
        assert params["project_design"] == "2024/Boogie/design.pdf"

        [(_, member)] = db.statements("INSERT INTO team_member")
        assert member["profile_image"] == "2024/Boogie/1971000_kim.png.png"
        assert member["id"] == params["id"]

    def test_same_file_name_for_two_members(self, client, db, s3):
        as_admin(db, ADMIN)
        members = [MEMBER, {"name": "Lee", "uniId": "1971001", "introduction": "Frontend"}]
        response = client.post(
            "/api/senior-project",
            data=project_form(teamMember=json.dumps(members)),
            files={
                "profileImage1": ("photo.png", png_bytes(), "image/png"),
                "profileImage2": ("photo.png", png_bytes(), "image/png"),
            },
            headers=auth_header(ADMIN),
        )
        assert response.status_code == 201

        keys = [params["profile_image"] for _, params in db.statements("INSERT INTO team_member")]
        assert keys == ["2024/Boogie/1971000_photo.png.png", "2024/Boogie/1971001_photo.png.png"]
        assert sorted(s3.objects) == keys

    def test_group_name_taken(self, client, db):
        as_admin(db, ADMIN)
        db.on("SELECT id FROM senier_project WHERE year", [{"id": "other"}])
        response = client.post("/api/senior-project", data=project_form(), headers=auth_header(ADMIN))
        assert response.status_code == 400
        assert response.json() == {"message": "Boogie is already a registered group name."}

    def test_member_already_registered(self, client, db, s3):
        as_admin(db, ADMIN)
        db.on("SELECT name FROM team_member WHERE uni_id IN", [{"name": "Kim"}])
        response = client.post(
            "/api/senior-project",
            data=project_form(),
            files={"profileImage1": ("kim.png", png_bytes(), "image/png")},
            headers=auth_header(ADMIN),
        )
        assert response.status_code == 400
        assert response.json() == {"message": "Kim already registered."}
        assert s3.objects == {}


class TestUpdateProject:
    """Test PATCH /senior-project"""

    def test_update_keeps_design(self, client, db):
        as_admin(db, ADMIN)
        db.on("FROM senier_project WHERE id = :id", [{"id": "sp1", "project_design": "2024/Boogie/old.pdf"}])
        # The project's own group name is not a conflict
        db.on("SELECT id FROM senier_project WHERE year", [{"id": "sp1"}])

        response = client.patch("/api/senior-project", data=project_form(id="sp1"), headers=auth_header(ADMIN))
        assert response.status_code == 201

        [(_, params)] = db.statements("UPDATE senier_project")
        assert params["project_design"] == "2024/Boogie/old.pdf"
        assert params["technology"] == "[3, 5]"
        [(_, member)] = db.statements("INSERT INTO team_member")
        assert member["uni_id"] == "1971000"

    def test_existing_member_photo_replaced(self, client, db, s3):
        as_admin(db, ADMIN)
        s3.objects["2024/Boogie/1971000_old.png.png"] = b"old"
        db.on("FROM senier_project WHERE id = :id", [{"id": "sp1", "project_design": None}])
        db.on("SELECT uni_id, profile_image FROM team_member",
              [{"uni_id": "1971000", "profile_image": "2024/Boogie/1971000_old.png.png"}])

        response = client.patch(
            "/api/senior-project",
            data=project_form(id="sp1"),
            files={"profileImage1": ("new.png", png_bytes(), "image/png")},
            headers=auth_header(ADMIN),
        )
        assert response.status_code == 201

        assert not db.statements("INSERT INTO team_member")
        assert not db.statements("SELECT name FROM team_member WHERE uni_id IN")
        [(_, params)] = db.statements("UPDATE team_member SET profile_image")
        assert params == {"profile_image": "2024/Boogie/1971000_new.png.png", "id": "sp1", "uni_id": "1971000"}
        assert sorted(s3.objects) == ["2024/Boogie/1971000_new.png.png"]

    def test_existing_member_without_new_photo(self, client, db, s3):
        as_admin(db, ADMIN)
        s3.objects["2024/Boogie/1971000_old.png.png"] = b"old"
        db.on("FROM senier_project WHERE id = :id", [{"id": "sp1", "project_design": None}])
        db.on("SELECT uni_id, profile_image FROM team_member",
              [{"uni_id": "1971000", "profile_image": "2024/Boogie/1971000_old.png.png"}])

        client.patch("/api/senior-project", data=project_form(id="sp1"), headers=auth_header(ADMIN))
        assert not db.statements("UPDATE team_member")
        assert "2024/Boogie/1971000_old.png.png" in s3.objects

    def test_new_member_registered_elsewhere(self, client, db, s3):
        as_admin(db, ADMIN)
        db.on("FROM senier_project WHERE id = :id", [{"id": "sp1", "project_design": None}])
        db.on("SELECT name FROM team_member WHERE uni_id IN", [{"name": "Kim"}])

        response = client.patch(
            "/api/senior-project",
            data=project_form(id="sp1"),
            files={"profileImage1": ("kim.png", png_bytes(), "image/png")},
            headers=auth_header(ADMIN),
        )
        assert response.status_code == 400
        assert s3.objects == {}

    def test_new_design_replaces_old(self, client, db, s3):
        as_admin(db, ADMIN)
        s3.objects["2024/Boogie/old.pdf"] = b"old"
        db.on("FROM senier_project WHERE id = :id", [{"id": "sp1", "project_design": "2024/Boogie/old.pdf"}])

        client.patch(
            "/api/senior-project",
            data=project_form(id="sp1"),
            files={"projectDesign": ("new.pdf", b"%PDF-1.4", "application/pdf")},
            headers=auth_header(ADMIN),
        )
        [(_, params)] = db.statements("UPDATE senier_project")
        assert params["project_design"] == "2024/Boogie/new.pdf"
        assert sorted(s3.objects) == ["2024/Boogie/new.pdf"]

    def test_update_missing_project(self, client, db):
        as_admin(db, ADMIN)
        response = client.patch("/api/senior-project", data=project_form(id="nope"), headers=auth_header(ADMIN))
        assert response.status_code == 404


class TestDeleteProject:
    """Test project and member deletion"""

    def test_delete_removes_files(self, client, db, s3):
        as_admin(db, ADMIN)
        s3.objects.update({"2024/Boogie/design.pdf": b"x", "2024/Boogie/kim.png.png": b"y"})
        db.on("FROM senier_project WHERE id = :id", [{"id": "sp1", "project_design": "2024/Boogie/design.pdf"}])
        db.on("SELECT profile_image FROM team_member", [{"profile_image": "2024/Boogie/kim.png.png"}])

        response = client.delete("/api/senior-project/sp1", headers=auth_header(ADMIN))
        assert response.status_code == 200
        assert s3.objects == {}
        assert db.statements("DELETE FROM team_member WHERE id = :id")
        assert db.statements("DELETE FROM senier_project")

    def test_delete_member(self, client, db, s3):
        as_admin(db, ADMIN)
        db.on("SELECT profile_image FROM team_member WHERE uni_id", [{"profile_image": None}])
        response = client.delete("/api/senior-project/member/1971000", headers=auth_header(ADMIN))
        assert response.status_code == 200
        [(_, params)] = db.statements("DELETE FROM team_member WHERE uni_id")
        assert params == {"uni_id": "1971000"}

    def test_delete_unknown_member(self, client, db):
        as_admin(db, ADMIN)
        response = client.delete("/api/senior-project/member/0000000", headers=auth_header(ADMIN))
        assert response.status_code == 404


class TestProjectList:
    """Test GET /senior-project/list and /recommend"""

    def script_summaries(self, db):
        db.on("SELECT id, name FROM team_member WHERE id IN", [
            {"id": "sp1", "name": "Kim"}, {"id": "sp1", "name": "Lee"},
        ])
        db.on("SELECT id, name FROM plattform", [{"id": 1, "name": "Web"}, {"id": 2, "name": "iOS"}])
        db.on("SELECT id, name FROM technology", [{"id": 3, "name": "Python"}, {"id": 5, "name": "React"}])

    def test_year_required(self, client, db):
        response = client.get("/api/senior-project/list")
        assert response.status_code == 400
        assert response.json() == {"message": "Please enter the year."}

    def test_list(self, client, db):
        self.script_summaries(db)
        db.on("FROM senier_project WHERE year", [{
            "id": "sp1", "group_name": "Boogie", "plattform": "[1, 2]", "technology": "[5]", "view_count": 9,
        }])

        body = client.get("/api/senior-project/list", params={"year": "2024"}).json()
        assert body == {"seniorProjectList": [{
            "id": "sp1", "groupName": "Boogie", "viewCount": 9, "teamMember": "Kim, Lee",
            "platform": "Web, iOS", "technology": ["React"],
        }]}

    def test_filters(self, client, db):
        client.get("/api/senior-project/list", params={
            "year": "2024", "platform": [3, 1], "technology": 5, "classId": 2, "name": "Kim",
        })
        [(sql, params)] = db.statements("FROM senier_project WHERE year")
        assert "JSON_CONTAINS(plattform, :platform)" in sql
        assert "id IN (SELECT id FROM team_member WHERE name = :name)" in sql
        assert params["platform"] == "[1, 3]"
        assert params["technology"] == "[5]"
        assert params["class_id"] == 2

    def test_recommend(self, client, db):
        self.script_summaries(db)
        db.on("FROM senier_project WHERE id = :id", [{"id": "sp1", "plattform": "[1]"}])
        db.on("WHERE JSON_CONTAINS(plattform, :platform) AND id <> :id", [{
            "id": "sp2", "year": "2023", "group_name": "Other", "plattform": "[1]",
            "technology": "[]", "view_count": 0,
        }])

        body = client.get("/api/senior-project/recommend", params={"id": "sp1"}).json()
        [project] = body["seniorProjectRecommendList"]
        assert project["id"] == "sp2"
        assert project["platform"] == "Web"

        [(sql, params)] = db.statements("AND id <> :id")
        assert params == {"platform": "[1]", "id": "sp1"}
        assert "LIMIT 5" in sql


class TestProjectDetail:
    """Test the detail endpoints"""

    def test_members(self, client, db, s3):
        s3.objects["2024/Boogie/kim.png.png"] = b"y"
        db.on("FROM senier_project WHERE id = :id", [{"id": "sp1"}])
        db.on("SELECT uni_id, name, introduction, profile_image FROM team_member", [{
            "uni_id": "1971000", "name": "Kim", "introduction": "Backend", "profile_image": "2024/Boogie/kim.png.png",
        }])
        db.on("SELECT id FROM user WHERE uni_id", [{"id": "kim@example.com"}])

        [member] = client.get("/api/senior-project/detail/members", params={"id": "sp1"}).json()[
            "seniorProjectMemberList"
        ]
        assert member["id"] == "kim@example.com"
        assert member["image"] == "https://test-bucket.s3.amazonaws.com/2024/Boogie/kim.png.png"

    def test_design_not_found(self, client, db):
        response = client.get("/api/senior-project/detail/design", params={"id": "nope"})
        assert response.status_code == 404

    def test_announced_links(self, client, db):
        db.on("FROM senier_project WHERE id = :id", [{"link": '["https://youtu.be/demo"]'}])
        body = client.get("/api/senior-project/detail/announced", params={"id": "sp1"}).json()
        assert body == {"link": ["https://youtu.be/demo"]}

    def test_group_counts_view(self, client, db):
        db.on("FROM senier_project WHERE id = :id", [{"group_name": "Boogie", "year": "2024"}])
        body = client.get("/api/senior-project/detail/group", params={"id": "sp1"}).json()
        assert body == {"groupName": "Boogie", "year": "2024"}
        assert db.statements("UPDATE senier_project SET view_count = view_count + 1")

    def test_detail_admin_only(self, client, db):
        as_admin(db)
        response = client.get("/api/senior-project/detail", params={"id": "sp1"}, headers=auth_header("user@example.com"))
        assert response.status_code == 403

    def test_detail(self, client, db):
        as_admin(db, ADMIN)
        db.on("FROM senier_project WHERE id = :id", [{
            "id": "sp1", "year": "2024", "link": "[]", "group_name": "Boogie", "class_id": 2,
            "project_design": None, "plattform": "[2]", "technology": "[3]",
        }])
        db.on("SELECT id, name FROM plattform", [{"id": 1, "name": "Web"}, {"id": 2, "name": "iOS"}])
        db.on("SELECT id, name FROM technology", [{"id": 3, "name": "Python"}])
        db.on("SELECT * FROM class", [{"id": 2, "name": "Capstone A"}])

        info = client.get(
            "/api/senior-project/detail", params={"id": "sp1"}, headers=auth_header(ADMIN)
        ).json()["seniorProjectDetailInfo"]
        assert info["platform"] == [{"id": 2, "name": "iOS"}]
        assert info["technology"] == [{"id": 3, "name": "Python"}]
        assert info["classInfo"] == {"id": 2, "name": "Capstone A"}
        assert info["teamMember"] == []
