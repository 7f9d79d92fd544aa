"""
Tests for the admin console: banners, students and admins
"""
from conftest import as_admin, auth_header

ADMIN = "admin@example.com"
SUPERVISOR = "supervisor@example.com"


class TestBanners:
    """Test banner upload, listing and deletion"""

    def test_admin_only(self, client, db):
        as_admin(db)
        response = client.get("/api/management/banner", headers=auth_header("user@example.com"))
        assert response.status_code == 403

    def test_upload(self, client, db, s3):
        as_admin(db, ADMIN)
        db.on("SELECT COUNT(*) AS count FROM banner", [{"count": 2}])

        response = client.post(
            "/api/management/banner",
            files={
                "bannerImage0": ("spring.png", b"png-bytes", "image/png"),
                "bannerImage1": ("fall.jpg", b"jpg-bytes", "image/jpeg"),
            },
            headers=auth_header(ADMIN),
        )
        assert response.status_code == 200

        inserts = db.statements("INSERT INTO banner")
        assert [params["name"] for _, params in inserts] == ["spring.png", "fall.jpg"]
        for _, params in inserts:
            assert params["id"].endswith("_" + params["name"])
            assert f"banner/{params['id']}" in s3.objects

    def test_limit(self, client, db, s3):
        as_admin(db, ADMIN)
        db.on("SELECT COUNT(*) AS count FROM banner", [{"count": 4}])

        response = client.post(
            "/api/management/banner",
            files={
                "bannerImage0": ("a.png", b"a", "image/png"),
                "bannerImage1": ("b.png", b"b", "image/png"),
            },
            headers=auth_header(ADMIN),
        )
        assert response.status_code == 400
        assert response.json() == {"message": "There can be at most 5 banners."}
        assert s3.objects == {}

    def test_upload_needs_files(self, client, db):
        as_admin(db, ADMIN)
        response = client.post("/api/management/banner", data={"bannerImage0": "x"}, headers=auth_header(ADMIN))
        assert response.status_code == 400

    def test_list_and_public_banners(self, client, db, s3):
        as_admin(db, ADMIN)
        s3.objects["banner/k1_spring.png"] = b"png"
        db.on("SELECT id, name FROM banner", [{"id": "k1_spring.png", "name": "spring.png"}])
        db.on("SELECT id FROM banner", [{"id": "k1_spring.png"}])

        body = client.get("/api/management/banner", headers=auth_header(ADMIN)).json()
        assert body == {"bannerList": [{
            "fileName": "spring.png",
            "image": "https://test-bucket.s3.amazonaws.com/banner/k1_spring.png",
            "key": "k1_spring.png",
        }]}

        public = client.get("/api/banner").json()
        assert public == {"bannerImageList": ["https://test-bucket.s3.amazonaws.com/banner/k1_spring.png"]}

    def test_delete(self, client, db, s3):
        as_admin(db, ADMIN)
        s3.objects["banner/k1_spring.png"] = b"png"
        response = client.delete("/api/management/banner/k1_spring.png", headers=auth_header(ADMIN))
        assert response.json() == {"bannerList": []}
        assert s3.objects == {}
        assert db.statements("DELETE FROM banner")


class TestStudents:
    """Test student search and correction"""

    def test_search_needs_a_filter(self, client, db):
        as_admin(db, ADMIN)
        response = client.get("/api/management/student", headers=auth_header(ADMIN))
        assert response.status_code == 400

    def test_search(self, client, db):
        as_admin(db, ADMIN)
        db.on("SELECT id, uni_id, name FROM user WHERE (", [
            {"id": "kim@example.com", "uni_id": "1971000", "name": "Kim"},
        ])

        body = client.get(
            "/api/management/student", params={"uniId": "1971000", "name": "Kim"}, headers=auth_header(ADMIN)
        ).json()
        assert body == {"studentList": [{"id": "kim@example.com", "uniId": "1971000", "name": "Kim"}]}

        [(sql, params)] = db.statements("SELECT id, uni_id, name FROM user WHERE (")
        assert "(uni_id = :uni_id OR name = :name) AND uni_id IS NOT NULL" in sql
        assert params == {"uni_id": "1971000", "name": "Kim"}

    def test_update(self, client, db):
        as_admin(db, ADMIN)
        db.on("SELECT id, uni_id, name FROM user WHERE id", [
            {"id": "kim@example.com", "uni_id": "1971001", "name": "Kim"},
        ])
        response = client.patch(
            "/api/management/student",
            json={"id": "kim@example.com", "uniId": "1971001", "name": "Kim"},
            headers=auth_header(ADMIN),
        )
        assert response.status_code == 200
        assert response.json()["studentList"][0]["uniId"] == "1971001"

    def test_update_unknown_user(self, client, db):
        as_admin(db, ADMIN)
        db.on("UPDATE user SET uni_id", [], rowcount=0)
        response = client.patch(
            "/api/management/student",
            json={"id": "ghost@example.com", "uniId": "1", "name": "Ghost"},
            headers=auth_header(ADMIN),
        )
        assert response.status_code == 404
        assert db.rollbacks == 1


class TestAdmins:
    """Test admin listing and removal"""

    def test_list_hides_supervisor(self, client, db):
        as_admin(db, ADMIN)
        db.on("SELECT id, nickname FROM user WHERE is_admin = 1", [{"id": ADMIN, "nickname": "admin1"}])

        body = client.get("/api/management/admin/list", headers=auth_header(ADMIN)).json()
        assert body == {"adminList": [{"id": ADMIN, "nickname": "admin1"}]}
        [(_, params)] = db.statements("SELECT id, nickname FROM user WHERE is_admin = 1")
        assert params == {"supervisor_id": SUPERVISOR}

    def test_only_supervisor_deletes(self, client, db):
        response = client.delete(f"/api/management/admin/{ADMIN}", headers=auth_header(ADMIN))
        assert response.status_code == 403
        assert not db.statements("DELETE FROM user")

    def test_supervisor_cannot_be_deleted(self, client, db):
        response = client.delete(f"/api/management/admin/{SUPERVISOR}", headers=auth_header(SUPERVISOR))
        assert response.status_code == 400

    def test_supervisor_deletes_admin(self, client, db):
        response = client.delete(f"/api/management/admin/{ADMIN}", headers=auth_header(SUPERVISOR))
        assert response.status_code == 200
        [(sql, params)] = db.statements("DELETE FROM user")
        assert sql.endswith("AND is_admin = 1")
        assert params == {"id": ADMIN}
