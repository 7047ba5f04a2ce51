import re
from pathlib import Path

import pytest

from app import storage
from app.services import students as student_service


def test_create_assigns_sequential_student_ids(client, student_payload):
    first = client.post("/api/students", json=student_payload())
    second = client.post("/api/students", json=student_payload())

    assert first.status_code == 201
    assert second.status_code == 201
    assert first.json()["studentId"] == "STU000001"
    assert second.json()["studentId"] == "STU000002"
    assert re.match(r"^STU\d{6}$", first.json()["studentId"])


def test_create_returns_derived_and_default_fields(client, student_payload):
    resp = client.post("/api/students", json=student_payload(email="  Kasun.Perera@Example.LK "))
    body = resp.json()

    assert body["fullName"] == "Kasun Perera"
    assert body["email"] == "kasun.perera@example.lk"
    assert body["status"] == "active"
    assert isinstance(body["age"], int)
    assert body["enrolledCourses"] == []
    assert body["academicInfo"]["grades"] == []
    assert body["enrollmentDate"] is not None
    assert body["createdAt"] is not None
    assert resp.headers["X-Request-ID"]


def test_duplicate_email_differing_in_case_is_rejected(client, student_payload):
    client.post("/api/students", json=student_payload(email="kasun@example.lk"))
    resp = client.post("/api/students", json=student_payload(email="KASUN@Example.lk"))

    assert resp.status_code == 409
    assert resp.json()["error"]["details"]["field"] == "email"
    assert client.get("/api/students").headers["X-Total-Count"] == "1"


def test_duplicate_nic_is_rejected(client, student_payload):
    client.post("/api/students", json=student_payload(nic="200310600123"))
    resp = client.post("/api/students", json=student_payload(nic=" 200310600123 "))

    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "DUPLICATE_ENTRY"


@pytest.mark.parametrize("field, first, second", [
    ("email", {"email": "a@x.lk"}, {"email": "A@X.lk"}),
    ("nic", {"nic": "200310600123"}, {"nic": "200310600123"}),
])
def test_unique_index_conflict_maps_to_duplicate_entry(client, student_payload, monkeypatch,
                                                       field, first, second):
    # Skip the friendly pre-check so the database unique index decides
    monkeypatch.setattr(student_service, "_ensure_unique", lambda *args, **kwargs: None)
    client.post("/api/students", json=student_payload(**first))

    resp = client.post("/api/students", json=student_payload(**second))

    assert resp.status_code == 409
    assert resp.json()["error"]["details"]["field"] == field
    assert client.post("/api/students", json=student_payload()).json()["studentId"] == "STU000002"


def test_failed_create_does_not_consume_a_student_id(client, student_payload):
    client.post("/api/students", json=student_payload(email="kasun@example.lk"))
    client.post("/api/students", json=student_payload(email="kasun@example.lk"))
    resp = client.post("/api/students", json=student_payload())

    assert resp.json()["studentId"] == "STU000002"


def test_missing_required_field_is_rejected(client, student_payload):
    payload = student_payload()
    del payload["nic"]

    assert client.post("/api/students", json=payload).status_code == 422


def test_blank_required_field_is_rejected(client, student_payload):
    resp = client.post("/api/students", json=student_payload(firstName="   "))

    assert resp.status_code == 422
    assert resp.json()["message"] == "firstName is required"


def test_unknown_status_is_rejected(client, student_payload):
    resp = client.post("/api/students", json=student_payload(status="expelled"))

    assert resp.status_code == 422
    assert resp.json()["error"]["details"]["field"] == "status"


def test_get_by_internal_id_or_student_id(client, student_payload):
    created = client.post("/api/students", json=student_payload()).json()

    by_id = client.get(f"/api/students/{created['_id']}")
    by_student_id = client.get(f"/api/students/{created['studentId']}")

    assert by_id.status_code == 200
    assert by_student_id.json()["_id"] == created["_id"]


def test_unknown_student_is_404(client):
    resp = client.get("/api/students/STU999999")

    assert resp.status_code == 404
    assert resp.json()["message"] == "Student not found"


def test_list_search_and_status_filter(client, student_payload):
    client.post("/api/students", json=student_payload(firstName="Nimali", lastName="Silva"))
    client.post("/api/students", json=student_payload(firstName="Tharindu", status="inactive"))

    found = client.get("/api/students", params={"search": "nimali"})
    inactive = client.get("/api/students", params={"status": "inactive"})

    assert [s["fullName"] for s in found.json()] == ["Nimali Silva"]
    assert inactive.headers["X-Total-Count"] == "1"
    assert inactive.json()[0]["firstName"] == "Tharindu"


@pytest.mark.parametrize("term", ["%", "_", "\\"])
def test_search_wildcards_match_literally(client, student_payload, term):
    client.post("/api/students", json=student_payload(firstName="Nimali", lastName="Silva"))

    resp = client.get("/api/students", params={"search": term})

    assert resp.json() == []
    assert resp.headers["X-Total-Count"] == "0"


def test_search_matches_literal_underscore(client, student_payload):
    client.post("/api/students", json=student_payload(email="nimali_s@example.lk"))
    client.post("/api/students", json=student_payload(email="nimalixs@example.lk"))

    found = client.get("/api/students", params={"search": "nimali_s"}).json()

    assert [s["email"] for s in found] == ["nimali_s@example.lk"]


def test_list_paginates(client, student_payload):
    for _ in range(3):
        client.post("/api/students", json=student_payload())

    resp = client.get("/api/students", params={"page": 2, "perPage": 2})

    assert len(resp.json()) == 1
    assert resp.headers["X-Total-Count"] == "3"
    assert resp.headers["X-Page"] == "2"
    assert resp.headers["X-Per-Page"] == "2"


def test_update_profile_keeps_student_id(client, student_payload):
    created = client.post("/api/students", json=student_payload()).json()

    resp = client.put(f"/api/students/{created['studentId']}",
                      json={"phone": " 0719998887 ", "notes": "Moved to evening batch"})

    assert resp.status_code == 200
    assert resp.json()["phone"] == "0719998887"
    assert resp.json()["notes"] == "Moved to evening batch"
    assert resp.json()["studentId"] == created["studentId"]


def test_update_cannot_change_student_id(client, student_payload):
    created = client.post("/api/students", json=student_payload()).json()

    resp = client.put(f"/api/students/{created['_id']}", json={"studentId": "STU000777"})

    assert resp.status_code == 422
    assert client.get(f"/api/students/{created['_id']}").json()["studentId"] == "STU000001"


def test_update_rejects_email_of_another_student(client, student_payload):
    client.post("/api/students", json=student_payload(email="taken@example.lk"))
    other = client.post("/api/students", json=student_payload()).json()

    resp = client.put(f"/api/students/{other['_id']}", json={"email": "Taken@example.lk"})

    assert resp.status_code == 409


def test_update_keeps_own_email(client, student_payload):
    created = client.post("/api/students", json=student_payload(email="own@example.lk")).json()

    resp = client.put(f"/api/students/{created['_id']}", json={"email": "own@example.lk"})

    assert resp.status_code == 200


def test_status_can_be_set_to_any_literal(client, student_payload):
    created = client.post("/api/students", json=student_payload()).json()
    url = f"/api/students/{created['_id']}/status"

    graduated = client.patch(url, json={"status": "graduated"}).json()
    assert graduated["status"] == "graduated"
    assert graduated["graduationDate"] is not None

    active = client.patch(url, json={"status": "active"}).json()
    assert active["status"] == "active"

    assert client.patch(url, json={"status": "alumni"}).status_code == 422


def test_delete_student(client, student_payload):
    created = client.post("/api/students", json=student_payload()).json()

    resp = client.delete(f"/api/students/{created['_id']}")

    assert resp.status_code == 200
    assert client.get(f"/api/students/{created['_id']}").status_code == 404


def test_stats(client, student_payload, create_course):
    course = create_course()
    client.post("/api/students", json=student_payload(courseIds=[course["_id"]]))
    client.post("/api/students", json=student_payload(status="graduated"))

    stats = client.get("/api/students/stats").json()

    assert stats["totalStudents"] == 2
    assert stats["byStatus"]["active"] == 1
    assert stats["byStatus"]["graduated"] == 1
    assert stats["byStatus"]["suspended"] == 0
    assert stats["totalCourses"] == 1
    assert stats["activeEnrollments"] == 1


def test_profile_picture_upload(client, student_payload):
    created = client.post("/api/students", json=student_payload()).json()

    resp = client.put(
        f"/api/students/{created['_id']}/profile-picture",
        files={"profilePicture": ("me.png", b"\x89PNG\r\n\x1a\nfake", "image/png")},
    )

    assert resp.status_code == 200
    path = resp.json()["profilePicture"]
    assert path.endswith(".png")
    assert "STU000001" in path


def test_profile_picture_must_be_an_image(client, student_payload):
    created = client.post("/api/students", json=student_payload()).json()

    resp = client.put(
        f"/api/students/{created['_id']}/profile-picture",
        files={"profilePicture": ("notes.txt", b"hello", "text/plain")},
    )

    assert resp.status_code == 400
    assert client.get(f"/api/students/{created['_id']}").json()["profilePicture"] is None


def test_replacing_profile_picture_removes_previous_file(client, student_payload):
    created = client.post("/api/students", json=student_payload()).json()
    url = f"/api/students/{created['_id']}/profile-picture"

    first = client.put(url, files={"profilePicture": ("a.png", b"\x89PNG first", "image/png")})
    second = client.put(url, files={"profilePicture": ("b.jpg", b"\xff\xd8 second", "image/jpeg")})

    old_path = Path(first.json()["profilePicture"])
    new_path = Path(second.json()["profilePicture"])
    assert not old_path.exists()
    assert new_path.read_bytes() == b"\xff\xd8 second"


def test_deleting_student_removes_profile_picture(client, student_payload):
    created = client.post("/api/students", json=student_payload()).json()
    resp = client.put(f"/api/students/{created['_id']}/profile-picture",
                      files={"profilePicture": ("a.png", b"\x89PNG", "image/png")})
    picture = Path(resp.json()["profilePicture"])

    client.delete(f"/api/students/{created['_id']}")

    assert not picture.exists()


def test_oversized_profile_picture_is_rejected(client, student_payload, monkeypatch):
    monkeypatch.setattr(storage, "MAX_UPLOAD_BYTES", 8)
    created = client.post("/api/students", json=student_payload()).json()

    resp = client.put(f"/api/students/{created['_id']}/profile-picture",
                      files={"profilePicture": ("big.png", b"\x89PNG" + b"0" * 64, "image/png")})

    assert resp.status_code == 400
    assert resp.json()["error"]["details"]["max_size"] == 8
    assert client.get(f"/api/students/{created['_id']}").json()["profilePicture"] is None


def test_remove_profile_picture_ignores_paths_outside_upload_dir(tmp_path):
    outside = tmp_path / "elsewhere.png"
    outside.write_bytes(b"keep")

    assert storage.remove_profile_picture(str(outside), base_dir=tmp_path / "uploads") is False
    assert outside.exists()
