"""API tests for rooms, features and their links."""

import io
import os

import pytest
from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError

from modules.meeting import models as meeting_models
from modules.rooms import services as room_services
from modules.rooms.models import Feature, Room


def _feature(client, headers, name):
    r = client.post("/features", json={"name": name}, headers=headers)
    assert r.status_code == 201
    return r.json()["id"]


class TestRooms:
    """/rooms CRUD"""

    def test_admin_creates_room_with_features(self, client, auth_headers, admin):
        h = auth_headers(admin)
        projector = _feature(client, h, "Projector")
        whiteboard = _feature(client, h, "Whiteboard")

        r = client.post(
            "/rooms",
            json={"name": "Kilimanjaro", "capacity": 8, "location": "Floor 2", "feature_ids": [projector, whiteboard]},
            headers=h,
        )
        assert r.status_code == 201
        body = r.json()
        assert body["capacity"] == 8
        assert sorted(f["name"] for f in body["features"]) == ["Projector", "Whiteboard"]

    def test_everyone_signed_in_can_list(self, client, auth_headers, guest, room):
        r = client.get("/rooms", headers=auth_headers(guest))
        assert r.status_code == 200
        assert [x["name"] for x in r.json()] == ["Everest"]
        assert client.get("/rooms").status_code == 401

    def test_non_admin_cannot_create(self, client, auth_headers, organizer):
        r = client.post("/rooms", json={"name": "Alps", "capacity": 4}, headers=auth_headers(organizer))
        assert r.status_code == 403

    def test_duplicate_name_conflicts(self, client, auth_headers, admin, room):
        r = client.post("/rooms", json={"name": "everest", "capacity": 4}, headers=auth_headers(admin))
        assert r.status_code == 409

    def test_unknown_feature_id_is_bad_input(self, client, auth_headers, admin):
        r = client.post("/rooms", json={"name": "Alps", "capacity": 4, "feature_ids": [777]}, headers=auth_headers(admin))
        assert r.status_code == 400

    def test_capacity_must_be_positive(self, client, auth_headers, admin):
        r = client.post("/rooms", json={"name": "Closet", "capacity": 0}, headers=auth_headers(admin))
        assert r.status_code == 422

    def test_update_replaces_feature_set(self, client, auth_headers, admin, room):
        h = auth_headers(admin)
        a = _feature(client, h, "Screen")
        b = _feature(client, h, "Phone")
        client.put(f"/rooms/{room.id}", json={"feature_ids": [a]}, headers=h)

        r = client.put(f"/rooms/{room.id}", json={"feature_ids": [a, b], "capacity": 6}, headers=h)
        assert r.status_code == 200
        assert sorted(f["name"] for f in r.json()["features"]) == ["Phone", "Screen"]
        assert r.json()["capacity"] == 6
        assert r.json()["name"] == "Everest"

    def test_deleting_room_keeps_meetings(self, client, auth_headers, admin, room, meeting, db):
        r = client.delete(f"/rooms/{room.id}", headers=auth_headers(admin))
        assert r.status_code == 204
        db.expire_all()
        assert db.get(Room, room.id) is None
        kept = db.get(meeting_models.Meeting, meeting.id)
        assert kept is not None
        assert kept.room_id is None

    def test_missing_room(self, client, auth_headers, admin):
        assert client.get("/rooms/4040", headers=auth_headers(admin)).status_code == 404


class TestRoomFeatureLinks:
    """POST/DELETE /rooms/{id}/features/{featureId}"""

    def test_link_and_unlink(self, client, auth_headers, admin, room):
        h = auth_headers(admin)
        fid = _feature(client, h, "Projector")
        url = f"/rooms/{room.id}/features/{fid}"

        r = client.post(url, headers=h)
        assert r.status_code == 200
        assert [f["id"] for f in r.json()["features"]] == [fid]
        assert client.post(url, headers=h).status_code == 409

        r = client.delete(url, headers=h)
        assert r.status_code == 200
        assert r.json()["features"] == []
        assert client.delete(url, headers=h).status_code == 404

    def test_unknown_feature(self, client, auth_headers, admin, room):
        assert client.post(f"/rooms/{room.id}/features/999", headers=auth_headers(admin)).status_code == 404


class TestFeatures:
    """/features CRUD"""

    def test_crud(self, client, auth_headers, admin, organizer, db):
        h = auth_headers(admin)
        fid = _feature(client, h, "Projector")
        assert client.post("/features", json={"name": "projector"}, headers=h).status_code == 409
        assert client.post("/features", json={"name": "Mic"}, headers=auth_headers(organizer)).status_code == 403

        r = client.put(f"/features/{fid}", json={"name": "4K Projector"}, headers=h)
        assert r.status_code == 200
        assert r.json()["name"] == "4K Projector"

        names = [f["name"] for f in client.get("/features", headers=auth_headers(organizer)).json()]
        assert names == ["4K Projector"]

        assert client.delete(f"/features/{fid}", headers=h).status_code == 204
        assert db.query(Feature).count() == 0

    def test_deleting_feature_unlinks_rooms(self, client, auth_headers, admin, room):
        h = auth_headers(admin)
        fid = _feature(client, h, "Speaker")
        client.post(f"/rooms/{room.id}/features/{fid}", headers=h)
        assert client.delete(f"/features/{fid}", headers=h).status_code == 204
        assert client.get(f"/rooms/{room.id}", headers=h).json()["features"] == []


class TestRoomImage:
    """POST /rooms/{id}/upload-image"""

    def test_upload_replaces_previous_image(self, client, auth_headers, admin, room, storage):
        h = auth_headers(admin)
        first = client.post(
            f"/rooms/{room.id}/upload-image",
            files={"file": ("room.png", b"\x89PNG one", "image/png")},
            headers=h,
        ).json()["image_url"]
        assert first.startswith("/files/rooms/")
        assert storage.exists(first[len("/files/"):])

        second = client.post(
            f"/rooms/{room.id}/upload-image",
            files={"file": ("room.jpg", b"jpeg two", "image/jpeg")},
            headers=h,
        ).json()["image_url"]
        assert second != first
        assert not storage.exists(first[len("/files/"):])

        r = client.get(second, headers=h)
        assert r.status_code == 200
        assert r.content == b"jpeg two"

    def test_rejects_non_image(self, client, auth_headers, admin, room):
        r = client.post(
            f"/rooms/{room.id}/upload-image",
            files={"file": ("notes.pdf", b"%PDF", "application/pdf")},
            headers=auth_headers(admin),
        )
        assert r.status_code == 400


class TestRoomImageCommitFailure:
    """A failed commit leaves neither a new image URL nor an orphaned file."""

    def test_new_file_is_removed_and_url_kept(self, db, storage, room, monkeypatch):
        room.image_url = "/files/rooms/previous.png"
        db.commit()

        def fail():
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(db, "commit", fail)
        upload = UploadFile(file=io.BytesIO(b"\x89PNG new"), filename="room.png")
        with pytest.raises(SQLAlchemyError):
            room_services.upload_room_image(db, storage, room.id, upload)
        monkeypatch.undo()

        folder = storage.absolute("rooms")
        assert not os.path.isdir(folder) or os.listdir(folder) == []
        db.refresh(room)
        assert room.image_url == "/files/rooms/previous.png"
