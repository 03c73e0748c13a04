"""API tests for attachment uploads, replacement and authorized file reads."""

import os

from config.settings import settings
from modules.meeting import models


def _files(*names, data=b"hello"):
    return [("files", (name, data, "application/octet-stream")) for name in names]


class TestMeetingAttachments:
    """POST/DELETE /meetings/{id}/attachments and GET /files/meetings/..."""

    def test_participant_uploads_and_reads(self, client, auth_headers, invitee, organizer, outsider, meeting, storage):
        r = client.post(f"/meetings/{meeting.id}/attachments", files=_files("minutes.pdf"), headers=auth_headers(invitee))
        assert r.status_code == 201
        att = r.json()[0]
        assert att["original_name"] == "minutes.pdf"
        assert att["url"].startswith(f"/files/meetings/{meeting.id}/")

        assert client.get(att["url"], headers=auth_headers(organizer)).content == b"hello"
        assert client.get(att["url"], headers=auth_headers(outsider)).status_code == 403

    def test_outsider_cannot_upload(self, client, auth_headers, outsider, meeting):
        r = client.post(f"/meetings/{meeting.id}/attachments", files=_files("a.txt"), headers=auth_headers(outsider))
        assert r.status_code == 403

    def test_rejects_disallowed_extension(self, client, auth_headers, organizer, meeting, db):
        r = client.post(f"/meetings/{meeting.id}/attachments", files=_files("run.exe"), headers=auth_headers(organizer))
        assert r.status_code == 400
        assert db.query(models.Attachment).count() == 0

    def test_empty_upload_is_bad_input(self, client, auth_headers, organizer, meeting):
        r = client.post(f"/meetings/{meeting.id}/attachments", headers=auth_headers(organizer))
        assert r.status_code == 400

    def test_uploader_deletes_own_file(self, client, auth_headers, invitee, meeting, storage, db):
        att = client.post(f"/meetings/{meeting.id}/attachments", files=_files("a.txt"), headers=auth_headers(invitee)).json()[0]
        path = db.get(models.Attachment, att["id"]).path
        r = client.delete(f"/meetings/{meeting.id}/attachments/{att['id']}", headers=auth_headers(invitee))
        assert r.status_code == 204
        assert not storage.exists(path)

    def test_other_participant_cannot_delete(self, client, auth_headers, organizer, invitee, meeting):
        att = client.post(f"/meetings/{meeting.id}/attachments", files=_files("a.txt"), headers=auth_headers(organizer)).json()[0]
        r = client.delete(f"/meetings/{meeting.id}/attachments/{att['id']}", headers=auth_headers(invitee))
        assert r.status_code == 403

    def test_deleting_meeting_removes_files(self, client, auth_headers, organizer, meeting, storage, db):
        att = client.post(f"/meetings/{meeting.id}/attachments", files=_files("a.txt"), headers=auth_headers(organizer)).json()[0]
        path = db.get(models.Attachment, att["id"]).path
        assert storage.exists(path)
        assert client.delete(f"/meetings/{meeting.id}", headers=auth_headers(organizer)).status_code == 204
        assert not storage.exists(path)


class TestActionItemAttachments:
    """Assignment and submission uploads replace the previous set."""

    def _url(self, meeting, item, side):
        return f"/meetings/{meeting.id}/action-items/{item.id}/{side}-attachments"

    def test_organizer_sets_assignment_files(self, client, auth_headers, organizer, invitee, meeting, action_item):
        url = self._url(meeting, action_item, "assignment")
        assert client.post(url, files=_files("brief.docx"), headers=auth_headers(invitee)).status_code == 403

        r = client.post(url, files=_files("brief.docx", "data.xlsx"), headers=auth_headers(organizer))
        assert r.status_code == 200
        assert [a["original_name"] for a in r.json()["assignment_attachments"]] == ["brief.docx", "data.xlsx"]
        assert r.json()["submission_attachments"] == []

    def test_assignee_submits_and_replaces(self, client, auth_headers, invitee, meeting, action_item, storage, db):
        url = self._url(meeting, action_item, "submission")
        h = auth_headers(invitee)
        first = client.post(url, files=_files("v1.pdf"), headers=h)
        assert first.status_code == 200
        old_path = db.query(models.Attachment).one().path

        second = client.post(url, files=_files("v2.pdf"), headers=h)
        assert second.status_code == 200
        assert [a["original_name"] for a in second.json()["submission_attachments"]] == ["v2.pdf"]
        assert not storage.exists(old_path)
        assert db.query(models.Attachment).count() == 1

    def test_six_files_leave_previous_set_untouched(self, client, auth_headers, invitee, meeting, action_item, storage, db):
        url = self._url(meeting, action_item, "submission")
        h = auth_headers(invitee)
        client.post(url, files=_files("keep.pdf"), headers=h)
        before = [(a.id, a.path) for a in db.query(models.Attachment).all()]

        r = client.post(url, files=_files(*[f"f{i}.txt" for i in range(6)]), headers=h)
        assert r.status_code == 400
        db.expire_all()
        assert [(a.id, a.path) for a in db.query(models.Attachment).all()] == before
        assert storage.exists(before[0][1])
        # nothing from the rejected batch reached the disk
        folder = storage.absolute(f"action-items/{action_item.id}/submission")
        assert os.listdir(folder) == [os.path.basename(before[0][1])]

    def test_oversized_file_rejects_whole_batch(self, client, auth_headers, invitee, meeting, action_item, db, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)
        r = client.post(
            self._url(meeting, action_item, "submission"),
            files=[("files", ("small.txt", b"ok", "text/plain")), ("files", ("big.txt", b"x" * 11, "text/plain"))],
            headers=auth_headers(invitee),
        )
        assert r.status_code == 400
        assert db.query(models.Attachment).count() == 0

    def test_file_reads_follow_assignment(self, client, auth_headers, organizer, invitee, outsider, make_user, meeting, action_item, db):
        r = client.post(self._url(meeting, action_item, "assignment"), files=_files("brief.txt"), headers=auth_headers(organizer))
        url = r.json()["assignment_attachments"][0]["url"]
        assert url.startswith(f"/files/action-items/{action_item.id}/assignment/")

        assert client.get(url, headers=auth_headers(invitee)).status_code == 200
        assert client.get(url, headers=auth_headers(organizer)).status_code == 200
        assert client.get(url, headers=auth_headers(outsider)).status_code == 403

    def test_unknown_file_is_not_found(self, client, auth_headers, organizer, meeting, action_item):
        r = client.get(f"/files/action-items/{action_item.id}/assignment/nothing.txt", headers=auth_headers(organizer))
        assert r.status_code == 404
        r = client.get(f"/files/action-items/{action_item.id}/elsewhere/nothing.txt", headers=auth_headers(organizer))
        assert r.status_code == 404
