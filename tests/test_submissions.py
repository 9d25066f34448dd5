import os

import pytest

from themeleague.config import settings
from themeleague.exceptions import (
    Forbidden,
    NotFound,
    SubmissionClosed,
    ValidationFailed,
)
from themeleague.models.models import ContentType, Submission
from themeleague.services import round_state
from themeleague.services import submissions as submission_service


@pytest.fixture
def open_round(make_user, make_league, make_round):
    alice, bob = make_user("Alice"), make_user("Bob")
    league = make_league(alice, members=(bob,))
    return alice, bob, make_round(league)


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path))
    return tmp_path


class TestSaveSubmission:
    def test_create(self, db, open_round):
        _, bob, round_obj = open_round
        submission = submission_service.save_submission(
            db, bob, round_obj.round_id, ContentType.TEXT, "  A red sky  "
        )
        assert submission.content == "A red sky"
        assert submission.content_type == ContentType.TEXT
        assert submission_service.get_user_submission(
            db, bob.user_id, round_obj.round_id
        ) is submission

    def test_resubmit_replaces_content(self, db, open_round):
        _, bob, round_obj = open_round
        first = submission_service.save_submission(
            db, bob, round_obj.round_id, ContentType.TEXT, "draft"
        )
        second = submission_service.save_submission(
            db,
            bob,
            round_obj.round_id,
            ContentType.URL,
            "https://example.com/sunset.jpg",
        )
        assert second.sub_id == first.sub_id
        assert second.content_type == ContentType.URL
        assert db.query(Submission).count() == 1

    @pytest.mark.parametrize(
        "content_type, content",
        [
            (ContentType.TEXT, "   "),
            (ContentType.URL, "not a url"),
            (ContentType.URL, "ftp://example.com/file"),
        ],
    )
    def test_invalid_content(self, db, open_round, content_type, content):
        _, bob, round_obj = open_round
        with pytest.raises(ValidationFailed):
            submission_service.save_submission(
                db, bob, round_obj.round_id, content_type, content
            )

    def test_non_member(self, db, open_round, make_user):
        _, _, round_obj = open_round
        with pytest.raises(Forbidden):
            submission_service.save_submission(
                db, make_user("Dave"), round_obj.round_id, ContentType.TEXT, "hi"
            )

    def test_closed_once_voting_starts(self, db, open_round):
        alice, bob, round_obj = open_round
        round_state.start_voting(db, alice, round_obj.round_id)
        with pytest.raises(SubmissionClosed):
            submission_service.save_submission(
                db, bob, round_obj.round_id, ContentType.TEXT, "late"
            )

    def test_draft_round_not_accepting(
        self, db, make_user, make_league, make_round
    ):
        alice = make_user("Alice")
        draft = make_round(make_league(alice), start_open=False)
        with pytest.raises(SubmissionClosed):
            submission_service.save_submission(
                db, alice, draft.round_id, ContentType.TEXT, "early"
            )

    def test_list_for_round(self, db, open_round):
        alice, bob, round_obj = open_round
        for user in (alice, bob):
            submission_service.save_submission(
                db, user, round_obj.round_id, ContentType.TEXT, user.username
            )
        contents = [
            s.content
            for s in submission_service.list_submissions(db, round_obj.round_id)
        ]
        assert contents == ["Alice", "Bob"]

    def test_list_unknown_round(self, db):
        with pytest.raises(NotFound):
            submission_service.list_submissions(db, 404)


class TestImageSubmission:
    def url(self, round_obj):
        return f"/rounds/{round_obj.round_id}/submission/image"

    def test_upload(self, client, auth_headers, open_round, upload_dir):
        _, bob, round_obj = open_round
        response = client.post(
            self.url(round_obj),
            files={"file": ("sunset.png", b"\x89PNG fake", "image/png")},
            headers=auth_headers(bob),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["content_type"] == "IMAGE"
        assert body["content"].endswith(".png")
        assert os.path.exists(body["content"])
        assert os.path.dirname(body["content"]) == os.path.join(
            str(upload_dir), f"round_{round_obj.round_id}"
        )

    def test_wrong_type(self, client, auth_headers, open_round, upload_dir):
        _, bob, round_obj = open_round
        response = client.post(
            self.url(round_obj),
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=auth_headers(bob),
        )
        assert response.status_code == 400
        assert response.json()["code"] == "validation_failed"

    def test_too_large(
        self, client, auth_headers, open_round, upload_dir, monkeypatch
    ):
        monkeypatch.setattr(settings, "max_file_size", 10)
        _, bob, round_obj = open_round
        response = client.post(
            self.url(round_obj),
            files={"file": ("big.jpg", b"x" * 64, "image/jpeg")},
            headers=auth_headers(bob),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "File too large"
        round_dir = upload_dir / f"round_{round_obj.round_id}"
        assert list(round_dir.iterdir()) == []

    def test_replacing_image_removes_file(
        self, db, client, auth_headers, open_round, upload_dir
    ):
        _, bob, round_obj = open_round
        response = client.post(
            self.url(round_obj),
            files={"file": ("sunset.gif", b"GIF89a", "image/gif")},
            headers=auth_headers(bob),
        )
        old_path = response.json()["content"]

        submission_service.save_submission(
            db, bob, round_obj.round_id, ContentType.TEXT, "changed my mind"
        )
        assert not os.path.exists(old_path)
