from domain.comments import CommentForm
from domain.user import AuthContext, User
from services import comment_service
from services.comment_service import RemovalOutcome

FIXED_NOW = "2026-10-19 12:30:00"


def fixed_clock():
    return FIXED_NOW


def test_invalid_comment_never_reaches_the_store(recording_store):
    errors = comment_service.submit_comment(
        recording_store, 3, CommentForm(name="", text=""), clock=fixed_clock
    )
    assert errors == {"name": "A name is required", "text": "A comment is required"}
    assert recording_store.inserts == []


def test_valid_comment_is_inserted_with_server_time(recording_store):
    errors = comment_service.submit_comment(
        recording_store, 3, CommentForm(name="Alice", website="", text="Hello"), clock=fixed_clock
    )
    assert errors == {}
    assert len(recording_store.inserts) == 1
    inserted = recording_store.inserts[0]
    assert inserted.post_id == 3
    assert inserted.name == "Alice"
    assert inserted.text == "Hello"
    assert inserted.website == ""
    assert inserted.created_at == FIXED_NOW


def test_missing_website_is_stored_as_empty(recording_store):
    comment_service.submit_comment(
        recording_store, 3, CommentForm(name="Alice", website=None, text="Hello"), clock=fixed_clock
    )
    assert recording_store.inserts[0].website == ""


def test_store_failure_reports_generic_error_once(failing_store, caplog):
    errors = comment_service.submit_comment(
        failing_store, 3, CommentForm(name="Alice", text="Hello"), clock=fixed_clock
    )
    assert errors == {"general": comment_service.SAVE_FAILED_MESSAGE}
    assert len(failing_store.inserts) == 1
    assert "NOT NULL constraint failed" not in errors["general"]
    assert "NOT NULL constraint failed" in caplog.text


def test_default_clock_uses_store_format():
    now = comment_service.now_as_store_timestamp()
    assert len(now) == 19
    assert now[4] == "-" and now[10] == " " and now[13] == ":"


def test_anonymous_removal_does_nothing(recording_store):
    for post_id, comment_id in ((5, 8), (1, 1), (0, 0)):
        outcome = comment_service.remove_comment(recording_store, post_id, comment_id, AuthContext())
        assert outcome is RemovalOutcome.UNAUTHORIZED
    assert recording_store.deletes == []


def test_disabled_user_cannot_remove(recording_store):
    auth = AuthContext(user=User(username="old-admin", disabled=True))
    outcome = comment_service.remove_comment(recording_store, 5, 8, auth)
    assert outcome is RemovalOutcome.UNAUTHORIZED
    assert recording_store.deletes == []


def test_authenticated_removal_deletes_exactly_once(recording_store):
    auth = AuthContext(user=User(username="admin"))
    outcome = comment_service.remove_comment(recording_store, 5, 8, auth)
    assert outcome is RemovalOutcome.DELETED
    assert recording_store.deletes == [(5, 8)]


def test_removal_without_comment_id_is_skipped(recording_store):
    auth = AuthContext(user=User(username="admin"))
    assert comment_service.remove_comment(recording_store, 5, None, auth) is RemovalOutcome.SKIPPED
    assert comment_service.remove_comment(recording_store, 5, 0, auth) is RemovalOutcome.SKIPPED
    assert recording_store.deletes == []


def test_rejected_delete_is_reported(recording_store):
    recording_store.delete_result = False
    auth = AuthContext(user=User(username="admin"))
    assert comment_service.remove_comment(recording_store, 5, 8, auth) is RemovalOutcome.NOT_DELETED


def test_post_with_comments(store):
    post = comment_service.get_post_with_comments(store, 5)
    assert post.title == "Now for a second article"
    assert post.comment_count == 1
    assert [comment.id for comment in post.comments] == [8]


def test_missing_post_returns_none(store):
    assert comment_service.get_post_with_comments(store, 404) is None
